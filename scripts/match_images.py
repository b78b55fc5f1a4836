#!/usr/bin/env python3
"""Detect SIFT features in two images, match them and export the results.

Writes three text files into the output directory:
    features1.txt   - features of the first image
    features2.txt   - features of the second image
    matches.txt     - matched pairs (idA xA yA idB xB yB)

Usage:
    uv run python scripts/match_images.py left.png right.png
    uv run python scripts/match_images.py a.png b.png --config matcher.yaml --output out/
"""

import argparse
import logging
import sys
from pathlib import Path

import cv2

from vfeatures import FeatureList, FeatureMatcher, FeatureType, VFeaturesConfig, load_config
from vfeatures.feature import DescriptorKind
from vfeatures.spatial_index import KDTreeIndex
from vfeatures.utils import setup_logger


def detect(image_path: Path, n_features: int, first_id: int, image_id: int, leafsize: int) -> FeatureList:
    """Run OpenCV SIFT on an image and wrap the result in a FeatureList."""
    image = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise ValueError(f"Failed to load image: {image_path}")

    sift = cv2.SIFT_create(nfeatures=n_features)
    keypoints, descriptors = sift.detectAndCompute(image, None)

    return FeatureList.from_keypoints(
        keypoints,
        descriptors=descriptors,
        descriptor_kind=DescriptorKind.SIFT,
        feature_type=FeatureType.SIFT,
        first_id=first_id,
        source_image_id=image_id,
        index=KDTreeIndex(leafsize=leafsize),
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Match SIFT features between two images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("image1", type=Path, help="First image")
    parser.add_argument("image2", type=Path, help="Second image")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )
    parser.add_argument(
        "--n-features",
        type=int,
        default=500,
        help="SIFT features per image (default: 500)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logger = setup_logger(log_level=logging.DEBUG if args.verbose else logging.INFO)

    for image_path in (args.image1, args.image2):
        if not image_path.exists():
            logger.error("Image not found: %s", image_path)
            sys.exit(1)

    config = load_config(args.config) if args.config else VFeaturesConfig()
    if config.matcher.descriptor not in (DescriptorKind.ANY, DescriptorKind.SIFT):
        logger.error("Only SIFT descriptors are computed by this script")
        sys.exit(1)

    features1 = detect(args.image1, args.n_features, 0, 0, config.index.leafsize)
    first_id = features1.get_max_id() + 1 if len(features1) > 0 else 0
    features2 = detect(args.image2, args.n_features, first_id, 1, config.index.leafsize)
    logger.info("Detected %d / %d features", len(features1), len(features2))

    matches = FeatureMatcher(config.matcher).match(features1, features2)
    logger.info("Matched %d features", len(matches))

    args.output.mkdir(parents=True, exist_ok=True)
    features1.save_to_text_file(args.output / "features1.txt")
    features2.save_to_text_file(args.output / "features2.txt")
    matches.save_to_text_file(args.output / "matches.txt")
    logger.info("Results written to %s", args.output)


if __name__ == "__main__":
    main()
