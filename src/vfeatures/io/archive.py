"""Lossless binary storage of feature lists in NumPy .npz archives.

Per-feature scalars are stored as columns; patches and descriptor slots
are stored as one array per feature and slot. Absent patches and
descriptors are written as empty arrays, so every feature has the same set
of keys, and are read back as None.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from ..feature import Descriptors, Feature, FeatureType, TrackStatus

if TYPE_CHECKING:
    from ..feature_list import FeatureList

logger = logging.getLogger(__name__)

_SLOTS = ("sift", "surf", "spin_image", "polar_image", "log_polar_image")


def _slot_key(i: int, name: str) -> str:
    return f"feature_{i}_{name}"


def save_feature_archive(features: Sequence[Feature], path: str | Path) -> None:
    """Save features to an .npz archive.

    Args:
        features: Features to save, in order
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    arrays: dict[str, np.ndarray] = {
        "n_features": np.array(len(features), dtype=np.int64),
        "ids": np.array([f.id for f in features], dtype=np.uint64),
        "xy": np.array([(f.x, f.y) for f in features], dtype=np.float64).reshape(-1, 2),
        "feature_types": np.array([f.feature_type.name for f in features], dtype=np.str_),
        "track_statuses": np.array([f.track_status.name for f in features], dtype=np.str_),
        "responses": np.array([f.response for f in features], dtype=np.float64),
        "orientations": np.array([f.orientation for f in features], dtype=np.float64),
        "scales": np.array([f.scale for f in features], dtype=np.float64),
        "source_image_ids": np.array([f.source_image_id for f in features], dtype=np.int64),
        "spin_image_range_rows": np.array(
            [f.descriptors.spin_image_range_rows for f in features], dtype=np.int64
        ),
        "no_rotation_search": np.array(
            [f.descriptors.no_rotation_search for f in features], dtype=np.bool_
        ),
    }

    for i, feature in enumerate(features):
        arrays[_slot_key(i, "patch")] = (
            feature.patch if feature.has_patch else np.empty(0, dtype=np.uint8)
        )
        for name in _SLOTS:
            value = getattr(feature.descriptors, name)
            arrays[_slot_key(i, name)] = value if value is not None else np.empty(0, dtype=np.float32)

    # Write through a handle so numpy keeps the file name as given
    with open(path, "wb") as f:
        np.savez(f, **arrays)
    logger.debug("Saved %d features to %s", len(features), path)


def load_feature_archive(path: str | Path) -> FeatureList:
    """Load features saved with save_feature_archive.

    Args:
        path: Input .npz file path

    Returns:
        FeatureList with the saved features in their original order

    Raises:
        FileNotFoundError: If the archive does not exist
        ValueError: If the archive is missing entries
    """
    from ..feature_list import FeatureList

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Feature archive not found: {path}")

    features = FeatureList()
    with np.load(path) as data:
        try:
            n_features = int(data["n_features"])
            for i in range(n_features):
                slots = {}
                for name in _SLOTS:
                    value = data[_slot_key(i, name)]
                    slots[name] = value if value.size > 0 else None
                patch = data[_slot_key(i, "patch")]

                features.append(
                    Feature(
                        id=int(data["ids"][i]),
                        x=float(data["xy"][i, 0]),
                        y=float(data["xy"][i, 1]),
                        patch=patch if patch.size > 0 else None,
                        feature_type=FeatureType[str(data["feature_types"][i])],
                        track_status=TrackStatus[str(data["track_statuses"][i])],
                        response=float(data["responses"][i]),
                        orientation=float(data["orientations"][i]),
                        scale=float(data["scales"][i]),
                        source_image_id=int(data["source_image_ids"][i]),
                        descriptors=Descriptors(
                            spin_image_range_rows=int(data["spin_image_range_rows"][i]),
                            no_rotation_search=bool(data["no_rotation_search"][i]),
                            **slots,
                        ),
                    )
                )
        except KeyError as e:
            raise ValueError(f"Invalid feature archive {path}: missing entry {e}") from e

    logger.debug("Loaded %d features from %s", len(features), path)
    return features
