"""Plain text export of feature lists and matched feature lists.

Feature list files hold one feature per line, whitespace separated:

    id x y track_status response [feature_type orientation scale source_image_id]

track_status is the integer code of TrackStatus and feature_type the
FeatureType name. The first five columns are required when loading; the
remaining ones default to the Feature defaults. Blank lines and lines
starting with '%' or '#' are ignored.

Matched feature files hold one pair per line:

    idA xA yA idB xB yB
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from ..feature import Feature, FeatureType, TrackStatus

if TYPE_CHECKING:
    from ..feature_list import FeatureList
    from ..matched_list import MatchedFeatureList

logger = logging.getLogger(__name__)

FEATURE_LIST_HEADER = (
    "% id x y track_status response feature_type orientation scale source_image_id"
)
MATCHED_LIST_HEADER = "% idA xA yA idB xB yB"

_MIN_COLUMNS = 5


def _format_float(value: float) -> str:
    """Return the shortest text that parses back to exactly the same float."""
    return repr(float(value))


def format_feature(feature: Feature) -> str:
    """Return the text line (without newline) describing a feature."""
    columns = [
        str(feature.id),
        _format_float(feature.x),
        _format_float(feature.y),
        str(feature.track_status.code),
        _format_float(feature.response),
        feature.feature_type.name,
        _format_float(feature.orientation),
        _format_float(feature.scale),
        str(feature.source_image_id),
    ]
    return " ".join(columns)


def parse_feature(line: str) -> Feature:
    """Parse a feature line written by format_feature.

    Raises:
        ValueError: If the line has fewer than five columns or a column
            cannot be parsed
    """
    parts = line.split()
    if len(parts) < _MIN_COLUMNS:
        raise ValueError(f"Expected at least {_MIN_COLUMNS} columns, got {len(parts)}")

    feature = Feature(
        id=int(parts[0]),
        x=float(parts[1]),
        y=float(parts[2]),
        track_status=TrackStatus.from_code(int(parts[3])),
        response=float(parts[4]),
    )
    if len(parts) > 5:
        try:
            feature.feature_type = FeatureType[parts[5]]
        except KeyError as e:
            raise ValueError(f"Unknown feature type: {parts[5]}") from e
    if len(parts) > 6:
        feature.orientation = float(parts[6])
    if len(parts) > 7:
        feature.scale = float(parts[7])
    if len(parts) > 8:
        feature.source_image_id = int(parts[8])
    return feature


def save_feature_list(
    features: Iterable[Feature], path: str | Path, append: bool = False
) -> None:
    """Write features to a text file.

    Args:
        features: Features to write, in order
        path: Output file path
        append: Append lines to an existing file instead of truncating it.
            The header line is only written to new files.
    """
    path = Path(path)
    write_header = not (append and path.exists())
    n_written = 0

    with open(path, "a" if append else "w") as f:
        if write_header:
            f.write(FEATURE_LIST_HEADER + "\n")
        for feature in features:
            f.write(format_feature(feature) + "\n")
            n_written += 1

    logger.debug("Wrote %d features to %s", n_written, path)


def load_feature_list(path: str | Path) -> FeatureList:
    """Read a feature list text file.

    Args:
        path: Input file path

    Returns:
        FeatureList with the features in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a line cannot be parsed
    """
    from ..feature_list import FeatureList

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Feature list file not found: {path}")

    features = FeatureList()
    with open(path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith(("%", "#")):
                continue
            try:
                features.append(parse_feature(line))
            except ValueError as e:
                raise ValueError(f"Invalid line {line_no} in {path}: '{line}'") from e

    logger.debug("Loaded %d features from %s", len(features), path)
    return features


def save_matched_list(matches: MatchedFeatureList, path: str | Path) -> None:
    """Write matched pairs to a text file, one pair per line."""
    path = Path(path)
    with open(path, "w") as f:
        f.write(MATCHED_LIST_HEADER + "\n")
        for first, second in matches:
            f.write(
                f"{first.id} {_format_float(first.x)} {_format_float(first.y)} "
                f"{second.id} {_format_float(second.x)} {_format_float(second.y)}\n"
            )

    logger.debug("Wrote %d matched pairs to %s", len(matches), path)
