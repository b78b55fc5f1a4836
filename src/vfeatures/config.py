"""Configuration for feature matching and spatial indexing.

Settings can be loaded from a YAML file whose sections mirror
DEFAULT_CONFIG; keys left out keep their default value:

    matcher:
      descriptor: SIFT
      normalize: true
      max_distance: 0.5
      ratio_threshold: 0.8
    index:
      leafsize: 16
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .feature import DescriptorKind

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "matcher": {
        "descriptor": "ANY",
        "normalize": True,
        "max_distance": None,  # No absolute distance threshold
        "ratio_threshold": 0.8,
    },
    "index": {
        "leafsize": 16,
    },
}


@dataclass
class MatcherConfig:
    """Descriptor matching parameters.

    Attributes:
        descriptor: Descriptor used for matching (ANY = first present)
        normalize: Use normalized descriptor distances
        max_distance: Reject matches farther than this (None = no limit)
        ratio_threshold: Lowe's ratio test threshold, best < ratio * second.
            None disables the test.
    """

    descriptor: DescriptorKind = DescriptorKind.ANY
    normalize: bool = True
    max_distance: float | None = None
    ratio_threshold: float | None = 0.8


@dataclass
class IndexConfig:
    """Spatial index parameters."""

    leafsize: int = 16


@dataclass
class VFeaturesConfig:
    """Top-level configuration."""

    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    index: IndexConfig = field(default_factory=IndexConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VFeaturesConfig:
        """Build a configuration from a (possibly partial) nested dict.

        Raises:
            ValueError: For unknown sections, unknown keys or an unknown
                descriptor name
        """
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in (data or {}).items():
            if section not in merged:
                raise ValueError(f"Unknown configuration section: {section}")
            if not isinstance(values, dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")
            for key, value in values.items():
                if key not in merged[section]:
                    raise ValueError(f"Unknown configuration key: {section}.{key}")
                merged[section][key] = value

        matcher = merged["matcher"]
        try:
            descriptor = DescriptorKind[str(matcher["descriptor"]).upper()]
        except KeyError as e:
            raise ValueError(f"Unknown descriptor kind: {matcher['descriptor']}") from e

        return cls(
            matcher=MatcherConfig(
                descriptor=descriptor,
                normalize=bool(matcher["normalize"]),
                max_distance=(
                    None if matcher["max_distance"] is None else float(matcher["max_distance"])
                ),
                ratio_threshold=(
                    None
                    if matcher["ratio_threshold"] is None
                    else float(matcher["ratio_threshold"])
                ),
            ),
            index=IndexConfig(leafsize=int(merged["index"]["leafsize"])),
        )


def load_config(path: str | Path) -> VFeaturesConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file content is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Invalid configuration in {path}: expected a mapping")

    return VFeaturesConfig.from_dict(data or {})
