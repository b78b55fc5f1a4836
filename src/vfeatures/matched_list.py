"""Correspondences between features of two images."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from .feature import Feature, FeatureType


class MatchedFeatureList:
    """Ordered list of (first, second) feature correspondences.

    Pairs hold references to features owned by FeatureLists; the matched
    list must not outlive them. Changes made to a feature through its
    owning list are visible through the pair and vice versa.
    """

    def __init__(self, pairs: list[tuple[Feature, Feature]] | None = None) -> None:
        """Initialize matched list.

        Args:
            pairs: Initial (first, second) pairs
        """
        self._pairs: list[tuple[Feature, Feature]] = list(pairs) if pairs else []

    def __len__(self) -> int:
        """Return number of matched pairs."""
        return len(self._pairs)

    def __iter__(self) -> Iterator[tuple[Feature, Feature]]:
        return iter(self._pairs)

    def __getitem__(self, index: int) -> tuple[Feature, Feature]:
        return self._pairs[index]

    def __repr__(self) -> str:
        return f"MatchedFeatureList({len(self._pairs)} pairs)"

    def append(self, first: Feature, second: Feature) -> None:
        """Add a correspondence at the end of the list."""
        self._pairs.append((first, second))

    def clear(self) -> None:
        """Remove all pairs (the features themselves are untouched)."""
        self._pairs.clear()

    @property
    def feature_type(self) -> FeatureType:
        """Return the type of the first pair's first feature (NOT_DEFINED if empty)."""
        if not self._pairs:
            return FeatureType.NOT_DEFINED
        return self._pairs[0][0].feature_type

    def first_features(self) -> list[Feature]:
        """Return the first feature of every pair, in order."""
        return [first for first, _ in self._pairs]

    def second_features(self) -> list[Feature]:
        """Return the second feature of every pair, in order."""
        return [second for _, second in self._pairs]

    def save_to_text_file(self, path: str | Path) -> None:
        """Write one line per pair: idA xA yA idB xB yB."""
        from .io.text_format import save_matched_list

        save_matched_list(self, path)
