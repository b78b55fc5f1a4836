"""Descriptor matching between the features of two images."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from .config import MatcherConfig
from .distance import descriptor_distance
from .errors import DimensionMismatch, MissingDescriptor
from .feature import DescriptorKind, Feature
from .matched_list import MatchedFeatureList

logger = logging.getLogger(__name__)


class FeatureMatcher:
    """Brute-force matcher built on descriptor distances.

    Every feature of the first list is compared with every feature of the
    second one. A match is accepted when its distance is below the
    configured maximum and, if enabled, passes Lowe's ratio test against
    the second best candidate. Pairs that cannot be compared, because a
    descriptor is missing or the dimensions differ, are skipped.
    """

    def __init__(self, config: MatcherConfig | None = None) -> None:
        """Initialize matcher.

        Args:
            config: Matching parameters (defaults to MatcherConfig())
        """
        self._config = config if config is not None else MatcherConfig()

    @property
    def config(self) -> MatcherConfig:
        """Return the matching parameters."""
        return self._config

    def distance_matrix(
        self, features1: Sequence[Feature], features2: Sequence[Feature]
    ) -> np.ndarray:
        """Compute all pairwise descriptor distances.

        Returns:
            (len(features1), len(features2)) float64 array, inf where the
            descriptor is missing on either side or the two descriptors have
            different dimensions
        """
        distances = np.full((len(features1), len(features2)), np.inf, dtype=np.float64)
        kind = self._config.descriptor
        for i, f1 in enumerate(features1):
            if not f1.descriptors.has(kind):
                continue
            for j, f2 in enumerate(features2):
                try:
                    distances[i, j] = descriptor_distance(
                        f1, f2, kind=kind, normalize=self._config.normalize
                    )
                except (MissingDescriptor, DimensionMismatch):
                    continue
        return distances

    def match(
        self, features1: Sequence[Feature], features2: Sequence[Feature]
    ) -> MatchedFeatureList:
        """Match features of the first list against the second list.

        Args:
            features1: Features from the first image
            features2: Features from the second image

        Returns:
            MatchedFeatureList of (feature1, feature2) pairs, in the order of
            features1
        """
        matches = MatchedFeatureList()
        if len(features1) == 0 or len(features2) == 0:
            return matches

        distances = self.distance_matrix(features1, features2)
        max_distance = self._config.max_distance
        ratio = self._config.ratio_threshold

        for i, row in enumerate(distances):
            order = np.argsort(row, kind="stable")
            best = int(order[0])
            best_dist = row[best]
            if not np.isfinite(best_dist):
                continue
            if max_distance is not None and best_dist > max_distance:
                continue

            # Ratio test: best must be significantly better than second best
            if ratio is not None and len(order) > 1:
                second_dist = row[order[1]]
                if np.isfinite(second_dist) and best_dist >= ratio * second_dist:
                    continue

            matches.append(features1[i], features2[best])

        kind_name = self._config.descriptor.name
        logger.debug(
            "Matched %d of %d features (%s descriptor)", len(matches), len(features1), kind_name
        )
        return matches


def match_features(
    features1: Sequence[Feature],
    features2: Sequence[Feature],
    kind: DescriptorKind = DescriptorKind.ANY,
    max_distance: float | None = None,
    ratio_threshold: float | None = 0.8,
) -> MatchedFeatureList:
    """Match two feature lists with a one-off FeatureMatcher."""
    config = MatcherConfig(
        descriptor=kind, max_distance=max_distance, ratio_threshold=ratio_threshold
    )
    return FeatureMatcher(config).match(features1, features2)
