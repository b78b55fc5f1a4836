"""Ordered feature collection with ID lookup and nearest-neighbor queries.

A FeatureList owns the features detected in one image. Besides behaving
like a regular mutable sequence it can look features up by ID and find the
feature nearest to a query point through a spatial index. The index is a
cached structure derived from the feature coordinates: it is marked stale
by every structural change and is rebuilt lazily on the next query.

Checking for features moved in place costs O(N) per query. Trackers that
query many times per frame can pass watch_coordinates=False and call
invalidate_index() once after updating coordinates instead.

FeatureList is not thread safe. Mutating it while another thread queries
it requires external locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, MutableSequence, Sequence
from pathlib import Path
from typing import overload

import cv2
import numpy as np

from .errors import EmptyCollection
from .feature import DescriptorKind, Feature, FeatureType
from .spatial_index import KDTreeIndex, SpatialIndex

logger = logging.getLogger(__name__)


class FeatureList(MutableSequence[Feature]):
    """A list of features, as output by detectors and updated by trackers."""

    def __init__(
        self,
        features: Iterable[Feature] = (),
        index: SpatialIndex | None = None,
        watch_coordinates: bool = True,
    ) -> None:
        """Initialize the list.

        Args:
            features: Initial features, in order
            index: Spatial index used by nearest(). Defaults to a KDTreeIndex.
            watch_coordinates: Compare feature coordinates with the indexed
                ones on every query and rebuild when they differ. When False
                only structural changes and invalidate_index() trigger a
                rebuild.
        """
        self._features: list[Feature] = list(features)
        self._index: SpatialIndex = index if index is not None else KDTreeIndex()
        self._index_stale = True
        self._indexed_points: np.ndarray | None = None
        self._watch_coordinates = watch_coordinates

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        """Return number of features."""
        return len(self._features)

    @overload
    def __getitem__(self, index: int) -> Feature: ...

    @overload
    def __getitem__(self, index: slice) -> list[Feature]: ...

    def __getitem__(self, index: int | slice) -> Feature | list[Feature]:
        return self._features[index]

    def __setitem__(self, index: int | slice, value: Feature | Iterable[Feature]) -> None:
        self._features[index] = value  # type: ignore[index,assignment]
        self.invalidate_index()

    def __delitem__(self, index: int | slice) -> None:
        del self._features[index]
        self.invalidate_index()

    def insert(self, index: int, value: Feature) -> None:
        """Insert a feature before position index."""
        self._features.insert(index, value)
        self.invalidate_index()

    def __repr__(self) -> str:
        return f"FeatureList({len(self._features)} features, type={self.feature_type.name})"

    def push_back(self, feature: Feature) -> None:
        """Append a feature at the end of the list."""
        self.append(feature)

    def push_front(self, feature: Feature) -> None:
        """Insert a feature at the beginning of the list."""
        self.insert(0, feature)

    def clear(self) -> None:
        """Remove all features."""
        self._features.clear()
        self.invalidate_index()

    def resize(self, n: int) -> None:
        """Truncate the list to n features, or pad it with default features.

        Args:
            n: New number of features
        """
        if n < 0:
            raise ValueError(f"Cannot resize to a negative size: {n}")
        if n < len(self._features):
            del self._features[n:]
        else:
            self._features.extend(Feature() for _ in range(n - len(self._features)))
        self.invalidate_index()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def feature_type(self) -> FeatureType:
        """Return the type of the first feature (NOT_DEFINED if empty)."""
        if not self._features:
            return FeatureType.NOT_DEFINED
        return self._features[0].feature_type

    def points(self) -> np.ndarray:
        """Return Nx2 array of feature (x, y) coordinates."""
        if not self._features:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([(f.x, f.y) for f in self._features], dtype=np.float64)

    def get_max_id(self) -> int:
        """Return the largest feature ID in the list.

        Raises:
            EmptyCollection: If the list is empty
        """
        if not self._features:
            raise EmptyCollection("get_max_id() called on an empty FeatureList")
        return max(f.id for f in self._features)

    def get_by_id(self, feature_id: int) -> Feature | None:
        """Return the first feature with the given ID, or None."""
        for feature in self._features:
            if feature.id == feature_id:
                return feature
        return None

    def nearest(self, x: float, y: float, max_dist: float) -> tuple[Feature | None, float]:
        """Find the feature closest to a 2D point.

        Args:
            x: Query x coordinate
            y: Query y coordinate
            max_dist: Maximum accepted distance (inclusive)

        Returns:
            (feature, distance) for the nearest feature within max_dist, or
            (None, max_dist) if there is none
        """
        self._ensure_index()
        found = self._index.nearest(np.array([x, y], dtype=np.float64), max_dist)
        if found is None:
            return None, max_dist
        idx, dist = found
        return self._features[idx], dist

    # ------------------------------------------------------------------
    # Spatial index maintenance
    # ------------------------------------------------------------------

    @property
    def index_is_stale(self) -> bool:
        """Return True if the next query will rebuild the spatial index."""
        return self._index_stale

    def invalidate_index(self) -> None:
        """Mark the spatial index as out of date."""
        self._index_stale = True

    def rebuild_index(self) -> None:
        """Rebuild the spatial index from the current coordinates."""
        points = self.points()
        self._index.build(points)
        self._indexed_points = points
        self._index_stale = False

    def _ensure_index(self) -> None:
        """Rebuild the index if membership or any coordinate changed."""
        if (
            self._index_stale
            or not self._index.is_built
            or (self._watch_coordinates and self._coordinates_changed())
        ):
            logger.debug("Rebuilding spatial index for %d features", len(self._features))
            self.rebuild_index()

    def _coordinates_changed(self) -> bool:
        return self._indexed_points is None or not np.array_equal(self._indexed_points, self.points())

    # ------------------------------------------------------------------
    # Construction and persistence
    # ------------------------------------------------------------------

    @classmethod
    def from_keypoints(
        cls,
        keypoints: Sequence[cv2.KeyPoint],
        descriptors: np.ndarray | None = None,
        descriptor_kind: DescriptorKind = DescriptorKind.SIFT,
        feature_type: FeatureType = FeatureType.NOT_DEFINED,
        first_id: int = 0,
        source_image_id: int = 0,
        index: SpatialIndex | None = None,
    ) -> FeatureList:
        """Build a list from OpenCV detector output.

        Args:
            keypoints: Detected keypoints
            descriptors: Optional NxD descriptor array, one row per keypoint
            descriptor_kind: Slot descriptors are stored in (SIFT or SURF)
            feature_type: Detector tag assigned to every feature
            first_id: ID of the first feature; IDs increase by one
            source_image_id: Index of the source image
            index: Spatial index for the new list (defaults to a KDTreeIndex)

        Returns:
            New FeatureList in keypoint order
        """
        if descriptors is not None and len(descriptors) != len(keypoints):
            raise ValueError(
                f"Got {len(descriptors)} descriptors for {len(keypoints)} keypoints"
            )
        features = (
            Feature.from_keypoint(
                kp,
                feature_id=first_id + i,
                feature_type=feature_type,
                descriptor=None if descriptors is None else descriptors[i],
                descriptor_kind=descriptor_kind,
                source_image_id=source_image_id,
            )
            for i, kp in enumerate(keypoints)
        )
        return cls(features, index=index)

    def save_to_text_file(self, path: str | Path, append: bool = False) -> None:
        """Write the list as text, one line per feature.

        Args:
            path: Output file path
            append: Append to an existing file instead of overwriting it
        """
        from .io.text_format import save_feature_list

        save_feature_list(self, path, append=append)

    def load_from_text_file(self, path: str | Path) -> None:
        """Replace the contents of the list with the features in a text file."""
        from .io.text_format import load_feature_list

        loaded = load_feature_list(path)
        self._features = list(loaded)
        self.invalidate_index()
