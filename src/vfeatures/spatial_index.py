"""Spatial indexes over 2D feature coordinates."""

from __future__ import annotations

import logging
from typing import Protocol

import numpy as np
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)


class SpatialIndex(Protocol):
    """Nearest-neighbor index over a fixed set of 2D points.

    An index answers queries about the points it was last built with; it
    is the owner's job to rebuild it when those points change.
    """

    @property
    def is_built(self) -> bool: ...

    def build(self, points: np.ndarray) -> None: ...

    def nearest(self, query: np.ndarray, max_radius: float) -> tuple[int, float] | None: ...


class KDTreeIndex:
    """SpatialIndex backed by a SciPy k-d tree."""

    def __init__(self, leafsize: int = 16) -> None:
        """Initialize an empty, unbuilt index.

        Args:
            leafsize: Number of points at which the tree switches to brute
                force search
        """
        self._leafsize = leafsize
        self._tree: cKDTree | None = None
        self._n_points = 0
        self._is_built = False

    @property
    def is_built(self) -> bool:
        """Return True once build() has been called."""
        return self._is_built

    @property
    def n_points(self) -> int:
        """Return the number of indexed points."""
        return self._n_points

    def build(self, points: np.ndarray) -> None:
        """Index a set of points.

        Args:
            points: Nx2 array of (x, y) coordinates. N may be 0.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        self._n_points = len(points)
        self._tree = cKDTree(points, leafsize=self._leafsize) if self._n_points > 0 else None
        self._is_built = True
        logger.debug("Built k-d tree over %d points", self._n_points)

    def nearest(self, query: np.ndarray, max_radius: float) -> tuple[int, float] | None:
        """Find the indexed point closest to a query point.

        Args:
            query: (x, y) query coordinates
            max_radius: Largest accepted distance (inclusive)

        Returns:
            (point index, distance) or None if no point lies within max_radius

        Raises:
            RuntimeError: If the index has not been built
        """
        if not self._is_built:
            raise RuntimeError("KDTreeIndex.nearest() called before build()")
        if self._tree is None or max_radius < 0:
            return None

        # distance_upper_bound is exclusive, nudge it so max_radius is inclusive
        upper = np.nextafter(float(max_radius), np.inf)
        dist, idx = self._tree.query(
            np.asarray(query, dtype=np.float64).reshape(2), k=1, distance_upper_bound=upper
        )
        if not np.isfinite(dist) or idx >= self._n_points:
            return None
        return int(idx), float(dist)
