"""Similarity measures between two features.

Descriptor distances are Euclidean. Polar and log-polar descriptors sample
appearance in angular bins (rows) around the point, so comparing them is
made invariant to the unknown relative rotation between both patches by
searching over every circular row shift and keeping the best one.

All functions are pure: they never modify the features passed in, and they
either return a complete result or raise.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from .errors import DimensionMismatch, MissingDescriptor, MissingPatch
from .feature import DescriptorKind, Feature


@dataclass(frozen=True)
class RotationSearchResult:
    """Best alignment found between two polar descriptors.

    Attributes:
        distance: Minimum (optionally normalized) Euclidean distance
        shift: Number of rows the second descriptor is rotated with
            respect to the first at the minimum
        angle: The shift expressed in degrees, shift * 360 / rows
    """

    distance: float
    shift: int
    angle: float


def _require(a: Feature, b: Feature, kind: DescriptorKind) -> None:
    """Raise MissingDescriptor unless both features carry `kind`."""
    if not a.descriptors.has(kind) or not b.descriptors.has(kind):
        raise MissingDescriptor(
            f"Descriptor {kind.name} not present in both features "
            f"(ids {a.id} and {b.id})"
        )


def _vector_distance(v1: np.ndarray, v2: np.ndarray, normalize: bool) -> float:
    """Euclidean distance between two descriptor vectors."""
    if v1.shape != v2.shape:
        raise DimensionMismatch(
            f"Descriptor lengths differ: {v1.size} vs {v2.size}"
        )
    # uint8 SIFT values must not wrap around when subtracted
    diff = v1.astype(np.float64) - v2.astype(np.float64)
    dist = float(np.sqrt(np.sum(diff**2)))
    if normalize:
        dist /= v1.size
    return dist


def sift_distance(a: Feature, b: Feature, normalize: bool = True) -> float:
    """Euclidean distance between the SIFT descriptors of two features."""
    _require(a, b, DescriptorKind.SIFT)
    return _vector_distance(a.descriptors.sift, b.descriptors.sift, normalize)


def surf_distance(a: Feature, b: Feature, normalize: bool = True) -> float:
    """Euclidean distance between the SURF descriptors of two features."""
    _require(a, b, DescriptorKind.SURF)
    return _vector_distance(a.descriptors.surf, b.descriptors.surf, normalize)


def spin_image_distance(a: Feature, b: Feature, normalize: bool = True) -> float:
    """Euclidean distance between the spin image descriptors of two features."""
    _require(a, b, DescriptorKind.SPIN_IMAGE)
    return _vector_distance(a.descriptors.spin_image, b.descriptors.spin_image, normalize)


def rotation_search_distance(
    m1: np.ndarray,
    m2: np.ndarray,
    normalize: bool = True,
    no_rotation: bool = False,
) -> RotationSearchResult:
    """Minimum distance between two polar matrices over all row rotations.

    For every shift s in [0, rows) the first matrix is compared with the
    second one rotated back by s rows, i.e. ``m2[(i + s) % rows]`` is
    matched against ``m1[i]``. If ``m2 == np.roll(m1, k, axis=0)`` the
    result is a zero distance at shift k.

    Args:
        m1: First descriptor, (angular bins, radial bins)
        m2: Second descriptor, same shape as m1
        normalize: Divide the distance by the number of matrix elements
        no_rotation: Only evaluate shift 0

    Returns:
        RotationSearchResult with the minimum distance and its shift. Ties
        resolve to the smallest shift.

    Raises:
        DimensionMismatch: If the matrix shapes differ
    """
    m1 = np.asarray(m1, dtype=np.float64)
    m2 = np.asarray(m2, dtype=np.float64)
    if m1.shape != m2.shape:
        raise DimensionMismatch(f"Polar descriptor shapes differ: {m1.shape} vs {m2.shape}")

    n_rows = m1.shape[0]
    shifts = np.zeros(1, dtype=np.int64) if no_rotation else np.arange(n_rows)

    # rows[s, i] = (i + s) % n_rows, so m2[rows] has shape (n_shifts, rows, cols)
    rows = (shifts[:, np.newaxis] + np.arange(n_rows)[np.newaxis, :]) % n_rows
    diff = m1[np.newaxis, :, :] - m2[rows]
    distances = np.sqrt(np.sum(diff**2, axis=(1, 2)))

    best = int(np.argmin(distances))
    dist = float(distances[best])
    if normalize:
        dist /= m1.size

    shift = int(shifts[best])
    return RotationSearchResult(distance=dist, shift=shift, angle=shift * 360.0 / n_rows)


def polar_image_distance(
    a: Feature, b: Feature, normalize: bool = True
) -> RotationSearchResult:
    """Rotation-invariant distance between the polar image descriptors.

    The rotation search is skipped if either feature sets
    ``descriptors.no_rotation_search``.
    """
    _require(a, b, DescriptorKind.POLAR_IMAGE)
    return rotation_search_distance(
        a.descriptors.polar_image,
        b.descriptors.polar_image,
        normalize=normalize,
        no_rotation=a.descriptors.no_rotation_search or b.descriptors.no_rotation_search,
    )


def log_polar_image_distance(
    a: Feature, b: Feature, normalize: bool = True
) -> RotationSearchResult:
    """Rotation-invariant distance between the log-polar image descriptors."""
    _require(a, b, DescriptorKind.LOG_POLAR_IMAGE)
    return rotation_search_distance(
        a.descriptors.log_polar_image,
        b.descriptors.log_polar_image,
        normalize=normalize,
        no_rotation=a.descriptors.no_rotation_search or b.descriptors.no_rotation_search,
    )


def descriptor_distance(
    a: Feature,
    b: Feature,
    kind: DescriptorKind = DescriptorKind.ANY,
    normalize: bool = True,
) -> float:
    """Distance between the descriptors of two features.

    Args:
        a: First feature
        b: Second feature
        kind: Descriptor to compare. ANY selects the first descriptor
            present in `a` (priority SIFT, SURF, spin image, polar,
            log-polar)
        normalize: Make distances comparable across descriptor sizes
            (divide by vector length, or by element count for polar
            descriptors)

    Returns:
        Non-negative distance, 0 for identical descriptors

    Raises:
        MissingDescriptor: If the descriptor is absent in either feature
        DimensionMismatch: If descriptor sizes differ
    """
    if kind is DescriptorKind.ANY:
        first = a.descriptors.first_kind()
        if first is None:
            raise MissingDescriptor(f"Feature {a.id} has no descriptor")
        kind = first

    if kind is DescriptorKind.SIFT:
        return sift_distance(a, b, normalize)
    if kind is DescriptorKind.SURF:
        return surf_distance(a, b, normalize)
    if kind is DescriptorKind.SPIN_IMAGE:
        return spin_image_distance(a, b, normalize)
    if kind is DescriptorKind.POLAR_IMAGE:
        return polar_image_distance(a, b, normalize).distance
    return log_polar_image_distance(a, b, normalize).distance


def patch_correlation(a: Feature, b: Feature) -> float:
    """Normalized cross-correlation between the patches of two features.

    Returns:
        Dissimilarity in [0, 1]: 0 for identical (or perfectly correlated)
        patches, 1 for perfectly anti-correlated ones

    Raises:
        MissingPatch: If either feature has no patch
        DimensionMismatch: If the patches have different sizes
    """
    if not a.has_patch or not b.has_patch:
        raise MissingPatch(f"Patch correlation needs patches on features {a.id} and {b.id}")
    if a.patch.shape != b.patch.shape:
        raise DimensionMismatch(f"Patch shapes differ: {a.patch.shape} vs {b.patch.shape}")

    if np.array_equal(a.patch, b.patch):
        return 0.0

    result = cv2.matchTemplate(
        a.patch.astype(np.float32), b.patch.astype(np.float32), cv2.TM_CCOEFF_NORMED
    )
    ncc = float(result[0, 0])
    if not np.isfinite(ncc):
        # Zero-variance patch: no correlation can be measured
        ncc = 0.0

    return float(np.clip((1.0 - ncc) / 2.0, 0.0, 1.0))
