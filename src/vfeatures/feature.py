"""Feature records and their descriptor bundles.

A Feature is a single interest point detected in an image. Besides its
image coordinates it carries the tracking state maintained by trackers,
an optional image patch and any number of descriptors computed for it.
Features are passive records: detectors create them, trackers and
descriptor routines mutate them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import cv2
import numpy as np

from .errors import NoDescriptorAvailable

MAX_FEATURE_ID = 2**64 - 1


class FeatureType(Enum):
    """Detector that produced a feature."""

    NOT_DEFINED = "NOT_DEFINED"
    KLT = "KLT"  # Kanade-Lucas-Tomasi
    HARRIS = "HARRIS"
    BCD = "BCD"  # Binary corner detector
    SIFT = "SIFT"
    SURF = "SURF"
    BEACON = "BEACON"  # Not an image feature: a 2D/3D landmark
    FAST = "FAST"

    @property
    def is_point_feature(self) -> bool:
        """Return False only for blob detectors (SIFT, SURF)."""
        return self not in (FeatureType.SIFT, FeatureType.SURF)


class DescriptorKind(Enum):
    """Descriptor selector for distance computations."""

    ANY = "ANY"
    SIFT = "SIFT"
    SURF = "SURF"
    SPIN_IMAGE = "SPIN_IMAGE"
    POLAR_IMAGE = "POLAR_IMAGE"
    LOG_POLAR_IMAGE = "LOG_POLAR_IMAGE"


# Order used when "any" descriptor is requested
DESCRIPTOR_PRIORITY: tuple[DescriptorKind, ...] = (
    DescriptorKind.SIFT,
    DescriptorKind.SURF,
    DescriptorKind.SPIN_IMAGE,
    DescriptorKind.POLAR_IMAGE,
    DescriptorKind.LOG_POLAR_IMAGE,
)


class TrackStatus(Enum):
    """Outcome of the last attempt to track a feature.

    Generic and KLT-specific states share one enumeration: there is a
    single TRACKED and a single OUT_OF_BOUNDS state, the KLT_* members
    are additional failure reasons reported by KLT trackers.
    """

    IDLE = "IDLE"  # Right after detection, never tracked
    TRACKED = "TRACKED"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    LOST = "LOST"
    KLT_SMALL_DET = "KLT_SMALL_DET"  # Determinant of the matrix too small
    KLT_LARGE_RESIDUE = "KLT_LARGE_RESIDUE"
    KLT_MAX_RESIDUE = "KLT_MAX_RESIDUE"
    KLT_MAX_ITERATIONS = "KLT_MAX_ITERATIONS"

    @property
    def code(self) -> int:
        """Integer code used in text exports."""
        return _TRACK_STATUS_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> TrackStatus:
        """Inverse of :attr:`code`.

        Raises:
            ValueError: If the code is not a known track status
        """
        for status, status_code in _TRACK_STATUS_CODES.items():
            if status_code == code:
                return status
        raise ValueError(f"Unknown track status code: {code}")

    @property
    def is_ok(self) -> bool:
        """Return True if the feature was successfully tracked."""
        return self is TrackStatus.TRACKED


_TRACK_STATUS_CODES: dict[TrackStatus, int] = {
    TrackStatus.IDLE: 0,
    TrackStatus.OUT_OF_BOUNDS: 1,
    TrackStatus.KLT_SMALL_DET: 2,
    TrackStatus.KLT_LARGE_RESIDUE: 3,
    TrackStatus.KLT_MAX_RESIDUE: 4,
    TrackStatus.TRACKED: 5,
    TrackStatus.KLT_MAX_ITERATIONS: 6,
    TrackStatus.LOST: 10,
}


def _optional_array(value: np.ndarray | None, dtype: type, ndim: int) -> np.ndarray | None:
    """Coerce a descriptor slot, mapping empty input to None."""
    if value is None:
        return None
    arr = np.asarray(value, dtype=dtype)
    if arr.size == 0:
        return None
    if ndim == 1:
        return arr.flatten()
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D descriptor matrix, got shape {arr.shape}")
    return arr


@dataclass(eq=False)
class Descriptors:
    """All the descriptors a feature may carry.

    Every slot is independent and optional; None means absent. Any subset
    (including none or all) may be present at the same time.

    Attributes:
        sift: SIFT descriptor, (N,) uint8
        surf: SURF descriptor, (N,) float32
        spin_image: Intensity-domain spin image flattened row-major, (N,) float32
        spin_image_range_rows: Number of range bins (rows) of the 2-D
            histogram spin_image was flattened from
        polar_image: Polar image around the point, (angular bins, radial bins)
        log_polar_image: Log-polar image, (angular bins, radial bins)
        no_rotation_search: If True, polar and log-polar comparisons are
            made at zero rotation only
    """

    sift: np.ndarray | None = None
    surf: np.ndarray | None = None
    spin_image: np.ndarray | None = None
    spin_image_range_rows: int = 0
    polar_image: np.ndarray | None = None
    log_polar_image: np.ndarray | None = None
    no_rotation_search: bool = False

    def __post_init__(self) -> None:
        """Normalize slot dtypes and map empty arrays to None."""
        self.sift = _optional_array(self.sift, np.uint8, ndim=1)
        self.surf = _optional_array(self.surf, np.float32, ndim=1)
        self.spin_image = _optional_array(self.spin_image, np.float32, ndim=1)
        self.polar_image = _optional_array(self.polar_image, np.float32, ndim=2)
        self.log_polar_image = _optional_array(self.log_polar_image, np.float32, ndim=2)
        self.spin_image_range_rows = int(self.spin_image_range_rows)

    @property
    def has_sift(self) -> bool:
        return self.sift is not None and self.sift.size > 0

    @property
    def has_surf(self) -> bool:
        return self.surf is not None and self.surf.size > 0

    @property
    def has_spin_image(self) -> bool:
        return self.spin_image is not None and self.spin_image.size > 0

    @property
    def has_polar_image(self) -> bool:
        return self.polar_image is not None and self.polar_image.shape[0] > 0

    @property
    def has_log_polar_image(self) -> bool:
        return self.log_polar_image is not None and self.log_polar_image.shape[0] > 0

    def has(self, kind: DescriptorKind) -> bool:
        """Return True if the descriptor of the given kind is present.

        ``DescriptorKind.ANY`` asks whether any descriptor is present.
        """
        if kind is DescriptorKind.ANY:
            return self.first_kind() is not None
        return {
            DescriptorKind.SIFT: self.has_sift,
            DescriptorKind.SURF: self.has_surf,
            DescriptorKind.SPIN_IMAGE: self.has_spin_image,
            DescriptorKind.POLAR_IMAGE: self.has_polar_image,
            DescriptorKind.LOG_POLAR_IMAGE: self.has_log_polar_image,
        }[kind]

    def get(self, kind: DescriptorKind) -> np.ndarray | None:
        """Return the raw slot for a descriptor kind (None if absent)."""
        if kind is DescriptorKind.ANY:
            first = self.first_kind()
            return None if first is None else self.get(first)
        return {
            DescriptorKind.SIFT: self.sift,
            DescriptorKind.SURF: self.surf,
            DescriptorKind.SPIN_IMAGE: self.spin_image,
            DescriptorKind.POLAR_IMAGE: self.polar_image,
            DescriptorKind.LOG_POLAR_IMAGE: self.log_polar_image,
        }[kind]

    def kinds(self) -> list[DescriptorKind]:
        """Return the present descriptor kinds in priority order."""
        return [kind for kind in DESCRIPTOR_PRIORITY if self.has(kind)]

    def first_kind(self) -> DescriptorKind | None:
        """Return the first present descriptor kind, or None."""
        for kind in DESCRIPTOR_PRIORITY:
            if self.has(kind):
                return kind
        return None

    def first_as_matrix(self) -> np.ndarray:
        """Return the first present descriptor as a 2-D float32 matrix.

        Vector descriptors (SIFT, SURF) become a single row. The spin image
        is reshaped row-major to (range_rows, N / range_rows) when the range
        row count divides its length, and kept as a single row otherwise.
        Polar descriptors are returned as copies.

        Raises:
            NoDescriptorAvailable: If no descriptor is present
        """
        kind = self.first_kind()
        if kind is None:
            raise NoDescriptorAvailable("Feature has no descriptor")

        desc = np.asarray(self.get(kind), dtype=np.float32)
        if kind is DescriptorKind.SPIN_IMAGE:
            n_rows = self.spin_image_range_rows
            if n_rows > 0 and desc.size % n_rows == 0:
                return desc.reshape(n_rows, desc.size // n_rows).copy()
        if desc.ndim == 1:
            return desc.reshape(1, -1).copy()
        return desc.copy()


@dataclass(eq=False)
class Feature:
    """A 2D interest point detected in an image.

    Attributes:
        id: Feature identifier (unsigned 64-bit). Intended to be unique
            within a collection, but collections do not enforce it
        x: Image x coordinate (pixels)
        y: Image y coordinate (pixels)
        patch: Square image crop centered on the point, side length
            patch_size (odd), or None
        feature_type: Detector that produced the feature
        track_status: Result of the last tracking attempt
        response: Detector "goodness" score
        orientation: Main orientation (degrees)
        scale: Scale in the detector's scale space
        source_image_id: Index of the image the feature was extracted from
        descriptors: Descriptor bundle
    """

    id: int = 0
    x: float = 0.0
    y: float = 0.0
    patch: np.ndarray | None = None
    feature_type: FeatureType = FeatureType.NOT_DEFINED
    track_status: TrackStatus = TrackStatus.IDLE
    response: float = 0.0
    orientation: float = 0.0
    scale: float = 0.0
    source_image_id: int = 0
    descriptors: Descriptors = field(default_factory=Descriptors)

    def __post_init__(self) -> None:
        """Validate the ID and normalize the patch."""
        self.id = int(self.id)
        if not 0 <= self.id <= MAX_FEATURE_ID:
            raise ValueError(f"Feature id must fit in an unsigned 64-bit integer, got {self.id}")
        self.x = float(self.x)
        self.y = float(self.y)
        if self.patch is not None:
            self.patch = np.asarray(self.patch)
            if self.patch.size == 0:
                self.patch = None

    @property
    def has_patch(self) -> bool:
        """Return True if the feature carries an image patch."""
        return self.patch is not None and self.patch.size > 0

    @property
    def patch_size(self) -> int:
        """Return the side length of the patch, or 0 without a patch."""
        if not self.has_patch:
            return 0
        return int(self.patch.shape[0])

    @property
    def point(self) -> np.ndarray:
        """Return the (x, y) coordinates as a (2,) float64 array."""
        return np.array([self.x, self.y], dtype=np.float64)

    @property
    def is_point_feature(self) -> bool:
        """Return False only for features from blob detectors (SIFT, SURF)."""
        return self.feature_type.is_point_feature

    @classmethod
    def from_keypoint(
        cls,
        keypoint: cv2.KeyPoint,
        feature_id: int,
        feature_type: FeatureType = FeatureType.NOT_DEFINED,
        descriptor: np.ndarray | None = None,
        descriptor_kind: DescriptorKind = DescriptorKind.SIFT,
        source_image_id: int = 0,
    ) -> Feature:
        """Create a feature from an OpenCV keypoint.

        Args:
            keypoint: OpenCV KeyPoint produced by a detector
            feature_id: ID to assign to the new feature
            feature_type: Detector tag
            descriptor: Optional descriptor row for this keypoint
            descriptor_kind: Slot the descriptor is stored in (SIFT or SURF)
            source_image_id: Index of the source image

        Returns:
            New Feature with orientation taken from keypoint.angle and
            scale from keypoint.size
        """
        descriptors = Descriptors()
        if descriptor is not None:
            if descriptor_kind is DescriptorKind.SIFT:
                # OpenCV SIFT values are floats already bounded to [0, 255]
                descriptors.sift = np.clip(np.rint(descriptor), 0, 255).astype(np.uint8).flatten()
            elif descriptor_kind is DescriptorKind.SURF:
                descriptors.surf = np.asarray(descriptor, dtype=np.float32).flatten()
            else:
                raise ValueError(
                    f"Keypoint descriptors can only be stored as SIFT or SURF, got {descriptor_kind.name}"
                )

        x, y = keypoint.pt
        return cls(
            id=feature_id,
            x=x,
            y=y,
            feature_type=feature_type,
            response=float(keypoint.response),
            orientation=float(keypoint.angle),
            scale=float(keypoint.size),
            source_image_id=source_image_id,
            descriptors=descriptors,
        )
