"""Tests for descriptor distances and patch correlation."""

import numpy as np
import pytest

from vfeatures import (
    Descriptors,
    DescriptorKind,
    DimensionMismatch,
    Feature,
    MissingDescriptor,
    MissingPatch,
    descriptor_distance,
    log_polar_image_distance,
    patch_correlation,
    polar_image_distance,
    rotation_search_distance,
)

VECTOR_KINDS = [DescriptorKind.SIFT, DescriptorKind.SURF, DescriptorKind.SPIN_IMAGE]
ALL_KINDS = VECTOR_KINDS + [DescriptorKind.POLAR_IMAGE, DescriptorKind.LOG_POLAR_IMAGE]


def make_feature(rng: np.random.Generator, feature_id: int = 0) -> Feature:
    """Create a feature with random descriptors of every kind."""
    return Feature(
        id=feature_id,
        descriptors=Descriptors(
            sift=rng.integers(0, 256, size=128),
            surf=rng.normal(size=64),
            spin_image=rng.random(30),
            spin_image_range_rows=5,
            polar_image=rng.random((12, 4)),
            log_polar_image=rng.random((8, 6)),
        ),
    )


def polar_feature(matrix: np.ndarray, no_rotation_search: bool = False) -> Feature:
    """Create a feature carrying only a polar image."""
    return Feature(
        descriptors=Descriptors(polar_image=matrix, no_rotation_search=no_rotation_search)
    )


class TestDescriptorDistance:
    """Test suite for descriptor_distance."""

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_symmetry(self, rng: np.random.Generator, kind: DescriptorKind):
        """Test that distances do not depend on argument order."""
        a, b = make_feature(rng, 1), make_feature(rng, 2)
        assert descriptor_distance(a, b, kind) == pytest.approx(descriptor_distance(b, a, kind))

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_identity(self, rng: np.random.Generator, kind: DescriptorKind):
        """Test that a feature is at distance zero from itself."""
        a = make_feature(rng)
        assert descriptor_distance(a, a, kind) == 0.0

    def test_euclidean_surf(self):
        """Test the raw and normalized Euclidean distance."""
        a = Feature(descriptors=Descriptors(surf=[0.0, 0.0, 0.0, 0.0]))
        b = Feature(descriptors=Descriptors(surf=[3.0, 4.0, 0.0, 0.0]))
        assert descriptor_distance(a, b, DescriptorKind.SURF, normalize=False) == pytest.approx(5.0)
        assert descriptor_distance(a, b, DescriptorKind.SURF) == pytest.approx(5.0 / 4)

    def test_sift_does_not_wrap_around(self):
        """Test that unsigned SIFT values are subtracted without overflow."""
        a = Feature(descriptors=Descriptors(sift=[0, 10]))
        b = Feature(descriptors=Descriptors(sift=[255, 10]))
        assert descriptor_distance(a, b, DescriptorKind.SIFT, normalize=False) == pytest.approx(255.0)

    def test_normalization_scale_invariance(self):
        """Test that normalized distances are comparable across lengths."""
        a = np.array([1.0, 2.0, 3.0])
        b = np.array([2.0, 0.0, 5.0])
        # Twice the dimensions with magnitudes scaled by sqrt(2)
        a2 = np.sqrt(2.0) * np.concatenate([a, a])
        b2 = np.sqrt(2.0) * np.concatenate([b, b])

        short = (Feature(descriptors=Descriptors(surf=a)), Feature(descriptors=Descriptors(surf=b)))
        long = (Feature(descriptors=Descriptors(surf=a2)), Feature(descriptors=Descriptors(surf=b2)))

        assert descriptor_distance(*short, DescriptorKind.SURF) == pytest.approx(
            descriptor_distance(*long, DescriptorKind.SURF), rel=1e-5
        )
        assert descriptor_distance(*short, DescriptorKind.SURF, normalize=False) != pytest.approx(
            descriptor_distance(*long, DescriptorKind.SURF, normalize=False)
        )

    def test_any_uses_first_descriptor_of_first_feature(self):
        """Test that ANY follows the priority order on the first feature."""
        a = Feature(descriptors=Descriptors(surf=[0.0, 0.0], spin_image=[0.0, 0.0]))
        b = Feature(descriptors=Descriptors(surf=[1.0, 0.0], spin_image=[3.0, 4.0]))
        assert descriptor_distance(a, b, normalize=False) == pytest.approx(1.0)

    def test_any_without_descriptors(self):
        """Test that ANY fails on a feature with no descriptor."""
        a = Feature()
        b = Feature(descriptors=Descriptors(surf=[1.0]))
        with pytest.raises(MissingDescriptor):
            descriptor_distance(a, b)

    def test_any_missing_on_second_feature(self):
        """Test that ANY fails if the second feature lacks the chosen kind."""
        a = Feature(descriptors=Descriptors(sift=[1, 2]))
        b = Feature(descriptors=Descriptors(surf=[1.0, 2.0]))
        with pytest.raises(MissingDescriptor):
            descriptor_distance(a, b)

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_explicit_kind_missing(self, rng: np.random.Generator, kind: DescriptorKind):
        """Test that an explicit kind must be present on both sides."""
        a = make_feature(rng)
        with pytest.raises(MissingDescriptor):
            descriptor_distance(a, Feature(), kind)
        with pytest.raises(MissingDescriptor):
            descriptor_distance(Feature(), a, kind)

    @pytest.mark.parametrize("slot", ["sift", "surf", "spin_image"])
    def test_vector_length_mismatch(self, slot: str):
        """Test that vectors of different lengths are rejected."""
        a = Feature(descriptors=Descriptors(**{slot: np.ones(4)}))
        b = Feature(descriptors=Descriptors(**{slot: np.ones(5)}))
        with pytest.raises(DimensionMismatch):
            descriptor_distance(a, b)

    def test_polar_shape_mismatch(self):
        """Test that polar matrices of different shapes are rejected."""
        a = polar_feature(np.ones((8, 4)))
        b = polar_feature(np.ones((8, 5)))
        with pytest.raises(DimensionMismatch):
            descriptor_distance(a, b, DescriptorKind.POLAR_IMAGE)

    def test_polar_uses_rotation_search(self, rng: np.random.Generator):
        """Test that descriptor_distance finds rotated polar descriptors."""
        matrix = rng.random((10, 3))
        a = polar_feature(matrix)
        b = polar_feature(np.roll(matrix, 4, axis=0))
        assert descriptor_distance(a, b) == pytest.approx(0.0)


class TestRotationSearch:
    """Test suite for the rotation-invariant polar distance."""

    @pytest.mark.parametrize("k", [0, 1, 5, 11])
    def test_recovers_rotation(self, rng: np.random.Generator, k: int):
        """Test that a rotated copy matches at distance 0 and angle k*360/rows."""
        matrix = rng.random((12, 4))
        result = polar_image_distance(polar_feature(matrix), polar_feature(np.roll(matrix, k, axis=0)))

        assert result.distance == pytest.approx(0.0)
        assert result.shift == k
        assert result.angle == pytest.approx(k * 360.0 / 12)

    def test_no_rotation_search_on_either_side(self, rng: np.random.Generator):
        """Test that the search is skipped if either feature disables it."""
        matrix = rng.random((12, 4))
        rotated = np.roll(matrix, 3, axis=0)
        zero_shift = np.sqrt(np.sum((matrix - rotated) ** 2)) / matrix.size

        for flags in [(True, False), (False, True), (True, True)]:
            a = polar_feature(matrix, no_rotation_search=flags[0])
            b = polar_feature(rotated, no_rotation_search=flags[1])
            result = polar_image_distance(a, b)
            assert result.shift == 0
            assert result.angle == 0.0
            assert result.distance == pytest.approx(zero_shift, rel=1e-5)
            assert result.distance > 0.0

    def test_normalize_by_element_count(self, rng: np.random.Generator):
        """Test that normalization divides by rows * columns."""
        m1, m2 = rng.random((6, 5)), rng.random((6, 5))
        raw = rotation_search_distance(m1, m2, normalize=False)
        normalized = rotation_search_distance(m1, m2, normalize=True)
        assert normalized.distance == pytest.approx(raw.distance / 30)
        assert normalized.shift == raw.shift

    def test_minimum_over_shifts(self, rng: np.random.Generator):
        """Test the result against an explicit loop over every shift."""
        m1, m2 = rng.random((9, 4)), rng.random((9, 4))
        expected = [np.linalg.norm(m1 - np.roll(m2, -s, axis=0)) for s in range(9)]

        result = rotation_search_distance(m1, m2, normalize=False)

        assert result.distance == pytest.approx(min(expected))
        assert result.shift == int(np.argmin(expected))

    def test_ties_resolve_to_smallest_shift(self):
        """Test that a rotation-symmetric descriptor reports shift 0."""
        matrix = np.ones((8, 3))
        assert rotation_search_distance(matrix, matrix).shift == 0

    def test_log_polar(self, rng: np.random.Generator):
        """Test the log-polar variant."""
        matrix = rng.random((16, 6))
        a = Feature(descriptors=Descriptors(log_polar_image=matrix))
        b = Feature(descriptors=Descriptors(log_polar_image=np.roll(matrix, 2, axis=0)))

        result = log_polar_image_distance(a, b)

        assert result.distance == pytest.approx(0.0)
        assert result.angle == pytest.approx(45.0)

    def test_shape_mismatch(self):
        """Test that shapes must agree."""
        with pytest.raises(DimensionMismatch):
            rotation_search_distance(np.ones((4, 2)), np.ones((5, 2)))


class TestPatchCorrelation:
    """Test suite for patch_correlation."""

    def test_identical_patches(self, full_feature: Feature):
        """Test that identical patches give 0."""
        other = Feature(patch=full_feature.patch.copy())
        assert patch_correlation(full_feature, other) == 0.0

    def test_brightness_offset(self, rng: np.random.Generator):
        """Test that correlation ignores a constant brightness offset."""
        patch = rng.integers(0, 200, size=(9, 9)).astype(np.uint8)
        a = Feature(patch=patch)
        b = Feature(patch=patch + 20)
        assert patch_correlation(a, b) == pytest.approx(0.0, abs=1e-5)

    def test_inverted_patch(self, rng: np.random.Generator):
        """Test that an inverted patch is maximally dissimilar."""
        patch = rng.integers(0, 256, size=(9, 9)).astype(np.float32)
        a = Feature(patch=patch)
        b = Feature(patch=255.0 - patch)
        assert patch_correlation(a, b) == pytest.approx(1.0, abs=1e-5)

    def test_range(self, rng: np.random.Generator):
        """Test that unrelated patches give a value in [0, 1]."""
        a = Feature(patch=rng.integers(0, 256, size=(11, 11)).astype(np.uint8))
        b = Feature(patch=rng.integers(0, 256, size=(11, 11)).astype(np.uint8))
        value = patch_correlation(a, b)
        assert 0.0 <= value <= 1.0

    def test_symmetry(self, rng: np.random.Generator):
        """Test that correlation does not depend on argument order."""
        a = Feature(patch=rng.random((7, 7)))
        b = Feature(patch=rng.random((7, 7)))
        assert patch_correlation(a, b) == pytest.approx(patch_correlation(b, a), abs=1e-5)

    def test_missing_patch(self, full_feature: Feature):
        """Test that both features need a patch."""
        with pytest.raises(MissingPatch):
            patch_correlation(full_feature, Feature())
        with pytest.raises(MissingPatch):
            patch_correlation(Feature(), full_feature)

    def test_size_mismatch(self, rng: np.random.Generator):
        """Test that patches must have the same size."""
        a = Feature(patch=rng.random((5, 5)))
        b = Feature(patch=rng.random((7, 7)))
        with pytest.raises(DimensionMismatch):
            patch_correlation(a, b)
