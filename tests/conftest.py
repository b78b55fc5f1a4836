"""Shared fixtures for vfeatures tests."""

import numpy as np
import pytest

from vfeatures import Descriptors, Feature, FeatureList, FeatureType


@pytest.fixture
def rng() -> np.random.Generator:
    """Deterministic random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def full_feature(rng: np.random.Generator) -> Feature:
    """Feature carrying a patch and every descriptor kind."""
    return Feature(
        id=42,
        x=12.5,
        y=7.25,
        patch=rng.integers(0, 256, size=(7, 7)).astype(np.uint8),
        feature_type=FeatureType.HARRIS,
        response=0.75,
        orientation=30.0,
        scale=2.0,
        source_image_id=3,
        descriptors=Descriptors(
            sift=rng.integers(0, 256, size=128),
            surf=rng.random(64),
            spin_image=rng.random(20),
            spin_image_range_rows=4,
            polar_image=rng.random((12, 5)),
            log_polar_image=rng.random((16, 6)),
        ),
    )


@pytest.fixture
def grid_features() -> FeatureList:
    """Four features at the corners of a 10x10 square."""
    coords = [(0.0, 0.0), (10.0, 0.0), (0.0, 10.0), (10.0, 10.0)]
    return FeatureList(
        Feature(id=i + 1, x=x, y=y, feature_type=FeatureType.FAST)
        for i, (x, y) in enumerate(coords)
    )
