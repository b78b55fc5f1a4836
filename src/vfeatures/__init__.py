"""Python VFeatures - image interest points, descriptor distances and spatial lookup."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .errors import (
    DimensionMismatch,
    EmptyCollection,
    FeatureError,
    MissingDescriptor,
    MissingPatch,
    NoDescriptorAvailable,
)
from .feature import Descriptors, DescriptorKind, Feature, FeatureType, TrackStatus
from .distance import (
    RotationSearchResult,
    descriptor_distance,
    log_polar_image_distance,
    patch_correlation,
    polar_image_distance,
    rotation_search_distance,
    sift_distance,
    spin_image_distance,
    surf_distance,
)
from .spatial_index import KDTreeIndex, SpatialIndex
from .feature_list import FeatureList
from .matched_list import MatchedFeatureList
from .matcher import FeatureMatcher, match_features
from .config import IndexConfig, MatcherConfig, VFeaturesConfig, load_config

__all__ = [
    "__version__",
    # Errors
    "FeatureError",
    "MissingDescriptor",
    "NoDescriptorAvailable",
    "DimensionMismatch",
    "MissingPatch",
    "EmptyCollection",
    # Features
    "Feature",
    "Descriptors",
    "DescriptorKind",
    "FeatureType",
    "TrackStatus",
    # Distances
    "descriptor_distance",
    "sift_distance",
    "surf_distance",
    "spin_image_distance",
    "polar_image_distance",
    "log_polar_image_distance",
    "rotation_search_distance",
    "RotationSearchResult",
    "patch_correlation",
    # Collections
    "FeatureList",
    "MatchedFeatureList",
    "SpatialIndex",
    "KDTreeIndex",
    # Matching
    "FeatureMatcher",
    "match_features",
    # Configuration
    "VFeaturesConfig",
    "MatcherConfig",
    "IndexConfig",
    "load_config",
]
