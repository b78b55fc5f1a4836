"""Text and binary persistence for feature lists."""

from .archive import load_feature_archive, save_feature_archive
from .text_format import (
    format_feature,
    load_feature_list,
    parse_feature,
    save_feature_list,
    save_matched_list,
)

__all__ = [
    "save_feature_archive",
    "load_feature_archive",
    "save_feature_list",
    "load_feature_list",
    "save_matched_list",
    "format_feature",
    "parse_feature",
]
