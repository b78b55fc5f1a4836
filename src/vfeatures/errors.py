"""Exceptions raised by feature comparison and collection queries.

All errors are raised at the call that detects the violated precondition
and are never retried internally. Lookups that can legitimately find
nothing (``FeatureList.get_by_id``, ``FeatureList.nearest``) return None
instead of raising.
"""


class FeatureError(Exception):
    """Base class for all vfeatures errors."""


class MissingDescriptor(FeatureError, LookupError):
    """A requested (or implied) descriptor is absent on one or both features."""


class NoDescriptorAvailable(MissingDescriptor):
    """A feature carries no descriptor at all."""


class DimensionMismatch(FeatureError, ValueError):
    """Descriptor lengths, matrix shapes or patch sizes differ."""


class MissingPatch(FeatureError, LookupError):
    """A patch was required for correlation but is absent."""


class EmptyCollection(FeatureError, ValueError):
    """An aggregate query was made on an empty collection."""
