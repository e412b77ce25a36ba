"""
Feature annotation sources and helpers.

Annotation databases are treated as opaque lookups (feature id -> record).
"""

from exprset.annotation.annotate import annotate_features
from exprset.annotation.lookup import CachedLookup, FeatureLookup, MappingLookup, MyGeneLookup

__all__ = [
    'annotate_features',
    'FeatureLookup',
    'MappingLookup',
    'CachedLookup',
    'MyGeneLookup',
]
