"""
Fill feature annotation from an external lookup.

Platform annotation lives outside the measurement matrix: a probe set id maps
to a gene symbol, a chromosome, an Entrez id. annotate_features() asks a
FeatureLookup about every feature and returns a new container whose row
annotation carries the requested fields, aligned to feature_names.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from exprset.annotation.lookup import FeatureLookup
from exprset.core.annotated_matrix import AnnotatedMatrix

logger = logging.getLogger(__name__)

__all__ = ['annotate_features']


def annotate_features(
    matrix: AnnotatedMatrix,
    lookup: FeatureLookup,
    fields: Optional[Sequence[str]] = None,
    key_field: Optional[str] = None,
    overwrite: bool = False,
) -> AnnotatedMatrix:
    """
    Add lookup fields as feature-annotation columns.

    Args:
        matrix: Container to annotate (unchanged)
        lookup: Annotation source
        fields: Fields to copy (default: every field returned for any feature,
            in first-seen order)
        key_field: Feature-annotation column holding the lookup keys;
            default uses feature_names
        overwrite: Replace existing annotation columns with the same name;
            if False those fields are skipped

    Returns:
        New AnnotatedMatrix; features without a record get NaN

    Raises:
        UnknownField: key_field is not a feature-annotation column

    Examples:
        >>> lookup = MappingLookup({'1007_s_at': {'symbol': 'DDR1', 'chromosome': '6'}})
        >>> annotated = annotate_features(m, lookup, fields=['symbol'])
        >>> annotated.row_field('symbol')
    """
    if key_field is None:
        keys = list(matrix.feature_names)
    else:
        keys = list(matrix.row_field(key_field))

    valid_keys = [k for k in keys if not _is_missing_key(k)]
    records = lookup.lookup_many(dict.fromkeys(valid_keys))

    if fields is None:
        fields = _discover_fields(records.values())
    fields = list(fields)

    existing = set(matrix.row_annotation.columns)
    skipped = [f for f in fields if f in existing and not overwrite]
    if skipped:
        logger.warning(f"Keeping existing feature fields (overwrite=False): {skipped}")

    result = matrix
    for field_name in fields:
        if field_name in skipped:
            continue
        values = [
            records.get(k, {}).get(field_name, np.nan) if not _is_missing_key(k) else np.nan
            for k in keys
        ]
        result = result.with_row_field(field_name, pd.Series(values, dtype=object).to_numpy())

    n_hit = sum(1 for k in keys if not _is_missing_key(k) and records.get(k))
    logger.info(
        f"Annotated {n_hit}/{len(keys)} features with fields "
        f"{[f for f in fields if f not in skipped]}"
    )
    return result


def _is_missing_key(key) -> bool:
    return key is None or (isinstance(key, float) and np.isnan(key))


def _discover_fields(records) -> List[str]:
    seen = {}
    for record in records:
        for name in record:
            seen.setdefault(name, None)
    return list(seen)
