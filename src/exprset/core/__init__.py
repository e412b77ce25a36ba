"""
Core data structures for annotated expression data.

1. AnnotatedMatrix: Channels of F x S matrices with feature/sample annotation
2. ExperimentMetadata: MIAME-style description of the experiment
3. ALL: Selector sentinel keeping a whole axis in AnnotatedMatrix.subset
4. Error types raised when an alignment invariant would break

Examples:
    >>> from exprset.core import ALL, AnnotatedMatrix
    >>>
    >>> m = AnnotatedMatrix({'exprs': data}, col_annotation=pheno, sample_names=ids)
    >>> by_sex = m.subset(ALL, np.argsort(m.column_field('sex').to_numpy()))
"""

from exprset.core.annotated_matrix import AnnotatedMatrix, DEFAULT_CHANNEL
from exprset.core.errors import (
    AlignmentError,
    DimensionMismatch,
    DuplicateIdentifier,
    ExprSetError,
    IndexOutOfRange,
    UnknownChannel,
    UnknownField,
    UnknownIdentifier,
)
from exprset.core.metadata import ExperimentMetadata
from exprset.core.selectors import ALL

__all__ = [
    'ALL',
    'AnnotatedMatrix',
    'DEFAULT_CHANNEL',
    'ExperimentMetadata',
    'ExprSetError',
    'AlignmentError',
    'DimensionMismatch',
    'DuplicateIdentifier',
    'IndexOutOfRange',
    'UnknownChannel',
    'UnknownField',
    'UnknownIdentifier',
]
