"""
exprset - Annotated expression-matrix containers

Keeps measurement matrices, feature annotation, sample annotation and
experiment metadata aligned through construction, subsetting and I/O.
"""

__version__ = "0.1.0"

from exprset.core.annotated_matrix import AnnotatedMatrix
from exprset.core.metadata import ExperimentMetadata
from exprset.core.selectors import ALL
from exprset.core.errors import (
    ExprSetError,
    DimensionMismatch,
    DuplicateIdentifier,
    AlignmentError,
    UnknownChannel,
    UnknownField,
    UnknownIdentifier,
    IndexOutOfRange,
)

__all__ = [
    "ALL",
    "AnnotatedMatrix",
    "ExperimentMetadata",
    "ExprSetError",
    "DimensionMismatch",
    "DuplicateIdentifier",
    "AlignmentError",
    "UnknownChannel",
    "UnknownField",
    "UnknownIdentifier",
    "IndexOutOfRange",
]
