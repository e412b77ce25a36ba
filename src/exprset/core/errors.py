"""
Exception hierarchy for annotated expression containers.

Every error derives from ExprSetError so callers can catch the whole family,
and also from the builtin it specializes (ValueError, KeyError, IndexError)
so code written against plain Python exceptions keeps working.

Examples:
    >>> from exprset.core.errors import DimensionMismatch, ExprSetError
    >>> try:
    ...     AnnotatedMatrix({"exprs": np.zeros((3, 4))}, sample_names=["a", "b"])
    ... except DimensionMismatch as e:
    ...     print(e)
    sample_names length (2) must match matrix columns (4)
"""

from __future__ import annotations

__all__ = [
    'ExprSetError',
    'DimensionMismatch',
    'DuplicateIdentifier',
    'AlignmentError',
    'UnknownChannel',
    'UnknownField',
    'UnknownIdentifier',
    'IndexOutOfRange',
]


class ExprSetError(Exception):
    """Base class for all container errors."""


class DimensionMismatch(ExprSetError, ValueError):
    """A matrix, annotation table, name list or mask disagrees with F/S."""


class DuplicateIdentifier(ExprSetError, ValueError):
    """Feature or sample identifiers are not unique."""


class AlignmentError(ExprSetError, ValueError):
    """Labelled inputs (DataFrames, annotation files) name different ids."""


class UnknownChannel(ExprSetError, KeyError):
    """Requested matrix channel does not exist."""

    def __str__(self) -> str:
        # KeyError.__str__ reprs the message; keep it readable
        return str(self.args[0]) if self.args else ''


class UnknownField(ExprSetError, KeyError):
    """Requested annotation column does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


class UnknownIdentifier(ExprSetError, KeyError):
    """Requested feature or sample name is not on the axis."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


class IndexOutOfRange(ExprSetError, IndexError):
    """A selector references a position outside [0, n)."""
