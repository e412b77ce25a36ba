"""
Axis selector resolution for two-axis subsetting.

A selector picks positions along one axis (features or samples) and is always
reduced to an ordered integer array before any data is touched. Order is kept,
so the same machinery filters, reorders and repeats.

Accepted selector forms:
    - ALL (or None): every position, original order
    - int: a single position
    - sequence / ndarray of ints: positions in output order (may repeat)
    - sequence / ndarray / Series of bools: mask, length must equal the axis

Examples:
    >>> from exprset.core.selectors import ALL, resolve_selector
    >>> resolve_selector(ALL, 4, axis='samples')
    array([0, 1, 2, 3])
    >>> resolve_selector([2, 0], 4, axis='samples')
    array([2, 0])
    >>> resolve_selector([True, False, True, False], 4, axis='samples')
    array([0, 2])
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import pandas as pd

from exprset.core.errors import (
    DimensionMismatch,
    DuplicateIdentifier,
    IndexOutOfRange,
    UnknownIdentifier,
)

__all__ = ['ALL', 'resolve_selector', 'resolve_names', 'make_unique']


class _AllSelector:
    """Sentinel selecting a whole axis."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'ALL'

    def __reduce__(self):
        return (_AllSelector, ())


ALL = _AllSelector()


def _is_bool_dtype(values: np.ndarray) -> bool:
    return values.dtype == np.bool_


def resolve_selector(selector: Any, length: int, axis: str = 'axis') -> np.ndarray:
    """
    Reduce a selector to an ordered array of positions along an axis.

    Args:
        selector: ALL/None, int, integer sequence or boolean mask
        length: Size of the axis being selected from
        axis: Axis name used in error messages ('features' or 'samples')

    Returns:
        1D int64 array of positions in output order

    Raises:
        DimensionMismatch: Boolean mask length differs from the axis length
        IndexOutOfRange: Any position outside [0, length)
        TypeError: Selector is neither integer nor boolean
    """
    if selector is None or selector is ALL:
        return np.arange(length, dtype=np.int64)

    if isinstance(selector, (bool, np.bool_)):
        raise TypeError(
            f"{axis} selector must be an index sequence or mask, got a single bool"
        )

    if isinstance(selector, (int, np.integer)):
        selector = [int(selector)]

    # Series are positional here, their index is ignored
    if isinstance(selector, (pd.Series, pd.Index)):
        values = selector.to_numpy()
    else:
        values = np.asarray(selector)

    if values.ndim != 1:
        raise TypeError(f"{axis} selector must be one-dimensional, got shape {values.shape}")

    if values.size == 0:
        return np.array([], dtype=np.int64)

    if _is_bool_dtype(values):
        if len(values) != length:
            raise DimensionMismatch(
                f"{axis} mask length ({len(values)}) must match n_{axis} ({length})"
            )
        return np.flatnonzero(values).astype(np.int64)

    if values.dtype == object and all(isinstance(v, (bool, np.bool_)) for v in values):
        return resolve_selector(values.astype(bool), length, axis)

    if not np.issubdtype(values.dtype, np.integer):
        raise TypeError(
            f"{axis} selector must contain integer positions or booleans, "
            f"got dtype {values.dtype}"
        )

    positions = values.astype(np.int64)
    bad = positions[(positions < 0) | (positions >= length)]
    if bad.size:
        raise IndexOutOfRange(
            f"{axis} index {int(bad[0])} out of range [0, {length})"
            + (f" ({bad.size} invalid positions)" if bad.size > 1 else "")
        )
    return positions


def resolve_names(names: Sequence[Any], index: pd.Index, axis: str = 'axis') -> np.ndarray:
    """
    Translate identifiers to positions on an axis, keeping the given order.

    Raises:
        UnknownIdentifier: One or more names are not on the axis
    """
    if isinstance(names, str) or not isinstance(names, (Sequence, np.ndarray, pd.Index, pd.Series)):
        names = [names]
    positions = index.get_indexer(list(names))
    missing = [n for n, p in zip(names, positions) if p < 0]
    if missing:
        preview = ', '.join(repr(m) for m in missing[:5])
        raise UnknownIdentifier(
            f"{len(missing)} {axis} name(s) not found: {preview}"
            + (" ..." if len(missing) > 5 else "")
        )
    return positions.astype(np.int64)


def make_unique(names: pd.Index) -> pd.Index:
    """
    Suffix repeated names with '.1', '.2', ... so an axis stays unique.

    First occurrences keep their name. Returns the input unchanged when it
    is already unique.
    """
    if names.is_unique:
        return names

    taken = set(names)
    seen: dict[Any, int] = {}
    result = []
    for name in names:
        if name not in seen:
            seen[name] = 0
            result.append(name)
            continue
        count = seen[name]
        while True:
            count += 1
            candidate = f"{name}.{count}"
            if candidate not in taken:
                break
        seen[name] = count
        taken.add(candidate)
        result.append(candidate)

    unique = pd.Index(result, name=names.name)
    if not unique.is_unique:
        raise DuplicateIdentifier(f"Could not disambiguate repeated names: {list(names)}")
    return unique
