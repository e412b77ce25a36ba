"""
Core data structure for annotated expression matrices.

AnnotatedMatrix unifies one or more same-shaped measurement matrices
(expression estimates, standard errors, detection calls, per-channel
intensities) with feature annotations, sample annotations and a description
of the experiment.

Biological Context:
    Microarray and sequencing studies produce matrices where:
    - Rows = features (probe sets, genes, transcripts)
    - Columns = samples (patients, cell lines, time points)
    - Values = measurements (log intensities, counts, p-values)

    Downstream code constantly subsets and reorders those matrices ("only the
    female samples", "sorted by age", "the 50 most variable genes"). Doing so
    on a bare array while holding the phenotype table separately is how
    samples end up paired with the wrong phenotype. The container makes the
    matrix columns and the phenotype rows move together.

Engineering Design:
    - Channels: a mapping name -> matrix, all F x S
    - Immutable: stored arrays are private read-only copies; operations
      return new instances
    - Positional alignment: row i of every matrix, the row annotation and
      feature_names describe the same feature (same for columns/samples)
    - Validated: the constructor checks every shape and name invariant

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from exprset import ALL, AnnotatedMatrix
    >>>
    >>> expr = np.array([[1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12]])
    >>> pheno = pd.DataFrame({'sex': ['F', 'M', 'F', 'M']})
    >>> m = AnnotatedMatrix(
    ...     {'exprs': expr},
    ...     col_annotation=pheno,
    ...     sample_names=['s1', 's2', 's3', 's4'],
    ... )
    >>> sub = m.subset(ALL, [2, 0])
    >>> sub.matrix('exprs')
    array([[ 3,  1],
           [ 7,  5],
           [11,  9]])
    >>> list(sub.sample_names)
    ['s3', 's1']
    >>> list(sub.column_field('sex'))
    ['F', 'F']
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from exprset.core.errors import (
    AlignmentError,
    DimensionMismatch,
    DuplicateIdentifier,
    UnknownChannel,
    UnknownField,
)
from exprset.core.metadata import ExperimentMetadata
from exprset.core.selectors import ALL, make_unique, resolve_names, resolve_selector

logger = logging.getLogger(__name__)

__all__ = ['AnnotatedMatrix', 'DEFAULT_CHANNEL']

DEFAULT_CHANNEL = 'exprs'

ArrayLike = Union[np.ndarray, pd.DataFrame, Sequence[Sequence[float]]]


def _check_unique(names: pd.Index, axis: str) -> None:
    if not names.is_unique:
        dupes = names[names.duplicated()].unique()
        preview = ', '.join(repr(d) for d in list(dupes)[:5])
        raise DuplicateIdentifier(
            f"{axis} names must be unique; {len(dupes)} repeated: {preview}"
            + (" ..." if len(dupes) > 5 else "")
        )


def _is_positional(index: pd.Index, length: int) -> bool:
    return isinstance(index, pd.RangeIndex) and index.equals(pd.RangeIndex(length))


def _is_reordering(index: pd.Index, names: pd.Index) -> bool:
    """True if index holds exactly the names, but in another order."""
    if len(index) != len(names) or index.equals(names) or _is_positional(index, len(names)):
        return False
    return index.is_unique and set(index) == set(names)


def _align_annotation(table: Optional[pd.DataFrame], names: pd.Index, axis: str) -> pd.DataFrame:
    """Validate an annotation table against an axis and relabel it by name."""
    if table is None:
        return pd.DataFrame(index=names.copy())
    if not isinstance(table, pd.DataFrame):
        raise TypeError(f"{axis} annotation must be pd.DataFrame, got {type(table)}")
    if len(table) != len(names):
        raise DimensionMismatch(
            f"{axis} annotation rows ({len(table)}) must match n_{axis} ({len(names)})"
        )
    _check_unique(pd.Index(table.columns), f"{axis} annotation column")

    index = table.index
    if _is_reordering(index, names):
        raise AlignmentError(
            f"{axis} annotation index lists the {axis} names in a different order; "
            f"reorder the table (e.g. table.loc[names]) before constructing"
        )
    if not index.equals(names) and not _is_positional(index, len(names)):
        logger.warning(
            f"{axis} annotation index does not match {axis} names; "
            f"relabelling {len(names)} rows by position"
        )

    aligned = table.copy()
    aligned.index = names.copy()
    return aligned


def _align_values(values: Any, names: pd.Index, axis: str, field: str) -> np.ndarray:
    """Validate a single annotation column against an axis."""
    if isinstance(values, pd.Series):
        if _is_reordering(values.index, names):
            raise AlignmentError(
                f"values for field '{field}' are indexed by {axis} names in a different "
                f"order; reindex them first"
            )
        if (len(values) == len(names) and not values.index.equals(names)
                and not _is_positional(values.index, len(names))):
            logger.warning(
                f"values for field '{field}' are indexed by labels that are not the {axis} "
                f"names; relabelling {len(values)} values by position"
            )
        values = values.to_numpy()
    else:
        values = np.asarray(values)
    if values.ndim != 1 or len(values) != len(names):
        raise DimensionMismatch(
            f"field '{field}' needs {len(names)} values (one per {axis[:-1]}), "
            f"got shape {values.shape}"
        )
    return values


class AnnotatedMatrix:
    """
    Immutable container for expression matrices + feature/sample annotations.

    Attributes:
        channel_names: Names of the stored matrices, in insertion order
        feature_names: Row identifiers (probe sets, gene ids)
        sample_names: Column identifiers (sample/patient ids)
        row_annotation: Per-feature annotation table (F rows)
        col_annotation: Per-sample annotation table (S rows)
        experiment: Experiment description (ExperimentMetadata)
        platform: Name of the array platform / annotation package

    Shape Invariants:
        - every matrix has shape (len(feature_names), len(sample_names))
        - feature_names and sample_names are unique
        - row_annotation.index equals feature_names
        - col_annotation.index equals sample_names
    """

    def __init__(
        self,
        matrices: Union[Mapping[str, ArrayLike], np.ndarray, pd.DataFrame],
        row_annotation: Optional[pd.DataFrame] = None,
        col_annotation: Optional[pd.DataFrame] = None,
        feature_names: Optional[Sequence[Any]] = None,
        sample_names: Optional[Sequence[Any]] = None,
        experiment: Optional[Union[ExperimentMetadata, Dict[str, Any]]] = None,
        platform: Optional[str] = None,
    ):
        """
        Initialize AnnotatedMatrix with validation.

        Args:
            matrices: Mapping channel name -> 2D numeric array or DataFrame.
                A bare array/DataFrame is stored as channel 'exprs'.
            row_annotation: Per-feature table with F rows (default: no columns)
            col_annotation: Per-sample table with S rows (default: no columns)
            feature_names: F unique ids (default: DataFrame labels or 0..F-1)
            sample_names: S unique ids (default: DataFrame labels or 0..S-1)
            experiment: ExperimentMetadata or a dict accepted by
                ExperimentMetadata.from_dict
            platform: Array platform / annotation package name

        Raises:
            DimensionMismatch: Shapes, annotation rows or name lengths disagree
            DuplicateIdentifier: Feature or sample names repeat
            AlignmentError: DataFrame labels disagree with names or each other
            TypeError: Non-numeric matrix, non-string channel name, etc.
            ValueError: No channels given
        """
        if isinstance(matrices, (np.ndarray, pd.DataFrame)):
            matrices = {DEFAULT_CHANNEL: matrices}
        if not isinstance(matrices, Mapping):
            raise TypeError(f"matrices must be a mapping of channel -> array, got {type(matrices)}")
        if len(matrices) == 0:
            raise ValueError("At least one matrix channel is required")

        arrays: Dict[str, np.ndarray] = {}
        row_labels: Optional[pd.Index] = None
        col_labels: Optional[pd.Index] = None
        label_source: Optional[str] = None

        for channel, values in matrices.items():
            if not isinstance(channel, str):
                raise TypeError(f"channel names must be str, got {type(channel)}")

            if isinstance(values, pd.DataFrame):
                if row_labels is None:
                    row_labels, col_labels, label_source = values.index, values.columns, channel
                elif not (values.index.equals(row_labels) and values.columns.equals(col_labels)):
                    raise AlignmentError(
                        f"channel '{channel}' labels differ from channel '{label_source}'"
                    )
                array = values.to_numpy()
            else:
                array = np.asarray(values)

            if array.ndim != 2:
                raise DimensionMismatch(f"channel '{channel}' must be 2D, got shape {array.shape}")
            if not np.issubdtype(array.dtype, np.number):
                raise TypeError(f"channel '{channel}' must be numeric, got dtype {array.dtype}")

            if arrays:
                first, first_array = next(iter(arrays.items()))
                if array.shape != first_array.shape:
                    raise DimensionMismatch(
                        f"channel '{channel}' shape {array.shape} must match "
                        f"channel '{first}' shape {first_array.shape}"
                    )

            stored = np.array(array, copy=True)
            stored.flags.writeable = False
            arrays[channel] = stored

        n_features, n_samples = next(iter(arrays.values())).shape

        self._feature_names = self._resolve_axis_names(
            feature_names, row_labels, n_features, 'feature', 'rows'
        )
        self._sample_names = self._resolve_axis_names(
            sample_names, col_labels, n_samples, 'sample', 'columns'
        )

        self._matrices = arrays
        self._row_annotation = _align_annotation(row_annotation, self._feature_names, 'features')
        self._col_annotation = _align_annotation(col_annotation, self._sample_names, 'samples')

        if experiment is None:
            experiment = ExperimentMetadata()
        elif isinstance(experiment, dict):
            experiment = ExperimentMetadata.from_dict(experiment)
        elif isinstance(experiment, ExperimentMetadata):
            experiment = experiment.copy()
        else:
            raise TypeError(f"experiment must be ExperimentMetadata or dict, got {type(experiment)}")
        self._experiment = experiment

        if platform is not None and not isinstance(platform, str):
            raise TypeError(f"platform must be str, got {type(platform)}")
        self._platform = platform

    @staticmethod
    def _resolve_axis_names(
        names: Optional[Sequence[Any]],
        labels: Optional[pd.Index],
        expected: int,
        axis: str,
        dim: str,
    ) -> pd.Index:
        if names is None:
            index = labels.copy() if labels is not None else pd.RangeIndex(expected)
        else:
            if isinstance(names, str):
                raise TypeError(f"{axis}_names must be a sequence of ids, not a string")
            index = pd.Index(list(names))
            if labels is not None and not index.equals(labels):
                raise AlignmentError(
                    f"{axis}_names disagree with the DataFrame {dim} labels of the matrices"
                )
        if len(index) != expected:
            raise DimensionMismatch(
                f"{axis}_names length ({len(index)}) must match matrix {dim} ({expected})"
            )
        _check_unique(index, axis)
        return index

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, channel: str = DEFAULT_CHANNEL, **kwargs) -> AnnotatedMatrix:
        """
        Build a single-channel container from a labelled DataFrame.

        The frame's index and columns become feature and sample names.

        Examples:
            >>> df = pd.DataFrame([[1.0, 2.0]], index=['g1'], columns=['a', 'b'])
            >>> AnnotatedMatrix.from_frame(df).shape
            (1, 2)
        """
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"frame must be pd.DataFrame, got {type(frame)}")
        return cls({channel: frame}, **kwargs)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def matrix(self, channel: str = DEFAULT_CHANNEL) -> np.ndarray:
        """
        Matrix for one channel (features x samples), as a read-only view.

        Raises:
            UnknownChannel: If the channel does not exist
        """
        try:
            stored = self._matrices[channel]
        except KeyError:
            raise UnknownChannel(
                f"Unknown channel '{channel}'. Available: {self.channel_names}"
            ) from None
        view = stored.view()
        view.flags.writeable = False
        return view

    def frame(self, channel: str = DEFAULT_CHANNEL) -> pd.DataFrame:
        """Labelled, writable copy of one channel."""
        return pd.DataFrame(
            self.matrix(channel).copy(),
            index=self._feature_names.copy(),
            columns=self._sample_names.copy(),
        )

    @property
    def matrices(self) -> Dict[str, np.ndarray]:
        """All channels as read-only views, in insertion order."""
        return {name: self.matrix(name) for name in self._matrices}

    @property
    def channel_names(self) -> List[str]:
        return list(self._matrices)

    @property
    def feature_names(self) -> pd.Index:
        """Row identifiers (probe sets, genes, ...)."""
        return self._feature_names

    @property
    def sample_names(self) -> pd.Index:
        """Column identifiers (samples, patients, ...)."""
        return self._sample_names

    @property
    def row_annotation(self) -> pd.DataFrame:
        """Per-feature annotation table (copy)."""
        return self._row_annotation.copy()

    @property
    def col_annotation(self) -> pd.DataFrame:
        """Per-sample annotation table (copy)."""
        return self._col_annotation.copy()

    @property
    def experiment(self) -> ExperimentMetadata:
        return self._experiment.copy()

    @property
    def platform(self) -> Optional[str]:
        return self._platform

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return (len(self._feature_names), len(self._sample_names))

    @property
    def n_features(self) -> int:
        return len(self._feature_names)

    @property
    def n_samples(self) -> int:
        return len(self._sample_names)

    def column_field(self, name: str) -> pd.Series:
        """
        One sample-annotation column, aligned to sample_names.

        Raises:
            UnknownField: If the column does not exist

        Examples:
            >>> m.column_field('sex')
            s1    F
            s2    M
            s3    F
            s4    M
            Name: sex, dtype: object
        """
        if name not in self._col_annotation.columns:
            raise UnknownField(
                f"Unknown sample field '{name}'. Available: {list(self._col_annotation.columns)}"
            )
        return self._col_annotation[name].copy()

    def row_field(self, name: str) -> pd.Series:
        """One feature-annotation column, aligned to feature_names."""
        if name not in self._row_annotation.columns:
            raise UnknownField(
                f"Unknown feature field '{name}'. Available: {list(self._row_annotation.columns)}"
            )
        return self._row_annotation[name].copy()

    # ------------------------------------------------------------------
    # Subsetting
    # ------------------------------------------------------------------

    def subset(self, rows: Any = ALL, cols: Any = ALL, *, drop: bool = False):
        """
        Select and reorder features and samples together.

        Every matrix, the names and the annotation rows follow the selectors,
        in selector order, so matrix columns and phenotype rows never drift
        apart. The result shares no storage with this container.

        Args:
            rows: Feature selector - ALL, int, index sequence or boolean mask
            cols: Sample selector - ALL, int, index sequence or boolean mask
            drop: If True and an axis ends up with length 1, return
                {channel: pd.Series} over the other axis
                ({channel: scalar} if both axes have length 1)

        Returns:
            New AnnotatedMatrix, or a dict of Series/scalars when dropping

        Raises:
            IndexOutOfRange: A position is outside the axis
            DimensionMismatch: A boolean mask has the wrong length
            TypeError: A selector is neither integer nor boolean

        Examples:
            >>> # Female samples only
            >>> females = m.subset(cols=(m.column_field('sex') == 'F'))
            >>>
            >>> # Samples ordered by age, oldest first
            >>> order = np.argsort(-m.column_field('age').to_numpy())
            >>> by_age = m.subset(ALL, order)
            >>>
            >>> # First feature as a plain vector
            >>> m.subset(0, ALL, drop=True)['exprs']
        """
        row_pos = resolve_selector(rows, self.n_features, axis='features')
        col_pos = resolve_selector(cols, self.n_samples, axis='samples')

        feature_names = make_unique(self._feature_names[row_pos])
        sample_names = make_unique(self._sample_names[col_pos])
        selector = np.ix_(row_pos, col_pos)

        row_annotation = self._row_annotation.iloc[row_pos].copy()
        row_annotation.index = feature_names
        col_annotation = self._col_annotation.iloc[col_pos].copy()
        col_annotation.index = sample_names

        logger.debug(
            f"subset {self.n_features}x{self.n_samples} -> {len(row_pos)}x{len(col_pos)}"
        )

        result = AnnotatedMatrix(
            matrices={name: arr[selector] for name, arr in self._matrices.items()},
            row_annotation=row_annotation,
            col_annotation=col_annotation,
            feature_names=feature_names,
            sample_names=sample_names,
            experiment=self._experiment,
            platform=self._platform,
        )

        if drop and (result.n_features == 1 or result.n_samples == 1):
            return result._drop_unit_axes()
        return result

    def subset_by_name(
        self,
        features: Optional[Sequence[Any]] = None,
        samples: Optional[Sequence[Any]] = None,
        *,
        drop: bool = False,
    ):
        """
        Subset by identifiers instead of positions (None keeps the axis).

        Raises:
            UnknownIdentifier: A name is not present on its axis
        """
        rows = ALL if features is None else resolve_names(features, self._feature_names, 'feature')
        cols = ALL if samples is None else resolve_names(samples, self._sample_names, 'sample')
        return self.subset(rows, cols, drop=drop)

    def _drop_unit_axes(self) -> Dict[str, Any]:
        if self.n_features == 1 and self.n_samples == 1:
            return {name: arr[0, 0].item() for name, arr in self._matrices.items()}
        if self.n_features == 1:
            return {
                name: pd.Series(arr[0, :].copy(), index=self._sample_names.copy(),
                                name=self._feature_names[0])
                for name, arr in self._matrices.items()
            }
        return {
            name: pd.Series(arr[:, 0].copy(), index=self._feature_names.copy(),
                            name=self._sample_names[0])
            for name, arr in self._matrices.items()
        }

    # ------------------------------------------------------------------
    # Explicit annotation updates (new instances)
    # ------------------------------------------------------------------

    def _replace(self, **changes) -> AnnotatedMatrix:
        parts = dict(
            matrices=self._matrices,
            row_annotation=self._row_annotation,
            col_annotation=self._col_annotation,
            feature_names=self._feature_names,
            sample_names=self._sample_names,
            experiment=self._experiment,
            platform=self._platform,
        )
        parts.update(changes)
        return AnnotatedMatrix(**parts)

    def with_column_field(self, name: str, values: Any) -> AnnotatedMatrix:
        """
        Add or replace one sample-annotation column.

        Values are taken positionally (one per sample, in sample_names order).

        Raises:
            DimensionMismatch: Wrong number of values
            AlignmentError: A Series indexed by the sample names in another order
        """
        table = self._col_annotation.copy()
        table[name] = _align_values(values, self._sample_names, 'samples', name)
        return self._replace(col_annotation=table)

    def with_row_field(self, name: str, values: Any) -> AnnotatedMatrix:
        """Add or replace one feature-annotation column (positional values)."""
        table = self._row_annotation.copy()
        table[name] = _align_values(values, self._feature_names, 'features', name)
        return self._replace(row_annotation=table)

    def with_col_annotation(self, table: pd.DataFrame) -> AnnotatedMatrix:
        """Replace the whole sample-annotation table (validated like construction)."""
        return self._replace(col_annotation=table)

    def with_row_annotation(self, table: pd.DataFrame) -> AnnotatedMatrix:
        """Replace the whole feature-annotation table (validated like construction)."""
        return self._replace(row_annotation=table)

    def rename_fields(
        self,
        columns: Optional[Mapping[str, str]] = None,
        rows: Optional[Mapping[str, str]] = None,
    ) -> AnnotatedMatrix:
        """
        Rename annotation columns. Column names are the only field labels.

        Args:
            columns: Old -> new names for sample-annotation columns
            rows: Old -> new names for feature-annotation columns

        Raises:
            UnknownField: An old name does not exist
            DuplicateIdentifier: Renaming produces repeated column names
        """
        col_table = self._rename_table(self._col_annotation, columns or {}, 'sample')
        row_table = self._rename_table(self._row_annotation, rows or {}, 'feature')
        return self._replace(col_annotation=col_table, row_annotation=row_table)

    @staticmethod
    def _rename_table(table: pd.DataFrame, mapping: Mapping[str, str], axis: str) -> pd.DataFrame:
        missing = [old for old in mapping if old not in table.columns]
        if missing:
            raise UnknownField(f"Unknown {axis} field(s): {missing}")
        return table.rename(columns=dict(mapping))

    def with_experiment(self, experiment: Union[ExperimentMetadata, Dict[str, Any]]) -> AnnotatedMatrix:
        return self._replace(experiment=experiment)

    def copy(self) -> AnnotatedMatrix:
        """Independent copy (the constructor copies every component)."""
        return self._replace()

    # ------------------------------------------------------------------
    # Comparison and presentation
    # ------------------------------------------------------------------

    def equals(self, other: Any) -> bool:
        """True if channels, names, annotations and metadata all match."""
        if not isinstance(other, AnnotatedMatrix):
            return False
        if self.channel_names != other.channel_names:
            return False
        for name, arr in self._matrices.items():
            other_arr = other._matrices[name]
            if arr.shape != other_arr.shape:
                return False
            # equal_nan only applies to inexact dtypes
            equal_nan = arr.dtype.kind in 'fc' and other_arr.dtype.kind in 'fc'
            if not np.array_equal(arr, other_arr, equal_nan=equal_nan):
                return False
        return (
            self._feature_names.equals(other._feature_names)
            and self._sample_names.equals(other._sample_names)
            and self._row_annotation.equals(other._row_annotation)
            and self._col_annotation.equals(other._col_annotation)
            and self._experiment == other._experiment
            and self._platform == other._platform
        )

    @staticmethod
    def _preview(names: pd.Index, edge: int = 2) -> str:
        if len(names) == 0:
            return "none"
        if len(names) <= 2 * edge:
            return ' '.join(str(n) for n in names)
        head = ' '.join(str(n) for n in names[:edge])
        tail = ' '.join(str(n) for n in names[-edge:])
        return f"{head} ... {tail} ({len(names)} total)"

    def summary(self) -> str:
        """Multi-line description: dimensions, channels, names, fields, experiment."""
        col_fields = ' '.join(str(c) for c in self._col_annotation.columns) or "none"
        row_fields = ' '.join(str(c) for c in self._row_annotation.columns) or "none"
        lines = [
            f"AnnotatedMatrix ({self.n_features} features × {self.n_samples} samples)",
            f"  Channels: {', '.join(self.channel_names)}",
            f"  Samples: {self._preview(self._sample_names)}",
            f"  Sample fields: {col_fields}",
            f"  Features: {self._preview(self._feature_names)}",
            f"  Feature fields: {row_fields}",
        ]
        if self._platform:
            lines.append(f"  Platform: {self._platform}")
        experiment = self._experiment.summary_lines()
        if experiment:
            lines.append("  Experiment:")
            lines.extend(f"    {line}" for line in experiment)
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return self.summary()

    def __str__(self) -> str:
        return self.__repr__()
