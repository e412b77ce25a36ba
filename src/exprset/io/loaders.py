"""
Delimited-text loaders for annotated matrices.

Reads processed expression tables plus their annotation tables into an
AnnotatedMatrix. Vendor raw formats (CEL, GPR, IDAT) are out of scope; by the
time data reaches these loaders it is a plain feature x sample table.

Expected layout:
    Expression table (one file per channel):
    ```
    "","GSM1001","GSM1002","GSM1003"
    "1007_s_at",8.41,8.97,8.12
    "1053_at",6.02,5.88,6.31
    ```
    Sample annotation (one row per sample, first column = sample id):
    ```
    "","sex","age","diagnosis"
    "GSM1001","F",61,"case"
    ```
    Feature annotation (one row per feature, first column = feature id).

Annotation files are keyed by id, so their rows are matched to the matrix by
name and may come in any order. Ids missing from an annotation file are an
error; extra ids are dropped with a warning.

Examples:
    >>> from pathlib import Path
    >>> from exprset.io.loaders import load_annotated_matrix
    >>>
    >>> m = load_annotated_matrix(
    ...     Path("exprs.tsv"),
    ...     col_annotation=Path("pheno.tsv"),
    ...     experiment=Path("experiment.yaml"),
    ... )
    >>> print(f"Loaded {m.n_features} features x {m.n_samples} samples")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd

from exprset.core.annotated_matrix import AnnotatedMatrix, DEFAULT_CHANNEL
from exprset.core.errors import AlignmentError, DuplicateIdentifier
from exprset.core.metadata import ExperimentMetadata
from exprset.utils.fileio import read_mapping_file

logger = logging.getLogger(__name__)

__all__ = ['read_table', 'load_annotated_matrix', 'load_experiment_metadata']

PathLike = Union[str, Path]

TAB_SUFFIXES = {'.tsv', '.txt', '.tab'}


def _delimiter_for(path: Path) -> str:
    suffixes = [s.lower() for s in path.suffixes]
    # look through compression suffixes such as .tsv.gz
    for suffix in reversed(suffixes):
        if suffix in TAB_SUFFIXES:
            return '\t'
        if suffix == '.csv':
            return ','
    return ','


def read_table(path: PathLike, sep: Optional[str] = None) -> pd.DataFrame:
    """
    Read a delimited table whose first column holds row ids.

    Args:
        path: File path (.csv, .tsv, .txt, .tab; optionally compressed)
        sep: Delimiter; inferred from the suffix when None

    Returns:
        DataFrame indexed by the first column

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    sep = sep or _delimiter_for(path)
    try:
        df = pd.read_csv(path, sep=sep, index_col=0)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Table is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse table {path}: {e}") from e

    if df.shape[0] == 0:
        raise ValueError(f"Table contains no rows: {path}")
    return df


def _check_ids(index: pd.Index, kind: str, path: Path) -> None:
    if index.duplicated().any():
        dupes = list(index[index.duplicated()].unique()[:5])
        raise DuplicateIdentifier(
            f"{path} has {index.duplicated().sum()} duplicate {kind} ids, e.g. {dupes}"
        )


def _numeric_matrix(df: pd.DataFrame, path: Path) -> np.ndarray:
    """Convert to float, naming the first offending cells on failure."""
    try:
        return df.to_numpy(dtype=float)
    except (ValueError, TypeError) as e:
        coerced = df.apply(pd.to_numeric, errors='coerce')
        bad = coerced.isna() & df.notna()
        examples = [
            f"row '{df.index[i]}', col '{df.columns[j]}': {df.iat[i, j]!r}"
            for i, j in zip(*np.nonzero(bad.to_numpy()))
        ][:5]
        raise ValueError(
            f"{path} contains non-numeric values:\n"
            + "\n".join(f"  - {x}" for x in examples)
        ) from e


def _read_channel(path: Path) -> pd.DataFrame:
    df = read_table(path)
    if df.shape[1] == 0:
        raise ValueError(f"Expression table has no sample columns: {path}")
    _check_ids(df.index, 'feature', path)
    _check_ids(df.columns, 'sample', path)
    data = _numeric_matrix(df, path)

    n_nan = int(np.isnan(data).sum())
    if n_nan:
        logger.warning(
            f"{path}: {n_nan:,} missing values ({100 * n_nan / data.size:.2f}% of matrix)"
        )
    return pd.DataFrame(data, index=df.index, columns=df.columns)


def _align_table(table: pd.DataFrame, names: pd.Index, kind: str, path: Path) -> pd.DataFrame:
    """Match annotation rows to the matrix by id."""
    _check_ids(table.index, kind, path)

    # ids in files are read as whatever pandas infers; compare as strings
    table = table.copy()
    table.index = table.index.astype(str)
    wanted = names.astype(str)

    missing = wanted.difference(table.index)
    if len(missing):
        raise AlignmentError(
            f"{path} lacks {len(missing)} {kind} ids present in the matrix, "
            f"e.g. {list(missing[:5])}"
        )
    extra = table.index.difference(wanted)
    if len(extra):
        logger.warning(f"{path}: dropping {len(extra)} {kind} rows not in the matrix")

    aligned = table.loc[wanted]
    aligned.index = names
    return aligned


def load_annotated_matrix(
    expression: Union[PathLike, Mapping[str, PathLike]],
    col_annotation: Optional[PathLike] = None,
    row_annotation: Optional[PathLike] = None,
    experiment: Optional[PathLike] = None,
    channel: str = DEFAULT_CHANNEL,
    platform: Optional[str] = None,
) -> AnnotatedMatrix:
    """
    Load expression table(s) and annotation into an AnnotatedMatrix.

    Args:
        expression: Path to one expression table (stored as `channel`) or a
            mapping channel name -> path for multi-channel data
        col_annotation: Sample annotation table (first column = sample id)
        row_annotation: Feature annotation table (first column = feature id)
        experiment: YAML/JSON file with experiment metadata
        channel: Channel name when `expression` is a single path
        platform: Array platform / annotation package name

    Returns:
        AnnotatedMatrix with all channels, names and annotation aligned

    Raises:
        FileNotFoundError: A file does not exist
        ValueError: A file is empty, malformed or non-numeric
        DuplicateIdentifier: A file repeats feature or sample ids
        AlignmentError: Channel files disagree on ids, or an annotation file
            lacks ids present in the matrix
    """
    if isinstance(expression, Mapping):
        sources = {name: Path(p) for name, p in expression.items()}
    else:
        sources = {channel: Path(expression)}
    if not sources:
        raise ValueError("No expression tables given")

    frames: Dict[str, pd.DataFrame] = {}
    first: Optional[str] = None
    for name, path in sources.items():
        logger.info(f"Loading channel '{name}' from {path}")
        df = _read_channel(path)
        if first is None:
            first = name
        else:
            reference = frames[first]
            if not (df.index.equals(reference.index) and df.columns.equals(reference.columns)):
                if set(df.index) == set(reference.index) and set(df.columns) == set(reference.columns):
                    df = df.loc[reference.index, reference.columns]
                else:
                    raise AlignmentError(
                        f"Channel '{name}' ({path}) has different feature/sample ids "
                        f"than channel '{first}' ({sources[first]})"
                    )
        frames[name] = df

    reference = frames[first]
    feature_names, sample_names = reference.index, reference.columns

    col_table = None
    if col_annotation is not None:
        path = Path(col_annotation)
        col_table = _align_table(read_table(path), sample_names, 'sample', path)
    row_table = None
    if row_annotation is not None:
        path = Path(row_annotation)
        row_table = _align_table(read_table(path), feature_names, 'feature', path)

    metadata = load_experiment_metadata(experiment) if experiment is not None else None
    # write_annotated_matrix stores the platform among the extra fields
    if metadata is not None and platform is None and 'platform' in metadata.other:
        platform = str(metadata.other.pop('platform'))

    matrix = AnnotatedMatrix(
        {name: df.to_numpy() for name, df in frames.items()},
        row_annotation=row_table,
        col_annotation=col_table,
        feature_names=feature_names,
        sample_names=sample_names,
        experiment=metadata,
        platform=platform,
    )
    logger.info(
        f"Loaded {matrix.n_features} features x {matrix.n_samples} samples, "
        f"channels {matrix.channel_names}"
    )
    return matrix


def load_experiment_metadata(path: PathLike) -> ExperimentMetadata:
    """
    Read experiment metadata from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: Unsupported suffix, invalid syntax, or non-mapping content
    """
    data = read_mapping_file(path, "Experiment metadata file")
    return ExperimentMetadata.from_dict(data)
