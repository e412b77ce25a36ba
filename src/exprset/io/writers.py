"""
Delimited-text writer for annotated matrices.

Writes an AnnotatedMatrix as a set of sibling files sharing one prefix, so
each piece opens directly in R, Excel or pandas:

    {prefix}.{channel}.csv   one matrix per channel (features x samples)
    {prefix}.samples.csv     sample annotation, first column = sample id
    {prefix}.features.csv    feature annotation, first column = feature id
    {prefix}.experiment.json experiment metadata and platform

The files round-trip through exprset.io.loaders.load_annotated_matrix.

Examples:
    >>> from pathlib import Path
    >>> from exprset.io.writers import write_annotated_matrix
    >>>
    >>> paths = write_annotated_matrix(matrix, Path("results/females"))
    >>> [p.name for p in paths]
    ['females.exprs.csv', 'females.samples.csv', 'females.features.csv', 'females.experiment.json']
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from exprset.core.annotated_matrix import AnnotatedMatrix
from exprset.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

__all__ = ['write_annotated_matrix', 'output_paths']


def output_paths(matrix: AnnotatedMatrix, prefix: Union[str, Path]) -> Dict[str, Path]:
    """File names write_annotated_matrix uses for a prefix, keyed by role."""
    prefix = Path(prefix)
    paths = {
        f"channel:{name}": Path(f"{prefix}.{name}.csv") for name in matrix.channel_names
    }
    paths['samples'] = Path(f"{prefix}.samples.csv")
    paths['features'] = Path(f"{prefix}.features.csv")
    paths['experiment'] = Path(f"{prefix}.experiment.json")
    return paths


def _write_frame(df: pd.DataFrame, path: Path, index_label: str) -> None:
    try:
        df.to_csv(path, index_label=index_label)
    except OSError as e:
        raise OSError(f"Failed to write {path}: {e}") from e
    logger.info(f"Wrote {path}")


def write_annotated_matrix(matrix: AnnotatedMatrix, prefix: Union[str, Path]) -> List[Path]:
    """
    Write every channel, both annotation tables and the experiment metadata.

    Args:
        matrix: Container to write
        prefix: Output path prefix (without extension)
            Example: Path("out/study") -> out/study.exprs.csv, ...

    Returns:
        Paths written, channels first

    Raises:
        TypeError: If matrix is not an AnnotatedMatrix
        OSError: If a file cannot be written

    Notes:
        - Creates parent directories if they don't exist
        - Overwrites existing files
        - Channel names are used verbatim in file names
    """
    if not isinstance(matrix, AnnotatedMatrix):
        raise TypeError(f"matrix must be AnnotatedMatrix, got {type(matrix)}")

    prefix = Path(prefix)
    if prefix.parent != Path('.') and not prefix.parent.exists():
        prefix.parent.mkdir(parents=True, exist_ok=True)

    paths = output_paths(matrix, prefix)
    written: List[Path] = []

    for name in matrix.channel_names:
        path = paths[f"channel:{name}"]
        _write_frame(matrix.frame(name), path, index_label='feature_id')
        written.append(path)

    _write_frame(matrix.col_annotation, paths['samples'], index_label='sample_id')
    written.append(paths['samples'])

    _write_frame(matrix.row_annotation, paths['features'], index_label='feature_id')
    written.append(paths['features'])

    experiment = matrix.experiment.to_dict()
    if matrix.platform:
        experiment['other'] = {**experiment['other'], 'platform': matrix.platform}
    atomic_write_json(paths['experiment'], experiment)
    logger.info(f"Wrote {paths['experiment']}")
    written.append(paths['experiment'])

    return written
