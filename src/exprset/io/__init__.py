"""
I/O module for loading and writing annotated matrices.

Key Functions:
    - load_annotated_matrix: Expression table(s) + annotation tables -> AnnotatedMatrix
    - load_experiment_metadata: YAML/JSON -> ExperimentMetadata
    - read_table: Delimited table with ids in the first column
    - write_annotated_matrix: AnnotatedMatrix -> sibling CSV/JSON files

Supported Formats:
    - CSV / TSV (optionally compressed) for matrices and annotation
    - YAML / JSON for experiment metadata
"""

from exprset.io.loaders import load_annotated_matrix, load_experiment_metadata, read_table
from exprset.io.writers import output_paths, write_annotated_matrix

__all__ = [
    'load_annotated_matrix',
    'load_experiment_metadata',
    'read_table',
    'write_annotated_matrix',
    'output_paths',
]
