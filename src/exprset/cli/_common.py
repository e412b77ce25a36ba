"""Arguments and loading shared by the exprset subcommands."""

import argparse
from pathlib import Path

from exprset.core.annotated_matrix import AnnotatedMatrix
from exprset.io.loaders import load_annotated_matrix


def add_input_arguments(parser: argparse.ArgumentParser, required: bool = False) -> None:
    """Input tables: expression matrix plus optional annotation/metadata."""
    parser.add_argument("--input", "-i", type=Path, required=required, default=None,
                        help="Expression table (features x samples, CSV/TSV)")
    parser.add_argument("--samples", "-s", type=Path, default=None,
                        help="Sample annotation table (first column = sample id)")
    parser.add_argument("--features", "-f", type=Path, default=None,
                        help="Feature annotation table (first column = feature id)")
    parser.add_argument("--experiment", type=Path, default=None,
                        help="Experiment metadata (YAML or JSON)")
    parser.add_argument("--channel", default="exprs",
                        help="Channel name for the expression table (default: exprs)")
    parser.add_argument("--platform", default=None,
                        help="Array platform / annotation package name")


def load_from_args(args: argparse.Namespace) -> AnnotatedMatrix:
    return load_annotated_matrix(
        args.input,
        col_annotation=args.samples,
        row_annotation=args.features,
        experiment=args.experiment,
        channel=args.channel,
        platform=args.platform,
    )
