"""
exprset summary command - describe an annotated matrix.

Usage:
    exprset summary --input exprs.tsv --samples pheno.tsv --experiment experiment.yaml
"""

import argparse
import logging

from exprset.cli._common import add_input_arguments, load_from_args
from exprset.core.errors import ExprSetError

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the summary subcommand."""
    parser = subparsers.add_parser(
        "summary",
        help="Print dimensions, channels, names and annotation fields",
        description="Load an expression table with its annotation and describe it.",
    )
    add_input_arguments(parser, required=True)
    parser.add_argument("--fields", action="store_true",
                        help="Also list distinct values of each sample field")
    parser.set_defaults(func=run_summary)


def run_summary(args: argparse.Namespace) -> int:
    """Execute the summary command."""
    try:
        matrix = load_from_args(args)
    except (ExprSetError, FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load {args.input}: {e}")
        return 1

    print(matrix.summary())

    if args.fields:
        annotation = matrix.col_annotation
        for name in annotation.columns:
            counts = annotation[name].value_counts(dropna=False)
            shown = ', '.join(f"{value} ({count})" for value, count in counts.head(10).items())
            more = f", ... {len(counts) - 10} more" if len(counts) > 10 else ""
            print(f"  {name}: {shown}{more}")
    return 0
