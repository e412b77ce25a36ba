"""
exprset subset command - filter and reorder samples/features, write the result.

Sample filters and ordering act on sample-annotation fields, so the written
matrix columns and phenotype rows stay paired.

Usage:
    exprset subset --input exprs.tsv --samples pheno.tsv --output out/females \
        --where sex=F --order-by age --descending
    exprset subset --config subset.yaml --output out/override
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from exprset.cli._common import add_input_arguments, load_from_args
from exprset.cli.config import (
    explicit_arg_names,
    load_config,
    merge_config_with_args,
    normalize_where,
    validate_config,
)
from exprset.core.annotated_matrix import AnnotatedMatrix
from exprset.core.errors import ExprSetError
from exprset.core.selectors import ALL
from exprset.io.writers import write_annotated_matrix

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the subset subcommand."""
    parser = subparsers.add_parser(
        "subset",
        help="Filter/reorder samples and features, write the result",
        description=(
            "Select samples by annotation values, order them by a field, "
            "restrict features to a list of ids, and write every channel "
            "together with its annotation."
        ),
    )
    add_input_arguments(parser)
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output prefix (writes PREFIX.<channel>.csv, PREFIX.samples.csv, ...)")
    parser.add_argument("--where", nargs="+", action="extend", default=None, metavar="FIELD=VALUE",
                        help="Keep samples whose FIELD equals VALUE (comma-separate alternatives)")
    parser.add_argument("--order-by", default=None,
                        help="Sample field to order samples by")
    parser.add_argument("--descending", action="store_true",
                        help="Order samples in descending order")
    parser.add_argument("--feature-list", type=Path, default=None,
                        help="File with one feature id per line to keep, in that order")
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="YAML/JSON config file (CLI flags override it)")
    parser.set_defaults(func=run_subset, command_parser=parser)


def read_feature_list(path: Path) -> List[str]:
    """One id per line; blank lines and '#' comments are skipped."""
    with open(path, 'r') as f:
        ids = [line.split('#', 1)[0].strip() for line in f]
    return [i for i in ids if i]


def sample_mask(matrix: AnnotatedMatrix, where: Dict[str, List[str]]) -> np.ndarray:
    """Boolean mask of samples matching every FIELD=VALUE filter."""
    mask = np.ones(matrix.n_samples, dtype=bool)
    for field_name, values in where.items():
        column = matrix.column_field(field_name)
        if pd.api.types.is_numeric_dtype(column) and not pd.api.types.is_bool_dtype(column):
            # integer fields with gaps load as float; compare numbers, not "61.0"
            wanted = pd.to_numeric(pd.Series(values, dtype=object), errors='coerce').dropna()
            matches = column.isin(wanted.astype(float).to_numpy())
        else:
            matches = column.astype(str).isin(values)
        mask &= matches.to_numpy()
        logger.info(f"Filter {field_name} in {values}: {int(mask.sum())} samples remain")
    if where and not mask.any():
        logger.warning(f"No samples match {where}")
    return mask


def sample_order(matrix: AnnotatedMatrix, field_name: str, descending: bool = False) -> np.ndarray:
    """Positions sorting samples by a field (stable, missing values last)."""
    column = matrix.column_field(field_name).reset_index(drop=True)
    ordered = column.sort_values(ascending=not descending, kind='stable', na_position='last')
    return ordered.index.to_numpy()


def apply_subset(
    matrix: AnnotatedMatrix,
    where: Optional[Dict[str, List[str]]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    feature_ids: Optional[List[str]] = None,
) -> AnnotatedMatrix:
    """Filter samples, order them, then restrict features."""
    result = matrix
    if where:
        result = result.subset(ALL, sample_mask(result, where))
    if order_by:
        result = result.subset(ALL, sample_order(result, order_by, descending))
    if feature_ids is not None:
        # feature ids read from text are strings; match on string form
        lookup = {str(name): name for name in result.feature_names}
        missing = [fid for fid in feature_ids if fid not in lookup]
        if missing:
            logger.warning(f"{len(missing)} listed features not in matrix, e.g. {missing[:5]}")
        keep = [lookup[fid] for fid in dict.fromkeys(feature_ids) if fid in lookup]
        result = result.subset_by_name(features=keep)
    return result


def run_subset(args: argparse.Namespace) -> int:
    """Execute the subset command."""
    args.where = normalize_where(args.where)

    if args.config:
        try:
            config = load_config(args.config)
            validate_config(config)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Invalid config {args.config}: {e}")
            return 1
        explicit = explicit_arg_names(args.command_parser, getattr(args, "command_args", None))
        args = merge_config_with_args(config, args, explicit)

    if args.input is None or args.output is None:
        logger.error("Both --input and --output are required (on the command line or in --config)")
        return 2

    try:
        matrix = load_from_args(args)
        feature_ids = read_feature_list(args.feature_list) if args.feature_list else None
        result = apply_subset(
            matrix,
            where=args.where,
            order_by=args.order_by,
            descending=args.descending,
            feature_ids=feature_ids,
        )
        write_annotated_matrix(result, args.output)
    except (ExprSetError, FileNotFoundError, ValueError, OSError) as e:
        logger.error(f"subset failed: {e}")
        return 1

    print(result.summary())
    return 0
