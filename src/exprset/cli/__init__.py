"""
exprset CLI - Command-line interface for annotated expression matrices.

Commands:
    exprset summary  - Describe an expression table and its annotation
    exprset subset   - Filter/reorder samples and features, write the result
"""

import argparse
import logging
import sys
from typing import List, Optional


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for exprset."""
    parser = argparse.ArgumentParser(
        prog="exprset",
        description="Annotated expression-matrix containers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  summary   Describe an expression table and its annotation
  subset    Filter/reorder samples and features, write the result

Examples:
  exprset summary --input exprs.tsv --samples pheno.tsv
  exprset subset --input exprs.tsv --samples pheno.tsv --where sex=F --order-by age -o out/females
  exprset subset --config subset.yaml
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from exprset.cli import subset, summary
    summary.register_parser(subparsers)
    subset.register_parser(subparsers)

    raw_args = list(args) if args is not None else sys.argv[1:]
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    configure_logging(parsed_args.verbose)
    # top-level options take no values, so the first command token starts the subcommand
    parsed_args.command_args = raw_args[raw_args.index(parsed_args.command) + 1:]

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
