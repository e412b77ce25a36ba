"""
Configuration file support for the exprset CLI.

Supports YAML and JSON config files with CLI argument override.

Example config (subset.yaml):
    input: data/exprs.tsv
    samples: data/pheno.tsv
    output: results/female_cases
    where:
      sex: F
      diagnosis: [case, borderline]
    order_by: age
    descending: true
"""

import argparse
from argparse import Namespace
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from exprset.utils.fileio import read_mapping_file


@dataclass
class SubsetConfig:
    """
    Configuration schema for the `exprset subset` command.

    Mirrors the CLI argument structure for consistency.
    """
    input: Optional[Path] = None
    samples: Optional[Path] = None
    features: Optional[Path] = None
    experiment: Optional[Path] = None
    output: Optional[Path] = None
    where: Dict[str, List[str]] = field(default_factory=dict)
    order_by: Optional[str] = None
    descending: bool = False
    feature_list: Optional[Path] = None


PATH_KEYS = {'input', 'samples', 'features', 'experiment', 'output', 'feature_list'}
KNOWN_KEYS = {f.name for f in fields(SubsetConfig)}

def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("subset.yaml"))
        >>> print(config['order_by'])
        age
    """
    return read_mapping_file(config_path, "Config file")


def normalize_where(where: Any) -> Dict[str, List[str]]:
    """
    Coerce a `where` section to {field: [accepted values as str]}.

    Accepts a mapping (scalar or list values) or a list of "FIELD=VALUE"
    strings, where VALUE may list alternatives separated by commas.
    """
    if where is None:
        return {}
    result: Dict[str, List[str]] = {}
    if isinstance(where, dict):
        for key, value in where.items():
            values = value if isinstance(value, list) else [value]
            result.setdefault(str(key), []).extend(str(v) for v in values)
        return result
    if isinstance(where, (list, tuple)):
        for item in where:
            if not isinstance(item, str) or '=' not in item:
                raise ValueError(f"Filter must look like FIELD=VALUE, got: {item!r}")
            key, _, value = item.partition('=')
            key = key.strip()
            if not key:
                raise ValueError(f"Filter has an empty field name: {item!r}")
            result.setdefault(key, []).extend(v.strip() for v in value.split(','))
        return result
    raise ValueError(f"'where' must be a mapping or list of FIELD=VALUE, got {type(where)}")


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Raises:
        ValueError: If configuration is invalid
    """
    unknown = set(config) - KNOWN_KEYS
    if unknown:
        raise ValueError(
            f"Unknown config keys: {sorted(unknown)}. "
            f"Valid keys: {sorted(KNOWN_KEYS)}"
        )

    if 'where' in config:
        normalize_where(config['where'])

    if 'order_by' in config and config['order_by'] is not None:
        if not isinstance(config['order_by'], str):
            raise ValueError(f"order_by must be a field name, got: {config['order_by']!r}")

    if 'descending' in config and not isinstance(config['descending'], bool):
        raise ValueError(f"descending must be true/false, got: {config['descending']!r}")


def explicit_arg_names(parser: argparse.ArgumentParser, cli_args: Optional[List[str]]) -> Set[str]:
    """
    Destinations of the arguments the user typed for one (sub)command.

    Re-parses with every default replaced by a sentinel, so abbreviated
    flags (--out), attached values (-oPATH, --output=PATH) and repeats all
    count as given.
    """
    unset = object()
    namespace = Namespace()
    dests = set()
    for action in parser._actions:
        if action.dest == argparse.SUPPRESS or action.default == argparse.SUPPRESS:
            continue
        dests.add(action.dest)
        # append/extend actions build on the current value, so start them empty
        setattr(namespace, action.dest, None if isinstance(action, argparse._AppendAction) else unset)
    parsed, _ = parser.parse_known_args(cli_args or [], namespace=namespace)
    return {
        name for name in dests
        if getattr(parsed, name) is not unset and getattr(parsed, name) is not None
    }


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    explicit: Optional[Set[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        explicit: Names of arguments given on the command line, from
                  explicit_arg_names(). If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values

    Examples:
        >>> config = load_config(Path("subset.yaml"))
        >>> args = parser.parse_args(["--input", "data.tsv"])
        >>> explicit = explicit_arg_names(parser, ["--input", "data.tsv"])
        >>> merged = merge_config_with_args(config, args, explicit)
        >>> # merged.input from CLI, merged.order_by from config
    """
    explicit = explicit or set()
    merged = Namespace(**vars(args))

    for key in KNOWN_KEYS:
        if key not in config:
            continue
        value = config[key]
        if key in PATH_KEYS and value is not None:
            value = Path(value)
        if key == 'where':
            value = normalize_where(value)
            # filters from both sources combine; CLI wins per field
            if getattr(merged, 'where', None):
                value = {**value, **merged.where}
            setattr(merged, 'where', value)
            continue
        setattr(merged, key, _merge_value(getattr(merged, key, None), value, key in explicit))

    return merged
