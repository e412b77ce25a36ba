"""
File utilities: atomic writes and YAML/JSON mapping reads.

Metadata sidecars and lookup caches are rewritten often; writing to a
temporary file in the same directory and moving it into place with
``os.replace()`` means readers see the old file or the new one, never a
half-written one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import numpy as np
import yaml


def _json_default(value: Any) -> Any:
    """Convert numpy scalars/arrays and paths that json cannot encode."""
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _atomic_write(path: str | os.PathLike, write) -> None:
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False, encoding="utf-8"
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    Numpy scalars, arrays, sets and paths are converted on the way out.

    Parameters
    ----------
    path:
        Destination file path.
    data:
        JSON-serializable object.
    indent:
        JSON indentation (default 2).
    """
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent, default=_json_default))


def read_json(path: str | os.PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def read_mapping_file(path: str | os.PathLike, what: str = "File") -> Dict[str, Any]:
    """
    Read a YAML (.yaml/.yml) or JSON (.json) file holding a mapping.

    Args:
        path: File to read
        what: Description used in error messages, e.g. "Config file"

    Returns:
        The mapping, or {} for an empty file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: Unsupported suffix, invalid syntax, or non-mapping content
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")

    suffix = path.suffix.lower()
    try:
        with open(path, "r", encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported format for {what.lower()} {path}: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{what} {path} must contain a mapping at top level")
    return data
