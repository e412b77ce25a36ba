"""Shared helpers."""

from exprset.utils.fileio import atomic_write_json, read_json, read_mapping_file

__all__ = ['atomic_write_json', 'read_json', 'read_mapping_file']
