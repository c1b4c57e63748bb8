"""Utility modules for embercli-mcp."""

from .version import read_manifest_version, satisfies, to_specifier

__all__ = [
    "satisfies",
    "to_specifier",
    "read_manifest_version",
]
