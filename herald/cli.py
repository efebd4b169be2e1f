"""Main CLI module for herald.

This module re-exports the CLI for convenience. The main implementation
is in __main__.py.
"""

from herald.__main__ import cli

__all__ = ["cli"]
