"""CLI module for benchwatch.

This module provides the command-line interface using Typer.
"""

from __future__ import annotations

from benchwatch.cli.main import app

__all__ = ["app"]
