"""Command-line interface."""

from backstep.cli.main import main

__all__ = ["main"]
