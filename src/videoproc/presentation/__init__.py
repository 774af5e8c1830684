"""Presentation layer package."""

from videoproc.presentation.cli import main

__all__ = ["main"]
