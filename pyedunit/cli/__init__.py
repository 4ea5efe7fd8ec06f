"""Typer command line interface for pyedunit."""

from .app import app

__all__ = ["app"]
