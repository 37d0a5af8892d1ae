# src/greenplace/cli/__init__.py
"""
GreenPlace CLI Package

This package exposes the top-level Typer `app` so tests and the console
entrypoint can import `greenplace.cli.app`.
"""

from ..reporters.console_reporter import ConsoleReporter
from .main import app

__all__ = ["app", "ConsoleReporter"]
