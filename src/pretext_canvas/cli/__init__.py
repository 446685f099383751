"""Command-line interface for PreTeXt Canvas.

This module provides inspection tools for PreTeXt documents: validation,
outlines, structural paths and location lookup.
"""

from .main import main

__all__ = ["main"]
