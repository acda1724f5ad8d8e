"""
Command line interface for the memory importer.

Run with `python -m src.cli` or the `memory-importer` console script.
"""

from src.cli.main import build_parser, main

__all__ = ["build_parser", "main"]
