"""
Memory importer entry point.

This module provides the main entry point for running the importer
as a standalone application via `python -m src.cli`.
"""

import sys

from src.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
