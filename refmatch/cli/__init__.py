"""Command-line interface for RefMatch.

Example Usage
-------------
    # From command line:
    refmatch --help
    refmatch classify --test test.h5ad --reference blood=blood.h5ad:markers.json --out out/
    refmatch show-config
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
