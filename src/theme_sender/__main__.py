#!/usr/bin/env python3
"""
Entry point for ``python -m theme_sender``.
"""

from .cli.main import cli

if __name__ == "__main__":
    cli()
