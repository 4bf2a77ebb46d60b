#!/usr/bin/env python3
"""
Main entry point for the shellask CLI.

This delegates to the UI layer in shellask.ui.cli to keep the
console script mapping stable.
"""

from shellask.ui.cli import run as shellask


if __name__ == "__main__":
    shellask()
