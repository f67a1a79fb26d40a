"""
Main entry point for running cryptguard as a module.

Usage:
    python -m cryptguard <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
