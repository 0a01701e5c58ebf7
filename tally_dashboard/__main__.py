"""
Main entry point for running tally_dashboard as a module.

Usage:
    python -m tally_dashboard [options] <command>

This is equivalent to running:
    python -m tally_dashboard.debug [options] <command>
"""
import sys
from .debug import main

if __name__ == "__main__":
    sys.exit(main())
