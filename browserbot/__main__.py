"""
Entry point for running as a module.

Usage: python -m browserbot run "TASK"
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
