"""
Main entry point for the autorotate package.

Allows running: python -m autorotate <command>
"""

import sys
from autorotate.cli import main

if __name__ == "__main__":
    sys.exit(main())
