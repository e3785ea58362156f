"""
Run the CPU turn harness.

Usage:
    python -m tokyo_cpu --players 4 --turns 8 --seed 7
"""

import sys

from .interface.cli import main

if __name__ == "__main__":
    sys.exit(main())
