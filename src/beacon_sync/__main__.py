"""
Allow running beacon_sync with python -m
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
