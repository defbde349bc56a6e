"""
Entry point for running amp_monitor as a module.

Usage:
    python -m amp_monitor [config.yaml]
"""

import sys
from .poller import main

if __name__ == "__main__":
    sys.exit(main())
