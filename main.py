#!/usr/bin/env python3
"""
Main entry point for the wallet cycle market maker.

This script runs the paper trading runner with command-line configuration
options and graceful signal handling.

Usage:
    python main.py --config config/config.yaml
    python main.py --config config/config.yaml --sweep
    python main.py --config config/config.yaml --log-level DEBUG
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from market_maker.runner import main


if __name__ == '__main__':
    main()
