#!/usr/bin/env python
"""
Script to report reclaimable space for a table.

Usage:
    python scripts/run_purge_stats.py shop orders
    python scripts/run_purge_stats.py shop orders -n 20 -r 50 -b
    python scripts/run_purge_stats.py shop orders -t before-repair -f gen-3,gen-4
    python scripts/run_purge_stats.py shop orders --data-dir /var/lib/tables
"""
import sys
from pathlib import Path

# Add project root to path so we can import from analysis
project_root = Path(__file__).resolve().parent.parent
sys.path.append(str(project_root))

from analysis.cli import main

if __name__ == "__main__":
    sys.exit(main())
