#!/usr/bin/env python3
"""Run one provisioning pass from a source checkout.

Usage:
    python scripts/sync.py --config config.json [--dry-run] [--operator NAME] [--verbose]
"""
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from benutzerverwaltung.cli import main

if __name__ == "__main__":
    main()
