#!/usr/bin/env python3
"""
Summary job maintenance CLI.

Usage:
    python scripts/manage_jobs.py init-db
    python scripts/manage_jobs.py health
    python scripts/manage_jobs.py stats
    python scripts/manage_jobs.py fail-stale --timeout 600
"""

import sys

from tubedigest.cli import main


if __name__ == "__main__":
    sys.exit(main())
