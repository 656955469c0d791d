"""CLI entry point for loading users from CSV.

Usage:
    python -m scripts.user_upload -u USER -p PASSWORD -h HOST --file users.csv [--dry_run]
    python -m scripts.user_upload -u USER -p PASSWORD -h HOST --create_table
"""

import sys

from userupload.cli import main

if __name__ == "__main__":
    sys.exit(main())
