#!/usr/bin/env python3
"""
Roster Store Setup Script
Creates the registrants and sequence_counter tables and seeds the counter.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.services.roster_service import preview_registration_code  # noqa: E402
from src.services.setup_service import initialize_roster_store  # noqa: E402
from src.services.storage_service import JsonRosterStore  # noqa: E402
from src.utils.config import get_settings  # noqa: E402
from src.utils.exceptions import StoreError  # noqa: E402
from src.utils.logging_utils import configure_logging  # noqa: E402


def parse_args(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Initialize the kiosk roster store.")
    parser.add_argument(
        "--data-file",
        default=settings.data_file,
        help=f"JSON roster file (default: {settings.data_file})",
    )
    parser.add_argument(
        "--start",
        type=int,
        default=1,
        help="First sequence value for a new counter (default: 1)",
    )
    parser.add_argument(
        "--reset-counter",
        action="store_true",
        help="Overwrite an existing counter with --start (may reissue codes)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    print("=" * 60)
    print("Roster store setup")
    print("=" * 60)
    print(f"   Data file: {args.data_file}")

    try:
        status = initialize_roster_store(
            JsonRosterStore(args.data_file),
            start_value=args.start,
            reset=args.reset_counter,
        )
    except (StoreError, ValueError) as e:
        print(f"   ❌ Setup failed: {e}")
        return 1

    print(f"   ✅ Tables ready: {status.initialized}")
    print(f"   ✅ Registrants: {status.registrant_count}")
    print(f"   ✅ Next code: {preview_registration_code(status, settings=settings)}")
    print("=" * 60)
    print("Start the kiosk with: streamlit run app.py")
    return 0


if __name__ == "__main__":
    sys.exit(main())
