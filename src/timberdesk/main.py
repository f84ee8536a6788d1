from __future__ import annotations

import argparse
import logging
import sys

from timberdesk.application.container import build_container
from timberdesk.config import get_app_paths
from timberdesk.domain.models import ROLE_ADMIN, User
from timberdesk.logging_config import setup_logging

log = logging.getLogger(__name__)

# The command line is an operator tool; it always acts with the privileged role.
OPERATOR = User(name="operator", role=ROLE_ADMIN)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="timberdesk", description="Timber trading inventory and sales ledger")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Show record counts and where each collection was loaded from")

    export = sub.add_parser("export-report", help="Write the financial report to an Excel workbook")
    export.add_argument("path", help="Target .xlsx file")

    wipe = sub.add_parser("wipe", help="Delete ALL records and the local cache")
    wipe.add_argument("--yes", action="store_true", help="Confirm the irreversible reset")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)
    log.info("cli_started command=%s db=%s", args.command, paths.db_path)

    container = build_container(paths.db_path, paths.cache_dir)
    try:
        if args.command == "summary":
            state = container.store.state
            status = container.operations.sync_status()
            print(f"inventory: {len(state.inventory)}  sales: {len(state.sales)}  purchases: {len(state.purchases)}")
            print(f"clients: {len(state.clients)}  employees: {len(state.employees)}")
            print("sources: " + ", ".join(f"{k}={v}" for k, v in status.sources.items()))
            print(f"pending writes: {status.pending_writes}")
            print(f"database: {status.db_integrity} ({status.db_size_bytes} bytes)")
            return 0

        if args.command == "export-report":
            container.reporting.export_report_excel(OPERATOR, args.path)
            print(f"Report written to {args.path}")
            return 0

        if args.command == "wipe":
            if not args.yes:
                print("Refusing to wipe without --yes.", file=sys.stderr)
                return 2
            outcome = container.operations.wipe_all_data(OPERATOR, confirmed=True)
            if outcome.data:
                print("All data deleted.")
                return 0
            print(f"Local data cleared, shared store NOT cleared: {outcome.error}", file=sys.stderr)
            return 1
    finally:
        container.store.wait_for_sync()
        container.store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
