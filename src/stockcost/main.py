from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from stockcost.application.container import build_container
from stockcost.config import get_app_paths
from stockcost.domain.errors import AppError
from stockcost.logging_config import setup_logging

log = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db", help="SQLite database path (defaults to the per-user app directory)")

    parser = argparse.ArgumentParser(prog="stockcost", description="Inventory costing and movement ledger.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", parents=[common], help="SQLite integrity check plus ledger reconciliation of every material")

    imp = sub.add_parser("import-purchases", parents=[common], help="Receive the purchases listed in an .xlsx file")
    imp.add_argument("file")
    imp.add_argument("--actor", default="excel-import")

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    try:
        container = build_container(args.db or paths.db_path)

        if args.command == "check":
            report = container.operations.run_health_check()
            print(f"SQLite integrity: {report.sqlite_integrity}")
            print(f"Materials checked: {report.materials_checked}")
            for v in report.violations:
                print(f"VIOLATION: {v}")
            return 0 if report.healthy else 1

        ok, skipped = container.excel.import_purchases(args.file, args.actor)
        print(f"Imported: {ok}  Skipped: {skipped}")
        return 0
    except AppError as e:
        log.warning("command_failed command=%s error=%s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
