from __future__ import annotations

import argparse
import sys

from sealstore.core.logging import configure_logging
from sealstore.persistence.db import transaction
from sealstore.persistence.signed import EntityStore
from sealstore.services.integrity import SIGNED_MODELS, roll_signatures, scan_signatures


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify row signatures of signed tables")
    parser.add_argument(
        "--table",
        action="append",
        choices=sorted(SIGNED_MODELS),
        help="table to check; repeat for several, defaults to every signed table",
    )
    parser.add_argument(
        "--roll",
        action="store_true",
        help="re-sign verified rows at the latest canonical generation",
    )
    return parser


def _check(tables: list[str], roll: bool) -> int:
    corrupted = 0
    # One transaction for the whole run so a failed roll leaves no partial re-signing.
    with transaction() as session:
        store = EntityStore(session)
        for table in tables:
            model = SIGNED_MODELS[table]
            report = roll_signatures(store, model) if roll else scan_signatures(store, model)
            corrupted += len(report.corrupted_ids)
            print(f"table={report.table} checked={report.checked} corrupted={len(report.corrupted_ids)}", end="")
            if roll:
                print(f" rolled={len(report.rolled_ids)}", end="")
            print()
            for row_id in report.corrupted_ids:
                print(f"  corrupted_id={row_id}")
    return 2 if corrupted else 0


def main() -> int:
    configure_logging()
    args = _build_parser().parse_args()
    tables = args.table or sorted(SIGNED_MODELS)
    try:
        return _check(tables, args.roll)
    except Exception as exc:  # noqa: BLE001 - surface operational failures in CLI output.
        print(f"check_signatures failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
