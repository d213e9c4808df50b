"""Command-line bulk operations against the Auth0 tenant.

This module serves as a CLI wrapper around user_admin.core.provisioning_service.

Examples:
    python scripts/bulk.py create --csv users.csv
    python scripts/bulk.py create --csv users.csv --criteria role --role teacher
    python scripts/bulk.py delete --criteria role --role student
    python scripts/bulk.py delete --criteria all --confirm
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from user_admin.core import provisioning_service
from user_admin.core.batch import BulkSetupError
from user_admin.core.criteria import CriteriaError, parse_deletion_criterion, parse_import_criterion


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Auth0 bulk user helper")
    parser.add_argument("--operator", default="automation",
                        help="Operator name recorded in the audit trail")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sc = sub.add_parser("create", help="Create users from a CSV file")
    sc.add_argument("--csv", required=True, help="CSV with email,password,role,given_name,family_name,name")
    sc.add_argument("--criteria", choices=["all", "role"], default="all")
    sc.add_argument("--role")

    sd = sub.add_parser("delete", help="Delete users by criterion")
    sd.add_argument("--criteria", choices=["all", "role"], required=True)
    sd.add_argument("--role")
    sd.add_argument("--confirm", action="store_true", help="Required with --criteria all")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        if args.cmd == "create":
            criterion = parse_import_criterion({"criteria": args.criteria, "role": args.role})
            result = provisioning_service.bulk_create_users(
                args.csv, criterion, operator=args.operator, delete_file=False,
            )
        else:
            payload = {"criteria": args.criteria, "role": args.role, "confirm": args.confirm}
            criterion = parse_deletion_criterion(payload)
            result = provisioning_service.bulk_delete_users(criterion, operator=args.operator)
    except CriteriaError as e:
        print(f"[{args.cmd}] {e.error}: {e.message}", file=sys.stderr)
        return 2
    except BulkSetupError as e:
        print(f"[{args.cmd}] Error: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0 if not result.get("failureCount", result.get("failedCount", 0)) else 1


if __name__ == "__main__":
    sys.exit(main())
