#!/usr/bin/env python3
"""Leave Portal database check — verify the store is reachable and populated.

Checks:
  1. A pooled connection can be opened (server time is printed)
  2. Active users per role
  3. The settings rows the login page and leave rules depend on

Usage:
    python scripts/check_db.py
    python scripts/check_db.py --json      # machine-readable output

Exit codes:
    0 = all checks passed
    1 = a query failed
    2 = database unreachable
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from sqlalchemy import text

from leave_portal.common.constants import (
    SETTING_AUTH_MODE,
    SETTING_LEAVE_ADVANCE_DAYS,
    SETTING_LEAVE_SICK_CERT_DAYS,
)
from leave_portal.common.exceptions import DatabaseUnavailableError, QueryExecutionError
from leave_portal.config import settings
from leave_portal.database import Gateway, dispose_engine, get_gateway

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("check_db")

EXIT_OK = 0
EXIT_QUERY_FAILED = 1
EXIT_UNREACHABLE = 2

REQUIRED_SETTINGS = (SETTING_AUTH_MODE, SETTING_LEAVE_ADVANCE_DAYS, SETTING_LEAVE_SICK_CERT_DAYS)

_SERVER_TIME = text("SELECT CURRENT_TIMESTAMP AS server_time")

_ACTIVE_USERS_BY_ROLE = text(
    """
    SELECT role, COUNT(*) AS total
    FROM users
    WHERE is_active = :active
    GROUP BY role
    ORDER BY role
    """
)

_SETTING_KEYS = text("SELECT setting_key FROM system_settings")


# ══════════════════════════════════════════════════════════════════════
# Checks
# ══════════════════════════════════════════════════════════════════════

async def run_checks(gateway: Gateway) -> dict[str, Any]:
    """Run every check; raises ``DataAccessError`` subclasses on failure."""
    server_time = (await gateway.query(_SERVER_TIME))[0]["server_time"]
    role_rows = await gateway.query(_ACTIVE_USERS_BY_ROLE, {"active": True})
    present = {row["setting_key"] for row in await gateway.query(_SETTING_KEYS)}
    return {
        "server_time": str(server_time),
        "active_users_by_role": {row["role"]: row["total"] for row in role_rows},
        "missing_settings": [key for key in REQUIRED_SETTINGS if key not in present],
    }


def _print_report(report: dict[str, Any]) -> None:
    print(f"\n{'=' * 60}")
    print(f"  DATABASE CHECK — {settings.DB_SERVER}/{settings.DB_NAME}")
    print(f"  Server time : {report['server_time']}")
    print(f"{'=' * 60}")
    print("  Active users by role:")
    for role, total in report["active_users_by_role"].items():
        print(f"    {role:<10} {total}")
    if report["missing_settings"]:
        print(f"  Missing settings (defaults apply): {', '.join(report['missing_settings'])}")
    print()


async def _main(as_json: bool) -> int:
    try:
        report = await run_checks(get_gateway())
    except DatabaseUnavailableError:
        logger.exception("Database unreachable")
        return EXIT_UNREACHABLE
    except QueryExecutionError:
        logger.exception("Diagnostic query failed")
        return EXIT_QUERY_FAILED
    finally:
        await dispose_engine()

    if as_json:
        print(json.dumps(report, indent=2))
    else:
        _print_report(report)
    return EXIT_OK


def main() -> None:
    parser = argparse.ArgumentParser(description="Leave Portal database connectivity check")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()
    sys.exit(asyncio.run(_main(args.json)))


if __name__ == "__main__":
    main()
