"""Deployment preflight for the BatchCost database settings.

Usage:
    python scripts/db_preflight.py

Loads the same settings the service uses and verifies that the database is
reachable and fully migrated. Exits non-zero when any check fails.
"""

from __future__ import annotations

import sys

from pydantic import ValidationError
from sqlalchemy import create_engine, inspect

EXPECTED_TABLES = {
    "products",
    "warehouses",
    "suppliers",
    "cost_item_types",
    "batches",
    "landed_cost_items",
    "inventory",
    "number_sequences",
    "audit_logs",
}


def run() -> int:
    checks: list[tuple[str, bool, str]] = []

    try:
        from batchcost.config import Settings

        settings = Settings()
    except ValidationError as exc:
        print("BatchCost DB Preflight")
        print(f"[FAIL] settings are valid ({exc.errors()[0]['msg']})")
        return 1

    checks.append((
        "settings are valid",
        True,
        f"ENVIRONMENT={settings.ENVIRONMENT}",
    ))

    try:
        engine = create_engine(settings.DATABASE_URL)
        tables = set(inspect(engine).get_table_names())
        checks.append(("database is reachable", True, engine.url.render_as_string(hide_password=True)))
        missing = sorted(EXPECTED_TABLES - tables)
        checks.append((
            "schema is migrated",
            not missing,
            "all tables present" if not missing else f"missing: {', '.join(missing)}",
        ))
        checks.append((
            "alembic version table present",
            "alembic_version" in tables or not settings.is_production,
            "required in production",
        ))
    except Exception as exc:
        checks.append(("database is reachable", False, str(exc)))

    has_failures = False
    print("BatchCost DB Preflight")
    print(f"- environment: {settings.ENVIRONMENT}")
    for title, ok, detail in checks:
        marker = "PASS" if ok else "FAIL"
        print(f"[{marker}] {title} ({detail})")
        if not ok:
            has_failures = True

    if has_failures:
        print("\nPreflight failed. Resolve failed checks before deployment.")
        return 1

    print("\nPreflight passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
