#!/usr/bin/env python3
"""
Seed the RKAS database with master data and demo activities.

Uses the same database URL resolution as the service (RKAS_DB_URL, falling back
to the bundled SQLite file), creating tables first when they are missing.
"""

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SERVICES_ROOT = REPO_ROOT / "services"
sys.path.insert(0, str(SERVICES_ROOT / "rkas-service" / "src"))
sys.path.insert(1, str(SERVICES_ROOT))

from period_model import BUDGET_YEAR_END, BUDGET_YEAR_START, current_budget_year, is_valid_budget_year  # noqa: E402
from persistence.database import SessionLocal, get_database_url, get_engine, init_db  # noqa: E402
from persistence.repository import SqlAlchemyDataAccess  # noqa: E402
from sample_data import seed_sample_data  # noqa: E402
from shared.observability.telemetry import configure_logging  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Seed the RKAS database with demo data")
    parser.add_argument("--year", type=int, default=current_budget_year(), help="Budget year for the demo activities")
    parser.add_argument("--count", type=int, default=12, help="Number of demo activities (default: 12)")
    parser.add_argument("--seed", type=int, default=2025, help="Random seed for the generated amounts")

    args = parser.parse_args()

    if not is_valid_budget_year(args.year):
        parser.error(f"--year must be between {BUDGET_YEAR_START} and {BUDGET_YEAR_END} (received {args.year})")

    configure_logging("rkas-seed")
    engine = get_engine()
    init_db(engine)

    with SessionLocal(bind=engine) as session:
        result = seed_sample_data(SqlAlchemyDataAccess(session), year=args.year, activity_count=args.count, seed=args.seed)

    print(f"Seeded {get_database_url()}")
    print(f"  reference records: {result.reference_records}")
    print(f"  activities:        {result.activities}")
    print(f"  allocations:       {result.allocations}")


if __name__ == "__main__":
    main()
