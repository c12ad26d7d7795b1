"""
Demo data for a fresh RKAS database.

Amounts are derived from the year and a seeded RNG so repeated runs produce the
same plan, which keeps screenshots and smoke checks comparable.
"""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from typing import List

from errors import NotFoundError
from period_model import PeriodSelection, PeriodType, Quarter
from persistence.data_access import FIELDS_OF_ACTIVITY, FUNDING_SOURCES, NATIONAL_STANDARDS, DataAccess
from record_store import ActivityRecordStore, BudgetAllocationStore, ReferenceDataStore

logger = logging.getLogger(__name__)

FIELDS = (
    ("01", "Kurikulum"),
    ("02", "Kesiswaan"),
    ("03", "Sarana Prasarana"),
    ("04", "Pendidik & Tenaga Kependidikan"),
    ("05", "Pembiayaan"),
)

STANDARDS = (
    ("1", "Standar Kompetensi Lulusan", "01"),
    ("2", "Standar Isi", "01"),
    ("3", "Standar Proses", "01"),
    ("4", "Standar Penilaian", "01"),
    ("5", "Standar Pendidik dan Tenaga Kependidikan", "04"),
    ("6", "Standar Sarana dan Prasarana", "03"),
    ("7", "Standar Pengelolaan", "02"),
    ("8", "Standar Pembiayaan", "05"),
)

FUNDING_SOURCE_ROWS = (
    ("3.02.01", "BOP Reguler"),
    ("3.02.02", "BOS Kinerja"),
)


@dataclass(slots=True)
class SeedResult:
    reference_records: int = 0
    activities: int = 0
    allocations: int = 0


def seed_sample_data(data_access: DataAccess, year: int, activity_count: int = 12, seed: int = 2025) -> SeedResult:
    """
    Populate master data plus `activity_count` activities and matching allocations.

    Reference rows that already exist (same code) are skipped, so the function can
    run against a partially seeded database.
    """
    rng = random.Random(seed)
    result = SeedResult()

    for collection, rows in (
        (FIELDS_OF_ACTIVITY, [{"code": code, "name": name} for code, name in FIELDS]),
        (
            NATIONAL_STANDARDS,
            [{"code": code, "name": name, "parent_code": parent} for code, name, parent in STANDARDS],
        ),
        (FUNDING_SOURCES, [{"code": code, "name": name} for code, name in FUNDING_SOURCE_ROWS]),
    ):
        store = ReferenceDataStore(data_access, collection)
        for row in rows:
            try:
                store.find_by_code(row["code"])
            except NotFoundError:
                store.create(row)
                result.reference_records += 1

    activities = ActivityRecordStore(data_access)
    allocations = BudgetAllocationStore(data_access)
    quarters: List[Quarter] = list(Quarter)
    for index in range(1, activity_count + 1):
        _, field_name = rng.choice(FIELDS)
        _, standard_name, _ = rng.choice(STANDARDS)
        funding_code, _ = rng.choice(FUNDING_SOURCE_ROWS)
        quarter_amounts = [float(rng.randrange(0, 30) * 1_000_000) for _ in quarters]
        if sum(quarter_amounts) == 0:
            quarter_amounts[0] = 5_000_000.0

        activity = activities.create(
            {
                "activity_name": f"Kegiatan {field_name} {index}",
                "field_of_activity": field_name,
                "standard": standard_name,
                "funding_source": funding_code,
                "year": year,
                "quarter_amounts": quarter_amounts,
                "description": f"Kegiatan {field_name} sesuai {standard_name}.",
                "responsible": f"Koordinator {field_name}",
            }
        )
        result.activities += 1

        quarter = quarters[index % len(quarters)]
        allocated = activity.total
        allocations.create(
            {
                "activity": activity.activity_name,
                "field_of_activity": field_name,
                "standard": standard_name,
                "allocated_budget": allocated,
                "used_budget": round(allocated * rng.uniform(0.2, 1.05), -3),
                "period": PeriodSelection(period_type=PeriodType.QUARTERLY, quarter=quarter, month=None, year=year),
                "responsible": activity.responsible,
            }
        )
        result.allocations += 1

    logger.info({"event": "sample_data_seeded", "year": year, **asdict(result)})
    return result
