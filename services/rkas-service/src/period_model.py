"""
Period selectors used to scope RKAS budget figures.

Budgets are planned per quarter (triwulan, TW1..TW4) or per month. The lookup
tables below are static; nothing here is derived from the calendar except
`current_budget_year`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple


class PeriodType(str, Enum):
    """Granularity the caller is currently viewing."""

    QUARTERLY = "quarterly"
    MONTHLY = "monthly"


class Quarter(str, Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"

    @property
    def position(self) -> int:
        """Zero-based bucket position of the quarter."""
        return int(self.value[1]) - 1


QUARTER_RANGES = {
    Quarter.Q1: "Jan - Mar",
    Quarter.Q2: "Apr - Jun",
    Quarter.Q3: "Jul - Sep",
    Quarter.Q4: "Okt - Des",
}

QUARTER_LABELS = {
    Quarter.Q1: "Triwulan 1",
    Quarter.Q2: "Triwulan 2",
    Quarter.Q3: "Triwulan 3",
    Quarter.Q4: "Triwulan 4",
}

QUARTER_MONTHS = {
    Quarter.Q1: (1, 2, 3),
    Quarter.Q2: (4, 5, 6),
    Quarter.Q3: (7, 8, 9),
    Quarter.Q4: (10, 11, 12),
}

# (full name, short name), January first.
MONTH_NAMES: Tuple[Tuple[str, str], ...] = (
    ("Januari", "Jan"),
    ("Februari", "Feb"),
    ("Maret", "Mar"),
    ("April", "Apr"),
    ("Mei", "Mei"),
    ("Juni", "Jun"),
    ("Juli", "Jul"),
    ("Agustus", "Agu"),
    ("September", "Sep"),
    ("Oktober", "Okt"),
    ("November", "Nov"),
    ("Desember", "Des"),
)

BUDGET_YEAR_START = 2022
BUDGET_YEAR_END = 2030
DEFAULT_BUDGET_YEAR = 2024


def is_valid_month(month: object) -> bool:
    return isinstance(month, int) and not isinstance(month, bool) and 1 <= month <= 12


def month_name(month: int, short: bool = False) -> str:
    if not is_valid_month(month):
        raise ValueError(f"Month must be between 1 and 12 (received {month!r})")
    full, abbreviated = MONTH_NAMES[month - 1]
    return abbreviated if short else full


def parse_quarter(raw: object) -> Quarter:
    """
    Accept the quarter spellings used across the screens: `Q1`, `TW1`, `1` or a Quarter.
    """
    if isinstance(raw, Quarter):
        return raw
    candidate = str(raw).strip().upper()
    if candidate.startswith("TW"):
        candidate = "Q" + candidate[2:]
    elif candidate.isdigit():
        candidate = "Q" + candidate
    try:
        return Quarter(candidate)
    except ValueError as exc:
        raise ValueError(f"Unknown quarter '{raw}'") from exc


def quarter_of_month(month: int) -> Quarter:
    if not is_valid_month(month):
        raise ValueError(f"Month must be between 1 and 12 (received {month!r})")
    return list(Quarter)[(month - 1) // 3]


def months_of_quarter(quarter: Quarter) -> Tuple[int, int, int]:
    return QUARTER_MONTHS[quarter]


def budget_years(descending: bool = False) -> List[int]:
    years = list(range(BUDGET_YEAR_START, BUDGET_YEAR_END + 1))
    if descending:
        years.reverse()
    return years


def is_valid_budget_year(year: int) -> bool:
    return BUDGET_YEAR_START <= year <= BUDGET_YEAR_END


def current_budget_year(today: Optional[date] = None) -> int:
    """Return this calendar year when it is plannable, else the default budget year."""
    year = (today or date.today()).year
    if is_valid_budget_year(year):
        return year
    return DEFAULT_BUDGET_YEAR


@dataclass(frozen=True, slots=True)
class PeriodSelection:
    """
    The caller's period choice.

    `quarter` and `month` are both kept regardless of `period_type`, so flipping
    between quarterly and monthly views restores the previous pick in each mode.
    """

    period_type: PeriodType = PeriodType.QUARTERLY
    quarter: Optional[Quarter] = Quarter.Q1
    month: Optional[int] = 1
    year: Optional[int] = None

    def with_mode(self, period_type: PeriodType) -> "PeriodSelection":
        return replace(self, period_type=PeriodType(period_type))

    @property
    def active_quarter(self) -> Optional[Quarter]:
        return self.quarter if self.period_type is PeriodType.QUARTERLY else None

    @property
    def active_month(self) -> Optional[int]:
        return self.month if self.period_type is PeriodType.MONTHLY else None

    def to_dict(self) -> dict:
        return {
            "period_type": self.period_type.value,
            "quarter": self.quarter.value if self.quarter else None,
            "month": self.month,
            "year": self.year,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "PeriodSelection":
        quarter = payload.get("quarter")
        month = payload.get("month")
        if month is not None and not is_valid_month(month):
            raise ValueError(f"Month must be between 1 and 12 (received {month!r})")
        year = payload.get("year")
        if year is not None and (not isinstance(year, int) or isinstance(year, bool) or year <= 0):
            raise ValueError(f"Year must be a positive integer (received {year!r})")
        return cls(
            period_type=PeriodType(payload.get("period_type") or PeriodType.QUARTERLY.value),
            quarter=parse_quarter(quarter) if quarter else None,
            month=month,
            year=year,
        )


def period_label(selection: PeriodSelection) -> str:
    """Human label such as `Triwulan 2 (Apr - Jun) 2025` or `Maret 2025`."""
    quarter = selection.active_quarter
    month = selection.active_month
    if quarter is not None:
        label = f"{QUARTER_LABELS[quarter]} ({QUARTER_RANGES[quarter]})"
    elif month is not None:
        label = month_name(month)
    else:
        label = "Semua Periode"
    if selection.year is not None:
        label = f"{label} {selection.year}"
    return label
