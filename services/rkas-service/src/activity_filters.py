"""
Pure filtering for the kegiatan and anggaran tables.

Every criterion is optional and all supplied criteria must hold. Inputs are
never mutated and the relative order of records is preserved, so filtering a
filtered list with the same criteria returns it unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, TypeVar, Union

from budget_aggregation import month_amount, quarter_amount
from budget_model import ActivityStatus, AllocationStatus, BudgetActivity, BudgetAllocationItem
from period_model import (
    PeriodSelection,
    PeriodType,
    Quarter,
    is_valid_month,
    months_of_quarter,
    parse_quarter,
    quarter_of_month,
)

ALL = "all"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    search_text: Optional[str] = None
    status: Optional[Union[str, ActivityStatus, AllocationStatus]] = None
    field_of_activity: Optional[str] = None
    year: Optional[int] = None
    period_type: Optional[PeriodType] = None
    quarter: Optional[Quarter] = None
    month: Optional[int] = None

    def __post_init__(self) -> None:
        if self.period_type is not None:
            object.__setattr__(self, "period_type", PeriodType(self.period_type))
        if self.quarter is not None:
            object.__setattr__(self, "quarter", parse_quarter(self.quarter))
        if self.month is not None and not is_valid_month(self.month):
            raise ValueError(f"Month must be between 1 and 12 (received {self.month!r})")

    @classmethod
    def for_period(cls, selection: PeriodSelection, **criteria) -> "FilterCriteria":
        """Criteria scoped to a saved/selected period (including its year)."""
        return cls(
            year=selection.year,
            period_type=selection.period_type,
            quarter=selection.quarter,
            month=selection.month,
            **criteria,
        )


@dataclass(slots=True)
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_items: int = 0
    total_pages: int = 0


def _needle(search_text: Optional[str]) -> Optional[str]:
    if search_text is None:
        return None
    stripped = search_text.strip().lower()
    return stripped or None


def _matches_choice(value: str, wanted: object) -> bool:
    if wanted is None:
        return True
    wanted_value = getattr(wanted, "value", wanted)
    return wanted_value == ALL or value == wanted_value


def _matches_text(needle: Optional[str], *haystacks: Optional[str]) -> bool:
    if needle is None:
        return True
    return any(needle in haystack.lower() for haystack in haystacks if haystack)


def activity_in_period(record: BudgetActivity, criteria: FilterCriteria) -> bool:
    """
    True when the record plans money in the selected quarter/month.

    Without a period type, or without the quarter/month that type needs, every
    record is in scope.
    """
    if criteria.period_type == PeriodType.QUARTERLY and criteria.quarter is not None:
        return quarter_amount(record, criteria.quarter) > 0
    if criteria.period_type == PeriodType.MONTHLY and criteria.month is not None:
        return month_amount(record, criteria.month) > 0
    return True


def allocation_in_period(item: BudgetAllocationItem, criteria: FilterCriteria) -> bool:
    period = item.period
    if criteria.period_type == PeriodType.QUARTERLY and criteria.quarter is not None:
        if period.period_type == PeriodType.MONTHLY and period.month is not None:
            return quarter_of_month(period.month) == criteria.quarter
        return period.quarter == criteria.quarter
    if criteria.period_type == PeriodType.MONTHLY and criteria.month is not None:
        if period.period_type == PeriodType.QUARTERLY and period.quarter is not None:
            return criteria.month in months_of_quarter(period.quarter)
        return period.month == criteria.month
    return True


def filter_activities(records: Sequence[BudgetActivity], criteria: Optional[FilterCriteria] = None) -> List[BudgetActivity]:
    """Narrow activities by text, status, bidang, year and period."""
    criteria = criteria or FilterCriteria()
    needle = _needle(criteria.search_text)
    return [
        record
        for record in records
        if _matches_text(needle, record.activity_name, record.field_of_activity, record.description)
        and _matches_choice(record.status.value, criteria.status)
        and _matches_choice(record.field_of_activity, criteria.field_of_activity)
        and (criteria.year is None or record.year == criteria.year)
        and activity_in_period(record, criteria)
    ]


def filter_allocations(
    items: Sequence[BudgetAllocationItem], criteria: Optional[FilterCriteria] = None
) -> List[BudgetAllocationItem]:
    """Narrow allocation items; the period check runs against each item's own period."""
    criteria = criteria or FilterCriteria()
    needle = _needle(criteria.search_text)
    return [
        item
        for item in items
        if _matches_text(needle, item.activity, item.field_of_activity, item.standard, item.responsible)
        and _matches_choice(item.status.value, criteria.status)
        and _matches_choice(item.field_of_activity, criteria.field_of_activity)
        and (criteria.year is None or item.period.year == criteria.year)
        and allocation_in_period(item, criteria)
    ]


def paginate(records: Sequence[T], page: int = 1, page_size: int = 10) -> Page[T]:
    """Slice one page out of `records`; out-of-range pages come back empty."""
    page_size = max(1, page_size)
    page = max(1, page)
    total_items = len(records)
    start = (page - 1) * page_size
    return Page(
        items=list(records[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
    )
