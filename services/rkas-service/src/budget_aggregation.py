from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from budget_model import AllocationStatus, BudgetActivity, BudgetAllocationItem, BudgetTotals
from period_model import PeriodSelection, Quarter, is_valid_month, months_of_quarter, quarter_of_month

OVER_BUDGET_RATIO = 0.95
UNDER_BUDGET_RATIO = 0.50


def utilization_percentage(allocated: float, used: float) -> float:
    """
    Percentage of the allocation already spent.

    Returns 0.0 when nothing is allocated so dashboards never show NaN/Infinity.
    """
    if allocated <= 0:
        return 0.0
    return float(used) / float(allocated) * 100.0


def derive_allocation_status(allocated: float, used: float) -> AllocationStatus:
    """
    Classify an allocation by its usage ratio.

    Above 95% is over budget, below 50% is under budget; both boundaries belong to
    on-track. With nothing allocated, any spending counts as over budget.
    """
    if allocated <= 0:
        return AllocationStatus.OVER_BUDGET if used > 0 else AllocationStatus.UNDER_BUDGET

    ratio = float(used) / float(allocated)
    if ratio > OVER_BUDGET_RATIO:
        return AllocationStatus.OVER_BUDGET
    if ratio < UNDER_BUDGET_RATIO:
        return AllocationStatus.UNDER_BUDGET
    return AllocationStatus.ON_TRACK


def summarize_allocations(items: Iterable[BudgetAllocationItem]) -> BudgetTotals:
    """
    Fold allocation items into allocated/used/remaining totals.

    Args:
        items: Allocation items, usually already narrowed by `filter_allocations`.
    Returns:
        BudgetTotals; every figure is zero for an empty input.
    """
    total_allocated = 0.0
    total_used = 0.0
    for item in items:
        total_allocated += item.allocated_budget
        total_used += item.used_budget

    return BudgetTotals(
        total_allocated=total_allocated,
        total_used=total_used,
        total_remaining=total_allocated - total_used,
        utilization_percentage=utilization_percentage(total_allocated, total_used),
    )


def summarize_activities(records: Iterable[BudgetActivity]) -> BudgetTotals:
    """Planned totals for activities; activities carry no realized amount, so used is zero."""
    total_allocated = float(sum(record.total for record in records))
    return BudgetTotals(
        total_allocated=total_allocated,
        total_used=0.0,
        total_remaining=total_allocated,
        utilization_percentage=0.0,
    )


def _has_months(record: BudgetActivity) -> bool:
    return bool(record.month_amounts) and sum(record.month_amounts) > 0


def quarter_amount(record: BudgetActivity, quarter: Quarter) -> float:
    """Amount planned in a quarter, read from the quarter bucket or the three month buckets."""
    planned = record.quarter_amounts[quarter.position] if len(record.quarter_amounts) > quarter.position else 0.0
    if planned > 0 or not _has_months(record):
        return float(planned)
    return float(sum(record.month_amounts[month - 1] for month in months_of_quarter(quarter)))


def month_amount(record: BudgetActivity, month: int) -> float:
    """
    Amount planned in a month.

    Records planned only per quarter report the amount of the quarter containing the month.
    Months outside 1..12 hold nothing.
    """
    if not is_valid_month(month):
        return 0.0
    if _has_months(record):
        return float(record.month_amounts[month - 1])
    return quarter_amount(record, quarter_of_month(month))


def activity_period_amount(record: BudgetActivity, selection: Optional[PeriodSelection]) -> float:
    """Amount of `record` that falls in the selected period; the full total without a selection."""
    if selection is None:
        return record.total
    if selection.active_quarter is not None:
        return quarter_amount(record, selection.active_quarter)
    if selection.active_month is not None:
        return month_amount(record, selection.active_month)
    return record.total


def totals_by_quarter(records: Sequence[BudgetActivity]) -> Dict[str, float]:
    """Planned amount per quarter across records, keyed Q1..Q4 (chart series)."""
    return {quarter.value: float(sum(quarter_amount(record, quarter) for record in records)) for quarter in Quarter}


def totals_by_field(records: Iterable[BudgetActivity]) -> Dict[str, float]:
    """Planned totals per bidang, in first-seen order."""
    totals: Dict[str, float] = OrderedDict()
    for record in records:
        totals[record.field_of_activity] = totals.get(record.field_of_activity, 0.0) + record.total
    return dict(totals)


def allocation_breakdown_by_field(items: Iterable[BudgetAllocationItem]) -> Dict[str, BudgetTotals]:
    grouped: Dict[str, List[BudgetAllocationItem]] = OrderedDict()
    for item in items:
        grouped.setdefault(item.field_of_activity, []).append(item)
    return {field_name: summarize_allocations(group) for field_name, group in grouped.items()}
