from __future__ import annotations

from typing import Any, Dict, Sequence

from budget_aggregation import summarize_activities, summarize_allocations, totals_by_field, totals_by_quarter
from budget_model import ActivityStatus, AllocationStatus, BudgetActivity, BudgetAllocationItem, ReportSummary


def summarize_report(records: Sequence[BudgetActivity]) -> ReportSummary:
    """
    Fold an already-filtered activity list into the counters shown on report pages.

    Args:
        records: Activities narrowed by `filter_activities`.
    Returns:
        ReportSummary with one count per status (zero for statuses with no records);
        approved activities count as completed.
    Assumptions:
        Pure; an empty input yields zero counts and a 0.0 completion percentage.
    """
    status_counts: Dict[str, int] = {status.value: 0 for status in ActivityStatus}
    total_amount = 0.0
    for record in records:
        status_counts[record.status.value] += 1
        total_amount += record.total

    total_count = len(records)
    completed_count = status_counts[ActivityStatus.APPROVED.value]
    completion_percentage = completed_count / total_count * 100.0 if total_count else 0.0

    return ReportSummary(
        total_count=total_count,
        status_counts=status_counts,
        total_amount=total_amount,
        completed_count=completed_count,
        completion_percentage=completion_percentage,
    )


def dashboard_stats(
    activities: Sequence[BudgetActivity],
    allocations: Sequence[BudgetAllocationItem],
) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard cards and charts.

    Planned figures come from activities; realized (realisasi) figures come from the
    allocation items, which are tracked as a separate collection.
    """
    planned = summarize_activities(activities)
    realized = summarize_allocations(allocations)
    report = summarize_report(activities)

    return {
        "budget": {
            "planned": planned.total_allocated,
            "allocated": realized.total_allocated,
            "realized": realized.total_used,
            "remaining": realized.total_remaining,
            "utilization_percentage": realized.utilization_percentage,
        },
        "activities": {
            "total": report.total_count,
            "active": report.total_count - report.status_counts[ActivityStatus.REJECTED.value],
            "pending_review": report.status_counts[ActivityStatus.SUBMITTED.value],
            "completion_percentage": report.completion_percentage,
        },
        "allocation_status": {
            status.value: sum(1 for item in allocations if item.status is status) for status in AllocationStatus
        },
        "by_quarter": totals_by_quarter(activities),
        "by_field": totals_by_field(activities),
    }
