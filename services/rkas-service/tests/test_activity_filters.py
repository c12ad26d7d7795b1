from datetime import datetime, timezone
from typing import List, Optional

import pytest
from activity_filters import ALL, FilterCriteria, filter_activities, filter_allocations, paginate
from budget_aggregation import derive_allocation_status
from budget_model import ActivityStatus, BudgetActivity, BudgetAllocationItem
from period_model import PeriodSelection, PeriodType, Quarter

NOW = datetime(2025, 1, 15, tzinfo=timezone.utc)


def make_activity(
    suffix: str,
    name: str,
    field: str,
    quarters: List[float],
    status: ActivityStatus = ActivityStatus.DRAFT,
    year: int = 2025,
    months: Optional[List[float]] = None,
    description: Optional[str] = None,
) -> BudgetActivity:
    return BudgetActivity(
        id=f"activity-{suffix}",
        activity_name=name,
        field_of_activity=field,
        standard="Standar Isi",
        funding_source="3.02.01",
        year=year,
        quarter_amounts=quarters,
        month_amounts=months,
        total=sum(quarters) or sum(months or []),
        status=status,
        description=description,
        created_at=NOW,
        updated_at=NOW,
    )


def make_item(suffix: str, activity: str, period: PeriodSelection, responsible: Optional[str] = None):
    return BudgetAllocationItem(
        id=f"item-{suffix}",
        activity=activity,
        field_of_activity="Kurikulum",
        standard="Standar Proses",
        allocated_budget=10_000_000,
        used_budget=6_000_000,
        remaining_budget=4_000_000,
        status=derive_allocation_status(10_000_000, 6_000_000),
        period=period,
        responsible=responsible,
        last_updated=NOW,
    )


@pytest.fixture
def records() -> List[BudgetActivity]:
    return [
        make_activity("1", "Pengembangan Perpustakaan", "Sarana Prasarana", [5, 0, 0, 1], ActivityStatus.APPROVED),
        make_activity("2", "Lomba Sains", "Kesiswaan", [0, 2, 0, 0], ActivityStatus.SUBMITTED, description="OSN"),
        make_activity("3", "Workshop Kurikulum", "Kurikulum", [1, 1, 1, 1], ActivityStatus.REJECTED, year=2024),
        make_activity(
            "4",
            "Honor Guru",
            "Kurikulum",
            [0, 0, 0, 0],
            months=[0, 0, 0, 0, 0, 3, 0, 0, 0, 0, 0, 0],
        ),
    ]


def test_no_criteria_returns_every_record_in_order(records) -> None:
    assert filter_activities(records) == records
    assert filter_activities(records, FilterCriteria(status=ALL, field_of_activity=ALL)) == records


def test_search_is_case_insensitive_over_name_field_and_description(records) -> None:
    assert [r.id for r in filter_activities(records, FilterCriteria(search_text="PERPUS"))] == ["activity-1"]
    assert [r.id for r in filter_activities(records, FilterCriteria(search_text="kurikulum"))] == [
        "activity-3",
        "activity-4",
    ]
    assert [r.id for r in filter_activities(records, FilterCriteria(search_text="osn"))] == ["activity-2"]
    assert filter_activities(records, FilterCriteria(search_text="   ")) == records


def test_status_field_and_year_combine(records) -> None:
    criteria = FilterCriteria(status="submitted", field_of_activity="Kesiswaan", year=2025)
    assert [r.id for r in filter_activities(records, criteria)] == ["activity-2"]

    assert [r.id for r in filter_activities(records, FilterCriteria(year=2024))] == ["activity-3"]
    assert filter_activities(records, FilterCriteria(status=ActivityStatus.APPROVED, year=2024)) == []


def test_quarter_scope_keeps_records_with_money_in_the_quarter(records) -> None:
    q2 = FilterCriteria(period_type=PeriodType.QUARTERLY, quarter=Quarter.Q2)
    assert [r.id for r in filter_activities(records, q2)] == ["activity-2", "activity-3", "activity-4"]

    tw4 = FilterCriteria(period_type="quarterly", quarter="TW4")
    assert [r.id for r in filter_activities(records, tw4)] == ["activity-1", "activity-3"]


def test_month_scope_reads_month_buckets_or_containing_quarter(records) -> None:
    june = FilterCriteria(period_type=PeriodType.MONTHLY, month=6)
    assert [r.id for r in filter_activities(records, june)] == ["activity-2", "activity-3", "activity-4"]

    january = FilterCriteria(period_type=PeriodType.MONTHLY, month=1)
    assert [r.id for r in filter_activities(records, january)] == ["activity-1", "activity-3"]


def test_filtering_is_idempotent_and_does_not_mutate(records) -> None:
    snapshot = list(records)
    criteria = FilterCriteria(search_text="a", period_type=PeriodType.QUARTERLY, quarter=Quarter.Q1)

    once = filter_activities(records, criteria)
    assert filter_activities(once, criteria) == once
    assert records == snapshot


def test_for_period_carries_selection_and_extra_criteria(records) -> None:
    selection = PeriodSelection(period_type=PeriodType.QUARTERLY, quarter=Quarter.Q1, year=2025)
    criteria = FilterCriteria.for_period(selection, status="approved")

    assert [r.id for r in filter_activities(records, criteria)] == ["activity-1"]


def test_allocation_period_matches_across_granularities() -> None:
    items = [
        make_item("q2", "Pengadaan Buku", PeriodSelection(quarter=Quarter.Q2, month=None, year=2025)),
        make_item(
            "may",
            "Honor Pelatih",
            PeriodSelection(period_type=PeriodType.MONTHLY, quarter=None, month=5, year=2025),
            responsible="Bu Sari",
        ),
        make_item("q3", "Renovasi Lab", PeriodSelection(quarter=Quarter.Q3, month=None, year=2024)),
    ]

    q2 = FilterCriteria(period_type=PeriodType.QUARTERLY, quarter=Quarter.Q2)
    assert [item.id for item in filter_allocations(items, q2)] == ["item-q2", "item-may"]

    april = FilterCriteria(period_type=PeriodType.MONTHLY, month=4)
    assert [item.id for item in filter_allocations(items, april)] == ["item-q2"]

    assert [item.id for item in filter_allocations(items, FilterCriteria(search_text="sari"))] == ["item-may"]
    assert [item.id for item in filter_allocations(items, FilterCriteria(year=2024))] == ["item-q3"]
    assert [item.id for item in filter_allocations(items, FilterCriteria(status="on-track"))] == [
        "item-q2",
        "item-may",
        "item-q3",
    ]


def test_invalid_quarter_in_criteria_raises() -> None:
    with pytest.raises(ValueError):
        FilterCriteria(period_type=PeriodType.QUARTERLY, quarter="Q7")


@pytest.mark.parametrize("month", [0, 13, -1])
def test_out_of_range_month_in_criteria_raises(month) -> None:
    with pytest.raises(ValueError):
        FilterCriteria(period_type=PeriodType.MONTHLY, month=month)


def test_paginate_slices_and_counts_pages() -> None:
    rows = list(range(23))

    first = paginate(rows, page=1, page_size=10)
    last = paginate(rows, page=3, page_size=10)
    beyond = paginate(rows, page=4, page_size=10)

    assert first.items == list(range(10))
    assert first.total_pages == 3
    assert last.items == [20, 21, 22]
    assert beyond.items == []
    assert beyond.total_items == 23
    assert paginate([], page=1, page_size=10).total_pages == 0
