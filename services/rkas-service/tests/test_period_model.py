from datetime import date

import pytest
from period_model import (
    PeriodSelection,
    PeriodType,
    Quarter,
    budget_years,
    current_budget_year,
    month_name,
    months_of_quarter,
    parse_quarter,
    period_label,
    quarter_of_month,
)


@pytest.mark.parametrize("raw", ["Q2", "q2", "TW2", "tw2", "2", 2, Quarter.Q2])
def test_parse_quarter_accepts_screen_spellings(raw) -> None:
    assert parse_quarter(raw) is Quarter.Q2


@pytest.mark.parametrize("raw", ["Q5", "TW0", "", "kuartal"])
def test_parse_quarter_rejects_unknown_values(raw) -> None:
    with pytest.raises(ValueError):
        parse_quarter(raw)


def test_quarter_and_month_lookups_agree() -> None:
    for quarter in Quarter:
        for month in months_of_quarter(quarter):
            assert quarter_of_month(month) is quarter
    assert Quarter.Q4.position == 3


def test_month_names_are_indonesian() -> None:
    assert month_name(3) == "Maret"
    assert month_name(10, short=True) == "Okt"
    with pytest.raises(ValueError):
        month_name(13)


def test_budget_years_cover_planning_window() -> None:
    years = budget_years()
    assert years[0] == 2022
    assert years[-1] == 2030
    assert budget_years(descending=True)[0] == 2030


def test_current_budget_year_falls_back_outside_window() -> None:
    assert current_budget_year(date(2026, 5, 1)) == 2026
    assert current_budget_year(date(2035, 1, 1)) == 2024


def test_switching_mode_keeps_both_picks() -> None:
    selection = PeriodSelection(period_type=PeriodType.QUARTERLY, quarter=Quarter.Q3, month=8, year=2025)

    monthly = selection.with_mode(PeriodType.MONTHLY)
    assert monthly.active_month == 8
    assert monthly.active_quarter is None

    back = monthly.with_mode(PeriodType.QUARTERLY)
    assert back.active_quarter is Quarter.Q3
    assert back == selection


def test_period_selection_dict_round_trip_and_validation() -> None:
    selection = PeriodSelection(period_type=PeriodType.MONTHLY, quarter=None, month=12, year=2024)
    assert PeriodSelection.from_dict(selection.to_dict()) == selection

    restored = PeriodSelection.from_dict({"period_type": "quarterly", "quarter": "TW4"})
    assert restored.quarter is Quarter.Q4
    assert restored.month is None

    with pytest.raises(ValueError):
        PeriodSelection.from_dict({"period_type": "monthly", "month": 0})


@pytest.mark.parametrize("year", ["2025", 0, -2025, 2025.0, True])
def test_period_selection_rejects_non_positive_integer_year(year) -> None:
    with pytest.raises(ValueError):
        PeriodSelection.from_dict({"period_type": "quarterly", "quarter": "Q1", "year": year})


def test_period_label_formats_each_mode() -> None:
    assert period_label(PeriodSelection(quarter=Quarter.Q2, year=2025)) == "Triwulan 2 (Apr - Jun) 2025"
    assert period_label(PeriodSelection(period_type=PeriodType.MONTHLY, month=3, year=2025)) == "Maret 2025"
    assert period_label(PeriodSelection(quarter=None)) == "Semua Periode"
