from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from period_model import PeriodSelection


class ActivityStatus(str, Enum):
    """Review state of a planned activity; set directly by the caller."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class AllocationStatus(str, Enum):
    ON_TRACK = "on-track"
    OVER_BUDGET = "over-budget"
    UNDER_BUDGET = "under-budget"


QUARTER_COUNT = 4
MONTH_COUNT = 12


def _iso(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


@dataclass(slots=True)
class BudgetActivity:
    """
    One planned activity line (kegiatan) of the school budget plan.

    `total` is the manual override when one was supplied, otherwise the sum of
    whichever bucket set is populated. Stores recompute it on every mutation.
    """

    id: str
    activity_name: str
    field_of_activity: str
    standard: str
    funding_source: str
    year: int
    quarter_amounts: List[float]
    total: float
    created_at: datetime
    updated_at: datetime
    status: ActivityStatus = ActivityStatus.DRAFT
    month_amounts: Optional[List[float]] = None
    total_override: Optional[float] = None
    description: Optional[str] = None
    responsible: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "activity_name": self.activity_name,
            "field_of_activity": self.field_of_activity,
            "standard": self.standard,
            "funding_source": self.funding_source,
            "year": self.year,
            "quarter_amounts": list(self.quarter_amounts),
            "month_amounts": list(self.month_amounts) if self.month_amounts is not None else None,
            "total": self.total,
            "total_override": self.total_override,
            "status": self.status.value,
            "description": self.description,
            "responsible": self.responsible,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BudgetActivity":
        month_amounts = record.get("month_amounts")
        return cls(
            id=record["id"],
            activity_name=record["activity_name"],
            field_of_activity=record["field_of_activity"],
            standard=record.get("standard") or "",
            funding_source=record["funding_source"],
            year=int(record["year"]),
            quarter_amounts=[float(amount) for amount in record.get("quarter_amounts") or [0.0] * QUARTER_COUNT],
            month_amounts=[float(amount) for amount in month_amounts] if month_amounts is not None else None,
            total=float(record.get("total") or 0.0),
            total_override=record.get("total_override"),
            status=ActivityStatus(record.get("status") or ActivityStatus.DRAFT.value),
            description=record.get("description"),
            responsible=record.get("responsible"),
            created_at=_parse_timestamp(record["created_at"]),
            updated_at=_parse_timestamp(record["updated_at"]),
        )


@dataclass(slots=True)
class BudgetAllocationItem:
    """Allocated vs. used (realisasi) figures for one activity label and period."""

    id: str
    activity: str
    field_of_activity: str
    standard: str
    allocated_budget: float
    used_budget: float
    remaining_budget: float
    status: AllocationStatus
    period: PeriodSelection
    last_updated: datetime
    responsible: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "activity": self.activity,
            "field_of_activity": self.field_of_activity,
            "standard": self.standard,
            "allocated_budget": self.allocated_budget,
            "used_budget": self.used_budget,
            "remaining_budget": self.remaining_budget,
            "status": self.status.value,
            "period": self.period.to_dict(),
            "responsible": self.responsible,
            "last_updated": _iso(self.last_updated),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BudgetAllocationItem":
        return cls(
            id=record["id"],
            activity=record["activity"],
            field_of_activity=record["field_of_activity"],
            standard=record.get("standard") or "",
            allocated_budget=float(record["allocated_budget"]),
            used_budget=float(record["used_budget"]),
            remaining_budget=float(record["remaining_budget"]),
            status=AllocationStatus(record["status"]),
            period=PeriodSelection.from_dict(record.get("period") or {}),
            responsible=record.get("responsible"),
            last_updated=_parse_timestamp(record["last_updated"]),
        )


@dataclass(slots=True)
class ReferenceRecord:
    """Master-data row: bidang, standar, sumber dana, rekening or komponen."""

    id: str
    code: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    # Code of the owning record, e.g. the bidang a standar belongs to.
    parent_code: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "parent_code": self.parent_code,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ReferenceRecord":
        return cls(
            id=record["id"],
            code=record["code"],
            name=record["name"],
            description=record.get("description"),
            parent_code=record.get("parent_code"),
            created_at=_parse_timestamp(record["created_at"]),
            updated_at=_parse_timestamp(record["updated_at"]),
        )


@dataclass(slots=True)
class UserPreferences:
    """Saved period filter and last visited screen for a user."""

    user_id: str
    period: PeriodSelection = field(default_factory=PeriodSelection)
    last_used_page: Optional[str] = "/rkas-kegiatan"
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "user_id": self.user_id,
            "period": self.period.to_dict(),
            "last_used_page": self.last_used_page,
            "updated_at": _iso(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserPreferences":
        updated_at = record.get("updated_at")
        return cls(
            user_id=record["user_id"],
            period=PeriodSelection.from_dict(record.get("period") or {}),
            last_used_page=record.get("last_used_page"),
            updated_at=_parse_timestamp(updated_at) if updated_at else None,
        )


@dataclass(slots=True)
class BudgetTotals:
    total_allocated: float
    total_used: float
    total_remaining: float
    utilization_percentage: float


@dataclass(slots=True)
class ReportSummary:
    total_count: int
    status_counts: Dict[str, int]
    total_amount: float
    completed_count: int
    completion_percentage: float
