"""
Record stores for RKAS activities, budget allocations, master data and user preferences.

Each store owns validation and derived-field recomputation for one collection and
delegates persistence to an injected DataAccess, so tests can hand every store
its own InMemoryDataAccess.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from budget_aggregation import derive_allocation_status
from budget_model import (
    MONTH_COUNT,
    QUARTER_COUNT,
    ActivityStatus,
    BudgetActivity,
    BudgetAllocationItem,
    ReferenceRecord,
    UserPreferences,
)
from errors import NotFoundError, ValidationError
from period_model import PeriodSelection, PeriodType, current_budget_year, is_valid_month, parse_quarter
from persistence.data_access import (
    ACTIVITIES,
    BUDGET_ALLOCATION_ITEMS,
    REFERENCE_COLLECTIONS,
    USER_PREFERENCES,
    DataAccess,
)
from shared.observability.privacy import redact_fields

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Field checks shared by the stores. Each appends to `errors` instead of raising
# so one ValidationError can report every bad field at once.
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_text(errors: Dict[str, str], fields: Mapping[str, Any], name: str, *, required: bool) -> None:
    if name not in fields:
        if required:
            errors[name] = "This field is required."
        return
    value = fields[name]
    if not isinstance(value, str) or not value.strip():
        errors[name] = "This field is required." if required else "Must be a non-empty string."


def _check_optional_text(errors: Dict[str, str], fields: Mapping[str, Any], name: str) -> None:
    value = fields.get(name)
    if value is not None and not isinstance(value, str):
        errors[name] = "Must be a string."


def _check_amount(
    errors: Dict[str, str], fields: Mapping[str, Any], name: str, *, required: bool, nullable: bool = True
) -> None:
    if name not in fields:
        if required:
            errors[name] = "This field is required."
        return
    value = fields[name]
    if value is None:
        if required or not nullable:
            errors[name] = "This field is required."
        return
    if not _is_number(value):
        errors[name] = "Must be a number."
    elif value < 0:
        errors[name] = "Must not be negative."


def _check_buckets(errors: Dict[str, str], fields: Mapping[str, Any], name: str, size: int, *, nullable: bool) -> None:
    if name not in fields:
        return
    value = fields[name]
    if value is None:
        if not nullable:
            errors[name] = f"Expected {size} amounts."
        return
    if not isinstance(value, (list, tuple)) or len(value) != size:
        errors[name] = f"Expected {size} amounts."
        return
    for position, amount in enumerate(value):
        if not _is_number(amount):
            errors[name] = f"Amount #{position + 1} must be a number."
            return
        if amount < 0:
            errors[name] = f"Amount #{position + 1} must not be negative."
            return


def _check_year(errors: Dict[str, str], fields: Mapping[str, Any]) -> None:
    if "year" not in fields:
        return
    year = fields["year"]
    if not isinstance(year, int) or isinstance(year, bool) or year <= 0:
        errors["year"] = "Must be a positive integer year."


def _check_unknown(errors: Dict[str, str], fields: Mapping[str, Any], allowed: Sequence[str]) -> None:
    for name in fields:
        if name not in allowed:
            errors[name] = "Unknown or read-only field."


def _raise_if_errors(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)


# ---------------------------------------------------------------------------
# Activities (kegiatan)
# ---------------------------------------------------------------------------

ACTIVITY_REQUIRED_FIELDS = ("activity_name", "field_of_activity", "funding_source")
ACTIVITY_INPUT_FIELDS = (
    "activity_name",
    "field_of_activity",
    "standard",
    "funding_source",
    "year",
    "quarter_amounts",
    "month_amounts",
    "total_override",
    "total",
    "status",
    "description",
    "responsible",
)


def compute_activity_total(
    quarter_amounts: Sequence[float],
    month_amounts: Optional[Sequence[float]],
    total_override: Optional[float],
) -> float:
    """
    Resolve an activity's total.

    A manual override always wins. Otherwise the quarter buckets are summed, falling
    back to the month buckets when the quarters hold nothing.
    """
    if total_override is not None:
        return float(total_override)
    quarter_sum = float(sum(quarter_amounts))
    if quarter_sum > 0 or not month_amounts:
        return quarter_sum
    return float(sum(month_amounts))


def _normalize_activity_input(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Fold the `total` alias into `total_override` (callers type a total straight into the form)."""
    normalized = dict(fields)
    if "total" in normalized:
        alias = normalized.pop("total")
        normalized.setdefault("total_override", alias)
    return normalized


def _validate_activity(fields: Mapping[str, Any], *, creating: bool) -> None:
    errors: Dict[str, str] = {}
    _check_unknown(errors, fields, ACTIVITY_INPUT_FIELDS)
    for name in ACTIVITY_REQUIRED_FIELDS:
        _check_text(errors, fields, name, required=creating)
    for name in ("standard", "description", "responsible"):
        _check_optional_text(errors, fields, name)
    _check_year(errors, fields)
    _check_buckets(errors, fields, "quarter_amounts", QUARTER_COUNT, nullable=False)
    _check_buckets(errors, fields, "month_amounts", MONTH_COUNT, nullable=True)
    _check_amount(errors, fields, "total_override", required=False)
    if "status" in fields:
        try:
            ActivityStatus(fields["status"])
        except ValueError:
            errors["status"] = "Must be one of: " + ", ".join(status.value for status in ActivityStatus)
    _raise_if_errors(errors)


def _require_positive_plan(activity: BudgetActivity) -> None:
    quarter_sum = sum(activity.quarter_amounts)
    month_sum = sum(activity.month_amounts or [])
    override = activity.total_override or 0
    if quarter_sum <= 0 and month_sum <= 0 and override <= 0:
        raise ValidationError({"quarter_amounts": "At least one planned amount must be greater than zero."})


class ActivityRecordStore:
    """CRUD over BudgetActivity records with `total` kept in sync with the buckets."""

    collection = ACTIVITIES

    def __init__(self, data_access: DataAccess, clock: Clock = utc_now) -> None:
        self._data = data_access
        self._clock = clock

    def list(self) -> List[BudgetActivity]:
        return [BudgetActivity.from_record(record) for record in self._data.list(self.collection)]

    def get(self, activity_id: str) -> BudgetActivity:
        return BudgetActivity.from_record(self._data.get(self.collection, activity_id))

    def create(self, fields: Mapping[str, Any]) -> BudgetActivity:
        payload = _normalize_activity_input(fields)
        _validate_activity(payload, creating=True)

        now = self._clock()
        quarter_amounts = [float(amount) for amount in payload.get("quarter_amounts") or [0.0] * QUARTER_COUNT]
        month_amounts = payload.get("month_amounts")
        if month_amounts is not None:
            month_amounts = [float(amount) for amount in month_amounts]
        total_override = payload.get("total_override")
        if total_override is not None:
            total_override = float(total_override)

        activity = BudgetActivity(
            id=str(uuid4()),
            activity_name=payload["activity_name"].strip(),
            field_of_activity=payload["field_of_activity"].strip(),
            standard=(payload.get("standard") or "").strip(),
            funding_source=payload["funding_source"].strip(),
            year=payload.get("year", current_budget_year(now.date())),
            quarter_amounts=quarter_amounts,
            month_amounts=month_amounts,
            total_override=total_override,
            total=compute_activity_total(quarter_amounts, month_amounts, total_override),
            status=ActivityStatus(payload.get("status", ActivityStatus.DRAFT)),
            description=payload.get("description"),
            responsible=payload.get("responsible"),
            created_at=now,
            updated_at=now,
        )
        _require_positive_plan(activity)

        stored = BudgetActivity.from_record(self._data.create(self.collection, activity.to_record()))
        logger.info(
            {
                "event": "activity_created",
                "activity_id": stored.id,
                "year": stored.year,
                "status": stored.status.value,
            }
        )
        return stored

    def update(self, activity_id: str, fields: Mapping[str, Any]) -> BudgetActivity:
        payload = _normalize_activity_input(fields)
        _validate_activity(payload, creating=False)
        current = self.get(activity_id)

        for name in ("activity_name", "field_of_activity", "standard", "funding_source"):
            if name in payload:
                setattr(current, name, (payload[name] or "").strip())
        for name in ("year", "description", "responsible"):
            if name in payload:
                setattr(current, name, payload[name])
        if "status" in payload:
            current.status = ActivityStatus(payload["status"])
        if "quarter_amounts" in payload:
            current.quarter_amounts = [float(amount) for amount in payload["quarter_amounts"]]
        if "month_amounts" in payload:
            months = payload["month_amounts"]
            current.month_amounts = [float(amount) for amount in months] if months is not None else None
        if "total_override" in payload:
            override = payload["total_override"]
            current.total_override = float(override) if override is not None else None

        current.total = compute_activity_total(current.quarter_amounts, current.month_amounts, current.total_override)
        _require_positive_plan(current)
        current.updated_at = self._clock()

        record = current.to_record()
        record.pop("id")
        record.pop("created_at")
        stored = BudgetActivity.from_record(self._data.update(self.collection, activity_id, record))
        logger.info(
            {
                "event": "activity_updated",
                "activity_id": activity_id,
                "changes": redact_fields(payload),
            }
        )
        return stored

    def delete(self, activity_id: str) -> None:
        self._data.delete(self.collection, activity_id)
        logger.info({"event": "activity_deleted", "activity_id": activity_id})


# ---------------------------------------------------------------------------
# Budget allocation items (anggaran)
# ---------------------------------------------------------------------------

ALLOCATION_INPUT_FIELDS = (
    "activity",
    "field_of_activity",
    "standard",
    "allocated_budget",
    "used_budget",
    "period",
    "responsible",
)


def _coerce_period(raw: Any) -> PeriodSelection:
    if isinstance(raw, PeriodSelection):
        return raw
    if isinstance(raw, Mapping):
        return PeriodSelection.from_dict(dict(raw))
    raise ValueError("Period must be an object with period_type, quarter, month and year.")


def _validate_allocation(fields: Mapping[str, Any], *, creating: bool) -> None:
    errors: Dict[str, str] = {}
    _check_unknown(errors, fields, ALLOCATION_INPUT_FIELDS)
    _check_text(errors, fields, "activity", required=creating)
    _check_text(errors, fields, "field_of_activity", required=creating)
    _check_optional_text(errors, fields, "standard")
    _check_optional_text(errors, fields, "responsible")
    _check_amount(errors, fields, "allocated_budget", required=creating, nullable=False)
    _check_amount(errors, fields, "used_budget", required=False)
    if "period" in fields:
        try:
            _coerce_period(fields["period"])
        except ValueError as exc:
            errors["period"] = str(exc)
    _raise_if_errors(errors)


class BudgetAllocationStore:
    """CRUD over BudgetAllocationItem; `remaining_budget` and `status` are always rederived."""

    collection = BUDGET_ALLOCATION_ITEMS

    def __init__(self, data_access: DataAccess, clock: Clock = utc_now) -> None:
        self._data = data_access
        self._clock = clock

    def list(self) -> List[BudgetAllocationItem]:
        return [BudgetAllocationItem.from_record(record) for record in self._data.list(self.collection)]

    def get(self, item_id: str) -> BudgetAllocationItem:
        return BudgetAllocationItem.from_record(self._data.get(self.collection, item_id))

    def create(self, fields: Mapping[str, Any]) -> BudgetAllocationItem:
        _validate_allocation(fields, creating=True)
        now = self._clock()
        allocated = float(fields["allocated_budget"])
        used = float(fields.get("used_budget") or 0.0)
        period = _coerce_period(fields["period"]) if "period" in fields else PeriodSelection()
        if period.year is None:
            period = replace(period, year=current_budget_year(now.date()))

        item = BudgetAllocationItem(
            id=str(uuid4()),
            activity=fields["activity"].strip(),
            field_of_activity=fields["field_of_activity"].strip(),
            standard=(fields.get("standard") or "").strip(),
            allocated_budget=allocated,
            used_budget=used,
            remaining_budget=allocated - used,
            status=derive_allocation_status(allocated, used),
            period=period,
            responsible=fields.get("responsible"),
            last_updated=now,
        )
        stored = BudgetAllocationItem.from_record(self._data.create(self.collection, item.to_record()))
        logger.info(
            {
                "event": "allocation_created",
                "allocation_id": stored.id,
                "status": stored.status.value,
            }
        )
        return stored

    def update(self, item_id: str, fields: Mapping[str, Any]) -> BudgetAllocationItem:
        _validate_allocation(fields, creating=False)
        current = self.get(item_id)

        for name in ("activity", "field_of_activity", "standard"):
            if name in fields:
                setattr(current, name, (fields[name] or "").strip())
        if "responsible" in fields:
            current.responsible = fields["responsible"]
        if "allocated_budget" in fields:
            current.allocated_budget = float(fields["allocated_budget"])
        if "used_budget" in fields and fields["used_budget"] is not None:
            current.used_budget = float(fields["used_budget"])
        if "period" in fields:
            current.period = _coerce_period(fields["period"])

        current.remaining_budget = current.allocated_budget - current.used_budget
        current.status = derive_allocation_status(current.allocated_budget, current.used_budget)
        current.last_updated = self._clock()

        record = current.to_record()
        record.pop("id")
        stored = BudgetAllocationItem.from_record(self._data.update(self.collection, item_id, record))
        logger.info(
            {
                "event": "allocation_updated",
                "allocation_id": item_id,
                "status": stored.status.value,
                "changes": redact_fields(fields),
            }
        )
        return stored

    def delete(self, item_id: str) -> None:
        self._data.delete(self.collection, item_id)
        logger.info({"event": "allocation_deleted", "allocation_id": item_id})


# ---------------------------------------------------------------------------
# Master data: bidang, standar, sumber dana, rekening, komponen
# ---------------------------------------------------------------------------

REFERENCE_INPUT_FIELDS = ("code", "name", "description", "parent_code")


class ReferenceDataStore:
    """CRUD for one master-data collection; codes are unique within the collection."""

    def __init__(self, data_access: DataAccess, collection: str, clock: Clock = utc_now) -> None:
        if collection not in REFERENCE_COLLECTIONS:
            raise ValueError(f"'{collection}' is not a reference collection")
        self._data = data_access
        self.collection = collection
        self._clock = clock

    def list(self) -> List[ReferenceRecord]:
        return [ReferenceRecord.from_record(record) for record in self._data.list(self.collection)]

    def get(self, record_id: str) -> ReferenceRecord:
        return ReferenceRecord.from_record(self._data.get(self.collection, record_id))

    def find_by_code(self, code: str) -> ReferenceRecord:
        wanted = code.strip().lower()
        for record in self.list():
            if record.code.lower() == wanted:
                return record
        raise NotFoundError(self.collection, code)

    def create(self, fields: Mapping[str, Any]) -> ReferenceRecord:
        self._validate(fields, creating=True)
        now = self._clock()
        record = ReferenceRecord(
            id=str(uuid4()),
            code=fields["code"].strip(),
            name=fields["name"].strip(),
            description=fields.get("description"),
            parent_code=fields.get("parent_code"),
            created_at=now,
            updated_at=now,
        )
        stored = ReferenceRecord.from_record(self._data.create(self.collection, record.to_record()))
        logger.info({"event": "reference_created", "collection": self.collection, "code": stored.code})
        return stored

    def update(self, record_id: str, fields: Mapping[str, Any]) -> ReferenceRecord:
        self._validate(fields, creating=False)
        changes: Dict[str, Any] = {}
        for name in ("code", "name"):
            if name in fields:
                changes[name] = fields[name].strip()
        for name in ("description", "parent_code"):
            if name in fields:
                changes[name] = fields[name]
        changes["updated_at"] = self._clock().isoformat()
        return ReferenceRecord.from_record(self._data.update(self.collection, record_id, changes))

    def delete(self, record_id: str) -> None:
        self._data.delete(self.collection, record_id)
        logger.info({"event": "reference_deleted", "collection": self.collection, "record_id": record_id})

    @staticmethod
    def _validate(fields: Mapping[str, Any], *, creating: bool) -> None:
        errors: Dict[str, str] = {}
        _check_unknown(errors, fields, REFERENCE_INPUT_FIELDS)
        _check_text(errors, fields, "code", required=creating)
        _check_text(errors, fields, "name", required=creating)
        _check_optional_text(errors, fields, "description")
        _check_optional_text(errors, fields, "parent_code")
        _raise_if_errors(errors)


# ---------------------------------------------------------------------------
# User preferences (saved period filter)
# ---------------------------------------------------------------------------

PREFERENCE_INPUT_FIELDS = ("period_type", "quarter", "month", "year", "last_used_page")


class PreferencesStore:
    """Per-user saved period selection; `save` merges into whatever is already stored."""

    collection = USER_PREFERENCES

    def __init__(self, data_access: DataAccess, clock: Clock = utc_now, default_year: Optional[int] = None) -> None:
        self._data = data_access
        self._clock = clock
        self._default_year = default_year

    def defaults(self, user_id: str) -> UserPreferences:
        year = self._default_year or current_budget_year(self._clock().date())
        return UserPreferences(user_id=user_id, period=PeriodSelection(year=year))

    def get(self, user_id: str) -> UserPreferences:
        try:
            return UserPreferences.from_record(self._data.get(self.collection, user_id))
        except NotFoundError:
            return self.defaults(user_id)

    def save(self, user_id: str, fields: Mapping[str, Any]) -> UserPreferences:
        changes = self._validate(fields)
        try:
            existing = UserPreferences.from_record(self._data.get(self.collection, user_id))
            is_new = False
        except NotFoundError:
            existing = self.defaults(user_id)
            is_new = True
        period = existing.period
        if "period_type" in changes:
            period = period.with_mode(changes["period_type"])
        period = replace(period, **{name: changes[name] for name in ("quarter", "month", "year") if name in changes})

        preferences = UserPreferences(
            user_id=user_id,
            period=period,
            last_used_page=changes.get("last_used_page", existing.last_used_page),
            updated_at=self._clock(),
        )
        record = preferences.to_record()
        if is_new:
            stored = self._data.create(self.collection, record)
        else:
            stored = self._data.update(self.collection, user_id, record)
        logger.info({"event": "preferences_saved", "user_id": user_id, "fields": sorted(changes)})
        return UserPreferences.from_record(stored)

    @staticmethod
    def _validate(fields: Mapping[str, Any]) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        changes: Dict[str, Any] = {}
        _check_unknown(errors, fields, PREFERENCE_INPUT_FIELDS)
        if "period_type" in fields:
            try:
                changes["period_type"] = PeriodType(fields["period_type"])
            except ValueError:
                errors["period_type"] = "Must be 'quarterly' or 'monthly'."
        if "quarter" in fields:
            try:
                changes["quarter"] = parse_quarter(fields["quarter"])
            except ValueError as exc:
                errors["quarter"] = str(exc)
        if "month" in fields:
            if is_valid_month(fields["month"]):
                changes["month"] = fields["month"]
            else:
                errors["month"] = "Must be between 1 and 12."
        if "year" in fields:
            _check_year(errors, fields)
            changes["year"] = fields["year"]
        if "last_used_page" in fields:
            _check_optional_text(errors, fields, "last_used_page")
            changes["last_used_page"] = fields["last_used_page"]
        _raise_if_errors(errors)
        return changes
