import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterator, List, Literal, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

SRC_DIR = Path(__file__).resolve().parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

SERVICES_ROOT = SRC_DIR.parents[1]
if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICES_ROOT))

from activity_filters import FilterCriteria, filter_activities, filter_allocations, paginate
from budget_aggregation import (
    activity_period_amount,
    allocation_breakdown_by_field,
    summarize_activities,
    summarize_allocations,
)
from budget_model import AllocationStatus
from errors import ConflictError, DataAccessUnavailableError, NotFoundError, ValidationError
from formatting import format_percentage, format_rupiah
from period_model import (
    MONTH_NAMES,
    QUARTER_LABELS,
    QUARTER_RANGES,
    PeriodSelection,
    Quarter,
    budget_years,
    current_budget_year,
    period_label,
)
from persistence.data_access import REFERENCE_COLLECTIONS, DataAccess
from persistence.database import get_session, init_db
from persistence.memory import InMemoryDataAccess
from persistence.repository import SqlAlchemyDataAccess
from record_store import ActivityRecordStore, BudgetAllocationStore, PreferencesStore, ReferenceDataStore
from reporting_summary import dashboard_stats, summarize_report
from shared.observability.telemetry import (
    bind_request_context,
    ensure_request_id,
    reset_request_context,
    setup_telemetry,
)
from shared.service_settings import load_service_settings

logger = logging.getLogger(__name__)

settings = load_service_settings()

app = FastAPI(title="RKAS Service")
setup_telemetry(app, service_name="rkas-service")
# Process-local collections for RKAS_DATA_BACKEND=memory; unused with the database backend.
app.state.memory_data_access = InMemoryDataAccess()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = ensure_request_id(request)
    token = bind_request_context(request_id)
    try:
        response = await call_next(request)
        response.headers.setdefault("x-request-id", request_id)
        return response
    finally:
        reset_request_context(token)


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


def error_response(
    status_code: int,
    error_code: str,
    details: str,
    fields: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error_code, "details": details}
    if fields:
        content["fields"] = fields
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info({"event": "validation_failed", "path": request.url.path, "fields": sorted(exc.errors)})
    return error_response(422, exc.error_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: Dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(location) or "request"] = error.get("msg", "Invalid value.")
    return error_response(422, ValidationError.error_code, "Request payload is invalid.", fields)


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_response(404, exc.error_code, exc.message)


@app.exception_handler(ConflictError)
async def handle_conflict(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info({"event": "duplicate_record", "collection": exc.collection, "field": exc.field})
    return error_response(409, exc.error_code, exc.message, {exc.field: "Already in use."})


@app.exception_handler(DataAccessUnavailableError)
async def handle_data_access_unavailable(request: Request, exc: DataAccessUnavailableError) -> JSONResponse:
    logger.warning({"event": "data_access_unavailable", "path": request.url.path, "error": str(exc)})
    return error_response(503, "storage_unavailable", "Budget data is temporarily unavailable; please retry.")


@app.on_event("startup")
def on_startup() -> None:
    """Initialize persistence before serving requests."""
    if settings.data_backend == "database":
        init_db()
    logger.info({"event": "startup", "data_backend": settings.data_backend})


def get_data_access(request: Request) -> Iterator[DataAccess]:
    """FastAPI dependency yielding the configured DataAccess for one request."""
    if settings.data_backend == "memory":
        yield request.app.state.memory_data_access
        return
    for session in get_session():
        yield SqlAlchemyDataAccess(session)


def get_filter_criteria(
    search: Optional[str] = None,
    status: Optional[str] = None,
    field_of_activity: Optional[str] = None,
    year: Optional[int] = None,
    period_type: Optional[Literal["quarterly", "monthly"]] = None,
    quarter: Optional[str] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
) -> FilterCriteria:
    """Map table/dashboard query parameters onto FilterCriteria."""
    try:
        return FilterCriteria(
            search_text=search,
            status=status,
            field_of_activity=field_of_activity,
            year=year,
            period_type=period_type,
            quarter=quarter,
            month=month,
        )
    except ValueError as exc:
        raise ValidationError({"quarter": str(exc)}) from exc


class ActivityPayload(BaseModel):
    activity_name: Optional[str] = None
    field_of_activity: Optional[str] = None
    standard: Optional[str] = None
    funding_source: Optional[str] = None
    year: Optional[int] = None
    quarter_amounts: Optional[List[float]] = None
    month_amounts: Optional[List[float]] = None
    total_override: Optional[float] = None
    total: Optional[float] = None
    status: Optional[str] = None
    description: Optional[str] = None
    responsible: Optional[str] = None


class PeriodPayload(BaseModel):
    period_type: Literal["quarterly", "monthly"] = "quarterly"
    quarter: Optional[str] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = None


class AllocationPayload(BaseModel):
    activity: Optional[str] = None
    field_of_activity: Optional[str] = None
    standard: Optional[str] = None
    allocated_budget: Optional[float] = None
    used_budget: Optional[float] = None
    period: Optional[PeriodPayload] = None
    responsible: Optional[str] = None


class ReferencePayload(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    parent_code: Optional[str] = None


class PreferencesPayload(BaseModel):
    period_type: Optional[Literal["quarterly", "monthly"]] = None
    quarter: Optional[str] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = None
    last_used_page: Optional[str] = None


def _selection(criteria: FilterCriteria) -> Optional[PeriodSelection]:
    if criteria.period_type is None:
        return None
    return PeriodSelection(
        period_type=criteria.period_type,
        quarter=criteria.quarter,
        month=criteria.month,
        year=criteria.year,
    )


def _period_label(criteria: FilterCriteria) -> str:
    return period_label(_selection(criteria) or PeriodSelection(quarter=None, month=None, year=criteria.year))


def _page_payload(records: List[Any], page: int, page_size: int) -> Dict[str, Any]:
    result = paginate(records, page, page_size)
    return {
        "items": [record.to_record() for record in result.items],
        "page": result.page,
        "page_size": result.page_size,
        "total_items": result.total_items,
        "total_pages": result.total_pages,
    }


@app.get("/health")
def health_check() -> dict:
    """Reports service uptime and the active data backend for orchestrators."""
    return {"status": "ok", "service": "rkas-service", "data_backend": settings.data_backend}


@app.get("/periods")
def list_periods() -> Dict[str, Any]:
    """Static period lookup tables that feed the period selector."""
    return {
        "quarters": [
            {"value": quarter.value, "label": QUARTER_LABELS[quarter], "range": QUARTER_RANGES[quarter]}
            for quarter in Quarter
        ],
        "months": [
            {"value": index, "label": full, "short": short}
            for index, (full, short) in enumerate(MONTH_NAMES, start=1)
        ],
        "years": budget_years(descending=True),
        "current_year": settings.default_year or current_budget_year(),
    }


# --- Activities (kegiatan) --------------------------------------------------


@app.get("/activities")
def list_activities(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    """Filtered, paginated activity table rows."""
    records = filter_activities(ActivityRecordStore(data_access).list(), criteria)
    return _page_payload(records, page, page_size)


@app.get("/activities/summary")
def activities_summary(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    """Report counters and planned totals for the activities matching the filters."""
    records = filter_activities(ActivityRecordStore(data_access).list(), criteria)
    report = summarize_report(records)
    totals = summarize_activities(records)
    selection = _selection(criteria)
    period_amount = float(sum(activity_period_amount(record, selection) for record in records))
    return {
        "period_label": _period_label(criteria),
        "period_amount": period_amount,
        "report": asdict(report),
        "totals": asdict(totals),
        "formatted": {
            "total_amount": format_rupiah(report.total_amount),
            "completion_percentage": format_percentage(report.completion_percentage),
            "period_amount": format_rupiah(period_amount),
        },
    }


@app.post("/activities", status_code=201)
def create_activity(payload: ActivityPayload, data_access: DataAccess = Depends(get_data_access)) -> Dict[str, Any]:
    activity = ActivityRecordStore(data_access).create(payload.model_dump(exclude_unset=True))
    return activity.to_record()


@app.get("/activities/{activity_id}")
def get_activity(activity_id: str, data_access: DataAccess = Depends(get_data_access)) -> Dict[str, Any]:
    return ActivityRecordStore(data_access).get(activity_id).to_record()


@app.patch("/activities/{activity_id}")
def update_activity(
    activity_id: str,
    payload: ActivityPayload,
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    activity = ActivityRecordStore(data_access).update(activity_id, payload.model_dump(exclude_unset=True))
    return activity.to_record()


@app.delete("/activities/{activity_id}", status_code=204)
def delete_activity(activity_id: str, data_access: DataAccess = Depends(get_data_access)) -> Response:
    ActivityRecordStore(data_access).delete(activity_id)
    return Response(status_code=204)


# --- Budget allocation items (anggaran) --------------------------------------


@app.get("/allocations")
def list_allocations(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    items = filter_allocations(BudgetAllocationStore(data_access).list(), criteria)
    return _page_payload(items, page, page_size)


@app.get("/allocations/summary")
def allocations_summary(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    """Allocated/used/remaining totals plus per-status counts for the anggaran screen."""
    items = filter_allocations(BudgetAllocationStore(data_access).list(), criteria)
    totals = summarize_allocations(items)
    return {
        "period_label": _period_label(criteria),
        "totals": asdict(totals),
        "status_counts": {
            status.value: sum(1 for item in items if item.status is status) for status in AllocationStatus
        },
        "by_field": {name: asdict(field_totals) for name, field_totals in allocation_breakdown_by_field(items).items()},
        "formatted": {
            "total_allocated": format_rupiah(totals.total_allocated),
            "total_used": format_rupiah(totals.total_used),
            "total_remaining": format_rupiah(totals.total_remaining),
            "utilization_percentage": format_percentage(totals.utilization_percentage),
        },
    }


@app.post("/allocations", status_code=201)
def create_allocation(payload: AllocationPayload, data_access: DataAccess = Depends(get_data_access)) -> Dict[str, Any]:
    item = BudgetAllocationStore(data_access).create(payload.model_dump(exclude_unset=True))
    return item.to_record()


@app.get("/allocations/{item_id}")
def get_allocation(item_id: str, data_access: DataAccess = Depends(get_data_access)) -> Dict[str, Any]:
    return BudgetAllocationStore(data_access).get(item_id).to_record()


@app.patch("/allocations/{item_id}")
def update_allocation(
    item_id: str,
    payload: AllocationPayload,
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    item = BudgetAllocationStore(data_access).update(item_id, payload.model_dump(exclude_unset=True))
    return item.to_record()


@app.delete("/allocations/{item_id}", status_code=204)
def delete_allocation(item_id: str, data_access: DataAccess = Depends(get_data_access)) -> Response:
    BudgetAllocationStore(data_access).delete(item_id)
    return Response(status_code=204)


# --- Master data ------------------------------------------------------------


def _reference_store(collection: str, data_access: DataAccess) -> ReferenceDataStore:
    if collection not in REFERENCE_COLLECTIONS:
        raise NotFoundError("reference", collection)
    return ReferenceDataStore(data_access, collection)


@app.get("/reference/{collection}")
def list_reference(collection: str, data_access: DataAccess = Depends(get_data_access)) -> List[Dict[str, Any]]:
    return [record.to_record() for record in _reference_store(collection, data_access).list()]


@app.post("/reference/{collection}", status_code=201)
def create_reference(
    collection: str,
    payload: ReferencePayload,
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    record = _reference_store(collection, data_access).create(payload.model_dump(exclude_unset=True))
    return record.to_record()


@app.patch("/reference/{collection}/{record_id}")
def update_reference(
    collection: str,
    record_id: str,
    payload: ReferencePayload,
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    record = _reference_store(collection, data_access).update(record_id, payload.model_dump(exclude_unset=True))
    return record.to_record()


@app.delete("/reference/{collection}/{record_id}", status_code=204)
def delete_reference(collection: str, record_id: str, data_access: DataAccess = Depends(get_data_access)) -> Response:
    _reference_store(collection, data_access).delete(record_id)
    return Response(status_code=204)


# --- Preferences and dashboard ----------------------------------------------


@app.get("/preferences/{user_id}")
def get_preferences(user_id: str, data_access: DataAccess = Depends(get_data_access)) -> Dict[str, Any]:
    store = PreferencesStore(data_access, default_year=settings.default_year)
    return store.get(user_id).to_record()


@app.put("/preferences/{user_id}")
def save_preferences(
    user_id: str,
    payload: PreferencesPayload,
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    store = PreferencesStore(data_access, default_year=settings.default_year)
    return store.save(user_id, payload.model_dump(exclude_unset=True)).to_record()


@app.get("/dashboard/stats")
def get_dashboard_stats(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    data_access: DataAccess = Depends(get_data_access),
) -> Dict[str, Any]:
    """Dashboard cards and chart series for the selected period."""
    activities = filter_activities(ActivityRecordStore(data_access).list(), criteria)
    allocations = filter_allocations(BudgetAllocationStore(data_access).list(), criteria)
    return dashboard_stats(activities, allocations)


@app.get("/audit-events")
def list_audit_events(
    limit: int = Query(100, ge=1, le=500),
    data_access: DataAccess = Depends(get_data_access),
) -> List[Dict[str, Any]]:
    """Most recent record mutations, newest first."""
    return data_access.list_audit_events(limit)
