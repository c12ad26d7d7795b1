"""Generic CRUD contract shared by every storage backend."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

ACTIVITIES = "activities"
BUDGET_ALLOCATION_ITEMS = "budget-allocation-items"
FIELDS_OF_ACTIVITY = "fields-of-activity"
NATIONAL_STANDARDS = "national-standards"
FUNDING_SOURCES = "funding-sources"
ACCOUNTING_CODES = "accounting-codes"
LINE_ITEM_COMPONENTS = "line-item-components"
USER_PREFERENCES = "user-preferences"

COLLECTIONS = frozenset(
    {
        ACTIVITIES,
        BUDGET_ALLOCATION_ITEMS,
        FIELDS_OF_ACTIVITY,
        NATIONAL_STANDARDS,
        FUNDING_SOURCES,
        ACCOUNTING_CODES,
        LINE_ITEM_COMPONENTS,
        USER_PREFERENCES,
    }
)

REFERENCE_COLLECTIONS = frozenset(
    {
        FIELDS_OF_ACTIVITY,
        NATIONAL_STANDARDS,
        FUNDING_SOURCES,
        ACCOUNTING_CODES,
        LINE_ITEM_COMPONENTS,
    }
)

# Field whose value must be unique within the collection.
UNIQUE_FIELDS: Dict[str, str] = {collection: "code" for collection in REFERENCE_COLLECTIONS}


def unique_value(collection: str, fields: Dict[str, Any]) -> Optional[str]:
    """Return the uniqueness key for a record, or None when the collection has none."""
    field_name = UNIQUE_FIELDS.get(collection)
    if field_name is None:
        return None
    value = fields.get(field_name)
    if value is None:
        return None
    return str(value).strip().lower()


class DataAccess(Protocol):
    """
    Storage collaborator consumed by the record stores.

    Records cross this boundary as JSON-compatible dicts carrying an `id` key.
    `get`, `update` and `delete` raise NotFoundError for unknown ids; `create`
    and `update` raise ConflictError when a unique field would be duplicated.
    Backend failures surface as DataAccessUnavailableError.
    """

    def list(self, collection: str) -> List[Dict[str, Any]]:
        ...

    def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        ...

    def create(self, collection: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete(self, collection: str, record_id: str) -> None:
        ...

    def list_audit_events(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent mutations first: id, collection, record_id, action, details, created_at."""
        ...
