"""Dict-backed DataAccess used by tests and the `memory` backend."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

from errors import ConflictError, NotFoundError
from persistence.data_access import UNIQUE_FIELDS, unique_value
from shared.observability.privacy import hash_payload


class InMemoryDataAccess:
    """
    Keeps each collection as an insertion-ordered dict of id -> record.

    Records are deep-copied in and out so callers never share state with the store.
    Mutations append to an audit list shaped like the `audit_events` table.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._events: List[Dict[str, Any]] = []

    def list(self, collection: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(record) for record in self._bucket(collection).values()]

    def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        bucket = self._bucket(collection)
        if record_id not in bucket:
            raise NotFoundError(collection, record_id)
        return copy.deepcopy(bucket[record_id])

    def create(self, collection: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        bucket = self._bucket(collection)
        record = copy.deepcopy(fields)
        record_id = str(record.get("id") or uuid4())
        record["id"] = record_id
        if record_id in bucket:
            raise ConflictError(collection, "id", record_id)
        self._check_unique(collection, record, exclude_id=None)
        bucket[record_id] = record
        self._record_event("create", collection, record_id, {"payload_hash": hash_payload(record)})
        return copy.deepcopy(record)

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        bucket = self._bucket(collection)
        if record_id not in bucket:
            raise NotFoundError(collection, record_id)
        merged = {**bucket[record_id], **copy.deepcopy(fields), "id": record_id}
        self._check_unique(collection, merged, exclude_id=record_id)
        bucket[record_id] = merged
        self._record_event(
            "update",
            collection,
            record_id,
            {"changed_fields": sorted(fields), "payload_hash": hash_payload(fields)},
        )
        return copy.deepcopy(merged)

    def delete(self, collection: str, record_id: str) -> None:
        bucket = self._bucket(collection)
        if record_id not in bucket:
            raise NotFoundError(collection, record_id)
        del bucket[record_id]
        self._record_event("delete", collection, record_id, None)

    def list_audit_events(self, limit: int = 100) -> List[Dict[str, Any]]:
        return [copy.deepcopy(event) for event in reversed(self._events[-limit:])] if limit > 0 else []

    def _bucket(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _record_event(self, action: str, collection: str, record_id: str, details: Dict[str, Any] | None) -> None:
        self._events.append(
            {
                "id": len(self._events) + 1,
                "collection": collection,
                "record_id": record_id,
                "action": action,
                "details": details,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def _check_unique(self, collection: str, record: Dict[str, Any], *, exclude_id: str | None) -> None:
        key = unique_value(collection, record)
        if key is None:
            return
        for other_id, other in self._bucket(collection).items():
            if other_id != exclude_id and unique_value(collection, other) == key:
                raise ConflictError(collection, UNIQUE_FIELDS[collection], record[UNIQUE_FIELDS[collection]])
