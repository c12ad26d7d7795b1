"""SQLAlchemy-backed DataAccess implementation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConflictError, DataAccessUnavailableError, NotFoundError
from persistence.data_access import UNIQUE_FIELDS, unique_value
from persistence.models import AuditEvent, RecordRow
from shared.observability.privacy import hash_payload

logger = logging.getLogger(__name__)


class SqlAlchemyDataAccess:
    """Thin repository that stores every collection in the `records` table."""

    def __init__(self, db: Session):
        self._db = db

    def list(self, collection: str) -> List[Dict[str, Any]]:
        statement = (
            select(RecordRow)
            .where(RecordRow.collection == collection)
            .order_by(RecordRow.position, RecordRow.id)
        )
        try:
            rows = self._db.scalars(statement).all()
        except SQLAlchemyError as exc:
            raise self._unavailable("list", collection, exc) from exc
        return [dict(row.payload) for row in rows]

    def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        return dict(self._require_row(collection, record_id).payload)

    def create(self, collection: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(fields)
        record["id"] = str(record.get("id") or uuid4())
        try:
            next_position = self._db.scalar(
                select(func.coalesce(func.max(RecordRow.position), 0)).where(RecordRow.collection == collection)
            )
            row = RecordRow(
                collection=collection,
                id=record["id"],
                payload=record,
                unique_key=unique_value(collection, record),
                position=int(next_position or 0) + 1,
            )
            self._db.add(row)
            self._record_event(action="create", collection=collection, record_id=record["id"], record=record)
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            raise self._conflict(collection, record) from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise self._unavailable("create", collection, exc) from exc
        return dict(record)

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = self._require_row(collection, record_id)
        merged = {**row.payload, **fields, "id": record_id}
        try:
            row.payload = merged
            row.unique_key = unique_value(collection, merged)
            self._db.add(row)
            self._record_event(
                action="update",
                collection=collection,
                record_id=record_id,
                record=fields,
                extra={"changed_fields": sorted(fields)},
            )
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            raise self._conflict(collection, merged) from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise self._unavailable("update", collection, exc) from exc
        return dict(merged)

    def delete(self, collection: str, record_id: str) -> None:
        row = self._require_row(collection, record_id)
        try:
            self._db.delete(row)
            self._record_event(action="delete", collection=collection, record_id=record_id, record=None)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            raise self._unavailable("delete", collection, exc) from exc

    def list_audit_events(self, limit: int = 100) -> List[Dict[str, Any]]:
        statement = select(AuditEvent).order_by(AuditEvent.id.desc()).limit(max(0, limit))
        try:
            events = self._db.scalars(statement).all()
        except SQLAlchemyError as exc:
            raise self._unavailable("list_audit_events", "audit_events", exc) from exc
        return [
            {
                "id": event.id,
                "collection": event.collection,
                "record_id": event.record_id,
                "action": event.action,
                "details": event.details,
                "created_at": event.created_at.isoformat() if event.created_at else None,
            }
            for event in events
        ]

    def _require_row(self, collection: str, record_id: str) -> RecordRow:
        try:
            row = self._db.get(RecordRow, (collection, record_id))
        except SQLAlchemyError as exc:
            raise self._unavailable("get", collection, exc) from exc
        if row is None:
            raise NotFoundError(collection, record_id)
        return row

    def _record_event(
        self,
        *,
        action: str,
        collection: str,
        record_id: str,
        record: Dict[str, Any] | None,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        details: Dict[str, Any] = dict(extra or {})
        if record is not None:
            details["payload_hash"] = hash_payload(record)
        event = AuditEvent(
            collection=collection,
            record_id=record_id,
            action=action,
            details=details or None,
        )
        self._db.add(event)

    @staticmethod
    def _conflict(collection: str, record: Dict[str, Any]) -> ConflictError:
        field_name = UNIQUE_FIELDS.get(collection, "id")
        return ConflictError(collection, field_name, record.get(field_name))

    @staticmethod
    def _unavailable(operation: str, collection: str, exc: Exception) -> DataAccessUnavailableError:
        logger.error(
            {
                "event": "data_access_failed",
                "operation": operation,
                "collection": collection,
                "error": str(exc),
            }
        )
        return DataAccessUnavailableError(f"Storage backend failed during {operation} on '{collection}'.")
