"""SQLAlchemy concrete implementation of the Entry Store."""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import and_

from .interfaces import ActiveSleepConflictError, SleepEntryRepository, StoreError
from ..db.models import SleepEntryRecord
from ..domain.models import SleepEntry, SleepEntryCreate, SleepEntryUpdate, attributed_date
from ..store.integrity_policy import (
    classify_integrity_error,
    log_expected_violation,
    log_unexpected_violation,
)
from ..utils.logging_config import get_logger

logger = get_logger('database')


def record_to_entry(record: SleepEntryRecord) -> SleepEntry:
    """Convert an ORM row into the immutable domain entry."""
    return SleepEntry(
        id=record.id,
        baby_id=record.baby_id,
        type=record.type,
        start_time=record.start_time,
        end_time=record.end_time,
        date=record.date,
        notes=record.notes,
    )


class SQLAlchemySleepEntryRepository(SleepEntryRepository):
    """SQLAlchemy implementation of SleepEntryRepository."""

    def __init__(self, session: Session):
        self._session = session

    def _commit(self, operation: str, context: Dict[str, Any]) -> None:
        """Commit the current transaction, translating backend errors."""
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            tag = classify_integrity_error(e)
            if tag is not None:
                log_expected_violation(tag, e, {"operation": operation, **context})
                raise ActiveSleepConflictError(context.get("baby_id", "unknown")) from e
            log_unexpected_violation(e, {"operation": operation, **context})
            raise StoreError(f"Failed to {operation} sleep entry: {e}") from e
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to {operation} sleep entry: {e}") from e

    def _get_record(self, entry_id: str) -> Optional[SleepEntryRecord]:
        try:
            return (
                self._session.query(SleepEntryRecord)
                .filter(SleepEntryRecord.id == entry_id)
                .first()
            )
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to read sleep entry {entry_id}: {e}") from e

    @staticmethod
    def _new_record(baby_id: str, data: SleepEntryCreate) -> SleepEntryRecord:
        return SleepEntryRecord(
            baby_id=baby_id,
            type=data.type.value,
            start_time=data.start_time,
            end_time=data.end_time,
            date=attributed_date(data.start_time),
            notes=data.notes,
        )

    async def get_by_id(self, entry_id: str) -> Optional[SleepEntry]:
        """Get an entry by ID."""
        record = self._get_record(entry_id)
        return record_to_entry(record) if record else None

    async def create(self, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Create a new entry for a baby."""
        record = self._new_record(baby_id, data)
        self._session.add(record)
        self._commit("create", {"baby_id": baby_id})
        self._session.refresh(record)
        logger.debug(f"Created sleep entry {record.id} for baby {baby_id}")
        return record_to_entry(record)

    async def update(self, entry_id: str, changes: SleepEntryUpdate) -> bool:
        """Apply a partial update. Returns False if the entry does not exist."""
        record = self._get_record(entry_id)
        if record is None:
            return False

        values = changes.changes()
        if values.get("type") is not None:
            record.type = values["type"].value
        if values.get("start_time") is not None:
            record.start_time = values["start_time"]
            record.date = attributed_date(values["start_time"])
        if "end_time" in values:
            record.end_time = values["end_time"]
        if "notes" in values:
            record.notes = values["notes"]

        self._commit("update", {"baby_id": record.baby_id, "entry_id": entry_id})
        return True

    async def delete(self, entry_id: str) -> None:
        """Delete an entry. Deleting a missing entry is a no-op."""
        record = self._get_record(entry_id)
        if record is None:
            return
        self._session.delete(record)
        self._commit("delete", {"baby_id": record.baby_id, "entry_id": entry_id})

    async def replace(self, entry_id: str, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Atomically delete ``entry_id`` and create ``data`` in its place."""
        context = {"baby_id": baby_id, "entry_id": entry_id}
        try:
            old = (
                self._session.query(SleepEntryRecord)
                .filter(SleepEntryRecord.id == entry_id)
                .first()
            )
            if old is not None:
                self._session.delete(old)
                # The delete must reach the database before the insert, otherwise
                # replacing one open entry with another trips the active-sleep index
                self._session.flush()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to replace sleep entry {entry_id}: {e}") from e

        record = self._new_record(baby_id, data)
        self._session.add(record)
        self._commit("replace", context)
        self._session.refresh(record)
        return record_to_entry(record)

    async def list_for_baby(self, baby_id: str) -> List[SleepEntry]:
        """All entries of a baby, ascending by start time."""
        try:
            records = (
                self._session.query(SleepEntryRecord)
                .filter(SleepEntryRecord.baby_id == baby_id)
                .order_by(SleepEntryRecord.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to list sleep entries for baby {baby_id}: {e}") from e
        return [record_to_entry(record) for record in records]

    async def list_for_date(self, baby_id: str, day: date) -> List[SleepEntry]:
        """Entries attributed to ``day``, ascending by start time."""
        try:
            records = (
                self._session.query(SleepEntryRecord)
                .filter(
                    and_(
                        SleepEntryRecord.baby_id == baby_id,
                        SleepEntryRecord.date == day,
                    )
                )
                .order_by(SleepEntryRecord.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError(f"Failed to list sleep entries for {day}: {e}") from e
        return [record_to_entry(record) for record in records]
