"""In-memory implementation of the Entry Store (local-only backend)."""

from datetime import date
from typing import Dict, List, Optional
from uuid import uuid4

from .interfaces import ActiveSleepConflictError, SleepEntryRepository
from ..domain.models import SleepEntry, SleepEntryCreate, SleepEntryUpdate, attributed_date


class MemorySleepEntryRepository(SleepEntryRepository):
    """In-memory implementation of SleepEntryRepository."""

    def __init__(self, entries: Optional[List[SleepEntry]] = None):
        self._entries: Dict[str, SleepEntry] = {}
        for entry in entries or []:
            self._entries[entry.id] = entry

    def _has_other_active(self, baby_id: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            entry.baby_id == baby_id and entry.end_time is None and entry.id != exclude_id
            for entry in self._entries.values()
        )

    def _build(self, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        return SleepEntry(
            id=str(uuid4()),
            baby_id=baby_id,
            type=data.type,
            start_time=data.start_time,
            end_time=data.end_time,
            date=attributed_date(data.start_time),
            notes=data.notes,
        )

    async def get_by_id(self, entry_id: str) -> Optional[SleepEntry]:
        """Get an entry by ID."""
        return self._entries.get(entry_id)

    async def create(self, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Create a new entry for a baby."""
        if data.end_time is None and self._has_other_active(baby_id):
            raise ActiveSleepConflictError(baby_id)

        entry = self._build(baby_id, data)
        self._entries[entry.id] = entry
        return entry

    async def update(self, entry_id: str, changes: SleepEntryUpdate) -> bool:
        """Apply a partial update. Returns False if the entry does not exist."""
        entry = self._entries.get(entry_id)
        if entry is None:
            return False

        values = changes.changes()
        if "start_time" in values and values["start_time"] is not None:
            values["date"] = attributed_date(values["start_time"])
        else:
            values.pop("start_time", None)
        if "type" in values and values["type"] is None:
            values.pop("type")

        updated = entry.model_copy(update=values)
        if updated.end_time is None and self._has_other_active(updated.baby_id, exclude_id=entry_id):
            raise ActiveSleepConflictError(updated.baby_id)

        self._entries[entry_id] = updated
        return True

    async def delete(self, entry_id: str) -> None:
        """Delete an entry. Deleting a missing entry is a no-op."""
        self._entries.pop(entry_id, None)

    async def replace(self, entry_id: str, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Atomically delete ``entry_id`` and create ``data`` in its place."""
        if data.end_time is None and self._has_other_active(baby_id, exclude_id=entry_id):
            raise ActiveSleepConflictError(baby_id)

        entry = self._build(baby_id, data)
        self._entries.pop(entry_id, None)
        self._entries[entry.id] = entry
        return entry

    async def list_for_baby(self, baby_id: str) -> List[SleepEntry]:
        """All entries of a baby, ascending by start time."""
        entries = [entry for entry in self._entries.values() if entry.baby_id == baby_id]
        entries.sort(key=lambda entry: entry.start_time)
        return entries

    async def list_for_date(self, baby_id: str, day: date) -> List[SleepEntry]:
        """Entries attributed to ``day``, ascending by start time."""
        return [entry for entry in await self.list_for_baby(baby_id) if entry.date == day]
