"""Abstract repository interfaces for the Entry Store."""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ..domain.models import SleepEntry, SleepEntryCreate, SleepEntryUpdate


class StoreError(Exception):
    """Backend failure while reading or writing entries; safe to retry."""

    pass


class ActiveSleepConflictError(StoreError):
    """The backend refused a second open entry for the same baby."""

    def __init__(self, baby_id: str, message: Optional[str] = None):
        super().__init__(message or f"Baby {baby_id} already has an active sleep")
        self.baby_id = baby_id


class SleepEntryRepository(ABC):
    """
    Repository interface for SleepEntry entities.

    The store is the sole writer of entries. ``create`` and ``update``
    recompute ``date`` from ``start_time`` whenever a start time is written.
    Backend failures raise StoreError with no partial write left behind.
    """

    @abstractmethod
    async def get_by_id(self, entry_id: str) -> Optional[SleepEntry]:
        """Get an entry by ID."""
        pass

    @abstractmethod
    async def create(self, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Create a new entry for a baby."""
        pass

    @abstractmethod
    async def update(self, entry_id: str, changes: SleepEntryUpdate) -> bool:
        """Apply a partial update. Returns False if the entry does not exist."""
        pass

    @abstractmethod
    async def delete(self, entry_id: str) -> None:
        """Delete an entry. Deleting a missing entry is a no-op."""
        pass

    @abstractmethod
    async def replace(self, entry_id: str, baby_id: str, data: SleepEntryCreate) -> SleepEntry:
        """Atomically delete ``entry_id`` and create ``data`` in its place."""
        pass

    @abstractmethod
    async def list_for_baby(self, baby_id: str) -> List[SleepEntry]:
        """All entries of a baby, ascending by start time."""
        pass

    @abstractmethod
    async def list_for_date(self, baby_id: str, day: date) -> List[SleepEntry]:
        """Entries attributed to ``day``, ascending by start time."""
        pass
