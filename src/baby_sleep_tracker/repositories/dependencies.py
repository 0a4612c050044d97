"""Dependency injection for the repository layer."""

from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import get_store_backend
from ..core.enums import StoreBackend
from ..db.database import get_db
from .interfaces import SleepEntryRepository
from .memory_impl import MemorySleepEntryRepository
from .sqlalchemy_impl import SQLAlchemySleepEntryRepository

# The local-only backend lives for the lifetime of the process
_memory_repository: Optional[MemorySleepEntryRepository] = None


def get_memory_repository() -> MemorySleepEntryRepository:
    """Process-wide in-memory store."""
    global _memory_repository
    if _memory_repository is None:
        _memory_repository = MemorySleepEntryRepository()
    return _memory_repository


def reset_memory_repository() -> None:
    """Drop all entries held by the in-memory store."""
    global _memory_repository
    _memory_repository = None


def get_sleep_entry_repository(db: Session = Depends(get_db)) -> SleepEntryRepository:
    """
    Entry Store for the configured backend.

    This is the main dependency injection point for the store.
    """
    if get_store_backend() == StoreBackend.MEMORY:
        return get_memory_repository()
    return SQLAlchemySleepEntryRepository(db)
