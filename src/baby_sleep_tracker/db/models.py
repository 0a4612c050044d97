"""SQLAlchemy models for the baby sleep tracker."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column,
    String,
    Date,
    DateTime,
    Text,
    Index,
    text,
)

from .database import Base


def _new_id() -> str:
    return str(uuid4())


class SleepEntryRecord(Base):
    """A persisted nap or night sleep."""

    __tablename__ = "sleep_entries"

    id = Column(String(36), primary_key=True, default=_new_id)
    baby_id = Column(String(64), nullable=False)
    type = Column(String(10), nullable=False)  # nap / night
    start_time = Column(DateTime(timezone=False), nullable=False)
    end_time = Column(DateTime(timezone=False), nullable=True)  # NULL while sleeping
    date = Column(Date, nullable=False)  # Day of start_time, recomputed on every write
    notes = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_sleep_entries_baby_date", "baby_id", "date"),
        Index("ix_sleep_entries_baby_start", "baby_id", "start_time"),
        # Backend is the final authority on "one active sleep per baby"
        Index(
            "uq_sleep_entries_one_active",
            "baby_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<SleepEntryRecord(id={self.id}, baby_id='{self.baby_id}', type='{self.type}')>"
