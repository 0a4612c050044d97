"""Sleep entry contracts shared by the store, the engine and the API.

``SleepEntry`` is the only persisted entity. Field names are snake_case in
Python and camelCase on the wire (``babyId``, ``startTime``, ...).
"""

import datetime as dt
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator  # type: ignore
from pydantic.alias_generators import to_camel

from ..core.enums import SleepType
from ..utils.time_utils import to_wall_clock

NOTES_MAX_LENGTH = 500


def attributed_date(start_time: dt.datetime) -> dt.date:
    """Calendar day an entry is attributed to: the day its sleep started."""
    return to_wall_clock(start_time).date()


class _EntryModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    @field_validator("start_time", "end_time", mode="after", check_fields=False)
    @classmethod
    def _wall_clock(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return to_wall_clock(value) if value is not None else None


class SleepEntry(_EntryModel):
    """A logged nap or night sleep. ``end_time=None`` means still sleeping."""

    model_config = ConfigDict(frozen=True)

    id: str
    baby_id: str
    type: SleepType
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    date: dt.date
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def effective_end(self, now: dt.datetime) -> dt.datetime:
        """End of the interval, treating an open entry as ending ``now``."""
        return self.end_time if self.end_time is not None else now

    def to_store_dict(self) -> dict:
        """Interop shape: camelCase keys, ISO-8601 strings, ``YYYY-MM-DD`` date."""
        return self.model_dump(mode="json", by_alias=True)


class SleepEntryCreate(_EntryModel):
    """Payload for logging a new entry; ``id`` and ``date`` are assigned by the store."""

    type: SleepType
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)


class SleepEntryUpdate(_EntryModel):
    """Partial update; only fields explicitly set are written."""

    type: Optional[SleepType] = None
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)

    def changes(self) -> dict:
        """Fields explicitly supplied by the caller, including explicit ``None``."""
        return self.model_dump(exclude_unset=True)


@dataclass(frozen=True)
class AwakeState:
    """Derived asleep/awake view of a baby's entries at a point in time."""

    active_sleep: Optional[SleepEntry] = None
    awake_minutes: Optional[int] = None
    last_completed_sleep: Optional[SleepEntry] = None
    active_sleep_count: int = 0

    @property
    def is_asleep(self) -> bool:
        return self.active_sleep is not None

    @property
    def is_inconsistent(self) -> bool:
        """More than one open entry was found; at most one is allowed."""
        return self.active_sleep_count > 1
