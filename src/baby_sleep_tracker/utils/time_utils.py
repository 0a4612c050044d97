"""Clock and timestamp helpers shared by the reconciliation engine."""

from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

# Wall-clock epoch used for sort keys; naive timestamps are never shifted by DST.
_EPOCH = datetime(1970, 1, 1)

Clock = Callable[[], datetime]


def to_wall_clock(value: datetime) -> datetime:
    """Drop any timezone offset while keeping the caregiver's wall-clock time."""
    if value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def system_now() -> datetime:
    """Default time source: local wall-clock time, minute precision not enforced."""
    return datetime.now()


class FixedClock:
    """Deterministic time source for tests and replays."""

    def __init__(self, now: datetime):
        self._now = to_wall_clock(now)

    def __call__(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        """Move the clock forward by a timedelta expressed as keyword args."""
        self._now = self._now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self._now = to_wall_clock(now)


def resolve_now(now: Optional[datetime]) -> datetime:
    """Return ``now`` normalised, falling back to the system clock."""
    return to_wall_clock(now) if now is not None else system_now()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 60)


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the wall-clock epoch."""
    delta = to_wall_clock(value) - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def as_date(value: Union[date, datetime, str]) -> date:
    """Coerce a date, datetime or ``YYYY-MM-DD`` string to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def format_duration(minutes: int) -> str:
    """Format minutes as ``"Xh Ym"`` or ``"Ym"`` when under an hour."""
    hours, mins = divmod(max(minutes, 0), 60)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins}m"


def format_time_of_day(minutes: int) -> str:
    """Format minutes after midnight as ``HH:MM``."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"
