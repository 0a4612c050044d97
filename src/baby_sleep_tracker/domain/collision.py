"""Collision detection between a candidate sleep interval and existing entries.

Intervals are half-open: ``[start, end)``. An open interval (no end yet)
extends to ``now``. Adjacent intervals (one ends exactly when the other
starts) do not collide.
"""

from datetime import datetime
from typing import Iterable, Optional

from .awake_state import find_active_sleeps
from .models import SleepEntry
from .validation import normalize_end_time
from ..utils.time_utils import resolve_now


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Strict overlap test for two half-open intervals."""
    return start_a < end_b and end_a > start_b


def find_collision(
    candidate_start: datetime,
    candidate_end: Optional[datetime],
    entries: Iterable[SleepEntry],
    exclude_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[SleepEntry]:
    """
    Find the first existing entry whose interval overlaps the candidate.

    Args:
        candidate_start: Start of the interval being written
        candidate_end: End of the interval, or None while still sleeping
        entries: Point-in-time snapshot of the baby's entries
        exclude_id: Entry being edited; never collides with itself
        now: Time source value used for open intervals

    Returns:
        The first colliding entry in snapshot order, or None
    """
    now = resolve_now(now)
    new_end = candidate_end if candidate_end is not None else now

    for entry in entries:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if intervals_overlap(
            candidate_start, new_end, entry.start_time, entry.effective_end(now)
        ):
            return entry

    return None


def find_write_conflict(
    candidate_start: datetime,
    candidate_end: Optional[datetime],
    entries: Iterable[SleepEntry],
    exclude_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[SleepEntry]:
    """
    The entry that stops a candidate interval from being written, if any.

    An end before the start is read as crossing midnight and checked on the
    following day. An open candidate also conflicts with any other open
    entry, since a baby has at most one sleep in progress.
    """
    entries = list(entries)
    candidate_end = normalize_end_time(candidate_start, candidate_end)

    colliding = find_collision(
        candidate_start, candidate_end, entries, exclude_id=exclude_id, now=now
    )
    if colliding is not None or candidate_end is not None:
        return colliding

    return next(
        (entry for entry in find_active_sleeps(entries) if entry.id != exclude_id),
        None,
    )
