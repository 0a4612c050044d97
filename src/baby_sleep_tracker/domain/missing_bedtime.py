"""Heuristic deciding whether to ask the caregiver about a missing bedtime.

Re-evaluated on every render; the only memory is a dismiss toggle held by the
caller for the session.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..core.enums import SleepType
from .models import SleepEntry
from ..utils.time_utils import resolve_now


def should_prompt_missing_bedtime(
    entries: Iterable[SleepEntry],
    active_sleep: Optional[SleepEntry],
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether the "no bedtime logged last night" prompt should show.

    The prompt is suppressed when any of these hold:
    - there are no entries at all (new user)
    - a completed night ended today or tomorrow
    - a nap started or ended today
    - a night or nap is in progress, whatever day it started

    Args:
        entries: Snapshot of the baby's entries
        active_sleep: The currently active entry, if any
        now: Current time (injectable)

    Returns:
        True when the caregiver should be prompted
    """
    entries = list(entries)
    if not entries:
        return False

    if active_sleep is not None:
        return False

    today = resolve_now(now).date()
    tomorrow = today + timedelta(days=1)

    for entry in entries:
        if entry.type == SleepType.NIGHT:
            if entry.end_time is not None and entry.end_time.date() in (today, tomorrow):
                return False
        elif entry.start_time.date() == today or (
            entry.end_time is not None and entry.end_time.date() == today
        ):
            return False

    return True
