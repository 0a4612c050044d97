"""Active-session tracking: is the baby asleep, and for how long awake."""

from datetime import datetime
from typing import Iterable, Optional

from .models import AwakeState, SleepEntry
from ..utils.logging_config import get_logger
from ..utils.time_utils import minutes_between, resolve_now

logger = get_logger('domain')


def find_active_sleeps(entries: Iterable[SleepEntry]) -> list[SleepEntry]:
    """All open entries, most recently started first."""
    active = [entry for entry in entries if entry.end_time is None]
    active.sort(key=lambda entry: entry.start_time, reverse=True)
    return active


def find_last_completed_sleep(entries: Iterable[SleepEntry]) -> Optional[SleepEntry]:
    """The completed entry with the latest end time, across all days."""
    completed = [entry for entry in entries if entry.end_time is not None]
    if not completed:
        return None
    return max(completed, key=lambda entry: entry.end_time)


def derive_awake_state(
    entries: Iterable[SleepEntry], now: Optional[datetime] = None
) -> AwakeState:
    """
    Derive the current asleep/awake state from a snapshot of entries.

    Rules:
    - The open entry is the active sleep. If several are open, the most
      recently started wins and the inconsistency is logged.
    - The last completed sleep is the one that ended latest, on any day.
    - Awake minutes are measured from that end to ``now``; None while asleep
      or before any sleep has been completed.

    Args:
        entries: Snapshot of a baby's entries
        now: Current time (injectable)

    Returns:
        AwakeState for the snapshot
    """
    entries = list(entries)
    now = resolve_now(now)

    active = find_active_sleeps(entries)
    active_sleep = active[0] if active else None
    if len(active) > 1:
        logger.warning(
            f"Inconsistent entry list: {len(active)} active sleeps found "
            f"({', '.join(entry.id for entry in active)}); "
            f"treating {active_sleep.id} as active"
        )

    last_completed = find_last_completed_sleep(entries)

    awake_minutes = None
    if active_sleep is None and last_completed is not None:
        # Clock skew can put the last wake-up in the future; never report negative
        awake_minutes = max(0, minutes_between(last_completed.end_time, now))

    return AwakeState(
        active_sleep=active_sleep,
        awake_minutes=awake_minutes,
        last_completed_sleep=last_completed,
        active_sleep_count=len(active),
    )
