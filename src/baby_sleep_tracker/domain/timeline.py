"""
Timeline reconstruction for a single calendar day.

A night sleep belongs to the day its bedtime falls on, but its wake-up is
part of the next morning. Building a day's feed therefore looks beyond the
day's own entries: wake-ups are found by scanning every entry for a night
that ended on the viewed day, and the wake window that precedes the first
sleep of the day is measured from that wake-up.

Output is reverse chronological (most recent first).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from ..core.enums import SleepType, TimelineItemType
from ..utils.time_utils import as_date, minutes_between, to_epoch_ms
from .models import SleepEntry

# Offset (ms) that places a synthetic item immediately below its anchor
SORT_EPSILON_MS = 1


@dataclass(frozen=True)
class TimelineItem:
    """Base for all timeline items; ``sort_key`` is wall-clock epoch milliseconds."""

    sort_key: int
    time: datetime

    kind = None  # set by subclasses


@dataclass(frozen=True)
class NapItem(TimelineItem):
    entry: SleepEntry = None
    nap_number: int = 0

    kind = TimelineItemType.NAP

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.entry.end_time is None:
            return None
        return minutes_between(self.entry.start_time, self.entry.end_time)


@dataclass(frozen=True)
class BedtimeItem(TimelineItem):
    entry: SleepEntry = None

    kind = TimelineItemType.BEDTIME


@dataclass(frozen=True)
class WakeUpItem(TimelineItem):
    entry: SleepEntry = None

    kind = TimelineItemType.WAKEUP


@dataclass(frozen=True)
class NightSleepSummaryItem(TimelineItem):
    entry: SleepEntry = None
    duration_minutes: int = 0

    kind = TimelineItemType.NIGHT_SLEEP_SUMMARY


@dataclass(frozen=True)
class WakeWindowItem(TimelineItem):
    start_time: datetime = None
    end_time: datetime = None
    duration_minutes: int = 0

    kind = TimelineItemType.WAKE_WINDOW


@dataclass(frozen=True)
class _SleepEvent:
    """A point in the day's ascending sleep/wake sequence."""

    at: datetime
    sleep_time: Optional[datetime]
    wake_time: Optional[datetime]


def _sorted_by_start(entries: Iterable[SleepEntry]) -> List[SleepEntry]:
    return sorted(entries, key=lambda entry: entry.start_time)


def find_wake_ups(all_entries: Iterable[SleepEntry], selected: date) -> List[SleepEntry]:
    """Night entries, from any day, whose wake-up happened on ``selected``."""
    return _sorted_by_start(
        entry
        for entry in all_entries
        if entry.type == SleepType.NIGHT
        and entry.end_time is not None
        and entry.end_time.date() == selected
    )


def _wake_windows(
    naps: List[SleepEntry], bedtimes: List[SleepEntry], wake_ups: List[SleepEntry]
) -> List[WakeWindowItem]:
    events: List[_SleepEvent] = []
    for nap in naps:
        events.append(_SleepEvent(at=nap.start_time, sleep_time=nap.start_time, wake_time=nap.end_time))
    for night in wake_ups:
        events.append(_SleepEvent(at=night.end_time, sleep_time=None, wake_time=night.end_time))
    for night in bedtimes:
        events.append(_SleepEvent(at=night.start_time, sleep_time=night.start_time, wake_time=None))
    # A wake-up sorts before a sleep starting at the same instant
    events.sort(key=lambda event: (event.at, event.sleep_time is not None))

    windows = []
    for earlier, later in zip(events, events[1:]):
        if earlier.wake_time is None or later.sleep_time is None:
            continue
        duration = minutes_between(earlier.wake_time, later.sleep_time)
        if duration <= 0:
            continue
        windows.append(
            WakeWindowItem(
                sort_key=to_epoch_ms(later.sleep_time) - SORT_EPSILON_MS,
                time=earlier.wake_time,
                start_time=earlier.wake_time,
                end_time=later.sleep_time,
                duration_minutes=duration,
            )
        )
    return windows


def build_timeline(
    day_entries: Iterable[SleepEntry],
    all_entries: Iterable[SleepEntry],
    selected_date: Union[date, datetime, str],
) -> List[TimelineItem]:
    """
    Reconstruct the renderable timeline for one day.

    Steps:
    1. Split the day's entries into naps and bedtimes; number naps 1..N by
       start time as they sort right now.
    2. One item per nap and per bedtime, keyed by start time.
    3. For every night (any day) that ended on the selected day, a wake-up
       item at its end and a night-sleep summary just below it. A wake-up
       that coincides with a sleep start moves just below that start, so
       every key stays distinct.
    4. Wake windows between each wake and the next sleep, skipped when the
       gap is not positive.
    5. Everything merged and sorted most recent first.

    Args:
        day_entries: Entries attributed to the selected day
        all_entries: Every entry of the baby, used to find cross-midnight wake-ups
        selected_date: The day being viewed

    Returns:
        Timeline items in descending sort-key order
    """
    selected = as_date(selected_date)
    day_entries = list(day_entries)

    naps = _sorted_by_start(e for e in day_entries if e.type == SleepType.NAP)
    bedtimes = _sorted_by_start(e for e in day_entries if e.type == SleepType.NIGHT)
    wake_ups = find_wake_ups(all_entries, selected)

    items: List[TimelineItem] = []

    for number, nap in enumerate(naps, start=1):
        items.append(
            NapItem(sort_key=to_epoch_ms(nap.start_time), time=nap.start_time, entry=nap, nap_number=number)
        )

    for night in bedtimes:
        items.append(BedtimeItem(sort_key=to_epoch_ms(night.start_time), time=night.start_time, entry=night))

    sleep_start_keys = {item.sort_key for item in items}
    for night in wake_ups:
        wake_key = to_epoch_ms(night.end_time)
        if wake_key in sleep_start_keys:
            # A sleep starting the moment the night ends renders above its wake-up
            wake_key -= SORT_EPSILON_MS
        items.append(WakeUpItem(sort_key=wake_key, time=night.end_time, entry=night))
        items.append(
            NightSleepSummaryItem(
                sort_key=wake_key - SORT_EPSILON_MS,
                time=night.end_time,
                entry=night,
                duration_minutes=minutes_between(night.start_time, night.end_time),
            )
        )

    items.extend(_wake_windows(naps, bedtimes, wake_ups))

    items.sort(key=lambda item: item.sort_key, reverse=True)
    return items
