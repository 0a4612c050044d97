"""Per-day sleep totals and multi-day aggregates for the report view."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..core.enums import SleepType
from .models import SleepEntry
from ..utils.time_utils import as_date, minutes_between, resolve_now

# Below this many completed days with sleep logged, averages are not representative
MIN_DAYS_FOR_ENOUGH_DATA = 3

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class DailySummary:
    """Totals over the entries attributed to one day."""

    total_nap_minutes: int = 0
    total_night_minutes: int = 0
    nap_count: int = 0
    night_count: int = 0

    @property
    def total_sleep_minutes(self) -> int:
        return self.total_nap_minutes + self.total_night_minutes


@dataclass(frozen=True)
class TimeOfDaySpread:
    """Earliest and latest time of day seen, in minutes after midnight."""

    earliest_minutes: int
    latest_minutes: int

    @property
    def spread_minutes(self) -> int:
        return self.latest_minutes - self.earliest_minutes


@dataclass(frozen=True)
class RangeSummary:
    """
    Aggregates over the completed days of a date range.

    Today is never a completed day: its totals are still growing. Averages
    only count days with some sleep logged.
    """

    start: date
    end: date
    completed_days: int = 0
    days_with_data: int = 0
    avg_total_minutes: int = 0
    avg_nap_minutes: int = 0
    avg_night_minutes: int = 0
    avg_nap_duration_minutes: int = 0
    avg_nap_count: float = 0.0
    nap_count_range: Optional[Tuple[int, int]] = None
    bedtime_spread: Optional[TimeOfDaySpread] = None
    wake_up_spread: Optional[TimeOfDaySpread] = None
    avg_wake_window_minutes: Optional[int] = None
    this_week_total_minutes: int = 0
    last_week_total_minutes: int = 0

    @property
    def has_enough_data(self) -> bool:
        return self.days_with_data >= MIN_DAYS_FOR_ENOUGH_DATA


def entry_duration_minutes(entry: SleepEntry, now: Optional[datetime] = None) -> int:
    """Duration of an entry; an open entry counts up to ``now``."""
    end = entry.end_time if entry.end_time is not None else resolve_now(now)
    return max(0, minutes_between(entry.start_time, end))


def summarize_day(day_entries: Iterable[SleepEntry], now: Optional[datetime] = None) -> DailySummary:
    """Sum nap and night minutes for a day's entries."""
    now = resolve_now(now)
    nap_minutes = night_minutes = nap_count = night_count = 0

    for entry in day_entries:
        minutes = entry_duration_minutes(entry, now)
        if entry.type == SleepType.NAP:
            nap_minutes += minutes
            nap_count += 1
        else:
            night_minutes += minutes
            night_count += 1

    return DailySummary(
        total_nap_minutes=nap_minutes,
        total_night_minutes=night_minutes,
        nap_count=nap_count,
        night_count=night_count,
    )


def _round(value: float) -> int:
    # Halves round up, matching how the totals are shown elsewhere
    return int(value + 0.5)


def _minutes_after_midnight(value: datetime) -> int:
    return value.hour * 60 + value.minute


def _days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def _spread(minutes: List[int]) -> TimeOfDaySpread:
    return TimeOfDaySpread(earliest_minutes=min(minutes), latest_minutes=max(minutes))


def _average_wake_window(entries: List[SleepEntry], counted_days: set) -> Optional[int]:
    """Mean gap between a sleep ending and the next one starting, by start time."""
    ordered = sorted(entries, key=lambda entry: entry.start_time)
    windows = []
    for earlier, later in zip(ordered, ordered[1:]):
        if earlier.end_time is None or later.date not in counted_days:
            continue
        gap = minutes_between(earlier.end_time, later.start_time)
        if gap > 0:
            windows.append(gap)
    if not windows:
        return None
    return _round(sum(windows) / len(windows))


def summarize_range(
    entries: Iterable[SleepEntry],
    start: Union[date, datetime, str],
    end: Union[date, datetime, str],
    now: Optional[datetime] = None,
) -> RangeSummary:
    """
    Aggregate a baby's entries over the days ``start``..``end`` inclusive.

    Args:
        entries: Every entry of the baby; nights are bucketed by bedtime day
            and their wake-ups by the day they ended on
        start: First day of the range
        end: Last day of the range
        now: Current time (injectable); days from today on are not complete

    Returns:
        RangeSummary with averages, time-of-day spreads and week totals.
        "This week" is the seven days ending at ``end``, "last week" the
        seven before it.

    Raises:
        ValueError: If ``start`` is after ``end``
    """
    now = resolve_now(now)
    start, end = as_date(start), as_date(end)
    if start > end:
        raise ValueError(f"Range start {start} is after its end {end}")

    entries = list(entries)
    today = now.date()

    by_day: Dict[date, List[SleepEntry]] = defaultdict(list)
    for entry in entries:
        by_day[entry.date].append(entry)

    def day_summary(day: date) -> DailySummary:
        return summarize_day(by_day.get(day, []), now)

    completed = [day for day in _days(start, end) if day < today]
    with_data = [s for s in map(day_summary, completed) if s.total_sleep_minutes > 0]

    summary = {"start": start, "end": end, "completed_days": len(completed)}

    if with_data:
        count = len(with_data)
        total_naps = sum(s.nap_count for s in with_data)
        total_nap_minutes = sum(s.total_nap_minutes for s in with_data)
        nap_counts = [s.nap_count for s in with_data if s.nap_count > 0]
        summary.update(
            days_with_data=count,
            avg_total_minutes=_round(sum(s.total_sleep_minutes for s in with_data) / count),
            avg_nap_minutes=_round(total_nap_minutes / count),
            avg_night_minutes=_round(sum(s.total_night_minutes for s in with_data) / count),
            avg_nap_duration_minutes=_round(total_nap_minutes / total_naps) if total_naps else 0,
            avg_nap_count=round(total_naps / count, 1),
            nap_count_range=(min(nap_counts), max(nap_counts)) if nap_counts else None,
        )

    bedtimes = []
    wake_ups = []
    nights = sorted(
        (entry for entry in entries if entry.type == SleepType.NIGHT),
        key=lambda entry: entry.start_time,
    )
    for day in completed:
        bedtime = next((n for n in nights if n.date == day), None)
        if bedtime is not None:
            bedtimes.append(_minutes_after_midnight(bedtime.start_time))
        wake_up = next(
            (n for n in nights if n.end_time is not None and n.end_time.date() == day), None
        )
        if wake_up is not None:
            wake_ups.append(_minutes_after_midnight(wake_up.end_time))

    if len(bedtimes) >= 2:
        summary["bedtime_spread"] = _spread(bedtimes)
    if wake_ups:
        summary["wake_up_spread"] = _spread(wake_ups)

    summary["avg_wake_window_minutes"] = _average_wake_window(entries, set(completed))

    def week_total(last_day: date) -> int:
        days = _days(last_day - timedelta(days=DAYS_PER_WEEK - 1), last_day)
        return sum(day_summary(day).total_sleep_minutes for day in days if day < today)

    summary["this_week_total_minutes"] = week_total(end)
    summary["last_week_total_minutes"] = week_total(end - timedelta(days=DAYS_PER_WEEK))

    return RangeSummary(**summary)
