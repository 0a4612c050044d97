"""Unit tests for timeline reconstruction."""

from datetime import date, datetime

import pytest

from baby_sleep_tracker.core.enums import SleepType, TimelineItemType
from baby_sleep_tracker.domain.timeline import (
    SORT_EPSILON_MS,
    BedtimeItem,
    NapItem,
    NightSleepSummaryItem,
    WakeUpItem,
    WakeWindowItem,
    build_timeline,
    find_wake_ups,
)
from baby_sleep_tracker.utils.time_utils import to_epoch_ms


def kinds(items):
    return [item.kind for item in items]


def day_of(entries, day):
    return [entry for entry in entries if entry.date == day]


@pytest.mark.unit
class TestNightAcrossMidnight:
    """A night belongs to its bedtime day; its wake-up shows on the next day."""

    @pytest.fixture
    def night(self, make_entry):
        return make_entry(
            datetime(2024, 1, 10, 20, 0),
            datetime(2024, 1, 11, 7, 0),
            type=SleepType.NIGHT,
        )

    def test_wake_up_day_shows_wake_up_and_summary(self, night):
        items = build_timeline([], [night], date(2024, 1, 11))

        assert kinds(items) == [TimelineItemType.WAKEUP, TimelineItemType.NIGHT_SLEEP_SUMMARY]
        wake_up, summary = items
        assert isinstance(wake_up, WakeUpItem)
        assert wake_up.time == datetime(2024, 1, 11, 7, 0)
        assert isinstance(summary, NightSleepSummaryItem)
        assert summary.duration_minutes == 660
        assert summary.sort_key == wake_up.sort_key - SORT_EPSILON_MS

    def test_bedtime_day_shows_only_bedtime(self, night):
        items = build_timeline([night], [night], date(2024, 1, 10))

        assert kinds(items) == [TimelineItemType.BEDTIME]
        assert isinstance(items[0], BedtimeItem)
        assert items[0].sort_key == to_epoch_ms(datetime(2024, 1, 10, 20, 0))

    def test_selected_date_accepts_iso_string(self, night):
        assert len(build_timeline([], [night], "2024-01-11")) == 2

    def test_open_night_has_no_wake_up(self, make_entry):
        open_night = make_entry(datetime(2024, 1, 10, 20, 0), None, type=SleepType.NIGHT)

        assert find_wake_ups([open_night], date(2024, 1, 11)) == []
        assert build_timeline([], [open_night], date(2024, 1, 11)) == []


@pytest.mark.unit
class TestWakeWindows:

    def test_single_wake_window_between_nap_and_bedtime(self, make_entry):
        nap = make_entry(datetime(2024, 1, 10, 8, 0), datetime(2024, 1, 10, 9, 0))
        bedtime = make_entry(datetime(2024, 1, 10, 19, 30), None, type=SleepType.NIGHT)
        entries = [nap, bedtime]

        items = build_timeline(entries, entries, date(2024, 1, 10))

        windows = [item for item in items if isinstance(item, WakeWindowItem)]
        assert len(windows) == 1
        assert windows[0].duration_minutes == 630
        assert windows[0].start_time == datetime(2024, 1, 10, 9, 0)
        assert windows[0].end_time == datetime(2024, 1, 10, 19, 30)
        assert kinds(items) == [
            TimelineItemType.BEDTIME,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.NAP,
        ]

    def test_full_day_feed(self, make_entry):
        night_before = make_entry(
            datetime(2024, 1, 10, 19, 0), datetime(2024, 1, 11, 7, 0), type=SleepType.NIGHT
        )
        nap1 = make_entry(datetime(2024, 1, 11, 9, 30), datetime(2024, 1, 11, 10, 30))
        nap2 = make_entry(datetime(2024, 1, 11, 13, 0), datetime(2024, 1, 11, 14, 0))
        bedtime = make_entry(datetime(2024, 1, 11, 19, 0), None, type=SleepType.NIGHT)
        all_entries = [night_before, nap1, nap2, bedtime]
        selected = date(2024, 1, 11)

        items = build_timeline(day_of(all_entries, selected), all_entries, selected)

        assert kinds(items) == [
            TimelineItemType.BEDTIME,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.NAP,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.NAP,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.WAKEUP,
            TimelineItemType.NIGHT_SLEEP_SUMMARY,
        ]
        windows = [item.duration_minutes for item in items if isinstance(item, WakeWindowItem)]
        assert windows == [300, 150, 150]

        sort_keys = [item.sort_key for item in items]
        assert all(a > b for a, b in zip(sort_keys, sort_keys[1:]))

    def test_window_sits_just_below_next_sleep(self, make_entry):
        nap1 = make_entry(datetime(2024, 1, 10, 9, 0), datetime(2024, 1, 10, 10, 0))
        nap2 = make_entry(datetime(2024, 1, 10, 12, 0), datetime(2024, 1, 10, 13, 0))

        items = build_timeline([nap1, nap2], [nap1, nap2], date(2024, 1, 10))
        window = next(item for item in items if isinstance(item, WakeWindowItem))

        assert window.sort_key == to_epoch_ms(nap2.start_time) - SORT_EPSILON_MS

    def test_no_window_after_open_nap(self, make_entry):
        open_nap = make_entry(datetime(2024, 1, 10, 13, 0), None)
        bedtime = make_entry(datetime(2024, 1, 10, 19, 0), None, type=SleepType.NIGHT)

        items = build_timeline([open_nap, bedtime], [open_nap, bedtime], date(2024, 1, 10))

        assert TimelineItemType.WAKE_WINDOW not in kinds(items)

    def test_zero_length_gap_is_skipped_and_sleep_renders_above_wake_up(self, make_entry):
        night = make_entry(
            datetime(2024, 1, 10, 20, 0), datetime(2024, 1, 11, 7, 0), type=SleepType.NIGHT
        )
        nap = make_entry(datetime(2024, 1, 11, 7, 0), datetime(2024, 1, 11, 8, 0))

        items = build_timeline([nap], [night, nap], date(2024, 1, 11))

        assert TimelineItemType.WAKE_WINDOW not in kinds(items)
        assert kinds(items)[:3] == [
            TimelineItemType.NAP,
            TimelineItemType.WAKEUP,
            TimelineItemType.NIGHT_SLEEP_SUMMARY,
        ]
        keys = [item.sort_key for item in items]
        assert all(a > b for a, b in zip(keys, keys[1:]))
        assert items[0].sort_key == to_epoch_ms(nap.start_time)
        assert items[1].time == night.end_time

    def test_overlapping_sleeps_produce_no_negative_window(self, make_entry):
        nap1 = make_entry(datetime(2024, 1, 10, 9, 0), datetime(2024, 1, 10, 11, 0))
        nap2 = make_entry(datetime(2024, 1, 10, 10, 0), datetime(2024, 1, 10, 10, 30))

        items = build_timeline([nap1, nap2], [nap1, nap2], date(2024, 1, 10))

        assert all(
            item.duration_minutes > 0 for item in items if isinstance(item, WakeWindowItem)
        )


@pytest.mark.unit
class TestNapNumbering:

    def test_naps_numbered_by_start_time(self, make_entry):
        late = make_entry(datetime(2024, 1, 10, 14, 0), datetime(2024, 1, 10, 15, 0))
        early = make_entry(datetime(2024, 1, 10, 9, 0), datetime(2024, 1, 10, 10, 0))

        items = build_timeline([late, early], [late, early], date(2024, 1, 10))
        numbers = {item.entry.id: item.nap_number for item in items if isinstance(item, NapItem)}

        assert numbers == {early.id: 1, late.id: 2}

    def test_adding_an_earlier_nap_renumbers_later_ones(self, make_entry):
        first = make_entry(datetime(2024, 1, 10, 11, 0), datetime(2024, 1, 10, 12, 0))
        items = build_timeline([first], [first], date(2024, 1, 10))
        assert items[0].nap_number == 1

        earlier = make_entry(datetime(2024, 1, 10, 8, 0), datetime(2024, 1, 10, 8, 45))
        items = build_timeline([first, earlier], [first, earlier], date(2024, 1, 10))
        numbers = {item.entry.id: item.nap_number for item in items if isinstance(item, NapItem)}

        assert numbers == {earlier.id: 1, first.id: 2}

    def test_nap_duration(self, make_entry):
        nap = make_entry(datetime(2024, 1, 10, 9, 0), datetime(2024, 1, 10, 10, 15))
        open_nap = make_entry(datetime(2024, 1, 10, 13, 0), None)

        items = build_timeline([nap, open_nap], [nap, open_nap], date(2024, 1, 10))
        durations = {item.entry.id: item.duration_minutes for item in items if isinstance(item, NapItem)}

        assert durations == {nap.id: 75, open_nap.id: None}


@pytest.mark.unit
class TestOrdering:

    def test_keys_strictly_descending_for_back_to_back_day(self, make_entry):
        night = make_entry(
            datetime(2024, 1, 10, 19, 30), datetime(2024, 1, 11, 6, 30), type=SleepType.NIGHT
        )
        nap1 = make_entry(datetime(2024, 1, 11, 6, 30), datetime(2024, 1, 11, 7, 15))
        nap2 = make_entry(datetime(2024, 1, 11, 10, 0), datetime(2024, 1, 11, 11, 30))
        nap3 = make_entry(datetime(2024, 1, 11, 11, 30), datetime(2024, 1, 11, 12, 0))
        bedtime = make_entry(datetime(2024, 1, 11, 19, 0), None, type=SleepType.NIGHT)
        day = [nap1, nap2, nap3, bedtime]

        items = build_timeline(day, [night, *day], date(2024, 1, 11))

        keys = [item.sort_key for item in items]
        assert all(a > b for a, b in zip(keys, keys[1:]))
        assert kinds(items) == [
            TimelineItemType.BEDTIME,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.NAP,
            TimelineItemType.NAP,
            TimelineItemType.WAKE_WINDOW,
            TimelineItemType.NAP,
            TimelineItemType.WAKEUP,
            TimelineItemType.NIGHT_SLEEP_SUMMARY,
        ]
