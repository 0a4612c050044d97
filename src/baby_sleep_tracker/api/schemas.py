"""Pydantic models for API request/response validation."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field  # type: ignore
from pydantic.alias_generators import to_camel

from ..core.enums import Severity, SleepType, TimelineItemType, ValidationReason
from ..domain.models import AwakeState, SleepEntry, SleepEntryCreate
from ..domain.summary import DailySummary, RangeSummary, TimeOfDaySpread
from ..domain.timeline import (
    NapItem,
    NightSleepSummaryItem,
    TimelineItem,
    WakeWindowItem,
)
from ..domain.validation import ValidationResult
from ..utils.time_utils import format_duration, format_time_of_day


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )


# Requests
class StartSleepRequest(CamelModel):
    """Schema for opening a sleep at the current time."""

    type: SleepType = Field(description="nap or night")


class EndSleepRequest(CamelModel):
    """Schema for ending an entry; defaults to now."""

    end_time: Optional[datetime] = Field(None, description="Wake-up time")


class ReplaceEntryRequest(CamelModel):
    """Schema for resolving a collision by replacing the colliding entry."""

    colliding_id: str = Field(description="ID of the entry to delete")
    entry: SleepEntryCreate = Field(description="Entry to save in its place")


# Responses
class ValidationResponse(CamelModel):
    """Validator outcome attached to writes."""

    ok: bool
    severity: Optional[Severity] = None
    reason_code: Optional[ValidationReason] = None
    message: Optional[str] = None
    duration_minutes: Optional[int] = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(
            ok=result.ok,
            severity=result.severity,
            reason_code=result.reason_code,
            message=result.message,
            duration_minutes=result.duration_minutes,
        )


class SaveResponse(CamelModel):
    """A successfully written entry and any warning to display with it."""

    entry: SleepEntry
    warning: Optional[ValidationResponse] = None


class EntryListResponse(CamelModel):
    """Schema for entry list response."""

    entries: List[SleepEntry]


class AwakeStateResponse(CamelModel):
    """Schema for the derived asleep/awake state."""

    is_asleep: bool
    active_sleep: Optional[SleepEntry] = None
    awake_minutes: Optional[int] = None
    awake_label: Optional[str] = None
    last_completed_sleep: Optional[SleepEntry] = None
    inconsistent: bool = False

    @classmethod
    def from_state(cls, state: AwakeState) -> "AwakeStateResponse":
        return cls(
            is_asleep=state.is_asleep,
            active_sleep=state.active_sleep,
            awake_minutes=state.awake_minutes,
            awake_label=(
                format_duration(state.awake_minutes) if state.awake_minutes is not None else None
            ),
            last_completed_sleep=state.last_completed_sleep,
            inconsistent=state.is_inconsistent,
        )


class TimelineItemResponse(CamelModel):
    """One rendered timeline item; ``kind`` selects which fields are set."""

    kind: TimelineItemType
    sort_key: int
    time: datetime
    entry: Optional[SleepEntry] = None
    nap_number: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    duration_label: Optional[str] = None

    @classmethod
    def from_item(cls, item: TimelineItem) -> "TimelineItemResponse":
        data = {"kind": item.kind, "sort_key": item.sort_key, "time": item.time}

        if isinstance(item, WakeWindowItem):
            data.update(start_time=item.start_time, end_time=item.end_time)
        else:
            data["entry"] = item.entry

        if isinstance(item, NapItem):
            data["nap_number"] = item.nap_number

        duration = None
        if isinstance(item, (NapItem, NightSleepSummaryItem, WakeWindowItem)):
            duration = item.duration_minutes
        if duration is not None:
            data.update(duration_minutes=duration, duration_label=format_duration(duration))

        return cls(**data)


class TimelineResponse(CamelModel):
    """Schema for a day's timeline, most recent first."""

    date: date
    items: List[TimelineItemResponse]


class DailySummaryResponse(CamelModel):
    """Schema for a day's sleep totals."""

    date: date
    total_nap_minutes: int
    total_night_minutes: int
    total_sleep_minutes: int
    total_sleep_label: str
    nap_count: int
    night_count: int

    @classmethod
    def from_summary(cls, day: date, summary: DailySummary) -> "DailySummaryResponse":
        return cls(
            date=day,
            total_nap_minutes=summary.total_nap_minutes,
            total_night_minutes=summary.total_night_minutes,
            total_sleep_minutes=summary.total_sleep_minutes,
            total_sleep_label=format_duration(summary.total_sleep_minutes),
            nap_count=summary.nap_count,
            night_count=summary.night_count,
        )


class TimeOfDaySpreadResponse(CamelModel):
    """Earliest and latest time of day, as minutes after midnight and as HH:MM."""

    earliest_minutes: int
    latest_minutes: int
    spread_minutes: int
    earliest: str
    latest: str

    @classmethod
    def from_spread(cls, spread: Optional[TimeOfDaySpread]) -> Optional["TimeOfDaySpreadResponse"]:
        if spread is None:
            return None
        return cls(
            earliest_minutes=spread.earliest_minutes,
            latest_minutes=spread.latest_minutes,
            spread_minutes=spread.spread_minutes,
            earliest=format_time_of_day(spread.earliest_minutes),
            latest=format_time_of_day(spread.latest_minutes),
        )


class NapCountRange(CamelModel):
    min: int
    max: int


class ReportResponse(CamelModel):
    """Schema for multi-day sleep aggregates."""

    start: date
    end: date
    completed_days: int
    days_with_data: int
    has_enough_data: bool
    avg_total_minutes: int
    avg_total_label: str
    avg_nap_minutes: int
    avg_night_minutes: int
    avg_nap_duration_minutes: int
    avg_nap_count: float
    nap_count_range: Optional[NapCountRange] = None
    bedtime_spread: Optional[TimeOfDaySpreadResponse] = None
    wake_up_spread: Optional[TimeOfDaySpreadResponse] = None
    avg_wake_window_minutes: Optional[int] = None
    this_week_total_minutes: int
    last_week_total_minutes: int

    @classmethod
    def from_summary(cls, summary: RangeSummary) -> "ReportResponse":
        nap_range = summary.nap_count_range
        return cls(
            start=summary.start,
            end=summary.end,
            completed_days=summary.completed_days,
            days_with_data=summary.days_with_data,
            has_enough_data=summary.has_enough_data,
            avg_total_minutes=summary.avg_total_minutes,
            avg_total_label=format_duration(summary.avg_total_minutes),
            avg_nap_minutes=summary.avg_nap_minutes,
            avg_night_minutes=summary.avg_night_minutes,
            avg_nap_duration_minutes=summary.avg_nap_duration_minutes,
            avg_nap_count=summary.avg_nap_count,
            nap_count_range=NapCountRange(min=nap_range[0], max=nap_range[1]) if nap_range else None,
            bedtime_spread=TimeOfDaySpreadResponse.from_spread(summary.bedtime_spread),
            wake_up_spread=TimeOfDaySpreadResponse.from_spread(summary.wake_up_spread),
            avg_wake_window_minutes=summary.avg_wake_window_minutes,
            this_week_total_minutes=summary.this_week_total_minutes,
            last_week_total_minutes=summary.last_week_total_minutes,
        )


class MissingBedtimeResponse(CamelModel):
    """Schema for the missing-bedtime prompt check."""

    should_prompt: bool
