"""
Duration policy for candidate sleep intervals.

The thresholds below are business rules, not physics: they decide which
entries are rejected outright and which are saved with a warning.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from ..core.enums import Severity, SleepType, ValidationReason
from ..utils.time_utils import minutes_between

MINUTES_PER_DAY = 24 * 60

NAP_MAX_MINUTES = 5 * 60  # Longer naps are rejected
NAP_WARN_MINUTES = 4 * 60  # Longer naps are flagged as unusual
NIGHT_MAX_MINUTES = 14 * 60
NIGHT_WARN_MINUTES = 13 * 60

REASON_MESSAGES = {
    ValidationReason.SAME_START_END: "Start and end times are the same",
    ValidationReason.NAP_TOO_LONG: "Nap duration exceeds 5 hours",
    ValidationReason.NAP_UNUSUALLY_LONG: "Unusually long nap",
    ValidationReason.NAP_CROSSES_MIDNIGHT: "This nap crosses midnight",
    ValidationReason.NIGHT_TOO_LONG: "Night sleep exceeds 14 hours",
    ValidationReason.NIGHT_UNUSUALLY_LONG: "Unusually long night sleep",
    ValidationReason.END_BEFORE_START: "End time is more than a day before the start time",
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a candidate interval."""

    ok: bool = True
    severity: Optional[Severity] = None
    reason_code: Optional[ValidationReason] = None
    duration_minutes: Optional[int] = None

    @property
    def is_blocked(self) -> bool:
        return self.severity == Severity.BLOCK

    @property
    def is_warning(self) -> bool:
        return self.severity == Severity.WARN

    @property
    def message(self) -> Optional[str]:
        if self.reason_code is None:
            return None
        return REASON_MESSAGES[self.reason_code]


def _block(reason: ValidationReason, duration: int) -> ValidationResult:
    return ValidationResult(
        ok=False, severity=Severity.BLOCK, reason_code=reason, duration_minutes=duration
    )


def _warn(reason: ValidationReason, duration: int) -> ValidationResult:
    return ValidationResult(
        ok=True, severity=Severity.WARN, reason_code=reason, duration_minutes=duration
    )


def interval_minutes(start_time: datetime, end_time: datetime) -> int:
    """Minutes from start to end; an end before the start wraps past midnight."""
    minutes = minutes_between(start_time, end_time)
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def crosses_midnight(start_time: datetime, end_time: datetime) -> bool:
    """Whether the interval ends on a later calendar day (or wraps)."""
    return end_time < start_time or end_time.date() != start_time.date()


def normalize_end_time(start_time: datetime, end_time: Optional[datetime]) -> Optional[datetime]:
    """Move an end that precedes its start (same-day wrap) onto the next day."""
    if end_time is None or end_time >= start_time:
        return end_time
    if start_time - end_time < timedelta(days=1):
        return end_time + timedelta(days=1)
    return end_time


def validate(
    sleep_type: Union[SleepType, str],
    start_time: datetime,
    end_time: Optional[datetime],
) -> ValidationResult:
    """
    Validate a candidate interval against the duration policy.

    Args:
        sleep_type: nap or night
        start_time: Start of the interval
        end_time: End of the interval; None means still sleeping (always OK)

    Returns:
        ValidationResult with ok/severity/reason_code
    """
    if end_time is None:
        return ValidationResult()

    sleep_type = SleepType(sleep_type)
    duration = interval_minutes(start_time, end_time)

    if duration < 0:
        return _block(ValidationReason.END_BEFORE_START, duration)

    if duration == 0 or duration == MINUTES_PER_DAY:
        return _block(ValidationReason.SAME_START_END, duration)

    if sleep_type == SleepType.NAP:
        if duration > NAP_MAX_MINUTES:
            return _block(ValidationReason.NAP_TOO_LONG, duration)
        if duration > NAP_WARN_MINUTES:
            return _warn(ValidationReason.NAP_UNUSUALLY_LONG, duration)
        if crosses_midnight(start_time, end_time):
            return _warn(ValidationReason.NAP_CROSSES_MIDNIGHT, duration)
    else:
        if duration > NIGHT_MAX_MINUTES:
            return _block(ValidationReason.NIGHT_TOO_LONG, duration)
        if duration > NIGHT_WARN_MINUTES:
            return _warn(ValidationReason.NIGHT_UNUSUALLY_LONG, duration)

    return ValidationResult(duration_minutes=duration)
