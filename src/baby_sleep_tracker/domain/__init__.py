"""Domain layer for Baby Sleep Tracker.

Contains the pure reconciliation engine: collision detection, validation,
active-session tracking, timeline reconstruction and the missing-bedtime
heuristic. Every function takes the entry snapshot and ``now`` explicitly.
This layer has no dependencies on infrastructure concerns.
"""

from .awake_state import derive_awake_state
from .collision import find_collision, find_write_conflict
from .missing_bedtime import should_prompt_missing_bedtime
from .models import AwakeState, SleepEntry, SleepEntryCreate, SleepEntryUpdate
from .summary import DailySummary, RangeSummary, summarize_day, summarize_range
from .timeline import build_timeline
from .validation import ValidationResult, validate

__all__ = [
    "AwakeState",
    "DailySummary",
    "RangeSummary",
    "SleepEntry",
    "SleepEntryCreate",
    "SleepEntryUpdate",
    "ValidationResult",
    "build_timeline",
    "derive_awake_state",
    "find_collision",
    "find_write_conflict",
    "should_prompt_missing_bedtime",
    "summarize_day",
    "summarize_range",
    "validate",
]
