"""Enums for the baby sleep tracker application."""

from enum import Enum


class SleepType(str, Enum):
    """Kind of sleep entry."""

    NAP = "nap"
    NIGHT = "night"


class Severity(str, Enum):
    """Outcome severity of a validation check."""

    BLOCK = "block"
    WARN = "warn"


class ValidationReason(str, Enum):
    """Reason codes returned by the entry validator."""

    SAME_START_END = "same_start_end"
    NAP_TOO_LONG = "nap_too_long"
    NAP_UNUSUALLY_LONG = "nap_unusually_long"
    NAP_CROSSES_MIDNIGHT = "nap_crosses_midnight"
    NIGHT_TOO_LONG = "night_too_long"
    NIGHT_UNUSUALLY_LONG = "night_unusually_long"
    END_BEFORE_START = "end_before_start"


class TimelineItemType(str, Enum):
    """Kinds of items rendered on the daily timeline."""

    BEDTIME = "bedtime"
    NAP = "nap"
    WAKEUP = "wakeup"
    WAKE_WINDOW = "wake-window"
    NIGHT_SLEEP_SUMMARY = "night-sleep-summary"


class SaveStatus(str, Enum):
    """Outcome of a write attempt through the sleep log service."""

    SAVED = "saved"
    BLOCKED = "blocked"
    COLLISION = "collision"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ResolutionState(str, Enum):
    """States of the collision-resolution / wake-up confirmation flow."""

    IDLE = "idle"
    COLLISION_DETECTED = "collision_detected"
    CONFIRMING_WAKE_UP = "confirming_wake_up"


class ResolutionAction(str, Enum):
    """Write the caller must perform after a resolution transition."""

    NONE = "none"
    SAVE = "save"
    REPLACE = "replace"
    END_SLEEP = "end_sleep"


class StoreBackend(str, Enum):
    """Available Entry Store backends."""

    SQLALCHEMY = "sqlalchemy"
    MEMORY = "memory"
