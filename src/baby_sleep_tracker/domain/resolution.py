"""
Collision-resolution and wake-up confirmation flow as an explicit state machine.

States:
    idle
    collision_detected(pending, colliding)
    confirming_wake_up(entry)

Transitions return the next flow together with the write the caller has to
perform, so invalid combinations (a pending entry without a colliding one,
a wake-up confirmation while a collision is open) cannot be represented.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from ..core.enums import ResolutionAction, ResolutionState, SleepType
from .collision import find_write_conflict
from .models import SleepEntry, SleepEntryCreate


@dataclass(frozen=True)
class ResolutionStep:
    """What the caller must do after a transition."""

    action: ResolutionAction = ResolutionAction.NONE
    pending: Optional[SleepEntryCreate] = None
    target: Optional[SleepEntry] = None  # entry to replace or to end
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class ResolutionFlow:
    """Immutable flow state; use the transition methods to move between states."""

    state: ResolutionState = ResolutionState.IDLE
    pending: Optional[SleepEntryCreate] = None
    colliding: Optional[SleepEntry] = None
    wake_up_entry: Optional[SleepEntry] = None

    def _require(self, state: ResolutionState, transition: str) -> None:
        if self.state != state:
            raise ValueError(
                f"Cannot {transition} while {self.state.value}; expected {state.value}"
            )

    def submit(
        self,
        draft: SleepEntryCreate,
        entries: Iterable[SleepEntry],
        editing_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple["ResolutionFlow", ResolutionStep]:
        """
        Submit a new or edited entry: either save it or stop on a collision.

        Uses the same conflict rule as the write gate, so a draft this flow
        lets through is not refused as a collision on save.
        """
        self._require(ResolutionState.IDLE, "submit")

        colliding = find_write_conflict(
            draft.start_time, draft.end_time, entries, exclude_id=editing_id, now=now
        )
        if colliding is not None:
            return (
                ResolutionFlow(
                    state=ResolutionState.COLLISION_DETECTED,
                    pending=draft,
                    colliding=colliding,
                ),
                ResolutionStep(),
            )

        return ResolutionFlow(), ResolutionStep(action=ResolutionAction.SAVE, pending=draft)

    def replace(self) -> Tuple["ResolutionFlow", ResolutionStep]:
        """Resolve a collision by deleting the colliding entry and saving the pending one."""
        self._require(ResolutionState.COLLISION_DETECTED, "replace")
        return ResolutionFlow(), ResolutionStep(
            action=ResolutionAction.REPLACE, pending=self.pending, target=self.colliding
        )

    def cancel(self) -> Tuple["ResolutionFlow", ResolutionStep]:
        """Abandon the open collision or wake-up confirmation."""
        if self.state == ResolutionState.IDLE:
            raise ValueError("Nothing to cancel while idle")
        return ResolutionFlow(), ResolutionStep()

    def request_wake_up(self, entry: SleepEntry) -> Tuple["ResolutionFlow", ResolutionStep]:
        """Ask the caregiver to confirm the wake-up time of an active night."""
        self._require(ResolutionState.IDLE, "request a wake-up")
        if entry.end_time is not None:
            raise ValueError(f"Entry {entry.id} has already ended")
        if entry.type != SleepType.NIGHT:
            raise ValueError(f"Entry {entry.id} is not a night sleep")
        return (
            ResolutionFlow(state=ResolutionState.CONFIRMING_WAKE_UP, wake_up_entry=entry),
            ResolutionStep(),
        )

    def confirm_wake_up(self, end_time: datetime) -> Tuple["ResolutionFlow", ResolutionStep]:
        """Confirm the wake-up time; the caller ends the night entry."""
        self._require(ResolutionState.CONFIRMING_WAKE_UP, "confirm a wake-up")
        return ResolutionFlow(), ResolutionStep(
            action=ResolutionAction.END_SLEEP, target=self.wake_up_entry, end_time=end_time
        )
