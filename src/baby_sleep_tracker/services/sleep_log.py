"""
Sleep log service: the write gate in front of the Entry Store.

Every write runs the validator and the collision detector before it reaches
the store, and the collision check runs against a list re-fetched
immediately before the commit. After a write succeeds the baby's snapshot
is refreshed, so derived views never run on data older than the caller's
own last write.

Expected outcomes (blocked, collision, missing entry, backend failure) are
returned as a SaveResult instead of raised.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ..config import get_config
from ..core.enums import SaveStatus, SleepType
from ..domain.awake_state import derive_awake_state, find_active_sleeps
from ..domain.collision import find_write_conflict
from ..domain.missing_bedtime import should_prompt_missing_bedtime
from ..domain.models import AwakeState, SleepEntry, SleepEntryCreate, SleepEntryUpdate
from ..domain.summary import DailySummary, RangeSummary, summarize_day, summarize_range
from ..domain.timeline import TimelineItem, build_timeline
from ..domain.validation import ValidationResult, normalize_end_time, validate
from ..repositories.interfaces import ActiveSleepConflictError, SleepEntryRepository, StoreError
from ..utils.logging_config import get_logger, log_exception
from ..utils.time_utils import Clock, as_date, system_now, to_wall_clock

logger = get_logger('service')

# Assumed bedtime when a wake-up is logged without any night entry to end
DEFAULT_NIGHT_LENGTH = timedelta(hours=8)


@dataclass(frozen=True)
class SaveResult:
    """Typed outcome of a write attempt."""

    status: SaveStatus
    entry: Optional[SleepEntry] = None
    validation: Optional[ValidationResult] = None
    colliding: Optional[SleepEntry] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SaveStatus.SAVED

    @property
    def warning(self) -> Optional[ValidationResult]:
        """The validation warning to show alongside a successful save."""
        if self.validation is not None and self.validation.is_warning:
            return self.validation
        return None


class SleepLogService:
    """Validated, collision-checked access to one Entry Store."""

    def __init__(
        self,
        repository: SleepEntryRepository,
        clock: Clock = system_now,
        write_timeout: Optional[float] = None,
    ):
        self._repository = repository
        self._clock = clock
        if write_timeout is None:
            write_timeout = get_config().app.write_timeout_seconds
        self._write_timeout = write_timeout
        self._snapshots: Dict[str, List[SleepEntry]] = {}

    def now(self) -> datetime:
        return to_wall_clock(self._clock())

    # Snapshot handling

    async def refresh(self, baby_id: str) -> List[SleepEntry]:
        """Re-fetch the baby's entries and replace the cached snapshot."""
        entries = await self._repository.list_for_baby(baby_id)
        self._snapshots[baby_id] = entries
        return entries

    async def entries(self, baby_id: str, refresh: bool = False) -> List[SleepEntry]:
        """The baby's entries, ascending by start time."""
        if refresh or baby_id not in self._snapshots:
            return await self.refresh(baby_id)
        return self._snapshots[baby_id]

    async def _write(
        self,
        operation: str,
        baby_id: str,
        write: Callable[[], Awaitable[Optional[SleepEntry]]],
        validation: Optional[ValidationResult] = None,
    ) -> SaveResult:
        """Run a store write under the timeout and turn failures into results."""
        context = {"operation": operation, "baby_id": baby_id}
        try:
            entry = await asyncio.wait_for(write(), timeout=self._write_timeout)
        except ActiveSleepConflictError as e:
            logger.info(f"{operation} refused by store: {e}")
            colliding = await self._active_sleep_or_none(baby_id)
            return SaveResult(
                status=SaveStatus.COLLISION,
                validation=validation,
                colliding=colliding,
                error=str(e),
            )
        except StoreError as e:
            log_exception('service', e, context)
            return SaveResult(status=SaveStatus.FAILED, validation=validation, error=str(e))
        except asyncio.TimeoutError as e:
            log_exception('service', e, context)
            return SaveResult(
                status=SaveStatus.FAILED,
                validation=validation,
                error=f"Store did not confirm {operation} within {self._write_timeout}s",
            )

        try:
            await self.refresh(baby_id)
        except StoreError as e:
            # The write is committed; only the snapshot is stale
            self._snapshots.pop(baby_id, None)
            log_exception('service', e, {**context, "stage": "refresh"})

        logger.info(f"{operation} saved for baby {baby_id}: {entry.id if entry else '-'}")
        return SaveResult(status=SaveStatus.SAVED, entry=entry, validation=validation)

    async def _active_sleep_or_none(self, baby_id: str) -> Optional[SleepEntry]:
        try:
            entries = await self.refresh(baby_id)
        except StoreError:
            return None
        active = find_active_sleeps(entries)
        return active[0] if active else None

    async def _gate(
        self,
        baby_id: str,
        sleep_type: SleepType,
        start_time: datetime,
        end_time: Optional[datetime],
        exclude_id: Optional[str] = None,
    ) -> Union[SaveResult, ValidationResult]:
        """
        Validate and collision-check a candidate interval.

        Returns the ValidationResult when the write may proceed, otherwise the
        SaveResult to hand back to the caller.
        """
        validation = validate(sleep_type, start_time, end_time)
        if validation.is_blocked:
            logger.info(f"Blocked {sleep_type.value} entry for baby {baby_id}: {validation.reason_code.value}")
            return SaveResult(status=SaveStatus.BLOCKED, validation=validation)

        try:
            current = await self.refresh(baby_id)
        except StoreError as e:
            log_exception('service', e, {"operation": "collision_check", "baby_id": baby_id})
            return SaveResult(status=SaveStatus.FAILED, validation=validation, error=str(e))

        colliding = find_write_conflict(
            start_time, end_time, current, exclude_id=exclude_id, now=self.now()
        )
        if colliding is not None:
            logger.info(f"Collision for baby {baby_id} with entry {colliding.id}")
            return SaveResult(
                status=SaveStatus.COLLISION, validation=validation, colliding=colliding
            )

        return validation

    @staticmethod
    def _normalized(draft: SleepEntryCreate) -> SleepEntryCreate:
        end_time = normalize_end_time(draft.start_time, draft.end_time)
        if end_time == draft.end_time:
            return draft
        return draft.model_copy(update={"end_time": end_time})

    # Writes

    async def log_entry(self, baby_id: str, draft: SleepEntryCreate) -> SaveResult:
        """Create a new entry after validation and the collision check."""
        gate = await self._gate(baby_id, draft.type, draft.start_time, draft.end_time)
        if isinstance(gate, SaveResult):
            return gate

        draft = self._normalized(draft)
        return await self._write(
            "create", baby_id, lambda: self._repository.create(baby_id, draft), gate
        )

    async def edit_entry(self, entry_id: str, changes: SleepEntryUpdate) -> SaveResult:
        """Apply a partial edit; the edited entry never collides with itself."""
        try:
            existing = await self._repository.get_by_id(entry_id)
        except StoreError as e:
            log_exception('service', e, {"operation": "edit", "entry_id": entry_id})
            return SaveResult(status=SaveStatus.FAILED, error=str(e))
        if existing is None:
            return SaveResult(status=SaveStatus.NOT_FOUND, error=f"Entry {entry_id} not found")

        values = changes.changes()
        sleep_type = values.get("type") or existing.type
        start_time = values.get("start_time") or existing.start_time
        end_time = values["end_time"] if "end_time" in values else existing.end_time

        gate = await self._gate(
            existing.baby_id, sleep_type, start_time, end_time, exclude_id=entry_id
        )
        if isinstance(gate, SaveResult):
            return gate

        normalized_end = normalize_end_time(start_time, end_time)
        if normalized_end != end_time:
            values["end_time"] = normalized_end
        update = SleepEntryUpdate(**values)

        async def write() -> Optional[SleepEntry]:
            if not await self._repository.update(entry_id, update):
                return None
            return await self._repository.get_by_id(entry_id)

        result = await self._write("update", existing.baby_id, write, gate)
        if result.ok and result.entry is None:
            return SaveResult(status=SaveStatus.NOT_FOUND, error=f"Entry {entry_id} not found")
        return result

    async def replace_entry(
        self, baby_id: str, draft: SleepEntryCreate, colliding_id: str
    ) -> SaveResult:
        """Delete the colliding entry and save the pending one in a single step."""
        gate = await self._gate(
            baby_id, draft.type, draft.start_time, draft.end_time, exclude_id=colliding_id
        )
        if isinstance(gate, SaveResult):
            return gate

        draft = self._normalized(draft)
        return await self._write(
            "replace",
            baby_id,
            lambda: self._repository.replace(colliding_id, baby_id, draft),
            gate,
        )

    async def start_sleep(self, baby_id: str, sleep_type: SleepType) -> SaveResult:
        """Open a new nap or night at the current time."""
        draft = SleepEntryCreate(type=sleep_type, start_time=self.now())
        return await self.log_entry(baby_id, draft)

    async def end_sleep(self, entry_id: str, end_time: Optional[datetime] = None) -> SaveResult:
        """
        Set the end time of an entry.

        Ending an entry twice with the same time is a no-op that returns the
        stored entry.
        """
        end_time = to_wall_clock(end_time) if end_time is not None else self.now()

        try:
            existing = await self._repository.get_by_id(entry_id)
        except StoreError as e:
            log_exception('service', e, {"operation": "end_sleep", "entry_id": entry_id})
            return SaveResult(status=SaveStatus.FAILED, error=str(e))
        if existing is None:
            return SaveResult(status=SaveStatus.NOT_FOUND, error=f"Entry {entry_id} not found")

        end_time = normalize_end_time(existing.start_time, end_time)
        if existing.end_time == end_time:
            return SaveResult(
                status=SaveStatus.SAVED,
                entry=existing,
                validation=validate(existing.type, existing.start_time, end_time),
            )

        return await self.edit_entry(entry_id, SleepEntryUpdate(end_time=end_time))

    async def log_wake_up(self, baby_id: str) -> SaveResult:
        """
        Record that the baby woke up now.

        Ends the active night sleep, or failing that any open night entry. With
        no night to end, a completed night is logged with an assumed bedtime.
        """
        try:
            current = await self.refresh(baby_id)
        except StoreError as e:
            log_exception('service', e, {"operation": "wake_up", "baby_id": baby_id})
            return SaveResult(status=SaveStatus.FAILED, error=str(e))

        now = self.now()
        state = derive_awake_state(current, now)
        if state.active_sleep is not None and state.active_sleep.type == SleepType.NIGHT:
            return await self.end_sleep(state.active_sleep.id, now)

        open_nights = [
            entry for entry in find_active_sleeps(current) if entry.type == SleepType.NIGHT
        ]
        if open_nights:
            return await self.end_sleep(open_nights[0].id, now)

        draft = SleepEntryCreate(
            type=SleepType.NIGHT, start_time=now - DEFAULT_NIGHT_LENGTH, end_time=now
        )
        return await self.log_entry(baby_id, draft)

    async def delete_entry(self, entry_id: str) -> SaveResult:
        """Delete an entry."""
        try:
            existing = await self._repository.get_by_id(entry_id)
        except StoreError as e:
            log_exception('service', e, {"operation": "delete", "entry_id": entry_id})
            return SaveResult(status=SaveStatus.FAILED, error=str(e))
        if existing is None:
            return SaveResult(status=SaveStatus.NOT_FOUND, error=f"Entry {entry_id} not found")

        async def write() -> SleepEntry:
            await self._repository.delete(entry_id)
            return existing

        return await self._write("delete", existing.baby_id, write)

    # Reads

    async def entries_for_date(self, baby_id: str, day: Union[date, datetime, str]) -> List[SleepEntry]:
        """Entries attributed to ``day``, straight from the store."""
        return await self._repository.list_for_date(baby_id, as_date(day))

    async def awake_state(self, baby_id: str) -> AwakeState:
        return derive_awake_state(await self.entries(baby_id), self.now())

    async def timeline(self, baby_id: str, day: Union[date, datetime, str]) -> List[TimelineItem]:
        """Reverse-chronological timeline for ``day``."""
        day = as_date(day)
        day_entries = await self.entries_for_date(baby_id, day)
        return build_timeline(day_entries, await self.entries(baby_id), day)

    async def daily_summary(self, baby_id: str, day: Union[date, datetime, str]) -> DailySummary:
        return summarize_day(await self.entries_for_date(baby_id, day), self.now())

    async def report(
        self,
        baby_id: str,
        start: Union[date, datetime, str],
        end: Union[date, datetime, str],
    ) -> RangeSummary:
        """Averages and spreads over the completed days of a range."""
        return summarize_range(await self.entries(baby_id), start, end, self.now())

    async def should_prompt_missing_bedtime(self, baby_id: str) -> bool:
        entries = await self.entries(baby_id)
        now = self.now()
        state = derive_awake_state(entries, now)
        return should_prompt_missing_bedtime(entries, state.active_sleep, now)
