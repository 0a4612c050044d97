"""Sleep entry API endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..core.enums import SaveStatus
from ..domain.models import SleepEntryCreate, SleepEntryUpdate
from ..repositories.dependencies import get_sleep_entry_repository
from ..repositories.interfaces import SleepEntryRepository, StoreError
from ..services.sleep_log import SaveResult, SleepLogService
from ..utils.logging_config import get_logger, log_exception
from ..utils.time_utils import Clock, system_now
from .middleware import ProblemDetailsException
from .schemas import (
    AwakeStateResponse,
    DailySummaryResponse,
    EndSleepRequest,
    EntryListResponse,
    MissingBedtimeResponse,
    ProblemDetails,
    ReplaceEntryRequest,
    ReportResponse,
    SaveResponse,
    StartSleepRequest,
    TimelineItemResponse,
    TimelineResponse,
    ValidationResponse,
)

router = APIRouter(tags=["entries"])
logger = get_logger('api')

# Longest range a single report may cover
MAX_REPORT_DAYS = 366

WRITE_RESPONSES = {
    404: {"model": ProblemDetails, "description": "Entry not found"},
    409: {"model": ProblemDetails, "description": "Overlaps an existing entry"},
    422: {"model": ProblemDetails, "description": "Rejected by the duration rules"},
    503: {"model": ProblemDetails, "description": "Store did not save; safe to retry"},
}


def get_clock() -> Clock:
    """Time source for the request; overridden in tests."""
    return system_now


def get_sleep_log_service(
    repository: SleepEntryRepository = Depends(get_sleep_entry_repository),
    clock: Clock = Depends(get_clock),
) -> SleepLogService:
    return SleepLogService(repository, clock=clock)


def _to_response(result: SaveResult) -> SaveResponse:
    """Map a SaveResult onto the HTTP contract, raising for anything but saved."""
    if result.status == SaveStatus.SAVED:
        warning = result.warning
        return SaveResponse(
            entry=result.entry,
            warning=ValidationResponse.from_result(warning) if warning else None,
        )

    logger.info(f"Write not saved: {result.status.value}")
    if result.status == SaveStatus.BLOCKED:
        validation = result.validation
        raise ProblemDetailsException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            title="Entry Rejected",
            detail=validation.message,
            reasonCode=validation.reason_code.value,
            severity=validation.severity.value,
            durationMinutes=validation.duration_minutes,
        )

    if result.status == SaveStatus.COLLISION:
        raise ProblemDetailsException(
            status_code=status.HTTP_409_CONFLICT,
            title="Sleep Entry Collision",
            detail="The entry overlaps an existing entry; edit it or replace the existing one",
            colliding=result.colliding.to_store_dict() if result.colliding else None,
        )

    if result.status == SaveStatus.NOT_FOUND:
        raise ProblemDetailsException(
            status_code=status.HTTP_404_NOT_FOUND,
            title="Entry Not Found",
            detail=result.error,
        )

    raise ProblemDetailsException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        title="Save Failed",
        detail=result.error or "The entry was not saved",
        retryable=True,
    )


def _store_unavailable(exc: StoreError, operation: str) -> ProblemDetailsException:
    log_exception('api', exc, {"operation": operation})
    return ProblemDetailsException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        title="Store Unavailable",
        detail="Entries could not be loaded",
        retryable=True,
    )


@router.post(
    "/v1/babies/{baby_id}/entries",
    status_code=status.HTTP_201_CREATED,
    response_model=SaveResponse,
    responses=WRITE_RESPONSES,
)
async def create_entry(
    baby_id: str,
    draft: SleepEntryCreate,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """
    Log a nap or night sleep.

    The entry is validated against the duration rules and checked for
    overlaps with the baby's existing entries before it is stored. Warnings
    (e.g. an unusually long nap) are returned alongside the saved entry.
    """
    return _to_response(await service.log_entry(baby_id, draft))


@router.get("/v1/babies/{baby_id}/entries", response_model=EntryListResponse)
async def list_entries(
    baby_id: str,
    day: Optional[date] = Query(None, alias="date", description="Only entries attributed to this day"),
    service: SleepLogService = Depends(get_sleep_log_service),
) -> EntryListResponse:
    """List a baby's entries, ascending by start time."""
    try:
        if day is not None:
            entries = await service.entries_for_date(baby_id, day)
        else:
            entries = await service.entries(baby_id)
    except StoreError as e:
        raise _store_unavailable(e, "list_entries")
    return EntryListResponse(entries=entries)


@router.post(
    "/v1/babies/{baby_id}/entries/replace",
    response_model=SaveResponse,
    responses=WRITE_RESPONSES,
)
async def replace_entry(
    baby_id: str,
    request: ReplaceEntryRequest,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """Resolve a collision: delete the colliding entry and save the new one."""
    return _to_response(await service.replace_entry(baby_id, request.entry, request.colliding_id))


@router.patch("/v1/entries/{entry_id}", response_model=SaveResponse, responses=WRITE_RESPONSES)
async def edit_entry(
    entry_id: str,
    changes: SleepEntryUpdate,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """Edit an entry's times, type or notes."""
    return _to_response(await service.edit_entry(entry_id, changes))


@router.delete(
    "/v1/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"model": ProblemDetails, "description": "Entry not found"},
        503: {"model": ProblemDetails, "description": "Store did not delete; safe to retry"},
    },
)
async def delete_entry(
    entry_id: str,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> Response:
    """Delete an entry."""
    _to_response(await service.delete_entry(entry_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/v1/entries/{entry_id}/end", response_model=SaveResponse, responses=WRITE_RESPONSES)
async def end_entry(
    entry_id: str,
    request: Optional[EndSleepRequest] = None,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """End an in-progress entry. Repeating the call with the same time is a no-op."""
    end_time = request.end_time if request is not None else None
    return _to_response(await service.end_sleep(entry_id, end_time))


@router.post(
    "/v1/babies/{baby_id}/sleep/start",
    status_code=status.HTTP_201_CREATED,
    response_model=SaveResponse,
    responses=WRITE_RESPONSES,
)
async def start_sleep(
    baby_id: str,
    request: StartSleepRequest,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """Start a nap or bedtime now."""
    return _to_response(await service.start_sleep(baby_id, request.type))


@router.post("/v1/babies/{baby_id}/wake-up", response_model=SaveResponse, responses=WRITE_RESPONSES)
async def wake_up(
    baby_id: str,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> SaveResponse:
    """
    Record a wake-up now.

    Ends the running night sleep. When no night is open, a completed night
    with an assumed bedtime is logged instead.
    """
    return _to_response(await service.log_wake_up(baby_id))


@router.get("/v1/babies/{baby_id}/awake-state", response_model=AwakeStateResponse)
async def get_awake_state(
    baby_id: str,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> AwakeStateResponse:
    """Whether the baby is asleep, and for how long it has been awake."""
    try:
        state = await service.awake_state(baby_id)
    except StoreError as e:
        raise _store_unavailable(e, "awake_state")
    return AwakeStateResponse.from_state(state)


@router.get("/v1/babies/{baby_id}/timeline", response_model=TimelineResponse)
async def get_timeline(
    baby_id: str,
    day: date = Query(..., alias="date", description="Day to render"),
    service: SleepLogService = Depends(get_sleep_log_service),
) -> TimelineResponse:
    """Reverse-chronological timeline for one day."""
    try:
        items = await service.timeline(baby_id, day)
    except StoreError as e:
        raise _store_unavailable(e, "timeline")
    return TimelineResponse(date=day, items=[TimelineItemResponse.from_item(item) for item in items])


@router.get("/v1/babies/{baby_id}/summary", response_model=DailySummaryResponse)
async def get_daily_summary(
    baby_id: str,
    day: date = Query(..., alias="date", description="Day to summarize"),
    service: SleepLogService = Depends(get_sleep_log_service),
) -> DailySummaryResponse:
    """Total nap and night sleep for one day."""
    try:
        summary = await service.daily_summary(baby_id, day)
    except StoreError as e:
        raise _store_unavailable(e, "summary")
    return DailySummaryResponse.from_summary(day, summary)


@router.get(
    "/v1/babies/{baby_id}/report",
    response_model=ReportResponse,
    responses={422: {"model": ProblemDetails, "description": "Invalid date range"}},
)
async def get_report(
    baby_id: str,
    start: date = Query(..., description="First day of the range"),
    end: date = Query(..., description="Last day of the range"),
    service: SleepLogService = Depends(get_sleep_log_service),
) -> ReportResponse:
    """
    Multi-day sleep aggregates for the report view.

    Only completed days count; today is left out until it is over.
    """
    if start > end or (end - start).days >= MAX_REPORT_DAYS:
        raise ProblemDetailsException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            title="Invalid Date Range",
            detail=f"start must not be after end and the range may cover at most {MAX_REPORT_DAYS} days",
        )

    try:
        summary = await service.report(baby_id, start, end)
    except StoreError as e:
        raise _store_unavailable(e, "report")
    return ReportResponse.from_summary(summary)


@router.get("/v1/babies/{baby_id}/missing-bedtime", response_model=MissingBedtimeResponse)
async def get_missing_bedtime(
    baby_id: str,
    service: SleepLogService = Depends(get_sleep_log_service),
) -> MissingBedtimeResponse:
    """Whether to ask the caregiver about a bedtime that was never logged."""
    try:
        should_prompt = await service.should_prompt_missing_bedtime(baby_id)
    except StoreError as e:
        raise _store_unavailable(e, "missing_bedtime")
    return MissingBedtimeResponse(should_prompt=should_prompt)
