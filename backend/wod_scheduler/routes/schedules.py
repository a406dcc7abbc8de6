"""
API Routes for schedule generation, lifecycle and tournament progression
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from wod_scheduler.database import get_session
from wod_scheduler.services.elimination_service import EliminationService, FilterStore, ScoreService
from wod_scheduler.services.event_data_service import EventDataService
from wod_scheduler.services.event_publisher import EventPublisher, LoggingEventPublisher, OutboxEventPublisher
from wod_scheduler.services.schedule_aggregate import Schedule
from wod_scheduler.services.schedule_config import EliminationType, ScheduleConfig
from wod_scheduler.services.schedule_repository import SqlScheduleRepository
from wod_scheduler.services.schedule_service import ScheduleApplicationService
from wod_scheduler.services.scheduling_errors import (
    ConcurrentModificationError,
    NotFoundError,
    SchedulingError,
    TimeConstraintViolation,
)

router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================


def get_event_publisher(session: Session = Depends(get_session)) -> EventPublisher:
    """Publisher selected by EVENT_PUBLISHER ('outbox' default, or 'log')"""
    if os.getenv("EVENT_PUBLISHER", "outbox").lower() == "log":
        return LoggingEventPublisher()
    return OutboxEventPublisher(session)


def get_schedule_service(
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> ScheduleApplicationService:
    return ScheduleApplicationService(
        schedule_repository=SqlScheduleRepository(session),
        event_data_service=EventDataService(session),
        publisher=publisher,
        elimination_service=EliminationService(ScoreService(session), FilterStore(session)),
    )


def to_http_exception(error: SchedulingError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, TimeConstraintViolation):
        return HTTPException(
            status_code=422,
            detail={"message": str(error), "day_ids": error.day_ids, "max_hours": error.max_hours},
        )
    if isinstance(error, ConcurrentModificationError):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


# ============================================================================
# Request/Response Models
# ============================================================================


class SessionUpdateRequest(BaseModel):
    """Move and/or resize one session"""

    session_id: str
    start_time: Optional[str] = None
    duration_minutes: Optional[int] = None

    @model_validator(mode="after")
    def validate_has_update(self):
        if self.start_time is None and self.duration_minutes is None:
            raise ValueError("Provide start_time and/or duration_minutes")
        return self


class EliminateRequest(BaseModel):
    filter_id: str
    elimination_count: int
    elimination_type: EliminationType = EliminationType.BOTTOM_SCORES


class NextStageRequest(BaseModel):
    heat_wod_mapping: Dict[int, str]
    number_of_heats: Optional[int] = Field(default=None, ge=1)
    start_time: Optional[str] = None
    wildcard_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_mapping(self):
        if not self.heat_wod_mapping:
            raise ValueError("heat_wod_mapping cannot be empty")
        return self


class EliminationResponse(BaseModel):
    eliminated: List[str]
    remaining: List[str]
    elimination_count: int


class ScheduleResponse(BaseModel):
    """Response model for a schedule"""

    schedule_id: str
    event_id: str
    status: str
    stage: int
    parent_schedule_id: Optional[str] = None
    config: Dict[str, Any]
    days: List[Dict[str, Any]]
    active_athletes: Optional[List[str]] = None
    progression_results: Optional[List[Dict[str, Any]]] = None
    created_at: str
    published_at: Optional[str] = None
    last_progression_at: Optional[str] = None
    updated_at: Optional[str] = None
    version: int

    @classmethod
    def from_schedule(cls, schedule: Schedule) -> "ScheduleResponse":
        snapshot = schedule.to_snapshot()
        for key in ("created_at", "published_at", "last_progression_at", "updated_at"):
            value = snapshot.get(key)
            snapshot[key] = value.isoformat() if isinstance(value, datetime) else value
        return cls(**snapshot)


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/events/{event_id}/schedules", response_model=ScheduleResponse, status_code=201)
def generate_schedule(
    event_id: str,
    config: ScheduleConfig,
    service: ScheduleApplicationService = Depends(get_schedule_service),
):
    """Generate a new DRAFT schedule for an event"""
    try:
        schedule = service.generate_schedule(event_id, config)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.get("/events/{event_id}/schedules", response_model=List[ScheduleResponse])
def list_schedules(event_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)):
    """All schedules for an event, newest first"""
    return [ScheduleResponse.from_schedule(s) for s in service.get_schedules_by_event(event_id)]


@router.get("/events/{event_id}/schedules/published", response_model=List[ScheduleResponse])
def list_published_schedules(event_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)):
    """Published schedules for an event, newest first"""
    return [ScheduleResponse.from_schedule(s) for s in service.get_published_schedules(event_id)]


@router.get("/events/{event_id}/schedules/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)
):
    try:
        schedule = service.get_schedule(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.put("/events/{event_id}/schedules/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    event_id: str,
    schedule_id: str,
    update: SessionUpdateRequest,
    service: ScheduleApplicationService = Depends(get_schedule_service),
):
    """Move or resize one session; the day's time budget is re-checked"""
    updates = update.model_dump(exclude={"session_id"}, exclude_none=True)
    try:
        schedule = service.update_schedule(event_id, schedule_id, update.session_id, updates)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.delete("/events/{event_id}/schedules/{schedule_id}", status_code=204)
def delete_schedule(
    event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)
):
    try:
        service.delete_schedule(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
    return None


@router.post("/events/{event_id}/schedules/{schedule_id}/publish", response_model=ScheduleResponse)
def publish_schedule(
    event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)
):
    try:
        schedule = service.publish_schedule(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.post("/events/{event_id}/schedules/{schedule_id}/unpublish", response_model=ScheduleResponse)
def unpublish_schedule(
    event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)
):
    try:
        schedule = service.unpublish_schedule(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.post("/events/{event_id}/schedules/{schedule_id}/eliminate", response_model=EliminationResponse)
def eliminate_athletes(
    event_id: str,
    schedule_id: str,
    request: EliminateRequest,
    service: ScheduleApplicationService = Depends(get_schedule_service),
):
    """Run one elimination filter over the scores recorded for it"""
    try:
        service.get_schedule(event_id, schedule_id)
        result = service.eliminate_athletes(
            event_id, request.filter_id, request.elimination_count, request.elimination_type
        )
    except SchedulingError as e:
        raise to_http_exception(e)
    return EliminationResponse(**result.to_dict())


@router.post("/events/{event_id}/schedules/{schedule_id}/progression", response_model=ScheduleResponse)
def process_progression(
    event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)
):
    """Walk the schedule's filter chain and record the surviving athletes"""
    try:
        schedule = service.process_filter_progression(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.post(
    "/events/{event_id}/schedules/{schedule_id}/next-stage", response_model=ScheduleResponse, status_code=201
)
def generate_next_stage(
    event_id: str,
    schedule_id: str,
    request: NextStageRequest,
    service: ScheduleApplicationService = Depends(get_schedule_service),
):
    """Generate the next VERSUS stage from the athletes still active"""
    try:
        schedule = service.generate_next_stage(
            event_id,
            schedule_id,
            heat_wod_mapping=request.heat_wod_mapping,
            number_of_heats=request.number_of_heats,
            start_time=request.start_time,
            wildcard_count=request.wildcard_count,
        )
    except SchedulingError as e:
        raise to_http_exception(e)
    return ScheduleResponse.from_schedule(schedule)


@router.get("/events/{event_id}/schedules/{schedule_id}/bracket")
def get_bracket(event_id: str, schedule_id: str, service: ScheduleApplicationService = Depends(get_schedule_service)):
    try:
        return service.get_tournament_bracket(event_id, schedule_id)
    except SchedulingError as e:
        raise to_http_exception(e)
