"""
Schedule aggregate root.

Owns the ordered DaySchedules of one event, the per-day hour budget and the
DRAFT <-> PUBLISHED lifecycle. Tournament state (stage, parent schedule,
active athletes, progression results) rides along so the whole aggregate is
persisted as one snapshot.
"""

import logging
import random
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from wod_scheduler.services.day_schedule import DaySchedule
from wod_scheduler.services.event_data_service import AthleteRef, CategoryRef, DayRef, WodRef
from wod_scheduler.services.schedule_config import ScheduleConfig
from wod_scheduler.services.scheduling_errors import (
    InvalidStateError,
    NotFoundError,
    TimeConstraintViolation,
)
from wod_scheduler.services.session_builders import ScheduledSession

logger = logging.getLogger(__name__)


class ScheduleStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


def new_schedule_id(now: Optional[datetime] = None) -> str:
    """Opaque id that sorts by creation time: schedule-<epoch ms>-<random>."""
    now = now or datetime.utcnow()
    millis = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    return f"schedule-{millis:013d}-{uuid.uuid4().hex[:9]}"


class Schedule:
    def __init__(
        self,
        event_id: str,
        config: ScheduleConfig,
        schedule_id: Optional[str] = None,
        status: ScheduleStatus = ScheduleStatus.DRAFT,
        created_at: Optional[datetime] = None,
        published_at: Optional[datetime] = None,
        days: Optional[List[DaySchedule]] = None,
        stage: int = 1,
        parent_schedule_id: Optional[str] = None,
        active_athletes: Optional[List[str]] = None,
        progression_results: Optional[List[Dict[str, Any]]] = None,
        last_progression_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        version: int = 0,
    ):
        self.created_at = created_at or datetime.utcnow()
        self.schedule_id = schedule_id or new_schedule_id(self.created_at)
        self.event_id = event_id
        self.config = config
        self.status = ScheduleStatus(status)
        self.published_at = published_at
        self.days: List[DaySchedule] = days or []
        self.stage = stage
        self.parent_schedule_id = parent_schedule_id
        self.active_athletes = active_athletes
        self.progression_results = progression_results
        self.last_progression_at = last_progression_at
        self.updated_at = updated_at or self.created_at
        self.version = version

    @property
    def is_published(self) -> bool:
        return self.status == ScheduleStatus.PUBLISHED

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_day(
        self,
        day: DayRef,
        athletes: List[AthleteRef],
        categories: List[CategoryRef],
        wods: List[WodRef],
        rng: Optional[random.Random] = None,
    ) -> DaySchedule:
        """Build one DaySchedule, append it, then re-check every day's budget."""
        day_schedule = DaySchedule(day_id=day.day_id, name=day.name, date=day.date, config=self.config)
        day_schedule.generate_sessions(athletes, categories, wods, rng=rng)
        self.days.append(day_schedule)
        self.validate_time_constraints()
        return day_schedule

    def validate_time_constraints(self) -> None:
        over_budget = [d.day_id for d in self.days if not d.is_within_time_limit(self.config.max_day_hours)]
        if over_budget:
            raise TimeConstraintViolation(over_budget, self.config.max_day_hours)

    # ------------------------------------------------------------------
    # Lookup / edits
    # ------------------------------------------------------------------

    def find_session(self, session_id: str) -> Tuple[DaySchedule, ScheduledSession]:
        for day in self.days:
            session = day.find_session(session_id)
            if session is not None:
                return day, session
        raise NotFoundError(f"Session {session_id} not found")

    def update_session(self, session_id: str, updates: Dict[str, Any]) -> ScheduledSession:
        day, _ = self.find_session(session_id)
        session = day.update_session(session_id, updates)
        self.validate_time_constraints()
        self.updated_at = datetime.utcnow()
        return session

    def sessions(self) -> List[ScheduledSession]:
        return [s for day in self.days for s in day.sessions]

    def athlete_ids(self) -> List[str]:
        """Distinct athlete ids scheduled on any day, first appearance order."""
        seen: Dict[str, None] = {}
        for day in self.days:
            for athlete_id in day.athlete_ids():
                seen.setdefault(athlete_id, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def publish(self) -> None:
        if not self.days:
            raise InvalidStateError("Cannot publish a schedule with no days")
        invalid = [d.day_id for d in self.days if not d.is_valid()]
        if invalid:
            raise InvalidStateError(
                f"Cannot publish schedule: days without valid sessions: {', '.join(invalid)}"
            )
        self.status = ScheduleStatus.PUBLISHED
        self.published_at = datetime.utcnow()
        self.updated_at = self.published_at
        logger.info("Schedule %s published for event %s", self.schedule_id, self.event_id)

    def unpublish(self) -> None:
        self.status = ScheduleStatus.DRAFT
        self.published_at = None
        self.updated_at = datetime.utcnow()
        logger.info("Schedule %s reverted to draft", self.schedule_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "schedule_id": self.schedule_id,
            "event_id": self.event_id,
            "status": self.status.value,
            "stage": self.stage,
            "parent_schedule_id": self.parent_schedule_id,
            "config": self.config.model_dump(mode="json"),
            "days": [d.to_snapshot() for d in self.days],
            "active_athletes": self.active_athletes,
            "progression_results": self.progression_results,
            "created_at": self.created_at,
            "published_at": self.published_at,
            "last_progression_at": self.last_progression_at,
            "updated_at": self.updated_at,
            "version": self.version,
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "Schedule":
        config = ScheduleConfig.model_validate(data.get("config") or {})
        return cls(
            event_id=data["event_id"],
            config=config,
            schedule_id=data["schedule_id"],
            status=ScheduleStatus(data.get("status", ScheduleStatus.DRAFT.value)),
            created_at=data.get("created_at"),
            published_at=data.get("published_at"),
            days=[DaySchedule.from_snapshot(d, config) for d in data.get("days") or []],
            stage=data.get("stage") or 1,
            parent_schedule_id=data.get("parent_schedule_id"),
            active_athletes=data.get("active_athletes"),
            progression_results=data.get("progression_results"),
            last_progression_at=data.get("last_progression_at"),
            updated_at=data.get("updated_at"),
            version=data.get("version") or 0,
        )
