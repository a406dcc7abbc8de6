"""
Schedule application service.

Orchestrates event data, the Schedule aggregate, the repository, the
elimination engine and the event publisher. Generation builds every day in
memory and saves once, so a failure leaves nothing persisted. Publishing is
fire-and-forget: errors are logged and never reach the caller.
"""

import logging
import random
from typing import Any, Dict, List, Optional

from wod_scheduler.services.elimination_service import EliminationResult, EliminationService, promote_wildcards
from wod_scheduler.services.event_data_service import EventDataService
from wod_scheduler.services.event_publisher import (
    SCHEDULE_DELETED,
    SCHEDULE_GENERATED,
    SCHEDULE_PUBLISHED,
    SCHEDULE_UNPUBLISHED,
    SCHEDULE_UPDATED,
    TOURNAMENT_ADVANCED,
    TOURNAMENT_STAGE_GENERATED,
    DomainEvent,
    EventPublisher,
)
from wod_scheduler.services.schedule_aggregate import Schedule
from wod_scheduler.services.schedule_config import CompetitionMode, EliminationType, ScheduleConfig
from wod_scheduler.services.schedule_repository import ScheduleRepository
from wod_scheduler.services.scheduling_errors import NotFoundError, SchedulingValidationError

logger = logging.getLogger(__name__)

DEFAULT_NEXT_STAGE_START = "09:00"


class ScheduleApplicationService:
    def __init__(
        self,
        schedule_repository: ScheduleRepository,
        event_data_service: EventDataService,
        publisher: EventPublisher,
        elimination_service: EliminationService,
        rng: Optional[random.Random] = None,
    ):
        self.schedule_repository = schedule_repository
        self.event_data_service = event_data_service
        self.publisher = publisher
        self.elimination_service = elimination_service
        self.rng = rng

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_schedule(self, event_id: str, config: ScheduleConfig) -> Schedule:
        config.validate_for_generation()
        data = self.event_data_service.get_event_data(event_id)
        logger.info(
            "Generating %s schedule for event %s: %d days, %d WODs, %d categories, %d athletes",
            config.competition_mode.value,
            event_id,
            len(data.days),
            len(data.wods),
            len(data.categories),
            len(data.athletes),
        )

        schedule = Schedule(event_id=event_id, config=config)
        for day in data.days:
            schedule.add_day(day, data.athletes, data.categories, data.wods_for_day(day.day_id), rng=self.rng)

        self.schedule_repository.save(schedule)
        self._publish(
            SCHEDULE_GENERATED,
            schedule,
            {
                "competition_mode": config.competition_mode.value,
                "day_count": len(schedule.days),
                "session_count": len(schedule.sessions()),
            },
        )
        logger.info("Schedule %s generated with %d sessions", schedule.schedule_id, len(schedule.sessions()))
        return schedule

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_schedule(self, event_id: str, schedule_id: str) -> Schedule:
        schedule = self.schedule_repository.find_by_id(event_id, schedule_id)
        if schedule is None:
            raise NotFoundError(f"Schedule {schedule_id} not found for event {event_id}")
        return schedule

    def get_schedules_by_event(self, event_id: str) -> List[Schedule]:
        return self.schedule_repository.find_by_event_id(event_id)

    def get_published_schedules(self, event_id: str) -> List[Schedule]:
        return self.schedule_repository.find_published_by_event_id(event_id)

    # ------------------------------------------------------------------
    # Edits and lifecycle
    # ------------------------------------------------------------------

    def update_schedule(self, event_id: str, schedule_id: str, session_id: str, updates: Dict[str, Any]) -> Schedule:
        schedule = self.get_schedule(event_id, schedule_id)
        schedule.update_session(session_id, updates)
        self.schedule_repository.save(schedule)
        self._publish(SCHEDULE_UPDATED, schedule, {"session_id": session_id, "updates": updates})
        return schedule

    def publish_schedule(self, event_id: str, schedule_id: str) -> Schedule:
        schedule = self.get_schedule(event_id, schedule_id)
        schedule.publish()
        self.schedule_repository.save(schedule)
        self._publish(SCHEDULE_PUBLISHED, schedule, {"published_at": schedule.published_at.isoformat()})
        return schedule

    def unpublish_schedule(self, event_id: str, schedule_id: str) -> Schedule:
        schedule = self.get_schedule(event_id, schedule_id)
        schedule.unpublish()
        self.schedule_repository.save(schedule)
        self._publish(SCHEDULE_UNPUBLISHED, schedule)
        return schedule

    def delete_schedule(self, event_id: str, schedule_id: str) -> None:
        if not self.schedule_repository.delete(event_id, schedule_id):
            raise NotFoundError(f"Schedule {schedule_id} not found for event {event_id}")
        self._publish_event(DomainEvent(event_type=SCHEDULE_DELETED, event_id=event_id, schedule_id=schedule_id))

    # ------------------------------------------------------------------
    # Tournament progression
    # ------------------------------------------------------------------

    def eliminate_athletes(
        self,
        event_id: str,
        filter_id: str,
        elimination_count: int,
        elimination_type: EliminationType = EliminationType.BOTTOM_SCORES,
    ) -> EliminationResult:
        return self.elimination_service.eliminate_athletes(event_id, filter_id, elimination_count, elimination_type)

    def process_filter_progression(self, event_id: str, schedule_id: str) -> Schedule:
        schedule = self.get_schedule(event_id, schedule_id)
        results = self.elimination_service.process_filter_progression(schedule)
        self.schedule_repository.save(schedule)
        self._publish(
            TOURNAMENT_ADVANCED,
            schedule,
            {"active_athletes": len(schedule.active_athletes or []), "results": results},
        )
        return schedule

    def generate_next_stage(
        self,
        event_id: str,
        schedule_id: str,
        heat_wod_mapping: Dict[int, str],
        number_of_heats: Optional[int] = None,
        start_time: Optional[str] = None,
        wildcard_count: int = 0,
    ) -> Schedule:
        """New VERSUS schedule limited to the athletes still active after *schedule_id*."""
        parent = self.get_schedule(event_id, schedule_id)
        active = list(parent.active_athletes) if parent.active_athletes is not None else parent.athlete_ids()

        if wildcard_count > 0 and parent.progression_results:
            last_filter_id = parent.progression_results[-1]["filter_id"]
            candidates = self.elimination_service.wildcard_candidates(event_id, last_filter_id)
            active = promote_wildcards(active, candidates, wildcard_count)

        if not active:
            raise SchedulingValidationError("No active athletes left to schedule the next stage")

        config = ScheduleConfig.model_validate(
            {
                **parent.config.model_dump(),
                "competition_mode": CompetitionMode.VERSUS,
                "heat_wod_mapping": dict(heat_wod_mapping),
                "number_of_heats": number_of_heats or len(heat_wod_mapping),
                "start_time": start_time or DEFAULT_NEXT_STAGE_START,
            }
        )
        config.validate_for_generation()

        data = self.event_data_service.get_event_data(event_id)
        active_set = set(active)
        athletes = [a for a in data.athletes if a.athlete_id in active_set]

        stage = Schedule(
            event_id=event_id,
            config=config,
            stage=parent.stage + 1,
            parent_schedule_id=parent.schedule_id,
            active_athletes=active,
        )
        for day in data.days:
            stage.add_day(day, athletes, data.categories, data.wods_for_day(day.day_id), rng=self.rng)

        self.schedule_repository.save(stage)
        self._publish(
            TOURNAMENT_STAGE_GENERATED,
            stage,
            {
                "stage": stage.stage,
                "parent_schedule_id": parent.schedule_id,
                "athlete_count": len(athletes),
            },
        )
        logger.info(
            "Stage %d schedule %s generated from %s with %d athletes",
            stage.stage,
            stage.schedule_id,
            parent.schedule_id,
            len(athletes),
        )
        return stage

    def get_tournament_bracket(self, event_id: str, schedule_id: str) -> Dict[str, Any]:
        schedule = self.get_schedule(event_id, schedule_id)

        categories: Dict[str, Dict[str, Any]] = {}
        for day in schedule.days:
            for session in day.sessions:
                if session.competition_mode != CompetitionMode.VERSUS:
                    continue
                bracket = categories.setdefault(
                    session.category_id,
                    {"category_id": session.category_id, "category_name": session.category_name, "heats": []},
                )
                for match in session.matches:
                    bracket["heats"].append(
                        {
                            "heat_number": match.heat_number,
                            "day_id": day.day_id,
                            "wod_id": session.wod_id,
                            "wod_name": session.wod_name,
                            "session_id": session.session_id,
                            "start_time": session.start_time,
                            "match": match.model_dump(mode="json"),
                        }
                    )

        for bracket in categories.values():
            bracket["heats"].sort(key=lambda h: h["heat_number"])

        return {
            "schedule_id": schedule.schedule_id,
            "event_id": event_id,
            "stage": schedule.stage,
            "parent_schedule_id": schedule.parent_schedule_id,
            "active_athletes": len(schedule.active_athletes) if schedule.active_athletes is not None else None,
            "progression_results": schedule.progression_results or [],
            "categories": list(categories.values()),
        }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _publish(self, event_type: str, schedule: Schedule, payload: Optional[Dict[str, Any]] = None) -> None:
        self._publish_event(
            DomainEvent(
                event_type=event_type,
                event_id=schedule.event_id,
                schedule_id=schedule.schedule_id,
                payload=payload or {},
            )
        )

    def _publish_event(self, event: DomainEvent) -> None:
        try:
            self.publisher.publish(event)
        except Exception:
            logger.exception("Failed to publish %s for schedule %s", event.event_type, event.schedule_id)
