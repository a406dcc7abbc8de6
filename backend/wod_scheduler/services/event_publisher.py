"""
Domain event publishing (fire-and-forget).

Publishers never raise: a schedule that has been committed must not be rolled
back because a downstream notification failed. OutboxEventPublisher writes
DomainEventLog rows for other services to pick up; LoggingEventPublisher only
logs.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from wod_scheduler.models.domain_event_log import DomainEventLog

logger = logging.getLogger(__name__)

SCHEDULE_GENERATED = "ScheduleGenerated"
SCHEDULE_UPDATED = "ScheduleUpdated"
SCHEDULE_PUBLISHED = "SchedulePublished"
SCHEDULE_UNPUBLISHED = "ScheduleUnpublished"
SCHEDULE_DELETED = "ScheduleDeleted"
TOURNAMENT_ADVANCED = "TournamentAdvanced"
TOURNAMENT_STAGE_GENERATED = "TournamentStageGenerated"


@dataclass(frozen=True)
class DomainEvent:
    event_type: str
    event_id: str
    schedule_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "event_id": self.event_id,
            "schedule_id": self.schedule_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class EventPublisher(ABC):
    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        ...

    def publish_batch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


class LoggingEventPublisher(EventPublisher):
    def publish(self, event: DomainEvent) -> None:
        logger.info(
            "Domain event %s for event %s (schedule=%s): %s",
            event.event_type,
            event.event_id,
            event.schedule_id,
            event.payload,
        )


class OutboxEventPublisher(EventPublisher):
    def __init__(self, session: Session):
        self.session = session

    def publish(self, event: DomainEvent) -> None:
        self.publish_batch([event])

    def publish_batch(self, events: Iterable[DomainEvent]) -> None:
        events = list(events)
        if not events:
            return
        try:
            for event in events:
                self.session.add(
                    DomainEventLog(
                        message_id=event.id,
                        event_type=event.event_type,
                        event_id=event.event_id,
                        schedule_id=event.schedule_id,
                        payload=event.payload,
                        occurred_at=event.timestamp,
                    )
                )
            self.session.commit()
            logger.debug("Wrote %d domain events to outbox", len(events))
        except SQLAlchemyError:
            logger.exception("Failed to write %d domain events to outbox", len(events))
            self.session.rollback()
