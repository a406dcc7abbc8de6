from wod_scheduler.models.athlete import Athlete, AthleteRegistration
from wod_scheduler.models.domain_event_log import DomainEventLog
from wod_scheduler.models.event import Category, Event, EventDay, Wod
from wod_scheduler.models.schedule_record import ScheduleRecord
from wod_scheduler.models.score import ClassificationFilter, Score

__all__ = [
    "Event",
    "EventDay",
    "Category",
    "Wod",
    "Athlete",
    "AthleteRegistration",
    "Score",
    "ClassificationFilter",
    "ScheduleRecord",
    "DomainEventLog",
]
