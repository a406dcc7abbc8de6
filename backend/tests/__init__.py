# Import all models so SQLModel metadata is complete before any create_all()
from wod_scheduler.models.athlete import Athlete, AthleteRegistration  # noqa: F401
from wod_scheduler.models.domain_event_log import DomainEventLog  # noqa: F401
from wod_scheduler.models.event import Category, Event, EventDay, Wod  # noqa: F401
from wod_scheduler.models.schedule_record import ScheduleRecord  # noqa: F401
from wod_scheduler.models.score import ClassificationFilter, Score  # noqa: F401
