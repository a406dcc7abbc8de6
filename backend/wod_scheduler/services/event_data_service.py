"""
Event data adapter.

Collects the inputs a schedule needs (event, days, categories, WODs and
registered athletes with their category) from the event tables. When an
event has no stored days but has a start and end date, one day per calendar
date is synthesized (never written back), so repeated calls return the
same day ids.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from wod_scheduler.models.athlete import Athlete, AthleteRegistration
from wod_scheduler.models.event import Category, Event, EventDay, Wod
from wod_scheduler.services.scheduling_errors import NotFoundError, SchedulingValidationError

logger = logging.getLogger(__name__)


class EventRef(BaseModel):
    event_id: str
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timezone: Optional[str] = None


class DayRef(BaseModel):
    day_id: str
    date: str  # ISO yyyy-mm-dd
    name: str


class CategoryRef(BaseModel):
    category_id: str
    name: str


class WodRef(BaseModel):
    wod_id: str
    name: str
    estimated_duration_minutes: Optional[int] = None
    day_id: Optional[str] = None


class AthleteRef(BaseModel):
    athlete_id: str
    first_name: str
    last_name: str
    category_id: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class EventData:
    event: EventRef
    days: List[DayRef] = field(default_factory=list)
    categories: List[CategoryRef] = field(default_factory=list)
    wods: List[WodRef] = field(default_factory=list)
    athletes: List[AthleteRef] = field(default_factory=list)

    def wods_for_day(self, day_id: str) -> List[WodRef]:
        """WODs pinned to *day_id* plus those without a day."""
        return [w for w in self.wods if not w.day_id or w.day_id == day_id]


def day_id_for(d: date) -> str:
    return f"day-{d.isoformat()}"


def synthesize_days(start_date: date, end_date: date) -> List[DayRef]:
    """One DayRef per date in [start_date, end_date], named 'Day N' in order."""
    days: List[DayRef] = []
    current = start_date
    while current <= end_date:
        days.append(DayRef(day_id=day_id_for(current), date=current.isoformat(), name=f"Day {len(days) + 1}"))
        current += timedelta(days=1)
    return days


class EventDataService:
    def __init__(self, session: Session):
        self.session = session

    def get_event_data(self, event_id: str) -> EventData:
        event = self._get_event(event_id)
        days = self._get_event_days(event_id)

        if not days and event.start_date and event.end_date:
            days = synthesize_days(event.start_date, event.end_date)
            logger.info(
                "Auto-generated %d event days for event %s (%s..%s)",
                len(days),
                event_id,
                event.start_date,
                event.end_date,
            )

        data = EventData(
            event=event,
            days=days,
            categories=self._get_categories(event_id),
            wods=self._get_wods(event_id),
            athletes=self._get_registered_athletes(event_id),
        )
        self._validate_event_data(data)
        return data

    def _get_event(self, event_id: str) -> EventRef:
        event = self.session.get(Event, event_id)
        if not event:
            raise NotFoundError(f"Event {event_id} not found")
        return EventRef(
            event_id=event.id,
            name=event.name,
            start_date=event.start_date,
            end_date=event.end_date,
            timezone=event.timezone,
        )

    def _get_event_days(self, event_id: str) -> List[DayRef]:
        rows = self.session.exec(
            select(EventDay).where(EventDay.event_id == event_id).order_by(EventDay.day_date, EventDay.id)
        ).all()
        return [DayRef(day_id=d.day_id, date=d.day_date.isoformat(), name=d.name) for d in rows]

    def _get_categories(self, event_id: str) -> List[CategoryRef]:
        rows = self.session.exec(select(Category).where(Category.event_id == event_id).order_by(Category.id)).all()
        return [CategoryRef(category_id=c.category_id, name=c.name) for c in rows]

    def _get_wods(self, event_id: str) -> List[WodRef]:
        rows = self.session.exec(select(Wod).where(Wod.event_id == event_id).order_by(Wod.id)).all()
        return [
            WodRef(
                wod_id=w.wod_id,
                name=w.name,
                estimated_duration_minutes=w.estimated_duration_minutes,
                day_id=w.day_id,
            )
            for w in rows
        ]

    def _get_registered_athletes(self, event_id: str) -> List[AthleteRef]:
        rows = self.session.exec(
            select(AthleteRegistration, Athlete)
            .where(AthleteRegistration.event_id == event_id, AthleteRegistration.athlete_id == Athlete.id)
            .order_by(AthleteRegistration.id)
        ).all()
        return [
            AthleteRef(
                athlete_id=athlete.id,
                first_name=athlete.first_name,
                last_name=athlete.last_name,
                category_id=registration.category_id,
            )
            for registration, athlete in rows
        ]

    @staticmethod
    def _validate_event_data(data: EventData) -> None:
        if not data.days:
            raise SchedulingValidationError("No event days found. Please create event days first.")
        if not data.wods:
            raise SchedulingValidationError("No WODs found. Please add WODs to the event first.")
        if not data.categories:
            raise SchedulingValidationError("No categories found. Please add categories to the event first.")
        if not data.athletes:
            raise SchedulingValidationError(
                "No registered athletes found. Please ensure athletes are registered for this event."
            )
