from datetime import date, datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Event(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timezone: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class EventDay(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "day_id", name="uq_event_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    day_id: str
    day_date: date
    name: str


class Category(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "category_id", name="uq_event_category"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    category_id: str
    name: str


class Wod(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "wod_id", name="uq_event_wod"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    wod_id: str
    name: str
    estimated_duration_minutes: Optional[int] = Field(default=None)
    day_id: Optional[str] = Field(default=None)  # None = scheduled on every day
