from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Athlete(SQLModel, table=True):
    id: str = Field(primary_key=True)
    first_name: str
    last_name: str


class AthleteRegistration(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "athlete_id", name="uq_event_athlete"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    athlete_id: str = Field(foreign_key="athlete.id")
    category_id: str  # matched against Category.category_id of the same event
    registered_at: datetime = Field(default_factory=datetime.utcnow)
