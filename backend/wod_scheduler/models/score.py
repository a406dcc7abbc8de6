from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel


class Score(SQLModel, table=True):
    """Raw score row written by the scoring service."""

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    filter_id: str = Field(index=True)
    athlete_id: str = Field(foreign_key="athlete.id")
    score: float
    match_id: Optional[str] = Field(default=None)
    submitted_at: datetime = Field(default_factory=datetime.utcnow)


class ClassificationFilter(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "filter_id", name="uq_event_filter"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key="event.id", index=True)
    filter_id: str
    name: Optional[str] = Field(default=None)
    elimination_count: int = Field(default=0)
    elimination_type: str = Field(default="BOTTOM_SCORES")  # BOTTOM_SCORES | TOP_SCORES | RANDOM
    eliminated_athletes: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    remaining_athletes: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    eliminated_at: Optional[datetime] = Field(default=None)
    status: str = Field(default="PENDING")  # "PENDING" | "COMPLETED"
