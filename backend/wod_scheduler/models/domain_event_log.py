"""Outbox log of domain events emitted by the scheduling engine."""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class DomainEventLog(SQLModel, table=True):
    """One row per published domain event."""

    __tablename__ = "domain_event_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    message_id: str = Field(unique=True, index=True)  # DomainEvent.id, for consumer dedup
    event_type: str = Field(index=True)  # ScheduleGenerated|SchedulePublished|TournamentAdvanced|...
    event_id: str = Field(index=True)
    schedule_id: Optional[str] = Field(default=None)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    occurred_at: datetime = Field(default_factory=datetime.utcnow)
