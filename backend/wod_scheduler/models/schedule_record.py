from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class ScheduleRecord(SQLModel, table=True):
    """Persisted snapshot of one Schedule aggregate."""

    __tablename__ = "schedule"

    schedule_id: str = Field(primary_key=True)
    event_id: str = Field(index=True)
    status: str = Field(default="DRAFT")  # "DRAFT" | "PUBLISHED"
    stage: int = Field(default=1)
    parent_schedule_id: Optional[str] = Field(default=None)
    config: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    days: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    active_athletes: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    progression_results: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime
    published_at: Optional[datetime] = Field(default=None)
    last_progression_at: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = Field(default=0)  # optimistic concurrency counter
