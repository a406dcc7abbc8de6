import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wod_scheduler.db")

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
_echo = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from wod_scheduler.models.athlete import Athlete, AthleteRegistration  # noqa: F401
    from wod_scheduler.models.domain_event_log import DomainEventLog  # noqa: F401
    from wod_scheduler.models.event import Category, Event, EventDay, Wod  # noqa: F401
    from wod_scheduler.models.schedule_record import ScheduleRecord  # noqa: F401
    from wod_scheduler.models.score import ClassificationFilter, Score  # noqa: F401

    SQLModel.metadata.create_all(engine)
