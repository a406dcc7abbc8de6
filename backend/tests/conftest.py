import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, timedelta  # noqa: E402
from typing import Dict, List, Optional, Sequence, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from wod_scheduler.database import get_session  # noqa: E402
from wod_scheduler.main import app  # noqa: E402
from wod_scheduler.models import Athlete, AthleteRegistration, Category, Event, EventDay, Score, Wod  # noqa: E402
from wod_scheduler.routes.schedules import get_event_publisher  # noqa: E402
from wod_scheduler.services.event_publisher import DomainEvent, EventPublisher  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Each test gets its own sqlite:///:memory: engine; StaticPool makes every
#    session of that test share the same connection (and so the same DB)
# 2. check_same_thread=False required for TestClient/threaded access
# 3. wod_scheduler.models is imported above so create_all() sees every table
# 4. App dependencies overridden to use the test engine and a recording publisher


class RecordingEventPublisher(EventPublisher):
    """Keeps published events in memory for assertions"""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    @property
    def event_types(self) -> List[str]:
        return [e.event_type for e in self.events]


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Provide a test database session"""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="publisher")
def publisher_fixture():
    return RecordingEventPublisher()


@pytest.fixture(name="client")
def client_fixture(engine, publisher):
    """Provide a test client with overridden database session and publisher

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Seeding helpers
# ============================================================================


def seed_event(
    session: Session,
    event_id: str = "evt-1",
    day_count: int = 1,
    store_days: bool = True,
    wods: Sequence[Tuple[str, str, Optional[int]]] = (("wodA", "WOD A", 20),),
    categories: Sequence[Tuple[str, str]] = (("rx", "RX"),),
    athletes: Optional[Dict[str, int]] = None,
    start: date = date(2026, 6, 1),
) -> Dict[str, List[str]]:
    """Insert an event with days, WODs, categories and registered athletes.

    Returns the athlete ids per category, in registration order.
    """
    athletes = {"rx": 4} if athletes is None else athletes
    end = start + timedelta(days=max(day_count, 1) - 1)

    session.add(Event(id=event_id, name=f"Event {event_id}", start_date=start, end_date=end, timezone="UTC"))
    if store_days:
        for i in range(day_count):
            d = start + timedelta(days=i)
            session.add(EventDay(event_id=event_id, day_id=f"day-{d.isoformat()}", day_date=d, name=f"Day {i + 1}"))
    for wod_id, name, duration in wods:
        session.add(Wod(event_id=event_id, wod_id=wod_id, name=name, estimated_duration_minutes=duration))
    for category_id, name in categories:
        session.add(Category(event_id=event_id, category_id=category_id, name=name))

    ids: Dict[str, List[str]] = {}
    for category_id, count in athletes.items():
        for i in range(count):
            athlete_id = f"{event_id}-{category_id}-{i + 1}"
            session.add(Athlete(id=athlete_id, first_name=f"Athlete{i + 1}", last_name=category_id.upper()))
            session.add(AthleteRegistration(event_id=event_id, athlete_id=athlete_id, category_id=category_id))
            ids.setdefault(category_id, []).append(athlete_id)

    session.commit()
    return ids


def seed_scores(session: Session, event_id: str, filter_id: str, scores: Dict[str, float]) -> None:
    for athlete_id, value in scores.items():
        session.add(Score(event_id=event_id, filter_id=filter_id, athlete_id=athlete_id, score=value))
    session.commit()
