"""
Session builders: one WOD x category x athlete subset -> one scheduled session.

Modes:
  SIMULTANEOUS  every athlete runs the WOD at once, one station each
  HEATS         athletes chunked into fixed-size heats run back to back
  VERSUS        one 1v1 match per heat number, WOD picked via heat_wod_mapping

Every builder returns (session, next_cursor) where
next_cursor = cursor + session duration + transition_time. The VERSUS builder
returns (None, cursor) when a heat has to be skipped.

VERSUS athlete selection assumes the caller has moved advancing athletes to the
front of the category list between heats; nothing here reorders or verifies it.
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from wod_scheduler.services.event_data_service import AthleteRef, CategoryRef, WodRef
from wod_scheduler.services.schedule_config import CompetitionMode, ScheduleConfig
from wod_scheduler.services.time_slot import TimeSlot, convert_to_utc

logger = logging.getLogger(__name__)

DEFAULT_ROUND_DURATION = 20  # SIMULTANEOUS / HEATS
DEFAULT_VERSUS_DURATION = 15
BYE = "BYE"


class AthleteSlot(BaseModel):
    """One athlete's place in a session (flattened across heats/matches)."""

    athlete_id: str
    athlete_name: str
    start_time: str
    start_time_utc: str
    end_time: str
    station: Optional[int] = None
    lane: Optional[int] = None
    heat_id: Optional[str] = None
    heat_number: Optional[int] = None
    match_id: Optional[str] = None
    opponent: Optional[str] = None


class Heat(BaseModel):
    heat_id: str
    heat_number: int
    start_time: str
    end_time: str
    athletes: List[AthleteRef]  # lane = index + 1


class Match(BaseModel):
    match_id: str
    heat_number: int
    athlete1: AthleteRef
    athlete2: Optional[AthleteRef] = None
    bye: bool = False

    @model_validator(mode="after")
    def validate_bye(self):
        if self.bye != (self.athlete2 is None):
            raise ValueError("bye must be true exactly when athlete2 is missing")
        return self


class ScheduledSession(BaseModel):
    session_id: str
    wod_id: str
    wod_name: str
    category_id: str
    category_name: str
    competition_mode: CompetitionMode
    start_time: str
    start_time_utc: str
    end_time: str
    duration_minutes: int = Field(gt=0)
    wod_duration_minutes: int = Field(gt=0)
    heat_number: Optional[int] = None
    athlete_schedule: List[AthleteSlot] = Field(default_factory=list)
    heats: List[Heat] = Field(default_factory=list)
    matches: List[Match] = Field(default_factory=list)

    @property
    def athlete_count(self) -> int:
        if self.competition_mode == CompetitionMode.VERSUS:
            return sum(2 if m.athlete2 else 1 for m in self.matches)
        if self.competition_mode == CompetitionMode.HEATS:
            return sum(len(h.athletes) for h in self.heats)
        return len(self.athlete_schedule)

    def is_valid(self) -> bool:
        if self.duration_minutes <= 0:
            return False
        if self.competition_mode == CompetitionMode.VERSUS:
            return len(self.matches) > 0
        if self.competition_mode == CompetitionMode.HEATS:
            return any(h.athletes for h in self.heats)
        return len(self.athlete_schedule) > 0


@dataclass
class SessionRequest:
    """Inputs for building one session."""

    day_id: str
    wod: WodRef
    category: CategoryRef
    athletes: List[AthleteRef]  # athletes of this category, registration order
    config: ScheduleConfig
    heat_number: Optional[int] = None  # VERSUS only
    rng: Optional[random.Random] = None


SessionBuilder = Callable[[SessionRequest, TimeSlot], Tuple[Optional[ScheduledSession], TimeSlot]]


def _next_cursor(cursor: TimeSlot, session: ScheduledSession, config: ScheduleConfig) -> TimeSlot:
    return cursor.add_minutes(session.duration_minutes + config.transition_time)


def chunk_into_heats(athletes: List[AthleteRef], athletes_per_heat: int) -> List[List[AthleteRef]]:
    if athletes_per_heat < 1:
        raise ValueError(f"athletes_per_heat must be >= 1, got {athletes_per_heat}")
    return [athletes[i : i + athletes_per_heat] for i in range(0, len(athletes), athletes_per_heat)]


def build_simultaneous_session(request: SessionRequest, cursor: TimeSlot) -> Tuple[ScheduledSession, TimeSlot]:
    config = request.config
    duration = request.wod.estimated_duration_minutes or DEFAULT_ROUND_DURATION
    start = str(cursor)
    start_utc = convert_to_utc(cursor, config.timezone)
    end = str(cursor.add_minutes(duration))

    athlete_schedule = [
        AthleteSlot(
            athlete_id=athlete.athlete_id,
            athlete_name=athlete.full_name,
            start_time=start,
            start_time_utc=start_utc,
            end_time=end,
            station=index + 1,
        )
        for index, athlete in enumerate(request.athletes)
    ]

    session = ScheduledSession(
        session_id=f"{request.day_id}-{request.wod.wod_id}-{request.category.category_id}",
        wod_id=request.wod.wod_id,
        wod_name=request.wod.name,
        category_id=request.category.category_id,
        category_name=request.category.name,
        competition_mode=CompetitionMode.SIMULTANEOUS,
        start_time=start,
        start_time_utc=start_utc,
        end_time=end,
        duration_minutes=duration,
        wod_duration_minutes=duration,
        athlete_schedule=athlete_schedule,
    )
    return session, _next_cursor(cursor, session, config)


def build_heats_session(request: SessionRequest, cursor: TimeSlot) -> Tuple[ScheduledSession, TimeSlot]:
    config = request.config
    wod_duration = request.wod.estimated_duration_minutes or DEFAULT_ROUND_DURATION

    heats: List[Heat] = []
    athlete_schedule: List[AthleteSlot] = []
    for index, group in enumerate(chunk_into_heats(request.athletes, config.athletes_per_heat)):
        heat_number = index + 1
        heat_start = cursor.add_minutes(index * wod_duration)
        heat_end = heat_start.add_minutes(wod_duration)
        heat = Heat(
            heat_id=f"heat-{heat_number}",
            heat_number=heat_number,
            start_time=str(heat_start),
            end_time=str(heat_end),
            athletes=group,
        )
        heats.append(heat)
        for lane_index, athlete in enumerate(group):
            athlete_schedule.append(
                AthleteSlot(
                    athlete_id=athlete.athlete_id,
                    athlete_name=athlete.full_name,
                    start_time=heat.start_time,
                    start_time_utc=convert_to_utc(heat_start, config.timezone),
                    end_time=heat.end_time,
                    lane=lane_index + 1,
                    heat_id=heat.heat_id,
                    heat_number=heat_number,
                )
            )

    duration = len(heats) * wod_duration
    session = ScheduledSession(
        session_id=f"{request.day_id}-{request.wod.wod_id}-{request.category.category_id}",
        wod_id=request.wod.wod_id,
        wod_name=request.wod.name,
        category_id=request.category.category_id,
        category_name=request.category.name,
        competition_mode=CompetitionMode.HEATS,
        start_time=str(cursor),
        start_time_utc=convert_to_utc(cursor, config.timezone),
        end_time=str(cursor.add_minutes(duration)),
        duration_minutes=duration,
        wod_duration_minutes=wod_duration,
        heats=heats,
        athlete_schedule=athlete_schedule,
    )
    return session, _next_cursor(cursor, session, config)


def select_versus_athletes(
    athletes: List[AthleteRef], heat_number: int, eliminated_per_filter: int
) -> List[AthleteRef]:
    """Pick the (up to) two athletes for *heat_number*.

    With eliminated_per_filter == 0 every heat re-uses the first two athletes.
    Otherwise the pair starts at offset (heat_number - 1) * eliminated_per_filter.
    """
    eliminated = (heat_number - 1) * eliminated_per_filter
    remaining = max(0, len(athletes) - eliminated)
    if remaining == 0:
        return []
    if eliminated_per_filter == 0:
        return athletes[: min(2, len(athletes))]
    return athletes[eliminated : eliminated + min(2, remaining)]


def create_versus_match(
    athletes: List[AthleteRef], heat_number: int, match_id: str, rng: Optional[random.Random] = None
) -> Match:
    """Single 1v1 match; seed order is a random tie-break. One athlete -> bye."""
    if not athletes:
        raise ValueError("A match needs at least one athlete")
    shuffled = list(athletes[:2])
    (rng or random).shuffle(shuffled)
    athlete2 = shuffled[1] if len(shuffled) > 1 else None
    return Match(
        match_id=match_id,
        heat_number=heat_number,
        athlete1=shuffled[0],
        athlete2=athlete2,
        bye=athlete2 is None,
    )


def build_versus_session(
    request: SessionRequest, cursor: TimeSlot
) -> Tuple[Optional[ScheduledSession], TimeSlot]:
    config = request.config
    heat_number = request.heat_number
    if heat_number is None:
        raise ValueError("VERSUS sessions require a heat_number")

    selected = select_versus_athletes(request.athletes, heat_number, config.athletes_eliminated_per_filter)
    if not selected:
        logger.warning(
            "No remaining athletes for heat %d in category %s, skipping",
            heat_number,
            request.category.category_id,
        )
        return None, cursor

    session_id = f"{request.day_id}-heat-{heat_number}-{request.category.category_id}"
    match = create_versus_match(
        selected, heat_number, f"heat-{heat_number}-{request.category.category_id}", request.rng
    )
    duration = request.wod.estimated_duration_minutes or DEFAULT_VERSUS_DURATION
    start = str(cursor)
    start_utc = convert_to_utc(cursor, config.timezone)
    end = str(cursor.add_minutes(duration))

    athlete_schedule = [
        AthleteSlot(
            athlete_id=match.athlete1.athlete_id,
            athlete_name=match.athlete1.full_name,
            start_time=start,
            start_time_utc=start_utc,
            end_time=end,
            match_id=match.match_id,
            opponent=match.athlete2.full_name if match.athlete2 else BYE,
        )
    ]
    if match.athlete2:
        athlete_schedule.append(
            AthleteSlot(
                athlete_id=match.athlete2.athlete_id,
                athlete_name=match.athlete2.full_name,
                start_time=start,
                start_time_utc=start_utc,
                end_time=end,
                match_id=match.match_id,
                opponent=match.athlete1.full_name,
            )
        )

    session = ScheduledSession(
        session_id=session_id,
        wod_id=request.wod.wod_id,
        wod_name=request.wod.name,
        category_id=request.category.category_id,
        category_name=request.category.name,
        competition_mode=CompetitionMode.VERSUS,
        start_time=start,
        start_time_utc=start_utc,
        end_time=end,
        duration_minutes=duration,
        wod_duration_minutes=duration,
        heat_number=heat_number,
        matches=[match],
        athlete_schedule=athlete_schedule,
    )
    return session, _next_cursor(cursor, session, config)


SESSION_BUILDERS: Dict[CompetitionMode, SessionBuilder] = {
    CompetitionMode.SIMULTANEOUS: build_simultaneous_session,
    CompetitionMode.HEATS: build_heats_session,
    CompetitionMode.VERSUS: build_versus_session,
}


def build_session(request: SessionRequest, cursor: TimeSlot) -> Tuple[Optional[ScheduledSession], TimeSlot]:
    """Dispatch to the builder registered for the config's competition mode."""
    builder = SESSION_BUILDERS[request.config.competition_mode]
    return builder(request, cursor)


def retime_session(session: ScheduledSession, new_start: TimeSlot, timezone: str) -> ScheduledSession:
    """Move *session* to *new_start*, recomputing heat and athlete times for its mode."""
    start_utc = convert_to_utc(new_start, timezone)
    session.start_time = str(new_start)
    session.start_time_utc = start_utc
    session.end_time = str(new_start.add_minutes(session.duration_minutes))

    if session.competition_mode == CompetitionMode.HEATS:
        heat_starts: Dict[int, TimeSlot] = {}
        for index, heat in enumerate(session.heats):
            heat_start = new_start.add_minutes(index * session.wod_duration_minutes)
            heat.start_time = str(heat_start)
            heat.end_time = str(heat_start.add_minutes(session.wod_duration_minutes))
            heat_starts[heat.heat_number] = heat_start
        for slot in session.athlete_schedule:
            heat_start = heat_starts.get(slot.heat_number, new_start)
            slot.start_time = str(heat_start)
            slot.start_time_utc = convert_to_utc(heat_start, timezone)
            slot.end_time = str(heat_start.add_minutes(session.wod_duration_minutes))
    else:
        end = str(new_start.add_minutes(session.wod_duration_minutes))
        for slot in session.athlete_schedule:
            slot.start_time = session.start_time
            slot.start_time_utc = start_utc
            slot.end_time = end
    return session
