"""
DaySchedule: packs sessions for one venue-day and tracks the time budget.

The cursor (current_time) is an immutable TimeSlot replaced after every
builder call. Because TimeSlot wraps at midnight, the time budget is checked
against elapsed_minutes (total cursor advance since the day's start time,
transitions and setup included), not against the cursor itself.
"""

import logging
import random
from typing import Any, Dict, List, Optional

from wod_scheduler.services.event_data_service import AthleteRef, CategoryRef, WodRef
from wod_scheduler.services.schedule_config import CompetitionMode, ScheduleConfig
from wod_scheduler.services.scheduling_errors import NotFoundError, SchedulingValidationError
from wod_scheduler.services.session_builders import (
    ScheduledSession,
    SessionRequest,
    build_session,
    retime_session,
)
from wod_scheduler.services.time_slot import TimeSlot

logger = logging.getLogger(__name__)


class DaySchedule:
    def __init__(
        self,
        day_id: str,
        name: str,
        date: str,
        config: ScheduleConfig,
        start_time: Optional[TimeSlot] = None,
    ):
        self.day_id = day_id
        self.name = name
        self.date = date
        self.config = config
        self.start_time = start_time or TimeSlot.from_string(config.start_time)
        self.current_time = self.start_time
        self.elapsed_minutes = 0
        self.sessions: List[ScheduledSession] = []

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_sessions(
        self,
        athletes: List[AthleteRef],
        categories: List[CategoryRef],
        wods: List[WodRef],
        rng: Optional[random.Random] = None,
    ) -> List[ScheduledSession]:
        """Fill this day with sessions for the given inputs.

        HEATS/SIMULTANEOUS iterate WODs outer, categories inner and add setup_time
        after each WOD. VERSUS iterates categories outer, heat numbers inner.
        Categories without athletes are skipped; athletes whose category is
        unknown never match a category and are left out.
        """
        by_category = self._athletes_by_category(athletes)

        if self.config.competition_mode == CompetitionMode.VERSUS:
            self._generate_versus(by_category, categories, wods, rng)
        else:
            for wod in wods:
                for category in categories:
                    category_athletes = by_category.get(category.category_id, [])
                    if not category_athletes:
                        continue
                    request = SessionRequest(
                        day_id=self.day_id,
                        wod=wod,
                        category=category,
                        athletes=category_athletes,
                        config=self.config,
                        rng=rng,
                    )
                    self._append(*build_session(request, self.current_time))
                self._advance(self.config.setup_time)

        logger.info(
            "Day %s: %d sessions, %d minutes elapsed (%s mode)",
            self.day_id,
            len(self.sessions),
            self.elapsed_minutes,
            self.config.competition_mode.value,
        )
        return self.sessions

    def _generate_versus(
        self,
        by_category: Dict[str, List[AthleteRef]],
        categories: List[CategoryRef],
        wods: List[WodRef],
        rng: Optional[random.Random],
    ) -> None:
        wods_by_id = {w.wod_id: w for w in wods}
        number_of_heats = self.config.number_of_heats or 0

        for category in categories:
            category_athletes = by_category.get(category.category_id, [])
            if not category_athletes:
                continue
            for heat_number in range(1, number_of_heats + 1):
                wod_id = self.config.heat_wod_mapping.get(heat_number)
                wod = wods_by_id.get(wod_id) if wod_id else None
                if not wod:
                    logger.warning(
                        "No WOD mapped for heat %d on day %s (mapping=%s), skipping",
                        heat_number,
                        self.day_id,
                        wod_id,
                    )
                    continue
                request = SessionRequest(
                    day_id=self.day_id,
                    wod=wod,
                    category=category,
                    athletes=category_athletes,
                    config=self.config,
                    heat_number=heat_number,
                    rng=rng,
                )
                self._append(*build_session(request, self.current_time))

    def _append(self, session: Optional[ScheduledSession], next_cursor: TimeSlot) -> None:
        if session is None:
            return
        self.sessions.append(session)
        self.current_time = next_cursor
        self.elapsed_minutes += session.duration_minutes + self.config.transition_time

    def _advance(self, minutes: int) -> None:
        self.current_time = self.current_time.add_minutes(minutes)
        self.elapsed_minutes += minutes

    @staticmethod
    def _athletes_by_category(athletes: List[AthleteRef]) -> Dict[str, List[AthleteRef]]:
        grouped: Dict[str, List[AthleteRef]] = {}
        for athlete in athletes:
            if athlete.category_id:
                grouped.setdefault(athlete.category_id, []).append(athlete)
        return grouped

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def total_duration(self) -> int:
        return sum(s.duration_minutes for s in self.sessions)

    def is_within_time_limit(self, max_hours: float) -> bool:
        return self.elapsed_minutes <= max_hours * 60

    def is_valid(self) -> bool:
        return len(self.sessions) > 0 and all(s.is_valid() for s in self.sessions)

    def find_session(self, session_id: str) -> Optional[ScheduledSession]:
        for session in self.sessions:
            if session.session_id == session_id:
                return session
        return None

    def athlete_ids(self) -> List[str]:
        """Distinct athlete ids across all sessions, first appearance order."""
        seen: Dict[str, None] = {}
        for session in self.sessions:
            for slot in session.athlete_schedule:
                seen.setdefault(slot.athlete_id, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def update_session(self, session_id: str, updates: Dict[str, Any]) -> ScheduledSession:
        session = self.find_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found on day {self.day_id}")

        new_start = TimeSlot.from_string(session.start_time)
        if updates.get("start_time"):
            try:
                new_start = TimeSlot.from_string(updates["start_time"])
            except ValueError as e:
                raise SchedulingValidationError(str(e))
            # Clock times earlier than the day's start only count as "after midnight"
            # while they still fall inside the day's window.
            if (
                new_start.to_minutes() < self.start_time.to_minutes()
                and new_start.minutes_since(self.start_time) >= self.config.max_day_hours * 60
            ):
                raise SchedulingValidationError(
                    f"start_time {new_start} is before the day's start ({self.start_time})"
                )

        delta = 0
        if updates.get("duration_minutes") is not None:
            duration = int(updates["duration_minutes"])
            if duration <= 0:
                raise SchedulingValidationError("duration_minutes must be greater than 0")
            delta = duration - session.duration_minutes
            session.duration_minutes = duration
            if session.competition_mode == CompetitionMode.HEATS and session.heats:
                session.wod_duration_minutes = max(1, duration // len(session.heats))
            else:
                session.wod_duration_minutes = duration

        retime_session(session, new_start, self.config.timezone)

        self.sessions.sort(key=self._offset)
        latest_end = max(self._offset(s) + s.duration_minutes for s in self.sessions)
        self.elapsed_minutes = max(self.elapsed_minutes + delta, latest_end)
        self.current_time = self.start_time.add_minutes(self.elapsed_minutes)
        return session

    def _offset(self, session: ScheduledSession) -> int:
        return TimeSlot.from_string(session.start_time).minutes_since(self.start_time)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "day_id": self.day_id,
            "name": self.name,
            "date": self.date,
            "start_time": str(self.start_time),
            "current_time": str(self.current_time),
            "elapsed_minutes": self.elapsed_minutes,
            "total_duration": self.total_duration,
            "sessions": [s.model_dump(mode="json") for s in self.sessions],
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any], config: ScheduleConfig) -> "DaySchedule":
        day = cls(
            day_id=data["day_id"],
            name=data.get("name", ""),
            date=data.get("date", ""),
            config=config,
            start_time=TimeSlot.from_string(data.get("start_time") or config.start_time),
        )
        day.sessions = [ScheduledSession.model_validate(s) for s in data.get("sessions", [])]
        day.elapsed_minutes = int(data.get("elapsed_minutes", day.total_duration))
        day.current_time = day.start_time.add_minutes(day.elapsed_minutes)
        return day
