"""
DaySchedule tests: iteration order, cursor/elapsed bookkeeping, time budget
and session edits.
"""

import random

import pytest

from wod_scheduler.services.day_schedule import DaySchedule
from wod_scheduler.services.event_data_service import AthleteRef, CategoryRef, WodRef
from wod_scheduler.services.schedule_config import CompetitionMode, ScheduleConfig
from wod_scheduler.services.scheduling_errors import NotFoundError, SchedulingValidationError
from wod_scheduler.services.time_slot import TimeSlot

CATEGORIES = [CategoryRef(category_id="rx", name="RX"), CategoryRef(category_id="scaled", name="Scaled")]
WODS = [
    WodRef(wod_id="wodA", name="WOD A", estimated_duration_minutes=20),
    WodRef(wod_id="wodB", name="WOD B", estimated_duration_minutes=10),
]


def _athletes(category_id, n):
    return [
        AthleteRef(athlete_id=f"{category_id}-{i}", first_name=f"F{i}", last_name=category_id, category_id=category_id)
        for i in range(n)
    ]


def _day(**config_values):
    config = ScheduleConfig(start_time="09:00", **config_values)
    return DaySchedule(day_id="day-2026-06-01", name="Day 1", date="2026-06-01", config=config)


def test_simultaneous_scenario_single_session():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    day.generate_sessions(_athletes("rx", 4), CATEGORIES[:1], WODS[:1])

    assert len(day.sessions) == 1
    session = day.sessions[0]
    assert [s.station for s in session.athlete_schedule] == [1, 2, 3, 4]
    assert session.start_time == "09:00"
    assert session.end_time == "09:20"
    # 20 min + 5 transition + 10 setup
    assert day.elapsed_minutes == 35
    assert day.current_time == TimeSlot(9, 35)
    assert day.total_duration == 20


def test_wods_outer_categories_inner_with_setup_after_each_wod():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    athletes = _athletes("rx", 2) + _athletes("scaled", 2)
    day.generate_sessions(athletes, CATEGORIES, WODS)

    assert [(s.wod_id, s.category_id, s.start_time) for s in day.sessions] == [
        ("wodA", "rx", "09:00"),
        ("wodA", "scaled", "09:25"),
        ("wodB", "rx", "10:00"),
        ("wodB", "scaled", "10:15"),
    ]
    assert day.elapsed_minutes == (25 + 25 + 10) + (15 + 15 + 10)


def test_categories_without_athletes_are_skipped():
    day = _day()
    day.generate_sessions(_athletes("rx", 3), CATEGORIES, WODS[:1])
    assert [s.category_id for s in day.sessions] == ["rx"]


def test_athletes_with_unknown_category_are_left_out():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    athletes = _athletes("rx", 2) + _athletes("masters", 3)
    day.generate_sessions(athletes, CATEGORIES[:1], WODS[:1])
    assert day.sessions[0].athlete_count == 2


def test_versus_categories_outer_heats_inner():
    day = _day(
        competition_mode=CompetitionMode.VERSUS,
        number_of_heats=2,
        heat_wod_mapping={1: "wodA", 2: "wodB"},
        athletes_eliminated_per_filter=1,
    )
    athletes = _athletes("rx", 3) + _athletes("scaled", 2)
    day.generate_sessions(athletes, CATEGORIES, WODS, rng=random.Random(1))

    assert [s.session_id for s in day.sessions] == [
        "day-2026-06-01-heat-1-rx",
        "day-2026-06-01-heat-2-rx",
        "day-2026-06-01-heat-1-scaled",
        "day-2026-06-01-heat-2-scaled",
    ]
    rx_heat2 = day.sessions[1].matches[0]
    assert {rx_heat2.athlete1.athlete_id, rx_heat2.athlete2.athlete_id} == {"rx-1", "rx-2"}
    # scaled heat 2: only scaled-1 remains
    assert day.sessions[3].matches[0].bye is True
    # no setup time in VERSUS: 25 + 15 + 25 + 15
    assert day.elapsed_minutes == 80


def test_versus_heat_without_mapped_wod_is_skipped():
    day = _day(
        competition_mode=CompetitionMode.VERSUS,
        number_of_heats=3,
        heat_wod_mapping={1: "wodA", 3: "wodMissing"},
        athletes_eliminated_per_filter=0,
    )
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS)
    assert [s.heat_number for s in day.sessions] == [1]


def test_time_limit_and_validity():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    assert day.is_valid() is False

    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS[:1])
    assert day.is_valid() is True
    assert day.is_within_time_limit(1) is True
    assert day.is_within_time_limit(0.5) is False


def test_update_session_moves_athlete_times_and_reorders():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS)
    first_id = day.sessions[0].session_id

    moved = day.update_session(first_id, {"start_time": "11:00"})

    assert moved.start_time == "11:00"
    assert moved.end_time == "11:20"
    assert {s.start_time for s in moved.athlete_schedule} == {"11:00"}
    assert day.sessions[-1].session_id == first_id
    # latest session now ends 120 + 20 minutes after the day start
    assert day.elapsed_minutes == 140


def test_update_heats_session_recomputes_each_heat():
    day = _day(athletes_per_heat=2)
    day.generate_sessions(_athletes("rx", 4), CATEGORIES[:1], WODS[:1])
    session_id = day.sessions[0].session_id

    session = day.update_session(session_id, {"start_time": "10:00"})

    assert [h.start_time for h in session.heats] == ["10:00", "10:20"]
    assert [s.start_time for s in session.athlete_schedule] == ["10:00", "10:00", "10:20", "10:20"]


def test_update_session_duration_grows_elapsed():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS[:1])
    before = day.elapsed_minutes

    session = day.update_session(day.sessions[0].session_id, {"duration_minutes": 50})

    assert session.duration_minutes == 50
    assert session.end_time == "09:50"
    assert day.elapsed_minutes == before + 30


def test_update_session_rejects_non_positive_duration():
    day = _day()
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS[:1])
    with pytest.raises(SchedulingValidationError):
        day.update_session(day.sessions[0].session_id, {"duration_minutes": 0})


def test_update_session_rejects_start_before_day_start():
    day = _day(competition_mode=CompetitionMode.SIMULTANEOUS)
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS[:1])
    session_id = day.sessions[0].session_id
    elapsed = day.elapsed_minutes

    with pytest.raises(SchedulingValidationError, match="before the day's start"):
        day.update_session(session_id, {"start_time": "08:30", "duration_minutes": 40})

    assert day.sessions[0].start_time == "09:00"
    assert day.sessions[0].duration_minutes == 20
    assert day.elapsed_minutes == elapsed


def test_update_session_after_midnight_on_late_day():
    config = ScheduleConfig(start_time="20:00", competition_mode=CompetitionMode.SIMULTANEOUS)
    day = DaySchedule(day_id="day-2026-06-01", name="Day 1", date="2026-06-01", config=config)
    day.generate_sessions(_athletes("rx", 2), CATEGORIES[:1], WODS[:1])

    session = day.update_session(day.sessions[0].session_id, {"start_time": "01:00"})

    assert session.start_time == "01:00"
    # 5h offset past the 20:00 start plus the 20 minute session
    assert day.elapsed_minutes == 320


def test_update_unknown_session():
    day = _day()
    with pytest.raises(NotFoundError):
        day.update_session("nope", {"start_time": "10:00"})


def test_snapshot_restores_sessions_and_budget():
    day = _day(athletes_per_heat=3)
    day.generate_sessions(_athletes("rx", 5), CATEGORIES[:1], WODS)

    restored = DaySchedule.from_snapshot(day.to_snapshot(), day.config)

    assert restored.day_id == day.day_id
    assert restored.elapsed_minutes == day.elapsed_minutes
    assert restored.current_time == day.current_time
    assert [s.session_id for s in restored.sessions] == [s.session_id for s in day.sessions]
    assert restored.sessions[0].heats[1].athletes[0].athlete_id == "rx-3"
