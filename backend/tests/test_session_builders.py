"""
Session builder tests: one builder per competition mode.

Covers station/lane/heat layout, session durations, cursor advance, VERSUS
athlete selection (including byes and skipped heats) and the builder registry.
"""

import random

import pytest
from pydantic import ValidationError

from wod_scheduler.services.event_data_service import AthleteRef, CategoryRef, WodRef
from wod_scheduler.services.schedule_config import CompetitionMode, ScheduleConfig
from wod_scheduler.services.session_builders import (
    SESSION_BUILDERS,
    Match,
    SessionRequest,
    build_heats_session,
    build_session,
    build_simultaneous_session,
    build_versus_session,
    chunk_into_heats,
    select_versus_athletes,
)
from wod_scheduler.services.time_slot import TimeSlot

DAY_ID = "day-2026-06-01"
RX = CategoryRef(category_id="rx", name="RX")


def _athletes(n, category_id="rx"):
    return [
        AthleteRef(athlete_id=f"a{i}", first_name=f"First{i}", last_name=f"Last{i}", category_id=category_id)
        for i in range(n)
    ]


def _request(config, athletes, wod=None, heat_number=None, rng=None):
    return SessionRequest(
        day_id=DAY_ID,
        wod=wod or WodRef(wod_id="wodA", name="WOD A", estimated_duration_minutes=20),
        category=RX,
        athletes=athletes,
        config=config,
        heat_number=heat_number,
        rng=rng,
    )


# -----------------------------------------------------------------------------
# SIMULTANEOUS
# -----------------------------------------------------------------------------


def test_simultaneous_assigns_one_station_per_athlete():
    config = ScheduleConfig(competition_mode=CompetitionMode.SIMULTANEOUS, start_time="09:00")
    session, next_cursor = build_simultaneous_session(_request(config, _athletes(4)), TimeSlot(9, 0))

    assert session.session_id == f"{DAY_ID}-wodA-rx"
    assert session.duration_minutes == 20
    assert len(session.athlete_schedule) == 4
    assert [s.station for s in session.athlete_schedule] == [1, 2, 3, 4]
    assert {s.start_time for s in session.athlete_schedule} == {"09:00"}
    assert {s.end_time for s in session.athlete_schedule} == {"09:20"}
    # duration + default transition
    assert next_cursor == TimeSlot(9, 25)


def test_simultaneous_defaults_duration_when_wod_has_none():
    config = ScheduleConfig(competition_mode=CompetitionMode.SIMULTANEOUS)
    wod = WodRef(wod_id="wodX", name="WOD X")
    session, _ = build_simultaneous_session(_request(config, _athletes(2), wod=wod), TimeSlot(8, 0))
    assert session.duration_minutes == 20
    assert session.end_time == "08:20"


def test_simultaneous_start_time_utc_uses_config_timezone():
    config = ScheduleConfig(competition_mode=CompetitionMode.SIMULTANEOUS, timezone="EST")
    session, _ = build_simultaneous_session(_request(config, _athletes(1)), TimeSlot(9, 0))
    assert session.start_time_utc == "14:00"
    assert session.athlete_schedule[0].start_time_utc == "14:00"


# -----------------------------------------------------------------------------
# HEATS
# -----------------------------------------------------------------------------


def test_heats_chunks_athletes_in_registration_order():
    config = ScheduleConfig(competition_mode=CompetitionMode.HEATS, athletes_per_heat=2)
    athletes = _athletes(5)
    session, next_cursor = build_heats_session(_request(config, athletes), TimeSlot(9, 0))

    assert [len(h.athletes) for h in session.heats] == [2, 2, 1]
    assert session.duration_minutes == 60
    assert [h.start_time for h in session.heats] == ["09:00", "09:20", "09:40"]
    assert [h.heat_id for h in session.heats] == ["heat-1", "heat-2", "heat-3"]
    assert next_cursor == TimeSlot(10, 5)

    flattened = [a.athlete_id for h in session.heats for a in h.athletes]
    assert flattened == [a.athlete_id for a in athletes]


def test_heats_lane_is_position_within_heat():
    config = ScheduleConfig(competition_mode=CompetitionMode.HEATS, athletes_per_heat=2)
    session, _ = build_heats_session(_request(config, _athletes(3)), TimeSlot(9, 0))

    lanes = [(s.athlete_id, s.heat_number, s.lane, s.start_time) for s in session.athlete_schedule]
    assert lanes == [
        ("a0", 1, 1, "09:00"),
        ("a1", 1, 2, "09:00"),
        ("a2", 2, 1, "09:20"),
    ]


def test_heats_no_athlete_lost_or_duplicated():
    config = ScheduleConfig(competition_mode=CompetitionMode.HEATS, athletes_per_heat=3)
    athletes = _athletes(11)
    session, _ = build_heats_session(_request(config, athletes), TimeSlot(8, 0))
    assert sum(len(h.athletes) for h in session.heats) == len(athletes)
    assert session.athlete_count == len(athletes)


def test_chunk_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunk_into_heats(_athletes(2), 0)


# -----------------------------------------------------------------------------
# VERSUS
# -----------------------------------------------------------------------------


def _versus_config(**overrides):
    values = dict(
        competition_mode=CompetitionMode.VERSUS,
        number_of_heats=2,
        heat_wod_mapping={1: "wodA", 2: "wodB"},
        athletes_eliminated_per_filter=1,
    )
    values.update(overrides)
    return ScheduleConfig(**values)


def test_versus_selection_slides_by_eliminated_count():
    athletes = _athletes(3)
    heat1 = select_versus_athletes(athletes, 1, 1)
    heat2 = select_versus_athletes(athletes, 2, 1)
    assert [a.athlete_id for a in heat1] == ["a0", "a1"]
    assert [a.athlete_id for a in heat2] == ["a1", "a2"]


def test_versus_selection_repeats_first_pair_when_nobody_is_eliminated():
    athletes = _athletes(4)
    for heat_number in (1, 2, 5):
        assert [a.athlete_id for a in select_versus_athletes(athletes, heat_number, 0)] == ["a0", "a1"]


def test_versus_selection_empty_once_everyone_is_eliminated():
    assert select_versus_athletes(_athletes(3), 4, 1) == []


def test_versus_session_has_single_match():
    config = _versus_config()
    request = _request(config, _athletes(3), heat_number=2, rng=random.Random(7))
    session, next_cursor = build_versus_session(request, TimeSlot(9, 0))

    assert session.session_id == f"{DAY_ID}-heat-2-rx"
    assert session.heat_number == 2
    assert len(session.matches) == 1
    match = session.matches[0]
    assert {match.athlete1.athlete_id, match.athlete2.athlete_id} == {"a1", "a2"}
    assert match.bye is False
    assert next_cursor == TimeSlot(9, 25)


def test_versus_single_remaining_athlete_gets_a_bye():
    config = _versus_config(number_of_heats=3, heat_wod_mapping={1: "wodA", 2: "wodA", 3: "wodA"})
    session, _ = build_versus_session(_request(config, _athletes(3), heat_number=3), TimeSlot(9, 0))

    match = session.matches[0]
    assert match.athlete1.athlete_id == "a2"
    assert match.athlete2 is None
    assert match.bye is True
    assert session.athlete_schedule[0].opponent == "BYE"


def test_versus_skipped_heat_keeps_cursor():
    config = _versus_config(number_of_heats=4)
    session, next_cursor = build_versus_session(_request(config, _athletes(3), heat_number=4), TimeSlot(9, 0))
    assert session is None
    assert next_cursor == TimeSlot(9, 0)


def test_versus_default_duration():
    config = _versus_config()
    wod = WodRef(wod_id="wodA", name="WOD A")
    session, _ = build_versus_session(_request(config, _athletes(2), wod=wod, heat_number=1), TimeSlot(9, 0))
    assert session.duration_minutes == 15
    assert session.end_time == "09:15"


def test_versus_opponents_are_listed_both_ways():
    config = _versus_config()
    session, _ = build_versus_session(_request(config, _athletes(2), heat_number=1), TimeSlot(9, 0))
    by_athlete = {s.athlete_id: s.opponent for s in session.athlete_schedule}
    assert by_athlete == {"a0": "First1 Last1", "a1": "First0 Last0"}


def test_match_bye_must_match_missing_opponent():
    a, b = _athletes(2)
    with pytest.raises(ValidationError):
        Match(match_id="m", heat_number=1, athlete1=a, athlete2=b, bye=True)
    with pytest.raises(ValidationError):
        Match(match_id="m", heat_number=1, athlete1=a, athlete2=None, bye=False)


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------


def test_every_mode_has_a_builder():
    assert set(SESSION_BUILDERS) == set(CompetitionMode)


def test_build_session_dispatches_on_mode():
    config = ScheduleConfig(competition_mode=CompetitionMode.HEATS, athletes_per_heat=2)
    session, _ = build_session(_request(config, _athletes(3)), TimeSlot(9, 0))
    assert session.competition_mode == CompetitionMode.HEATS
    assert len(session.heats) == 2
