"""
Schedule generation config.

Every field is optional with a default; the model is echoed verbatim into
the generated Schedule. VERSUS-specific requirements are checked by
validate_for_generation() so direct callers get a typed SchedulingValidationError
rather than a pydantic error.
"""

import re
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from wod_scheduler.services.scheduling_errors import SchedulingValidationError

_HHMM = re.compile(r"^\d{1,2}:\d{2}$")


class CompetitionMode(str, Enum):
    HEATS = "HEATS"
    VERSUS = "VERSUS"
    SIMULTANEOUS = "SIMULTANEOUS"


class EliminationType(str, Enum):
    BOTTOM_SCORES = "BOTTOM_SCORES"
    TOP_SCORES = "TOP_SCORES"
    RANDOM = "RANDOM"


class EliminationFilterConfig(BaseModel):
    """One stage of the tournament's filter chain."""

    filter_id: str
    name: Optional[str] = None
    elimination_count: int = Field(default=0, ge=0)
    elimination_type: EliminationType = EliminationType.BOTTOM_SCORES


class ScheduleConfig(BaseModel):
    max_day_hours: float = Field(default=10, gt=0)
    lunch_break_hours: float = Field(default=1, ge=0)
    competition_mode: CompetitionMode = CompetitionMode.HEATS
    athletes_per_heat: int = Field(default=8, ge=1)
    number_of_heats: Optional[int] = Field(default=None, ge=1)
    athletes_eliminated_per_filter: int = Field(default=1, ge=0)
    heat_wod_mapping: Dict[int, str] = Field(default_factory=dict)
    start_time: str = "08:00"
    timezone: str = "UTC"
    transition_time: int = Field(default=5, ge=0)
    setup_time: int = Field(default=10, ge=0)
    filters: List[EliminationFilterConfig] = Field(default_factory=list)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        v = v.strip()
        if not _HHMM.match(v):
            raise ValueError("start_time must be HH:MM")
        hours, minutes = (int(p) for p in v.split(":"))
        if hours > 23 or minutes > 59:
            raise ValueError("start_time must be a valid time of day")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if not v or not v.strip():
            raise ValueError("timezone cannot be empty")
        return v.strip()

    def validate_for_generation(self) -> None:
        if self.competition_mode == CompetitionMode.VERSUS:
            if not self.number_of_heats:
                raise SchedulingValidationError("number_of_heats is required for VERSUS competition mode")
            if not self.heat_wod_mapping:
                raise SchedulingValidationError("heat_wod_mapping is required for VERSUS competition mode")
