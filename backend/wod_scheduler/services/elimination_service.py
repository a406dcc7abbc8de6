"""
Elimination / progression engine.

Scores come from the Score table (written by the scoring service); this module
never computes scores. For each filter the scored athletes are ranked, the
first elimination_count are eliminated and the outcome is stored on the
ClassificationFilter row, which is created on first use.

Progression walks a schedule's filter chain in order. A filter with no scores
yet is skipped, so progression can be re-run once more scores arrive.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from wod_scheduler.models.score import ClassificationFilter, Score
from wod_scheduler.services.schedule_aggregate import Schedule
from wod_scheduler.services.schedule_config import EliminationFilterConfig, EliminationType
from wod_scheduler.services.scheduling_errors import SchedulingValidationError

logger = logging.getLogger(__name__)

FILTER_COMPLETED = "COMPLETED"


@dataclass
class AthleteScore:
    athlete_id: str
    score: float


@dataclass
class EliminationResult:
    eliminated: List[str] = field(default_factory=list)
    remaining: List[str] = field(default_factory=list)
    elimination_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eliminated": self.eliminated,
            "remaining": self.remaining,
            "elimination_count": self.elimination_count,
        }


class ScoreService:
    """Read side of the scoring collaborator."""

    def __init__(self, session: Session):
        self.session = session

    def get_scores(self, event_id: str, filter_id: str) -> List[AthleteScore]:
        """One score per athlete (their best), in first-submission order."""
        rows = self.session.exec(
            select(Score)
            .where(Score.event_id == event_id, Score.filter_id == filter_id)
            .order_by(Score.submitted_at, Score.id)
        ).all()

        best: Dict[str, AthleteScore] = {}
        for row in rows:
            current = best.get(row.athlete_id)
            if current is None:
                best[row.athlete_id] = AthleteScore(athlete_id=row.athlete_id, score=row.score)
            elif row.score > current.score:
                current.score = row.score
        return list(best.values())


class FilterStore:
    """ClassificationFilter rows: one per (event, filter)."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, event_id: str, filter_id: str) -> Optional[ClassificationFilter]:
        return self.session.exec(
            select(ClassificationFilter).where(
                ClassificationFilter.event_id == event_id,
                ClassificationFilter.filter_id == filter_id,
            )
        ).first()

    def record_elimination(
        self,
        event_id: str,
        filter_id: str,
        elimination_count: int,
        elimination_type: EliminationType,
        result: EliminationResult,
        name: Optional[str] = None,
    ) -> ClassificationFilter:
        row = self.get(event_id, filter_id)
        if row is None:
            row = ClassificationFilter(event_id=event_id, filter_id=filter_id)
        if name:
            row.name = name
        row.elimination_count = elimination_count
        row.elimination_type = elimination_type.value
        row.eliminated_athletes = list(result.eliminated)
        row.remaining_athletes = list(result.remaining)
        row.eliminated_at = datetime.utcnow()
        row.status = FILTER_COMPLETED
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row


def rank_for_elimination(
    scores: List[AthleteScore],
    elimination_type: EliminationType,
    rng: Optional[random.Random] = None,
) -> List[AthleteScore]:
    """Order scores so the athletes to eliminate come first."""
    if elimination_type == EliminationType.BOTTOM_SCORES:
        return sorted(scores, key=lambda s: s.score)
    if elimination_type == EliminationType.TOP_SCORES:
        return sorted(scores, key=lambda s: s.score, reverse=True)
    ranked = list(scores)
    (rng or random).shuffle(ranked)
    return ranked


def split_eliminated(ranked: List[AthleteScore], elimination_count: int) -> EliminationResult:
    if elimination_count < 0:
        raise SchedulingValidationError("elimination_count must be >= 0")
    return EliminationResult(
        eliminated=[s.athlete_id for s in ranked[:elimination_count]],
        remaining=[s.athlete_id for s in ranked[elimination_count:]],
        elimination_count=elimination_count,
    )


def promote_wildcards(
    remaining: List[str], eliminated_scores: List[AthleteScore], wildcard_count: int
) -> List[str]:
    """Return *remaining* plus the best-scoring eliminated athletes.

    This is a caller-side policy applied before next-stage generation; the
    elimination step itself never brings anyone back.
    """
    if wildcard_count <= 0:
        return list(remaining)
    candidates = [s for s in eliminated_scores if s.athlete_id not in remaining]
    candidates = sorted(candidates, key=lambda s: s.score, reverse=True)
    return list(remaining) + [s.athlete_id for s in candidates[:wildcard_count]]


class EliminationService:
    def __init__(
        self,
        score_service: ScoreService,
        filter_store: FilterStore,
        rng: Optional[random.Random] = None,
    ):
        self.score_service = score_service
        self.filter_store = filter_store
        self.rng = rng

    def eliminate_athletes(
        self,
        event_id: str,
        filter_id: str,
        elimination_count: int,
        elimination_type: EliminationType = EliminationType.BOTTOM_SCORES,
        filter_name: Optional[str] = None,
    ) -> EliminationResult:
        if elimination_count < 0:
            raise SchedulingValidationError("elimination_count must be >= 0")

        scores = self.score_service.get_scores(event_id, filter_id)
        ranked = rank_for_elimination(scores, elimination_type, self.rng)
        result = split_eliminated(ranked, elimination_count)

        self.filter_store.record_elimination(
            event_id, filter_id, elimination_count, elimination_type, result, name=filter_name
        )
        logger.info(
            "Filter %s for event %s: eliminated %d of %d athletes (%s)",
            filter_id,
            event_id,
            len(result.eliminated),
            len(scores),
            elimination_type.value,
        )
        return result

    def process_filter_progression(
        self, schedule: Schedule, filters: Optional[List[EliminationFilterConfig]] = None
    ) -> List[Dict[str, Any]]:
        """Apply the filter chain to *schedule* and record the surviving athletes on it."""
        filters = schedule.config.filters if filters is None else filters
        active = list(schedule.active_athletes) if schedule.active_athletes is not None else schedule.athlete_ids()

        results: List[Dict[str, Any]] = []
        for filter_config in filters:
            if filter_config.elimination_count <= 0:
                continue
            if not self.score_service.get_scores(schedule.event_id, filter_config.filter_id):
                logger.info("Filter %s has no scores yet, skipping", filter_config.filter_id)
                continue

            result = self.eliminate_athletes(
                schedule.event_id,
                filter_config.filter_id,
                filter_config.elimination_count,
                filter_config.elimination_type,
                filter_name=filter_config.name,
            )
            active = result.remaining
            results.append(
                {
                    "filter_id": filter_config.filter_id,
                    "filter_name": filter_config.name or filter_config.filter_id,
                    "eliminated": len(result.eliminated),
                    "remaining": len(result.remaining),
                }
            )

        schedule.active_athletes = active
        schedule.progression_results = results
        schedule.last_progression_at = datetime.utcnow()
        return results

    def wildcard_candidates(self, event_id: str, filter_id: str) -> List[AthleteScore]:
        """Scores of the athletes eliminated by *filter_id*."""
        row = self.filter_store.get(event_id, filter_id)
        if not row or not row.eliminated_athletes:
            return []
        eliminated = set(row.eliminated_athletes)
        return [s for s in self.score_service.get_scores(event_id, filter_id) if s.athlete_id in eliminated]
