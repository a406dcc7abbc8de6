"""
Schedule persistence.

ScheduleRepository is the port the engine talks to. SqlScheduleRepository
stores one ScheduleRecord row per aggregate and uses the row's version column
for optimistic concurrency: a save whose loaded version no longer matches the
stored one raises ConcurrentModificationError instead of overwriting.
"""

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from wod_scheduler.models.schedule_record import ScheduleRecord
from wod_scheduler.services.schedule_aggregate import Schedule, ScheduleStatus
from wod_scheduler.services.scheduling_errors import ConcurrentModificationError

logger = logging.getLogger(__name__)


class ScheduleRepository(ABC):
    @abstractmethod
    def save(self, schedule: Schedule) -> Schedule:
        ...

    @abstractmethod
    def find_by_id(self, event_id: str, schedule_id: str) -> Optional[Schedule]:
        ...

    @abstractmethod
    def find_by_event_id(self, event_id: str) -> List[Schedule]:
        """All schedules for the event, newest first."""

    @abstractmethod
    def find_published_by_event_id(self, event_id: str) -> List[Schedule]:
        ...

    @abstractmethod
    def delete(self, event_id: str, schedule_id: str) -> bool:
        ...


class SqlScheduleRepository(ScheduleRepository):
    def __init__(self, session: Session):
        self.session = session

    def save(self, schedule: Schedule) -> Schedule:
        snapshot = schedule.to_snapshot()

        if self.session.get(ScheduleRecord, schedule.schedule_id) is None:
            self.session.add(ScheduleRecord(**{**snapshot, "version": 1}))
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                raise self._stale(schedule)
        else:
            values = {k: v for k, v in snapshot.items() if k not in ("schedule_id", "version")}
            values["updated_at"] = datetime.utcnow()
            values["version"] = schedule.version + 1
            # The version predicate makes the check and the write one statement.
            result = self.session.connection().execute(
                update(ScheduleRecord)
                .where(
                    ScheduleRecord.schedule_id == schedule.schedule_id,
                    ScheduleRecord.version == schedule.version,
                )
                .values(**values)
            )
            if result.rowcount != 1:
                self.session.rollback()
                raise self._stale(schedule)
            self.session.commit()

        record = self.session.get(ScheduleRecord, schedule.schedule_id)
        self.session.refresh(record)
        schedule.version = record.version
        schedule.updated_at = record.updated_at
        return schedule

    def _stale(self, schedule: Schedule) -> ConcurrentModificationError:
        record = self.session.get(ScheduleRecord, schedule.schedule_id)
        stored = record.version if record else None
        logger.warning(
            "Stale write rejected for schedule %s (loaded v%s, stored v%s)",
            schedule.schedule_id,
            schedule.version,
            stored,
        )
        return ConcurrentModificationError(
            f"Schedule {schedule.schedule_id} was modified concurrently "
            f"(loaded version {schedule.version}, stored version {stored})"
        )

    def find_by_id(self, event_id: str, schedule_id: str) -> Optional[Schedule]:
        record = self.session.get(ScheduleRecord, schedule_id)
        if not record or record.event_id != event_id:
            return None
        return self._to_domain(record)

    def find_by_event_id(self, event_id: str) -> List[Schedule]:
        records = self.session.exec(
            select(ScheduleRecord)
            .where(ScheduleRecord.event_id == event_id)
            .order_by(col(ScheduleRecord.created_at).desc(), col(ScheduleRecord.schedule_id).desc())
        ).all()
        return [self._to_domain(r) for r in records]

    def find_published_by_event_id(self, event_id: str) -> List[Schedule]:
        records = self.session.exec(
            select(ScheduleRecord)
            .where(
                ScheduleRecord.event_id == event_id,
                ScheduleRecord.status == ScheduleStatus.PUBLISHED.value,
            )
            .order_by(col(ScheduleRecord.created_at).desc(), col(ScheduleRecord.schedule_id).desc())
        ).all()
        return [self._to_domain(r) for r in records]

    def delete(self, event_id: str, schedule_id: str) -> bool:
        record = self.session.get(ScheduleRecord, schedule_id)
        if not record or record.event_id != event_id:
            return False
        self.session.delete(record)
        self.session.commit()
        return True

    @staticmethod
    def _to_domain(record: ScheduleRecord) -> Schedule:
        return Schedule.from_snapshot(record.model_dump())


class InMemoryScheduleRepository(ScheduleRepository):
    """Dict-backed repository with the same version semantics as the SQL one."""

    def __init__(self):
        self._snapshots: Dict[str, dict] = {}

    def save(self, schedule: Schedule) -> Schedule:
        stored = self._snapshots.get(schedule.schedule_id)
        if stored is not None and stored["version"] != schedule.version:
            raise ConcurrentModificationError(
                f"Schedule {schedule.schedule_id} was modified concurrently "
                f"(loaded version {schedule.version}, stored version {stored['version']})"
            )
        schedule.version = (stored["version"] if stored else 0) + 1
        self._snapshots[schedule.schedule_id] = copy.deepcopy(schedule.to_snapshot())
        return schedule

    def find_by_id(self, event_id: str, schedule_id: str) -> Optional[Schedule]:
        snapshot = self._snapshots.get(schedule_id)
        if not snapshot or snapshot["event_id"] != event_id:
            return None
        return Schedule.from_snapshot(copy.deepcopy(snapshot))

    def find_by_event_id(self, event_id: str) -> List[Schedule]:
        snapshots = [s for s in self._snapshots.values() if s["event_id"] == event_id]
        snapshots.sort(key=lambda s: (s["created_at"], s["schedule_id"]), reverse=True)
        return [Schedule.from_snapshot(copy.deepcopy(s)) for s in snapshots]

    def find_published_by_event_id(self, event_id: str) -> List[Schedule]:
        return [s for s in self.find_by_event_id(event_id) if s.status == ScheduleStatus.PUBLISHED]

    def delete(self, event_id: str, schedule_id: str) -> bool:
        snapshot = self._snapshots.get(schedule_id)
        if not snapshot or snapshot["event_id"] != event_id:
            return False
        del self._snapshots[schedule_id]
        return True
