from typing import Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from studyroom import db
from studyroom.models import RoomTimer, RoomScore
from .phase_timer import PhaseTimer

Snapshot = Tuple[PhaseTimer, Dict[str, int]]


class NullPersistence:
    """Ephemeral rooms: state lives and dies with the in-memory room."""

    def load(self, room_id: str) -> Optional[Snapshot]:
        return None

    def save(self, room_id: str, timer: PhaseTimer, scores: Dict[str, int]) -> None:
        return None


class DatabasePersistence:
    """Keep each room's timer and name->points map in the database.

    Both are written in one transaction so a restart never sees a timer
    that moved on without the points it awarded.
    """

    def __init__(self, app):
        self.app = app

    def load(self, room_id: str) -> Optional[Snapshot]:
        with self.app.app_context():
            try:
                record = db.session.get(RoomTimer, room_id)
                scores = RoomScore.query.filter_by(room_id=room_id).all()
            except SQLAlchemyError as exc:
                db.session.rollback()
                self.app.logger.error(f"[persist-fail] room={room_id} load error={exc}")
                return None
            if record is None and not scores:
                return None
            timer = PhaseTimer.from_dict(record.to_dict()) if record else PhaseTimer()
            return timer, {s.name: s.points for s in scores}

    def save(self, room_id: str, timer: PhaseTimer, scores: Dict[str, int]) -> None:
        with self.app.app_context():
            try:
                record = db.session.get(RoomTimer, room_id) or RoomTimer(room_id=room_id)
                record.is_running = timer.is_running
                record.phase = timer.phase
                record.end_at = timer.end_at
                db.session.add(record)

                existing = {s.name: s for s in RoomScore.query.filter_by(room_id=room_id).all()}
                for name, points in scores.items():
                    row = existing.get(name) or RoomScore(room_id=room_id, name=name)
                    row.points = points
                    db.session.add(row)
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                self.app.logger.error(f"[persist-fail] room={room_id} error={exc}")

