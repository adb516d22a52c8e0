from __future__ import annotations

import threading
from contextlib import contextmanager
from functools import wraps

from flask import Flask, current_app, g
from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from .errors import StorageError
from .models import (
    DRAW_COMPLETED,
    DRAW_PENDING,
    Assignment,
    Draw,
    Participant,
    SurveyResponse,
    utcnow,
)
from .security import encrypt_assignment_recipient

STORE_KEY = "amigo_secreto.store"


def with_storage_retry(fn):
    """
    Run ``fn`` as one unit of work; on a driver-level failure roll back and
    try once more, then give up with a generic StorageError.

    Only the outermost call retries, so nested service calls don't multiply
    attempts.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        depth = g.get("_storage_depth", 0)
        if depth:
            return fn(*args, **kwargs)

        g._storage_depth = 1
        try:
            try:
                return fn(*args, **kwargs)
            except OperationalError:
                get_store().rollback()
                current_app.logger.warning("Storage error in %s, retrying once", fn.__name__)
            try:
                return fn(*args, **kwargs)
            except OperationalError as e:
                get_store().rollback()
                current_app.logger.exception("Storage error in %s after retry", fn.__name__)
                raise StorageError() from e
        finally:
            g._storage_depth = 0
    return wrapper


class ParticipantRepository:
    def __init__(self, db):
        self.db = db

    def add(self, participant: Participant) -> Participant:
        self.db.session.add(participant)
        self.db.session.flush()
        return participant

    def get(self, participant_id: int) -> Participant | None:
        return self.db.session.get(Participant, participant_id)

    def get_by_name(self, name: str) -> Participant | None:
        return Participant.query.filter(func.lower(Participant.name) == name.lower()).first()

    def get_by_phone(self, phone: str) -> Participant | None:
        return Participant.query.filter_by(phone=phone).first()

    def list_active(self, include_admins: bool = False) -> list[Participant]:
        q = Participant.query.filter_by(is_active=True)
        if not include_admins:
            q = q.filter_by(is_admin=False)
        return q.order_by(Participant.name.asc()).all()


class DrawRepository:
    def __init__(self, db):
        self.db = db

    def find(self) -> Draw | None:
        return Draw.query.order_by(Draw.id.asc()).first()

    def current(self) -> Draw:
        draw = self.find()
        if draw is None:
            draw = Draw(status=DRAW_PENDING)
            self.db.session.add(draw)
            self.db.session.flush()
        return draw

    def mark_completed(self, draw: Draw) -> bool:
        """
        pending -> completed as a conditional UPDATE. Returns False when some
        other writer already completed the draw.
        """
        updated = (
            Draw.query.filter_by(id=draw.id, status=DRAW_PENDING)
            .update({"status": DRAW_COMPLETED, "completed_at": utcnow()}, synchronize_session=False)
        )
        self.db.session.refresh(draw)
        return updated == 1

    def mark_pending(self, draw: Draw) -> None:
        draw.status = DRAW_PENDING
        draw.completed_at = None


class AssignmentRepository:
    def __init__(self, db):
        self.db = db

    def add_many(self, draw: Draw, pairs: list[tuple[int, int]]) -> list[Assignment]:
        rows = [
            Assignment(
                draw_id=draw.id,
                giver_id=giver_id,
                recipient_token=encrypt_assignment_recipient(recipient_id),
            )
            for giver_id, recipient_id in pairs
        ]
        self.db.session.add_all(rows)
        self.db.session.flush()
        return rows

    def for_giver(self, draw_id: int, giver_id: int) -> Assignment | None:
        return Assignment.query.filter_by(draw_id=draw_id, giver_id=giver_id).first()

    def giver_ids(self, draw_id: int) -> set[int]:
        rows = self.db.session.query(Assignment.giver_id).filter_by(draw_id=draw_id).all()
        return {giver_id for (giver_id,) in rows}

    def count(self, draw_id: int) -> int:
        return Assignment.query.filter_by(draw_id=draw_id).count()

    def delete_for_draw(self, draw_id: int) -> tuple[int, int]:
        """Returns (distinct givers cleared, rows removed)."""
        givers = len(self.giver_ids(draw_id))
        removed = Assignment.query.filter_by(draw_id=draw_id).delete(synchronize_session=False)
        return givers, removed


class SurveyRepository:
    def __init__(self, db):
        self.db = db

    def get(self, participant_id: int) -> SurveyResponse | None:
        return SurveyResponse.query.filter_by(participant_id=participant_id).first()

    def upsert(self, participant_id: int, answers: dict[str, str]) -> SurveyResponse:
        response = self.get(participant_id)
        if response is None:
            response = SurveyResponse(participant_id=participant_id)
            self.db.session.add(response)
        for field, value in answers.items():
            setattr(response, field, value)
        response.completed_at = utcnow()
        self.db.session.flush()
        return response


class Store:
    """
    Participants, draws, assignments and surveys behind one SQLAlchemy
    session. Built once per app in ``init_store``.
    """

    def __init__(self, db):
        self.db = db
        # Serialises perform_draw's check-then-write within this process.
        self.draw_lock = threading.Lock()

        self.participants = ParticipantRepository(db)
        self.draws = DrawRepository(db)
        self.assignments = AssignmentRepository(db)
        self.surveys = SurveyRepository(db)

    @contextmanager
    def transaction(self):
        try:
            yield self.db.session
            self.db.session.commit()
        except Exception:
            self.db.session.rollback()
            raise

    def rollback(self) -> None:
        self.db.session.rollback()

    def close(self) -> None:
        self.db.session.remove()


def init_store(app: Flask, db) -> Store:
    store = Store(db)
    app.extensions[STORE_KEY] = store

    @app.teardown_appcontext
    def _close_store(exc):
        store.close()

    return store


def get_store() -> Store:
    return current_app.extensions[STORE_KEY]
