from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin

from .extensions import db, login_manager
from .security import decrypt_assignment_recipient


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


DRAW_PENDING = "pending"
DRAW_COMPLETED = "completed"


class Participant(UserMixin, db.Model):
    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    # Contact handle (WhatsApp number in practice)
    phone = db.Column(db.String(32), unique=True, nullable=False)

    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    # Deactivated participants stay in the table so past assignments still resolve.
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    survey = db.relationship("SurveyResponse", back_populates="participant", uselist=False)

    @property
    def survey_completed(self) -> bool:
        return self.survey is not None

    def __repr__(self) -> str:
        return f"<Participant {self.id} {self.name!r}>"


class Draw(db.Model):
    __tablename__ = "draws"

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), default=DRAW_PENDING, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    assignments = db.relationship(
        "Assignment",
        back_populates="draw",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        db.CheckConstraint(f"status IN ('{DRAW_PENDING}', '{DRAW_COMPLETED}')", name="status"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == DRAW_COMPLETED


class Assignment(db.Model):
    """
    One giver -> recipient edge of a draw.

    The recipient id is persisted as a Fernet token so the mapping can't be
    read from the database directly; use ``recipient_id`` to decrypt it.
    """
    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)
    draw_id = db.Column(db.Integer, db.ForeignKey("draws.id", ondelete="CASCADE"), nullable=False)
    giver_id = db.Column(db.Integer, db.ForeignKey("participants.id"), nullable=False)
    recipient_token = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    draw = db.relationship("Draw", back_populates="assignments")
    giver = db.relationship("Participant", foreign_keys=[giver_id])

    __table_args__ = (
        db.UniqueConstraint("draw_id", "giver_id", name="uq_assignment_draw_giver"),
    )

    @property
    def recipient_id(self) -> int:
        return decrypt_assignment_recipient(self.recipient_token)


class SurveyResponse(db.Model):
    __tablename__ = "survey_responses"

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    gustos_actuales = db.Column(db.Text, nullable=False)
    color_favorito = db.Column(db.String(120), nullable=False)
    tipo_regalo = db.Column(db.Text, nullable=False)
    quiere_probar = db.Column(db.Text, nullable=False)
    talla_ropa = db.Column(db.String(32), nullable=False)

    completed_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    participant = db.relationship("Participant", back_populates="survey")

    def answers(self) -> dict[str, str]:
        return {field: getattr(self, field) for field in SURVEY_FIELDS}


SURVEY_FIELDS = ("gustos_actuales", "color_favorito", "tipo_regalo", "quiere_probar", "talla_ropa")


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(Participant, int(user_id))


@login_manager.request_loader
def load_user_from_request(request):
    """The upstream auth layer forwards the authenticated participant id in a header."""
    raw = (request.headers.get(current_app.config["AUTH_HEADER"]) or "").strip()
    if not raw.isdigit():
        return None
    participant = db.session.get(Participant, int(raw))
    if participant is None or not participant.is_active:
        return None
    return participant
