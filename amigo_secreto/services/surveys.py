from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..models import SURVEY_FIELDS, Participant, SurveyResponse
from ..store import get_store, with_storage_retry
from .assignments import get_my_recipient

MAX_ANSWER_LENGTH = 1000


@dataclass(frozen=True)
class SurveyStatus:
    completed: bool
    completed_at: datetime | None = None
    answers: dict[str, str] = field(default_factory=dict)


def clean_answers(answers: Mapping[str, object]) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    errors: dict[str, list[str]] = {}
    for name in SURVEY_FIELDS:
        value = answers.get(name)
        value = value.strip() if isinstance(value, str) else ""
        if not value:
            errors[name] = ["Este campo es obligatorio."]
        elif len(value) > MAX_ANSWER_LENGTH:
            errors[name] = [f"Máximo {MAX_ANSWER_LENGTH} caracteres."]
        else:
            cleaned[name] = value
    if errors:
        raise ValidationError("Todos los campos de la encuesta son obligatorios", fields=errors)
    return cleaned


@with_storage_retry
def submit(participant_id: int, answers: Mapping[str, object]) -> SurveyResponse:
    """Create or overwrite the participant's survey."""
    cleaned = clean_answers(answers)
    store = get_store()
    with store.transaction():
        if store.participants.get(participant_id) is None:
            raise NotFoundError("Participante no encontrado")
        response = store.surveys.upsert(participant_id, cleaned)

    current_app.logger.info("Survey saved for participant %s", participant_id)
    return response


@with_storage_retry
def verify(participant_id: int) -> SurveyStatus:
    response = get_store().surveys.get(participant_id)
    if response is None:
        return SurveyStatus(completed=False)
    return SurveyStatus(completed=True, completed_at=response.completed_at, answers=response.answers())


@with_storage_retry
def get_recipient_survey(viewer_id: int) -> tuple[Participant, SurveyResponse] | None:
    """
    The survey of whoever ``viewer_id`` drew. The recipient is looked up
    again on every call; there is no way to ask for an arbitrary target.
    """
    recipient = get_my_recipient(viewer_id)
    if recipient is None:
        return None

    response = get_store().surveys.get(recipient.id)
    if response is None:
        current_app.logger.debug("Recipient of participant %s has no survey yet", viewer_id)
        return None
    return recipient, response
