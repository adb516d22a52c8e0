from __future__ import annotations

from flask import current_app

from ..models import Participant
from ..store import get_store, with_storage_retry


@with_storage_retry
def get_my_recipient(participant_id: int) -> Participant | None:
    """
    Who ``participant_id`` gives a gift to, or None before the draw.

    Only the caller's own row is ever read.
    """
    store = get_store()
    with store.transaction():
        draw = store.draws.current()
    if not draw.is_completed:
        current_app.logger.debug("No completed draw yet (participant %s)", participant_id)
        return None

    row = store.assignments.for_giver(draw.id, participant_id)
    if row is None:
        current_app.logger.debug("Participant %s has no assignment in draw %s", participant_id, draw.id)
        return None

    return store.participants.get(row.recipient_id)
