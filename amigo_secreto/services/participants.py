from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..models import Participant
from ..store import get_store, with_storage_retry


@with_storage_retry
def register(name: str, phone: str, is_admin: bool = False) -> Participant:
    name = (name or "").strip()
    phone = "".join((phone or "").split())

    errors: dict[str, list[str]] = {}
    if not name:
        errors["name"] = ["El nombre es obligatorio."]
    if not phone:
        errors["phone"] = ["El teléfono es obligatorio."]
    if errors:
        raise ValidationError("Nombre y teléfono son obligatorios", fields=errors)

    store = get_store()
    with store.transaction():
        if store.participants.get_by_name(name):
            raise ValidationError("Ese nombre ya está registrado", fields={"name": ["Duplicado."]})
        if store.participants.get_by_phone(phone):
            raise ValidationError("Ese teléfono ya está registrado", fields={"phone": ["Duplicado."]})
        p = store.participants.add(Participant(name=name, phone=phone, is_admin=bool(is_admin)))

    current_app.logger.info("Registered participant %s (admin=%s)", p.id, p.is_admin)
    return p


@with_storage_retry
def get(participant_id: int) -> Participant | None:
    return get_store().participants.get(participant_id)


@with_storage_retry
def list_active(include_admins: bool = False) -> list[Participant]:
    return get_store().participants.list_active(include_admins=include_admins)


@with_storage_retry
def deactivate(participant_id: int) -> Participant:
    """Drop a participant from future draws; past assignments keep pointing at them."""
    store = get_store()
    with store.transaction():
        p = store.participants.get(participant_id)
        if p is None:
            raise NotFoundError("Participante no encontrado")
        p.is_active = False

    current_app.logger.info("Deactivated participant %s", participant_id)
    return p
