import pytest

from amigo_secreto.errors import NotFoundError, ValidationError
from amigo_secreto.services import participants
from amigo_secreto.services.assignments import get_my_recipient
from amigo_secreto.services.draw import perform_draw


def test_register_trims_input(ctx):
    p = participants.register("  Ana López ", " +52 155 0000 0001 ")
    assert p.name == "Ana López"
    assert p.phone == "+5215500000001"
    assert p.is_active and not p.is_admin
    assert p.created_at is not None


@pytest.mark.parametrize("name,phone", [("", "+521"), ("Ana", ""), ("   ", "   ")])
def test_register_requires_name_and_phone(ctx, name, phone):
    with pytest.raises(ValidationError):
        participants.register(name, phone)


def test_register_rejects_duplicates(ctx):
    participants.register("Ana", "+5211")
    with pytest.raises(ValidationError, match="nombre"):
        participants.register("ana", "+5212")
    with pytest.raises(ValidationError, match="teléfono"):
        participants.register("Beto", "+5211")


def test_list_active_hides_admins_and_inactive(ctx):
    ana = participants.register("Ana", "+5211")
    beto = participants.register("Beto", "+5212")
    admin = participants.register("Admin", "+5210", is_admin=True)
    participants.deactivate(beto.id)

    assert [p.id for p in participants.list_active()] == [ana.id]
    assert {p.id for p in participants.list_active(include_admins=True)} == {ana.id, admin.id}


def test_deactivate_unknown(ctx):
    with pytest.raises(NotFoundError):
        participants.deactivate(404)


def test_deactivation_keeps_past_assignments(ctx):
    ids = [participants.register(n, f"+52{i}").id for i, n in enumerate(["Ana", "Beto", "Carla"])]
    perform_draw()
    recipient = get_my_recipient(ids[0])

    participants.deactivate(recipient.id)

    still = get_my_recipient(ids[0])
    assert still.id == recipient.id
    assert still.is_active is False
    assert participants.get(recipient.id) is not None
