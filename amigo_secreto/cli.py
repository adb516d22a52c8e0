from __future__ import annotations

import click
from flask import Flask
from flask.cli import AppGroup, with_appcontext

from .errors import SecretFriendError
from .extensions import db
from .services import participants as participant_service
from .services.draw import perform_draw, reset_draw

participants_cli = AppGroup("participants", help="Manage participants.")
sorteo_cli = AppGroup("sorteo", help="Run or reset the draw.")


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create tables without migrations (local use / demos)."""
    db.create_all()
    click.echo("Database initialised.")


@participants_cli.command("add")
@click.argument("name")
@click.argument("phone")
@click.option("--admin", is_flag=True, help="Organizer account, left out of the draw.")
def add_participant(name: str, phone: str, admin: bool):
    try:
        p = participant_service.register(name, phone, is_admin=admin)
    except SecretFriendError as e:
        raise click.ClickException(e.message)
    click.echo(f"Registered #{p.id} {p.name}")


@participants_cli.command("list")
def list_participants():
    for p in participant_service.list_active(include_admins=True):
        flags = " (admin)" if p.is_admin else ""
        click.echo(f"{p.id}\t{p.name}\t{p.phone}{flags}")


@participants_cli.command("deactivate")
@click.argument("participant_id", type=int)
def deactivate_participant(participant_id: int):
    try:
        p = participant_service.deactivate(participant_id)
    except SecretFriendError as e:
        raise click.ClickException(e.message)
    click.echo(f"Deactivated #{p.id} {p.name}")


@sorteo_cli.command("run")
def run_draw():
    try:
        result = perform_draw()
    except SecretFriendError as e:
        raise click.ClickException(e.message)
    click.echo(f"Draw completed: {len(result.assignments)} assignments.")


@sorteo_cli.command("reset")
def reset():
    result = reset_draw()
    click.echo(
        f"Draw reset: {result.participants_cleared} participants cleared, "
        f"{result.assignments_removed} assignments removed."
    )


def register_cli(app: Flask) -> None:
    app.cli.add_command(init_db_command)
    app.cli.add_command(participants_cli)
    app.cli.add_command(sorteo_cli)
