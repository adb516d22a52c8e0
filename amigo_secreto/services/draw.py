from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence

from flask import current_app

from ..errors import DrawAlreadyCompleted, InsufficientParticipants, ValidationError
from ..models import Assignment, Draw, Participant
from ..store import get_store, with_storage_retry

STRATEGY_CYCLE = "cycle"
STRATEGY_UNIFORM = "uniform"
STRATEGIES = (STRATEGY_CYCLE, STRATEGY_UNIFORM)


@dataclass(frozen=True)
class DrawResult:
    draw: Draw
    assignments: list[Assignment]


@dataclass(frozen=True)
class ResetResult:
    participants_cleared: int
    assignments_removed: int


def cycle_derangement(ids: Sequence[int], rng: random.Random) -> list[tuple[int, int]]:
    """
    Shuffle once and hand each person the next one in the circle.

    Always a derangement for n >= 2, but only ever a single cycle.
    """
    order = list(ids)
    rng.shuffle(order)
    n = len(order)
    return [(order[i], order[(i + 1) % n]) for i in range(n)]


def uniform_derangement(ids: Sequence[int], rng: random.Random) -> list[tuple[int, int]]:
    """Rejection sampling: reshuffle until nobody draws themselves."""
    givers = list(ids)
    recipients = givers[:]
    while True:
        rng.shuffle(recipients)
        if all(a != b for a, b in zip(givers, recipients)):
            break
    return list(zip(givers, recipients))


def build_pairs(ids: Sequence[int], strategy: str, rng: random.Random) -> list[tuple[int, int]]:
    if len(ids) < 2:
        raise InsufficientParticipants()
    if len(set(ids)) != len(ids):
        raise ValidationError("Participantes duplicados en el sorteo")
    if strategy == STRATEGY_UNIFORM:
        return uniform_derangement(ids, rng)
    if strategy == STRATEGY_CYCLE:
        return cycle_derangement(ids, rng)
    raise ValueError(f"Unknown draw strategy: {strategy!r}")


@with_storage_retry
def current_draw() -> Draw:
    store = get_store()
    with store.transaction():
        return store.draws.current()


@with_storage_retry
def perform_draw(
    participants: Sequence[Participant] | None = None,
    strategy: str | None = None,
    rng: random.Random | None = None,
) -> DrawResult:
    """
    Assign every active participant a recipient and lock the draw.

    Raises InsufficientParticipants with fewer than two people and
    DrawAlreadyCompleted if a completed draw exists; nothing is written in
    either case.
    """
    store = get_store()
    strategy = strategy or current_app.config.get("DRAW_STRATEGY") or STRATEGY_CYCLE
    rng = rng or random.SystemRandom()

    with store.draw_lock, store.transaction():
        draw = store.draws.current()
        if draw.is_completed:
            raise DrawAlreadyCompleted()

        people = list(participants) if participants is not None else store.participants.list_active()
        ids = [p.id for p in people]
        pairs = build_pairs(ids, strategy, rng)

        # Another process may have completed the draw since we read it.
        if not store.draws.mark_completed(draw):
            raise DrawAlreadyCompleted()

        rows = store.assignments.add_many(draw, pairs)

    current_app.logger.info(
        "Draw %s completed: %d assignments (%s strategy)", draw.id, len(rows), strategy
    )
    return DrawResult(draw=draw, assignments=rows)


@with_storage_retry
def reset_draw() -> ResetResult:
    """Drop the current draw's assignments and reopen it. Safe to repeat."""
    store = get_store()
    with store.draw_lock, store.transaction():
        draw = store.draws.find()
        if draw is None or (not draw.is_completed and store.assignments.count(draw.id) == 0):
            return ResetResult(participants_cleared=0, assignments_removed=0)

        cleared, removed = store.assignments.delete_for_draw(draw.id)
        store.draws.mark_pending(draw)

    current_app.logger.info("Draw %s reset: %d assignments removed", draw.id, removed)
    return ResetResult(participants_cleared=cleared, assignments_removed=removed)


@with_storage_retry
def assigned_giver_ids() -> set[int]:
    """Who holds an assignment in the current draw (without saying to whom)."""
    store = get_store()
    with store.transaction():
        draw = store.draws.current()
    if not draw.is_completed:
        return set()
    return store.assignments.giver_ids(draw.id)
