import random
import threading

import pytest

from amigo_secreto.errors import DrawAlreadyCompleted, InsufficientParticipants, ValidationError
from amigo_secreto.models import Assignment
from amigo_secreto.services.draw import (
    STRATEGY_CYCLE,
    STRATEGY_UNIFORM,
    build_pairs,
    current_draw,
    cycle_derangement,
    perform_draw,
    uniform_derangement,
)
from amigo_secreto.services.participants import deactivate
from amigo_secreto.store import get_store


def _mapping(rows):
    return {row.giver_id: row.recipient_id for row in rows}


def _assert_derangement(mapping, ids):
    assert set(mapping.keys()) == set(ids)
    assert sorted(mapping.values()) == sorted(ids)
    assert all(giver != recipient for giver, recipient in mapping.items())


@pytest.mark.parametrize("strategy", [STRATEGY_CYCLE, STRATEGY_UNIFORM])
@pytest.mark.parametrize("n", [2, 3, 4, 5, 8, 13, 40])
def test_pairs_are_a_derangement(strategy, n):
    ids = list(range(100, 100 + n))
    for seed in range(25):
        pairs = build_pairs(ids, strategy, random.Random(seed))
        assert len(pairs) == n
        _assert_derangement(dict(pairs), ids)


def test_two_people_swap():
    for strategy in (STRATEGY_CYCLE, STRATEGY_UNIFORM):
        assert dict(build_pairs([10, 20], strategy, random.Random(1))) == {10: 20, 20: 10}


def test_cycle_strategy_is_a_single_cycle():
    ids = list(range(1, 10))
    for seed in range(20):
        mapping = dict(cycle_derangement(ids, random.Random(seed)))
        seen = [ids[0]]
        while mapping[seen[-1]] != ids[0]:
            seen.append(mapping[seen[-1]])
        assert len(seen) == len(ids)


def test_uniform_strategy_produces_more_than_single_cycles():
    ids = [1, 2, 3, 4]
    shapes = set()
    for seed in range(200):
        mapping = dict(uniform_derangement(ids, random.Random(seed)))
        shapes.add(mapping[mapping[1]] == 1)
    # Both 2+2 swaps and 4-cycles show up.
    assert shapes == {True, False}


def test_seeded_draws_are_reproducible():
    ids = [1, 2, 3, 4, 5]
    assert build_pairs(ids, STRATEGY_CYCLE, random.Random(7)) == build_pairs(ids, STRATEGY_CYCLE, random.Random(7))


@pytest.mark.parametrize("ids", [[], [1]])
def test_build_pairs_requires_two(ids):
    with pytest.raises(InsufficientParticipants):
        build_pairs(ids, STRATEGY_CYCLE, random.Random())


def test_build_pairs_rejects_duplicates():
    with pytest.raises(ValidationError):
        build_pairs([1, 1, 2], STRATEGY_CYCLE, random.Random())


def test_unknown_strategy():
    with pytest.raises(ValueError):
        build_pairs([1, 2], "roulette", random.Random())


@pytest.mark.parametrize("strategy", [STRATEGY_CYCLE, STRATEGY_UNIFORM])
def test_perform_draw_persists_derangement(app, register, strategy):
    ids = register(*[f"Persona {i}" for i in range(7)])
    with app.app_context():
        result = perform_draw(strategy=strategy, rng=random.Random(3))
        assert result.draw.is_completed
        assert result.draw.completed_at is not None
        _assert_derangement(_mapping(result.assignments), ids)

        stored = Assignment.query.filter_by(draw_id=result.draw.id).all()
        _assert_derangement(_mapping(stored), ids)


def test_recipient_is_not_stored_in_plaintext(app, register):
    register("Ana", "Beto", "Carla")
    with app.app_context():
        rows = perform_draw().assignments
        for row in rows:
            assert row.recipient_token.startswith("gAAAA")
            assert row.recipient_token != str(row.recipient_id)


@pytest.mark.parametrize("names", [(), ("Solo",)])
def test_insufficient_participants_writes_nothing(app, register, names):
    register(*names)
    with app.app_context():
        with pytest.raises(InsufficientParticipants):
            perform_draw()
        assert Assignment.query.count() == 0
        assert not current_draw().is_completed


def test_second_draw_is_rejected_and_leaves_assignments(app, register):
    register("Ana", "Beto", "Carla", "Diego")
    with app.app_context():
        first = _mapping(perform_draw().assignments)
        with pytest.raises(DrawAlreadyCompleted):
            perform_draw()
        assert _mapping(Assignment.query.all()) == first
        assert Assignment.query.count() == 4


def test_admins_and_inactive_participants_are_left_out(app, register):
    ids = register("Ana", "Beto", "Carla")
    (admin_id,) = register("Organizadora", admin=True)
    with app.app_context():
        deactivate(ids[2])
        mapping = _mapping(perform_draw().assignments)
        assert set(mapping) == {ids[0], ids[1]}
        assert admin_id not in mapping.values()


def test_explicit_participant_set(app, register):
    ids = register("Ana", "Beto", "Carla", "Diego")
    with app.app_context():
        store = get_store()
        chosen = [store.participants.get(i) for i in ids[:3]]
        mapping = _mapping(perform_draw(chosen).assignments)
        _assert_derangement(mapping, ids[:3])


def test_concurrent_draws_write_one_mapping(app, register):
    register(*[f"Persona {i}" for i in range(6)])
    with app.app_context():
        current_draw()

    barrier = threading.Barrier(4)
    outcomes = []

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                perform_draw()
                outcomes.append("ok")
            except DrawAlreadyCompleted:
                outcomes.append("rejected")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["ok", "rejected", "rejected", "rejected"]
    with app.app_context():
        assert Assignment.query.count() == 6
