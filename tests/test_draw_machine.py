import random

import pytest

from domain.errors import RuleViolation
from domain.models import PrizeTemplate, User
from services.draw_machine import COMPLETE, DRAWING, IDLE, REVEALING, DrawMachine


def people(n):
    return [User(id=str(i), name=f"Person {i}", email=f"p{i}@example.com", role="participant") for i in range(n)]


def machine(slots=3, n=5):
    return DrawMachine(PrizeTemplate(id="major", name="Major Prize", slot_count=slots), people(n), random.Random(1))


def test_full_reveal_flow():
    m = machine()
    assert m.state == IDLE
    slots = m.start()
    assert m.state == DRAWING
    assert [s.slot_number for s in slots] == [1, 2, 3]
    assert len({s.winner.id for s in slots}) == 3

    frame = m.tick()
    assert set(frame) == {1, 2, 3}

    m.stop_shuffle()
    assert m.state == REVEALING
    first = m.reveal_next()
    assert first.slot_number == 1 and first.is_revealed
    assert m.tick()[1] is first.winner
    m.reveal_next()
    m.reveal_next()
    assert m.state == COMPLETE
    assert m.revealed_count == 3
    assert [w.id for w in m.winners()] == [s.winner.id for s in m.slots]


def test_slots_capped_by_candidates():
    m = machine(slots=10, n=4)
    assert len(m.start()) == 4


def test_reveal_all_from_drawing():
    m = machine()
    m.start()
    m.reveal_all()
    assert m.state == COMPLETE
    assert len(m.winners()) == 3


def test_illegal_transitions():
    m = machine()
    with pytest.raises(RuleViolation):
        m.tick()
    with pytest.raises(RuleViolation):
        m.reveal_next()
    with pytest.raises(RuleViolation):
        m.winners()
    m.start()
    with pytest.raises(RuleViolation):
        m.start()
    with pytest.raises(RuleViolation):
        m.reveal_next()


def test_no_candidates():
    m = DrawMachine(PrizeTemplate(id="grand", name="Grand Prize", slot_count=1), [])
    with pytest.raises(RuleViolation, match="No eligible"):
        m.start()


def test_reset_returns_to_idle():
    m = machine()
    m.start()
    m.reveal_all()
    m.reset(people(2))
    assert m.state == IDLE
    assert m.slots == []
    assert len(m.start()) == 2
