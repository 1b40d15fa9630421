import random

import pytest

from domain.errors import NotFoundError, RuleViolation
from domain.models import Booth
from services import booths_service, events_service


def test_no_event_defaults(engine):
    with pytest.raises(NotFoundError):
        events_service.get_event(engine)
    assert events_service.is_event_active(engine) is False
    assert events_service.get_zoom_meeting_url(engine) is None
    assert events_service.get_voting_state(engine) == (False, False)


def test_single_event_row(engine):
    first = events_service.create_or_update_event(engine, "Forum", "2025-11-20")
    second = events_service.create_or_update_event(
        engine, "Expert Forum", "2025-11-21", is_active=True, zoom_meeting_url="https://zoom.us/j/1",
    )
    assert second.id == first.id
    assert second.name == "Expert Forum"
    assert events_service.is_event_active(engine)
    assert events_service.get_zoom_meeting_url(engine) == "https://zoom.us/j/1"


def test_voting_switch(engine, event):
    assert events_service.set_votes_open(engine, event.id, True).is_votes_open
    assert events_service.get_voting_state(engine) == (True, False)
    with pytest.raises(NotFoundError):
        events_service.set_votes_open(engine, "missing", True)


def test_list_booths_by_order_and_type(engine, booths):
    assert [b.name for b in booths_service.list_booths(engine)][:4] == ["Alpha", "Bravo", "Charlie", "Delta"]
    online = {b.name for b in booths_service.list_booths(engine, "online")}
    offline = {b.name for b in booths_service.list_booths(engine, "offline")}
    assert "Hall Demo" not in online and "Online Lab" in online
    assert "Online Lab" not in offline and "Hall Demo" in offline


def test_upsert_booth_by_name(engine, booths):
    b = booths_service.upsert_booth(engine, "Alpha", questions=["New question?", "  "], order=1)
    assert b.id == booths["Alpha"].id
    assert booths_service.get_booth(engine, b.id).questions == ["New question?"]
    with pytest.raises(RuleViolation):
        booths_service.upsert_booth(engine, "Both", is_online_only=True, is_offline_only=True)
    with pytest.raises(NotFoundError):
        booths_service.get_booth(engine, "missing")


def test_random_question():
    booth = Booth(id="1", name="Alpha", questions=["a?", "b?"])
    assert booths_service.random_question(booth, random.Random(3)) in booth.questions
    with pytest.raises(RuleViolation):
        booths_service.random_question(Booth(id="2", name="Empty"))
