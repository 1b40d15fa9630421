import random

import pytest

from domain.errors import RuleViolation
from services import draws_service


@pytest.fixture
def eligible(make_participant):
    return [make_participant(name=n, checked_in=True, eligible=True) for n in ("Cara", "Adi", "Budi")]


def test_eligible_participants_sorted_by_name(engine, eligible, make_participant):
    make_participant(name="Not Eligible", checked_in=True)
    assert [u.name for u in draws_service.eligible_participants(engine)] == ["Adi", "Budi", "Cara"]


def test_pick_winners_bounds(eligible):
    with pytest.raises(RuleViolation):
        draws_service.pick_winners(eligible, 0)
    with pytest.raises(RuleViolation):
        draws_service.pick_winners(eligible, 11)
    with pytest.raises(RuleViolation, match="Only 3"):
        draws_service.pick_winners(eligible, 4)


def test_pick_winners_is_a_sample_without_replacement(eligible):
    picked = draws_service.pick_winners(eligible, 3, random.Random(7))
    assert sorted(u.id for u in picked) == sorted(u.id for u in eligible)


def test_submit_draw_records_winners(engine, eligible, staff):
    winner = eligible[0]
    dl = draws_service.submit_draw(engine, [winner.id], staff_id=staff.id,
                                   prize_template="grand", prize_name="Grand Prize", slot_count=1)
    assert dl.prize_name == "Grand Prize"
    assert dl.slot_count == 1
    assert draws_service.has_participant_won(engine, winner.id)
    assert winner.id not in {u.id for u in draws_service.eligible_participants(engine)}

    d = draws_service.get_draw_log_with_details(engine, dl.id)
    assert [w.id for w in d.winners] == [winner.id]
    assert d.staff.id == staff.id
    assert draws_service.latest_draw_log(engine).log.id == dl.id
    assert draws_service.total_draws(engine) == 1
    assert draws_service.total_winners(engine) == 1

    rows = draws_service.all_winners(engine)
    assert rows[0]["email"] == winner.email
    assert rows[0]["prize_name"] == "Grand Prize"


def test_a_participant_wins_once(engine, eligible):
    draws_service.submit_draw(engine, [eligible[0].id])
    with pytest.raises(RuleViolation, match="1 winner"):
        draws_service.submit_draw(engine, [eligible[0].id, eligible[1].id])
    assert draws_service.total_winners(engine) == 1


def test_submit_draw_input_checks(engine, eligible, make_participant):
    with pytest.raises(RuleViolation, match="No winners"):
        draws_service.submit_draw(engine, [])
    with pytest.raises(RuleViolation, match="twice"):
        draws_service.submit_draw(engine, [eligible[0].id, eligible[0].id])
    outsider = make_participant(checked_in=True)
    with pytest.raises(RuleViolation, match="not eligible"):
        draws_service.submit_draw(engine, [outsider.id])
    assert draws_service.total_draws(engine) == 0


def test_draw_history_newest_first_with_limit(engine, eligible):
    draws_service.submit_draw(engine, [eligible[0].id], prize_name="First")
    draws_service.submit_draw(engine, [eligible[1].id], prize_name="Second")
    history = draws_service.draw_history(engine)
    assert [d.log.prize_name for d in history] == ["Second", "First"]
    assert len(draws_service.draw_history(engine, limit=1)) == 1
    assert draws_service.latest_draw_log(engine).log.prize_name == "Second"
