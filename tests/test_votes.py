import pytest

from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import Booth
from services import events_service, votes_service


@pytest.fixture
def open_voting(engine, event):
    return events_service.set_votes_open(engine, event.id, True)


def test_rank_booths_orders_by_votes_then_name():
    booths = [Booth(id="1", name="bravo"), Booth(id="2", name="Alpha"), Booth(id="3", name="charlie")]
    ranked = votes_service.rank_booths(booths, {"1": 2, "2": 2, "3": 4})
    assert [s.booth.name for s in ranked] == ["charlie", "Alpha", "bravo"]
    assert [s.rank for s in ranked] == [1, 2, 3]
    assert [s.vote_percentage for s in ranked] == [50.0, 25.0, 25.0]


def test_rank_booths_without_votes():
    ranked = votes_service.rank_booths([Booth(id="1", name="B"), Booth(id="2", name="a")], {})
    assert [s.booth.name for s in ranked] == ["a", "B"]
    assert all(s.vote_percentage == 0.0 for s in ranked)


def test_submit_votes(engine, open_voting, booths, offline):
    votes = votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id, booths["Bravo"].id])
    assert {v.booth_id for v in votes} == {booths["Alpha"].id, booths["Bravo"].id}

    mine = votes_service.get_user_votes(engine, offline.id)
    assert {v.booth.name for v in mine} == {"Alpha", "Bravo"}
    assert votes_service.total_voters(engine) == 1
    assert votes_service.booth_vote_counts(engine) == {booths["Alpha"].id: 1, booths["Bravo"].id: 1}


def test_vote_count_and_distinctness(engine, open_voting, booths, offline):
    with pytest.raises(RuleViolation, match="exactly 2"):
        votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id])
    with pytest.raises(RuleViolation, match="different"):
        votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id, booths["Alpha"].id])


def test_vote_once(engine, open_voting, booths, offline):
    votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id, booths["Bravo"].id])
    with pytest.raises(ConflictError):
        votes_service.submit_votes(engine, offline.id, [booths["Charlie"].id, booths["Delta"].id])


def test_vote_for_missing_booth(engine, open_voting, booths, offline):
    with pytest.raises(NotFoundError):
        votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id, "nope"])
    assert votes_service.total_voters(engine) == 0


def test_voting_closed(engine, event, booths, offline):
    with pytest.raises(RuleViolation, match="closed"):
        votes_service.submit_votes(engine, offline.id, [booths["Alpha"].id, booths["Bravo"].id])


def test_final_results_lock_voting(engine, open_voting, booths, staff, make_participant):
    a, b = make_participant(), make_participant()
    votes_service.submit_votes(engine, a.id, [booths["Delta"].id, booths["Bravo"].id])
    votes_service.submit_votes(engine, b.id, [booths["Delta"].id, booths["Alpha"].id])

    results = votes_service.submit_final_results(engine, open_voting.id, staff.id)
    assert results[0].booth.name == "Delta"
    assert results[0].final_vote_count == 2
    assert [r.final_rank for r in results] == list(range(1, len(booths) + 1))
    assert votes_service.has_results(engine, open_voting.id)

    ev = events_service.get_event(engine)
    assert ev.is_votes_lock and not ev.is_votes_open
    with pytest.raises(ConflictError):
        votes_service.submit_final_results(engine, open_voting.id, staff.id)
    with pytest.raises(RuleViolation):
        events_service.set_votes_open(engine, open_voting.id, True)

    c = make_participant()
    with pytest.raises(RuleViolation, match="closed"):
        votes_service.submit_votes(engine, c.id, [booths["Alpha"].id, booths["Bravo"].id])


def test_stats_include_unvoted_booths(engine, open_voting, booths, offline):
    votes_service.submit_votes(engine, offline.id, [booths["Charlie"].id, booths["Bravo"].id])
    stats = votes_service.booth_vote_stats(engine)
    assert len(stats) == len(booths)
    assert [s.booth.name for s in stats[:2]] == ["Bravo", "Charlie"]
    assert stats[0].vote_percentage == 50.0
    assert stats[-1].vote_count == 0
