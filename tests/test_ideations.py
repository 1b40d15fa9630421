import pytest

from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import IdeationInput
from services import groups_service, ideations_service

DESCRIPTION = "Predictive maintenance for haul trucks using telemetry already collected on site."


def idea(case="United Tractors", title="Smart Fleet Care"):
    return IdeationInput(title=title, description=DESCRIPTION, company_case=case)


@pytest.fixture
def pair(engine, offline, make_participant):
    partner = make_participant("offline", "United Tractors", name="Paula Partner", checked_in=True)
    g = groups_service.create_group(engine, offline.id, "Pair One", [partner.id])
    return g, partner


def test_individual_ideation(engine, online):
    i = ideations_service.create_individual_ideation(engine, online.id, idea())
    assert not i.is_group
    assert i.group_id is None
    assert i.creator_id == online.id
    assert ideations_service.existing_company_cases(engine, online.id) == ["United Tractors"]
    assert [x.id for x in ideations_service.ideations_by_creator(engine, online.id)] == [i.id]


def test_individual_ideation_once_per_case(engine, online):
    ideations_service.create_individual_ideation(engine, online.id, idea())
    with pytest.raises(ConflictError):
        ideations_service.create_individual_ideation(engine, online.id, idea(title="Another Fleet Idea"))
    ideations_service.create_individual_ideation(engine, online.id, idea(case="Astra Infra"))
    assert len(ideations_service.list_ideations(engine, is_group=False)) == 2


def test_individual_ideation_is_for_online(engine, offline):
    with pytest.raises(RuleViolation, match="online"):
        ideations_service.create_individual_ideation(engine, offline.id, idea())


@pytest.mark.parametrize("data,match", [
    (IdeationInput(title="Short", description=DESCRIPTION, company_case="Astra Infra"), "Title"),
    (IdeationInput(title="Long enough title", description="too short", company_case="Astra Infra"), "Description"),
    (IdeationInput(title="Long enough title", description=DESCRIPTION, company_case="Acme"), "company case"),
])
def test_ideation_input_validation(engine, online, data, match):
    with pytest.raises(RuleViolation, match=match):
        ideations_service.create_individual_ideation(engine, online.id, data)


def test_group_ideation_closes_group(engine, offline, pair):
    g, partner = pair
    i = ideations_service.create_group_ideation(engine, g.id, partner.id, idea())
    assert i.is_group
    assert i.group_id == g.id
    assert i.creator_id == offline.id

    d = groups_service.get_group_with_details(engine, g.id)
    assert d.group.is_submitted
    assert d.ideation.id == i.id

    with pytest.raises(ConflictError):
        ideations_service.create_group_ideation(engine, g.id, offline.id, idea())
    with pytest.raises(RuleViolation):
        groups_service.invite_to_group(engine, g.id, partner.id)
    with pytest.raises(RuleViolation):
        groups_service.leave_group(engine, g.id, partner.id)

    details = ideations_service.get_ideation_with_details(engine, i.id)
    assert details.group.id == g.id
    assert {p.name for p in details.participants} == {"Oscar Offline", "Paula Partner"}


def test_group_ideation_needs_full_group(engine, offline):
    g = groups_service.create_group(engine, offline.id, "Alone")
    with pytest.raises(RuleViolation, match="members"):
        ideations_service.create_group_ideation(engine, g.id, offline.id, idea())


def test_group_ideation_only_by_members(engine, pair, make_participant):
    g, _ = pair
    outsider = make_participant("offline", "Astra Financial", checked_in=True)
    with pytest.raises(RuleViolation, match="members"):
        ideations_service.create_group_ideation(engine, g.id, outsider.id, idea())
    with pytest.raises(NotFoundError):
        ideations_service.create_group_ideation(engine, "missing", outsider.id, idea())


def test_member_cannot_submit_with_two_groups(engine, offline, pair, make_participant):
    g1, partner = pair
    third = make_participant("offline", "Astra Financial", checked_in=True)
    g2 = groups_service.create_group(engine, third.id, "Pair Two", [partner.id])

    ideations_service.create_group_ideation(engine, g1.id, offline.id, idea())
    with pytest.raises(ConflictError, match="Paula Partner"):
        ideations_service.create_group_ideation(engine, g2.id, third.id, idea(case="Astra Infra"))
    assert not groups_service.get_group(engine, g2.id).is_submitted


def test_group_submission_locks_members_before_exclusivity_check(engine, offline, pair, monkeypatch):
    g, partner = pair
    locked = []
    real_lock = ideations_service.lock_users

    def spy(conn, ids):
        locked.append(sorted(ids))
        return real_lock(conn, ids)

    monkeypatch.setattr(ideations_service, "lock_users", spy)
    ideations_service.create_group_ideation(engine, g.id, offline.id, idea())
    assert locked == [sorted([offline.id, partner.id])]


def test_export_rows(engine, online, offline, pair):
    g, _ = pair
    ideations_service.create_individual_ideation(engine, online.id, idea())
    ideations_service.create_group_ideation(engine, g.id, offline.id, idea(case="Astra Infra"))
    rows = ideations_service.all_ideations_for_export(engine)
    assert len(rows) == 2
    by_kind = {r.ideation.is_group: r for r in rows}
    assert by_kind[False].creator.id == online.id
    assert len(by_kind[True].participants) == 2
