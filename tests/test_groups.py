import pytest

from domain.errors import ConflictError, NotFoundError, RuleViolation
from services import groups_service


def test_create_group_with_partner(engine, offline, make_participant):
    partner = make_participant("offline", "United Tractors", checked_in=True)
    g = groups_service.create_group(engine, offline.id, "  Fleet Fixers ", [partner.id])
    assert g.name == "Fleet Fixers"
    assert not g.is_submitted

    d = groups_service.get_group_with_details(engine, g.id)
    assert d.creator.id == offline.id
    assert {p.id for p in d.participants} == {offline.id, partner.id}
    assert groups_service.group_member_count(engine, g.id) == 2
    assert [x.id for x in groups_service.participant_groups(engine, partner.id)] == [g.id]


def test_group_name_and_size(engine, offline, make_participant):
    a = make_participant("offline", "United Tractors", checked_in=True)
    b = make_participant("offline", "Astra Agro Lestari", checked_in=True)
    with pytest.raises(RuleViolation, match="at least"):
        groups_service.create_group(engine, offline.id, "ab")
    with pytest.raises(RuleViolation, match="at most"):
        groups_service.create_group(engine, offline.id, "Too Many", [a.id, b.id])


def test_creator_listed_as_member_is_ignored(engine, offline):
    g = groups_service.create_group(engine, offline.id, "Solo Start", [offline.id, offline.id])
    assert groups_service.group_member_count(engine, g.id) == 1


def test_creator_must_be_offline_and_checked_in(engine, online, make_participant):
    with pytest.raises(RuleViolation, match="offline"):
        groups_service.create_group(engine, online.id, "Remote Team")
    late = make_participant("offline")
    with pytest.raises(RuleViolation, match="check in"):
        groups_service.create_group(engine, late.id, "Late Team")


def test_members_from_same_company_rejected(engine, offline, make_participant):
    colleague = make_participant("offline", "astra international", checked_in=True)
    with pytest.raises(RuleViolation, match="different companies"):
        groups_service.create_group(engine, offline.id, "Same Co", [colleague.id])


def test_member_without_company_allowed(engine, offline, make_participant):
    freelancer = make_participant("offline", None, checked_in=True)
    g = groups_service.create_group(engine, offline.id, "Mixed", [freelancer.id])
    assert groups_service.group_member_count(engine, g.id) == 2


def test_missing_member(engine, offline):
    with pytest.raises(NotFoundError):
        groups_service.create_group(engine, offline.id, "Ghosts", ["missing-id"])


def test_invite_rules(engine, offline, make_participant, online):
    g = groups_service.create_group(engine, offline.id, "Invitees")
    not_here = make_participant("offline", "United Tractors")
    with pytest.raises(RuleViolation, match="checked in"):
        groups_service.invite_to_group(engine, g.id, not_here.id)
    with pytest.raises(RuleViolation, match="offline"):
        groups_service.invite_to_group(engine, g.id, online.id)
    with pytest.raises(ConflictError):
        groups_service.invite_to_group(engine, g.id, offline.id)

    ok = make_participant("offline", "United Tractors", checked_in=True)
    groups_service.invite_to_group(engine, g.id, ok.id)
    extra = make_participant("offline", "Astra Financial", checked_in=True)
    with pytest.raises(RuleViolation, match="at most"):
        groups_service.invite_to_group(engine, g.id, extra.id)


def test_leave_group(engine, offline, make_participant):
    partner = make_participant("offline", "United Tractors", checked_in=True)
    g = groups_service.create_group(engine, offline.id, "Leavers", [partner.id])
    with pytest.raises(RuleViolation, match="creator"):
        groups_service.leave_group(engine, g.id, offline.id)
    groups_service.leave_group(engine, g.id, partner.id)
    assert groups_service.group_member_count(engine, g.id) == 1
    with pytest.raises(NotFoundError):
        groups_service.leave_group(engine, g.id, partner.id)


def test_update_group_name(engine, offline):
    g = groups_service.create_group(engine, offline.id, "Old Name")
    assert groups_service.update_group(engine, g.id, "New Name").name == "New Name"
    with pytest.raises(NotFoundError):
        groups_service.update_group(engine, "missing", "Whatever")


def test_available_participants(engine, offline, online, make_participant):
    ut = make_participant("offline", "United Tractors", name="Umar", checked_in=True)
    nocomp = make_participant("offline", None, name="Nadia", checked_in=True)
    make_participant("offline", "United Tractors", name="Not Arrived")

    everyone = groups_service.available_participants(engine)
    assert [p.name for p in everyone] == ["Nadia", "Oscar Offline", "Umar"]

    other = groups_service.available_participants(engine, exclude_company="ASTRA INTERNATIONAL")
    assert {p.id for p in other} == {ut.id, nocomp.id}

    assert [p.id for p in groups_service.available_participants(engine, search="tractors")] == [ut.id]
