from types import SimpleNamespace

import pytest

from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import CreateUserInput, UpdateUserInput, UserFilters
from services import checkin_service, groups_service, stats_service, users_service


def test_create_user_normalises(engine):
    u, cred = users_service.create_user(engine, CreateUserInput(
        name="  Dewi  ", email=" Dewi@Example.COM ", participant_type="Offline", company="  ",
    ))
    assert u.name == "Dewi"
    assert u.email == "dewi@example.com"
    assert u.participant_type == "offline"
    assert u.company is None
    assert u.role == "participant"
    assert not u.is_checked_in
    assert cred.email == "dewi@example.com"
    assert len(cred.password) == 8


@pytest.mark.parametrize("data", [
    CreateUserInput(name="", email="a@example.com", participant_type="online"),
    CreateUserInput(name="A", email="not-an-email", participant_type="online"),
    CreateUserInput(name="A", email="a@example.com", participant_type="hybrid"),
])
def test_create_user_validation(engine, data):
    with pytest.raises(RuleViolation):
        users_service.create_user(engine, data)


def test_duplicate_email(engine, make_participant):
    p = make_participant()
    with pytest.raises(ConflictError):
        users_service.create_user(engine, CreateUserInput(name="X", email=p.email.upper(), participant_type="online"))


def test_update_user(engine, make_participant):
    a, b = make_participant(), make_participant()
    u = users_service.update_user(engine, a.id, UpdateUserInput(name="Renamed", division="Digital"))
    assert u.name == "Renamed"
    assert u.division == "Digital"
    assert u.email == a.email
    with pytest.raises(ConflictError):
        users_service.update_user(engine, a.id, UpdateUserInput(email=b.email))
    with pytest.raises(NotFoundError):
        users_service.update_user(engine, "missing", UpdateUserInput(name="X"))


def test_list_users_filters_and_pages(engine, staff, make_participant):
    for i in range(12):
        make_participant("offline" if i % 2 else "online", checked_in=i < 3)

    page = users_service.list_users(engine, page=1, limit=10)
    assert page.total == 12
    assert len(page.items) == 10
    assert page.total_pages == 2
    assert all(u.role == "participant" for u in page.items)
    assert len(users_service.list_users(engine, page=2, limit=10).items) == 2

    assert users_service.list_users(engine, limit=7).limit == 10
    assert users_service.list_users(engine, filters=UserFilters(participant_type="online")).total == 6
    assert users_service.list_users(engine, filters=UserFilters(is_checked_in=True)).total == 3
    assert users_service.list_users(engine, filters=UserFilters(search="P5@EXAMPLE")).total == 1


def test_empty_listing_has_no_pages(engine, staff):
    page = users_service.list_users(engine, page=1, limit=10)
    assert page.total == 0
    assert page.items == []
    assert page.total_pages == 0


def test_companies(engine, make_participant):
    make_participant(company="United Tractors")
    make_participant(company="Astra Infra")
    make_participant(company="United Tractors")
    make_participant(company=None)
    assert users_service.companies(engine) == ["Astra Infra", "United Tractors"]


def test_delete_user_rules(engine, offline, make_participant):
    with pytest.raises(RuleViolation, match="checked in"):
        users_service.delete_user(engine, offline.id)

    fresh = make_participant()
    users_service.delete_user(engine, fresh.id)
    with pytest.raises(NotFoundError):
        users_service.get_user(engine, fresh.id)


def test_user_detail(engine, event, booths, offline, make_participant):
    partner = make_participant("offline", "United Tractors", checked_in=True)
    checkin_service.checkin_booth(engine, offline.id, booths["Alpha"].id, "A thoughtful answer about parts.")
    groups_service.create_group(engine, offline.id, "Detail Team", [partner.id])

    d = users_service.get_user_detail(engine, offline.id)
    assert d.user.id == offline.id
    assert [c.booth.name for c in d.booth_checkins] == ["Alpha"]
    assert [g.group.name for g in d.groups] == ["Detail Team"]
    assert d.votes == []


def test_staff_accounts(engine, monkeypatch):
    monkeypatch.setattr("config.ADMIN_EMAILS", ["boss@expert-forum.com"])
    admin = users_service.create_staff_user(engine, "Boss", "Boss@Expert-Forum.com")
    assert admin.role == "admin"
    assert users_service.create_staff_user(engine, "Boss again", "boss@expert-forum.com").id == admin.id
    with pytest.raises(RuleViolation):
        users_service.create_staff_user(engine, "Nobody", "nobody@example.com")


def test_stats(engine, event, offline, online, make_participant):
    make_participant("offline", eligible=True, checked_in=True)
    s = stats_service.get_stats(engine)
    assert s.total_participants == 3
    assert s.total_offline == 2
    assert s.total_online == 1
    assert s.checked_in == 2
    assert s.checked_in_offline == 2
    assert s.eligible_for_draw == 1
    assert s.submissions == 0


class _RecordingConn:
    def __init__(self, dialect):
        self.dialect = SimpleNamespace(name=dialect)
        self.calls = []

    def execute(self, stmt, params):
        self.calls.append((str(stmt), params))
        return SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: params["ids"]))


def test_lock_users_locks_in_id_order_on_postgres():
    conn = _RecordingConn("postgresql")
    assert users_service.lock_users(conn, ["b", "a", "b"]) == ["a", "b"]
    sql, params = conn.calls[0]
    assert sql.rstrip().endswith("FOR UPDATE")
    assert "ORDER BY id ASC" in sql
    assert params == {"ids": ["a", "b"]}


def test_lock_users_plain_select_on_sqlite(engine, make_participant):
    a, b = make_participant(), make_participant()
    with engine.begin() as conn:
        assert users_service.lock_users(conn, [b.id, a.id]) == sorted([a.id, b.id])
        assert users_service.lock_users(conn, []) == []
