import pytest
from sqlalchemy import text

import config
from domain.errors import AuthError, NotFoundError, PermissionDenied
from domain.models import CreateUserInput
from services import auth_service, users_service
from utils import passwords


@pytest.fixture(autouse=True)
def role_passwords(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "admin-secret")
    monkeypatch.setattr(config, "STAFF_PASSWORD", "staff-secret")


def register(engine, name, email, ptype="offline"):
    return users_service.create_user(engine, CreateUserInput(name=name, email=email, participant_type=ptype))


def test_participant_login_with_own_password(engine):
    alice, cred = register(engine, "Alice", "alice@example.com")
    u = auth_service.login(engine, "  ALICE@example.com ", cred.password)
    assert u.id == alice.id


def test_password_of_one_participant_does_not_open_another(engine):
    _, alice_cred = register(engine, "Alice", "alice@example.com")
    bob, bob_cred = register(engine, "Bob", "bob@example.com", "online")

    with pytest.raises(AuthError, match="Incorrect"):
        auth_service.login(engine, bob.email, alice_cred.password)
    with pytest.raises(AuthError, match="Incorrect"):
        auth_service.login(engine, bob.email, "expertforum2025")
    assert auth_service.login(engine, bob.email, bob_cred.password).id == bob.id


def test_stored_password_is_hashed(engine):
    alice, cred = register(engine, "Alice", "alice@example.com")
    stored = users_service.password_hash_for(engine, alice.id)
    assert stored and stored != cred.password
    assert passwords.verify_password(cred.password, stored)


def test_participant_without_password_cannot_login(engine):
    alice, _ = register(engine, "Alice", "alice@example.com")
    with engine.begin() as conn:
        conn.execute(text("UPDATE users SET password_hash = NULL WHERE id = :id"), {"id": alice.id})
    with pytest.raises(AuthError, match="Incorrect"):
        auth_service.login(engine, alice.email, "")


def test_reset_password_replaces_old_one(engine):
    alice, old = register(engine, "Alice", "alice@example.com")
    new = users_service.reset_password(engine, alice.id)
    assert new.email == alice.email
    with pytest.raises(AuthError):
        auth_service.login(engine, alice.email, old.password)
    assert auth_service.login(engine, alice.email, new.password).id == alice.id


def test_reset_password_is_for_participants(engine, staff):
    with pytest.raises(NotFoundError):
        users_service.reset_password(engine, staff.id)


def test_staff_login_uses_staff_password(engine, staff):
    assert auth_service.login(engine, staff.email, "staff-secret").role == "staff"
    with pytest.raises(AuthError, match="Incorrect"):
        auth_service.login(engine, staff.email, "admin-secret")


def test_login_failures(engine, make_participant):
    p = make_participant()
    with pytest.raises(AuthError, match="required"):
        auth_service.login(engine, "   ", "x")
    with pytest.raises(AuthError, match="not registered"):
        auth_service.login(engine, "ghost@example.com", "whatever")
    with pytest.raises(AuthError, match="Incorrect"):
        auth_service.login(engine, p.email, "wrong")


def test_unset_role_password_refuses_login(engine, staff, monkeypatch):
    monkeypatch.setattr(config, "STAFF_PASSWORD", None)
    with pytest.raises(AuthError):
        auth_service.login(engine, staff.email, "")


def test_require_role(staff, make_participant):
    assert auth_service.require_role(staff, ("staff", "admin")) is staff
    with pytest.raises(PermissionDenied):
        auth_service.require_role(make_participant(), ("staff", "admin"))
    with pytest.raises(AuthError):
        auth_service.require_role(None, ("participant",))


def test_role_for_email(monkeypatch):
    monkeypatch.setattr(config, "ADMIN_EMAILS", ["a@x.com"])
    monkeypatch.setattr(config, "STAFF_EMAILS", ["s@x.com"])
    assert auth_service.role_for_email(" A@X.com ") == "admin"
    assert auth_service.role_for_email("s@x.com") == "staff"
    assert auth_service.role_for_email("p@x.com") == "participant"


def test_requires_password():
    assert auth_service.requires_password(" someone@example.com ")
    assert not auth_service.requires_password("   ")


def test_generated_passwords_are_unambiguous():
    for _ in range(50):
        pw = passwords.generate_password()
        assert len(pw) == config.PASSWORD_LENGTH
        assert set(pw) <= set(passwords.ALPHABET)
        assert any(c in passwords.UPPER for c in pw)
        assert any(c in passwords.LOWER for c in pw)
        assert any(c in passwords.DIGITS for c in pw)
        assert not set(pw) & set("0O1lI")


def test_verify_password_rejects_blank_input():
    h = passwords.hash_password("Ab3defgh")
    assert passwords.verify_password("Ab3defgh", h)
    assert not passwords.verify_password("ab3defgh", h)
    assert not passwords.verify_password("", h)
    assert not passwords.verify_password("Ab3defgh", None)
    assert not passwords.verify_password("x" * 100, h)
