# services/auth_service.py
import hmac
import logging
from typing import Iterable, Optional

from sqlalchemy.engine import Engine

import config
from domain.errors import AuthError, PermissionDenied
from domain.models import User
from services.users_service import get_user_by_email, normalize_email, password_hash_for, role_for_email
from utils.passwords import verify_password

log = logging.getLogger(__name__)

__all__ = ["login", "require_role", "requires_password", "password_for_role", "role_for_email"]


def password_for_role(role: str) -> Optional[str]:
    """Shared password for back-office roles; participants have their own."""
    return {
        "admin": config.ADMIN_PASSWORD,
        "staff": config.STAFF_PASSWORD,
    }.get(role)


def requires_password(email: str) -> bool:
    """Every account signs in with email + password; kept as a hook for the login form."""
    return bool(normalize_email(email))


def _password_ok(engine: Engine, user: User, password: str) -> bool:
    if user.is_participant:
        return verify_password(password, password_hash_for(engine, user.id))
    expected = password_for_role(user.role)
    return bool(expected) and hmac.compare_digest(
        (password or "").encode("utf-8"), expected.encode("utf-8")
    )


def login(engine: Engine, email: str, password: str) -> User:
    email = normalize_email(email)
    if not email:
        raise AuthError("Email is required")

    user = get_user_by_email(engine, email)
    if not user:
        log.warning("login refused for unknown email %s", email)
        raise AuthError("Email is not registered for this event")

    if not _password_ok(engine, user, password):
        log.warning("login refused for %s: wrong password", email)
        raise AuthError("Incorrect password")

    log.info("login %s (%s)", email, user.role)
    return user


def require_role(user: Optional[User], allowed: Iterable[str]) -> User:
    allowed = tuple(allowed)
    if user is None:
        raise AuthError("Please sign in first")
    if user.role not in allowed:
        raise PermissionDenied(f"This page is for {' / '.join(allowed)} accounts only")
    return user
