# utils/auth_sidebar.py
from typing import Iterable

import streamlit as st
from sqlalchemy.engine import Engine

from domain.errors import ForumError
from domain.models import User
from services import auth_service, users_service
from utils.session_cache import drop_user, get_user, put_user

__all__ = [
    "render_auth_in_sidebar", "current_user", "refresh_current_user",
    "require_participant", "require_staff_or_admin", "require_admin",
]

_ROLE_LABEL = {"admin": "Admin", "staff": "Staff", "participant": "Participant"}

# --------------------------------------------------------------------
# No form: avoids the "Press Enter to submit" hint
# --------------------------------------------------------------------

def current_user() -> User | None:
    return get_user()


def refresh_current_user(engine: Engine) -> User | None:
    """Reload the signed-in row so check-in / eligibility flags are fresh."""
    user = get_user()
    if user is None:
        return None
    fresh = users_service.get_user_by_email(engine, user.email)
    if fresh is None:
        drop_user()
        return None
    put_user(fresh)
    return fresh


def render_auth_in_sidebar(engine: Engine) -> None:
    with st.sidebar:
        st.subheader("Login")

        user = get_user()
        if user is not None:
            st.success(f"✅ {user.name} ({_ROLE_LABEL.get(user.role, user.role)})")
            if st.button("🚪 Logout", use_container_width=True):
                drop_user()
                st.rerun()
            return

        email = st.text_input("Email", key="__login_email__", placeholder="name@company.com")
        pwd = st.text_input("Password", key="__login_pass__", type="password", placeholder="Enter password")

        if st.button("Login", use_container_width=True):
            try:
                put_user(auth_service.login(engine, email, pwd))
            except ForumError as e:
                st.error(f"❌ {e.message}")
            else:
                st.rerun()

        st.info("🔐 Participants use the personal password sent by the committee. Lost it? Ask the help desk.")


def _require(allowed: Iterable[str]) -> User:
    try:
        return auth_service.require_role(get_user(), allowed)
    except ForumError as e:
        st.error(e.message)
        st.stop()


def require_participant() -> User:
    return _require(("participant",))


def require_staff_or_admin() -> User:
    return _require(("staff", "admin"))


def require_admin() -> User:
    return _require(("admin",))
