from typing import Optional

import streamlit as st

from domain.models import User

def put_user(user: User):
    st.session_state["current_user"] = user

def get_user() -> Optional[User]:
    return st.session_state.get("current_user")

def drop_user():
    st.session_state.pop("current_user", None)
    st.session_state.pop("qr_bytes", None)

def put_qr_bytes(participant_id: str, data: bytes):
    st.session_state.setdefault("qr_bytes", {})[participant_id] = data

def get_qr_bytes(participant_id: str) -> bytes | None:
    return (st.session_state.get("qr_bytes") or {}).get(participant_id)
