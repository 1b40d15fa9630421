# pages/4_Staff_Checkin.py — registration desk: QR scan (handheld scanner) or manual lookup
import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Check-in Desk")

from domain.errors import ForumError
from domain.models import UserFilters
from services import checkin_service, users_service
from utils.auth_sidebar import render_auth_in_sidebar, require_staff_or_admin
from utils.db import get_engine
from utils.qr_utils import parse_scanned_text

engine = get_engine()
render_auth_in_sidebar(engine)
staff = require_staff_or_admin()

st.title("📷 Check-in Desk")

toast = st.session_state.pop("desk_toast", None)
if toast:
    msg, level = toast
    getattr(st, level)(msg)


def _checkin(participant_id: str, method: str):
    try:
        u = checkin_service.checkin_event(engine, participant_id, method, staff_id=staff.id)
    except ForumError as e:
        st.session_state["desk_toast"] = (f"❌ {e.message}", "error")
    else:
        st.session_state["desk_toast"] = (f"✅ Welcome, {u.name}! ({u.participant_type})", "success")
    st.session_state["desk_scan_nonce"] = st.session_state.get("desk_scan_nonce", 0) + 1
    st.rerun()


# ── Scan ──────────────────────────────────────────────────────
section_header("🔎 Scan participant QR")
st.caption("Focus the box and scan; handheld scanners type the code and press Enter.")
nonce = st.session_state.get("desk_scan_nonce", 0)
scanned = st.text_input("Scanned code", key=f"desk_scan_{nonce}")

if scanned:
    pid = parse_scanned_text(scanned)
    if not pid:
        st.error("QR code is not valid. Make sure you scan the participant's event QR.")
    else:
        try:
            p = users_service.get_user(engine, pid)
        except ForumError as e:
            st.error(e.message)
        else:
            with st.container(border=True):
                st.markdown(f"### {p.name}")
                st.caption(f"{p.email} · {p.participant_type or '-'} · {p.company or 'No company'}")
                if p.is_checked_in:
                    st.warning(f"Already checked in at {p.event_checkin_time:%H:%M}" if p.event_checkin_time
                               else "Already checked in")
                elif st.button("✅ Confirm check-in", type="primary"):
                    _checkin(p.id, "qr")

# ── Manual lookup ─────────────────────────────────────────────
section_header("⌨️ Manual check-in")
q = st.text_input("Search by name or email", key="desk_search")
if q and len(q.strip()) >= 2:
    page = users_service.list_users(engine, page=1, limit=25, filters=UserFilters(search=q))
    if not page.items:
        st.info("No participant found.")
    for p in page.items:
        c1, c2 = st.columns([4, 1])
        c1.markdown(f"**{p.name}** · {p.email} · {p.participant_type or '-'} · {p.company or ''}")
        if p.is_checked_in:
            c2.success("Checked in")
        elif c2.button("Check in", key=f"desk_manual_{p.id}"):
            _checkin(p.id, "manual")
