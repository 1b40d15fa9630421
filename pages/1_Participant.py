# pages/1_Participant.py — participant pass: QR, check-in status, booth progress
import time

import streamlit as st

from utils.styling import page_setup, section_header

page_setup("My Pass", layout="centered")

from domain.errors import ForumError
from services import checkin_service, events_service
from utils.auth_sidebar import render_auth_in_sidebar, require_participant, refresh_current_user
from utils.db import get_engine
from utils.qr_utils import build_participant_payload, qr_png_bytes
from utils.session_cache import get_qr_bytes, put_qr_bytes

engine = get_engine()
render_auth_in_sidebar(engine)
require_participant()
user = refresh_current_user(engine)
if user is None:
    st.stop()

st.title(f"👋 Hi, {user.name}")
st.caption(f"{user.email} · {user.participant_type or '-'} participant · {user.company or ''}")

toast = st.session_state.pop("participant_toast", None)
if toast:
    st.success(toast)

event_active = events_service.is_event_active(engine)

# ── Before check-in ───────────────────────────────────────────
if not user.is_checked_in:
    if user.participant_type == "offline":
        section_header("🪪 Show this QR at the registration desk")
        png = get_qr_bytes(user.id)
        if png is None:
            png = qr_png_bytes(build_participant_payload(user.id, user.name))
            put_qr_bytes(user.id, png)
        st.image(png, width=280)
        st.download_button("⬇️ Download QR", data=png, file_name=f"expert-forum-{user.id}.png", mime="image/png")
        if st.button("🔄 I have been scanned"):
            st.rerun()
    else:
        section_header("💻 Online check-in")
        if not event_active:
            st.info("⏳ Check-in opens when the event starts. Please come back later.")
            if st.toggle("Auto-refresh every 30s", key="pp_wait_refresh"):
                time.sleep(30)
                st.rerun()
        elif st.button("✅ Check in now", type="primary"):
            try:
                checkin_service.checkin_event(engine, user.id, "manual")
            except ForumError as e:
                st.error(e.message)
            else:
                st.session_state["participant_toast"] = "You're checked in. Enjoy the forum!"
                st.rerun()
    st.stop()

# ── After check-in ────────────────────────────────────────────
st.success(f"✅ Checked in at {user.event_checkin_time:%d/%m/%Y %H:%M}" if user.event_checkin_time else "✅ Checked in")

if user.participant_type == "online":
    zoom = events_service.get_zoom_meeting_url(engine)
    if zoom:
        st.link_button("🎥 Join the Zoom session", zoom)

section_header("🏛️ Booth progress")
progress = checkin_service.get_progress(engine, user.id)
c1, c2 = st.columns(2)
c1.metric("Booths visited", f"{progress.visited} / {progress.threshold}")
c2.metric("Lucky draw", "Eligible 🎟️" if progress.is_eligible else f"{progress.remaining} more to go")
st.progress(progress.ratio)

if progress.is_eligible:
    st.info("You're in the lucky draw. Stay around for the announcement!")

st.page_link("pages/2_Booths.py", label="Go to booths", icon="🏛️")
