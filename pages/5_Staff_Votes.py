# pages/5_Staff_Votes.py — live booth ranking, voting switch, final results
import time

import pandas as pd
import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Booth Votes")

import config
from domain.errors import ForumError
from services import events_service, votes_service
from utils.auth_sidebar import render_auth_in_sidebar, require_staff_or_admin
from utils.db import get_engine

engine = get_engine()
render_auth_in_sidebar(engine)
staff = require_staff_or_admin()

st.title("🗳️ Booth Votes")

try:
    event = events_service.get_event(engine)
except ForumError as e:
    st.error(e.message)
    st.stop()

toast = st.session_state.pop("votes_toast", None)
if toast:
    st.success(toast)

# ── Voting switch ─────────────────────────────────────────────
c1, c2, c3 = st.columns(3)
c1.metric("Voters", votes_service.total_voters(engine))
c2.metric("Voting", "🔒 Final" if event.is_votes_lock else ("🟢 Open" if event.is_votes_open else "⚪ Closed"))
with c3:
    if not event.is_votes_lock:
        label = "Close voting" if event.is_votes_open else "Open voting"
        if st.button(label, use_container_width=True):
            try:
                events_service.set_votes_open(engine, event.id, not event.is_votes_open)
            except ForumError as e:
                st.error(e.message)
            else:
                st.session_state["votes_toast"] = f"Voting {'closed' if event.is_votes_open else 'opened'}."
                st.rerun()

# ── Final results (locked) ────────────────────────────────────
if event.is_votes_lock:
    section_header("🏆 Final results")
    results = votes_service.get_final_results(engine, event.id)
    st.dataframe(pd.DataFrame([{
        "Rank": r.final_rank,
        "Booth": r.booth.name if r.booth else r.booth_id,
        "Votes": r.final_vote_count,
    } for r in results]), hide_index=True, use_container_width=True)
    st.stop()

# ── Live ranking ──────────────────────────────────────────────
section_header("📊 Live ranking")
stats = votes_service.booth_vote_stats(engine)
df = pd.DataFrame([{
    "Rank": s.rank,
    "Booth": s.booth.name,
    "Votes": s.vote_count,
    "Share %": s.vote_percentage,
} for s in stats])
if df.empty:
    st.info("No booths configured.")
else:
    st.bar_chart(df.set_index("Booth")["Votes"])
    st.dataframe(df, hide_index=True, use_container_width=True)

with st.expander("🔒 Submit final results"):
    st.warning("This freezes the current ranking and closes voting for good.")
    ok = st.checkbox("I understand the results cannot be changed")
    if st.button("Submit final results", type="primary", disabled=not ok):
        try:
            votes_service.submit_final_results(engine, event.id, staff.id)
        except ForumError as e:
            st.error(e.message)
        else:
            st.session_state["votes_toast"] = "🏆 Final results saved."
            st.rerun()

# ── Auto refresh (polling) ────────────────────────────────────
if st.toggle(f"Auto-refresh every {config.VOTES_REFRESH_SECONDS}s", value=True, key="votes_auto"):
    time.sleep(config.VOTES_REFRESH_SECONDS)
    st.rerun()
