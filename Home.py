# Home.py
import streamlit as st

from utils.styling import page_setup

# ── Page config FIRST ─────────────────────────────────────────
page_setup("Expert Forum 2025", layout="centered")

from config import EVENT_NAME
from services import events_service
from utils.auth_sidebar import render_auth_in_sidebar, current_user
from utils.db import get_engine
from utils.log import setup_logging

setup_logging()
engine = get_engine()

# ── Sidebar auth on EVERY page ────────────────────────────────
render_auth_in_sidebar(engine)

# ── Hero ──────────────────────────────────────────────────────
st.markdown(
    f"""
    <h2 class="big-title">
        <span class='emoji'>🎤</span> {EVENT_NAME}
    </h2>
    <div class='subtitle'>Check in, visit the booths, collaborate on ideas, and win in the lucky draw</div>
    """,
    unsafe_allow_html=True,
)

user = current_user()
if user is None:
    st.info("👈 Sign in from the sidebar with your registered email.")
    st.stop()

if not events_service.is_event_active(engine):
    st.warning("⏳ The event has not started yet. Online check-in opens when the event goes live.")

# ── Feature cards (by role) ───────────────────────────────────
CARDS = {
    "participant": [
        ("pages/1_Participant.py", "🪪", "My Pass", "Your QR code, check-in status and booth progress."),
        ("pages/2_Booths.py", "🏛️", "Booths", "Visit booths, answer the quiz, and vote for your favourites."),
        ("pages/3_Collaboration.py", "💡", "Collaboration", "Team up (offline) or submit your own ideation (online)."),
    ],
    "staff": [
        ("pages/4_Staff_Checkin.py", "📷", "Check-in Desk", "Scan participant QR codes or look them up by name."),
        ("pages/5_Staff_Votes.py", "🗳️", "Booth Votes", "Live ranking, open/close voting and final results."),
        ("pages/6_Staff_Draw.py", "🎁", "Lucky Draw", "Run the prize draw and reveal winners."),
        ("pages/7_Staff_Helpdesk.py", "🛟", "Helpdesk", "Fix participant data and manual check-ins."),
        ("pages/8_Staff_Ideation.py", "📚", "Ideations", "Browse submitted ideations."),
    ],
}
CARDS["admin"] = CARDS["staff"] + [
    ("pages/9_Admin.py", "🛠️", "Admin", "Stats, participants, import/export, votes and draw history."),
]

for path, icon, title, desc in CARDS.get(user.role, []):
    with st.container(border=True):
        st.page_link(path, label=f"**{title}**", icon=icon)
        st.caption(desc)
