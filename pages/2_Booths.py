# pages/2_Booths.py — booth list, quiz check-in and booth voting
import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Booths")

import config
from domain.errors import ForumError
from services import booths_service, checkin_service, events_service, votes_service
from utils.auth_sidebar import render_auth_in_sidebar, require_participant, refresh_current_user
from utils.db import get_engine

engine = get_engine()
render_auth_in_sidebar(engine)
require_participant()
user = refresh_current_user(engine)
if user is None:
    st.stop()

st.title("🏛️ Booths")

toast = st.session_state.pop("booth_toast", None)
if toast:
    st.success(toast)

if not user.is_checked_in:
    st.warning("Check in to the event first to start visiting booths.")
    st.page_link("pages/1_Participant.py", label="My pass", icon="🪪")
    st.stop()

booths = booths_service.list_booths(engine, user.participant_type)
progress = checkin_service.get_progress(engine, user.id)
visited = set(progress.visited_booth_ids)

st.progress(progress.ratio, text=f"{progress.visited} / {progress.threshold} booths visited")


def _question_for(booth) -> str | None:
    """Keep one question per booth for the whole session so reruns don't reshuffle it."""
    cache = st.session_state.setdefault("booth_questions", {})
    if booth.id not in cache:
        try:
            cache[booth.id] = booths_service.random_question(booth)
        except ForumError:
            cache[booth.id] = None
    return cache[booth.id]


# ── Booth list ────────────────────────────────────────────────
section_header("📍 Visit a booth")
for booth in booths:
    done = booth.id in visited
    with st.expander(f"{'✅' if done else '⬜'} {booth.name}", expanded=False):
        if booth.poster_url:
            st.image(booth.poster_url, use_container_width=True)
        if booth.description:
            st.write(booth.description)
        if done:
            st.success("Visited")
            continue

        question = _question_for(booth)
        if question:
            st.markdown(f"**Quiz:** {question}")
        with st.form(f"booth_form_{booth.id}", clear_on_submit=False):
            answer = st.text_area("Your answer", key=f"answer_{booth.id}",
                                  help=f"At least {config.MIN_ANSWER_LENGTH} characters")
            if st.form_submit_button("Submit & check in"):
                try:
                    _, updated = checkin_service.checkin_booth(engine, user.id, booth.id, answer, question=question)
                except ForumError as e:
                    st.error(e.message)
                else:
                    msg = f"✅ {booth.name} visited."
                    if updated.is_eligible_to_draw and not user.is_eligible_to_draw:
                        msg += " 🎟️ You're now in the lucky draw!"
                    st.session_state["booth_toast"] = msg
                    st.rerun()

# ── Voting ────────────────────────────────────────────────────
section_header("🗳️ Vote for your favourite booths")
is_open, is_locked = events_service.get_voting_state(engine)
my_votes = votes_service.get_user_votes(engine, user.id)

if my_votes:
    st.success("Thanks for voting! Your picks: " + ", ".join(v.booth.name for v in my_votes if v.booth))
elif is_locked:
    st.info("Voting has ended. Results are final.")
elif not is_open:
    st.info("Voting is not open yet.")
else:
    by_name = {b.name: b.id for b in booths}
    picks = st.multiselect(
        f"Pick exactly {config.VOTES_PER_PARTICIPANT} booths",
        list(by_name.keys()),
        max_selections=config.VOTES_PER_PARTICIPANT,
    )
    if st.button("Submit votes", type="primary", disabled=len(picks) != config.VOTES_PER_PARTICIPANT):
        try:
            votes_service.submit_votes(engine, user.id, [by_name[n] for n in picks])
        except ForumError as e:
            st.error(e.message)
        else:
            st.session_state["booth_toast"] = "🗳️ Votes recorded. Thank you!"
            st.rerun()
