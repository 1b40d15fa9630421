# pages/6_Staff_Draw.py — lucky draw with slot reveal
import html
import time

import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Lucky Draw")

import config
from domain.errors import ForumError
from domain.models import PrizeTemplate
from services import draws_service
from services.draw_machine import DrawMachine, IDLE, DRAWING, REVEALING, COMPLETE
from utils.auth_sidebar import render_auth_in_sidebar, require_staff_or_admin
from utils.db import get_engine

SHUFFLE_FRAME_SECONDS = 0.15

engine = get_engine()
render_auth_in_sidebar(engine)
staff = require_staff_or_admin()

st.title("🎁 Lucky Draw")

toast = st.session_state.pop("draw_toast", None)
if toast:
    st.success(toast)

templates = [PrizeTemplate.from_config(t) for t in config.PRIZE_TEMPLATES]
machine: DrawMachine | None = st.session_state.get("draw_machine")


def _slots_html(frame) -> str:
    cards = []
    for s in machine.slots:
        shown = frame.get(s.slot_number)
        name = html.escape(shown.name) if shown else "?"
        company = html.escape(shown.company or "") if (shown and s.is_revealed) else f"Slot {s.slot_number}"
        cls = "slot-card revealed" if s.is_revealed else "slot-card"
        cards.append(f'<div class="{cls}">{name}<small>{company}</small></div>')
    return f'<div class="slot-grid">{"".join(cards)}</div>'


# ── Setup ─────────────────────────────────────────────────────
if machine is None or machine.state == IDLE:
    eligible = draws_service.eligible_participants(engine)
    st.metric("Eligible participants", len(eligible))

    names = [f"{t.name} ({t.slot_count} winner{'s' if t.slot_count > 1 else ''})" for t in templates]
    idx = st.radio("Prize", range(len(templates)), format_func=lambda i: names[i], horizontal=True)
    tpl = templates[idx]

    if st.button("🎲 Start draw", type="primary", disabled=not eligible):
        machine = DrawMachine(tpl, eligible)
        try:
            machine.start()
        except ForumError as e:
            st.error(e.message)
        else:
            st.session_state["draw_machine"] = machine
            st.rerun()
    if not eligible:
        st.info("Nobody is eligible right now.")

# ── Drawing / revealing ───────────────────────────────────────
else:
    section_header(f"🎉 {machine.template.name}")
    placeholder = st.empty()
    placeholder.markdown(_slots_html(machine.tick() if machine.state != COMPLETE
                                     else {s.slot_number: s.winner for s in machine.slots}),
                         unsafe_allow_html=True)

    c1, c2, c3 = st.columns(3)
    if machine.state == DRAWING:
        if c1.button("⏹️ Stop", type="primary"):
            machine.stop_shuffle()
            st.rerun()
    if machine.state == REVEALING:
        if c1.button("✨ Reveal next", type="primary"):
            machine.reveal_next()
            st.rerun()
    if machine.state in (DRAWING, REVEALING):
        if c2.button("⚡ Reveal all"):
            machine.reveal_all()
            st.rerun()

    if machine.state == COMPLETE:
        if c1.button("💾 Save winners", type="primary"):
            try:
                draws_service.submit_draw(
                    engine, [w.id for w in machine.winners()], staff_id=staff.id,
                    prize_template=machine.template.id, prize_name=machine.template.name,
                    slot_count=machine.template.slot_count,
                )
            except ForumError as e:
                st.error(e.message)
            else:
                st.session_state.pop("draw_machine", None)
                st.session_state["draw_toast"] = f"🏆 {machine.template.name} winners saved."
                st.rerun()
    if c3.button("↩️ Cancel draw"):
        st.session_state.pop("draw_machine", None)
        st.rerun()

    if machine.state in (DRAWING, REVEALING) and any(not s.is_revealed for s in machine.slots):
        time.sleep(SHUFFLE_FRAME_SECONDS)
        st.rerun()

# ── History ───────────────────────────────────────────────────
section_header("📜 Recent draws")
history = draws_service.draw_history(engine, limit=10)
if not history:
    st.caption("No draws yet.")
for d in history:
    when = f"{d.log.created_at:%d/%m %H:%M}" if d.log.created_at else ""
    with st.expander(f"{d.log.prize_name or d.log.prize_template or 'Draw'} · {when} · {len(d.winners)} winner(s)"):
        for w in d.winners:
            st.write(f"🏆 **{w.name}** · {w.company or ''} · {w.email}")
        if d.staff:
            st.caption(f"Drawn by {d.staff.name}")
