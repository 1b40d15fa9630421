# pages/9_Admin.py — admin dashboard: stats, participants, import/export, votes, draws

import pandas as pd
import streamlit as st

from utils.styling import page_setup, section_header

# ── Page config FIRST ─────────────────────────────────────────
page_setup("Admin Panel")

from config import EVENT_NAME, IMPORT_ALLOWED_COLS
from domain.errors import ForumError
from services import (
    booths_service, checkin_service, draws_service, events_service,
    export_service, ideations_service, stats_service, users_service, votes_service,
)
from services.upload_service import UPLOAD_TYPES, ingest_participants
from utils.auth_sidebar import render_auth_in_sidebar, require_admin
from utils.db import get_engine
from utils.screens.participant_screen import render_participant_management

engine = get_engine()
render_auth_in_sidebar(engine)
admin = require_admin()

st.title(f"🛠️ Admin Panel — {EVENT_NAME}")

toast = st.session_state.pop("admin_toast", None)
if toast:
    st.success(toast)

# ── Stats ─────────────────────────────────────────────────────
stats = stats_service.get_stats(engine)
r1 = st.columns(4)
r1[0].metric("Participants", stats.total_participants, f"{stats.total_offline} offline · {stats.total_online} online",
             delta_color="off")
r1[1].metric("Checked in", stats.checked_in, f"{stats.checked_in_offline} offline · {stats.checked_in_online} online",
             delta_color="off")
r1[2].metric("Eligible for draw", stats.eligible_for_draw)
r1[3].metric("Voters", stats.voters)
r2 = st.columns(4)
r2[0].metric("Submissions", stats.submissions,
             f"{stats.group_submissions} group · {stats.individual_submissions} individual", delta_color="off")
r2[1].metric("Draws", stats.draws)
r2[2].metric("Winners", stats.winners)

try:
    event = events_service.get_event(engine)
except ForumError as e:
    st.error(e.message)
    st.stop()

with r2[3]:
    active = st.toggle("Event active", value=event.is_active,
                       help="Online participants can self check-in only while the event is active.")
    if active != event.is_active:
        events_service.set_event_active(engine, event.id, active)
        st.session_state["admin_toast"] = f"Event {'activated' if active else 'deactivated'}."
        st.rerun()

(tab_people, tab_import, tab_subs, tab_booths, tab_votes, tab_draws) = st.tabs(
    ["👥 Participants", "📥 Import / Export", "💡 Submissions", "🏛️ Booth visits", "🗳️ Votes", "🎁 Draws"]
)

# ── Participants ──────────────────────────────────────────────
with tab_people:
    render_participant_management(engine, admin, allow_delete=True)

# ── Import / Export ───────────────────────────────────────────
with tab_import:
    section_header("📄 Import participants")
    st.caption("CSV or Excel. Headers are flexible: *nama*, *tipe*, *perusahaan*, *divisi* and similar are auto-mapped. "
               "Existing emails are skipped. Every new participant gets a generated password.")

    if "uploader_nonce" not in st.session_state:
        st.session_state.uploader_nonce = 0

    sample_df = pd.DataFrame([{
        "name": "First Last",
        "email": "user@example.com",
        "participant_type": "offline",
        "company": "Astra International",
        "division": "Digital",
    }], columns=IMPORT_ALLOWED_COLS)
    st.download_button(
        "Download sample template",
        data=sample_df.to_csv(index=False).encode("utf-8"),
        file_name="participants_template.csv",
        mime="text/csv",
    )

    uploaded = st.file_uploader("Choose file", type=UPLOAD_TYPES,
                                key=f"admin_uploader_{st.session_state.uploader_nonce}")
    summary_key = f"admin_import_{st.session_state.uploader_nonce}"
    if uploaded is not None:
        # reruns (e.g. the credentials download) must not import the same file again
        if summary_key not in st.session_state:
            st.session_state[summary_key] = ingest_participants(engine, uploaded, uploaded.name)
        summary = st.session_state[summary_key]
        msgs = []
        if summary.get("inserted"):
            msgs.append(f"✅ **{summary['inserted']}** participant(s) added.")
        if summary.get("skipped_existing"):
            msgs.append(f"ℹ️ **{summary['skipped_existing']}** existing email(s) skipped.")
        if msgs:
            st.success("  \n".join(msgs))
        if summary.get("errors"):
            with st.expander("⚠️ Issues found", expanded=True):
                for err in summary["errors"]:
                    st.write("• " + err)
        if summary.get("credentials"):
            st.warning("Passwords are shown only now. Download the sheet before leaving this page.")
            st.download_button(
                "🔑 Download participant credentials",
                data=export_service.credentials_csv(summary["credentials"]),
                file_name=export_service.export_filename("participant_credentials"),
                mime="text/csv",
                type="primary",
            )
        if summary.get("preview") is not None:
            st.dataframe(summary["preview"], hide_index=True, use_container_width=True)
        if st.button("Import another file"):
            st.session_state.pop(summary_key, None)
            st.session_state.uploader_nonce += 1
            st.rerun()

    section_header("📤 Export")
    c1, c2 = st.columns(2)
    c1.download_button(
        "⬇️ Participants CSV",
        data=export_service.participants_csv(users_service.all_users_for_export(engine)),
        file_name=export_service.export_filename("participants"),
        mime="text/csv",
        use_container_width=True,
    )
    c2.download_button(
        "⬇️ Submissions CSV",
        data=export_service.submissions_csv(ideations_service.all_ideations_for_export(engine)),
        file_name=export_service.export_filename("submissions"),
        mime="text/csv",
        use_container_width=True,
    )

# ── Submissions ───────────────────────────────────────────────
with tab_subs:
    subs = ideations_service.all_ideations_for_export(engine)
    if not subs:
        st.info("No submissions yet.")
    else:
        st.dataframe(export_service.submissions_frame(subs), hide_index=True, use_container_width=True)

# ── Booth visits ──────────────────────────────────────────────
with tab_booths:
    booths = booths_service.list_booths(engine)
    if not booths:
        st.info("No booths configured.")
    else:
        by_name = {b.name: b for b in booths}
        pick = st.selectbox("Booth", list(by_name.keys()))
        visits = checkin_service.booth_checkins_for_booth(engine, by_name[pick].id)
        st.caption(f"{len(visits)} visit(s)")
        if visits:
            st.dataframe(pd.DataFrame([{
                "Name": v.participant.name,
                "Email": v.participant.email,
                "Type": v.participant.participant_type,
                "Company": v.participant.company,
                "Question": v.checkin.question,
                "Answer": v.checkin.answer,
                "Time": v.checkin.checkin_time,
            } for v in visits]), hide_index=True, use_container_width=True)

# ── Votes ─────────────────────────────────────────────────────
with tab_votes:
    if event.is_votes_lock:
        section_header("🏆 Final results")
        rows = [{"Rank": r.final_rank, "Booth": r.booth.name if r.booth else r.booth_id, "Votes": r.final_vote_count}
                for r in votes_service.get_final_results(engine, event.id)]
    else:
        section_header("📊 Live ranking")
        rows = [{"Rank": s.rank, "Booth": s.booth.name, "Votes": s.vote_count, "Share %": s.vote_percentage}
                for s in votes_service.booth_vote_stats(engine)]
    st.caption(f"{votes_service.total_voters(engine)} voter(s)")
    if rows:
        st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)

# ── Draws ─────────────────────────────────────────────────────
with tab_draws:
    section_header("🏆 Winners")
    winners = draws_service.all_winners(engine)
    if not winners:
        st.info("No winners yet.")
    else:
        st.dataframe(pd.DataFrame(winners).drop(columns=["id"]), hide_index=True, use_container_width=True)

    section_header("📜 Draw history")
    for d in draws_service.draw_history(engine):
        when = f"{d.log.created_at:%d/%m %H:%M}" if d.log.created_at else ""
        by = f" · by {d.staff.name}" if d.staff else ""
        with st.expander(f"{d.log.prize_name or 'Draw'} · {when}{by}"):
            for w in d.winners:
                st.write(f"• **{w.name}** · {w.email} · {w.company or '-'}")
