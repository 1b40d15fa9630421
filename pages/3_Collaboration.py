# pages/3_Collaboration.py — offline groups + group ideation, online individual ideation
import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Collaboration")

import config
from domain.errors import ForumError
from domain.models import IdeationInput
from services import groups_service, ideations_service
from utils.auth_sidebar import render_auth_in_sidebar, require_participant, refresh_current_user
from utils.db import get_engine

engine = get_engine()
render_auth_in_sidebar(engine)
require_participant()
user = refresh_current_user(engine)
if user is None:
    st.stop()

st.title("💡 Collaboration")

toast = st.session_state.pop("collab_toast", None)
if toast:
    st.success(toast)


def _done(msg: str):
    st.session_state["collab_toast"] = msg
    st.rerun()


def _ideation_fields(prefix: str, cases):
    title = st.text_input("Title *", key=f"{prefix}_title", help=f"At least {config.MIN_TITLE_LENGTH} characters")
    description = st.text_area("Description *", key=f"{prefix}_desc", height=180,
                               help=f"At least {config.MIN_DESCRIPTION_LENGTH} characters")
    case = st.selectbox("Company case *", ["", *cases], key=f"{prefix}_case")
    return IdeationInput(title=title, description=description, company_case=case)


# ══════════════════════════════════════════════════════════════
# Online: individual ideation
# ══════════════════════════════════════════════════════════════
if user.participant_type == "online":
    section_header("📝 Submit your ideation")
    done_cases = set(ideations_service.existing_company_cases(engine, user.id))
    open_cases = [c for c in config.COMPANY_OPTIONS if c not in done_cases]
    if not open_cases:
        st.success("You have submitted an ideation for every company case. Thank you!")
    else:
        with st.form("indiv_ideation"):
            data = _ideation_fields("indiv", open_cases)
            if st.form_submit_button("Submit ideation", type="primary"):
                try:
                    ideations_service.create_individual_ideation(engine, user.id, data)
                except ForumError as e:
                    st.error(e.message)
                else:
                    _done("✅ Ideation submitted.")

    section_header("📚 My ideations")
    mine = ideations_service.ideations_by_creator(engine, user.id)
    if not mine:
        st.caption("Nothing submitted yet.")
    for i in mine:
        with st.container(border=True):
            st.markdown(f"**{i.title}** · {i.company_case}")
            st.write(i.description)
    st.stop()

# ══════════════════════════════════════════════════════════════
# Offline: groups
# ══════════════════════════════════════════════════════════════
if not user.is_checked_in:
    st.warning("Check in at the registration desk before forming a group.")
    st.stop()

groups = groups_service.participant_groups(engine, user.id)

with st.expander("➕ Create a group", expanded=not groups):
    candidates = [p for p in groups_service.available_participants(engine, exclude_company=user.company)
                  if p.id != user.id]
    labels = {f"{p.name} · {p.company or 'No company'}": p.id for p in candidates}
    with st.form("create_group"):
        name = st.text_input("Group name *", help=f"At least {config.MIN_GROUP_NAME_LENGTH} characters")
        partner = st.selectbox(
            "Partner (from another company)", ["", *labels.keys()],
            help=f"Groups have {config.MIN_GROUP_SIZE}–{config.MAX_GROUP_SIZE} members; you can invite later.",
        )
        if st.form_submit_button("Create group"):
            try:
                groups_service.create_group(engine, user.id, name, [labels[partner]] if partner else [])
            except ForumError as e:
                st.error(e.message)
            else:
                _done(f"✅ Group “{name.strip()}” created.")

if not groups:
    st.info("You're not in a group yet.")
    st.stop()

for g in groups:
    d = groups_service.get_group_with_details(engine, g.id)
    section_header(f"👥 {d.group.name}")
    st.caption(("✅ Submitted" if d.group.is_submitted else "📝 Draft") + f" · {d.member_count} member(s)")

    for p in d.participants:
        crown = " 👑" if p.id == d.group.creator_id else ""
        st.write(f"• **{p.name}**{crown} · {p.company or 'No company'}")

    if d.group.is_submitted:
        if d.ideation:
            with st.container(border=True):
                st.markdown(f"**{d.ideation.title}** · {d.ideation.company_case}")
                st.write(d.ideation.description)
        continue

    if d.member_count < config.MAX_GROUP_SIZE:
        search = st.text_input("Find a participant to invite", key=f"inv_q_{g.id}")
        creator_company = d.creator.company if d.creator else None
        members = {p.id for p in d.participants}
        pool = [p for p in groups_service.available_participants(engine, search, exclude_company=creator_company)
                if p.id not in members]
        inv = {f"{p.name} · {p.email}": p.id for p in pool}
        pick = st.selectbox("Invite", ["", *inv.keys()], key=f"inv_pick_{g.id}")
        if st.button("Invite", key=f"inv_btn_{g.id}", disabled=not pick):
            try:
                groups_service.invite_to_group(engine, g.id, inv[pick])
            except ForumError as e:
                st.error(e.message)
            else:
                _done(f"✅ {pick.split(' · ')[0]} added to {d.group.name}.")

    if user.id != d.group.creator_id:
        if st.button("🚪 Leave group", key=f"leave_{g.id}"):
            try:
                groups_service.leave_group(engine, g.id, user.id)
            except ForumError as e:
                st.error(e.message)
            else:
                _done(f"You left {d.group.name}.")

    if d.member_count >= config.MIN_GROUP_SIZE:
        with st.form(f"group_ideation_{g.id}"):
            st.markdown("**Submit the group ideation** (this closes the group)")
            data = _ideation_fields(f"grp_{g.id}", config.COMPANY_OPTIONS)
            if st.form_submit_button("Submit ideation", type="primary"):
                try:
                    ideations_service.create_group_ideation(engine, g.id, user.id, data)
                except ForumError as e:
                    st.error(e.message)
                else:
                    _done("✅ Group ideation submitted.")
    else:
        st.info(f"Invite a partner: groups need at least {config.MIN_GROUP_SIZE} members to submit.")
