# utils/screens/participant_screen.py
"""
Shared participant management screen.
- Filters, pagination and the participant table
- Detail panel (booth visits, ideations, groups, votes)
- Create / edit / delete, password reset and the manual check-in toggle

Called from:
- pages/7_Staff_Helpdesk.py (allow_delete=False)
- pages/9_Admin.py
"""

from typing import Optional

import pandas as pd
import streamlit as st
from sqlalchemy.engine import Engine

import config
from domain.errors import ForumError
from domain.models import CreateUserInput, UpdateUserInput, User, UserFilters
from services import booths_service, checkin_service, users_service
from utils.styling import section_header

_ANY = "All"


def _toast(msg: str, level: str = "success"):
    st.session_state["participants_toast"] = (msg, level)


def _show_toast():
    toast = st.session_state.pop("participants_toast", None)
    if toast:
        msg, level = toast
        getattr(st, level if level in {"success", "warning", "info", "error"} else "info")(msg)


def _tri(label: str, key: str) -> Optional[bool]:
    v = st.selectbox(label, [_ANY, "Yes", "No"], key=key)
    return None if v == _ANY else v == "Yes"


def _fmt_ts(v) -> str:
    return v.strftime("%d/%m/%Y %H:%M") if v else ""


def _table(users) -> pd.DataFrame:
    return pd.DataFrame([{
        "Name": u.name,
        "Email": u.email,
        "Type": u.participant_type or "",
        "Company": u.company or "",
        "Checked in": "✅" if u.is_checked_in else "—",
        "Eligible": "🎟️" if u.is_eligible_to_draw else "—",
        "Check-in time": _fmt_ts(u.event_checkin_time),
        "Method": u.event_checkin_method or "",
    } for u in users])


def _filters(engine: Engine) -> UserFilters:
    c1, c2, c3, c4, c5 = st.columns([2, 1, 1, 1, 2])
    search = c1.text_input("Search name or email", key="pm_search")
    ptype = c2.selectbox("Type", [_ANY, *config.PARTICIPANT_TYPES], key="pm_type")
    with c3:
        checked = _tri("Checked in", "pm_checked")
    with c4:
        eligible = _tri("Eligible", "pm_eligible")
    company = c5.selectbox("Company", [_ANY, *users_service.companies(engine)], key="pm_company")
    return UserFilters(
        participant_type=None if ptype == _ANY else ptype,
        is_checked_in=checked,
        is_eligible_to_draw=eligible,
        company=None if company == _ANY else company,
        search=search or None,
    )


def _create_form(engine: Engine):
    with st.expander("➕ Add participant", expanded=False):
        with st.form("pm_create", clear_on_submit=True):
            name = st.text_input("Name *")
            email = st.text_input("Email *")
            ptype = st.selectbox("Participant type *", config.PARTICIPANT_TYPES)
            company = st.selectbox("Company", ["", *config.COMPANY_OPTIONS])
            division = st.text_input("Division")
            if st.form_submit_button("Save participant"):
                try:
                    u, cred = users_service.create_user(engine, CreateUserInput(
                        name=name, email=email, participant_type=ptype,
                        company=company or None, division=division or None,
                    ))
                except ForumError as e:
                    st.error(e.message)
                else:
                    _toast(f"✅ {u.name} added. Login: {cred.email} / password **{cred.password}** (shown once).")
                    st.rerun()


def _detail(engine: Engine, user: User, staff: User, allow_delete: bool):
    detail = users_service.get_user_detail(engine, user.id)
    u = detail.user

    st.markdown(f"#### {u.name}")
    st.caption(f"{u.email} · {u.participant_type or '-'} · {u.company or 'No company'} · {u.division or '-'}")

    c1, c2 = st.columns(2)
    with c1:
        if u.is_checked_in:
            st.success(f"Checked in {_fmt_ts(u.event_checkin_time)} via {u.event_checkin_method}")
            if st.button("↩️ Undo check-in", key=f"pm_undo_{u.id}"):
                try:
                    checkin_service.set_checkin_status(engine, u.id, False, staff_id=staff.id)
                except ForumError as e:
                    st.error(e.message)
                else:
                    _toast(f"Check-in removed for {u.name}.", "warning")
                    st.rerun()
        else:
            st.info("Not checked in yet")
            if st.button("✅ Check in (manual)", key=f"pm_checkin_{u.id}"):
                try:
                    checkin_service.set_checkin_status(engine, u.id, True, method="manual", staff_id=staff.id)
                except ForumError as e:
                    st.error(e.message)
                else:
                    _toast(f"✅ {u.name} checked in.")
                    st.rerun()
    with c2:
        threshold = checkin_service.threshold_for(u.participant_type)
        visited = len(detail.booth_checkins)
        st.metric("Booths visited", f"{visited} / {threshold}")
        st.progress(min(1.0, visited / threshold) if threshold else 1.0)

    tabs = st.tabs(["Booth visits", "Ideations", "Groups", "Votes", "Edit"])
    with tabs[0]:
        if not detail.booth_checkins:
            st.caption("No booth visits yet.")
        for c in detail.booth_checkins:
            with st.container(border=True):
                st.markdown(f"**{c.booth.name if c.booth else c.checkin.booth_id}** · {_fmt_ts(c.checkin.checkin_time)}")
                if c.checkin.question:
                    st.caption(c.checkin.question)
                st.write(c.checkin.answer or "")
    with tabs[1]:
        if not detail.ideations:
            st.caption("No ideations.")
        for i in detail.ideations:
            with st.container(border=True):
                st.markdown(f"**{i.title}** · {i.company_case} · {'Group' if i.is_group else 'Individual'}")
                st.write(i.description)
    with tabs[2]:
        if not detail.groups:
            st.caption("Not in a group.")
        for g in detail.groups:
            status = "submitted" if g.group.is_submitted else "draft"
            st.markdown(f"**{g.group.name}** ({status}): " + ", ".join(p.name for p in g.participants))
    with tabs[3]:
        if not detail.votes:
            st.caption("No votes.")
        else:
            names = {b.id: b.name for b in booths_service.list_booths(engine)}
            for v in detail.votes:
                st.write(f"🗳️ {names.get(v.booth_id, v.booth_id)}")
    with tabs[4]:
        with st.form(f"pm_edit_{u.id}"):
            name = st.text_input("Name", value=u.name)
            email = st.text_input("Email", value=u.email)
            ptype = st.selectbox("Participant type", config.PARTICIPANT_TYPES,
                                 index=config.PARTICIPANT_TYPES.index(u.participant_type)
                                 if u.participant_type in config.PARTICIPANT_TYPES else 0)
            company = st.text_input("Company", value=u.company or "")
            division = st.text_input("Division", value=u.division or "")
            if st.form_submit_button("Save changes"):
                try:
                    users_service.update_user(engine, u.id, UpdateUserInput(
                        name=name, email=email, participant_type=ptype, company=company, division=division,
                    ))
                except ForumError as e:
                    st.error(e.message)
                else:
                    _toast(f"✅ {name} updated.")
                    st.rerun()

        st.divider()
        if st.button("🔑 Reset password", key=f"pm_pw_{u.id}"):
            try:
                cred = users_service.reset_password(engine, u.id)
            except ForumError as e:
                st.error(e.message)
            else:
                _toast(f"New password for {cred.email}: **{cred.password}** (shown once).", "info")
                st.rerun()

        if allow_delete:
            st.divider()
            confirm = st.checkbox(f"I want to delete {u.name}", key=f"pm_del_ok_{u.id}")
            if st.button("🗑️ Delete participant", key=f"pm_del_{u.id}", disabled=not confirm):
                try:
                    users_service.delete_user(engine, u.id)
                except ForumError as e:
                    st.error(e.message)
                else:
                    _toast(f"{u.name} deleted.", "warning")
                    st.rerun()


def render_participant_management(engine: Engine, staff: User, *, allow_delete: bool = True):
    _show_toast()
    section_header("👥 Participants")

    _create_form(engine)
    filters = _filters(engine)

    c1, c2 = st.columns([1, 4])
    limit = c1.selectbox("Rows per page", config.PAGINATION_SIZES, key="pm_limit")
    page_no = st.session_state.get("pm_page", 1)
    result = users_service.list_users(engine, page=page_no, limit=limit, filters=filters)
    if page_no > max(result.total_pages, 1):
        st.session_state["pm_page"] = 1
        result = users_service.list_users(engine, page=1, limit=limit, filters=filters)

    c2.caption(f"{result.total} participant(s) · page {result.page} of {max(result.total_pages, 1)}")

    if not result.items:
        st.info("No participants match the filters.")
        return

    st.dataframe(_table(result.items), hide_index=True, use_container_width=True)

    p1, p2, _ = st.columns([1, 1, 6])
    if p1.button("◀ Prev", disabled=result.page <= 1, key="pm_prev"):
        st.session_state["pm_page"] = result.page - 1
        st.rerun()
    if p2.button("Next ▶", disabled=result.page >= result.total_pages, key="pm_next"):
        st.session_state["pm_page"] = result.page + 1
        st.rerun()

    by_label = {f"{u.name} · {u.email}": u for u in result.items}
    picked = st.selectbox("Open participant", ["—", *by_label.keys()], key="pm_pick")
    if picked != "—":
        with st.container(border=True):
            _detail(engine, by_label[picked], staff, allow_delete)
