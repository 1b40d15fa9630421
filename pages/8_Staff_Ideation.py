# pages/8_Staff_Ideation.py — browse submitted ideations
import streamlit as st

from utils.styling import page_setup, section_header

page_setup("Ideations")

import config
from domain.errors import ForumError
from services import ideations_service
from utils.auth_sidebar import render_auth_in_sidebar, require_staff_or_admin
from utils.db import get_engine

engine = get_engine()
render_auth_in_sidebar(engine)
require_staff_or_admin()

st.title("📚 Ideations")

KINDS = {"All": None, "Group (offline)": True, "Individual (online)": False}

c1, c2, c3 = st.columns([1, 1, 2])
kind = c1.selectbox("Type", list(KINDS.keys()))
case = c2.selectbox("Company case", ["All", *config.COMPANY_OPTIONS])
q = c3.text_input("Search title").strip().lower()

items = ideations_service.list_ideations(engine, is_group=KINDS[kind])
if case != "All":
    items = [i for i in items if i.company_case == case]
if q:
    items = [i for i in items if q in i.title.lower()]

st.caption(f"{len(items)} ideation(s)")
if not items:
    st.info("No ideations match these filters.")
    st.stop()

for i in items:
    badge = "👥" if i.is_group else "👤"
    when = f" · {i.submitted_at:%d/%m %H:%M}" if i.submitted_at else ""
    with st.expander(f"{badge} {i.title} · {i.company_case}{when}"):
        try:
            d = ideations_service.get_ideation_with_details(engine, i.id)
        except ForumError as e:
            st.error(e.message)
            continue
        if d.group:
            section_header(f"Group: {d.group.name}")
        names = ", ".join(f"{p.name} ({p.company or '-'})" for p in d.participants)
        st.markdown(f"**By:** {names or (d.creator.name if d.creator else '-')}")
        st.write(d.ideation.description)
