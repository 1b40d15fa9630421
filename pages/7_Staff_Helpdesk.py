# pages/7_Staff_Helpdesk.py — staff helpdesk: participant lookup, fixes, manual check-in
import streamlit as st

from utils.styling import page_setup

page_setup("Helpdesk")

from utils.auth_sidebar import render_auth_in_sidebar, require_staff_or_admin
from utils.db import get_engine
from utils.screens.participant_screen import render_participant_management

engine = get_engine()
render_auth_in_sidebar(engine)
staff = require_staff_or_admin()

st.title("🛟 Helpdesk")
st.caption("Look up a participant, correct their data, or toggle their event check-in.")

render_participant_management(engine, staff, allow_delete=False)
