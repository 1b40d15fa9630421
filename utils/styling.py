import html

import streamlit as st

def inject_global_styles():
    st.markdown("""
    <style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800;900&display=swap');

    html, body, .stApp, [data-testid="stAppViewContainer"] {
      font-family: "Inter", -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial,
                   "Apple Color Emoji","Segoe UI Emoji","Segoe UI Symbol" !important;
      -webkit-font-smoothing: antialiased; -moz-osx-font-smoothing: grayscale;
      font-size: 16px; line-height: 1.55;
    }

    .block-container { max-width: 1280px; padding-top: 2rem; margin-top: .75rem; font-size: 1.02rem; }

    /* Headings */
    h1, h2, h3, h4 { color:#0f172a; font-weight: 800; letter-spacing:-0.015em; margin: .2rem 0 .6rem; }
    h1 { font-size: 2.1rem; }
    h2 { font-size: 1.6rem; }
    h3 { font-size: 1.25rem; }
    .big-title { font-size: 2.6rem; font-weight: 900; margin-bottom:.25rem; display:flex; align-items:center; gap:.5rem; }
    .big-title span.emoji { font-size:2rem; line-height:1; }
    .subtitle { font-size:1.05rem; color:#64748b; margin-bottom:1.2rem; }

    .stTable, .stDataFrame { font-size: 0.95rem; }

    .stButton > button {
      font-weight: 700 !important;
      font-size: 1rem !important;
      border-radius: 12px !important;
    }

    a { color:#1d4ed8; text-decoration: none; }
    a:hover { text-decoration: underline; }

    .stApp { background-color: #F5F8FF; }
    .stPageLink a::after { content: none !important; }

    /* Section header band */
    .section-band { background-color:#0B3D91; padding:0.75rem 1rem; border-radius:8px; margin: 1rem 0; }
    .section-band h3 { color:#F8FAFF; margin:0; }

    /* Feature cards (Home) */
    .feature-grid { display:grid; gap:1rem; grid-template-columns:repeat(3,minmax(0,1fr)); }
    @media (max-width:1100px){ .feature-grid { grid-template-columns:1fr 1fr; } }
    @media (max-width:700px){  .feature-grid { grid-template-columns:1fr; } }

    .feature-card {
      background:#FFFFFF; border:1px solid #DCE4F5; border-radius:16px; padding:1rem 1.1rem;
      box-shadow:0 6px 18px rgba(11,61,145,0.06); transition:transform .18s, box-shadow .18s;
      position:relative; overflow:hidden;
    }
    .feature-card::before { content:""; position:absolute; inset:0 0 auto 0; height:4px;
      background:linear-gradient(90deg,#0B3D91,#1D8CF8,#21D4FD); opacity:.9; }
    .feature-card:hover { transform:translateY(-3px); box-shadow:0 10px 22px rgba(11,61,145,0.12); }
    .fc-head { display:flex; align-items:center; gap:.6rem; margin:.25rem 0 .6rem; }
    .fc-title a { color:#0B3D91; font-weight:700; }
    .fc-desc { font-size:.95rem; line-height:1.45; color:#334155; margin:.4rem 0 0; }

    /* Lucky-draw slots */
    .slot-grid { display:grid; gap:.6rem; grid-template-columns:repeat(auto-fill,minmax(220px,1fr)); }
    .slot-card { background:#0B3D91; color:#fff; border-radius:14px; padding:1.2rem .8rem; text-align:center;
      font-size:1.4rem; font-weight:800; min-height:96px; display:flex; flex-direction:column; justify-content:center; }
    .slot-card small { color:#BFD3FF; font-size:.85rem; font-weight:600; }
    .slot-card.revealed { background:linear-gradient(135deg,#F7B500,#F76B1C); }
    .slot-card.revealed small { color:#FFF4D6; }
    </style>
    """, unsafe_allow_html=True)

def inject_sidebar_styles():
    st.markdown("""
    <style>
    :root {
      --navy:   #0B3D91;
      --sky:    #1D8CF8;
      --paper:  #FFFFFF;
    }

    section[data-testid="stSidebar"] {
      background-color: var(--paper) !important;
      border-right: 2px solid #DCE4F5;
      padding-top: 12px !important;
    }
    section[data-testid="stSidebar"]::before {
      content: ""; position: absolute; left: 0; right: 0; top: 0; height: 6px;
      background: linear-gradient(90deg, var(--navy), var(--sky));
    }

    section[data-testid="stSidebar"] nav a {
      border-radius: 12px !important;
      padding: 10px 14px !important;
      font-weight: 600 !important;
    }
    section[data-testid="stSidebar"] nav a[aria-current="page"] {
      background: var(--navy) !important;
      color: #ffffff !important;
      font-weight: 700 !important;
    }

    section[data-testid="stSidebar"] .stButton > button {
      width: 100% !important;
      min-height: 44px !important;
      background: var(--navy) !important;
      color: #ffffff !important;
      border: 0 !important;
      border-radius: 14px !important;
    }
    section[data-testid="stSidebar"] .stButton > button * { color: #ffffff !important; }
    </style>
    """, unsafe_allow_html=True)

def section_header(title: str):
    st.markdown(f'<div class="section-band"><h3>{html.escape(title)}</h3></div>', unsafe_allow_html=True)

def page_setup(title: str, layout: str = "wide"):
    """set_page_config + shared styles; call first on every page."""
    st.set_page_config(page_title=title, page_icon="🎤", layout=layout)
    inject_global_styles()
    inject_sidebar_styles()
