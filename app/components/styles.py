from __future__ import annotations

import streamlit as st

from config import THEME


APP_TITLE = "Skutopia Academy"


def apply_theme() -> None:
    st.set_page_config(
        page_title=APP_TITLE,
        page_icon="🎓",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    # THEME tokens (config.py) -> CSS variables
    radius = int(THEME["radius_px"])
    css = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Poppins:wght@400;500;600;700&display=swap');

:root{
  --green-600: __GREEN_600__;
  --green-500: __GREEN_500__;
  --navy-900: __NAVY_900__;
  --navy-800: __NAVY_800__;

  --bg-primary: __BG_PRIMARY__;
  --bg-secondary: __BG_SECONDARY__;
  --card-bg: __CARD_BG__;
  --card-border: __CARD_BORDER__;

  --text-primary: __TEXT_PRIMARY__;
  --text-secondary: __TEXT_SECONDARY__;
  --shadow: __SHADOW__;
  --radius: __RADIUS_PX__px;
}

#MainMenu { visibility: hidden; }
footer { visibility: hidden; }

html, body, [data-testid="stAppViewContainer"]{
  background: var(--bg-primary) !important;
  font-family: "Poppins", system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif !important;
  color: var(--text-primary) !important;
}

[data-testid="stSidebar"]{
  background: var(--bg-secondary) !important;
  border-right: 1px solid var(--card-border) !important;
}
[data-testid="stSidebar"] div[role="radiogroup"] > label{
  border-radius: 10px !important;
  padding: 6px 10px !important;
  margin: 0 0 4px 0 !important;
}
[data-testid="stSidebar"] div[role="radiogroup"] > label:has(input:checked){
  background: rgba(22, 163, 74, 0.10) !important;
  color: var(--green-600) !important;
}

.block-container{
  padding-top: 1rem !important;
  padding-bottom: 2rem !important;
}

/* Page header */
.sk-header{
  display:flex;
  align-items:center;
  justify-content:space-between;
  gap: 12px;
  background: var(--bg-secondary);
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  box-shadow: var(--shadow);
  padding: 12px 16px;
  margin: 0 0 16px 0;
}
.sk-title{
  font-size: 22px;
  font-weight: 700;
  color: var(--navy-900);
}
.sk-subtitle{
  font-size: 14px;
  color: var(--text-secondary);
}
.pill{
  display:inline-flex;
  align-items:center;
  gap:6px;
  border: 1px solid var(--card-border);
  border-radius: 999px;
  padding: 4px 10px;
  font-size: 12px;
  font-weight: 600;
  color: var(--navy-800);
  background: white;
}
.pill .dot{
  width:8px;
  height:8px;
  border-radius:999px;
  background: var(--green-600);
  display:inline-block;
}
.pill.mock .dot{ background: __WARNING__; }

/* Home hero + feature cards */
.hero{
  background: linear-gradient(120deg, var(--navy-900), var(--navy-800));
  border-radius: var(--radius);
  padding: 28px 24px;
  margin-bottom: 16px;
}
.hero-title{
  font-size: 34px;
  font-weight: 700;
  color: white;
  margin: 0 0 8px 0;
}
.hero-narrative{
  font-size: 16px;
  color: rgba(255,255,255,0.85);
  line-height: 1.5;
  margin: 0;
}
.section-title{
  font-size: 22px;
  font-weight: 600;
  color: var(--navy-900);
  margin: 16px 0 10px 0;
}
.card{
  background: var(--card-bg);
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  box-shadow: var(--shadow);
  padding: 14px;
  margin-bottom: 12px;
}
.card-title{
  font-size: 16px;
  font-weight: 600;
  color: var(--navy-900);
  margin-bottom: 4px;
}
.card-meta{
  font-size: 13px;
  color: var(--text-secondary);
}
.card-body{
  font-size: 14px;
  color: var(--text-secondary);
  line-height: 1.5;
  margin-top: 6px;
}

/* KPI cards */
.metric-card{
  background: var(--card-bg);
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  box-shadow: var(--shadow);
  padding: 12px 14px;
}
.metric-label{
  font-size: 13px;
  font-weight: 500;
  color: var(--text-secondary);
  margin-bottom: 4px;
}
.metric-value{
  font-size: 24px;
  font-weight: 700;
  color: var(--text-primary);
}
.metric-delta{
  margin-top: 4px;
  font-size: 13px;
  font-weight: 600;
}
.metric-delta.positive{ color: __SUCCESS__; }
.metric-delta.negative{ color: __DANGER__; }

/* Flashcard face */
.flashcard{
  min-height: 180px;
  display:flex;
  align-items:center;
  justify-content:center;
  text-align:center;
  font-size: 20px;
  font-weight: 500;
  background: var(--card-bg);
  border: 2px solid var(--card-border);
  border-radius: 16px;
  box-shadow: var(--shadow);
  padding: 24px;
}
.flashcard.answer{ border-color: var(--green-600); }

/* Score bands */
.band-good{ color: __SUCCESS__; font-weight: 700; }
.band-fair{ color: __WARNING__; font-weight: 700; }
.band-poor{ color: __DANGER__; font-weight: 700; }

div.stButton > button{
  border-radius: 10px !important;
  font-weight: 600 !important;
}
div.stButton > button[kind="primary"]{
  background: var(--green-600) !important;
  border-color: var(--green-600) !important;
  color: white !important;
}
div.stButton > button[kind="primary"]:hover{
  background: var(--green-500) !important;
}

div[data-testid="stPlotlyChart"]{
  background: var(--card-bg);
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  padding: 8px 10px;
}

/* Page intro + callouts */
.tab-intro{
  background: var(--bg-secondary);
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  padding: 14px;
  margin: 0 0 14px 0;
}
.tab-intro-question{
  font-size: 18px;
  font-weight: 700;
  color: var(--navy-900);
  margin-bottom: 4px;
}
.tab-intro-context{
  font-size: 14px;
  color: var(--text-secondary);
  line-height: 1.5;
}
.callout{
  border: 1px solid var(--card-border);
  border-radius: var(--radius);
  padding: 12px 14px;
  margin: 10px 0;
  background: white;
}
.callout-title{
  font-size: 14px;
  font-weight: 700;
  color: var(--navy-900);
  margin-bottom: 4px;
}
.callout-body{
  font-size: 14px;
  color: var(--text-secondary);
  line-height: 1.5;
}
.callout-info{ border-left: 4px solid var(--navy-800); }
.callout-tip{ border-left: 4px solid var(--green-600); }
.subtle{ color: var(--text-secondary); font-size: 13px; }
</style>
"""

    tokens = {
        "__GREEN_600__": str(THEME["accent_primary"]),
        "__GREEN_500__": str(THEME["accent_secondary"]),
        "__NAVY_900__": str(THEME["navy_900"]),
        "__NAVY_800__": str(THEME["navy_800"]),
        "__BG_PRIMARY__": str(THEME["bg_primary"]),
        "__BG_SECONDARY__": str(THEME["bg_secondary"]),
        "__CARD_BG__": str(THEME["bg_card"]),
        "__CARD_BORDER__": str(THEME["border_color"]),
        "__TEXT_PRIMARY__": str(THEME["text_primary"]),
        "__TEXT_SECONDARY__": str(THEME["text_secondary"]),
        "__SHADOW__": str(THEME["shadow"]),
        "__RADIUS_PX__": str(radius),
        "__SUCCESS__": str(THEME["success"]),
        "__WARNING__": str(THEME["warning"]),
        "__DANGER__": str(THEME["danger"]),
    }
    for k, v in tokens.items():
        css = css.replace(k, v)

    st.markdown(css, unsafe_allow_html=True)
