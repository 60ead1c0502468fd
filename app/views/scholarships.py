from __future__ import annotations

import streamlit as st

from components.narrative import render_card, render_page_intro
from config import AppConfig
from data.catalog import days_until_deadline, is_open
from data.service import get_scholarship_filter_values, get_scholarships


def _deadline_text(scholarship: dict) -> str:
    days = days_until_deadline(scholarship)
    if days is None:
        return "Rolling deadline"
    if days < 0:
        return f"Closed ({scholarship['deadline'][:10]})"
    if days == 0:
        return "Closes today"
    return f"Closes in {days} days ({scholarship['deadline'][:10]})"


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Scholarships")
    render_page_intro("Find funding for your studies", "Scholarships are sorted by deadline, soonest first.")

    c1, c2, c3, c4 = st.columns([1, 1, 1, 1])
    with c1:
        country = st.selectbox("Country", get_scholarship_filter_values(cfg, use_mock, "country").values("country"), index=None, placeholder="Any country")
    with c2:
        field = st.selectbox(
            "Field of study", get_scholarship_filter_values(cfg, use_mock, "field_of_study").values("field_of_study"), index=None, placeholder="Any field"
        )
    with c3:
        level = st.selectbox("Level", get_scholarship_filter_values(cfg, use_mock, "level").values("level"), index=None, placeholder="Any level")
    with c4:
        st.write("")
        open_only = st.toggle("Open only", value=True)

    result = get_scholarships(cfg, use_mock, country, field, level)
    if result.warning:
        st.warning(result.warning)

    rows = result.df.to_dict("records")
    if open_only:
        rows = [r for r in rows if is_open(r)]
    st.caption(f"Data source: **{result.source}** · {len(rows)} scholarships")
    if not rows:
        st.info("No scholarships match these filters.")
        return

    for s in rows:
        meta = " · ".join(x for x in [s.get("organization"), s.get("country"), s.get("level"), s.get("field_of_study")] if x)
        render_card(s["title"], meta, s.get("description") or "")
        c1, c2 = st.columns([4, 1])
        with c1:
            st.caption(_deadline_text(s))
            if s.get("eligibility"):
                with st.expander("Eligibility"):
                    st.write(s["eligibility"])
        with c2:
            if s.get("application_link"):
                st.link_button("Apply", s["application_link"], use_container_width=True)
