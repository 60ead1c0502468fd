from __future__ import annotations

import streamlit as st

from components.narrative import render_page_intro
from config import AppConfig
from data.catalog import format_file_size
from data.service import get_past_paper_filter_values, get_past_papers


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Past Papers")
    render_page_intro("Practise with real exam papers", "Filter by subject, year and grade, then open the PDF.")

    c1, c2, c3 = st.columns(3)
    with c1:
        subject = st.selectbox("Subject", get_past_paper_filter_values(cfg, use_mock, "subject").values("subject"), index=None, placeholder="All subjects")
    with c2:
        year = st.selectbox("Year", get_past_paper_filter_values(cfg, use_mock, "year").values("year"), index=None, placeholder="All years")
    with c3:
        grade = st.selectbox("Grade", get_past_paper_filter_values(cfg, use_mock, "grade").values("grade"), index=None, placeholder="All grades")

    result = get_past_papers(cfg, use_mock, subject, int(year) if year is not None else None, grade)
    if result.warning:
        st.warning(result.warning)
    st.caption(f"Data source: **{result.source}** · {len(result.df)} papers")

    if result.df.empty:
        st.info("No past papers match these filters.")
        return

    for p in result.df.to_dict("records"):
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(f"**{p['subject']} {p['year']}** · {p.get('grade') or ''} · {p.get('level') or ''}")
            size = format_file_size(p.get("file_size"))
            if size:
                st.caption(size)
        with c2:
            if p.get("file_url"):
                st.link_button("📄 Open", p["file_url"], use_container_width=True)
