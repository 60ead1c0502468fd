from __future__ import annotations

import streamlit as st

from components.narrative import render_info, render_page_intro
from components.sidebar import go_to
from config import AppConfig


FEATURES = [
    ("🎬 Videos", "Short lessons by grade, subject and topic. Like, comment and pick up where you left off.", "videos"),
    ("🃏 Flashcards", "Flip through cards, mark what you know and filter by topic, difficulty or tag.", "flashcards"),
    ("📝 Quizzes", "Twenty-question topic quizzes with instant scoring, a review and a leaderboard.", "quizzes"),
    ("🧑‍🏫 Mentors", "Book a 30-minute session with a university student or professional.", "mentors"),
    ("📄 Past Papers", "Download past exam papers by subject, year and grade.", "past_papers"),
    ("🎓 Scholarships", "Open scholarships by country, field and level, sorted by deadline.", "scholarships"),
]


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.markdown(
        """
<div class="hero">
  <div class="hero-title">Learn smarter with Skutopia Academy</div>
  <p class="hero-narrative">
    Videos, flashcards, quizzes and past papers for Grades 10 to 12, plus mentors who have walked the path before you.<br/>
    Stuck on a concept? Ask Muzanga, your study buddy.
  </p>
</div>
        """,
        unsafe_allow_html=True,
    )

    render_page_intro("What would you like to do today?", "Pick a feature below or use the menu on the left.")

    cols = st.columns(3)
    for i, (title, body, view) in enumerate(FEATURES):
        with cols[i % 3]:
            st.markdown(
                f'<div class="card"><div class="card-title">{title}</div><div class="card-body">{body}</div></div>',
                unsafe_allow_html=True,
            )
            if st.button(f"Open {title.split(' ', 1)[1]}", key=f"home_{view}", use_container_width=True):
                go_to(view)
                st.rerun()

    st.markdown('<div class="section-title">Connection status</div>', unsafe_allow_html=True)
    s1, s2, s3 = st.columns(3)
    with s1:
        st.markdown("**Data mode**")
        st.write("Mock" if use_mock else "Supabase (falls back to mock)")
    with s2:
        st.markdown("**Supabase**")
        st.write("Configured" if cfg.is_supabase_configured else "Not configured")
    with s3:
        st.markdown("**Muzanga**")
        st.write("Configured" if cfg.hf_api_key else "Not configured")

    if not cfg.is_supabase_configured:
        render_info(
            "Running on mock data",
            "Set SUPABASE_URL and SUPABASE_ANON_KEY in .env to read live data. Every page works with mock data meanwhile.",
        )
