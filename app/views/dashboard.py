from __future__ import annotations

import html

import pandas as pd
import streamlit as st

from components.auth import access_token, current_profile, current_user_id
from components.metrics import Kpi, bar_chart, render_kpi_row
from components.narrative import render_info, render_page_intro
from components.sidebar import go_to
from config import AppConfig
from data.derive import format_relative_time
from data.mentorship import policy_from_config
from data.service import get_dashboard


ACTIVITY_ICONS = {"video": "🎬", "quiz": "📝", "flashcards": "🃏", "past_paper": "📄", "mentorship": "🧑‍🏫"}


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Dashboard")
    user_id = current_user_id(use_mock)
    if not user_id:
        render_info("Sign in to see your dashboard", "Your progress, sessions and recent activity appear here once you sign in.")
        if st.button("🔑 Sign in", type="primary"):
            go_to("login")
            st.rerun()
        return

    profile = current_profile()
    render_page_intro(
        f"Welcome back{', ' + profile.name if profile and profile.name else ''}!",
        "Your subject progress, upcoming mentorship sessions and what you did recently.",
    )

    result = get_dashboard(cfg, use_mock, user_id, access_token())
    if result.warning:
        st.warning(result.warning)
    st.caption(f"Data source: **{result.source}**")

    data = result.data
    progress = pd.DataFrame(data.progress)
    upcoming = data.upcoming_sessions
    overall = (data.user or {}).get("overall_progress")
    if overall is None and not progress.empty:
        overall = progress["percent"].mean()

    render_kpi_row(
        [
            Kpi("Overall progress", f"{float(overall or 0):.0f}%"),
            Kpi("Subjects tracked", str(len(progress))),
            Kpi("Upcoming sessions", str(len(upcoming))),
            Kpi("Recent activities", str(len(data.recent_activities))),
        ]
    )

    st.divider()
    left, right = st.columns([3, 2])
    with left:
        st.subheader("Progress by subject")
        if progress.empty:
            st.info("No progress recorded yet. Try a quiz or a flashcard deck to get started.")
        else:
            bar_chart(progress.sort_values("percent"), x="subject", y="percent", horizontal=True, y_format="percent")

    with right:
        st.subheader("Upcoming sessions")
        tz = policy_from_config(cfg).tz
        if not upcoming:
            st.caption("No sessions booked.")
            if st.button("Find a mentor"):
                go_to("mentors")
                st.rerun()
        for s in upcoming[:5]:
            local = s.starts_at.astimezone(tz)
            badge = " · saved on this device" if s.source == "local" else ""
            st.markdown(f"**{local:%a %d %b, %I:%M %p}** ({s.status}){badge}")

        st.subheader("Recent activity")
        if not data.recent_activities:
            st.caption("Nothing yet.")
        for a in data.recent_activities:
            icon = ACTIVITY_ICONS.get(a.get("type"), "•")
            st.markdown(f"{icon} {html.escape(str(a.get('title') or ''))}  \n<span class='subtle'>{format_relative_time(a.get('timestamp'))}</span>", unsafe_allow_html=True)
