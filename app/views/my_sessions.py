from __future__ import annotations

from datetime import datetime, timezone

import streamlit as st

from components.auth import access_token, current_user_id
from components.narrative import render_page_intro
from components.sidebar import go_to
from config import AppConfig
from data.mentorship import BookingError, policy_from_config
from data.connection import SupabaseError
from data.service import get_mentors, get_user_sessions, set_session_status


STATUS_ICONS = {"booked": "🟢", "confirmed": "🔵", "completed": "✅", "cancelled": "⚪"}


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("My Sessions")
    render_page_intro("Your mentorship sessions", "Upcoming sessions first. You can cancel a session you can no longer attend.")

    user_id = current_user_id(use_mock)
    if not user_id:
        st.info("Sign in to see your sessions.")
        if st.button("🔑 Sign in"):
            go_to("login")
            st.rerun()
        return

    sessions = get_user_sessions(cfg, use_mock, user_id, access_token())
    mentors = get_mentors(cfg, use_mock).df
    names = dict(zip(mentors.get("id", []), mentors.get("name", [])))
    tz = policy_from_config(cfg).tz
    now = datetime.now(timezone.utc)

    upcoming = [s for s in sessions if s.starts_at and s.starts_at >= now]
    past = [s for s in sessions if not s.starts_at or s.starts_at < now]

    tab_up, tab_past = st.tabs([f"Upcoming ({len(upcoming)})", f"Past ({len(past)})"])
    for tab, group, allow_cancel in ((tab_up, upcoming, True), (tab_past, list(reversed(past)), False)):
        with tab:
            if not group:
                st.caption("No sessions.")
            for s in group:
                local = s.starts_at.astimezone(tz) if s.starts_at else None
                when = f"{local:%a %d %b %Y, %I:%M %p %Z}" if local else s.session_time
                c1, c2 = st.columns([4, 1])
                with c1:
                    st.markdown(f"{STATUS_ICONS.get(s.status, '•')} **{names.get(s.mentor_id, 'Mentor')}** · {when}")
                    st.caption(f"Status: {s.status}" + (" · saved on this device" if s.source == "local" else ""))
                    if s.notes:
                        st.caption(s.notes)
                with c2:
                    if allow_cancel and s.status not in ("cancelled", "completed"):
                        if st.button("Cancel", key=f"cancel_{s.id}"):
                            try:
                                set_session_status(cfg, s, "cancelled", access_token())
                                st.toast("Session cancelled")
                                st.rerun()
                            except (BookingError, SupabaseError) as e:
                                st.error(str(e))
