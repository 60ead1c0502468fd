from __future__ import annotations

import streamlit as st

from components.auth import access_token, current_session, current_user_id
from components.narrative import render_card, render_page_intro
from components.sidebar import go_to
from config import AppConfig
from data import mentorship
from data.connection import SupabaseError
from data.mentorship import BookingError, SlotsByDay, policy_from_config
from data.service import book_mentor_session, client_for, get_available_slots, get_mentor, get_mentor_fields, get_mentors, mentor_cache


def _price(mentor: dict, minutes: int) -> str:
    rate = float(mentor.get("hourly_rate") or 0)
    if rate <= 0:
        return "Free"
    return f"{mentor.get('currency') or 'ZMW'} {mentorship.calculate_session_price(rate, minutes):,.2f} per session"


def _render_directory(cfg: AppConfig, use_mock: bool) -> None:
    render_page_intro("Who would you like to learn from?", "Mentors are university students and professionals who volunteer time each week.")

    c1, c2 = st.columns([3, 1])
    with c1:
        field_name = st.selectbox("Field", get_mentor_fields(cfg, use_mock).values("field"), index=None, placeholder="All fields")
    with c2:
        st.write("")
        refresh = st.button("🔄 Refresh", use_container_width=True)
    result = get_mentors(cfg, use_mock, field_name, force_refresh=refresh)
    if result.warning:
        st.warning(result.warning)
    st.caption(f"Data source: **{result.source}** · {len(result.df)} mentors")

    if result.df.empty:
        st.info("No mentors available in this field yet.")
        return

    minutes = policy_from_config(cfg).duration_minutes
    cols = st.columns(3)
    for i, m in enumerate(result.df.to_dict("records")):
        with cols[i % 3]:
            meta = " · ".join(x for x in [m.get("field"), m.get("occupation"), m.get("university")] if x)
            render_card(m["name"], meta, _price(m, minutes))
            if st.button("View profile", key=f"mentor_{m['id']}", use_container_width=True):
                st.session_state["mentor_id"] = m["id"]
                st.rerun()


def _render_booking(cfg: AppConfig, use_mock: bool, mentor: dict) -> None:
    policy = policy_from_config(cfg)
    st.subheader("Book a session")
    st.caption(f"{policy.duration_minutes}-minute sessions, times shown in {policy.time_zone}.")

    student_id = current_user_id(use_mock)
    if not student_id:
        st.info("Sign in to book a session.")
        if st.button("🔑 Sign in"):
            go_to("login")
            st.rerun()
        return
    if not mentor.get("available", True):
        st.info("This mentor is currently unavailable.")
        return

    slots = get_available_slots(cfg, use_mock, mentor["id"], access_token())
    if slots.warning:
        st.warning(slots.warning)
    grouped = SlotsByDay.group(slots.values("slot"), policy)
    if not grouped.days:
        st.info("No open slots in the coming weeks. Please check back later.")
        return

    day = st.selectbox("Day", list(grouped.days), format_func=lambda d: d.strftime("%A %d %B"))
    slot = st.radio("Time", grouped.days[day], format_func=grouped.label, horizontal=True)
    notes = st.text_area("What would you like to talk about? (optional)", max_chars=500)

    if st.button("Confirm booking", type="primary"):
        try:
            session = book_mentor_session(cfg, use_mock, mentor["id"], student_id, slot, notes.strip() or None, access_token())
        except BookingError as e:
            st.error(str(e))
            return
        local = session.starts_at.astimezone(policy.tz)
        st.success(f"Session booked successfully for {local:%A %d %B, %I:%M %p} {local:%Z}!")
        if session.source == "local":
            st.caption("Saved on this device. It will show on your dashboard and in My Sessions.")


def _render_feedback(cfg: AppConfig, mentor: dict, live: bool) -> None:
    if not live:
        return
    client = client_for(cfg, access_token())
    st.subheader("Reviews")
    try:
        feedback = mentorship.fetch_feedback(client, mentor["id"])
    except SupabaseError as e:
        st.caption(f"Reviews unavailable: {e.message}")
        feedback = []
    if feedback:
        avg = mentorship.average_rating(f.get("rating") for f in feedback)
        st.markdown(f"⭐ **{avg:.1f}** from {len(feedback)} reviews")
        for f in feedback[:5]:
            st.markdown(f"{'⭐' * int(f.get('rating') or 0)}  \n{f.get('comment') or ''}")
    else:
        st.caption("No reviews yet.")

    session = current_session()
    if session is None:
        return
    with st.form("mentor_feedback", clear_on_submit=True):
        rating = st.slider("Rating", 1, 5, 5)
        comment = st.text_area("Comment")
        if st.form_submit_button("Submit review"):
            try:
                mentorship.submit_feedback(client, mentor["id"], session.user_id, rating, comment)
                st.success("Thanks for your feedback!")
            except (ValueError, BookingError, SupabaseError) as e:
                st.error(f"Could not submit feedback: {e}")


def _render_profile(cfg: AppConfig, use_mock: bool, mentor_id: str) -> None:
    if st.button("← All mentors"):
        st.session_state.pop("mentor_id", None)
        st.rerun()

    result = get_mentor(cfg, use_mock, mentor_id)
    if result.warning:
        st.warning(result.warning)
    if result.df.empty:
        st.error("Mentor not found.")
        mentor_cache(cfg).invalidate(mentor_id)
        return
    mentor = result.df.iloc[0].to_dict()

    left, right = st.columns([1, 2])
    with left:
        if mentor.get("avatar_url"):
            st.image(mentor["avatar_url"], width=160)
        st.markdown(f"### {mentor['name']}")
        st.caption(" · ".join(x for x in [mentor.get("occupation"), mentor.get("company")] if x))
        st.markdown(f"**Field:** {mentor.get('field') or '-'}")
        st.markdown(f"**University:** {mentor.get('university') or '-'}")
        st.markdown(f"**Rate:** {_price(mentor, policy_from_config(cfg).duration_minutes)}")
        if mentor.get("linkedin"):
            st.markdown(f"[LinkedIn]({mentor['linkedin']})")
    with right:
        st.markdown(mentor.get("bio") or "")
        _render_booking(cfg, use_mock, mentor)
        _render_feedback(cfg, mentor, live=result.source == "supabase")


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Mentors")
    mentor_id = st.session_state.get("mentor_id")
    if mentor_id:
        _render_profile(cfg, use_mock, mentor_id)
    else:
        _render_directory(cfg, use_mock)
