from __future__ import annotations

import html

import pandas as pd
import streamlit as st

from components.auth import access_token, current_session, is_admin
from components.metrics import Kpi, bar_chart, render_kpi_row
from components.narrative import render_info, render_page_intro
from config import AppConfig
from data import admin, quizzes, videos
from data.connection import SupabaseError
from data.derive import format_relative_time
from data.quizzes import OPTION_KEYS, QuizError
from data.service import admin_client_for, client_for, get_mentors, mentor_cache


def _overview(client) -> None:
    try:
        stats = admin.fetch_dashboard_stats(client)
        activity = admin.fetch_recent_activity(client, limit=5)
    except SupabaseError as e:
        st.error(f"Could not load platform stats: {e.message}")
        return
    render_kpi_row(
        [
            Kpi("Users", f"{stats.total_users:,}"),
            Kpi("Mentors", f"{stats.total_mentors:,}"),
            Kpi("Videos", f"{stats.total_videos:,}"),
        ]
    )
    st.subheader("Recent activity")
    if not activity:
        st.caption("No activity yet.")
    for item in activity:
        st.markdown(
            f"{html.escape(item['title'])}  \n<span class='subtle'>{format_relative_time(item['timestamp'])}</span>",
            unsafe_allow_html=True,
        )


def _mentors(cfg: AppConfig, client) -> None:
    try:
        stats = admin.fetch_mentor_stats(client)
    except SupabaseError as e:
        st.error(f"Could not load mentor stats: {e.message}")
        return
    render_kpi_row(
        [
            Kpi("Mentors", str(stats.total_mentors)),
            Kpi("Active (30 days)", str(stats.active_mentors)),
            Kpi("Bookings", str(stats.total_bookings)),
            Kpi("Revenue", f"ZMW {stats.total_revenue:,.2f}"),
            Kpi("Avg rating", f"{stats.average_rating:.1f} ⭐"),
        ]
    )
    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Top fields")
        if stats.top_fields:
            bar_chart(pd.DataFrame(stats.top_fields, columns=["field", "mentors"]), x="field", y="mentors")
        else:
            st.caption("No mentors yet.")
    with c2:
        st.subheader("Recent bookings")
        if stats.recent_bookings:
            st.dataframe(pd.DataFrame(stats.recent_bookings).drop(columns=["id"]), use_container_width=True, hide_index=True)
        else:
            st.caption("No bookings yet.")

    st.subheader("Update a mentor's rate")
    mentors = get_mentors(cfg, use_mock=False).df
    if mentors.empty:
        return
    names = dict(zip(mentors["id"], mentors["name"]))
    with st.form("mentor_rate"):
        mentor_id = st.selectbox("Mentor", list(names), format_func=lambda i: names[i])
        rate = st.number_input("Hourly rate", min_value=0.0, step=10.0)
        currency = st.selectbox("Currency", ["ZMW", "USD", "ZAR"])
        if st.form_submit_button("Save rate", type="primary"):
            if admin.update_mentor_rate(client, mentor_id, rate, currency):
                mentor_cache(cfg).invalidate(mentor_id)
                st.success("Rate updated.")
            else:
                st.error("Could not update the rate.")


VIDEO_LABELS = {
    "title": "Title",
    "video_url": "Video URL",
    "grade": "Grade",
    "subject": "Subject",
    "topic": "Topic",
    "thumbnail_url": "Thumbnail URL",
}


def _video_form(key: str, video: dict) -> dict:
    c1, c2 = st.columns(2)
    values = {}
    for i, (field, label) in enumerate(VIDEO_LABELS.items()):
        col = c1 if i % 2 == 0 else c2
        values[field] = col.text_input(label, value=video.get(field) or "", key=f"{key}_{field}")
    return values


def _videos(client) -> None:
    with st.expander("➕ Add a video"):
        with st.form("add_video", clear_on_submit=True):
            values = _video_form("new_video", {})
            if st.form_submit_button("Add video", type="primary"):
                session = current_session()
                try:
                    admin.add_video(client, values, uploaded_by=session.user_id if session else None)
                    st.success("Video added.")
                except ValueError as e:
                    st.warning(str(e))
                except (admin.AdminError, SupabaseError) as e:
                    st.error(f"Could not add video: {e}")

    try:
        rows = videos.fetch_videos(client)
    except SupabaseError as e:
        st.error(f"Could not load videos: {e.message}")
        return
    st.caption(f"{len(rows)} videos")
    for v in rows:
        with st.expander(f"{v.get('title')} · {v.get('subject') or ''} · {v.get('grade') or ''}"):
            with st.form(f"edit_video_{v['id']}"):
                values = _video_form(f"video_{v['id']}", v)
                if st.form_submit_button("Save changes"):
                    try:
                        admin.update_video(client, v["id"], values)
                        st.success("Video updated.")
                    except ValueError as e:
                        st.warning(str(e))
                    except (admin.AdminError, SupabaseError) as e:
                        st.error(f"Could not update video: {e}")
            confirm = st.checkbox("I want to delete this video", key=f"confirm_del_video_{v['id']}")
            if st.button("Delete video", key=f"del_video_{v['id']}", disabled=not confirm):
                try:
                    admin.delete_video(client, v["id"])
                except SupabaseError as e:
                    st.error(f"Could not delete video: {e.message}")
                else:
                    st.rerun()


def _users(cfg: AppConfig, client) -> None:
    admin_client = admin_client_for(cfg)
    if admin_client is None:
        st.caption("Set SUPABASE_SERVICE_ROLE_KEY to see emails and delete accounts.")
    try:
        users = admin.fetch_users(client, admin_client)
    except SupabaseError as e:
        st.error(f"Could not load users: {e.message}")
        return

    term = st.text_input("Search by name, email or role", key="admin_user_search")
    shown = admin.filter_users(users, term)
    if not shown:
        st.info("No users found. Try a different search term.")
        return
    st.dataframe(
        pd.DataFrame(shown)[["name", "email", "role", "status", "created_at", "last_login"]],
        use_container_width=True,
        hide_index=True,
    )

    by_id = {u["id"]: u for u in shown}
    user_id = st.selectbox("Manage user", list(by_id), format_func=lambda i: f"{by_id[i]['name']} ({by_id[i]['role']})")
    user = by_id[user_id]
    with st.form(f"edit_user_{user_id}"):
        name = st.text_input("Name", value=user["name"])
        role = st.selectbox("Role", admin.USER_ROLES, index=admin.USER_ROLES.index(user["role"]) if user["role"] in admin.USER_ROLES else 0)
        if st.form_submit_button("Save user", type="primary"):
            try:
                admin.update_user(client, user_id, {"name": name, "role": role})
                st.success("User updated.")
            except ValueError as e:
                st.warning(str(e))
            except (admin.AdminError, SupabaseError) as e:
                st.error(f"Could not update user: {e}")

    c1, c2 = st.columns(2)
    new_status = admin.toggled_status(user["status"])
    if c1.button("Activate user" if new_status == "active" else "Deactivate user", use_container_width=True):
        try:
            admin.set_user_status(client, user_id, new_status)
        except (admin.AdminError, SupabaseError) as e:
            st.error(f"Could not change status: {e}")
        else:
            st.rerun()
    if user["role"] == "admin":
        c2.caption("Admin users cannot be deleted.")
    elif c2.button("Delete user", use_container_width=True):
        try:
            admin.delete_user(client, user_id, admin_client)
        except (admin.AdminError, SupabaseError) as e:
            st.error(f"Could not delete user: {e}")
        else:
            st.rerun()


def _quiz_builder(client) -> None:
    render_page_intro("Add a quiz question", "Questions are grouped by grade, subject and topic. The correct answer must match one option.")
    with st.form("quiz_builder", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        grade = c1.text_input("Grade", placeholder="Grade 12")
        subject = c2.text_input("Subject", placeholder="Mathematics")
        topic = c3.text_input("Topic", placeholder="Algebra")
        question = st.text_area("Question")
        options = {k: st.text_input(f"Option {k[-1].upper()}") for k in OPTION_KEYS}
        correct = st.selectbox("Correct option", OPTION_KEYS, format_func=lambda k: f"Option {k[-1].upper()}")
        if st.form_submit_button("Add question", type="primary"):
            payload = {"grade": grade, "subject": subject, "topic": topic, "question": question, **options}
            payload["correct_answer"] = options[correct]
            try:
                quizzes.add_quiz_question(client, payload)
                st.success("Question added.")
            except QuizError as e:
                st.warning(str(e))
            except SupabaseError as e:
                st.error(f"Could not add question: {e.message}")


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Admin")
    if not is_admin():
        render_info("Admins only", "Sign in with an admin account to manage the platform.")
        return
    if use_mock:
        st.info("Admin tools work on live data only. Turn off mock data in Settings.")
        return

    client = client_for(cfg, access_token())
    tab_overview, tab_videos, tab_users, tab_mentors, tab_quiz = st.tabs(["Overview", "Videos", "Users", "Mentors", "Quiz builder"])
    with tab_overview:
        _overview(client)
    with tab_videos:
        _videos(client)
    with tab_users:
        _users(cfg, client)
    with tab_mentors:
        _mentors(cfg, client)
    with tab_quiz:
        _quiz_builder(client)
