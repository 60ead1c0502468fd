from __future__ import annotations

import html
from typing import Optional

import streamlit as st

from components.auth import access_token, current_session
from components.narrative import render_card, render_page_intro
from config import AppConfig
from data import videos
from data.connection import SupabaseError
from data.derive import format_relative_time
from data.service import client_for, get_video_filter_values, get_videos


ALL = "All"


def _pick(label: str, options: list, key: str) -> Optional[str]:
    choice = st.selectbox(label, [ALL] + options, key=key)
    return None if choice == ALL else choice


def _render_player(cfg: AppConfig, video: dict, live: bool) -> None:
    st.subheader(video["title"])
    st.caption(f"{video.get('grade')} · {video.get('subject')} · {video.get('topic')}")
    if video.get("video_url"):
        st.video(video["video_url"])

    session = current_session()
    if not live or session is None:
        st.caption("Sign in with live data enabled to like, comment and save your progress.")
        return

    client = client_for(cfg, access_token())
    user_id = session.user_id
    vid = video["id"]

    c1, c2, c3 = st.columns([1, 1, 3])
    liked = videos.fetch_user_like_status(client, user_id, vid)
    with c1:
        st.metric("Likes", videos.fetch_like_count(client, vid))
    with c2:
        if st.button("💔 Unlike" if liked else "❤️ Like", key=f"like_{vid}"):
            try:
                if liked:
                    videos.unlike_video(client, user_id, vid)
                else:
                    videos.like_video(client, user_id, vid)
                st.rerun()
            except SupabaseError as e:
                st.error(f"Could not update like: {e.message}")
    with c3:
        progress = videos.fetch_video_progress(client, user_id, vid)
        watched = int((progress or {}).get("watched_seconds") or 0)
        minutes = st.number_input("Watched (minutes)", min_value=0.0, value=watched / 60, step=0.5, key=f"prog_{vid}")
        if st.button("Save progress", key=f"save_prog_{vid}"):
            videos.update_video_progress(client, user_id, vid, minutes * 60)
            st.toast("Progress saved")

    st.markdown("#### Comments")
    try:
        comments = videos.fetch_comments(client, vid)
    except SupabaseError as e:
        st.error(f"Could not load comments: {e.message}")
        comments = []
    for c in comments:
        st.markdown(f"{html.escape(c.get('comment') or '')}  \n<span class='subtle'>{format_relative_time(c.get('created_at'))}</span>", unsafe_allow_html=True)
    with st.form(key=f"comment_{vid}", clear_on_submit=True):
        text = st.text_area("Add a comment", max_chars=1000)
        if st.form_submit_button("Post"):
            try:
                videos.add_comment(client, user_id, vid, text)
                st.rerun()
            except ValueError as e:
                st.warning(str(e))
            except SupabaseError as e:
                st.error(f"Could not post comment: {e.message}")


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Videos")
    render_page_intro("Which topic do you want to watch?", "Narrow by grade, subject and topic. Newest lessons come first.")

    f1, f2, f3 = st.columns(3)
    with f1:
        grade = _pick("Grade", get_video_filter_values(cfg, use_mock, "grade").values("grade"), "video_grade")
    with f2:
        subject = _pick("Subject", get_video_filter_values(cfg, use_mock, "subject", grade).values("subject"), "video_subject")
    with f3:
        topic = _pick("Topic", get_video_filter_values(cfg, use_mock, "topic", grade, subject).values("topic"), "video_topic")

    result = get_videos(cfg, use_mock, grade, subject, topic, token=access_token())
    if result.warning:
        st.warning(result.warning)
    st.caption(f"Data source: **{result.source}** · {len(result.df)} videos")

    if result.df.empty:
        st.info("No videos match these filters.")
        return

    rows = result.df.to_dict("records")
    selected_id = st.session_state.get("video_id")
    selected = next((r for r in rows if r["id"] == selected_id), None)
    if selected:
        _render_player(cfg, selected, live=result.source == "supabase")
        if st.button("← Back to all videos"):
            st.session_state.pop("video_id", None)
            st.rerun()
        st.divider()

    cols = st.columns(3)
    for i, v in enumerate(rows):
        with cols[i % 3]:
            render_card(v["title"], f"{v.get('grade')} · {v.get('subject')} · {v.get('topic')}")
            if st.button("▶ Watch", key=f"watch_{v['id']}", use_container_width=True):
                st.session_state["video_id"] = v["id"]
                st.rerun()
