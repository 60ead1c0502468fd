"""
Ask Muzanga
===========
Chat with Muzanga, the Skutopia study mentor, over the Hugging Face
Inference API. History lives in st.session_state for the browser session.
"""
from __future__ import annotations

import streamlit as st

from components.narrative import render_tip
from config import AppConfig
from data.assistant_client import AssistantClient, get_assistant_client


INTRO = """👋 Hi, I'm **Muzanga**, your study buddy at Skutopia Academy.

I can help you understand a topic, break a problem into steps, plan your revision, or find your way around the platform.
I won't do your homework for you, but I'll help you figure it out. What's on your mind?"""

QUICK_QUESTIONS = [
    ("📐 Maths help", "Can you explain how to solve quadratic equations step by step?"),
    ("🧪 Science", "What is the difference between an element and a compound?"),
    ("🗓️ Study plan", "How should I plan my revision for Grade 12 exams?"),
    ("🎓 Scholarships", "How do I find and apply for scholarships?"),
    ("🧑‍🏫 Mentors", "How do I book a session with a mentor?"),
]


def render(cfg: AppConfig, use_mock: bool) -> None:
    """Render the Ask Muzanga page."""
    st.title("💬 Ask Muzanga")
    st.caption("A friendly mentor for school topics, study habits and careers.")
    _render_chat_interface(cfg)


def _render_chat_interface(cfg: AppConfig) -> None:
    if "muzanga_messages" not in st.session_state:
        st.session_state.muzanga_messages = [{"role": "assistant", "content": INTRO, "type": "intro"}]
    if "muzanga_client" not in st.session_state:
        st.session_state.muzanga_client = get_assistant_client(cfg)
    if "muzanga_pending" not in st.session_state:
        st.session_state.muzanga_pending = None

    client: AssistantClient = st.session_state.muzanga_client

    pending_prompt = st.session_state.muzanga_pending
    if pending_prompt:
        st.session_state.muzanga_pending = None

    for msg in st.session_state.muzanga_messages:
        with st.chat_message(msg["role"]):
            st.markdown(msg["content"])

    if len(st.session_state.muzanga_messages) <= 1:
        st.markdown("##### ⚡ Quick questions")
        cols = st.columns(len(QUICK_QUESTIONS))
        for i, (label, question) in enumerate(QUICK_QUESTIONS):
            with cols[i]:
                if st.button(label, key=f"quick_{i}", use_container_width=True):
                    st.session_state.muzanga_pending = question
                    st.rerun()

    if not client.is_configured():
        st.info("Muzanga is not configured. Add `HF_API_KEY` to `.env` and restart the app.")

    chat_prompt = st.chat_input("Ask Muzanga anything...", disabled=not client.is_configured())
    prompt = pending_prompt or chat_prompt

    if prompt:
        st.session_state.muzanga_messages.append({"role": "user", "content": prompt})
        with st.chat_message("user"):
            st.markdown(prompt)

        with st.chat_message("assistant"):
            with st.spinner("Muzanga is thinking..."):
                reply = client.ask(prompt)
            if reply.ok:
                st.markdown(reply.text)
                st.session_state.muzanga_messages.append({"role": "assistant", "content": reply.text})
            else:
                st.warning(reply.text)
                # Failed turns are not kept in history
                st.session_state.muzanga_messages.pop()

    st.divider()
    col1, col2 = st.columns([1, 3])
    with col1:
        if st.button("🗑️ New conversation", key="muzanga_clear", use_container_width=True):
            st.session_state.muzanga_messages = [st.session_state.muzanga_messages[0]]
            client.reset_conversation()
            st.rerun()
    with col2:
        render_tip(
            "Get better answers",
            "Say your grade and subject, share what you have tried so far, and ask for hints rather than the final answer.",
        )
