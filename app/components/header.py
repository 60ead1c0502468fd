from __future__ import annotations

import html

import streamlit as st


def render_header(title: str, subtitle: str, source: str = "mock") -> None:
    """Page title bar with a pill showing where the data on the page came from."""
    pill_cls = "pill mock" if source == "mock" else "pill"
    pill_text = "Mock data" if source == "mock" else "Live · Supabase"
    st.markdown(
        f"""
<div class="sk-header">
  <div>
    <div class="sk-title">{html.escape(title)}</div>
    <div class="sk-subtitle">{html.escape(subtitle)}</div>
  </div>
  <div class="{pill_cls}"><span class="dot"></span>{pill_text}</div>
</div>
        """,
        unsafe_allow_html=True,
    )
