from __future__ import annotations

import html

import streamlit as st


def render_page_intro(question: str, context: str | None = None) -> None:
    """One-line framing at the top of a page: what the student can do here."""
    context_html = f'<div class="tab-intro-context">{html.escape(context)}</div>' if context else ""
    st.markdown(
        f"""
<div class="tab-intro">
  <div class="tab-intro-question">{html.escape(question)}</div>
  {context_html}
</div>
        """,
        unsafe_allow_html=True,
    )


def _callout(kind: str, title: str, body: str) -> None:
    st.markdown(
        f"""
<div class="callout callout-{kind}">
  <div class="callout-title">{html.escape(title)}</div>
  <div class="callout-body">{html.escape(body)}</div>
</div>
        """,
        unsafe_allow_html=True,
    )


def render_info(title: str, body: str) -> None:
    _callout("info", title, body)


def render_tip(title: str, body: str) -> None:
    _callout("tip", title, body)


def render_card(title: str, meta: str = "", body: str = "") -> None:
    meta_html = f'<div class="card-meta">{html.escape(meta)}</div>' if meta else ""
    body_html = f'<div class="card-body">{html.escape(body)}</div>' if body else ""
    st.markdown(
        f'<div class="card"><div class="card-title">{html.escape(title)}</div>{meta_html}{body_html}</div>',
        unsafe_allow_html=True,
    )
