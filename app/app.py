"""
Routing only.

All view logic lives in app/views/.
All env reads happen ONLY in config.py.
"""

from __future__ import annotations

import os
import sys

# Make `app/` importable as a flat module path when running:
#   streamlit run app/app.py
APP_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(APP_DIR, ".."))
for p in [APP_DIR, REPO_ROOT]:
    if p not in sys.path:
        sys.path.insert(0, p)

import streamlit as st  # noqa: E402

from components.auth import is_admin  # noqa: E402
from components.header import render_header  # noqa: E402
from components.styles import APP_TITLE, apply_theme  # noqa: E402
from components.sidebar import render_sidebar  # noqa: E402
from config import get_config  # noqa: E402
from log_config import get_logger, setup_logging  # noqa: E402

from views import (  # noqa: E402
    admin,
    assistant,
    dashboard,
    flashcards,
    home,
    login,
    mentors,
    my_sessions,
    past_papers,
    profile,
    quizzes,
    scholarships,
    videos,
)


ROUTES = {
    "home": home,
    "dashboard": dashboard,
    "videos": videos,
    "flashcards": flashcards,
    "quizzes": quizzes,
    "mentors": mentors,
    "my_sessions": my_sessions,
    "past_papers": past_papers,
    "scholarships": scholarships,
    "assistant": assistant,
    "profile": profile,
    "login": login,
    "admin": admin,
}


def main() -> None:
    apply_theme()
    cfg = get_config()
    setup_logging(cfg)
    state = render_sidebar(cfg)

    render_header(
        title=APP_TITLE,
        subtitle="Videos, flashcards, quizzes and mentors for Zambian learners",
        source="mock" if state.use_mock else "supabase",
    )

    view = ROUTES.get(state.view)
    if view is None or (state.view == "admin" and not is_admin()):
        get_logger(__name__).warning("Unknown or forbidden view requested: %s", state.view)
        st.error("Unknown view")
        return
    view.render(cfg, state.use_mock)


if __name__ == "__main__":
    main()
