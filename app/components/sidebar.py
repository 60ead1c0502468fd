from __future__ import annotations

from dataclasses import dataclass

import streamlit as st

from components.auth import access_token, clear_session, current_profile, is_admin
from config import AppConfig
from data import users
from data.service import client_for


@dataclass(frozen=True)
class SidebarState:
    view: str
    use_mock: bool


NAV_ITEMS = [
    ("🏠 Home", "home"),
    ("📊 Dashboard", "dashboard"),
    ("🎬 Videos", "videos"),
    ("🃏 Flashcards", "flashcards"),
    ("📝 Quizzes", "quizzes"),
    ("🧑‍🏫 Mentors", "mentors"),
    ("📅 My Sessions", "my_sessions"),
    ("📄 Past Papers", "past_papers"),
    ("🎓 Scholarships", "scholarships"),
    ("💬 Ask Muzanga", "assistant"),
    ("👤 Profile", "profile"),
]

ADMIN_NAV_ITEMS = [
    ("🛠️ Admin", "admin"),
]


def nav_items() -> list[tuple[str, str]]:
    return NAV_ITEMS + (ADMIN_NAV_ITEMS if is_admin() else [])


def go_to(view: str) -> None:
    """Switch page from inside a view (takes effect on the next rerun)."""
    for label, key in nav_items() + [("🔑 Sign in", "login")]:
        if key == view:
            st.session_state["nav_label"] = label
            st.session_state["nav_view"] = view
            return


def render_sidebar(cfg: AppConfig) -> SidebarState:
    with st.sidebar:
        st.markdown("### 🎓 Skutopia Academy")
        st.caption("Learn, practise and meet mentors")

        items = nav_items()
        labels = [l for l, _ in items]
        default_label = st.session_state.get("nav_label", labels[0])
        idx = labels.index(default_label) if default_label in labels else 0

        label = st.radio("Nav", labels, index=idx, label_visibility="collapsed")
        if label != st.session_state.get("nav_label") or "nav_view" not in st.session_state:
            st.session_state["nav_view"] = dict(items)[label]
        st.session_state["nav_label"] = label
        view = st.session_state["nav_view"]

        st.divider()
        profile = current_profile()
        if profile:
            st.markdown(f"**{profile.name or profile.email}**")
            st.caption(profile.role.title())
            if st.button("Sign out", use_container_width=True):
                users.sign_out(client_for(cfg, access_token()))
                clear_session()
                go_to("home")
                st.rerun()
        elif st.button("🔑 Sign in", use_container_width=True):
            go_to("login")
            st.rerun()

        with st.expander("⚙️ Settings", expanded=False):
            use_mock = st.toggle(
                "Use mock data",
                value=st.session_state.get("use_mock", cfg.default_use_mock),
                help="When off, pages read from Supabase. Any failure falls back to mock data.",
            )
            st.session_state["use_mock"] = use_mock
            if not cfg.is_supabase_configured:
                st.caption("SUPABASE_URL / SUPABASE_ANON_KEY not set: live reads will fall back.")
    use_mock = st.session_state.get("use_mock", cfg.default_use_mock)

    return SidebarState(view=view, use_mock=use_mock)
