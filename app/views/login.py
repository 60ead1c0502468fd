from __future__ import annotations

import streamlit as st

from components.auth import set_session
from components.narrative import render_info
from components.sidebar import go_to
from config import AppConfig
from data import users
from data.connection import SupabaseAuthError, SupabaseConfigError, SupabaseError
from data.service import client_for


def _finish(cfg: AppConfig, session: users.AuthSession) -> None:
    client = client_for(cfg, session.access_token)
    try:
        profile = users.load_profile(client, session.user)
    except SupabaseError as e:
        st.error(f"Signed in, but your profile could not be loaded: {e.message}")
        return
    set_session(session, profile)
    st.toast(f"Welcome, {profile.name or profile.email}!")
    go_to("dashboard")
    st.rerun()


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Sign in")
    if not cfg.is_supabase_configured:
        render_info(
            "Accounts need Supabase",
            "Set SUPABASE_URL and SUPABASE_ANON_KEY in .env to sign in. With mock data on, you can browse and book as a demo student.",
        )
        return

    client = client_for(cfg)
    login_tab, signup_tab = st.tabs(["Sign in", "Create account"])

    with login_tab:
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            try:
                session = users.sign_in(client, email, password)
            except (SupabaseAuthError, SupabaseConfigError) as e:
                st.error(f"Login failed: {e.message}")
            else:
                _finish(cfg, session)

        st.link_button("Continue with Google", client.oauth_url("google", cfg.site_url))

    with signup_tab:
        with st.form("signup_form"):
            name = st.text_input("Full name")
            email = st.text_input("Email", key="signup_email")
            password = st.text_input("Password", type="password", key="signup_password")
            confirm = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            if password != confirm:
                st.error("Passwords do not match.")
            elif len(password) < 6:
                st.error("Password must be at least 6 characters.")
            else:
                try:
                    session = users.sign_up(client, email, password, name)
                except (SupabaseAuthError, SupabaseConfigError) as e:
                    st.error(f"Sign up failed: {e.message}")
                else:
                    _finish(cfg, session)
