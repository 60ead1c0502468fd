from __future__ import annotations

import streamlit as st

from components.auth import access_token, clear_session, current_profile, current_session
from components.narrative import render_info, render_page_intro
from components.sidebar import go_to
from config import AppConfig
from data import users
from data.connection import SupabaseError
from data.service import client_for
from data.users import ProfileError


EDITABLE_FIELDS = [("name", "Full name"), ("bio", "Bio"), ("phone", "Phone"), ("location", "Location")]


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Profile")
    session = current_session()
    if session is None:
        render_info("You're not signed in", "Sign in to edit your profile, avatar and theme.")
        if st.button("🔑 Sign in", type="primary"):
            go_to("login")
            st.rerun()
        return

    render_page_intro("Your account", f"Signed in as {session.email}.")
    client = client_for(cfg, access_token())
    try:
        user = users.ensure_user_exists(client, session.user_id)
    except SupabaseError as e:
        st.error(f"Could not load your profile: {e.message}")
        return

    auth_profile = current_profile()
    left, right = st.columns([1, 2])
    with left:
        if (user.get("avatar_url") or "").startswith("http"):
            st.image(user["avatar_url"], width=140)
        if auth_profile:
            st.caption(f"Role: {auth_profile.role}")
        upload = st.file_uploader("Change avatar", type=["png", "jpg", "jpeg", "webp"])
        if upload is not None and st.button("Upload avatar"):
            try:
                users.upload_avatar(client, session.user_id, upload.name, upload.getvalue(), upload.type or "image/png")
                st.success("Avatar updated.")
                st.rerun()
            except (ProfileError, SupabaseError) as e:
                st.error(f"Could not upload avatar: {e}")

        current_theme = user.get("theme") if user.get("theme") in users.THEMES else "light"
        theme = st.selectbox("Theme", users.THEMES, index=users.THEMES.index(current_theme))
        if theme != current_theme:
            try:
                users.update_theme(client, session.user_id, theme)
                st.toast(f"Theme set to {theme}")
            except ProfileError as e:
                st.error(str(e))

    with right:
        with st.form("profile_form"):
            values = {key: st.text_input(label, value=user.get(key) or "") for key, label in EDITABLE_FIELDS}
            if st.form_submit_button("Save changes", type="primary"):
                changed = {k: v.strip() for k, v in values.items() if v.strip() != (user.get(k) or "")}
                if not changed:
                    st.info("Nothing changed.")
                else:
                    try:
                        users.update_user_profile(client, session.user_id, changed)
                        st.success("Profile saved.")
                    except ProfileError as e:
                        st.error(f"Could not save profile: {e}")

        with st.expander("⚠️ Delete account"):
            st.write("This permanently deletes your account and all your data.")
            confirm = st.text_input("Type DELETE to confirm")
            if st.button("Delete my account", disabled=confirm != "DELETE"):
                try:
                    users.delete_current_user_account(client)
                except (ProfileError, SupabaseError) as e:
                    st.error(f"Could not delete account: {e}")
                else:
                    clear_session()
                    go_to("home")
                    st.rerun()
