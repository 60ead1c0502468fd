"""Signed-in user held in st.session_state across reruns."""
from __future__ import annotations

from typing import Optional

import streamlit as st

from data.users import AuthSession, UserProfile


# Mock mode lets visitors try bookings and quizzes without an account
DEMO_USER_ID = "demo-student"

_SESSION_KEY = "auth_session"
_PROFILE_KEY = "auth_profile"


def set_session(session: AuthSession, profile: UserProfile) -> None:
    st.session_state[_SESSION_KEY] = session
    st.session_state[_PROFILE_KEY] = profile


def clear_session() -> None:
    st.session_state.pop(_SESSION_KEY, None)
    st.session_state.pop(_PROFILE_KEY, None)


def current_session() -> Optional[AuthSession]:
    return st.session_state.get(_SESSION_KEY)


def current_profile() -> Optional[UserProfile]:
    return st.session_state.get(_PROFILE_KEY)


def access_token() -> Optional[str]:
    session = current_session()
    return session.access_token if session else None


def current_user_id(use_mock: bool) -> Optional[str]:
    session = current_session()
    if session:
        return session.user_id
    return DEMO_USER_ID if use_mock else None


def is_admin() -> bool:
    profile = current_profile()
    return bool(profile and profile.is_admin)
