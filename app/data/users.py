"""
Users, auth and the student dashboard.

Auth goes through GoTrue; profile rows live in `user_profiles` (role,
school, grade) and `users` (display data, theme, overall progress).
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any, Optional

from data.connection import SupabaseAuthError, SupabaseClient, SupabaseError
from data.mentorship import LocalBookingStore, MentorshipSession, fetch_user_sessions
from data.queries import q_progress, q_recent_activities, q_user, q_user_profile
from log_config import get_logger


log = get_logger(__name__)

AVATAR_BUCKET = "avatars"
THEMES = ("light", "dark")
DEFAULT_USER = {
    "name": "New User",
    "email": "user@example.com",
    "avatar_url": "default-avatar.png",
    "overall_progress": 0,
}


class ProfileError(RuntimeError):
    pass


@dataclass
class AuthSession:
    access_token: str
    refresh_token: Optional[str]
    user: dict

    @property
    def user_id(self) -> str:
        return self.user.get("id", "")

    @property
    def email(self) -> str:
        return self.user.get("email", "")


@dataclass
class UserProfile:
    id: str
    email: str
    name: str
    role: str = "student"
    avatar_url: Optional[str] = None
    profile_completed: bool = False
    extra: dict = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_mentor(self) -> bool:
        return self.role == "mentor"


@dataclass
class DashboardData:
    user: Optional[dict]
    progress: list
    sessions: list  # MentorshipSession
    recent_activities: list

    @property
    def upcoming_sessions(self) -> list[MentorshipSession]:
        now = datetime.now(timezone.utc)
        return [s for s in self.sessions if s.status != "cancelled" and s.starts_at and s.starts_at >= now]


# --- Auth ---

def _session_from(payload: dict) -> AuthSession:
    token = payload.get("access_token")
    if not token:
        # Sign-up with email confirmation enabled returns the user but no session
        raise SupabaseAuthError("Check your email to confirm your account before signing in.")
    return AuthSession(access_token=token, refresh_token=payload.get("refresh_token"), user=payload.get("user") or {})


def sign_in(client: SupabaseClient, email: str, password: str) -> AuthSession:
    if not email or not password:
        raise SupabaseAuthError("Email and password are required.")
    session = _session_from(client.sign_in_with_password(email.strip(), password))
    log.info("User signed in: %s", session.user_id)
    return session


def sign_up(client: SupabaseClient, email: str, password: str, name: str) -> AuthSession:
    if not email or not password or not name:
        raise SupabaseAuthError("Name, email and password are required.")
    metadata = {"name": name.strip(), "avatar_url": f"https://i.pravatar.cc/150?u={int(time.time() * 1000)}"}
    return _session_from(client.sign_up(email.strip(), password, metadata))


def sign_out(client: SupabaseClient) -> None:
    try:
        client.sign_out()
    except SupabaseError as e:
        # The local session is dropped regardless
        log.warning("Sign out failed: %s", e.message)


def load_profile(client: SupabaseClient, auth_user: dict) -> UserProfile:
    """Profile from `user_profiles`, or from auth metadata when no row exists yet."""
    user_id = auth_user.get("id", "")
    meta = auth_user.get("user_metadata") or {}
    try:
        row = client.select_one(q_user_profile(user_id))
    except SupabaseError as e:
        if not e.is_not_found:
            log.error("Error loading profile for %s: %s", user_id, e.message)
            raise
        row = None
    if row is None:
        log.info("No profile row for %s, using auth metadata", user_id)
        return UserProfile(
            id=user_id,
            email=auth_user.get("email", ""),
            name=meta.get("name") or auth_user.get("email", ""),
            role=meta.get("role") or "student",
            avatar_url=meta.get("avatar_url"),
            profile_completed=False,
        )
    known = {"user_id", "name", "role", "avatar_url", "profile_completed"}
    return UserProfile(
        id=user_id,
        email=auth_user.get("email", ""),
        name=row.get("name") or meta.get("name") or "",
        role=row.get("role") or "student",
        avatar_url=row.get("avatar_url") or meta.get("avatar_url"),
        profile_completed=bool(row.get("profile_completed")),
        extra={k: v for k, v in row.items() if k not in known},
    )


# --- Profile ---

def ensure_user_exists(client: SupabaseClient, user_id: str) -> dict:
    existing = client.select_one(q_user(user_id))
    if existing:
        return existing
    rows = client.insert("users", [{"id": user_id, **DEFAULT_USER}])
    log.info("Created default user row for %s", user_id)
    return rows[0] if rows else {"id": user_id, **DEFAULT_USER}


def fetch_user_profile(client: SupabaseClient, user_id: str) -> Optional[dict]:
    if not user_id:
        raise ProfileError("User ID is required to fetch profile.")
    return client.select_one(q_user(user_id))


def update_user_profile(client: SupabaseClient, user_id: str, updates: dict) -> dict:
    if not user_id:
        raise ProfileError("User ID is required to update profile.")
    values = {k: v for k, v in updates.items() if k != "id"}
    if not values:
        raise ProfileError("Nothing to update.")
    try:
        rows = client.update("users", values, (("id", "eq", user_id),))
    except SupabaseError as e:
        log.error("Error updating profile for %s: %s", user_id, e.message)
        raise ProfileError(e.message) from e
    if not rows:
        raise ProfileError("Profile not found.")
    return rows[0]


def avatar_path(user_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    ext = PurePath(filename).suffix.lstrip(".").lower() or "png"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{user_id}-{stamp}.{ext}"


def upload_avatar(client: SupabaseClient, user_id: str, filename: str, content: bytes, content_type: str) -> str:
    """Upload to the avatars bucket and point the profile at the new public URL."""
    if not user_id:
        raise ProfileError("User ID is required to upload an avatar.")
    path = avatar_path(user_id, filename)
    client.upload(AVATAR_BUCKET, path, content, content_type, upsert=True)
    url = client.public_url(AVATAR_BUCKET, path)
    update_user_profile(client, user_id, {"avatar_url": url})
    return url


def update_theme(client: SupabaseClient, user_id: str, theme: str) -> dict:
    if theme not in THEMES:
        raise ProfileError(f"Unknown theme: {theme}")
    return update_user_profile(client, user_id, {"theme": theme})


def delete_current_user_account(client: SupabaseClient) -> None:
    data: Any = client.invoke_function("delete-user-account")
    if not isinstance(data, dict) or not data.get("success"):
        message = data.get("error") if isinstance(data, dict) else None
        raise ProfileError(message or "Failed to delete account.")
    log.info("Account deleted")


# --- Dashboard ---

def fetch_dashboard_data(
    client: Optional[SupabaseClient], user_id: str, store: Optional[LocalBookingStore] = None
) -> DashboardData:
    user = None
    progress: list = []
    activities: list = []
    if client is not None:
        user = ensure_user_exists(client, user_id)
        progress = client.select(q_progress(user_id))
        activities = client.select(q_recent_activities(user_id, limit=10))
    sessions = fetch_user_sessions(client, user_id, store)
    return DashboardData(user=user, progress=progress, sessions=sessions, recent_activities=activities)
