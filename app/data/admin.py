"""Admin data access: platform stats and activity, mentor statistics, video and user management."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import pandas as pd

from data.connection import SupabaseClient, SupabaseError
from data.derive import parse_timestamp
from data.mentorship import SlotPolicy, average_rating, calculate_session_price
from data.queries import TableQuery, q_newest, q_profile_role, q_profiles
from log_config import get_logger


log = get_logger(__name__)

VIDEO_FIELDS = ("title", "grade", "subject", "topic", "video_url", "thumbnail_url")
USER_ROLES = ("student", "mentor", "admin")
USER_STATUSES = ("active", "inactive")
USER_FIELDS = ("name", "role", "avatar_url", "status")
LIMITED_EMAIL = "[Access limited]"


class AdminError(RuntimeError):
    pass


@dataclass(frozen=True)
class DashboardStats:
    total_users: int = 0
    total_mentors: int = 0
    total_videos: int = 0


@dataclass
class MentorStats:
    total_mentors: int = 0
    active_mentors: int = 0
    total_bookings: int = 0
    total_revenue: float = 0.0
    average_rating: float = 0.0
    top_fields: list = field(default_factory=list)  # [(field, count)]
    recent_bookings: list = field(default_factory=list)


def fetch_dashboard_stats(client: SupabaseClient) -> DashboardStats:
    return DashboardStats(
        total_users=client.count("profiles"),
        total_mentors=client.count("profiles", (("role", "eq", "mentor"),)),
        total_videos=client.count("videos"),
    )


def fetch_recent_activity(client: SupabaseClient, limit: int = 5) -> list[dict]:
    """New users, new videos and recent video views merged newest first."""
    items: list[dict] = []
    for row in client.select(q_newest("profiles", "id,name,created_at", limit=limit)):
        items.append(
            {"id": f"user-{row['id']}", "type": "user_joined", "title": f"{row.get('name') or 'A new user'} joined", "timestamp": row.get("created_at")}
        )
    for row in client.select(q_newest("videos", "id,title,created_at", limit=limit)):
        items.append(
            {"id": f"video-{row['id']}", "type": "video_added", "title": f"New video: {row.get('title')}", "timestamp": row.get("created_at")}
        )
    views = q_newest("video_progress", "id,last_updated,videos(title),profiles(name)", order_column="last_updated", limit=limit)
    try:
        rows = client.select(views)
    except SupabaseError as e:
        # Embedding profiles needs a FK that not every project has
        log.warning("Recent views unavailable: %s", e.message)
        rows = []
    for row in rows:
        video = row.get("videos") or {}
        viewer = row.get("profiles") or {}
        items.append(
            {
                "id": f"view-{row['id']}",
                "type": "video_viewed",
                "title": f"{viewer.get('name') or 'Someone'} watched {video.get('title') or 'a video'}",
                "timestamp": row.get("last_updated"),
            }
        )
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    items.sort(key=lambda i: parse_timestamp(i["timestamp"]) or epoch, reverse=True)
    return items[:limit]


def _names(client: SupabaseClient, table: str, ids: list) -> dict:
    if not ids:
        return {}
    rows = client.select(TableQuery(table, select="id,name").where("id", "in", ids))
    return {r["id"]: r.get("name") for r in rows}


def fetch_mentor_stats(
    client: SupabaseClient, now: Optional[datetime] = None, policy: SlotPolicy = SlotPolicy()
) -> MentorStats:
    now = now or datetime.now(timezone.utc)
    mentors = pd.DataFrame(client.select(TableQuery("mentors", select="id,name,field,hourly_rate")))
    sessions = pd.DataFrame(client.select(TableQuery("sessions", select="id,mentor_id,user_id,session_time,status")))
    ratings = [r.get("rating") for r in client.select(TableQuery("mentor_feedback", select="rating"))]

    stats = MentorStats(total_mentors=len(mentors), total_bookings=len(sessions), average_rating=average_rating(ratings))
    if not mentors.empty and "field" in mentors:
        counts = mentors["field"].dropna().value_counts().head(5)
        stats.top_fields = list(counts.items())
    if sessions.empty:
        return stats

    sessions["starts_at"] = pd.to_datetime(sessions["session_time"], utc=True, errors="coerce")
    window = (sessions["starts_at"] >= now - timedelta(days=30)) & (sessions["starts_at"] <= now)
    recent = sessions[window]
    stats.active_mentors = int(recent["mentor_id"].nunique())

    completed = sessions[sessions["status"] == "completed"]
    if not completed.empty and not mentors.empty:
        rates = mentors.set_index("id")["hourly_rate"].fillna(0).astype(float)
        per_session = completed["mentor_id"].map(rates).fillna(0)
        stats.total_revenue = float(
            sum(calculate_session_price(rate, policy.duration_minutes) for rate in per_session)
        )

    newest = sessions.sort_values("starts_at", ascending=False).head(5)
    mentor_names = dict(zip(mentors["id"], mentors["name"])) if not mentors.empty else {}
    student_names = _names(client, "profiles", newest["user_id"].dropna().unique().tolist())
    stats.recent_bookings = [
        {
            "id": r["id"],
            "mentor_name": mentor_names.get(r["mentor_id"]) or "Unknown",
            "student_name": student_names.get(r["user_id"]) or "Unknown",
            "date": r["session_time"],
            "status": r["status"],
        }
        for r in newest.to_dict("records")
    ]
    return stats


def update_mentor_rate(client: SupabaseClient, mentor_id: str, hourly_rate: float, currency: str) -> bool:
    if hourly_rate < 0:
        raise ValueError("Hourly rate cannot be negative")
    try:
        client.update("mentors", {"hourly_rate": hourly_rate, "currency": currency}, (("id", "eq", mentor_id),), returning=False)
    except SupabaseError as e:
        log.error("Error updating mentor rate: %s", e.message)
        return False
    return True


# --- Videos ---

def _video_values(values: dict, partial: bool) -> dict:
    clean = {}
    for key in VIDEO_FIELDS:
        if key not in values:
            continue
        value = values[key]
        clean[key] = (value.strip() or None) if isinstance(value, str) else value
    required = [k for k in ("title", "video_url") if (k in clean or not partial) and not clean.get(k)]
    if required:
        raise ValueError("Title and URL are required")
    return clean


def add_video(client: SupabaseClient, video: dict, uploaded_by: Optional[str] = None) -> dict:
    row = _video_values(video, partial=False)
    if uploaded_by:
        row["uploaded_by"] = uploaded_by
    rows = client.insert("videos", [row])
    if not rows:
        raise AdminError("Failed to add video.")
    log.info("Video added: %s", row["title"])
    return rows[0]


def update_video(client: SupabaseClient, video_id: str, updates: dict) -> dict:
    values = _video_values(updates, partial=True)
    if not values:
        raise ValueError("Nothing to update")
    rows = client.update("videos", values, (("id", "eq", video_id),))
    if not rows:
        raise AdminError("Video not found.")
    return rows[0]


def delete_video(client: SupabaseClient, video_id: str) -> None:
    client.delete("videos", (("id", "eq", video_id),))
    log.info("Video %s deleted", video_id)


# --- Users ---

def fetch_users(client: SupabaseClient, admin_client: Optional[SupabaseClient] = None) -> list[dict]:
    """
    Profiles joined with auth data (email, last sign-in) when a service-key
    client is available. Without one the list still loads, emails masked.
    """
    profiles = client.select(q_profiles())
    auth_users: dict = {}
    if admin_client is not None:
        try:
            auth_users = {u["id"]: u for u in admin_client.admin_list_users() if u.get("id")}
        except SupabaseError as e:
            log.warning("Limited access mode: cannot list auth users: %s", e.message)

    users = []
    for p in profiles:
        auth = auth_users.get(p.get("id")) or {}
        meta = auth.get("user_metadata") or {}
        users.append(
            {
                "id": p.get("id"),
                "name": p.get("name") or "Unknown",
                "email": auth.get("email") or LIMITED_EMAIL,
                "role": p.get("role") or "student",
                "avatar_url": p.get("avatar_url"),
                "status": p.get("status") or meta.get("status") or "active",
                "created_at": p.get("created_at"),
                "last_login": auth.get("last_sign_in_at"),
            }
        )
    return users


def filter_users(users: list[dict], term: str) -> list[dict]:
    """Case-insensitive match on name, email or role."""
    term = (term or "").strip().lower()
    if not term:
        return list(users)
    return [u for u in users if any(term in str(u.get(k) or "").lower() for k in ("name", "email", "role"))]


def update_user(client: SupabaseClient, user_id: str, updates: dict) -> dict:
    values = {k: v for k, v in updates.items() if k in USER_FIELDS}
    if "role" in values and values["role"] not in USER_ROLES:
        raise ValueError(f"Unknown role: {values['role']}")
    if "status" in values and values["status"] not in USER_STATUSES:
        raise ValueError(f"Unknown status: {values['status']}")
    if "name" in values:
        values["name"] = (values["name"] or "").strip()
        if not values["name"]:
            raise ValueError("Name is required")
    if not values:
        raise ValueError("Nothing to update")
    rows = client.update("profiles", values, (("id", "eq", user_id),))
    if not rows:
        raise AdminError("User not found.")
    log.info("User %s updated: %s", user_id, ", ".join(sorted(values)))
    return rows[0]


def set_user_status(client: SupabaseClient, user_id: str, status: str) -> dict:
    return update_user(client, user_id, {"status": status})


def toggled_status(status: Optional[str]) -> str:
    return "inactive" if (status or "active") == "active" else "active"


def delete_user(client: SupabaseClient, user_id: str, admin_client: Optional[SupabaseClient]) -> None:
    """Delete the auth user (profile rows cascade). Admin accounts are never deleted."""
    profile = client.select_one(q_profile_role(user_id))
    if profile is None:
        raise AdminError("User not found.")
    if profile.get("role") == "admin":
        raise AdminError("Admin users cannot be deleted.")
    if admin_client is None:
        raise AdminError("Deleting users needs SUPABASE_SERVICE_ROLE_KEY.")
    admin_client.admin_delete_user(user_id)
    log.info("User %s deleted", user_id)
