from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from data.connection import SupabaseClient, SupabaseError
from data.queries import q_user_video_like, q_video_comments, q_video_progress, q_videos
from log_config import get_logger


log = get_logger(__name__)


def fetch_videos(
    client: SupabaseClient, grade: Optional[str] = None, subject: Optional[str] = None, topic: Optional[str] = None
) -> list[dict]:
    """Videos newest first, optionally narrowed by grade/subject/topic."""
    try:
        return client.select(q_videos(grade, subject, topic))
    except SupabaseError as e:
        log.error("Error fetching videos: %s", e.message)
        raise


def fetch_like_count(client: SupabaseClient, video_id: str) -> int:
    try:
        return client.count("video_likes", (("video_id", "eq", video_id),))
    except SupabaseError as e:
        log.error("Error fetching like count for %s: %s", video_id, e.message)
        return 0


def fetch_user_like_status(client: SupabaseClient, user_id: Optional[str], video_id: str) -> bool:
    if not user_id:
        return False
    try:
        return client.select_one(q_user_video_like(user_id, video_id)) is not None
    except SupabaseError as e:
        log.error("Error fetching like status: %s", e.message)
        return False


def like_video(client: SupabaseClient, user_id: str, video_id: str) -> None:
    try:
        client.insert("video_likes", [{"user_id": user_id, "video_id": video_id}], returning=False)
    except SupabaseError as e:
        if e.is_unique_violation:
            log.info("User %s already liked video %s", user_id, video_id)
            return
        log.error("Error liking video: %s", e.message)
        raise


def unlike_video(client: SupabaseClient, user_id: str, video_id: str) -> None:
    client.delete("video_likes", (("user_id", "eq", user_id), ("video_id", "eq", video_id)))


def fetch_comments(client: SupabaseClient, video_id: str) -> list[dict]:
    return client.select(q_video_comments(video_id))


def add_comment(client: SupabaseClient, user_id: str, video_id: str, comment: str) -> dict:
    text = comment.strip()
    if not text:
        raise ValueError("Comment cannot be empty")
    rows = client.insert("video_comments", [{"user_id": user_id, "video_id": video_id, "comment": text}])
    if not rows:
        raise SupabaseError("Failed to add comment, no data returned.")
    return rows[0]


def fetch_video_progress(client: SupabaseClient, user_id: Optional[str], video_id: str) -> Optional[dict]:
    if not user_id:
        return None
    try:
        return client.select_one(q_video_progress(user_id, video_id))
    except SupabaseError as e:
        log.error("Error fetching video progress: %s", e.message)
        return None


def update_video_progress(client: SupabaseClient, user_id: Optional[str], video_id: str, watched_seconds: float) -> None:
    """Best effort: progress pings are frequent, so failures are logged and dropped."""
    if not user_id:
        return
    try:
        client.upsert(
            "video_progress",
            {
                "user_id": user_id,
                "video_id": video_id,
                "watched_seconds": int(round(watched_seconds)),
                "last_updated": datetime.now(timezone.utc).isoformat(),
            },
            on_conflict="user_id,video_id",
        )
    except SupabaseError as e:
        log.error("Error updating video progress: %s", e.message)


def _rpc_values(client: SupabaseClient, fn: str, key: str, params: Optional[dict] = None) -> list[str]:
    try:
        data = client.rpc(fn, params) or []
    except SupabaseError as e:
        log.error("Error calling %s: %s", fn, e.message)
        return []
    return [item[key] if isinstance(item, dict) else item for item in data]


def fetch_distinct_grades(client: SupabaseClient) -> list[str]:
    return _rpc_values(client, "get_distinct_grades", "grade")


def fetch_distinct_subjects(client: SupabaseClient, grade: Optional[str] = None) -> list[str]:
    return _rpc_values(client, "get_distinct_subjects", "subject", {"p_grade": grade})


def fetch_distinct_topics(client: SupabaseClient, grade: Optional[str] = None, subject: Optional[str] = None) -> list[str]:
    return _rpc_values(client, "get_distinct_topics", "topic", {"p_grade": grade, "p_subject": subject})
