"""
PostgREST query builders.

One `q_*` function per dataset; each returns a `TableQuery` that the
connection layer turns into `/rest/v1/<table>?select=...&col=op.value` params.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Optional


MENTOR_COLUMNS = (
    "id,name,bio,field,occupation,university,company,linkedin,avatar_url,"
    "available,hourly_rate,currency,created_at"
)

FLASHCARD_COLUMNS = "id,topic_id,grade,question,answer,difficulty_level,created_at,updated_at"

# Session rows that occupy a mentor slot. 'scheduled' in the table is what the
# UI calls 'booked'.
OCCUPYING_STATUSES = ("scheduled", "completed")


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _quote(value: Any) -> str:
    text = _literal(value).replace('"', '\\"')
    return f'"{text}"'


def render_filter(op: str, value: Any) -> str:
    """Render one PostgREST operator expression, e.g. ``eq.10`` or ``in.("a","b")``."""
    if op == "in":
        return "in.(" + ",".join(_quote(v) for v in value) + ")"
    if op == "is":
        return f"is.{_literal(value)}"
    if op in ("eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike"):
        return f"{op}.{_literal(value)}"
    raise ValueError(f"Unsupported filter operator: {op}")


def search_term(term: str) -> str:
    # Characters that would break PostgREST's or=(...) grammar
    for ch in ",()*":
        term = term.replace(ch, " ")
    return term.strip()


@dataclass(frozen=True)
class TableQuery:
    table: str
    select: str = "*"
    filters: tuple = field(default_factory=tuple)  # (column, op, value)
    or_filter: Optional[str] = None
    order: tuple = field(default_factory=tuple)  # ("col", ascending)
    limit: Optional[int] = None

    def where(self, column: str, op: str, value: Any) -> "TableQuery":
        return replace(self, filters=self.filters + ((column, op, value),))

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self.where(column, "eq", value)

    def order_by(self, column: str, ascending: bool = True) -> "TableQuery":
        return replace(self, order=self.order + ((column, ascending),))

    def take(self, n: int) -> "TableQuery":
        return replace(self, limit=n)

    def params(self) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = [("select", " ".join(self.select.split()))]
        for column, op, value in self.filters:
            out.append((column, render_filter(op, value)))
        if self.or_filter:
            out.append(("or", self.or_filter))
        if self.order:
            out.append(("order", ",".join(f"{c}.{'asc' if asc else 'desc'}" for c, asc in self.order)))
        if self.limit is not None:
            out.append(("limit", str(self.limit)))
        return out


def filter_params(filters: Iterable[tuple]) -> list[tuple[str, str]]:
    return [(column, render_filter(op, value)) for column, op, value in filters]


# --- Videos ---

def q_videos(grade: Optional[str] = None, subject: Optional[str] = None, topic: Optional[str] = None) -> TableQuery:
    q = TableQuery("videos").order_by("created_at", ascending=False)
    if grade:
        q = q.eq("grade", grade)
    if subject:
        q = q.eq("subject", subject)
    if topic:
        q = q.eq("topic", topic)
    return q


def q_user_video_like(user_id: str, video_id: str) -> TableQuery:
    return TableQuery("video_likes", select="id").eq("user_id", user_id).eq("video_id", video_id)


def q_video_comments(video_id: str) -> TableQuery:
    return TableQuery("video_comments").eq("video_id", video_id).order_by("created_at")


def q_video_progress(user_id: str, video_id: str) -> TableQuery:
    return TableQuery("video_progress").eq("user_id", user_id).eq("video_id", video_id)


# --- Mentors & sessions ---

def q_mentors(field_name: Optional[str] = None) -> TableQuery:
    q = TableQuery("mentors", select=MENTOR_COLUMNS).eq("available", True).order_by("name")
    if field_name:
        q = q.eq("field", field_name)
    return q


def q_mentor(mentor_id: str) -> TableQuery:
    return TableQuery("mentors", select=MENTOR_COLUMNS).eq("id", mentor_id)


def q_mentor_fields() -> TableQuery:
    return TableQuery("mentors", select="field").eq("available", True)


def q_booked_session_times(mentor_id: str, start_utc: datetime, end_utc: datetime) -> TableQuery:
    return (
        TableQuery("sessions", select="session_time")
        .eq("mentor_id", mentor_id)
        .where("status", "in", OCCUPYING_STATUSES)
        .where("session_time", "gte", start_utc)
        .where("session_time", "lt", end_utc)
    )


def q_user_sessions(user_id: str) -> TableQuery:
    return TableQuery("sessions").eq("user_id", user_id).order_by("session_time")


def q_mentor_feedback(mentor_id: str) -> TableQuery:
    return TableQuery("mentor_feedback").eq("mentor_id", mentor_id).order_by("created_at", ascending=False)


# --- Flashcards ---

def q_subjects() -> TableQuery:
    return TableQuery("subjects", select="id,name").order_by("name")


def q_topics(subject_id: Optional[str] = None) -> TableQuery:
    q = TableQuery("topics", select="id,name,subject_id").order_by("name")
    if subject_id:
        q = q.eq("subject_id", subject_id)
    return q


def q_tags() -> TableQuery:
    return TableQuery("tags", select="id,name").order_by("name")


def q_flashcards(
    topic_id: Optional[str] = None,
    topic_ids: Optional[list[str]] = None,
    grade: Optional[int] = None,
    difficulty: Optional[str] = None,
    tag_ids: Optional[list[str]] = None,
    term: Optional[str] = None,
) -> TableQuery:
    # Inner join on tags only when filtering by them, so untagged cards still show otherwise
    tags_join = "flashcard_tags!inner(tag:tags(id,name))" if tag_ids else "flashcard_tags(tag:tags(id,name))"
    select = (
        f"{FLASHCARD_COLUMNS},"
        "topic:topics!inner(id,name,subject_id,subject:subjects(id,name)),"
        f"{tags_join}"
    )
    q = TableQuery("flashcards", select=select).order_by("random_seed")
    if topic_id:
        q = q.eq("topic_id", topic_id)
    elif topic_ids is not None:
        q = q.where("topic_id", "in", topic_ids)
    if grade:
        q = q.eq("grade", grade)
    if difficulty:
        q = q.eq("difficulty_level", difficulty)
    if tag_ids:
        q = q.where("flashcard_tags.tag_id", "in", tag_ids)
    if term:
        t = search_term(term)
        if t:
            q = replace(q, or_filter=f"(question.ilike.*{t}*,answer.ilike.*{t}*)")
    return q


def q_flashcard_progress(user_id: str, flashcard_id: str) -> TableQuery:
    return TableQuery("user_flashcard_progress").eq("user_id", user_id).eq("flashcard_id", flashcard_id)


# --- Quizzes ---

def q_quiz_column(column: str, grade: Optional[str] = None, subject: Optional[str] = None) -> TableQuery:
    q = TableQuery("quizzes", select=column)
    if grade:
        q = q.eq("grade", grade)
    if subject:
        q = q.eq("subject", subject)
    return q


def q_quiz_questions(grade: str, subject: str, topic: str, limit: int = 20) -> TableQuery:
    return TableQuery("quizzes").eq("grade", grade).eq("subject", subject).eq("topic", topic).take(limit)


def q_attempt_responses(user_id: str, attempt_id: str) -> TableQuery:
    return (
        TableQuery("user_quiz_responses", select="id,quiz_id,selected_answer")
        .eq("user_id", user_id)
        .eq("quiz_attempt_id", attempt_id)
    )


def q_correct_answers(quiz_ids: list[str]) -> TableQuery:
    return TableQuery("quizzes", select="id,correct_answer").where("id", "in", quiz_ids)


def q_attempt_results(user_id: str, attempt_id: str) -> TableQuery:
    return (
        TableQuery("user_quiz_responses", select="*,quizzes(*)")
        .eq("user_id", user_id)
        .eq("quiz_attempt_id", attempt_id)
        .order_by("created_at")
    )


def q_leaderboard(limit: int = 10) -> TableQuery:
    return (
        TableQuery("leaderboard", select="user_id,highest_score,total_quizzes_taken,profiles(username)")
        .order_by("highest_score", ascending=False)
        .take(limit)
    )


def q_max_score() -> TableQuery:
    return TableQuery("leaderboard", select="highest_score").order_by("highest_score", ascending=False).take(1)


# --- Past papers & scholarships ---

def q_past_papers(subject: Optional[str] = None, year: Optional[int] = None, grade: Optional[str] = None) -> TableQuery:
    q = TableQuery("past_papers").order_by("year", ascending=False).order_by("subject")
    if subject:
        q = q.eq("subject", subject)
    if year:
        q = q.eq("year", year)
    if grade:
        q = q.eq("grade", grade)
    return q


def q_column(table: str, column: str) -> TableQuery:
    return TableQuery(table, select=column)


def q_scholarships(
    country: Optional[str] = None, field_of_study: Optional[str] = None, level: Optional[str] = None
) -> TableQuery:
    q = TableQuery("scholarships").order_by("deadline")
    if country:
        q = q.eq("country", country)
    if field_of_study:
        q = q.where("field_of_study", "ilike", f"*{search_term(field_of_study)}*")
    if level:
        q = q.eq("level", level)
    return q


# --- Users & dashboard ---

def q_user(user_id: str) -> TableQuery:
    return TableQuery("users").eq("id", user_id)


def q_user_profile(user_id: str) -> TableQuery:
    return TableQuery("user_profiles").eq("user_id", user_id)


def q_progress(user_id: str) -> TableQuery:
    return TableQuery("progress").eq("user_id", user_id)


def q_recent_activities(user_id: str, limit: int = 10) -> TableQuery:
    return TableQuery("recent_activities").eq("user_id", user_id).order_by("timestamp", ascending=False).take(limit)


# --- Admin ---

def q_newest(table: str, select: str, order_column: str = "created_at", limit: int = 5) -> TableQuery:
    return TableQuery(table, select=select).order_by(order_column, ascending=False).take(limit)


def q_profiles() -> TableQuery:
    return TableQuery("profiles").order_by("created_at", ascending=False)


def q_profile_role(user_id: str) -> TableQuery:
    return TableQuery("profiles", select="id,role").eq("id", user_id)
