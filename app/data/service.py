from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import pandas as pd

from config import AppConfig
from data import catalog, flashcards, mentorship, mock_data, quizzes, users, videos
from data.cache import MentorCache
from data.connection import SupabaseClient, get_supabase_client
from data.derive import split_multi, unique_sorted
from log_config import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class DataResult:
    df: pd.DataFrame
    source: str  # "mock" | "supabase"
    warning: str | None = None

    def values(self, column: str) -> list:
        if self.df.empty or column not in self.df:
            return []
        return self.df[column].tolist()


def _fallback(use_mock: bool, fn_live: Callable[[], pd.DataFrame], fn_mock: Callable[[], pd.DataFrame]) -> DataResult:
    if use_mock:
        return DataResult(df=fn_mock(), source="mock")
    try:
        return DataResult(df=fn_live(), source="supabase")
    except Exception as e:
        log.warning("Live read failed, using mock data: %s: %s", type(e).__name__, e)
        return DataResult(df=fn_mock(), source="mock", warning=f"Fell back to mock data: {type(e).__name__}")


def _frame(rows: list[dict], columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    if df.empty and columns is not None:
        return pd.DataFrame(columns=list(columns))
    return df


def _values(column: str, values: Iterable) -> pd.DataFrame:
    return pd.DataFrame({column: list(values)})


def _where(df: pd.DataFrame, **equals) -> pd.DataFrame:
    for column, value in equals.items():
        if value not in (None, ""):
            df = df[df[column] == value]
    return df.reset_index(drop=True)


def client_for(cfg: AppConfig, access_token: Optional[str] = None) -> SupabaseClient:
    return get_supabase_client(cfg, access_token)


def admin_client_for(cfg: AppConfig) -> Optional[SupabaseClient]:
    """Service-key client for GoTrue admin calls; None when no service key is configured."""
    if not cfg.supabase_service_key:
        return None
    return SupabaseClient(cfg, use_service_key=True)


_mentor_cache: Optional[MentorCache] = None
_mentor_cache_lock = threading.Lock()


def mentor_cache(cfg: AppConfig) -> MentorCache:
    global _mentor_cache
    with _mentor_cache_lock:
        if _mentor_cache is None:
            _mentor_cache = MentorCache(ttl_seconds=cfg.cache_ttl_seconds)
        return _mentor_cache


# --- Videos ---

def get_videos(
    cfg: AppConfig,
    use_mock: bool,
    grade: Optional[str] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    token: Optional[str] = None,
) -> DataResult:
    client = client_for(cfg, token)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(videos.fetch_videos(client, grade, subject, topic)),
        fn_mock=lambda: _where(mock_data.videos_mock(), grade=grade, subject=subject, topic=topic),
    )


def get_video_filter_values(
    cfg: AppConfig, use_mock: bool, column: str, grade: Optional[str] = None, subject: Optional[str] = None
) -> DataResult:
    """Distinct grade / subject / topic values for cascading video filters."""
    client = client_for(cfg)

    def live() -> pd.DataFrame:
        if column == "grade":
            return _values(column, videos.fetch_distinct_grades(client))
        if column == "subject":
            return _values(column, videos.fetch_distinct_subjects(client, grade))
        return _values(column, videos.fetch_distinct_topics(client, grade, subject))

    return _fallback(
        use_mock,
        fn_live=live,
        fn_mock=lambda: _values(column, unique_sorted(_where(mock_data.videos_mock(), grade=grade, subject=subject)[column])),
    )


# --- Mentors ---

def get_mentors(cfg: AppConfig, use_mock: bool, field_name: Optional[str] = None, force_refresh: bool = False) -> DataResult:
    client = client_for(cfg)
    cache = mentor_cache(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(
            cache.mentors(lambda: mentorship.fetch_mentors(client, field_name), field_name, force_refresh)
        ),
        fn_mock=lambda: _where(mock_data.mentors_mock(), field=field_name),
    )


def get_mentor(cfg: AppConfig, use_mock: bool, mentor_id: str) -> DataResult:
    client = client_for(cfg)
    cache = mentor_cache(cfg)

    def live() -> pd.DataFrame:
        row = cache.mentor(mentor_id, lambda: mentorship.fetch_mentor(client, mentor_id))
        return _frame([row] if row else [])

    return _fallback(use_mock, fn_live=live, fn_mock=lambda: _where(mock_data.mentors_mock(), id=mentor_id))


def get_mentor_fields(cfg: AppConfig, use_mock: bool) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _values("field", mentorship.fetch_distinct_mentor_fields(client)),
        fn_mock=lambda: _values("field", unique_sorted(mock_data.mentors_mock()["field"])),
    )


# --- Flashcards ---

def get_flashcard_subjects(cfg: AppConfig, use_mock: bool) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(flashcards.fetch_subjects(client), ["id", "name"]),
        fn_mock=lambda: mock_data.flashcard_taxonomy_mock()[0],
    )


def get_flashcard_topics(cfg: AppConfig, use_mock: bool, subject_id: Optional[str] = None) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(flashcards.fetch_topics(client, subject_id), ["id", "name", "subject_id"]),
        fn_mock=lambda: _where(mock_data.flashcard_taxonomy_mock()[1], subject_id=subject_id),
    )


def get_flashcard_tags(cfg: AppConfig, use_mock: bool) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(flashcards.fetch_tags(client), ["id", "name"]),
        fn_mock=lambda: mock_data.flashcard_taxonomy_mock()[2],
    )


def _mock_flashcards(filters: flashcards.FlashcardFilters) -> pd.DataFrame:
    df = _where(
        mock_data.flashcards_mock(),
        subject_id=filters.subject_id,
        topic_id=filters.topic_id,
        grade=filters.grade,
        difficulty_level=filters.difficulty,
    )
    if filters.tag_ids:
        wanted = set(filters.tag_ids)
        df = df[df["tags"].apply(lambda tags: any(t["id"] in wanted for t in tags))]
    if filters.search:
        term = filters.search.lower()
        hit = df["question"].str.lower().str.contains(term, regex=False) | df["answer"].str.lower().str.contains(term, regex=False)
        df = df[hit]
    return df.reset_index(drop=True)


def get_flashcards(cfg: AppConfig, use_mock: bool, filters: flashcards.FlashcardFilters) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(flashcards.fetch_flashcards(client, filters)),
        fn_mock=lambda: _mock_flashcards(filters),
    )


# --- Quizzes ---

def get_quiz_filter_values(
    cfg: AppConfig, use_mock: bool, column: str, grade: Optional[str] = None, subject: Optional[str] = None
) -> DataResult:
    client = client_for(cfg)

    def live() -> pd.DataFrame:
        if column == "grade":
            return _values(column, quizzes.fetch_quiz_grades(client))
        if column == "subject":
            return _values(column, quizzes.fetch_quiz_subjects(client, grade))
        return _values(column, quizzes.fetch_quiz_topics(client, grade, subject))

    return _fallback(
        use_mock,
        fn_live=live,
        fn_mock=lambda: _values(
            column, unique_sorted(_where(mock_data.quiz_questions_mock(), grade=grade, subject=subject)[column])
        ),
    )


def get_quiz_questions(cfg: AppConfig, use_mock: bool, grade: str, subject: str, topic: str) -> DataResult:
    client = client_for(cfg)

    def mock() -> pd.DataFrame:
        df = _where(mock_data.quiz_questions_mock(), grade=grade, subject=subject, topic=topic)
        return df.sample(frac=1).head(quizzes.QUESTION_LIMIT).reset_index(drop=True)

    return _fallback(
        use_mock,
        fn_live=lambda: _frame(quizzes.fetch_quiz_questions(client, grade, subject, topic)),
        fn_mock=mock,
    )


def get_leaderboard(cfg: AppConfig, use_mock: bool, limit: int = 10) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(
            quizzes.fetch_leaderboard(client, limit), ["user_id", "username", "highest_score", "total_quizzes_taken"]
        ),
        fn_mock=lambda: mock_data.leaderboard_mock().head(limit),
    )


# --- Past papers & scholarships ---

def get_past_papers(
    cfg: AppConfig, use_mock: bool, subject: Optional[str] = None, year: Optional[int] = None, grade: Optional[str] = None
) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(catalog.fetch_past_papers(client, subject, year, grade)),
        fn_mock=lambda: _where(mock_data.past_papers_mock(), subject=subject, year=year, grade=grade),
    )


def get_past_paper_filter_values(cfg: AppConfig, use_mock: bool, column: str) -> DataResult:
    client = client_for(cfg)
    live_fns = {
        "subject": catalog.fetch_past_paper_subjects,
        "year": catalog.fetch_past_paper_years,
        "grade": catalog.fetch_past_paper_grades,
    }
    return _fallback(
        use_mock,
        fn_live=lambda: _values(column, live_fns[column](client)),
        fn_mock=lambda: _values(column, unique_sorted(mock_data.past_papers_mock()[column], reverse=column == "year")),
    )


def _mock_scholarships(country: Optional[str], field_of_study: Optional[str], level: Optional[str]) -> pd.DataFrame:
    df = _where(mock_data.scholarships_mock(), country=country, level=level)
    if field_of_study:
        df = df[df["field_of_study"].str.contains(field_of_study, case=False, regex=False)]
    return df.reset_index(drop=True)


def get_scholarships(
    cfg: AppConfig,
    use_mock: bool,
    country: Optional[str] = None,
    field_of_study: Optional[str] = None,
    level: Optional[str] = None,
) -> DataResult:
    client = client_for(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _frame(catalog.fetch_scholarships(client, country, field_of_study, level)),
        fn_mock=lambda: _mock_scholarships(country, field_of_study, level),
    )


def get_scholarship_filter_values(cfg: AppConfig, use_mock: bool, column: str) -> DataResult:
    client = client_for(cfg)
    live_fns = {
        "country": catalog.fetch_scholarship_countries,
        "field_of_study": catalog.fetch_scholarship_fields,
        "level": catalog.fetch_scholarship_levels,
    }

    def mock() -> pd.DataFrame:
        raw = mock_data.scholarships_mock()[column]
        return _values(column, unique_sorted(raw) if column == "country" else split_multi(raw))

    return _fallback(use_mock, fn_live=lambda: _values(column, live_fns[column](client)), fn_mock=mock)


# --- Dashboard & sessions ---

@dataclass(frozen=True)
class DashboardResult:
    data: users.DashboardData
    source: str
    warning: str | None = None


def get_dashboard(cfg: AppConfig, use_mock: bool, user_id: str, token: Optional[str] = None) -> DashboardResult:
    store = mentorship.get_local_store(cfg)

    def mock() -> users.DashboardData:
        return users.DashboardData(
            user={"id": user_id, "name": "Demo Student", "overall_progress": 42},
            progress=mock_data.progress_mock(user_id).to_dict("records"),
            sessions=mentorship.fetch_user_sessions(None, user_id, store),
            recent_activities=mock_data.recent_activities_mock(user_id).to_dict("records"),
        )

    if use_mock:
        return DashboardResult(data=mock(), source="mock")
    try:
        return DashboardResult(data=users.fetch_dashboard_data(client_for(cfg, token), user_id, store), source="supabase")
    except Exception as e:
        log.warning("Dashboard read failed, using mock data: %s: %s", type(e).__name__, e)
        return DashboardResult(data=mock(), source="mock", warning=f"Fell back to mock data: {type(e).__name__}")


def get_user_sessions(cfg: AppConfig, use_mock: bool, user_id: str, token: Optional[str] = None) -> list:
    """Sessions for `user_id`; local fallback bookings are always included."""
    client = None if use_mock else client_for(cfg, token)
    return mentorship.fetch_user_sessions(client, user_id, mentorship.get_local_store(cfg))


def get_available_slots(cfg: AppConfig, use_mock: bool, mentor_id: str, token: Optional[str] = None) -> DataResult:
    """Open slots for the next mentorship days as a frame of UTC `slot` timestamps."""
    policy = mentorship.policy_from_config(cfg)
    store = mentorship.get_local_store(cfg)
    return _fallback(
        use_mock,
        fn_live=lambda: _values(
            "slot", mentorship.generate_available_slots(client_for(cfg, token), mentor_id, policy=policy, store=store)
        ),
        fn_mock=lambda: _values("slot", mentorship.generate_available_slots(None, mentor_id, policy=policy, store=store)),
    )


def book_mentor_session(
    cfg: AppConfig, use_mock: bool, mentor_id: str, student_id: str, slot, notes: Optional[str] = None, token: Optional[str] = None
) -> mentorship.MentorshipSession:
    """Book a slot; in mock mode the booking goes straight to the local store."""
    policy = mentorship.policy_from_config(cfg)
    store = mentorship.get_local_store(cfg)
    if use_mock:
        return mentorship.book_local_session(mentor_id, student_id, slot, store, policy, notes)
    return mentorship.book_session(client_for(cfg, token), mentor_id, student_id, slot, store, policy, notes)


def set_session_status(
    cfg: AppConfig, session: mentorship.MentorshipSession, status: str, token: Optional[str] = None
) -> None:
    """Status change routed to wherever the booking lives (database row or local store)."""
    if session.source == "local":
        if not mentorship.get_local_store(cfg).set_status(session.id, status):
            raise mentorship.BookingError("Session not found.")
        return
    mentorship.update_session_status(client_for(cfg, token), session.id, status)
