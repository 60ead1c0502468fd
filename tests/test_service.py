from __future__ import annotations

import pytest

from conftest import make_config
from data import service
from data.flashcards import FlashcardFilters
from data.mentorship import BookingError, SlotAlreadyBookedError


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    monkeypatch.setattr(service, "_mentor_cache", None)


@pytest.fixture
def offline_cfg(tmp_path):
    # No anon key: every live read raises SupabaseConfigError
    return make_config(tmp_path, supabase_anon_key=None)


class TestFallback:
    def test_mock_mode(self, cfg):
        result = service.get_videos(cfg, use_mock=True, subject="Physics")
        assert result.source == "mock"
        assert result.warning is None
        assert set(result.values("subject")) <= {"Physics"}

    def test_live_failure_falls_back_with_warning(self, offline_cfg):
        result = service.get_videos(offline_cfg, use_mock=False)
        assert result.source == "mock"
        assert result.warning == "Fell back to mock data: SupabaseConfigError"
        assert not result.df.empty

    def test_live_success(self, cfg, monkeypatch):
        monkeypatch.setattr(service.videos, "fetch_videos", lambda *a, **k: [{"id": "v1", "title": "Live"}])
        result = service.get_videos(cfg, use_mock=False)
        assert result.source == "supabase"
        assert result.values("title") == ["Live"]

    def test_values_on_missing_column(self, cfg):
        assert service.get_videos(cfg, use_mock=True).values("nope") == []


class TestFilterValues:
    def test_cascading_video_filters(self, cfg):
        grades = service.get_video_filter_values(cfg, True, "grade").values("grade")
        assert grades == sorted(grades)
        topics = service.get_video_filter_values(cfg, True, "topic", subject="Physics").values("topic")
        assert set(topics) <= {"Mechanics", "Electricity", "Waves"}

    def test_scholarship_fields_are_split(self, cfg):
        fields = service.get_scholarship_filter_values(cfg, True, "field_of_study").values("field_of_study")
        assert fields == sorted(fields)
        assert all(", " not in f for f in fields)

    def test_past_paper_years_descending(self, cfg):
        years = service.get_past_paper_filter_values(cfg, True, "year").values("year")
        assert years == sorted(years, reverse=True)


class TestMentors:
    def test_live_mentors_are_cached(self, cfg, monkeypatch):
        calls = []

        def fetch(client, field_name=None):
            calls.append(field_name)
            return [{"id": "m1", "name": "Ada", "field": "Engineering"}]

        monkeypatch.setattr(service.mentorship, "fetch_mentors", fetch)
        service.get_mentors(cfg, use_mock=False)
        service.get_mentors(cfg, use_mock=False)
        assert calls == [None]
        service.get_mentors(cfg, use_mock=False, force_refresh=True)
        assert calls == [None, None]

    def test_single_mentor_served_from_list_cache(self, cfg, monkeypatch):
        monkeypatch.setattr(service.mentorship, "fetch_mentors", lambda client, field_name=None: [{"id": "m1", "name": "Ada"}])
        monkeypatch.setattr(service.mentorship, "fetch_mentor", lambda client, mentor_id: pytest.fail("not cached"))
        service.get_mentors(cfg, use_mock=False)
        assert service.get_mentor(cfg, False, "m1").values("name") == ["Ada"]

    def test_mock_mentor_field_filter(self, cfg):
        df = service.get_mentors(cfg, use_mock=True, field_name="Law").df
        assert set(df["field"]) <= {"Law"}


class TestFlashcards:
    def test_mock_filters(self, cfg):
        subjects = service.get_flashcard_subjects(cfg, True).df
        subject_id = subjects.iloc[0]["id"]
        cards = service.get_flashcards(cfg, True, FlashcardFilters(subject_id=subject_id, difficulty="easy")).df
        assert set(cards["subject_id"]) <= {subject_id}
        assert set(cards["difficulty_level"]) <= {"easy"}

    def test_mock_tag_filter(self, cfg):
        tag_id = service.get_flashcard_tags(cfg, True).df.iloc[0]["id"]
        cards = service.get_flashcards(cfg, True, FlashcardFilters(tag_ids=(tag_id,))).df
        assert all(any(t["id"] == tag_id for t in tags) for tags in cards["tags"])


class TestQuizzes:
    def test_mock_questions_are_capped(self, cfg):
        df = service.get_quiz_questions(cfg, True, "Grade 12", "Mathematics", "Algebra").df
        assert 0 < len(df) <= 20
        assert set(df["topic"]) == {"Algebra"}

    def test_leaderboard_limit(self, cfg):
        assert len(service.get_leaderboard(cfg, True, limit=3).df) == 3


class TestSessions:
    def test_mock_booking_roundtrip(self, cfg):
        mentor_id = service.get_mentors(cfg, True).values("id")[0]
        slots = service.get_available_slots(cfg, True, mentor_id).values("slot")
        assert slots

        session = service.book_mentor_session(cfg, True, mentor_id, "demo-student", slots[0])
        assert session.source == "local"
        assert slots[0] not in service.get_available_slots(cfg, True, mentor_id).values("slot")
        with pytest.raises(SlotAlreadyBookedError):
            service.book_mentor_session(cfg, True, mentor_id, "other", slots[0])

        mine = service.get_user_sessions(cfg, True, "demo-student")
        assert [s.id for s in mine] == [session.id]

        service.set_session_status(cfg, session, "cancelled")
        assert service.get_user_sessions(cfg, True, "demo-student")[0].status == "cancelled"

    def test_mock_mode_never_builds_a_client(self, cfg, monkeypatch):
        mentor_id = service.get_mentors(cfg, True).values("id")[0]
        monkeypatch.setattr(service, "client_for", lambda *a, **k: pytest.fail("client built in mock mode"))
        slots = service.get_available_slots(cfg, True, mentor_id).values("slot")
        assert service.book_mentor_session(cfg, True, mentor_id, "demo-student", slots[0]).source == "local"

    def test_mentor_cache_is_shared(self, cfg):
        assert service.mentor_cache(cfg) is service.mentor_cache(cfg)

    def test_unknown_local_session(self, cfg):
        session = service.mentorship.MentorshipSession(
            id="missing", mentor_id="m", student_id="s", session_time="2024-06-08T09:30:00+00:00",
            status="booked", created_at="", source="local",
        )
        with pytest.raises(BookingError):
            service.set_session_status(cfg, session, "cancelled")

    def test_dashboard_falls_back(self, offline_cfg):
        result = service.get_dashboard(offline_cfg, False, "u1")
        assert result.source == "mock"
        assert result.warning == "Fell back to mock data: SupabaseConfigError"
        assert result.data.progress
