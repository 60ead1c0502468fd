from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeSupabase
from data.connection import SupabaseAuthError, SupabaseError
from data.mentorship import LocalBookingStore, MentorshipSession, SlotPolicy, book_local_session
from data.users import (
    DEFAULT_USER,
    DashboardData,
    ProfileError,
    avatar_path,
    delete_current_user_account,
    ensure_user_exists,
    fetch_dashboard_data,
    load_profile,
    sign_in,
    sign_out,
    sign_up,
    update_theme,
    update_user_profile,
    upload_avatar,
)


AUTH_USER = {"id": "u1", "email": "neo@skutopia.test", "user_metadata": {"name": "Neo", "avatar_url": "https://a/neo.png"}}


class TestAuth:
    def test_sign_in(self):
        client = FakeSupabase(auth_payload={"access_token": "jwt", "refresh_token": "r", "user": AUTH_USER})
        session = sign_in(client, "  neo@skutopia.test ", "secret")
        assert session.user_id == "u1"
        assert session.email == "neo@skutopia.test"
        assert client.calls_to("sign_in_with_password")[0][1] == "neo@skutopia.test"

    def test_sign_in_requires_credentials(self):
        with pytest.raises(SupabaseAuthError):
            sign_in(FakeSupabase(), "", "secret")

    def test_sign_up_without_session_asks_for_confirmation(self):
        client = FakeSupabase(auth_payload={"user": AUTH_USER})
        with pytest.raises(SupabaseAuthError, match="confirm"):
            sign_up(client, "neo@skutopia.test", "secret", "Neo")
        metadata = client.calls_to("sign_up")[0][2]
        assert metadata["name"] == "Neo"
        assert metadata["avatar_url"].startswith("https://i.pravatar.cc/150?u=")

    def test_sign_out_swallows_backend_errors(self):
        sign_out(FakeSupabase(errors={"sign_out": SupabaseAuthError("expired", status=401)}))


class TestProfile:
    def test_load_profile_from_row(self):
        client = FakeSupabase(tables={"user_profiles": [{"user_id": "u1", "name": "Neo A.", "role": "admin", "school": "Kabulonga"}]})
        profile = load_profile(client, AUTH_USER)
        assert profile.is_admin
        assert profile.name == "Neo A."
        assert profile.avatar_url == "https://a/neo.png"
        assert profile.extra == {"school": "Kabulonga"}

    def test_load_profile_falls_back_to_metadata(self):
        profile = load_profile(FakeSupabase(), AUTH_USER)
        assert profile.role == "student"
        assert profile.name == "Neo"
        assert not profile.profile_completed

    def test_load_profile_propagates_real_errors(self):
        with pytest.raises(SupabaseError):
            load_profile(FakeSupabase(errors={"select": SupabaseError("down", status=500)}), AUTH_USER)

    def test_ensure_user_exists_creates_default(self):
        client = FakeSupabase()
        user = ensure_user_exists(client, "u1")
        assert user["name"] == DEFAULT_USER["name"]
        assert client.calls_to("insert")[0][2][0]["id"] == "u1"

    def test_ensure_user_exists_returns_existing(self):
        client = FakeSupabase(tables={"users": [{"id": "u1", "name": "Neo"}]})
        assert ensure_user_exists(client, "u1")["name"] == "Neo"
        assert client.calls_to("insert") == []

    def test_update_strips_id_and_wraps_errors(self):
        client = FakeSupabase()
        update_user_profile(client, "u1", {"id": "evil", "bio": "Hi"})
        assert client.calls_to("update")[0][2] == {"bio": "Hi"}
        failing = FakeSupabase(errors={"update": SupabaseError("rls")})
        with pytest.raises(ProfileError, match="rls"):
            update_user_profile(failing, "u1", {"bio": "Hi"})

    def test_update_theme_validates(self):
        with pytest.raises(ProfileError):
            update_theme(FakeSupabase(), "u1", "neon")

    def test_avatar_path(self):
        assert avatar_path("u1", "Me.JPG", now_ms=1700) == "u1-1700.jpg"
        assert avatar_path("u1", "noext", now_ms=5) == "u1-5.png"

    def test_upload_avatar_points_profile_at_public_url(self):
        client = FakeSupabase()
        url = upload_avatar(client, "u1", "me.png", b"img", "image/png")
        assert url.startswith("https://demo.supabase.co/storage/v1/object/public/avatars/u1-")
        assert client.calls_to("update")[0][2] == {"avatar_url": url}

    def test_delete_account_checks_success(self):
        client = FakeSupabase(function_results={"delete-user-account": {"success": False, "error": "nope"}})
        with pytest.raises(ProfileError, match="nope"):
            delete_current_user_account(client)
        ok = FakeSupabase(function_results={"delete-user-account": {"success": True}})
        delete_current_user_account(ok)


class TestDashboard:
    def test_offline_dashboard_uses_local_sessions(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        slot = datetime.now(timezone.utc) + timedelta(days=3)
        session = book_local_session("m1", "u1", slot, store, SlotPolicy())
        data = fetch_dashboard_data(None, "u1", store)
        assert data.user is None
        assert [s.id for s in data.upcoming_sessions] == [session.id]

    def test_upcoming_excludes_past_and_cancelled(self):
        now = datetime.now(timezone.utc)

        def make(i, when, status):
            return MentorshipSession(str(i), "m", "u", when.isoformat(), status, "")

        data = DashboardData(
            user=None,
            progress=[],
            sessions=[
                make(1, now - timedelta(days=1), "booked"),
                make(2, now + timedelta(days=1), "cancelled"),
                make(3, now + timedelta(days=2), "booked"),
            ],
            recent_activities=[],
        )
        assert [s.id for s in data.upcoming_sessions] == ["3"]

    def test_live_dashboard(self, tmp_path):
        client = FakeSupabase(
            tables={
                "users": [{"id": "u1", "name": "Neo"}],
                "progress": [{"user_id": "u1", "subject": "Maths", "percent": 40}],
                "recent_activities": [{"user_id": "u1", "title": "Watched a video"}],
            }
        )
        data = fetch_dashboard_data(client, "u1", LocalBookingStore(tmp_path))
        assert data.user["name"] == "Neo"
        assert data.progress[0]["percent"] == 40
        assert data.recent_activities[0]["title"] == "Watched a video"
