from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from conftest import FakeSupabase
from data.connection import SupabaseError
from data.mentorship import (
    BookingError,
    LocalBookingStore,
    MentorshipSession,
    SlotAlreadyBookedError,
    SlotPolicy,
    SlotsByDay,
    average_rating,
    book_local_session,
    book_session,
    calculate_session_price,
    day_bounds_utc,
    enumerate_day_slots,
    fetch_mentors,
    fetch_user_sessions,
    filter_available,
    generate_available_slots,
    overlaps,
    submit_feedback,
    upcoming_mentorship_days,
    update_session_status,
)


UTC = timezone.utc
POLICY = SlotPolicy()  # Asia/Kolkata, Saturday 15:00-18:00, 30 minutes
SATURDAY = date(2024, 6, 8)
# 15:00 IST == 09:30 UTC
FIRST_SLOT = datetime(2024, 6, 8, 9, 30, tzinfo=UTC)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestSlotPolicy:
    def test_rejects_inverted_window(self):
        with pytest.raises(ValueError):
            SlotPolicy(start_hour=18, end_hour=15)

    def test_rejects_bad_weekday(self):
        with pytest.raises(ValueError):
            SlotPolicy(weekday=7)

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            SlotPolicy(duration_minutes=0)


class TestUpcomingDays:
    def test_midweek_starts_on_coming_saturday(self):
        days = upcoming_mentorship_days(utc(2024, 6, 5, 12, 0), POLICY)
        assert days == [date(2024, 6, 8), date(2024, 6, 15), date(2024, 6, 22), date(2024, 6, 29)]

    def test_on_saturday_skips_to_next_week(self):
        days = upcoming_mentorship_days(utc(2024, 6, 8, 4, 0), POLICY)
        assert days[0] == date(2024, 6, 15)

    def test_uses_local_date_not_utc_date(self):
        # Friday 20:00 UTC is already Saturday 01:30 in Kolkata
        days = upcoming_mentorship_days(utc(2024, 6, 7, 20, 0), POLICY)
        assert days[0] == date(2024, 6, 15)

    def test_naive_now_is_rejected(self):
        with pytest.raises(ValueError):
            upcoming_mentorship_days(datetime(2024, 6, 5, 12, 0), POLICY)

    def test_weeks_setting(self):
        assert len(upcoming_mentorship_days(utc(2024, 6, 5), SlotPolicy(weeks=2))) == 2


class TestEnumerateDaySlots:
    def test_default_window_gives_six_utc_slots(self):
        slots = enumerate_day_slots(SATURDAY, POLICY)
        assert len(slots) == 6
        assert slots[0] == FIRST_SLOT
        assert slots[-1] == utc(2024, 6, 8, 12, 0)
        assert all(s.tzinfo is not None for s in slots)

    def test_last_slot_must_fit_inside_window(self):
        slots = enumerate_day_slots(SATURDAY, SlotPolicy(duration_minutes=45))
        assert [s.astimezone(POLICY.tz).strftime("%H:%M") for s in slots] == ["15:00", "15:45", "16:30", "17:15"]

    def test_window_to_midnight(self):
        slots = enumerate_day_slots(SATURDAY, SlotPolicy(start_hour=23, end_hour=24))
        assert len(slots) == 2

    def test_day_bounds_are_local_midnights(self):
        start, end = day_bounds_utc(SATURDAY, POLICY)
        assert start == utc(2024, 6, 7, 18, 30)
        assert end - start == timedelta(days=1)

    def test_dst_zone_keeps_local_wall_clock(self):
        policy = SlotPolicy(time_zone="Europe/London", weekday=6)
        # 2024-03-31 is the Sunday BST starts
        slots = enumerate_day_slots(date(2024, 3, 31), policy)
        assert slots[0] == utc(2024, 3, 31, 14, 0)


class TestFilterAvailable:
    def test_overlap_is_symmetric_and_half_open(self):
        d = timedelta(minutes=30)
        assert overlaps(utc(2024, 6, 8, 10, 0), utc(2024, 6, 8, 10, 15), d)
        assert overlaps(utc(2024, 6, 8, 10, 15), utc(2024, 6, 8, 10, 0), d)
        assert not overlaps(utc(2024, 6, 8, 10, 0), utc(2024, 6, 8, 10, 30), d)

    def test_exact_booking_removes_one_slot(self):
        slots = enumerate_day_slots(SATURDAY, POLICY)
        out = filter_available(slots, [utc(2024, 6, 8, 10, 0)], utc(2024, 6, 1), POLICY)
        assert len(out) == 5
        assert utc(2024, 6, 8, 10, 0) not in out

    def test_off_grid_booking_blocks_both_neighbours(self):
        slots = enumerate_day_slots(SATURDAY, POLICY)
        out = filter_available(slots, [utc(2024, 6, 8, 10, 15)], utc(2024, 6, 1), POLICY)
        assert utc(2024, 6, 8, 10, 0) not in out
        assert utc(2024, 6, 8, 10, 30) not in out
        assert len(out) == 4

    def test_past_slots_are_dropped(self):
        slots = enumerate_day_slots(SATURDAY, POLICY)
        out = filter_available(slots, [], utc(2024, 6, 8, 10, 30), POLICY)
        assert out[0] == utc(2024, 6, 8, 11, 0)

    def test_caps_at_max_per_day(self):
        slots = enumerate_day_slots(SATURDAY, POLICY)
        assert len(filter_available(slots, [], utc(2024, 6, 1), SlotPolicy(max_per_day=3))) == 3

    def test_naive_booked_time_is_rejected(self):
        with pytest.raises(ValueError):
            filter_available([FIRST_SLOT], [datetime(2024, 6, 8, 10, 0)], utc(2024, 6, 1), POLICY)


class TestGenerateAvailableSlots:
    def test_remote_bookings_are_excluded(self):
        client = FakeSupabase(tables={"sessions": [{"session_time": "2024-06-08T10:00:00+00:00"}]})
        slots = generate_available_slots(client, "m1", now=utc(2024, 6, 5), policy=POLICY)
        assert len(slots) == 23
        assert utc(2024, 6, 8, 10, 0) not in slots
        assert slots == sorted(slots)
        assert len(client.calls_to("select")) == 4

    def test_local_store_only(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        slots = generate_available_slots(None, "m1", now=utc(2024, 6, 5), policy=POLICY, store=store)
        assert FIRST_SLOT not in slots
        assert len(slots) == 23

    def test_other_mentors_bookings_do_not_count(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m2", "s1", FIRST_SLOT, store, POLICY)
        slots = generate_available_slots(None, "m1", now=utc(2024, 6, 5), policy=POLICY, store=store)
        assert FIRST_SLOT in slots

    def test_remote_failure_propagates(self):
        client = FakeSupabase(errors={"select": SupabaseError("boom", status=500)})
        with pytest.raises(SupabaseError):
            generate_available_slots(client, "m1", now=utc(2024, 6, 5), policy=POLICY)


class TestLocalBookingStore:
    def test_roundtrip_and_sorting(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        later = book_local_session("m1", "s1", utc(2024, 6, 15, 9, 30), store, POLICY)
        earlier = book_local_session("m2", "s1", FIRST_SLOT, store, POLICY)
        book_local_session("m1", "someone-else", FIRST_SLOT, store, POLICY)
        sessions = store.sessions_for("s1")
        assert [s.id for s in sessions] == [earlier.id, later.id]
        assert all(s.source == "local" and s.status == "booked" for s in sessions)

    def test_cancelled_bookings_free_the_slot(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        session = book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        assert store.set_status(session.id, "cancelled")
        assert not store.is_booked("m1", FIRST_SLOT, POLICY.duration)

    def test_set_status_unknown_id(self, tmp_path):
        assert not LocalBookingStore(tmp_path).set_status("missing", "cancelled")

    def test_set_status_validates_like_database(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        session = book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        with pytest.raises(ValueError):
            store.set_status(session.id, "booked")
        assert store.sessions_for("s1")[0].status == "booked"

    def test_unreadable_files_are_skipped(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        (tmp_path / "mentorship_booking_broken.json").write_text("{not json", encoding="utf-8")
        assert len(store.sessions_for("s1")) == 1

    def test_missing_directory_is_empty(self, tmp_path):
        assert LocalBookingStore(tmp_path / "nope").sessions_for("s1") == []


class TestBooking:
    def test_local_double_booking_rejected(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        with pytest.raises(SlotAlreadyBookedError):
            book_local_session("m1", "s2", FIRST_SLOT + timedelta(minutes=10), store, POLICY)

    def test_requires_student(self, tmp_path):
        with pytest.raises(BookingError):
            book_local_session("m1", "", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        with pytest.raises(BookingError):
            book_session(FakeSupabase(), "m1", "", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)

    def test_database_booking(self, tmp_path):
        client = FakeSupabase()
        session = book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY, notes="Maths")
        (_, table, rows) = client.calls_to("insert")[0]
        assert table == "sessions"
        assert rows[0]["user_id"] == "s1"
        assert rows[0]["status"] == "scheduled"
        assert rows[0]["session_time"] == FIRST_SLOT.isoformat()
        assert rows[0]["notes"] == "Maths"
        assert session.source == "database"
        assert session.status == "booked"
        assert session.student_id == "s1"

    def test_existing_database_booking_rejected(self, tmp_path):
        client = FakeSupabase(tables={"sessions": [{"session_time": FIRST_SLOT.isoformat()}]})
        with pytest.raises(SlotAlreadyBookedError):
            book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        assert client.calls_to("insert") == []

    def test_off_grid_database_booking_blocks_overlapping_slot(self, tmp_path):
        booked = FIRST_SLOT + timedelta(minutes=15)
        client = FakeSupabase(tables={"sessions": [{"session_time": booked.isoformat()}]})
        assert filter_available([FIRST_SLOT], [booked], FIRST_SLOT - timedelta(days=1), POLICY) == []
        with pytest.raises(SlotAlreadyBookedError):
            book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        assert client.calls_to("insert") == []

    def test_adjacent_database_booking_does_not_block(self, tmp_path):
        client = FakeSupabase(tables={"sessions": [{"session_time": (FIRST_SLOT + POLICY.duration).isoformat()}]})
        session = book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        assert session.source == "database"

    def test_lookup_window_spans_one_duration_each_side(self, tmp_path):
        client = FakeSupabase()
        book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        query = client.calls_to("select")[0][1]
        assert ("session_time", "gte", FIRST_SLOT - POLICY.duration) in query.filters
        assert ("session_time", "lt", FIRST_SLOT + POLICY.duration) in query.filters

    def test_rejected_insert_falls_back_to_local_store(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        client = FakeSupabase(errors={"insert": SupabaseError("permission denied", status=403, code="42501")})
        session = book_session(client, "m1", "s1", FIRST_SLOT, store, POLICY)
        assert session.source == "local"
        assert [s.id for s in store.sessions_for("s1")] == [session.id]

    def test_local_booking_blocks_database_booking(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        with pytest.raises(SlotAlreadyBookedError):
            book_session(FakeSupabase(), "m1", "s2", FIRST_SLOT, store, POLICY)

    def test_failed_lookup_still_books(self, tmp_path):
        client = FakeSupabase(errors={"select": SupabaseError("timeout")})
        session = book_session(client, "m1", "s1", FIRST_SLOT, LocalBookingStore(tmp_path), POLICY)
        assert session.source == "database"


class TestSessions:
    def test_from_row_maps_table_names(self):
        s = MentorshipSession.from_row(
            {"id": 1, "mentor_id": "m1", "user_id": "s1", "session_time": "2024-06-08T09:30:00Z", "status": "scheduled"}
        )
        assert s.student_id == "s1"
        assert s.status == "booked"
        assert s.starts_at == FIRST_SLOT

    def test_fetch_user_sessions_merges_sources(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        local = book_local_session("m1", "s1", utc(2024, 6, 15, 9, 30), store, POLICY)
        client = FakeSupabase(
            tables={
                "sessions": [
                    {"id": "db1", "mentor_id": "m2", "user_id": "s1", "session_time": "2024-06-08T09:30:00+00:00", "status": "scheduled"}
                ]
            }
        )
        sessions = fetch_user_sessions(client, "s1", store)
        assert [s.id for s in sessions] == ["db1", local.id]

    def test_fetch_user_sessions_survives_database_error(self, tmp_path):
        store = LocalBookingStore(tmp_path)
        book_local_session("m1", "s1", FIRST_SLOT, store, POLICY)
        client = FakeSupabase(errors={"select": SupabaseError("down")})
        assert len(fetch_user_sessions(client, "s1", store)) == 1

    def test_update_status_validates(self):
        with pytest.raises(ValueError):
            update_session_status(FakeSupabase(), "x", "booked")

    def test_update_status_permission_denied(self):
        client = FakeSupabase(errors={"update": SupabaseError("nope", status=403)})
        with pytest.raises(BookingError, match="Permission denied"):
            update_session_status(client, "x", "cancelled")

    def test_update_status_returns_row(self):
        row = update_session_status(FakeSupabase(), "x", "completed")
        assert row["status"] == "completed"
        assert row["id"] == "x"


class TestMentors:
    def test_fetch_mentors_retries_without_avatar_column(self):
        client = Mock()
        client.select.side_effect = [
            SupabaseError("column mentors.avatar_url does not exist", status=400, code="42703"),
            [{"id": "m1", "name": "Ada"}],
        ]
        rows = fetch_mentors(client)
        assert rows == [{"id": "m1", "name": "Ada", "avatar_url": None}]
        retry_query = client.select.call_args_list[1].args[0]
        assert "avatar_url" not in retry_query.select

    def test_fetch_mentors_other_errors_propagate(self):
        client = FakeSupabase(errors={"select": SupabaseError("boom")})
        with pytest.raises(SupabaseError):
            fetch_mentors(client)

    def test_feedback_rating_range(self):
        with pytest.raises(ValueError):
            submit_feedback(FakeSupabase(), "m1", "s1", 6, "great")

    def test_feedback_is_stored(self):
        client = FakeSupabase()
        row = submit_feedback(client, "m1", "s1", 5, "  great  ")
        assert row["comment"] == "great"

    def test_price_and_rating_helpers(self):
        assert calculate_session_price(300, 30) == 150
        assert average_rating([5, None, 4]) == 4.5
        assert average_rating([]) == 0.0


class TestSlotsByDay:
    def test_groups_by_local_day_and_labels(self):
        slots = enumerate_day_slots(SATURDAY, POLICY) + enumerate_day_slots(date(2024, 6, 15), POLICY)
        grouped = SlotsByDay.group(slots, POLICY)
        assert list(grouped.days) == [SATURDAY, date(2024, 6, 15)]
        assert grouped.label(FIRST_SLOT) == "3:00 PM"
