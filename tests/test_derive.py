from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from data.derive import days_until, format_relative_time, parse_timestamp, split_multi, unique_sorted


NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def test_unique_sorted_drops_blanks():
    assert unique_sorted(["b", None, "a", "", "b"]) == ["a", "b"]
    assert unique_sorted([2019, 2023, 2021], reverse=True) == [2023, 2021, 2019]


def test_split_multi():
    assert split_multi(["Engineering, Data Science & Law", None, "Law"]) == ["Data Science", "Engineering", "Law"]


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2024-06-08T09:30:00Z") == datetime(2024, 6, 8, 9, 30, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-06-08T09:30:00").tzinfo is not None
        assert parse_timestamp(datetime(2024, 6, 8)).tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_invalid(self, value):
        assert parse_timestamp(value) is None


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(seconds=30), "30 seconds ago"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=2), "2 days ago"),
        (timedelta(days=10), "2024-06-20"),
    ],
)
def test_format_relative_time(delta, expected):
    assert format_relative_time((NOW - delta).isoformat(), now=NOW) == expected


def test_days_until():
    today = date(2024, 6, 1)
    assert days_until("2024-06-03", today) == 2
    assert days_until(date(2024, 5, 30), today) == -2
    assert days_until("soon", today) is None
    assert days_until(None, today) is None
