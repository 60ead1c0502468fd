from __future__ import annotations

from datetime import date

import pytest

from conftest import FakeSupabase
from data.catalog import (
    days_until_deadline,
    fetch_past_paper_years,
    fetch_scholarship_fields,
    fetch_scholarship_levels,
    format_file_size,
    is_open,
)


TODAY = date(2024, 6, 1)


@pytest.mark.parametrize(
    "value,expected",
    [(1.5, "1.50 MB"), ("2", "2.00 MB"), (None, ""), ("big", ""), (float("nan"), "")],
)
def test_format_file_size(value, expected):
    assert format_file_size(value) == expected


class TestDeadlines:
    def test_days_until(self):
        assert days_until_deadline({"deadline": "2024-06-11"}, TODAY) == 10
        assert days_until_deadline({"deadline": "2024-06-11T23:59:00+00:00"}, TODAY) == 10

    def test_open_through_deadline_day(self):
        assert is_open({"deadline": "2024-06-01"}, TODAY)
        assert not is_open({"deadline": "2024-05-31"}, TODAY)

    def test_rolling_admissions(self):
        assert is_open({"deadline": None}, TODAY)


class TestFilterValues:
    def test_years_descending(self):
        client = FakeSupabase(tables={"past_papers": [{"year": 2021}, {"year": 2023}, {"year": 2021}]})
        assert fetch_past_paper_years(client) == [2023, 2021]

    def test_multi_value_fields_are_split(self):
        client = FakeSupabase(
            tables={
                "scholarships": [
                    {"field_of_study": "Engineering, Data Science", "level": "Undergraduate, Masters"},
                    {"field_of_study": "Medicine & Health", "level": "PhD"},
                    {"field_of_study": None, "level": None},
                ]
            }
        )
        assert fetch_scholarship_fields(client) == ["Data Science", "Engineering", "Health", "Medicine"]
        assert fetch_scholarship_levels(client) == ["Masters", "PhD", "Undergraduate"]
