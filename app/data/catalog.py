"""Past papers and scholarships: read-only listings plus filter values."""
from __future__ import annotations

import math
from datetime import date
from typing import Any, Optional

from data.connection import SupabaseClient, SupabaseError
from data.derive import days_until, split_multi, unique_sorted
from data.queries import q_column, q_past_papers, q_scholarships
from log_config import get_logger


log = get_logger(__name__)


def fetch_past_papers(
    client: SupabaseClient, subject: Optional[str] = None, year: Optional[int] = None, grade: Optional[str] = None
) -> list[dict]:
    try:
        return client.select(q_past_papers(subject, year, grade))
    except SupabaseError as e:
        log.error("Error fetching past papers: %s", e.message)
        raise


def _column(client: SupabaseClient, table: str, column: str) -> list:
    return [r.get(column) for r in client.select(q_column(table, column))]


def fetch_past_paper_subjects(client: SupabaseClient) -> list[str]:
    return unique_sorted(_column(client, "past_papers", "subject"))


def fetch_past_paper_years(client: SupabaseClient) -> list[int]:
    return unique_sorted(_column(client, "past_papers", "year"), reverse=True)


def fetch_past_paper_grades(client: SupabaseClient) -> list[str]:
    return unique_sorted(_column(client, "past_papers", "grade"))


def fetch_scholarships(
    client: SupabaseClient,
    country: Optional[str] = None,
    field_of_study: Optional[str] = None,
    level: Optional[str] = None,
) -> list[dict]:
    try:
        return client.select(q_scholarships(country, field_of_study, level))
    except SupabaseError as e:
        log.error("Error fetching scholarships: %s", e.message)
        raise


def fetch_scholarship_countries(client: SupabaseClient) -> list[str]:
    return unique_sorted(_column(client, "scholarships", "country"))


def fetch_scholarship_fields(client: SupabaseClient) -> list[str]:
    return split_multi(_column(client, "scholarships", "field_of_study"))


def fetch_scholarship_levels(client: SupabaseClient) -> list[str]:
    return split_multi(_column(client, "scholarships", "level"))


def days_until_deadline(scholarship: dict, today: Optional[date] = None) -> Optional[int]:
    return days_until(scholarship.get("deadline"), today)


def is_open(scholarship: dict, today: Optional[date] = None) -> bool:
    """Open until the end of the deadline day; no deadline means rolling admissions."""
    remaining = days_until_deadline(scholarship, today)
    return remaining is None or remaining >= 0


def format_file_size(size_mb: Any) -> str:
    """Past paper sizes are stored in MB."""
    try:
        value = float(size_mb)
    except (TypeError, ValueError):
        return ""
    return "" if math.isnan(value) else f"{value:.2f} MB"
