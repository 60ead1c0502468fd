#!/usr/bin/env python3
"""
Seed a Supabase project with the same synthetic catalogue the app shows in mock mode.

Usage:
    SUPABASE_URL=... SUPABASE_SERVICE_ROLE_KEY=... python scripts/seed_demo_data.py

Rows are upserted on `id`, so re-running is safe.
"""

import json
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(REPO_ROOT, "app"))

import pandas as pd  # noqa: E402

from config import get_config  # noqa: E402
from data import mock_data  # noqa: E402
from data.connection import SupabaseClient, SupabaseError  # noqa: E402
from log_config import setup_logging  # noqa: E402


FLASHCARD_COLUMNS = ["id", "topic_id", "grade", "question", "answer", "difficulty_level", "created_at", "updated_at"]


def _records(df: pd.DataFrame, columns=None) -> list:
    if columns:
        df = df[columns]
    # NaN/None -> null via a JSON round trip
    return json.loads(df.to_json(orient="records"))


def _seed(client: SupabaseClient, table: str, rows: list) -> None:
    client.upsert(table, rows, on_conflict="id")
    print(f"  ✅ {table}: {len(rows)} rows")


def main():
    cfg = get_config()
    setup_logging(cfg)

    if not cfg.supabase_url or not cfg.supabase_service_key:
        print("ERROR: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
        sys.exit(1)

    client = SupabaseClient(cfg, use_service_key=True)
    subjects, topics, tags = mock_data.flashcard_taxonomy_mock()
    flashcards = mock_data.flashcards_mock()
    card_tags = [{"flashcard_id": c["id"], "tag_id": t["id"]} for c in flashcards.to_dict("records") for t in c["tags"]]

    print("=" * 60)
    print("Skutopia Academy - Demo Data")
    print("=" * 60)
    print(f"Project: {cfg.supabase_url}")
    print()

    try:
        _seed(client, "videos", _records(mock_data.videos_mock()))
        _seed(client, "mentors", _records(mock_data.mentors_mock()))
        _seed(client, "subjects", _records(subjects))
        _seed(client, "topics", _records(topics))
        _seed(client, "tags", _records(tags))
        _seed(client, "flashcards", _records(flashcards, FLASHCARD_COLUMNS))
        client.upsert("flashcard_tags", card_tags, on_conflict="flashcard_id,tag_id")
        print(f"  ✅ flashcard_tags: {len(card_tags)} rows")
        _seed(client, "quizzes", _records(mock_data.quiz_questions_mock()))
        _seed(client, "past_papers", _records(mock_data.past_papers_mock()))
        _seed(client, "scholarships", _records(mock_data.scholarships_mock()))
    except SupabaseError as e:
        print(f"ERROR: {e.message} (status {e.status})")
        sys.exit(1)

    print()
    print("✅ Seeding complete")


if __name__ == "__main__":
    main()
