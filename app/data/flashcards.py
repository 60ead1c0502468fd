from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

from data.connection import SupabaseClient, SupabaseError
from data.queries import q_flashcard_progress, q_flashcards, q_subjects, q_tags, q_topics
from log_config import get_logger


log = get_logger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass(frozen=True)
class FlashcardFilters:
    subject_id: Optional[str] = None
    topic_id: Optional[str] = None
    grade: Optional[int] = None
    difficulty: Optional[str] = None
    tag_ids: tuple = ()
    search: Optional[str] = None


def fetch_subjects(client: SupabaseClient) -> list[dict]:
    return client.select(q_subjects())


def fetch_topics(client: SupabaseClient, subject_id: Optional[str] = None) -> list[dict]:
    return client.select(q_topics(subject_id))


def fetch_tags(client: SupabaseClient) -> list[dict]:
    return client.select(q_tags())


def _first(value):
    # Embedded to-one relations occasionally come back as one-element lists
    if isinstance(value, list):
        return value[0] if value else None
    return value


def flatten_flashcard(raw: dict) -> Optional[dict]:
    """Flatten nested topic/subject/tags; None when the card has no topic."""
    topic = _first(raw.get("topic"))
    if not topic:
        return None
    subject = _first(topic.get("subject")) or {}
    tags = [ft.get("tag") for ft in (raw.get("flashcard_tags") or []) if ft and ft.get("tag")]
    return {
        "id": raw.get("id"),
        "topic_id": raw.get("topic_id"),
        "grade": raw.get("grade"),
        "question": raw.get("question"),
        "answer": raw.get("answer"),
        "difficulty_level": raw.get("difficulty_level"),
        "created_at": raw.get("created_at"),
        "updated_at": raw.get("updated_at"),
        "topic_name": topic.get("name"),
        "subject_id": topic.get("subject_id") or subject.get("id"),
        "subject_name": subject.get("name"),
        "tags": tags,
    }


def fetch_flashcards(client: SupabaseClient, filters: FlashcardFilters) -> list[dict]:
    topic_ids = None
    if filters.subject_id and not filters.topic_id:
        topic_ids = [t["id"] for t in fetch_topics(client, filters.subject_id)]
        if not topic_ids:
            return []
    query = q_flashcards(
        topic_id=filters.topic_id,
        topic_ids=topic_ids,
        grade=filters.grade,
        difficulty=filters.difficulty,
        tag_ids=list(filters.tag_ids) or None,
        term=filters.search,
    )
    try:
        rows = client.select(query)
    except SupabaseError as e:
        log.error("Error fetching flashcards: %s", e.message)
        raise
    return [fc for fc in (flatten_flashcard(r) for r in rows) if fc is not None]


def add_flashcard(
    client: SupabaseClient,
    topic_id: str,
    question: str,
    answer: str,
    grade: Optional[int] = None,
    difficulty: Optional[str] = None,
    tag_ids: tuple = (),
) -> dict:
    if not question.strip() or not answer.strip():
        raise ValueError("Question and answer are required")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {difficulty}")
    rows = client.insert(
        "flashcards",
        [
            {
                "topic_id": topic_id,
                "grade": grade,
                "question": question.strip(),
                "answer": answer.strip(),
                "difficulty_level": difficulty,
            }
        ],
    )
    if not rows:
        raise SupabaseError("Failed to insert flashcard or retrieve the inserted row.")
    card = rows[0]
    if tag_ids:
        client.insert(
            "flashcard_tags",
            [{"flashcard_id": card["id"], "tag_id": tag_id} for tag_id in tag_ids],
            returning=False,
        )
    return card


def update_flashcard_progress(client: SupabaseClient, user_id: str, flashcard_id: str, is_correct: bool) -> dict:
    if not user_id or not flashcard_id:
        raise ValueError("User ID and Flashcard ID are required.")
    data = client.rpc(
        "upsert_flashcard_progress",
        {"p_user_id": user_id, "p_flashcard_id": flashcard_id, "p_is_correct": is_correct},
    )
    progress = data[0] if isinstance(data, list) and data else data
    if not progress:
        raise SupabaseError("No data returned from progress update.")
    return progress


def fetch_flashcard_progress(client: SupabaseClient, user_id: str, flashcard_id: str) -> Optional[dict]:
    if not user_id or not flashcard_id:
        return None
    return client.select_one(q_flashcard_progress(user_id, flashcard_id))


@dataclass
class Deck:
    """Study session state for a list of flashcards."""
    cards: list
    index: int = 0
    flipped: bool = False
    correct: int = 0
    incorrect: int = 0
    answered: set = field(default_factory=set)

    @classmethod
    def shuffled(cls, cards: list, seed: Optional[int] = None) -> "Deck":
        cards = list(cards)
        random.Random(seed).shuffle(cards)
        return cls(cards=cards)

    @property
    def current(self) -> Optional[dict]:
        return self.cards[self.index] if self.cards else None

    @property
    def is_finished(self) -> bool:
        return bool(self.cards) and len(self.answered) == len(self.cards)

    def flip(self) -> None:
        self.flipped = not self.flipped

    def next(self) -> None:
        if self.index < len(self.cards) - 1:
            self.index += 1
            self.flipped = False

    def prev(self) -> None:
        if self.index > 0:
            self.index -= 1
            self.flipped = False

    def mark(self, is_correct: bool) -> None:
        card = self.current
        if card is None or card["id"] in self.answered:
            return
        self.answered.add(card["id"])
        if is_correct:
            self.correct += 1
        else:
            self.incorrect += 1
        self.next()
