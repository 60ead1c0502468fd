from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from typing import Optional

from data.connection import SupabaseClient, SupabaseError
from data.derive import unique_sorted
from data.queries import (
    q_attempt_responses,
    q_attempt_results,
    q_correct_answers,
    q_leaderboard,
    q_max_score,
    q_quiz_column,
    q_quiz_questions,
)
from log_config import get_logger


log = get_logger(__name__)

OPTION_KEYS = ("option_a", "option_b", "option_c", "option_d")
DEFAULT_MAX_SCORE = 100
QUESTION_LIMIT = 20


class QuizError(RuntimeError):
    pass


@dataclass(frozen=True)
class QuizScore:
    correct: int
    total: int

    @property
    def percent(self) -> float:
        return (self.correct / self.total * 100) if self.total else 0.0

    @property
    def band(self) -> str:
        if self.percent >= 70:
            return "good"
        if self.percent >= 50:
            return "fair"
        return "poor"


def _distinct(client: SupabaseClient, column: str, grade: Optional[str] = None, subject: Optional[str] = None) -> list:
    try:
        rows = client.select(q_quiz_column(column, grade, subject))
    except SupabaseError as e:
        log.error("Error fetching quiz %s values: %s", column, e.message)
        raise
    return unique_sorted(r.get(column) for r in rows)


def fetch_quiz_grades(client: SupabaseClient) -> list:
    return _distinct(client, "grade")


def fetch_quiz_subjects(client: SupabaseClient, grade: str) -> list:
    return _distinct(client, "subject", grade=grade)


def fetch_quiz_topics(client: SupabaseClient, grade: str, subject: str) -> list:
    return _distinct(client, "topic", grade=grade, subject=subject)


def fetch_quiz_questions(
    client: SupabaseClient, grade: str, subject: str, topic: str, rng: Optional[random.Random] = None
) -> list[dict]:
    """Up to 20 questions for the topic, shuffled client-side."""
    rows = list(client.select(q_quiz_questions(grade, subject, topic, limit=QUESTION_LIMIT)))
    (rng or random).shuffle(rows)
    return rows


def new_attempt_id() -> str:
    return str(uuid.uuid4())


def save_user_quiz_answers(client: SupabaseClient, user_id: str, attempt_id: str, answers: dict[str, str]) -> None:
    """Persist one response row per answered question. Correctness is filled in by evaluation."""
    if not answers:
        raise QuizError("No answers to save.")
    rows = [
        {
            "user_id": user_id,
            "quiz_id": quiz_id,
            "selected_answer": selected,
            "is_correct": None,
            "quiz_attempt_id": attempt_id,
        }
        for quiz_id, selected in answers.items()
    ]
    try:
        client.insert("user_quiz_responses", rows, returning=False)
    except SupabaseError as e:
        log.error("Error saving quiz answers: %s", e.message)
        raise


def evaluate_quiz_attempt(client: SupabaseClient, user_id: str, attempt_id: str) -> QuizScore:
    """
    Compare each saved answer to the quiz's correct answer and write back
    `is_correct` row by row. Failed row updates are collected and logged;
    the score is still returned.
    """
    responses = client.select(q_attempt_responses(user_id, attempt_id))
    if not responses:
        return QuizScore(0, 0)

    quiz_ids = unique_sorted(r["quiz_id"] for r in responses)
    correct_by_id = {q["id"]: q.get("correct_answer") for q in client.select(q_correct_answers(quiz_ids))}

    correct = 0
    errors: list[str] = []
    for r in responses:
        is_correct = r.get("selected_answer") is not None and r.get("selected_answer") == correct_by_id.get(r["quiz_id"])
        correct += int(is_correct)
        try:
            client.update("user_quiz_responses", {"is_correct": is_correct}, (("id", "eq", r["id"]),), returning=False)
        except SupabaseError as e:
            errors.append(f"{r['id']}: {e.message}")
    if errors:
        log.error("Errors updating %d quiz responses: %s", len(errors), "; ".join(errors))
    return QuizScore(correct, len(responses))


def fetch_quiz_attempt_results(client: SupabaseClient, user_id: str, attempt_id: str) -> list[dict]:
    rows = client.select(q_attempt_results(user_id, attempt_id))
    out = []
    for r in rows:
        item = {k: v for k, v in r.items() if k != "quizzes"}
        item["question"] = r.get("quizzes")
        out.append(item)
    return out


def score_attempt(questions: list[dict], answers: dict[str, str]) -> QuizScore:
    correct = sum(1 for q in questions if answers.get(q["id"]) == q.get("correct_answer"))
    return QuizScore(correct, len(questions))


def fetch_leaderboard(client: SupabaseClient, limit: int = 10) -> list[dict]:
    rows = client.select(q_leaderboard(limit))
    out = []
    for r in rows:
        profile = r.get("profiles") or {}
        if isinstance(profile, list):
            profile = profile[0] if profile else {}
        out.append(
            {
                "user_id": r.get("user_id"),
                "username": profile.get("username") or "Unknown User",
                "highest_score": r.get("highest_score") or 0,
                "total_quizzes_taken": r.get("total_quizzes_taken") or 0,
            }
        )
    return out


def fetch_max_score(client: SupabaseClient) -> int:
    try:
        row = client.select_one(q_max_score())
    except SupabaseError as e:
        log.warning("Could not fetch max score: %s", e.message)
        return DEFAULT_MAX_SCORE
    if not row or not row.get("highest_score"):
        return DEFAULT_MAX_SCORE
    return int(row["highest_score"])


def add_quiz_question(client: SupabaseClient, question: dict) -> dict:
    """Insert one multiple-choice question; the correct answer must be one of its options."""
    required = ("grade", "subject", "topic", "question", *OPTION_KEYS[:2], "correct_answer")
    missing = [k for k in required if not str(question.get(k) or "").strip()]
    if missing:
        raise QuizError(f"Missing fields: {', '.join(missing)}")
    row = {k: (str(question.get(k)).strip() if question.get(k) else None) for k in (*required, *OPTION_KEYS[2:])}
    options = [row[k] for k in OPTION_KEYS if row.get(k)]
    if row["correct_answer"] not in options:
        raise QuizError("The correct answer must match one of the options.")
    rows = client.insert("quizzes", [row])
    if not rows:
        raise QuizError("Failed to add question.")
    log.info("Quiz question added for %s / %s / %s", row["grade"], row["subject"], row["topic"])
    return rows[0]
