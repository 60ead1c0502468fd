from __future__ import annotations

import random

import pytest

from conftest import FakeSupabase
from data.connection import SupabaseError
from data.quizzes import (
    DEFAULT_MAX_SCORE,
    QuizError,
    QuizScore,
    add_quiz_question,
    evaluate_quiz_attempt,
    fetch_leaderboard,
    fetch_max_score,
    fetch_quiz_attempt_results,
    fetch_quiz_questions,
    fetch_quiz_subjects,
    save_user_quiz_answers,
    score_attempt,
)


QUESTIONS = [
    {"id": "q1", "correct_answer": "Oxygen"},
    {"id": "q2", "correct_answer": "7"},
    {"id": "q3", "correct_answer": "Lusaka"},
]


class TestScore:
    @pytest.mark.parametrize(
        "correct,total,band",
        [(7, 10, "good"), (5, 10, "fair"), (4, 10, "poor"), (0, 0, "poor")],
    )
    def test_band(self, correct, total, band):
        assert QuizScore(correct, total).band == band

    def test_percent_of_empty_quiz(self):
        assert QuizScore(0, 0).percent == 0.0

    def test_score_attempt_counts_unanswered_as_wrong(self):
        score = score_attempt(QUESTIONS, {"q1": "Oxygen", "q2": "8"})
        assert (score.correct, score.total) == (1, 3)


class TestFetching:
    def test_distinct_subjects_sorted(self):
        client = FakeSupabase(tables={"quizzes": [{"subject": "Physics"}, {"subject": "Biology"}, {"subject": "Physics"}]})
        assert fetch_quiz_subjects(client, "Grade 12") == ["Biology", "Physics"]

    def test_questions_are_shuffled_and_limited(self):
        rows = [{"id": f"q{i}"} for i in range(5)]
        client = FakeSupabase(tables={"quizzes": rows})
        out = fetch_quiz_questions(client, "Grade 12", "Maths", "Algebra", rng=random.Random(1))
        assert sorted(r["id"] for r in out) == [r["id"] for r in rows]
        assert client.calls_to("select")[0][1].limit == 20

    def test_leaderboard_defaults(self):
        client = FakeSupabase(
            tables={
                "leaderboard": [
                    {"user_id": "u1", "highest_score": 90, "total_quizzes_taken": 3, "profiles": {"username": "neo"}},
                    {"user_id": "u2", "highest_score": None, "total_quizzes_taken": None, "profiles": None},
                ]
            }
        )
        board = fetch_leaderboard(client)
        assert board[0]["username"] == "neo"
        assert board[1] == {"user_id": "u2", "username": "Unknown User", "highest_score": 0, "total_quizzes_taken": 0}

    def test_max_score_defaults(self):
        assert fetch_max_score(FakeSupabase()) == DEFAULT_MAX_SCORE
        assert fetch_max_score(FakeSupabase(errors={"select": SupabaseError("x")})) == DEFAULT_MAX_SCORE
        assert fetch_max_score(FakeSupabase(tables={"leaderboard": [{"highest_score": 84}]})) == 84

    def test_attempt_results_expose_question(self):
        client = FakeSupabase(tables={"user_quiz_responses": [{"id": "r1", "quizzes": {"question": "Q?"}}]})
        assert fetch_quiz_attempt_results(client, "u1", "a1") == [{"id": "r1", "question": {"question": "Q?"}}]


class TestAttempts:
    def test_save_requires_answers(self):
        with pytest.raises(QuizError):
            save_user_quiz_answers(FakeSupabase(), "u1", "a1", {})

    def test_save_writes_one_row_per_answer(self):
        client = FakeSupabase()
        save_user_quiz_answers(client, "u1", "a1", {"q1": "Oxygen", "q2": "8"})
        (_, table, rows) = client.calls_to("insert")[0]
        assert table == "user_quiz_responses"
        assert len(rows) == 2
        assert all(r["is_correct"] is None and r["quiz_attempt_id"] == "a1" for r in rows)

    def _attempt_client(self, **kwargs):
        return FakeSupabase(
            tables={
                "user_quiz_responses": [
                    {"id": "r1", "quiz_id": "q1", "selected_answer": "Oxygen"},
                    {"id": "r2", "quiz_id": "q2", "selected_answer": "8"},
                    {"id": "r3", "quiz_id": "q3", "selected_answer": None},
                ],
                "quizzes": QUESTIONS,
            },
            **kwargs,
        )

    def test_evaluate_marks_each_response(self):
        client = self._attempt_client()
        score = evaluate_quiz_attempt(client, "u1", "a1")
        assert (score.correct, score.total) == (1, 3)
        marks = {c[3][0][2]: c[2]["is_correct"] for c in client.calls_to("update")}
        assert marks == {"r1": True, "r2": False, "r3": False}

    def test_evaluate_tolerates_update_failures(self):
        client = self._attempt_client(errors={"update": SupabaseError("rls")})
        assert evaluate_quiz_attempt(client, "u1", "a1").correct == 1

    def test_evaluate_empty_attempt(self):
        assert evaluate_quiz_attempt(FakeSupabase(), "u1", "a1") == QuizScore(0, 0)


class TestAddQuestion:
    VALID = {
        "grade": "Grade 12",
        "subject": "Chemistry",
        "topic": "Atoms",
        "question": "Lightest element?",
        "option_a": "Hydrogen",
        "option_b": "Helium",
        "correct_answer": "Hydrogen",
    }

    def test_inserts_trimmed_row(self):
        client = FakeSupabase()
        row = add_quiz_question(client, {**self.VALID, "question": "  Lightest element?  "})
        assert row["question"] == "Lightest element?"
        assert row["option_c"] is None

    def test_missing_fields(self):
        with pytest.raises(QuizError, match="topic"):
            add_quiz_question(FakeSupabase(), {**self.VALID, "topic": " "})

    def test_answer_must_be_an_option(self):
        with pytest.raises(QuizError):
            add_quiz_question(FakeSupabase(), {**self.VALID, "correct_answer": "Lithium"})
