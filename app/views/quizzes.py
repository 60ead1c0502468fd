from __future__ import annotations

from typing import Optional

import streamlit as st

from components.auth import access_token, current_session
from components.metrics import score_gauge
from components.narrative import render_page_intro, render_tip
from config import AppConfig
from data import quizzes
from data.connection import SupabaseError
from data.quizzes import OPTION_KEYS, QuizError, QuizScore, score_attempt
from data.service import client_for, get_leaderboard, get_quiz_filter_values, get_quiz_questions


BAND_TEXT = {
    "good": "Great work! You clearly know this topic.",
    "fair": "Not bad. Review the questions you missed and try again.",
    "poor": "Keep going. Revise the topic with videos or flashcards, then retake the quiz.",
}


def _options(question: dict) -> list[str]:
    return [question[k] for k in OPTION_KEYS if question.get(k)]


def _save_attempt(cfg: AppConfig, answers: dict[str, str]) -> Optional[QuizScore]:
    """Persist and grade the attempt server-side; returns None when not signed in."""
    session = current_session()
    if session is None:
        return None
    client = client_for(cfg, access_token())
    attempt_id = quizzes.new_attempt_id()
    try:
        quizzes.save_user_quiz_answers(client, session.user_id, attempt_id, answers)
        score = quizzes.evaluate_quiz_attempt(client, session.user_id, attempt_id)
    except (QuizError, SupabaseError) as e:
        st.warning(f"Your answers could not be saved: {e}")
        return None
    st.session_state["quiz_attempt_id"] = attempt_id
    return score


def _render_runner(cfg: AppConfig, questions: list[dict], live: bool) -> None:
    with st.form("quiz_form"):
        answers: dict[str, str] = {}
        for i, q in enumerate(questions, start=1):
            st.markdown(f"**{i}. {q['question']}**")
            choice = st.radio("Answer", _options(q), index=None, key=f"q_{q['id']}", label_visibility="collapsed")
            if choice is not None:
                answers[q["id"]] = choice
        submitted = st.form_submit_button("Submit answers", type="primary")

    if not submitted:
        return
    if len(answers) < len(questions):
        st.warning(f"You answered {len(answers)} of {len(questions)} questions. Unanswered ones count as wrong.")
    score = score_attempt(questions, answers)
    if live and answers:
        saved = _save_attempt(cfg, answers)
        if saved is not None:
            st.caption("Attempt saved to your profile.")
    st.session_state["quiz_result"] = {"score": score, "answers": answers}
    st.rerun()


def _render_review(questions: list[dict], score: QuizScore, answers: dict[str, str]) -> None:
    c1, c2 = st.columns([1, 2])
    with c1:
        score_gauge(score.percent)
    with c2:
        st.markdown(f"### {score.correct} / {score.total} correct")
        st.markdown(f'<span class="band-{score.band}">{BAND_TEXT[score.band]}</span>', unsafe_allow_html=True)

    st.subheader("Review")
    for i, q in enumerate(questions, start=1):
        picked = answers.get(q["id"])
        ok = picked == q.get("correct_answer")
        with st.expander(f"{'✅' if ok else '❌'} {i}. {q['question']}", expanded=not ok):
            st.markdown(f"Your answer: **{picked or 'Not answered'}**")
            if not ok:
                st.markdown(f"Correct answer: **{q.get('correct_answer')}**")


def _render_leaderboard(cfg: AppConfig, use_mock: bool) -> None:
    result = get_leaderboard(cfg, use_mock, limit=10)
    if result.warning:
        st.warning(result.warning)
    df = result.df
    if df.empty:
        st.info("No scores yet. Be the first!")
        return
    df = df.reset_index(drop=True)
    df.index = df.index + 1
    st.dataframe(
        df[["username", "highest_score", "total_quizzes_taken"]].rename(
            columns={"username": "Student", "highest_score": "Best score", "total_quizzes_taken": "Quizzes taken"}
        ),
        use_container_width=True,
    )


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Quizzes")
    render_page_intro("Ready to test yourself?", "Pick a grade, subject and topic. Each quiz has up to 20 shuffled questions.")

    take_tab, board_tab = st.tabs(["Take a quiz", "Leaderboard"])
    with board_tab:
        _render_leaderboard(cfg, use_mock)

    with take_tab:
        c1, c2, c3 = st.columns(3)
        with c1:
            grade = st.selectbox("Grade", get_quiz_filter_values(cfg, use_mock, "grade").values("grade"), index=None, key="quiz_grade")
        with c2:
            subjects = get_quiz_filter_values(cfg, use_mock, "subject", grade).values("subject") if grade else []
            subject = st.selectbox("Subject", subjects, index=None, key="quiz_subject", disabled=not grade)
        with c3:
            topics = get_quiz_filter_values(cfg, use_mock, "topic", grade, subject).values("topic") if subject else []
            topic = st.selectbox("Topic", topics, index=None, key="quiz_topic", disabled=not subject)

        if st.button("Start quiz", type="primary", disabled=not (grade and subject and topic)):
            result = get_quiz_questions(cfg, use_mock, grade, subject, topic)
            if result.warning:
                st.warning(result.warning)
            st.session_state["quiz_questions"] = result.df.to_dict("records")
            st.session_state["quiz_live"] = result.source == "supabase"
            st.session_state.pop("quiz_result", None)

        questions = st.session_state.get("quiz_questions")
        if questions is None:
            render_tip("Tip", "Quizzes are shuffled each time, so retaking one is good practice.")
            return
        if not questions:
            st.info("No questions for this topic yet.")
            return

        outcome = st.session_state.get("quiz_result")
        if outcome:
            _render_review(questions, outcome["score"], outcome["answers"])
            if st.button("Try again"):
                st.session_state.pop("quiz_result", None)
                st.rerun()
        else:
            _render_runner(cfg, questions, live=st.session_state.get("quiz_live", False))
