from __future__ import annotations

import html

import streamlit as st

from components.auth import access_token, current_profile, current_session
from components.narrative import render_page_intro
from config import AppConfig
from data import flashcards
from data.connection import SupabaseError
from data.flashcards import Deck, FlashcardFilters
from data.service import client_for, get_flashcard_subjects, get_flashcard_tags, get_flashcard_topics, get_flashcards


ALL = "All"


def _filters(cfg: AppConfig, use_mock: bool) -> FlashcardFilters:
    subjects = get_flashcard_subjects(cfg, use_mock).df
    tags = get_flashcard_tags(cfg, use_mock).df

    c1, c2, c3 = st.columns(3)
    with c1:
        subject_names = dict(zip(subjects.get("id", []), subjects.get("name", [])))
        subject_id = st.selectbox(
            "Subject", [None] + list(subject_names), format_func=lambda i: ALL if i is None else subject_names[i], key="fc_subject"
        )
    with c2:
        topics = get_flashcard_topics(cfg, use_mock, subject_id).df
        topic_names = dict(zip(topics.get("id", []), topics.get("name", [])))
        topic_id = st.selectbox(
            "Topic", [None] + list(topic_names), format_func=lambda i: ALL if i is None else topic_names[i], key="fc_topic"
        )
    with c3:
        difficulty = st.selectbox("Difficulty", [None, *flashcards.DIFFICULTIES], format_func=lambda d: d.title() if d else ALL, key="fc_diff")

    c4, c5 = st.columns([2, 3])
    with c4:
        tag_names = dict(zip(tags.get("id", []), tags.get("name", [])))
        tag_ids = st.multiselect("Tags", list(tag_names), format_func=lambda i: tag_names[i], key="fc_tags")
    with c5:
        search = st.text_input("Search questions and answers", key="fc_search")

    return FlashcardFilters(
        subject_id=subject_id,
        topic_id=topic_id,
        difficulty=difficulty,
        tag_ids=tuple(tag_ids),
        search=search.strip() or None,
    )


def _record(cfg: AppConfig, card: dict, is_correct: bool, live: bool) -> None:
    session = current_session()
    if not live or session is None:
        return
    try:
        flashcards.update_flashcard_progress(client_for(cfg, access_token()), session.user_id, card["id"], is_correct)
    except (SupabaseError, ValueError) as e:
        st.toast(f"Progress not saved: {e}")


def _render_deck(cfg: AppConfig, deck: Deck, live: bool) -> None:
    card = deck.current
    st.progress(len(deck.answered) / len(deck.cards), text=f"Card {deck.index + 1} of {len(deck.cards)}")
    face = card["answer"] if deck.flipped else card["question"]
    cls = "flashcard answer" if deck.flipped else "flashcard"
    st.markdown(f'<div class="{cls}">{html.escape(str(face))}</div>', unsafe_allow_html=True)
    tags = ", ".join(t["name"] for t in card.get("tags") or [])
    st.caption(f"{card.get('subject_name')} · {card.get('topic_name')} · {card.get('difficulty_level') or 'unrated'}" + (f" · {tags}" if tags else ""))

    b1, b2, b3, b4, b5 = st.columns(5)
    if b1.button("◀ Prev", use_container_width=True, disabled=deck.index == 0):
        deck.prev()
        st.rerun()
    if b2.button("🔄 Flip", use_container_width=True):
        deck.flip()
        st.rerun()
    answered = card["id"] in deck.answered
    if b3.button("✅ Knew it", use_container_width=True, disabled=answered):
        _record(cfg, card, True, live)
        deck.mark(True)
        st.rerun()
    if b4.button("❌ Still learning", use_container_width=True, disabled=answered):
        _record(cfg, card, False, live)
        deck.mark(False)
        st.rerun()
    if b5.button("Next ▶", use_container_width=True, disabled=deck.index >= len(deck.cards) - 1):
        deck.next()
        st.rerun()

    st.caption(f"Correct: **{deck.correct}** · Still learning: **{deck.incorrect}**")
    if deck.is_finished:
        st.success(f"Deck complete: {deck.correct} of {len(deck.cards)} known.")


def _render_add_form(cfg: AppConfig, use_mock: bool) -> None:
    profile = current_profile()
    if use_mock or profile is None or profile.role not in ("admin", "mentor"):
        return
    with st.expander("➕ Add a flashcard"):
        topics = get_flashcard_topics(cfg, use_mock).df
        tags = get_flashcard_tags(cfg, use_mock).df
        topic_names = dict(zip(topics.get("id", []), topics.get("name", [])))
        tag_names = dict(zip(tags.get("id", []), tags.get("name", [])))
        with st.form("add_flashcard", clear_on_submit=True):
            topic_id = st.selectbox("Topic", list(topic_names), format_func=lambda i: topic_names[i])
            question = st.text_area("Question")
            answer = st.text_area("Answer")
            grade = st.selectbox("Grade", [None, 10, 11, 12], format_func=lambda g: "Any" if g is None else f"Grade {g}")
            difficulty = st.selectbox("Difficulty", [None, *flashcards.DIFFICULTIES], format_func=lambda d: d or "Unrated")
            tag_ids = st.multiselect("Tags", list(tag_names), format_func=lambda i: tag_names[i])
            if st.form_submit_button("Save flashcard", type="primary"):
                try:
                    flashcards.add_flashcard(
                        client_for(cfg, access_token()), topic_id, question, answer, grade, difficulty, tuple(tag_ids)
                    )
                    st.success("Flashcard added.")
                except ValueError as e:
                    st.warning(str(e))
                except SupabaseError as e:
                    st.error(f"Could not add flashcard: {e.message}")


def render(cfg: AppConfig, use_mock: bool) -> None:
    st.title("Flashcards")
    render_page_intro("What do you want to revise?", "Flip each card, then mark whether you knew the answer.")

    filters = _filters(cfg, use_mock)
    result = get_flashcards(cfg, use_mock, filters)
    if result.warning:
        st.warning(result.warning)
    st.caption(f"Data source: **{result.source}** · {len(result.df)} cards")

    if result.df.empty:
        st.info("No flashcards match these filters.")
        _render_add_form(cfg, use_mock)
        return

    # New deck whenever the filters change
    deck_key = (filters, result.source)
    if st.session_state.get("fc_deck_key") != deck_key or st.button("🔀 Shuffle a new deck"):
        st.session_state["fc_deck"] = Deck.shuffled(result.df.to_dict("records"))
        st.session_state["fc_deck_key"] = deck_key

    _render_deck(cfg, st.session_state["fc_deck"], live=result.source == "supabase")
    _render_add_form(cfg, use_mock)
