from __future__ import annotations

import random
import uuid
from datetime import date, datetime, timedelta, timezone

import pandas as pd
from faker import Faker


fake = Faker()


GRADES = ["Grade 10", "Grade 11", "Grade 12"]
SUBJECT_TOPICS = {
    "Mathematics": ["Algebra", "Geometry", "Trigonometry", "Statistics"],
    "Physics": ["Mechanics", "Electricity", "Waves"],
    "Chemistry": ["Atomic Structure", "Organic Chemistry", "Stoichiometry"],
    "Biology": ["Cells", "Genetics", "Ecology"],
    "English": ["Comprehension", "Grammar", "Composition"],
}
MENTOR_FIELDS = ["Engineering", "Medicine", "Computer Science", "Business", "Law"]
COUNTRIES = ["Zambia", "South Africa", "United Kingdom", "United States", "Canada", "Germany"]
LEVELS = ["Undergraduate", "Masters", "PhD", "Undergraduate, Masters"]
DIFFICULTIES = ["easy", "medium", "hard"]


def _id(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def _ts(rng: random.Random, max_days_ago: int = 120) -> str:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return (now - timedelta(days=rng.randint(0, max_days_ago), minutes=rng.randint(0, 1440))).isoformat()


def videos_mock(n: int = 30) -> pd.DataFrame:
    rng = random.Random(7)
    fake.seed_instance(7)
    rows = []
    for _ in range(n):
        subject = rng.choice(list(SUBJECT_TOPICS))
        topic = rng.choice(SUBJECT_TOPICS[subject])
        vid = _id(rng)
        rows.append(
            {
                "id": vid,
                "title": f"{topic}: {fake.catch_phrase()}",
                "grade": rng.choice(GRADES),
                "subject": subject,
                "topic": topic,
                "video_url": f"https://www.youtube.com/watch?v={vid[:11]}",
                "thumbnail_url": None,
                "uploaded_by": None,
                "created_at": _ts(rng),
            }
        )
    return pd.DataFrame(rows).sort_values("created_at", ascending=False).reset_index(drop=True)


def mentors_mock(n: int = 10) -> pd.DataFrame:
    rng = random.Random(9)
    fake.seed_instance(9)
    rows = []
    for _ in range(n):
        field = rng.choice(MENTOR_FIELDS)
        rows.append(
            {
                "id": _id(rng),
                "name": fake.name(),
                "bio": fake.paragraph(nb_sentences=3),
                "field": field,
                "occupation": fake.job(),
                "university": f"University of {fake.city()}",
                "company": fake.company(),
                "linkedin": f"https://www.linkedin.com/in/{fake.user_name()}",
                "avatar_url": None,
                "available": True,
                "hourly_rate": float(rng.choice([0, 150, 200, 250, 300])),
                "currency": "ZMW",
                "created_at": _ts(rng, 365),
            }
        )
    return pd.DataFrame(rows).sort_values("name").reset_index(drop=True)


def flashcard_taxonomy_mock() -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """(subjects, topics, tags) with stable ids."""
    rng = random.Random(11)
    subjects, topics = [], []
    for name, topic_names in SUBJECT_TOPICS.items():
        sid = _id(rng)
        subjects.append({"id": sid, "name": name})
        for t in topic_names:
            topics.append({"id": _id(rng), "name": t, "subject_id": sid})
    tags = [{"id": _id(rng), "name": n} for n in ["exam-favourite", "definitions", "formulas", "past-paper"]]
    return (
        pd.DataFrame(subjects).sort_values("name").reset_index(drop=True),
        pd.DataFrame(topics).sort_values("name").reset_index(drop=True),
        pd.DataFrame(tags).sort_values("name").reset_index(drop=True),
    )


def flashcards_mock(per_topic: int = 4) -> pd.DataFrame:
    """Flattened flashcards: topic/subject names and a list of tag dicts per card."""
    rng = random.Random(13)
    fake.seed_instance(13)
    subjects, topics, tags = flashcard_taxonomy_mock()
    subject_names = dict(zip(subjects["id"], subjects["name"]))
    tag_rows = tags.to_dict("records")
    rows = []
    for t in topics.to_dict("records"):
        for _ in range(per_topic):
            created = _ts(rng, 200)
            rows.append(
                {
                    "id": _id(rng),
                    "topic_id": t["id"],
                    "grade": rng.choice([10, 11, 12]),
                    "question": f"{t['name']}: {fake.sentence(nb_words=8).rstrip('.')}?",
                    "answer": fake.sentence(nb_words=10),
                    "difficulty_level": rng.choice(DIFFICULTIES),
                    "created_at": created,
                    "updated_at": created,
                    "topic_name": t["name"],
                    "subject_id": t["subject_id"],
                    "subject_name": subject_names[t["subject_id"]],
                    "tags": rng.sample(tag_rows, k=rng.randint(0, 2)),
                }
            )
    return pd.DataFrame(rows)


def quiz_questions_mock(per_topic: int = 6) -> pd.DataFrame:
    rng = random.Random(17)
    fake.seed_instance(17)
    rows = []
    for grade in GRADES:
        for subject, topic_names in SUBJECT_TOPICS.items():
            for topic in topic_names:
                for _ in range(per_topic):
                    options = [fake.word().capitalize() for _ in range(4)]
                    created = _ts(rng, 300)
                    rows.append(
                        {
                            "id": _id(rng),
                            "grade": grade,
                            "subject": subject,
                            "topic": topic,
                            "question": f"Which term best fits this {topic.lower()} clue: {fake.sentence(nb_words=6)}",
                            "option_a": options[0],
                            "option_b": options[1],
                            "option_c": options[2],
                            "option_d": options[3],
                            "correct_answer": rng.choice(options),
                            "created_at": created,
                            "updated_at": created,
                        }
                    )
    return pd.DataFrame(rows)


def leaderboard_mock(n: int = 10) -> pd.DataFrame:
    rng = random.Random(19)
    fake.seed_instance(19)
    rows = [
        {
            "user_id": _id(rng),
            "username": fake.user_name(),
            "highest_score": float(rng.randint(40, 100)),
            "total_quizzes_taken": rng.randint(1, 40),
        }
        for _ in range(n)
    ]
    return pd.DataFrame(rows).sort_values("highest_score", ascending=False).reset_index(drop=True)


def past_papers_mock() -> pd.DataFrame:
    rng = random.Random(23)
    rows = []
    for subject in SUBJECT_TOPICS:
        for year in range(date.today().year - 6, date.today().year):
            for grade in ["Grade 9", "Grade 12"]:
                pid = _id(rng)
                rows.append(
                    {
                        "id": pid,
                        "subject": subject,
                        "year": year,
                        "grade": grade,
                        "level": rng.choice(["Basic", "Intermediate", "Advanced"]),
                        "file_url": f"https://example.org/past-papers/{pid}.pdf",
                        "file_size": round(rng.uniform(0.3, 4.5), 1),
                        "created_at": _ts(rng, 500),
                    }
                )
    return pd.DataFrame(rows).sort_values(["year", "subject"], ascending=[False, True]).reset_index(drop=True)


def scholarships_mock(n: int = 18) -> pd.DataFrame:
    rng = random.Random(29)
    fake.seed_instance(29)
    today = date.today()
    fields = ["Engineering", "Medicine & Health", "Computer Science, Data Science", "Business", "Agriculture"]
    rows = []
    for _ in range(n):
        org = fake.company()
        rows.append(
            {
                "id": _id(rng),
                "title": f"{org} {rng.choice(['Excellence', 'Future Leaders', 'Access', 'STEM'])} Scholarship",
                "description": fake.paragraph(nb_sentences=2),
                "organization": org,
                "country": rng.choice(COUNTRIES),
                "eligibility": fake.sentence(nb_words=12),
                "level": rng.choice(LEVELS),
                "field_of_study": rng.choice(fields),
                "application_link": fake.url(),
                "deadline": (today + timedelta(days=rng.randint(-20, 240))).isoformat(),
                "created_at": _ts(rng, 200),
            }
        )
    return pd.DataFrame(rows).sort_values("deadline").reset_index(drop=True)


def progress_mock(user_id: str) -> pd.DataFrame:
    rng = random.Random(31)
    return pd.DataFrame(
        [{"user_id": user_id, "subject": s, "percent": rng.randint(5, 95)} for s in SUBJECT_TOPICS]
    )


def recent_activities_mock(user_id: str, n: int = 6) -> pd.DataFrame:
    rng = random.Random(37)
    kinds = [
        ("video", "Watched a video"),
        ("quiz", "Completed a quiz"),
        ("flashcards", "Reviewed a flashcard deck"),
        ("past_paper", "Downloaded a past paper"),
    ]
    rows = []
    for _ in range(n):
        kind, label = rng.choice(kinds)
        subject = rng.choice(list(SUBJECT_TOPICS))
        rows.append({"user_id": user_id, "type": kind, "title": f"{label} in {subject}", "timestamp": _ts(rng, 14)})
    return pd.DataFrame(rows).sort_values("timestamp", ascending=False).reset_index(drop=True)
