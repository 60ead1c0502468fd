"""
Mentorship: weekly slot generation and session booking.

Slots are enumerated in the mentorship time zone (wall-clock window on a
fixed weekday), converted to UTC, and filtered against sessions that already
occupy the mentor. Bookings go to the `sessions` table; when the backend
rejects the write the booking is kept in a local JSON store so the student
still sees it on their dashboard.
"""
from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from config import AppConfig
from data.connection import SupabaseClient, SupabaseError
from data.derive import parse_timestamp, unique_sorted
from data.queries import (
    MENTOR_COLUMNS,
    TableQuery,
    q_booked_session_times,
    q_mentor,
    q_mentor_feedback,
    q_mentor_fields,
    q_mentors,
    q_user_sessions,
)
from log_config import get_logger


log = get_logger(__name__)

SESSION_STATUSES = ("confirmed", "cancelled", "completed")
LOCAL_KEY_PREFIX = "mentorship_booking_"


class BookingError(RuntimeError):
    pass


class SlotAlreadyBookedError(BookingError):
    def __init__(self) -> None:
        super().__init__("This time slot is already booked. Please select another time.")


@dataclass(frozen=True)
class SlotPolicy:
    time_zone: str = "Asia/Kolkata"
    weekday: int = 5  # Monday=0, so Saturday
    start_hour: int = 15
    end_hour: int = 18
    duration_minutes: int = 30
    max_per_day: int = 6
    weeks: int = 4

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError("weekday must be 0..6")
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError("start_hour must be before end_hour")
        if self.duration_minutes <= 0 or self.max_per_day <= 0 or self.weeks <= 0:
            raise ValueError("duration, max_per_day and weeks must be positive")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)


def policy_from_config(cfg: AppConfig) -> SlotPolicy:
    return SlotPolicy(time_zone=cfg.mentorship_time_zone)


@dataclass
class MentorshipSession:
    id: str
    mentor_id: str
    student_id: str
    session_time: str
    status: str  # booked | completed | cancelled
    created_at: str
    source: str = "database"  # database | local
    notes: Optional[str] = None

    @property
    def starts_at(self) -> Optional[datetime]:
        return parse_timestamp(self.session_time)

    @classmethod
    def from_row(cls, row: dict) -> "MentorshipSession":
        # sessions table uses user_id and 'scheduled'; the UI speaks student_id and 'booked'
        status = row.get("status") or "scheduled"
        return cls(
            id=str(row.get("id")),
            mentor_id=str(row.get("mentor_id")),
            student_id=str(row.get("user_id") or row.get("student_id")),
            session_time=str(row.get("session_time")),
            status="booked" if status == "scheduled" else status,
            created_at=str(row.get("created_at") or ""),
            notes=row.get("notes"),
        )


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        raise ValueError("Slot times must be timezone-aware")
    return moment.astimezone(timezone.utc)


# --- Pure slot arithmetic ---

def upcoming_mentorship_days(now: datetime, policy: SlotPolicy = SlotPolicy()) -> list[date]:
    """The next `policy.weeks` mentorship weekdays strictly after today (local date)."""
    today = _utc(now).astimezone(policy.tz).date()
    ahead = (policy.weekday - today.weekday()) % 7 or 7
    first = today + timedelta(days=ahead)
    return [first + timedelta(weeks=i) for i in range(policy.weeks)]


def day_bounds_utc(day: date, policy: SlotPolicy = SlotPolicy()) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0), tzinfo=policy.tz)
    end = datetime.combine(day + timedelta(days=1), time(0), tzinfo=policy.tz)
    return _utc(start), _utc(end)


def enumerate_day_slots(day: date, policy: SlotPolicy = SlotPolicy()) -> list[datetime]:
    """Every slot start on `day` whose whole session fits in the local window, as UTC."""
    tz = policy.tz
    cursor = datetime.combine(day, time(policy.start_hour), tzinfo=tz)
    window_end = (
        datetime.combine(day + timedelta(days=1), time(0), tzinfo=tz)
        if policy.end_hour == 24
        else datetime.combine(day, time(policy.end_hour), tzinfo=tz)
    )
    slots = []
    while cursor + policy.duration <= window_end:
        slots.append(_utc(cursor))
        cursor = cursor + policy.duration
    return slots


def overlaps(a: datetime, b: datetime, duration: timedelta) -> bool:
    return a < b + duration and b < a + duration


def filter_available(
    slots: Iterable[datetime],
    booked: Iterable[datetime],
    now: datetime,
    policy: SlotPolicy = SlotPolicy(),
) -> list[datetime]:
    """Drop past slots and any slot overlapping a booked one; keep at most max_per_day."""
    now = _utc(now)
    taken = [_utc(b) for b in booked]
    out: list[datetime] = []
    for slot in sorted(_utc(s) for s in slots):
        if slot <= now:
            continue
        if any(overlaps(slot, b, policy.duration) for b in taken):
            continue
        out.append(slot)
        if len(out) >= policy.max_per_day:
            break
    return out


# --- Local fallback store ---

class LocalBookingStore:
    """
    One JSON file per booking, keyed like `mentorship_booking_<mentor>_<iso time>`.
    Holds bookings the backend refused to store.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    @staticmethod
    def key(mentor_id: str, session_time: str) -> str:
        return f"{LOCAL_KEY_PREFIX}{mentor_id}_{session_time}"

    def _path(self, key: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "-" for ch in key)
        return self.directory / f"{safe}.json"

    def save(self, session: MentorshipSession) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(self.key(session.mentor_id, session.session_time))
        path.write_text(json.dumps(asdict(session)), encoding="utf-8")

    def _load_all(self) -> list[MentorshipSession]:
        if not self.directory.exists():
            return []
        sessions = []
        for path in sorted(self.directory.glob(f"{LOCAL_KEY_PREFIX}*.json")):
            try:
                sessions.append(MentorshipSession(**json.loads(path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, TypeError) as e:
                log.error("Skipping unreadable local booking %s: %s", path.name, e)
        return sessions

    def sessions_for(self, user_id: str) -> list[MentorshipSession]:
        mine = [s for s in self._load_all() if s.student_id == user_id]
        return sorted(mine, key=lambda s: s.starts_at or datetime.max.replace(tzinfo=timezone.utc))

    def booked_times(self, mentor_id: str, start_utc: datetime, end_utc: datetime) -> list[datetime]:
        out = []
        for s in self._load_all():
            t = s.starts_at
            if s.mentor_id == mentor_id and s.status != "cancelled" and t is not None and start_utc <= t < end_utc:
                out.append(t)
        return out

    def is_booked(self, mentor_id: str, slot: datetime, duration: timedelta) -> bool:
        slot = _utc(slot)
        return any(overlaps(slot, t, duration) for t in self.booked_times(mentor_id, slot - duration, slot + duration))

    def set_status(self, session_id: str, status: str) -> bool:
        if status not in SESSION_STATUSES:
            raise ValueError(f"Unknown session status: {status}")
        for s in self._load_all():
            if s.id == session_id:
                s.status = status
                self.save(s)
                return True
        return False


def get_local_store(cfg: AppConfig) -> LocalBookingStore:
    return LocalBookingStore(cfg.local_bookings_dir)


# --- Remote reads ---

def fetch_booked_slots(client: SupabaseClient, mentor_id: str, start_utc: datetime, end_utc: datetime) -> list[datetime]:
    try:
        rows = client.select(q_booked_session_times(mentor_id, start_utc, end_utc))
    except SupabaseError as e:
        log.error("Error fetching booked slots for mentor %s: %s", mentor_id, e)
        raise
    times = (parse_timestamp(r.get("session_time")) for r in rows)
    return [t for t in times if t is not None]


def generate_available_slots(
    client: Optional[SupabaseClient],
    mentor_id: str,
    now: Optional[datetime] = None,
    policy: SlotPolicy = SlotPolicy(),
    store: Optional[LocalBookingStore] = None,
) -> list[datetime]:
    """
    Available UTC slot starts for `mentor_id` over the next `policy.weeks`
    mentorship days, sorted ascending. `client=None` checks only the local store.
    """
    now = _utc(now or datetime.now(timezone.utc))
    available: list[datetime] = []
    for day in upcoming_mentorship_days(now, policy):
        start_utc, end_utc = day_bounds_utc(day, policy)
        booked: list[datetime] = []
        if client is not None:
            booked.extend(fetch_booked_slots(client, mentor_id, start_utc, end_utc))
        if store is not None:
            booked.extend(store.booked_times(mentor_id, start_utc, end_utc))
        available.extend(filter_available(enumerate_day_slots(day, policy), booked, now, policy))
    return sorted(available)


# --- Booking ---

def _save_local(
    mentor_id: str, student_id: str, slot_utc: datetime, store: LocalBookingStore, notes: Optional[str]
) -> MentorshipSession:
    session = MentorshipSession(
        id=str(uuid.uuid4()),
        mentor_id=mentor_id,
        student_id=student_id,
        session_time=slot_utc.isoformat(),
        status="booked",
        created_at=datetime.now(timezone.utc).isoformat(),
        source="local",
        notes=notes,
    )
    store.save(session)
    log.info("Booking stored locally for mentor %s at %s", mentor_id, session.session_time)
    return session


def book_local_session(
    mentor_id: str,
    student_id: str,
    slot: datetime,
    store: LocalBookingStore,
    policy: SlotPolicy = SlotPolicy(),
    notes: Optional[str] = None,
) -> MentorshipSession:
    """Book against the local store only (no backend configured)."""
    if not student_id:
        raise BookingError("You need to be signed in to book a session.")
    slot_utc = _utc(slot)
    if store.is_booked(mentor_id, slot_utc, policy.duration):
        raise SlotAlreadyBookedError()
    return _save_local(mentor_id, student_id, slot_utc, store, notes)


def book_session(
    client: SupabaseClient,
    mentor_id: str,
    student_id: str,
    slot: datetime,
    store: LocalBookingStore,
    policy: SlotPolicy = SlotPolicy(),
    notes: Optional[str] = None,
) -> MentorshipSession:
    """
    Book `slot` with `mentor_id`. Tries the `sessions` table first; if the
    backend rejects the write, keeps the booking in `store` instead.
    """
    if not student_id:
        raise BookingError("You need to be signed in to book a session.")
    slot_utc = _utc(slot)
    session_time = slot_utc.isoformat()

    try:
        taken = fetch_booked_slots(client, mentor_id, slot_utc - policy.duration, slot_utc + policy.duration)
    except SupabaseError as e:
        log.warning("Could not check existing bookings, continuing: %s", e.message)
        taken = []
    if any(overlaps(slot_utc, t, policy.duration) for t in taken):
        raise SlotAlreadyBookedError()
    if store.is_booked(mentor_id, slot_utc, policy.duration):
        raise SlotAlreadyBookedError()

    row = {
        "mentor_id": mentor_id,
        "user_id": student_id,
        "session_time": session_time,
        "session_type": "mentorship",
        "status": "scheduled",
    }
    if notes:
        row["notes"] = notes

    try:
        inserted = client.insert("sessions", [row])
    except SupabaseError as e:
        log.warning("Could not store session in database (%s). Using local fallback: %s", e.code, e.message)
        return _save_local(mentor_id, student_id, slot_utc, store, notes)

    if not inserted:
        raise BookingError("Failed to book session. Please try again later.")
    log.info("Session booked in database: mentor=%s time=%s", mentor_id, session_time)
    return MentorshipSession.from_row(inserted[0])


def fetch_user_sessions(
    client: Optional[SupabaseClient], user_id: str, store: Optional[LocalBookingStore] = None
) -> list[MentorshipSession]:
    """Database sessions plus local fallback bookings, sorted by start time."""
    sessions: list[MentorshipSession] = []
    if client is not None:
        try:
            sessions.extend(MentorshipSession.from_row(r) for r in client.select(q_user_sessions(user_id)))
        except SupabaseError as e:
            log.error("Error fetching sessions for user %s: %s", user_id, e.message)
    if store is not None:
        sessions.extend(store.sessions_for(user_id))
    return sorted(sessions, key=lambda s: s.starts_at or datetime.max.replace(tzinfo=timezone.utc))


def update_session_status(client: SupabaseClient, session_id: str, status: str) -> dict:
    if status not in SESSION_STATUSES:
        raise ValueError(f"Unknown session status: {status}")
    try:
        rows = client.update(
            "sessions",
            {"status": status, "updated_at": datetime.now(timezone.utc).isoformat()},
            (("id", "eq", session_id),),
        )
    except SupabaseError as e:
        if e.is_permission_denied:
            raise BookingError(f"Permission denied: cannot update session status ({e.message})") from e
        raise BookingError(e.message or "Failed to update session status.") from e
    if not rows:
        raise BookingError("Session not found.")
    log.info("Session %s status updated to %s", session_id, status)
    return rows[0]


# --- Mentors ---

def fetch_mentors(client: SupabaseClient, field_name: Optional[str] = None) -> list[dict]:
    query = q_mentors(field_name)
    try:
        return client.select(query)
    except SupabaseError as e:
        if "avatar_url" not in e.message:
            log.error("Error fetching mentors: %s", e.message)
            raise
        # Older projects lack mentors.avatar_url; retry without it
        log.warning("The 'avatar_url' column does not exist on 'mentors'; add it in the Supabase dashboard.")
        select = MENTOR_COLUMNS.replace("avatar_url,", "")
        rows = client.select(TableQuery(query.table, select=select, filters=query.filters, order=query.order))
        return [{**r, "avatar_url": None} for r in rows]


def fetch_mentor(client: SupabaseClient, mentor_id: str) -> Optional[dict]:
    return client.select_one(q_mentor(mentor_id))


def fetch_distinct_mentor_fields(client: SupabaseClient) -> list[str]:
    return unique_sorted(r.get("field") for r in client.select(q_mentor_fields()))


def submit_feedback(client: SupabaseClient, mentor_id: str, user_id: str, rating: int, comment: str) -> dict:
    if not 1 <= int(rating) <= 5:
        raise ValueError("Rating must be between 1 and 5")
    rows = client.insert(
        "mentor_feedback",
        [{"mentor_id": mentor_id, "user_id": user_id, "rating": int(rating), "comment": comment.strip()}],
    )
    if not rows:
        raise BookingError("Failed to submit feedback.")
    return rows[0]


def fetch_feedback(client: SupabaseClient, mentor_id: str) -> list[dict]:
    return client.select(q_mentor_feedback(mentor_id))


def average_rating(ratings: Iterable[Optional[float]]) -> float:
    values = [float(r) for r in ratings if r is not None]
    return sum(values) / len(values) if values else 0.0


def calculate_session_price(hourly_rate: float, duration_minutes: int) -> float:
    return (hourly_rate * duration_minutes) / 60


@dataclass
class SlotsByDay:
    """Slots grouped by local calendar day, for rendering a picker."""
    policy: SlotPolicy
    days: dict = field(default_factory=dict)  # date -> list[datetime]

    @classmethod
    def group(cls, slots: Iterable[datetime], policy: SlotPolicy = SlotPolicy()) -> "SlotsByDay":
        grouped: dict = {}
        for s in sorted(slots):
            grouped.setdefault(s.astimezone(policy.tz).date(), []).append(s)
        return cls(policy=policy, days=grouped)

    def label(self, slot: datetime) -> str:
        local = slot.astimezone(self.policy.tz)
        return local.strftime("%I:%M %p").lstrip("0")
