from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache

from log_config import get_logger


log = get_logger(__name__)

_ALL = "__all__"


class MentorCache:
    """
    Time-boxed copies of the mentor directory and of single mentor rows.
    Writes through the admin/mentor views call `invalidate()`.

    One instance is shared by every Streamlit session thread. TTLCache is not
    thread-safe, so every cache access holds `_lock`; loaders run outside it.
    """

    def __init__(self, ttl_seconds: int = 60, timer: Callable[[], float] = time.monotonic, maxsize: int = 256):
        self._lists: TTLCache = TTLCache(maxsize=32, ttl=ttl_seconds, timer=timer)
        self._by_id: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._lock = threading.RLock()

    def mentors(self, loader: Callable[[], list[dict]], field_name: Optional[str] = None, force_refresh: bool = False) -> list[dict]:
        key = field_name or _ALL
        if not force_refresh:
            with self._lock:
                rows = self._lists.get(key)
            if rows is not None:
                return rows
        rows = loader()
        with self._lock:
            self._lists[key] = rows
            for row in rows:
                if row.get("id"):
                    self._by_id[str(row["id"])] = row
        return rows

    def mentor(self, mentor_id: str, loader: Callable[[], Optional[dict]], force_refresh: bool = False) -> Optional[dict]:
        if not force_refresh:
            with self._lock:
                row = self._by_id.get(mentor_id)
            if row is not None:
                return row
        row = loader()
        # Misses are not cached so a newly added mentor shows up immediately
        if row is not None:
            with self._lock:
                self._by_id[mentor_id] = row
        return row

    def invalidate(self, mentor_id: Optional[str] = None) -> None:
        with self._lock:
            self._lists.clear()
            if mentor_id is None:
                self._by_id.clear()
            else:
                self._by_id.pop(mentor_id, None)
        log.debug("Mentor cache invalidated (%s)", mentor_id or "all")
