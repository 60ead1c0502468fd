from __future__ import annotations

import threading

from data.cache import MentorCache


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.result


def test_list_is_reused_until_ttl():
    timer = FakeTimer()
    cache = MentorCache(ttl_seconds=60, timer=timer)
    loader = CountingLoader([{"id": "m1"}])
    cache.mentors(loader)
    timer.now = 59
    cache.mentors(loader)
    assert loader.calls == 1
    timer.now = 61
    cache.mentors(loader)
    assert loader.calls == 2


def test_field_filters_are_cached_separately():
    cache = MentorCache(timer=FakeTimer())
    loader = CountingLoader([])
    cache.mentors(loader, field_name="Law")
    cache.mentors(loader, field_name="Medicine")
    cache.mentors(loader, field_name="Law")
    assert loader.calls == 2


def test_force_refresh():
    cache = MentorCache(timer=FakeTimer())
    loader = CountingLoader([])
    cache.mentors(loader)
    cache.mentors(loader, force_refresh=True)
    assert loader.calls == 2


def test_single_mentor_misses_are_not_cached():
    cache = MentorCache(timer=FakeTimer())
    missing = CountingLoader(None)
    assert cache.mentor("m1", missing) is None
    assert cache.mentor("m1", missing) is None
    assert missing.calls == 2


def test_invalidate_one_mentor_drops_lists():
    cache = MentorCache(timer=FakeTimer())
    lists = CountingLoader([{"id": "m1", "hourly_rate": 100}, {"id": "m2"}])
    cache.mentors(lists)
    cache.invalidate("m1")

    single = CountingLoader({"id": "m1", "hourly_rate": 200})
    assert cache.mentor("m1", single)["hourly_rate"] == 200
    assert cache.mentor("m2", CountingLoader(None)) == {"id": "m2"}
    cache.mentors(lists)
    assert lists.calls == 2


def test_invalidate_all():
    cache = MentorCache(timer=FakeTimer())
    cache.mentors(CountingLoader([{"id": "m1"}]))
    cache.invalidate()
    loader = CountingLoader({"id": "m1"})
    cache.mentor("m1", loader)
    assert loader.calls == 1


def test_concurrent_reads_and_invalidations():
    cache = MentorCache(ttl_seconds=0.001)
    rows = [{"id": f"m{i}"} for i in range(50)]
    errors = []

    def reader():
        try:
            for _ in range(200):
                assert cache.mentors(lambda: rows) == rows
                cache.mentor("m1", lambda: {"id": "m1"})
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    def invalidator():
        try:
            for i in range(200):
                cache.invalidate(None if i % 2 else "m1")
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=invalidator) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
