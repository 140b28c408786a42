import threading

import pytest

from app.core.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


def test_entry_expires_after_ttl(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock)
    cache.set("k", [1, 2])

    clock.now = 299
    assert cache.get("k") == [1, 2]
    clock.now = 300
    assert cache.get("k") is None


def test_get_or_fetch_fetches_once_while_fresh(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock)
    calls = []

    def fetch():
        calls.append(clock.now)
        return len(calls)

    assert cache.get_or_fetch(("chapter", "GATE-CSE", "parsing"), fetch) == 1
    assert cache.get_or_fetch(("chapter", "GATE-CSE", "parsing"), fetch) == 1
    assert len(calls) == 1

    clock.now = 301
    assert cache.get_or_fetch(("chapter", "GATE-CSE", "parsing"), fetch) == 2
    assert cache.get_or_fetch(("chapter", "GATE-CSE", "parsing"), fetch) == 2
    assert len(calls) == 2


def test_fetch_errors_are_not_cached(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock)

    def failing():
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError):
        cache.get_or_fetch("k", failing)
    assert cache.get_or_fetch("k", lambda: "ok") == "ok"


def test_invalidate_and_clear(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.stats()["size"] == 1

    cache.clear()
    assert cache.stats()["size"] == 0


def test_expired_entries_for_other_keys_are_swept(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock)
    cache.set(("chapter", "GATE-CSE", "parsing", 1), "a")
    cache.set(("chapter", "GATE-CSE", "parsing", 2), "b")

    clock.now = 301
    cache.set(("topic", "lr-parsing"), "c")

    assert cache.stats()["size"] == 1


def test_entry_count_is_bounded(clock):
    cache = TTLCache(ttl_seconds=300, clock=clock, max_entries=2)
    for page in range(1, 6):
        clock.now += 1
        cache.set(("chapter", page), page)

    assert cache.stats()["size"] == 2
    assert cache.get(("chapter", 5)) == 5
    assert cache.get(("chapter", 1)) is None


def test_slow_fetch_does_not_block_other_keys():
    cache = TTLCache(ttl_seconds=300)
    cache.set("fresh", "cached")
    fetch_started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch():
        calls.append(1)
        fetch_started.set()
        release.wait(5)
        return "loaded"

    results = []
    loaders = [
        threading.Thread(target=lambda: results.append(cache.get_or_fetch("cold", slow_fetch)))
        for _ in range(2)
    ]
    loaders[0].start()
    assert fetch_started.wait(5)
    loaders[1].start()

    reader_results = []
    reader = threading.Thread(target=lambda: reader_results.append(cache.get("fresh")))
    reader.start()
    reader.join(timeout=1)
    assert not reader.is_alive()
    assert reader_results == ["cached"]

    release.set()
    for thread in loaders:
        thread.join(timeout=5)

    # Dos lecturas simultáneas de la misma clave, una sola carga
    assert results == ["loaded", "loaded"]
    assert len(calls) == 1
