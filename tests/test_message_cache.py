import time

from chatops.core.cache import MessageCache


def test_store_then_fetch_returns_text(cache):
    cache.store("chan", "user", "Verify login", message_id="m-1")

    entry = cache.fetch("chan", "user")
    assert entry is not None
    assert entry.text == "Verify login"
    assert entry.message_id == "m-1"


def test_fetch_unknown_key_is_absent(cache):
    assert cache.fetch("chan", "nobody") is None


def test_overwrite_keeps_latest_message(cache):
    cache.store("chan", "user", "first")
    cache.store("chan", "user", "second")

    assert cache.fetch("chan", "user").text == "second"
    assert cache.stats()["size"] == 1


def test_entry_expires_after_ttl(cache, clock):
    cache.store("chan", "user", "stale soon")

    clock.advance(600)
    assert cache.fetch("chan", "user") is not None

    clock.advance(1)
    assert cache.fetch("chan", "user") is None
    assert cache.stats()["size"] == 0


def test_keys_are_isolated_by_channel_and_user(cache):
    cache.store("chan-a", "user", "in a")
    cache.store("chan-b", "user", "in b")
    cache.store("chan-a", "other", "other user")

    assert cache.fetch("chan-a", "user").text == "in a"
    assert cache.fetch("chan-b", "user").text == "in b"
    assert cache.fetch("chan-a", "other").text == "other user"


def test_evict_removes_entry(cache):
    cache.store("chan", "user", "text")
    cache.evict("chan", "user")
    cache.evict("chan", "user")

    assert cache.fetch("chan", "user") is None


def test_sweep_removes_only_expired(cache, clock):
    cache.store("chan", "old", "old text")
    clock.advance(500)
    cache.store("chan", "new", "new text")
    clock.advance(200)

    removed = cache.sweep()

    assert removed == 1
    assert cache.fetch("chan", "old") is None
    assert cache.fetch("chan", "new").text == "new text"


def test_stats_reports_ttl_in_minutes(cache):
    assert cache.stats() == {"size": 0, "ttl_minutes": 10.0}


def test_sweeper_thread_start_and_stop():
    cache = MessageCache(ttl_seconds=0.01, sweep_interval_seconds=0.02)
    cache.store("chan", "user", "text")

    cache.start()
    cache.start()
    assert cache.running

    deadline = time.time() + 2.0
    while cache.stats()["size"] and time.time() < deadline:
        time.sleep(0.01)

    cache.stop()
    assert not cache.running
    assert cache.stats()["size"] == 0
