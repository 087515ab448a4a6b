import threading

import pytest

from proxy_service.app.errors import QuotaExceeded
from proxy_service.app.session_store import SessionStore


def test_create_then_resolve_returns_origin_bound_session(store, clock):
    session_id = store.create("10.0.0.1")

    session = store.resolve(session_id, "10.0.0.1")
    assert session is not None
    assert session.id == session_id
    assert session.origin_key == "10.0.0.1"
    assert session.created_at == clock.now
    assert session.message_count == 0


def test_session_ids_are_long_random_tokens(store):
    ids = {store.create(f"10.0.0.{i}") for i in range(20)}
    assert len(ids) == 20
    assert all(len(session_id) == 43 for session_id in ids)


def test_resolve_with_other_origin_is_rejected_and_logged(store, caplog):
    session_id = store.create("10.0.0.1")

    with caplog.at_level("WARNING"):
        assert store.resolve(session_id, "10.0.0.2") is None
    assert "hijack" in caplog.text

    # The legitimate owner is unaffected.
    assert store.resolve(session_id, "10.0.0.1") is not None


def test_resolve_unknown_session(store):
    assert store.resolve("does-not-exist", "10.0.0.1") is None


def test_expired_session_is_unreachable_before_sweep(store, clock):
    session_id = store.create("10.0.0.1")
    clock.advance(1801)

    assert store.resolve(session_id, "10.0.0.1") is None
    # Still physically present until the sweep runs.
    assert store.count_active_sessions() == 1

    assert store.sweep_expired() == 1
    assert store.count_active_sessions() == 0


def test_resolve_refreshes_activity(store, clock):
    session_id = store.create("10.0.0.1")
    clock.advance(1000)
    assert store.resolve(session_id, "10.0.0.1") is not None

    clock.advance(1000)
    session = store.resolve(session_id, "10.0.0.1")
    assert session is not None
    assert session.last_activity_at == clock.now


def test_peek_does_not_refresh_activity(store, clock):
    session_id = store.create("10.0.0.1")
    created = clock.now
    clock.advance(1000)

    session = store.peek(session_id, "10.0.0.1")
    assert session is not None
    assert session.last_activity_at == created

    clock.advance(900)
    assert store.peek(session_id, "10.0.0.1") is None


def test_sweep_keeps_live_sessions(store, clock):
    old = store.create("10.0.0.1")
    clock.advance(1000)
    fresh = store.create("10.0.0.1")
    clock.advance(900)

    assert store.sweep_expired() == 1
    assert store.resolve(old, "10.0.0.1") is None
    assert store.resolve(fresh, "10.0.0.1") is not None


def test_quota_per_origin(store):
    for _ in range(5):
        store.create("10.0.0.1")

    with pytest.raises(QuotaExceeded):
        store.create("10.0.0.1")

    # Other origins have their own quota.
    assert store.create("10.0.0.2")


def test_expired_sessions_do_not_count_toward_quota(store, clock):
    for _ in range(5):
        store.create("10.0.0.1")
    clock.advance(1801)

    assert store.create("10.0.0.1")


def test_append_assigns_increasing_ids(store):
    session_id = store.create("10.0.0.1")

    first = store.append(session_id, "hi", "user")
    second = store.append(session_id, "hello", "bot")

    assert first.id == 1
    assert second.id == 2
    assert [m.text for m in store.history(session_id)] == ["hi", "hello"]


def test_append_to_vanished_session_returns_none(store):
    assert store.append("gone", "hi", "user") is None


def test_bounded_history_keeps_most_recent_messages(clock):
    store = SessionStore(max_messages_per_session=3, clock=clock)
    session_id = store.create("10.0.0.1")
    for i in range(5):
        store.append(session_id, f"m{i}", "user")

    history = store.history(session_id)
    assert [m.text for m in history] == ["m2", "m3", "m4"]
    assert [m.id for m in history] == [3, 4, 5]


def test_expires_in_counts_down(store, clock):
    session_id = store.create("10.0.0.1")
    session = store.resolve(session_id, "10.0.0.1")
    clock.advance(600)

    assert store.expires_in(session) == pytest.approx(1200)
    clock.advance(5000)
    assert store.expires_in(session) == 0


def test_concurrent_creates_do_not_exceed_quota(store):
    barrier = threading.Barrier(20)
    created, rejected = [], []

    def worker():
        barrier.wait()
        try:
            created.append(store.create("10.0.0.1"))
        except QuotaExceeded:
            rejected.append(True)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(created) == 5
    assert len(rejected) == 15
    assert store.count_active_sessions() == 5


def test_resolve_racing_sweep_never_sees_expired_session(store, clock):
    expired = store.create("10.0.0.1")
    clock.advance(1000)
    live = store.create("10.0.0.1")
    clock.advance(900)
    barrier = threading.Barrier(8)
    results = {"expired": [], "live": []}

    def resolver():
        barrier.wait()
        for _ in range(200):
            results["expired"].append(store.resolve(expired, "10.0.0.1"))
            results["live"].append(store.resolve(live, "10.0.0.1"))

    def sweeper():
        barrier.wait()
        for _ in range(200):
            store.sweep_expired()

    threads = [threading.Thread(target=resolver) for _ in range(4)]
    threads += [threading.Thread(target=sweeper) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(result is None for result in results["expired"])
    assert all(result is not None and result.id == live for result in results["live"])
    assert store.count_active_sessions() == 1
