from __future__ import annotations

import threading
import time

import pytest

from callflow.session_store import CallSession, InMemorySessionStore, ValueWindow


def _session(sid: str) -> CallSession:
    return CallSession(session_id=sid, current_node_id="start", value_window=ValueWindow(started_at_ms=0))


def test_get_put_delete() -> None:
    store = InMemorySessionStore()
    assert store.get("a") is None
    store.put(_session("a"))
    assert store.get("a") is not None
    assert len(store) == 1
    assert store.delete("a") is True
    assert store.delete("a") is False
    assert len(store) == 0


def test_land_advances_visit_and_clears_reprompts() -> None:
    s = _session("a")
    s.reprompts = 2
    s.land("health_pain_ask")
    assert s.current_node_id == "health_pain_ask"
    assert s.visit_seq == 1
    assert s.reprompts == 0


def test_value_window_elapsed_freezes_at_completion() -> None:
    vw = ValueWindow(started_at_ms=1_000)
    assert vw.elapsed_ms(4_000) == 3_000
    vw.completed_at_ms = 2_000
    assert vw.elapsed_ms(9_000) == 1_000


def test_same_session_work_is_serialized() -> None:
    store = InMemorySessionStore()
    active = 0
    overlaps = 0
    guard = threading.Lock()

    def _work() -> None:
        nonlocal active, overlaps
        with store.with_lock("same"):
            with guard:
                active += 1
                if active > 1:
                    overlaps += 1
            time.sleep(0.005)
            with guard:
                active -= 1

    threads = [threading.Thread(target=_work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == 0


def test_different_sessions_do_not_block_each_other() -> None:
    store = InMemorySessionStore()
    entered = threading.Event()
    release = threading.Event()

    def _hold() -> None:
        with store.with_lock("a"):
            entered.set()
            release.wait(timeout=2)

    t = threading.Thread(target=_hold)
    t.start()
    assert entered.wait(timeout=2)
    with store.with_lock("b"):
        pass
    release.set()
    t.join()


def test_lock_is_released_on_error() -> None:
    store = InMemorySessionStore()
    with pytest.raises(RuntimeError):
        with store.with_lock("a"):
            raise RuntimeError("boom")
    with store.with_lock("a"):
        pass


def test_lock_entries_are_dropped_once_released() -> None:
    store = InMemorySessionStore()
    for i in range(1000):
        sid = f"s{i}"
        with store.with_lock(sid):
            store.put(_session(sid))
        store.delete(sid)
    with store.with_lock("never-created"):
        assert len(store._locks) == 1
    assert len(store) == 0
    assert len(store._locks) == 0


def test_waiting_holder_keeps_lock_entry_alive() -> None:
    store = InMemorySessionStore()
    entered = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def _hold() -> None:
        with store.with_lock("a"):
            entered.set()
            release.wait(timeout=2)
            order.append("first")

    def _wait() -> None:
        with store.with_lock("a"):
            order.append("second")

    t1 = threading.Thread(target=_hold)
    t1.start()
    assert entered.wait(timeout=2)
    t2 = threading.Thread(target=_wait)
    t2.start()
    time.sleep(0.02)
    release.set()
    t1.join()
    t2.join()
    assert order == ["first", "second"]
    assert len(store._locks) == 0
