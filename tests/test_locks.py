# tests/test_locks.py
import threading
import time

from storefront.database import _LOCKS, _locked


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline
        time.sleep(0.01)


def test_lock_entry_dropped_after_release():
    with _locked("cart:abc"):
        assert "cart:abc" in _LOCKS
    assert "cart:abc" not in _LOCKS

def test_lock_entry_dropped_after_error():
    try:
        with _locked("cart:abc"):
            raise ValueError("boom")
    except ValueError:
        pass
    assert "cart:abc" not in _LOCKS

def test_lock_kept_while_a_waiter_is_queued():
    entered, release = threading.Event(), threading.Event()
    order = []

    def _holder():
        with _locked("product:p1"):
            entered.set()
            release.wait(5)
            order.append("holder")

    def _waiter():
        with _locked("product:p1"):
            order.append("waiter")

    holder = threading.Thread(target=_holder)
    holder.start()
    entered.wait(5)
    waiter = threading.Thread(target=_waiter)
    waiter.start()
    _wait_for(lambda: _LOCKS["product:p1"][1] == 2)

    release.set()
    holder.join(5)
    waiter.join(5)
    assert order == ["holder", "waiter"]
    assert _LOCKS == {}

def test_distinct_sessions_do_not_accumulate_locks(client):
    for i in range(50):
        r = client.delete("/cart", headers={"x-session-id": f"visitor-{i}"})
        assert r.status_code == 200
    assert _LOCKS == {}
