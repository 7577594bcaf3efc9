"""Tests for the reader/writer lock."""
import threading
import time

from sqlkeeper.utils.rwlock import RWLock


def test_readers_share_the_lock():
    lock = RWLock()
    both_inside = threading.Barrier(2, timeout=5)
    results = []

    def reader():
        with lock.read_locked():
            both_inside.wait()
            results.append(True)

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    assert results == [True, True]


def test_writer_excludes_readers():
    lock = RWLock()
    events = []

    lock.acquire_write()

    def reader():
        with lock.read_locked():
            events.append("read")

    t = threading.Thread(target=reader)
    t.start()
    time.sleep(0.05)
    events.append("write-done")
    lock.release_write()
    t.join(5)

    assert events == ["write-done", "read"]


def test_waiting_writer_blocks_new_readers():
    lock = RWLock()
    events = []
    lock.acquire_read()

    def writer():
        with lock.write_locked():
            events.append("write")

    def late_reader():
        with lock.read_locked():
            events.append("read")

    w = threading.Thread(target=writer)
    w.start()
    time.sleep(0.05)
    r = threading.Thread(target=late_reader)
    r.start()
    time.sleep(0.05)
    assert events == []

    lock.release_read()
    w.join(5)
    r.join(5)
    assert events == ["write", "read"]
