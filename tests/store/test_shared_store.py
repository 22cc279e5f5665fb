"""Unit tests for acmetxt.store.shared — lock-guarded store handle."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import dns.name

from acmetxt.store.memory import InMemoryChallengeStore
from acmetxt.store.shared import ReadWriteLock, SharedChallengeStore

FQDN = dns.name.from_text("test.example.com.")

# ---------------------------------------------------------------------------
# TestReadWriteLock
# ---------------------------------------------------------------------------


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=2)

        def reader():
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert not inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events: list[str] = []
        writer_in = threading.Event()

        def writer():
            with lock.write_locked():
                writer_in.set()
                time.sleep(0.1)
                events.append("write-done")

        def reader():
            writer_in.wait(timeout=2)
            with lock.read_locked():
                events.append("read")

        tw = threading.Thread(target=writer)
        tr = threading.Thread(target=reader)
        tw.start()
        tr.start()
        tw.join(timeout=5)
        tr.join(timeout=5)
        assert events == ["write-done", "read"]

    def test_lock_released_after_exception(self):
        lock = ReadWriteLock()
        try:
            with lock.write_locked():
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        with lock.read_locked():
            pass


# ---------------------------------------------------------------------------
# TestSharedChallengeStore
# ---------------------------------------------------------------------------


class TestSharedChallengeStore:
    def test_delegates_to_backend(self):
        backend = MagicMock()
        backend.get.return_value = ["v"]
        backend.snapshot.return_value = {"test.example.com.": ["v"]}
        shared = SharedChallengeStore(backend)

        shared.put(FQDN, "v")
        backend.put.assert_called_once_with(FQDN, "v")
        assert shared.get(FQDN) == ["v"]
        assert shared.snapshot() == {"test.example.com.": ["v"]}
        assert shared.backend is backend

    def test_concurrent_writers_and_readers(self):
        shared = SharedChallengeStore(InMemoryChallengeStore())
        errors: list[Exception] = []

        def write(n):
            try:
                for i in range(200):
                    shared.put(FQDN, f"w{n}-{i}")
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        def read():
            try:
                for _ in range(200):
                    assert len(shared.get(FQDN)) <= 2
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        threads += [threading.Thread(target=read) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(shared.get(FQDN)) == 2

    def test_readers_never_see_partial_write(self):
        backend = InMemoryChallengeStore()
        shared = SharedChallengeStore(backend)
        writing = threading.Event()
        release = threading.Event()
        original_put = backend.put

        def slow_put(name, value):
            original_put(name, value)
            writing.set()
            release.wait(timeout=2)

        backend.put = slow_put  # type: ignore[method-assign]
        t = threading.Thread(target=shared.put, args=(FQDN, "v"))
        t.start()
        writing.wait(timeout=2)

        result: list[list[str]] = []
        reader = threading.Thread(target=lambda: result.append(shared.get(FQDN)))
        reader.start()
        time.sleep(0.05)
        assert result == []  # blocked while the write is in progress
        release.set()
        t.join(timeout=5)
        reader.join(timeout=5)
        assert result == [["v"]]
