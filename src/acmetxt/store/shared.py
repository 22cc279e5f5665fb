"""Lock-guarded challenge store handle.

One :class:`SharedChallengeStore` is created at startup and passed to
both the DNS answer engine (reader) and the update gateway (writer).
Reads share the lock; a write holds it exclusively, including the
file flush of a durable backend, so a reader sees either the state
before or after any write.

Usage::

    shared = SharedChallengeStore(FileChallengeStore("state.json"))
    shared.put(fqdn, value)      # exclusive
    shared.get(fqdn)             # shared
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

    import dns.name

    from acmetxt.store.base import ChallengeStore


class ReadWriteLock:
    """Many readers or one writer.

    Waiting writers block new readers so a steady stream of DNS queries
    cannot starve an update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SharedChallengeStore:
    """Thread-safe facade over a :class:`ChallengeStore` backend."""

    def __init__(self, backend: ChallengeStore) -> None:
        self._backend = backend
        self._lock = ReadWriteLock()

    @property
    def backend(self) -> ChallengeStore:
        return self._backend

    def put(self, name: dns.name.Name | str, value: str) -> None:
        with self._lock.write_locked():
            self._backend.put(name, value)

    def get(self, name: dns.name.Name | str) -> list[str]:
        with self._lock.read_locked():
            return self._backend.get(name)

    def snapshot(self) -> dict[str, list[str]]:
        with self._lock.read_locked():
            return self._backend.snapshot()
