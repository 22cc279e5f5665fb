"""In-memory challenge store.

Makes no effort to persist values between restarts.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from acmetxt.core.errors import NotFullyQualifiedError, ProtocolError
from acmetxt.store.base import MAX_VALUES_PER_NAME, ChallengeStore, store_key

if TYPE_CHECKING:
    import dns.name

log = logging.getLogger(__name__)


class InMemoryChallengeStore(ChallengeStore):
    """Challenge values held in a dict of bounded deques keyed by name."""

    def __init__(self, initial: dict[dns.name.Name, list[str]] | None = None) -> None:
        self._records: dict[dns.name.Name, deque[str]] = {}
        for name, values in (initial or {}).items():
            self._records[store_key(name)] = deque(
                values[:MAX_VALUES_PER_NAME],
                maxlen=MAX_VALUES_PER_NAME,
            )

    def put(self, name: dns.name.Name | str, value: str) -> None:
        key = store_key(name)
        # appendleft on a bounded deque drops the oldest value at the right
        self._records.setdefault(key, deque(maxlen=MAX_VALUES_PER_NAME)).appendleft(value)
        log.debug("Stored TXT value for %s (%d held)", key, len(self._records[key]))

    def get(self, name: dns.name.Name | str) -> list[str]:
        try:
            key = store_key(name)
        except (NotFullyQualifiedError, ProtocolError):
            return []
        return list(self._records.get(key, ()))

    def snapshot(self) -> dict[str, list[str]]:
        return {name.to_text(): list(values) for name, values in self._records.items()}

    def __len__(self) -> int:
        return len(self._records)
