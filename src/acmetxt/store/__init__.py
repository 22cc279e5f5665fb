"""Dynamic TXT challenge storage.

Two backends share the :class:`ChallengeStore` interface:
:class:`InMemoryChallengeStore` (lost on restart) and
:class:`FileChallengeStore` (JSON state file rewritten on every
update).  :func:`create_store` picks one from configuration and wraps
it in the lock-guarded :class:`SharedChallengeStore`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acmetxt.store.base import MAX_VALUES_PER_NAME, ChallengeStore
from acmetxt.store.file import FileChallengeStore
from acmetxt.store.memory import InMemoryChallengeStore
from acmetxt.store.shared import SharedChallengeStore

if TYPE_CHECKING:
    from acmetxt.config.settings import StoreSettings

log = logging.getLogger(__name__)


def create_store(settings: StoreSettings) -> SharedChallengeStore:
    """Build the store selected by *settings*.

    Errors loading a durable store propagate; callers treat them as
    fatal at startup.
    """
    backend: ChallengeStore
    if settings.state_path:
        log.debug("Using file-backed TXT store: %s", settings.state_path)
        backend = FileChallengeStore(settings.state_path)
    else:
        log.debug("Using in-memory TXT store")
        backend = InMemoryChallengeStore()
    return SharedChallengeStore(backend)


__all__ = [
    "MAX_VALUES_PER_NAME",
    "ChallengeStore",
    "FileChallengeStore",
    "InMemoryChallengeStore",
    "SharedChallengeStore",
    "create_store",
]
