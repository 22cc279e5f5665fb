"""JSON file-backed challenge store.

Wraps the in-memory store and rewrites the whole state file after every
successful :meth:`FileChallengeStore.put`, so values survive restarts.

State file layout::

    {
      "test.pki.example.com.": ["newest-value", "older-value"]
    }
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from acmetxt.core.errors import (
    AcmetxtError,
    StoreIOError,
    StoreSerializationError,
)
from acmetxt.core.names import absolute_name
from acmetxt.store.base import MAX_VALUES_PER_NAME
from acmetxt.store.memory import InMemoryChallengeStore

if TYPE_CHECKING:
    import dns.name

log = logging.getLogger(__name__)


def _decode_state(raw: str, path: Path) -> dict[dns.name.Name, list[str]]:
    """Parse and shape-check persisted state.

    Any deviation from ``{str: [str, ...]}`` is fatal.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        msg = f"state file {path} is not valid JSON: {exc}"
        raise StoreSerializationError(msg) from exc

    if not isinstance(data, dict):
        msg = f"state file {path} must contain a JSON object"
        raise StoreSerializationError(msg)

    state: dict[dns.name.Name, list[str]] = {}
    for key, values in data.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            msg = f"state file {path}: value for {key!r} must be a list of strings"
            raise StoreSerializationError(msg)
        try:
            name = absolute_name(key)
        except AcmetxtError as exc:
            msg = f"state file {path}: invalid name {key!r}"
            raise StoreSerializationError(msg) from exc
        if len(values) > MAX_VALUES_PER_NAME:
            log.warning(
                "State file %s holds %d values for %s; keeping the newest %d",
                path,
                len(values),
                key,
                MAX_VALUES_PER_NAME,
            )
        state[name] = values[:MAX_VALUES_PER_NAME]
    return state


class FileChallengeStore(InMemoryChallengeStore):
    """Write-through durable challenge store.

    Parameters
    ----------
    path:
        JSON state file.  Created holding an empty object when missing;
        loaded as the initial state when present.

    Raises
    ------
    StoreSerializationError
        The existing file is empty, not JSON, or not of the expected
        shape.  Corrupt state is never silently reset.
    StoreIOError
        The file cannot be read or created.

    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.info("State file %s does not exist, creating empty store", self._path)
            super().__init__()
            self.save()
            return
        except OSError as exc:
            msg = f"cannot read state file {self._path}: {exc}"
            raise StoreIOError(msg) from exc

        super().__init__(_decode_state(raw, self._path))
        log.info("Loaded %d TXT record name(s) from %s", len(self), self._path)

    @property
    def path(self) -> Path:
        return self._path

    def put(self, name: dns.name.Name | str, value: str) -> None:
        super().put(name, value)
        # The in-memory update stands even if persisting fails; the next
        # successful save rewrites the whole file.
        self.save()

    def save(self) -> None:
        """Serialise the full store and atomically replace the state file."""
        try:
            data = json.dumps(self.snapshot(), indent=2, sort_keys=True)
        except (TypeError, ValueError) as exc:
            msg = f"cannot serialise TXT store state: {exc}"
            raise StoreSerializationError(msg) from exc

        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            msg = f"cannot write state file {self._path}: {exc}"
            raise StoreIOError(msg) from exc
