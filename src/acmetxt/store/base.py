"""Abstract base class for dynamic TXT challenge stores.

A store keeps, for each fully qualified name, the two most recently
published DNS-01 challenge values, newest first.  Two values are enough
to answer a base name and its wildcard sibling at the same time
(``example.com`` and ``*.example.com`` share one ``_acme-challenge``
name).

Stores are not thread-safe on their own; share them through
:class:`~acmetxt.store.shared.SharedChallengeStore`.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from acmetxt.core.errors import NotFullyQualifiedError
from acmetxt.core.names import relative_name

if TYPE_CHECKING:
    import dns.name

MAX_VALUES_PER_NAME = 2
"""How many challenge values are kept per name."""


def store_key(name: dns.name.Name | str) -> dns.name.Name:
    """Normalise *name* into a lowercase absolute store key.

    Strings are parsed without an implied origin, so ``"foo.example.com"``
    is relative and rejected while ``"foo.example.com."`` is accepted.

    Raises :class:`NotFullyQualifiedError` for relative names.
    """
    if isinstance(name, str):
        name = relative_name(name)
    if not name.is_absolute():
        raise NotFullyQualifiedError(name)
    return name.canonicalize()


class ChallengeStore(abc.ABC):
    """Base class for challenge value storage backends."""

    @abc.abstractmethod
    def put(self, name: dns.name.Name | str, value: str) -> None:
        """Prepend *value* to the history of *name*, keeping two values.

        Raises :class:`~acmetxt.core.errors.NotFullyQualifiedError` when
        *name* is relative; nothing is mutated in that case.
        """

    @abc.abstractmethod
    def get(self, name: dns.name.Name | str) -> list[str]:
        """Return the stored values for *name*, newest first.

        Never raises for unknown names; returns an empty list instead.
        """

    @abc.abstractmethod
    def snapshot(self) -> dict[str, list[str]]:
        """Return the whole store as ``{"name.": [newest, older]}``."""
