"""Error taxonomy for ACMETXT.

Every error raised by the store, the authorization model and the
update gateway derives from :class:`AcmetxtError`.  The HTTP layer maps
each kind to a status code (see :mod:`acmetxt.app.errors`); the DNS
layer never exposes them and answers SERVFAIL instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import ipaddress

    import dns.name


class AcmetxtError(Exception):
    """Base class for all ACMETXT errors."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class NotFullyQualifiedError(AcmetxtError):
    """A store key was a relative name."""

    def __init__(self, name: dns.name.Name | str) -> None:
        self.name = name
        super().__init__(f'TXT store key is not a fully qualified name: "{name}"')


class ForbiddenError(AcmetxtError):
    """The source address may not update the requested subdomain."""

    def __init__(
        self,
        ip: ipaddress.IPv4Address | ipaddress.IPv6Address,
        subdomain: dns.name.Name | str,
    ) -> None:
        self.ip = ip
        self.subdomain = subdomain
        super().__init__(f'IP {ip} is not authorized to update "{subdomain}"')


class InvalidChallengeError(AcmetxtError):
    """The TXT value is not a valid DNS-01 challenge response.

    *reason* is kept for logging; the user-facing message is fixed.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("TXT value is not a valid DNS-01 challenge response")


class StorePersistenceError(AcmetxtError):
    """The durable challenge store could not be read or written."""


class StoreSerializationError(StorePersistenceError):
    """Persisted state could not be encoded or decoded as JSON."""


class StoreIOError(StorePersistenceError):
    """Persisted state could not be read from or written to disk."""


class ProtocolError(AcmetxtError):
    """A DNS name or message could not be built."""


class UnimplementedError(AcmetxtError):
    """The requested operation is not provided."""

    def __init__(self, detail: str = "not implemented") -> None:
        super().__init__(detail)
