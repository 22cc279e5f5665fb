"""TXT record update gateway.

The single write path into the challenge store.  Checks, in order:

1. the source address may update the subdomain (ACL)
2. the value is a DNS-01 challenge response: unpadded base64url of a
   32-byte SHA-256 digest (RFC 8555 §8.4)

Both run before anything is written.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import TYPE_CHECKING

from acmetxt.acl import normalize_ip
from acmetxt.core.errors import ForbiddenError, InvalidChallengeError
from acmetxt.core.names import relative_name

if TYPE_CHECKING:
    import dns.name

    from acmetxt.acl import AccessControl
    from acmetxt.config.settings import IPAddress
    from acmetxt.store.shared import SharedChallengeStore

log = logging.getLogger(__name__)

DNS01_DIGEST_LENGTH = 32

_BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def validate_challenge_value(txt: str) -> None:
    """Raise :class:`InvalidChallengeError` unless *txt* is a DNS-01 value."""
    if not isinstance(txt, str) or not _BASE64URL_RE.fullmatch(txt):
        msg = "invalid encoding: not unpadded base64url"
        raise InvalidChallengeError(msg)
    try:
        raw = base64.urlsafe_b64decode(txt + "=" * (-len(txt) % 4))
    except (binascii.Error, ValueError) as exc:
        msg = f"invalid encoding: {exc}"
        raise InvalidChallengeError(msg) from exc
    if len(raw) != DNS01_DIGEST_LENGTH:
        msg = (
            f"invalid decoded length: found {len(raw)} bytes, "
            f"expected {DNS01_DIGEST_LENGTH}"
        )
        raise InvalidChallengeError(msg)
    # Unused trailing bits must be zero.
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode() != txt:
        msg = "invalid encoding: non-zero trailing bits"
        raise InvalidChallengeError(msg)


class UpdateGateway:
    """Authorizes, validates and stores DNS-01 challenge values."""

    def __init__(self, acl: AccessControl, store: SharedChallengeStore) -> None:
        self._acl = acl
        self._store = store

    def update(
        self,
        source_ip: IPAddress | str,
        subdomain: dns.name.Name | str,
        txt: str,
    ) -> str:
        """Publish *txt* for *subdomain* on behalf of *source_ip*.

        Returns the accepted value.

        Raises
        ------
        ProtocolError
            *subdomain* is not a valid name.
        ForbiddenError
            *source_ip* may not update *subdomain*.
        InvalidChallengeError
            *txt* is not a DNS-01 challenge response.
        StorePersistenceError
            The durable store could not be written.

        """
        ip = normalize_ip(source_ip)
        if isinstance(subdomain, str):
            subdomain = relative_name(subdomain)

        if not self._acl.is_permitted(ip, subdomain):
            log.debug('Rejected update from %s for "%s"', ip, subdomain)
            raise ForbiddenError(ip, subdomain)

        try:
            validate_challenge_value(txt)
        except InvalidChallengeError as exc:
            log.debug('Rejected update from %s for "%s": %s', ip, subdomain, exc.reason)
            raise

        fqdn = self._acl.fqdn_for(subdomain)
        log.info('Accepted update from %s for "%s"', ip, fqdn)
        self._store.put(fqdn, txt)
        return txt
