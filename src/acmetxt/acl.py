"""Network-based authorization for TXT updates.

Clients are identified only by source address: each configured network
may update a fixed set of subdomains of the base zone.  The same table
decides which names the DNS responder treats as possibly holding a
dynamic TXT answer.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import TYPE_CHECKING

from acmetxt.core.names import qualify

if TYPE_CHECKING:
    from collections.abc import Mapping

    import dns.name

    from acmetxt.config.settings import IPAddress, IPNetwork

log = logging.getLogger(__name__)


def normalize_ip(ip: IPAddress | str) -> IPAddress:
    """Parse *ip* and unwrap IPv4-mapped IPv6 (``::ffff:a.b.c.d``)."""
    addr = ipaddress.ip_address(ip)
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


class AccessControl:
    """Maps source networks to the subdomains they may update.

    Parameters
    ----------
    domain:
        Absolute base zone.  Subdomains are relative to it.
    acl:
        Network → relative subdomain names.

    """

    def __init__(
        self,
        domain: dns.name.Name,
        acl: Mapping[IPNetwork, frozenset[dns.name.Name]],
    ) -> None:
        self._domain = domain
        self._acl = {net: frozenset(subs) for net, subs in acl.items()}
        self._eligible = frozenset(
            qualify(sub, domain) for subs in self._acl.values() for sub in subs
        )
        log.debug(
            "ACL loaded: %d network(s), %d eligible TXT name(s)",
            len(self._acl),
            len(self._eligible),
        )

    @property
    def domain(self) -> dns.name.Name:
        return self._domain

    def is_permitted(self, source_ip: IPAddress | str, subdomain: dns.name.Name) -> bool:
        """True iff a network containing *source_ip* lists *subdomain*."""
        ip = normalize_ip(source_ip)
        return any(
            ip in network and subdomain in subdomains
            for network, subdomains in self._acl.items()
        )

    def eligible_names(self) -> frozenset[dns.name.Name]:
        """Every ``subdomain + domain`` that any network may update."""
        return self._eligible

    def fqdn_for(self, subdomain: dns.name.Name) -> dns.name.Name:
        """Qualify *subdomain* with the base zone."""
        return qualify(subdomain, self._domain)
