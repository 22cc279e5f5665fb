"""DNS name helpers built on dnspython.

All names handled by ACMETXT are :class:`dns.name.Name` objects, whose
comparison and hashing ignore case.  These helpers turn configuration
and request strings into names and convert dnspython failures into
:class:`~acmetxt.core.errors.ProtocolError`.
"""

from __future__ import annotations

import dns.exception
import dns.name

from acmetxt.core.errors import ProtocolError


def absolute_name(text: str) -> dns.name.Name:
    """Parse *text* as an absolute name (a missing trailing dot is implied)."""
    try:
        return dns.name.from_text(text)
    except dns.exception.DNSException as exc:
        msg = f'invalid domain name "{text}": {exc}'
        raise ProtocolError(msg) from exc


def relative_name(text: str) -> dns.name.Name:
    """Parse *text* without an origin.

    ``"test"`` becomes a relative name while ``"test."`` stays absolute;
    callers decide whether an absolute result is acceptable.
    """
    try:
        return dns.name.from_text(text, origin=None)
    except dns.exception.DNSException as exc:
        msg = f'invalid subdomain "{text}": {exc}'
        raise ProtocolError(msg) from exc


def qualify(subdomain: dns.name.Name, domain: dns.name.Name) -> dns.name.Name:
    """Append *domain* to the relative *subdomain*."""
    try:
        return subdomain.concatenate(domain)
    except dns.exception.DNSException as exc:
        msg = f'cannot qualify "{subdomain}" with "{domain}": {exc}'
        raise ProtocolError(msg) from exc


def sanitize_admin_contact(ns_admin: str) -> str:
    r"""Rewrite an email address into SOA RNAME text form.

    The first unescaped ``@`` becomes ``.`` and every ``.`` in the
    local part is escaped, so ``dns.admin@example.com`` turns into
    ``dns\.admin.example.com``.  Strings without ``@`` are returned
    unchanged.
    """
    idx = 0
    while True:
        idx = ns_admin.find("@", idx)
        if idx < 0:
            return ns_admin
        if idx == 0 or ns_admin[idx - 1] != "\\":
            break
        idx += 1
    user, domain = ns_admin[:idx], ns_admin[idx + 1 :]
    return user.replace(".", "\\.") + "." + domain


def admin_contact_name(ns_admin: str) -> dns.name.Name:
    """Return the SOA RNAME for the administrator address *ns_admin*."""
    return absolute_name(sanitize_admin_contact(ns_admin))
