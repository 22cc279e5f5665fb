"""Authoritative answer engine.

Turns one parsed query into one response.  Each query ends in exactly
one :class:`~acmetxt.core.types.Outcome`:

* ``AUTHORITATIVE`` — AA set, NOERROR, zero or more answers
* ``NOT_FOUND`` — AA set, NXDOMAIN, no answers
* ``NOT_IMPLEMENTED`` — NOTIMP
* ``SERVER_ERROR`` — SERVFAIL; the cause is logged, never sent

TXT answers come from the shared challenge store, but only for names
listed in the ACL.  An eligible name with no stored value is an empty
authoritative answer, not NXDOMAIN.  SOA, A, AAAA and NS answers come
from static configuration.
"""

from __future__ import annotations

import ipaddress
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import dns.exception
import dns.flags
import dns.message
import dns.opcode
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.rdtypes.ANY.NS
import dns.rdtypes.ANY.SOA
import dns.rdtypes.ANY.TXT
import dns.rdtypes.IN.A
import dns.rdtypes.IN.AAAA
import dns.rrset

from acmetxt.core.names import admin_contact_name
from acmetxt.core.types import Outcome

if TYPE_CHECKING:
    from collections.abc import Callable

    import dns.name
    import dns.rdata

    from acmetxt.acl import AccessControl
    from acmetxt.config.settings import RecordSettings, ZoneSettings
    from acmetxt.store.shared import SharedChallengeStore

log = logging.getLogger(__name__)

ANSWER_TTL = 1
"""TTL of every answer; TXT values rotate and nothing should be cached."""

# SOA timers, see RIPE-203.
SOA_REFRESH = 86_400  # 24 hours
SOA_RETRY = 7_200  # 2 hours
SOA_EXPIRE = 3_600_000  # 1000 hours
SOA_MINIMUM = 172_800  # 2 days

_TXT_CHUNK = 255

Answer = tuple[Outcome, list["dns.rdata.Rdata"]]


def soa_serial(now: datetime) -> int:
    """Zone serial for *now*: the UTC date as ``YYYYMMDD``."""
    return int(now.astimezone(UTC).strftime("%Y%m%d"))


def _txt_rdata(value: str) -> dns.rdtypes.ANY.TXT.TXT:
    raw = value.encode("utf-8")
    chunks = [raw[i : i + _TXT_CHUNK] for i in range(0, len(raw), _TXT_CHUNK)] or [b""]
    return dns.rdtypes.ANY.TXT.TXT(dns.rdataclass.IN, dns.rdatatype.TXT, chunks)


class AnswerEngine:
    """Stateless resolver over static config and the challenge store.

    Parameters
    ----------
    zone:
        Base zone and SOA parameters.
    records:
        Static A/AAAA and NS maps.
    acl:
        Access control; supplies the TXT-eligible names.
    store:
        Shared challenge store (read only from here).
    clock:
        Returns the current time; used for the SOA serial.

    """

    def __init__(
        self,
        zone: ZoneSettings,
        records: RecordSettings,
        acl: AccessControl,
        store: SharedChallengeStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._zone = zone
        self._records = records
        self._txt_names = acl.eligible_names()
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._handlers: dict[int, Callable[[dns.name.Name], Answer]] = {
            dns.rdatatype.TXT: self._answer_txt,
            dns.rdatatype.SOA: self._answer_soa,
            dns.rdatatype.A: self._answer_a,
            dns.rdatatype.AAAA: self._answer_aaaa,
            dns.rdatatype.NS: self._answer_ns,
        }

    # -- public API ---------------------------------------------------------

    def resolve(self, query: dns.message.Message) -> dns.message.Message:
        """Build the response to *query*.  Never raises."""
        response = make_reply(query)
        try:
            outcome, rdatas = self.classify(query)
        except Exception:
            log.exception("Error answering DNS query %s", _describe(query))
            outcome, rdatas = Outcome.SERVER_ERROR, []

        if outcome is Outcome.AUTHORITATIVE:
            response.flags |= dns.flags.AA
            if rdatas:
                qname = query.question[0].name
                response.answer.append(
                    dns.rrset.from_rdata_list(qname, ANSWER_TTL, rdatas),
                )
        elif outcome is Outcome.NOT_FOUND:
            response.flags |= dns.flags.AA
            response.set_rcode(dns.rcode.NXDOMAIN)
        elif outcome is Outcome.NOT_IMPLEMENTED:
            response.set_rcode(dns.rcode.NOTIMP)
        else:
            response.set_rcode(dns.rcode.SERVFAIL)

        log.debug(
            "DNS %s -> %s (%d answer(s))",
            _describe(query),
            outcome,
            len(rdatas),
        )
        return response

    def classify(self, query: dns.message.Message) -> Answer:
        """Decide the outcome of *query* and collect its answer rdata.

        May raise; :meth:`resolve` turns any exception into SERVFAIL.
        """
        if query.opcode() != dns.opcode.QUERY or query.flags & dns.flags.QR:
            return Outcome.NOT_IMPLEMENTED, []

        question = query.question[0]
        handler = self._handlers.get(question.rdtype)
        if handler is None:
            return Outcome.NOT_IMPLEMENTED, []
        return handler(question.name)

    # -- per-type handlers --------------------------------------------------

    def _answer_txt(self, qname: dns.name.Name) -> Answer:
        if qname not in self._txt_names:
            return Outcome.NOT_FOUND, []
        values = self._store.get(qname)
        return Outcome.AUTHORITATIVE, [_txt_rdata(v) for v in values]

    def _answer_soa(self, qname: dns.name.Name) -> Answer:
        if qname != self._zone.domain:
            return Outcome.NOT_FOUND, []
        soa = dns.rdtypes.ANY.SOA.SOA(
            dns.rdataclass.IN,
            dns.rdatatype.SOA,
            self._zone.ns_domain,
            admin_contact_name(self._zone.ns_admin),
            soa_serial(self._clock()),
            SOA_REFRESH,
            SOA_RETRY,
            SOA_EXPIRE,
            SOA_MINIMUM,
        )
        return Outcome.AUTHORITATIVE, [soa]

    def _answer_a(self, qname: dns.name.Name) -> Answer:
        addrs = self._records.addrs.get(qname)
        if addrs is None:
            return Outcome.NOT_FOUND, []
        return Outcome.AUTHORITATIVE, [
            dns.rdtypes.IN.A.A(dns.rdataclass.IN, dns.rdatatype.A, str(ip))
            for ip in addrs
            if isinstance(ip, ipaddress.IPv4Address)
        ]

    def _answer_aaaa(self, qname: dns.name.Name) -> Answer:
        addrs = self._records.addrs.get(qname)
        if addrs is None:
            return Outcome.NOT_FOUND, []
        return Outcome.AUTHORITATIVE, [
            dns.rdtypes.IN.AAAA.AAAA(dns.rdataclass.IN, dns.rdatatype.AAAA, str(ip))
            for ip in addrs
            if isinstance(ip, ipaddress.IPv6Address)
        ]

    def _answer_ns(self, qname: dns.name.Name) -> Answer:
        targets = self._records.ns_records.get(qname)
        if targets is None:
            return Outcome.NOT_FOUND, []
        return Outcome.AUTHORITATIVE, [
            dns.rdtypes.ANY.NS.NS(dns.rdataclass.IN, dns.rdatatype.NS, target)
            for target in targets
        ]


def make_reply(query: dns.message.Message) -> dns.message.Message:
    """Return an empty reply to *query*, even when *query* has QR set."""
    try:
        return dns.message.make_response(query)
    except dns.exception.FormError:
        # dnspython refuses to answer a message that is itself a
        # response; build the reply header by hand.
        response = dns.message.Message(id=query.id)
        response.flags = dns.flags.QR | (query.flags & dns.flags.RD)
        response.set_opcode(query.opcode())
        response.question = list(query.question)
        return response


def _describe(query: dns.message.Message) -> str:
    if not query.question:
        return f"id={query.id} (no question)"
    q = query.question[0]
    return f"{q.name} {dns.rdatatype.to_text(q.rdtype)}"
