"""Authoritative DNS responder.

:class:`AnswerEngine` decides every answer; :class:`DnsServer` carries
queries to it over UDP and TCP.
"""

from acmetxt.dns.answer import ANSWER_TTL, AnswerEngine, make_reply, soa_serial
from acmetxt.dns.server import DnsServer

__all__ = ["ANSWER_TTL", "AnswerEngine", "DnsServer", "make_reply", "soa_serial"]
