"""Threaded UDP and TCP listeners for the answer engine.

Each inbound datagram or TCP connection is handled on its own thread.
Parsing and encoding use dnspython; answering is delegated to
:class:`~acmetxt.dns.answer.AnswerEngine`.

Usage::

    server = DnsServer(engine, settings.dns)
    server.start()
    ...
    server.stop()
"""

from __future__ import annotations

import logging
import socket
import socketserver
import struct
import threading
from typing import TYPE_CHECKING

import dns.exception
import dns.flags
import dns.message
import dns.opcode
import dns.rcode
import dns.rdatatype

from acmetxt.dns.answer import make_reply
from acmetxt.logging import dns_query_context

if TYPE_CHECKING:
    from acmetxt.config.settings import DnsSettings
    from acmetxt.dns.answer import AnswerEngine

log = logging.getLogger(__name__)
access_log = logging.getLogger("acmetxt.access")

_UDP_MAX_SIZE = 512
_TCP_LENGTH = struct.Struct("!H")


def _build_reply(engine: AnswerEngine, query: dns.message.Message) -> dns.message.Message:
    if not query.question and query.opcode() == dns.opcode.QUERY:
        log.warning("Received DNS message id=%d without question", query.id)
        response = make_reply(query)
        response.set_rcode(dns.rcode.FORMERR)
        return response
    return engine.resolve(query)


def _parse(data: bytes, client: tuple) -> dns.message.Message | None:
    try:
        return dns.message.from_wire(data)
    except dns.exception.DNSException as exc:
        log.warning("Dropping unparsable DNS message from %s: %s", client[0], exc)
        return None


def _log_reply(response: dns.message.Message) -> None:
    question = response.question[0] if response.question else None
    access_log.debug(
        "%s %s %s",
        question.name if question else "-",
        dns.rdatatype.to_text(question.rdtype) if question else "-",
        dns.rcode.to_text(response.rcode()),
    )


class _UdpHandler(socketserver.BaseRequestHandler):
    server: _UdpServer

    def handle(self) -> None:
        with dns_query_context(client_ip=self.client_address[0], transport="udp"):
            self._answer()

    def _answer(self) -> None:
        data, sock = self.request
        query = _parse(data, self.client_address)
        if query is None:
            return

        response = _build_reply(self.server.engine, query)
        max_size = query.payload if query.edns >= 0 else _UDP_MAX_SIZE
        try:
            wire = response.to_wire(max_size=max(max_size, _UDP_MAX_SIZE))
        except dns.exception.TooBig:
            response.answer.clear()
            response.flags |= dns.flags.TC
            wire = response.to_wire()
        sock.sendto(wire, self.client_address)
        _log_reply(response)


class _TcpHandler(socketserver.StreamRequestHandler):
    server: _TcpServer

    def setup(self) -> None:
        # StreamRequestHandler applies this to the connection socket.
        self.timeout = self.server.idle_timeout
        super().setup()

    def handle(self) -> None:
        with dns_query_context(client_ip=self.client_address[0], transport="tcp"):
            self._serve_connection()

    def _serve_connection(self) -> None:
        while True:
            try:
                header = self.rfile.read(_TCP_LENGTH.size)
                if len(header) < _TCP_LENGTH.size:
                    return
                (length,) = _TCP_LENGTH.unpack(header)
                data = self.rfile.read(length)
            except (TimeoutError, OSError):
                log.debug("Closing idle DNS TCP connection from %s", self.client_address[0])
                return
            if len(data) < length:
                return

            query = _parse(data, self.client_address)
            if query is None:
                return

            response = _build_reply(self.server.engine, query)
            wire = response.to_wire()
            try:
                self.wfile.write(_TCP_LENGTH.pack(len(wire)) + wire)
                self.wfile.flush()
            except OSError:
                return
            _log_reply(response)


class _EngineMixin:
    engine: AnswerEngine
    daemon_threads = True


class _UdpServer(_EngineMixin, socketserver.ThreadingUDPServer):
    pass


class _TcpServer(_EngineMixin, socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    idle_timeout: float


def _server_class(base: type, host: str) -> type:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return type(base.__name__, (base,), {"address_family": family})


class DnsServer:
    """UDP + TCP authoritative listeners sharing one answer engine.

    Parameters
    ----------
    engine:
        The answer engine.
    settings:
        Bind addresses, ports and the TCP idle timeout.  Port ``0``
        binds an ephemeral port (see :attr:`udp_address`).

    """

    def __init__(self, engine: AnswerEngine, settings: DnsSettings) -> None:
        self._settings = settings
        self._udp = _server_class(_UdpServer, settings.udp_bind)(
            (settings.udp_bind, settings.udp_port),
            _UdpHandler,
        )
        self._udp.engine = engine
        try:
            self._tcp = _server_class(_TcpServer, settings.tcp_bind)(
                (settings.tcp_bind, settings.tcp_port),
                _TcpHandler,
            )
        except OSError:
            self._udp.server_close()
            raise
        self._tcp.engine = engine
        self._tcp.idle_timeout = settings.tcp_timeout_seconds
        self._threads: list[threading.Thread] = []

    @property
    def udp_address(self) -> tuple[str, int]:
        return self._udp.server_address[:2]

    @property
    def tcp_address(self) -> tuple[str, int]:
        return self._tcp.server_address[:2]

    def start(self) -> None:
        """Serve UDP and TCP on background threads."""
        for name, srv in (("dns-udp", self._udp), ("dns-tcp", self._tcp)):
            thread = threading.Thread(target=srv.serve_forever, name=name, daemon=True)
            thread.start()
            self._threads.append(thread)
        log.info("DNS listening on UDP %s:%d", *self.udp_address)
        log.info("DNS listening on TCP %s:%d", *self.tcp_address)

    def stop(self) -> None:
        """Stop serving and close both sockets."""
        if self._threads:
            self._udp.shutdown()
            self._tcp.shutdown()
            for thread in self._threads:
                thread.join(timeout=5)
            self._threads.clear()
        self._udp.server_close()
        self._tcp.server_close()
        log.info("DNS server stopped")
