"""ACMETXT — authoritative DNS responder for ACME DNS-01 challenges."""

__version__ = "1.0.0"
