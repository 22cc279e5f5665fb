"""Logging subsystem for ACMETXT.

Public API::

    from acmetxt.logging import configure_logging, dns_query_context

    configure_logging(settings.logging)
"""

from acmetxt.logging.setup import configure_logging, dns_query_context

__all__ = ["configure_logging", "dns_query_context"]
