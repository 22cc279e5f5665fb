"""Network listeners for the update API."""

from acmetxt.server.http import ApiServer

__all__ = ["ApiServer"]
