"""Flask application package for ACMETXT.

Public API::

    from acmetxt.app import create_app
"""

from acmetxt.app.factory import create_app

__all__ = ["create_app"]
