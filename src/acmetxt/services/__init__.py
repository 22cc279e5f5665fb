"""Service layer for ACMETXT."""

from acmetxt.services.update import UpdateGateway, validate_challenge_value

__all__ = ["UpdateGateway", "validate_challenge_value"]
