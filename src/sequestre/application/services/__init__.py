"""Application services."""

from sequestre.application.services.stablecoin_service import StablecoinService

__all__ = ["StablecoinService"]
