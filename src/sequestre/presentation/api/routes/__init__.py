"""API route modules."""

from sequestre.presentation.api.routes import escrow, health, stablecoin

__all__ = ["escrow", "health", "stablecoin"]
