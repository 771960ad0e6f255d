"""
Domain exceptions package.
"""

# Base exceptions
from sequestre.domain.exceptions.base import (
    ConfigurationError,
    DuplicateEntityError,
    EntityNotFoundError,
    SequestreException,
    ValidationError,
)

# Escrow workflow exceptions
from sequestre.domain.exceptions.escrow import (
    MilestoneNotReadyError,
    MirrorInconsistencyError,
    MirrorUnavailableError,
)

# Ledger exceptions
from sequestre.domain.exceptions.ledger import (
    LedgerError,
    LedgerSubmissionError,
    LedgerUnavailableError,
)

__all__ = [
    # Base
    "SequestreException",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "ValidationError",
    "ConfigurationError",
    # Ledger
    "LedgerError",
    "LedgerUnavailableError",
    "LedgerSubmissionError",
    # Escrow
    "MilestoneNotReadyError",
    "MirrorInconsistencyError",
    "MirrorUnavailableError",
]
