"""
Value objects for Sequestre domain.
"""

from sequestre.domain.value_objects.escrow_id import (
    canonical_escrow_id,
    parse_escrow_id,
)
from sequestre.domain.value_objects.escrow_state import EscrowState
from sequestre.domain.value_objects.evm_address import EvmAddress
from sequestre.domain.value_objects.milestone_definition import (
    MilestoneDefinition,
    normalize_completion_date,
)
from sequestre.domain.value_objects.network import NetworkConfig

__all__ = [
    "EvmAddress",
    "EscrowState",
    "MilestoneDefinition",
    "NetworkConfig",
    "normalize_completion_date",
    "canonical_escrow_id",
    "parse_escrow_id",
]
