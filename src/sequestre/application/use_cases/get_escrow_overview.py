"""
Get Escrow Overview use case.
"""

from sequestre.application.dto.results import EscrowOverview
from sequestre.domain.exceptions import ConfigurationError, SequestreException
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.value_objects.escrow_id import canonical_escrow_id


class GetEscrowOverview:
    """
    Ledger escrow state merged with mirrored milestones.

    Balances and counters always come from the ledger; milestone metadata
    comes from the mirror.
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        milestone_repository: IMilestoneRepository,
    ):
        self.ledger_registry = ledger_registry
        self.milestone_repository = milestone_repository

    async def execute(self, escrow_id: str, network: str) -> EscrowOverview:
        try:
            escrow_id = canonical_escrow_id(escrow_id)
            ledger = self.ledger_registry.escrow_ledger(network)
            state = await ledger.get_escrow_details(escrow_id)
            milestones = await self.milestone_repository.list_milestones(
                network, escrow_id
            )
        except ConfigurationError:
            raise
        except SequestreException as e:
            return EscrowOverview(success=False, network=network, error=e)

        return EscrowOverview(
            success=True,
            network=network,
            escrow_state=state,
            milestones=milestones,
        )
