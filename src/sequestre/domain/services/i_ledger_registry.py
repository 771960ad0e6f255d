"""
Ledger registry interface.

Resolves network identifiers to their static configuration and to the
ledger adapters bound to them.
"""

from abc import ABC, abstractmethod

from sequestre.domain.exceptions import ValidationError
from sequestre.domain.services.i_escrow_ledger import IEscrowLedger
from sequestre.domain.services.i_token_ledger import ITokenLedger
from sequestre.domain.value_objects.network import NetworkConfig


class ILedgerRegistry(ABC):
    """
    Abstract registry of supported networks and their adapters.

    Unknown networks raise ``ValidationError``. Known networks with missing
    RPC URL or contract address resolve to unconfigured adapters that raise
    ``ConfigurationError`` on use.
    """

    @abstractmethod
    def get_network(self, network_id: str) -> NetworkConfig:
        """
        Look up a network by id.

        Raises:
            ValidationError: If the network is not supported
        """

    @abstractmethod
    def escrow_networks(self) -> list[NetworkConfig]:
        """Networks the milestone escrow is deployed to."""

    @abstractmethod
    def token_networks(self) -> list[NetworkConfig]:
        """Networks with supported stablecoins."""

    @abstractmethod
    def escrow_ledger(self, network_id: str) -> IEscrowLedger:
        """
        Escrow adapter for a network.

        Raises:
            ValidationError: If the network has no milestone escrow
        """

    @abstractmethod
    def token_ledger(self, network_id: str) -> ITokenLedger:
        """
        Token adapter for a network.

        Raises:
            ValidationError: If the network has no supported tokens
        """

    def token_address(self, network_id: str, token: str) -> str:
        """
        Resolve a token symbol on a network.

        Raises:
            ValidationError: If the network or token is not supported
        """
        network = self.get_network(network_id)
        address = network.tokens.get(token.upper()) if token else None
        if address is None:
            raise ValidationError(
                "token", f"{token} is not supported on {network_id}"
            )
        return address

    async def close(self) -> None:
        """Close every adapter built so far (no-op by default)."""
