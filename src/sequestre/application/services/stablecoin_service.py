"""
Stablecoin service.

Human-unit facade over the per-network ERC-20 token ledgers. Token decimals
are read from the contract on every call.
"""

from decimal import Decimal
from typing import Optional, Union

from sequestre.application.dto.results import ApprovalResult, TransferResult
from sequestre.domain.entities.stablecoin_transaction import StablecoinTransaction
from sequestre.domain.exceptions import (
    ConfigurationError,
    SequestreException,
    ValidationError,
)
from sequestre.domain.repositories.i_stablecoin_transaction_repository import (
    IStablecoinTransactionRepository,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.services.i_token_ledger import ITokenLedger
from sequestre.domain.services.units import (
    format_amount,
    from_base_units,
    parse_amount,
    to_base_units,
)
from sequestre.domain.value_objects.evm_address import EvmAddress
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)

Amount = Union[str, int, Decimal]


class StablecoinService:
    """
    Balance, allowance, gas and transfer operations on USDC/USDT.

    Business rules:
    - Network and token must be supported (ValidationError otherwise)
    - Addresses must be valid EVM addresses
    - Transfer and approval amounts must be positive and fit the token's
      decimals
    - A transfer is recorded only after its receipt confirms success

    Queries raise domain exceptions; transfers and approvals return tagged
    results.
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        transaction_repository: IStablecoinTransactionRepository,
    ):
        """
        Initialize service with dependencies.

        Args:
            ledger_registry: Resolves token ledgers and token addresses
            transaction_repository: Transfer log
        """
        self.ledger_registry = ledger_registry
        self.transaction_repository = transaction_repository

    def _resolve(self, network: str, token: str) -> tuple[ITokenLedger, str, str]:
        token_address = self.ledger_registry.token_address(network, token)
        ledger = self.ledger_registry.token_ledger(network)
        return ledger, token_address, token.upper()

    # ================================================================
    # Queries
    # ================================================================

    async def get_token_balance(self, address: str, network: str, token: str) -> dict:
        """
        Get token balance of a wallet.

        Returns:
            {balance (raw), formattedBalance (human), symbol}
        """
        owner = EvmAddress.parse(address, "address")
        ledger, token_address, _ = self._resolve(network, token)

        balance = await ledger.balance_of(token_address, owner.address)
        decimals = await ledger.decimals(token_address)
        symbol = await ledger.symbol(token_address)

        return {
            "balance": str(balance),
            "formattedBalance": format_amount(
                from_base_units(balance, decimals)
            ),
            "symbol": symbol,
        }

    async def get_allowance(
        self,
        owner: str,
        spender: str,
        network: str,
        token: str,
    ) -> dict:
        """
        Get remaining allowance of a spender.

        Returns:
            {allowance (raw), formattedAllowance (human)}
        """
        owner_address = EvmAddress.parse(owner, "owner")
        spender_address = EvmAddress.parse(spender, "spender")
        ledger, token_address, _ = self._resolve(network, token)

        allowance = await ledger.allowance(
            token_address, owner_address.address, spender_address.address
        )
        decimals = await ledger.decimals(token_address)

        return {
            "allowance": str(allowance),
            "formattedAllowance": format_amount(
                from_base_units(allowance, decimals)
            ),
        }

    async def estimate_transfer_gas(
        self,
        sender: str,
        recipient: str,
        amount: Amount,
        network: str,
        token: str,
    ) -> dict:
        """
        Estimate gas for a transfer.

        Returns:
            {gasEstimate (units), gasCost (wei)}
        """
        sender_address = EvmAddress.parse(sender, "sender")
        recipient_address = EvmAddress.parse(recipient, "recipient")
        ledger, token_address, _ = self._resolve(network, token)

        raw_amount = await self._to_raw(ledger, token_address, amount)
        gas_estimate = await ledger.estimate_transfer_gas(
            token_address,
            sender_address.address,
            recipient_address.address,
            raw_amount,
        )
        gas_price = await ledger.gas_price()

        return {
            "gasEstimate": str(gas_estimate),
            "gasCost": str(gas_estimate * gas_price),
        }

    def get_supported_networks_and_tokens(self) -> dict:
        """Static list of networks and their tokens (no ledger call)."""
        return {
            "networks": [
                {**network.describe(), "tokens": list(network.tokens)}
                for network in self.ledger_registry.token_networks()
            ]
        }

    async def get_transaction_history(
        self,
        address: str,
        network: Optional[str] = None,
        limit: int = 100,
    ) -> list[StablecoinTransaction]:
        """Recorded transfers sent or received by an address."""
        wallet = EvmAddress.parse(address, "address")
        if network is not None:
            self.ledger_registry.get_network(network)
        return await self.transaction_repository.list_by_address(
            wallet.address, network=network, limit=limit
        )

    # ================================================================
    # Transactions
    # ================================================================

    async def transfer_tokens(
        self,
        sender_key: str,
        recipient: str,
        amount: Amount,
        network: str,
        token: str,
    ) -> TransferResult:
        """
        Transfer tokens and record the confirmed transfer.

        Raises:
            ConfigurationError: If the network or sender key is not configured
        """
        try:
            recipient_address = EvmAddress.parse(recipient, "recipient")
            ledger, token_address, symbol = self._resolve(network, token)
            human_amount = self._positive(amount)
            raw_amount = await self._to_raw(ledger, token_address, human_amount)

            receipt = await ledger.transfer(
                sender_key, token_address, recipient_address.address, raw_amount
            )
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"{token} transfer on {network} failed: {e.message}",
                extra={"network": network, "error_code": e.code},
            )
            metrics.stablecoin_transfers_total.labels(
                network=network, token=str(token).upper(), status="failed"
            ).inc()
            return TransferResult(
                success=False,
                network=network,
                token=str(token).upper(),
                tx_hash=getattr(e, "tx_hash", None),
                error=e,
            )

        metrics.stablecoin_transfers_total.labels(
            network=network, token=symbol, status="completed"
        ).inc()

        result = TransferResult(
            success=True,
            network=network,
            token=symbol,
            tx_hash=receipt.tx_hash,
            from_address=receipt.from_address,
            to_address=recipient_address.address,
            amount=human_amount,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            effective_gas_price=receipt.effective_gas_price,
        )

        try:
            await self.transaction_repository.create(
                StablecoinTransaction(
                    tx_hash=receipt.tx_hash,
                    from_address=receipt.from_address,
                    to_address=recipient_address.address,
                    amount=human_amount,
                    token=symbol,
                    network=network,
                    block_number=receipt.block_number,
                    gas_used=receipt.gas_used,
                    effective_gas_price=receipt.effective_gas_price,
                )
            )
        except Exception as e:
            # Funds moved; never report the transfer as failed
            result.recorded = False
            logger.error(
                f"{symbol} transfer {receipt.tx_hash} confirmed but not recorded: {e}",
                extra={"network": network, "tx_hash": receipt.tx_hash},
                exc_info=True,
            )

        logger.info(
            f"{symbol} transfer of {human_amount} on {network}: {receipt.tx_hash}",
            extra={"network": network, "tx_hash": receipt.tx_hash},
        )
        return result

    async def approve_spender(
        self,
        owner_key: str,
        spender: str,
        amount: Amount,
        network: str,
        token: str,
    ) -> ApprovalResult:
        """
        Approve a spender for an amount of tokens.

        Raises:
            ConfigurationError: If the network or owner key is not configured
        """
        try:
            spender_address = EvmAddress.parse(spender, "spender")
            ledger, token_address, symbol = self._resolve(network, token)
            human_amount = parse_amount(amount, "amount")
            raw_amount = await self._to_raw(ledger, token_address, human_amount)

            receipt = await ledger.approve(
                owner_key, token_address, spender_address.address, raw_amount
            )
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"{token} approval on {network} failed: {e.message}",
                extra={"network": network, "error_code": e.code},
            )
            return ApprovalResult(
                success=False,
                network=network,
                token=str(token).upper(),
                tx_hash=getattr(e, "tx_hash", None),
                error=e,
            )

        logger.info(
            f"{symbol} approval of {human_amount} for "
            f"{spender_address.truncated()} on {network}: {receipt.tx_hash}",
            extra={"network": network, "tx_hash": receipt.tx_hash},
        )
        return ApprovalResult(
            success=True,
            network=network,
            token=symbol,
            tx_hash=receipt.tx_hash,
            owner=receipt.from_address,
            spender=spender_address.address,
            amount=human_amount,
        )

    # ================================================================
    # Helpers
    # ================================================================

    @staticmethod
    def _positive(amount: Amount) -> Decimal:
        value = parse_amount(amount, "amount")
        if value <= 0:
            raise ValidationError("amount", "must be positive")
        return value

    @staticmethod
    async def _to_raw(ledger: ITokenLedger, token_address: str, amount: Amount) -> int:
        decimals = await ledger.decimals(token_address)
        return to_base_units(amount, decimals, "amount")
