"""
Async web3 client shared by the escrow and token adapters.

Features:
- Circuit breaker per network (prevent cascading failures)
- Retry with exponential backoff for reads only
- Sign, send and wait with a receipt timeout
- Error mapping onto ledger exceptions, split by whether the
  transaction had already been sent
"""

import asyncio
import time
from dataclasses import replace
from typing import Any, Optional

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
)

from sequestre.domain.exceptions import (
    ConfigurationError,
    LedgerSubmissionError,
    LedgerUnavailableError,
)
from sequestre.domain.value_objects.network import NetworkConfig
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger
from sequestre.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
)
from sequestre.infrastructure.resilience.retry import Retry, RetryConfig, RetryError

logger = get_logger(__name__)

# Transport-level failures: the node was not reached or did not answer
TRANSPORT_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    ProviderConnectionError,
)


def load_account(private_key: Optional[str], role: str) -> LocalAccount:
    """
    Build a signing account from hex key material.

    Raises:
        ConfigurationError: If the key is missing or malformed
    """
    if not private_key:
        raise ConfigurationError(f"{role} private key is not configured")

    try:
        return Account.from_key(private_key)
    except Exception as e:
        # eth_keys raises its own ValidationError for bad lengths
        raise ConfigurationError(f"{role} private key is malformed") from e


def revert_reason(error: ContractLogicError) -> str:
    """Extract the human-readable revert reason."""
    message = getattr(error, "message", None) or str(error)
    prefix = "execution reverted: "
    if message.startswith(prefix):
        return message[len(prefix):]
    return message


class Web3Client:
    """
    Resilient JSON-RPC access to one EVM network.

    Reads go through retry and the circuit breaker. Writes go through the
    circuit breaker only and are never retried: once a transaction is
    sent, failures surface as ``LedgerUnavailableError(submitted=True)``.
    """

    def __init__(
        self,
        network: NetworkConfig,
        w3: Optional[AsyncWeb3] = None,
        request_timeout: float = 30.0,
        receipt_timeout: float = 120.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Initialize client.

        Args:
            network: Network configuration (must carry an RPC URL unless
                ``w3`` is given)
            w3: Optional preconfigured AsyncWeb3 instance
            request_timeout: JSON-RPC request timeout in seconds
            receipt_timeout: Seconds to wait for a transaction receipt
            retry_config: Retry settings for reads
            circuit_breaker: Optional circuit breaker
        """
        self.network = network
        self.receipt_timeout = receipt_timeout
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                network.rpc_url,
                request_kwargs={
                    "timeout": aiohttp.ClientTimeout(total=request_timeout)
                },
            )
        )

        self.retry = Retry(
            replace(
                retry_config or RetryConfig(),
                retry_on=(LedgerUnavailableError,),
                retry_if=lambda e: not e.submitted,
            )
        )

        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name=f"ledger_{network.id}",
            expected_exception=LedgerUnavailableError,
        )

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )

    # ================================================================
    # Reads
    # ================================================================

    async def read(self, operation: str, call, *args) -> Any:
        """
        Run a read-only call with retry and circuit breaker.

        Args:
            operation: Operation name for logs and metrics
            call: Coroutine function performing the RPC request
            *args: Arguments passed to ``call``

        Raises:
            LedgerUnavailableError: If the node cannot be reached
            LedgerSubmissionError: If the contract call reverts
        """
        return await self._guarded(
            operation, self._read_with_retry, operation, call, *args
        )

    async def _read_with_retry(self, operation: str, call, *args) -> Any:
        try:
            return await self.retry.execute_async(
                self._mapped_read, operation, call, *args
            )
        except RetryError as e:
            raise e.last_exception from e

    async def _mapped_read(self, operation: str, call, *args) -> Any:
        try:
            return await call(*args)
        except ContractLogicError as e:
            raise LedgerSubmissionError(revert_reason(e), operation=operation)
        except TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(
                f"{self.network.name} unreachable during {operation}: {e}"
            )
        except Web3Exception as e:
            raise LedgerUnavailableError(
                f"{self.network.name} RPC error during {operation}: {e}"
            )

    async def gas_price(self) -> int:
        async def fetch():
            return await self.w3.eth.gas_price

        return await self.read("gas_price", fetch)

    async def estimate_gas(self, operation: str, fn, sender: str) -> int:
        """Estimate gas units for a contract function call."""

        async def estimate():
            return await fn.estimate_gas({"from": sender})

        return await self.read(operation, estimate)

    # ================================================================
    # Writes
    # ================================================================

    async def transact(
        self,
        operation: str,
        account: LocalAccount,
        fn,
        value: int = 0,
    ) -> dict:
        """
        Sign, send and wait for a contract transaction.

        Args:
            operation: Operation name for logs and metrics
            account: Signing account
            fn: Bound contract function
            value: Native value to attach, in wei

        Returns:
            Successful transaction receipt

        Raises:
            LedgerSubmissionError: If the transaction reverts or the node
                rejects it
            LedgerUnavailableError: ``submitted=False`` if the failure came
                before sending, ``submitted=True`` after
        """
        return await self._guarded(
            operation, self._transact, operation, account, fn, value
        )

    async def _transact(
        self,
        operation: str,
        account: LocalAccount,
        fn,
        value: int,
    ) -> dict:
        # 1. Build and sign (nothing sent yet)
        try:
            nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
            tx = await fn.build_transaction(
                {"from": account.address, "nonce": nonce, "value": value}
            )
        except ContractLogicError as e:
            raise LedgerSubmissionError(revert_reason(e), operation=operation)
        except TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(
                f"{self.network.name} unreachable before {operation}: {e}"
            )
        except Web3Exception as e:
            raise LedgerSubmissionError(str(e), operation=operation)

        signed = account.sign_transaction(tx)
        tx_hash = AsyncWeb3.to_hex(signed.hash)

        # 2. Send
        try:
            await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(
                f"{operation} outcome unknown, send failed: {e}",
                submitted=True,
                tx_hash=tx_hash,
            )
        except Web3Exception as e:
            # Node refused the raw transaction (nonce, funds, gas)
            raise LedgerSubmissionError(str(e), operation=operation)

        logger.info(
            f"{operation} sent on {self.network.id}: {tx_hash}",
            extra={"network": self.network.id, "tx_hash": tx_hash},
        )

        # 3. Wait for receipt
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                signed.hash, timeout=self.receipt_timeout
            )
        except TimeExhausted:
            raise LedgerUnavailableError(
                f"{operation} not mined within {self.receipt_timeout}s",
                submitted=True,
                tx_hash=tx_hash,
            )
        except (Web3Exception, *TRANSPORT_ERRORS) as e:
            raise LedgerUnavailableError(
                f"{operation} outcome unknown, receipt unavailable: {e}",
                submitted=True,
                tx_hash=tx_hash,
            )

        if receipt["status"] != 1:
            reason = await self._replay_revert_reason(tx, receipt["blockNumber"])
            raise LedgerSubmissionError(reason, operation=operation, tx_hash=tx_hash)

        return receipt

    async def _replay_revert_reason(self, tx: dict, block_number: int) -> str:
        """Re-run a reverted transaction as a call to recover its reason."""
        call_tx = {k: tx[k] for k in ("from", "to", "data", "value") if k in tx}
        try:
            await self.w3.eth.call(call_tx, block_identifier=block_number)
        except ContractLogicError as e:
            return revert_reason(e)
        except (Web3Exception, *TRANSPORT_ERRORS) as e:
            logger.debug(f"Revert reason replay failed: {e}")
        return "execution reverted"

    # ================================================================
    # Common
    # ================================================================

    async def _guarded(self, operation: str, func, *args) -> Any:
        start_time = time.time()
        status = "success"
        try:
            return await self.circuit_breaker.call(func, *args)
        except CircuitBreakerError as e:
            status = "circuit_open"
            raise LedgerUnavailableError(str(e))
        except LedgerSubmissionError:
            status = "reverted"
            raise
        except LedgerUnavailableError:
            status = "unavailable"
            raise
        finally:
            metrics.ledger_requests_total.labels(
                network=self.network.id, operation=operation, status=status
            ).inc()
            metrics.ledger_request_duration_seconds.labels(
                network=self.network.id, operation=operation
            ).observe(time.time() - start_time)

    async def close(self) -> None:
        """Close HTTP sessions held by the provider."""
        await self.w3.provider.disconnect()
