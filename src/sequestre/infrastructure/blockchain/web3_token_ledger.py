"""
ERC-20 token adapter over web3.
"""

from web3 import AsyncWeb3

from sequestre.domain.services.i_token_ledger import (
    ITokenLedger,
    TokenTransferReceipt,
)
from sequestre.domain.value_objects.network import NetworkConfig
from sequestre.infrastructure.blockchain.abis import ERC20_ABI
from sequestre.infrastructure.blockchain.web3_client import Web3Client, load_account


class Web3TokenLedger(ITokenLedger):
    """ERC-20 operations on one network, in smallest units."""

    def __init__(self, network: NetworkConfig, client: Web3Client):
        self._network = network
        self.client = client

    @property
    def network(self) -> NetworkConfig:
        return self._network

    def _token(self, token_address: str):
        return self.client.contract(token_address, ERC20_ABI)

    async def decimals(self, token_address: str) -> int:
        fn = self._token(token_address).functions.decimals()
        return int(await self.client.read("decimals", fn.call))

    async def symbol(self, token_address: str) -> str:
        fn = self._token(token_address).functions.symbol()
        return await self.client.read("symbol", fn.call)

    async def balance_of(self, token_address: str, owner: str) -> int:
        fn = self._token(token_address).functions.balanceOf(
            AsyncWeb3.to_checksum_address(owner)
        )
        return int(await self.client.read("balance_of", fn.call))

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        fn = self._token(token_address).functions.allowance(
            AsyncWeb3.to_checksum_address(owner),
            AsyncWeb3.to_checksum_address(spender),
        )
        return int(await self.client.read("allowance", fn.call))

    async def estimate_transfer_gas(
        self,
        token_address: str,
        sender: str,
        recipient: str,
        raw_amount: int,
    ) -> int:
        fn = self._token(token_address).functions.transfer(
            AsyncWeb3.to_checksum_address(recipient), raw_amount
        )
        return int(
            await self.client.estimate_gas(
                "estimate_transfer_gas", fn, AsyncWeb3.to_checksum_address(sender)
            )
        )

    async def gas_price(self) -> int:
        return int(await self.client.gas_price())

    async def transfer(
        self,
        sender_key: str,
        token_address: str,
        recipient: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        account = load_account(sender_key, "Sender")
        fn = self._token(token_address).functions.transfer(
            AsyncWeb3.to_checksum_address(recipient), raw_amount
        )
        receipt = await self.client.transact("transfer", account, fn)
        return self._to_receipt(receipt, account.address)

    async def approve(
        self,
        owner_key: str,
        token_address: str,
        spender: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        account = load_account(owner_key, "Owner")
        fn = self._token(token_address).functions.approve(
            AsyncWeb3.to_checksum_address(spender), raw_amount
        )
        receipt = await self.client.transact("approve", account, fn)
        return self._to_receipt(receipt, account.address)

    @staticmethod
    def _to_receipt(receipt, sender: str) -> TokenTransferReceipt:
        return TokenTransferReceipt(
            tx_hash=AsyncWeb3.to_hex(receipt["transactionHash"]),
            from_address=sender,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            effective_gas_price=receipt.get("effectiveGasPrice"),
        )
