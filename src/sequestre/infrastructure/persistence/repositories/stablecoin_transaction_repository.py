"""
StablecoinTransaction repository implementation using SQLAlchemy.
"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sequestre.domain.entities.stablecoin_transaction import (
    StablecoinTransaction,
    StablecoinTransactionStatus,
)
from sequestre.domain.exceptions import DuplicateEntityError
from sequestre.domain.repositories.i_stablecoin_transaction_repository import (
    IStablecoinTransactionRepository,
)
from sequestre.infrastructure.persistence.errors import mirror_store_errors
from sequestre.infrastructure.persistence.models import StablecoinTransactionModel


class StablecoinTransactionRepository(IStablecoinTransactionRepository):
    """SQLAlchemy implementation of the stablecoin transfer log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: StablecoinTransaction) -> StablecoinTransaction:
        model = StablecoinTransactionModel(
            id=transaction.id,
            tx_hash=transaction.tx_hash,
            from_address=transaction.from_address,
            to_address=transaction.to_address,
            amount=transaction.amount,
            token=transaction.token,
            network=transaction.network,
            status=transaction.status.value,
            block_number=transaction.block_number,
            gas_used=transaction.gas_used,
            effective_gas_price=(
                str(transaction.effective_gas_price)
                if transaction.effective_gas_price is not None
                else None
            ),
            timestamp=transaction.timestamp,
        )

        with mirror_store_errors("create_transaction"):
            self.session.add(model)
            try:
                await self.session.flush()
            except IntegrityError:
                await self.session.rollback()
                raise DuplicateEntityError(
                    "StablecoinTransaction", f"tx_hash {transaction.tx_hash}"
                )

        return self._to_entity(model)

    async def get_by_tx_hash(self, tx_hash: str) -> Optional[StablecoinTransaction]:
        stmt = select(StablecoinTransactionModel).where(
            StablecoinTransactionModel.tx_hash == tx_hash
        )
        with mirror_store_errors("get_by_tx_hash"):
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()

        return self._to_entity(model) if model else None

    async def list_by_address(
        self,
        address: str,
        network: Optional[str] = None,
        limit: int = 100,
    ) -> list[StablecoinTransaction]:
        stmt = select(StablecoinTransactionModel).where(
            or_(
                StablecoinTransactionModel.from_address == address,
                StablecoinTransactionModel.to_address == address,
            )
        )

        if network:
            stmt = stmt.where(StablecoinTransactionModel.network == network)

        stmt = stmt.order_by(StablecoinTransactionModel.timestamp.desc()).limit(limit)

        with mirror_store_errors("list_by_address"):
            result = await self.session.execute(stmt)
            models = result.scalars().all()
        return [self._to_entity(model) for model in models]

    def _to_entity(self, model: StablecoinTransactionModel) -> StablecoinTransaction:
        """Convert ORM model to domain entity."""
        return StablecoinTransaction(
            id=model.id,
            tx_hash=model.tx_hash,
            from_address=model.from_address,
            to_address=model.to_address,
            amount=model.amount,
            token=model.token,
            network=model.network,
            status=StablecoinTransactionStatus(model.status),
            block_number=model.block_number,
            gas_used=model.gas_used,
            effective_gas_price=(
                int(model.effective_gas_price)
                if model.effective_gas_price is not None
                else None
            ),
            timestamp=model.timestamp,
        )
