"""
Milestone repository implementation using SQLAlchemy.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sequestre.domain.entities.milestone import Milestone, MilestoneStatus
from sequestre.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.infrastructure.persistence.errors import mirror_store_errors
from sequestre.infrastructure.persistence.models import MilestoneModel


class MilestoneRepository(IMilestoneRepository):
    """
    SQLAlchemy implementation of the milestone mirror.

    Writes are flushed immediately so constraint violations surface inside
    the calling use case rather than at request commit. Any other store
    failure is raised as MirrorUnavailableError.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def insert_milestones(self, milestones: list[Milestone]) -> list[Milestone]:
        models = [
            MilestoneModel(
                id=m.id,
                network=m.network,
                escrow_id=m.escrow_id,
                milestone_index=m.milestone_index,
                title=m.title,
                description=m.description,
                amount=m.amount,
                completion_date=m.completion_date,
                hash=m.hash,
                status=m.status.value,
                completed_at=m.completed_at,
                proof_data=m.proof_data,
                idempotency_key=m.idempotency_key,
                created_at=m.created_at,
            )
            for m in milestones
        ]

        with mirror_store_errors("insert_milestones"):
            self.session.add_all(models)
            try:
                await self.session.flush()
            except IntegrityError:
                await self.session.rollback()
                first = milestones[0] if milestones else None
                identifier = (
                    f"escrow {first.escrow_id} on {first.network}" if first else "key"
                )
                raise DuplicateEntityError("Milestone", identifier)

        return [self._to_entity(model) for model in models]

    async def get_milestone(
        self,
        network: str,
        escrow_id: str,
        milestone_index: int,
    ) -> Optional[Milestone]:
        with mirror_store_errors("get_milestone"):
            model = await self._get_model(network, escrow_id, milestone_index)
        return self._to_entity(model) if model else None

    async def list_milestones(self, network: str, escrow_id: str) -> list[Milestone]:
        stmt = (
            select(MilestoneModel)
            .where(
                MilestoneModel.network == network,
                MilestoneModel.escrow_id == escrow_id,
            )
            .order_by(MilestoneModel.milestone_index)
            .execution_options(populate_existing=True)
        )
        with mirror_store_errors("list_milestones"):
            result = await self.session.execute(stmt)
            models = result.scalars().all()
        return [self._to_entity(model) for model in models]

    async def mark_completed(
        self,
        network: str,
        escrow_id: str,
        milestone_index: int,
        proof_data: Optional[str],
        completed_at: datetime,
    ) -> bool:
        """
        Flip a pending row to completed.

        The conditional UPDATE makes concurrent calls safe: only one of them
        sees a changed row.
        """
        stmt = (
            update(MilestoneModel)
            .where(
                MilestoneModel.network == network,
                MilestoneModel.escrow_id == escrow_id,
                MilestoneModel.milestone_index == milestone_index,
                MilestoneModel.status == MilestoneStatus.PENDING.value,
            )
            .values(
                status=MilestoneStatus.COMPLETED.value,
                completed_at=completed_at,
                proof_data=proof_data,
                updated_at=completed_at,
            )
            .execution_options(synchronize_session=False)
        )
        with mirror_store_errors("mark_completed"):
            result = await self.session.execute(stmt)
            await self.session.flush()

            if result.rowcount:
                return True

            # Nothing changed: either already completed or missing
            existing = await self._get_model(network, escrow_id, milestone_index)

        if existing is None:
            raise EntityNotFoundError(
                "Milestone", f"{network}/{escrow_id}/{milestone_index}"
            )
        return False

    async def find_escrow_by_idempotency_key(
        self, idempotency_key: str
    ) -> Optional[tuple[str, str]]:
        stmt = (
            select(MilestoneModel.network, MilestoneModel.escrow_id)
            .where(MilestoneModel.idempotency_key == idempotency_key)
            .limit(1)
        )
        with mirror_store_errors("find_escrow_by_idempotency_key"):
            result = await self.session.execute(stmt)
            row = result.first()
        return (row.network, row.escrow_id) if row else None

    async def list_escrows_with_pending(
        self, network: Optional[str] = None
    ) -> list[tuple[str, str]]:
        stmt = (
            select(MilestoneModel.network, MilestoneModel.escrow_id)
            .where(MilestoneModel.status == MilestoneStatus.PENDING.value)
            .distinct()
            .order_by(MilestoneModel.network, MilestoneModel.escrow_id)
        )
        if network:
            stmt = stmt.where(MilestoneModel.network == network)

        with mirror_store_errors("list_escrows_with_pending"):
            result = await self.session.execute(stmt)
            rows = result.all()
        return [(row.network, row.escrow_id) for row in rows]

    async def _get_model(
        self,
        network: str,
        escrow_id: str,
        milestone_index: int,
    ) -> Optional[MilestoneModel]:
        stmt = select(MilestoneModel).where(
            MilestoneModel.network == network,
            MilestoneModel.escrow_id == escrow_id,
            MilestoneModel.milestone_index == milestone_index,
        ).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_entity(self, model: MilestoneModel) -> Milestone:
        """Convert ORM model to domain entity."""
        return Milestone(
            id=model.id,
            network=model.network,
            escrow_id=model.escrow_id,
            milestone_index=model.milestone_index,
            title=model.title,
            description=model.description,
            amount=model.amount,
            completion_date=model.completion_date,
            hash=model.hash,
            status=MilestoneStatus(model.status),
            completed_at=model.completed_at,
            proof_data=model.proof_data,
            idempotency_key=model.idempotency_key,
            created_at=model.created_at,
        )
