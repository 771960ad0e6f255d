"""
Dependency Injection Container for Sequestre.

Manages all service instances and their dependencies.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sequestre.application.services.stablecoin_service import StablecoinService
from sequestre.application.use_cases.check_milestone_readiness import (
    CheckMilestoneReadiness,
)
from sequestre.application.use_cases.create_milestone_escrow import (
    CreateMilestoneEscrow,
)
from sequestre.application.use_cases.get_escrow_overview import (
    GetEscrowOverview,
)
from sequestre.application.use_cases.rebuild_escrow_mirror import (
    RebuildEscrowMirror,
)
from sequestre.application.use_cases.reconcile_escrow_mirror import (
    ReconcileEscrowMirror,
)
from sequestre.application.use_cases.release_milestone import ReleaseMilestone
from sequestre.config.settings import get_settings
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.repositories.i_stablecoin_transaction_repository import (
    IStablecoinTransactionRepository,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.infrastructure.blockchain.networks import NetworkRegistry
from sequestre.infrastructure.monitoring.logger import get_logger
from sequestre.infrastructure.persistence.database import Database
from sequestre.infrastructure.persistence.repositories.milestone_repository import (
    MilestoneRepository,
)
from sequestre.infrastructure.persistence.repositories.stablecoin_transaction_repository import (  # noqa: E501
    StablecoinTransactionRepository,
)
from sequestre.infrastructure.resilience.idempotency import (
    IdempotencyStore,
    InMemoryIdempotencyStore,
)
from sequestre.infrastructure.resilience.redis_idempotency_store import (
    RedisIdempotencyStore,
)
from sequestre.infrastructure.workers.mirror_sync_worker import MirrorSyncWorker

logger = get_logger(__name__)


class DIContainer:
    """
    Dependency Injection Container.

    Manages singleton instances of infrastructure services.
    Repositories and use cases are session-scoped and built per request.
    """

    def __init__(self):
        """Initialize container with None instances."""
        # Infrastructure
        self._database: Optional[Database] = None
        self._ledger_registry: Optional[ILedgerRegistry] = None
        self._idempotency_store: Optional[IdempotencyStore] = None
        self._idempotency_store_resolved = False
        self._mirror_sync_worker: Optional[MirrorSyncWorker] = None

    async def initialize(self) -> None:
        """Initialize all services and establish connections."""
        await self.database.connect()
        await self.database.create_tables()

        if get_settings().MIRROR_SYNC_ENABLED:
            self.mirror_sync_worker.start()

    async def shutdown(self) -> None:
        """Cleanup resources and close connections."""
        if self._mirror_sync_worker:
            await self._mirror_sync_worker.stop()

        if self._ledger_registry:
            await self._ledger_registry.close()

        if isinstance(self._idempotency_store, RedisIdempotencyStore):
            await self._idempotency_store.close()

        if self._database:
            await self._database.disconnect()

    # Infrastructure Getters

    @property
    def database(self) -> Database:
        """Get database instance."""
        if self._database is None:
            self._database = Database(
                database_url=get_settings().DATABASE_URL,
                echo=get_settings().DATABASE_ECHO,
            )
        return self._database

    @property
    def ledger_registry(self) -> ILedgerRegistry:
        """Get network registry with lazily built ledger adapters."""
        if self._ledger_registry is None:
            self._ledger_registry = NetworkRegistry.from_settings(get_settings())
        return self._ledger_registry

    @ledger_registry.setter
    def ledger_registry(self, registry: ILedgerRegistry) -> None:
        self._ledger_registry = registry

    @property
    def idempotency_store(self) -> Optional[IdempotencyStore]:
        """
        Get idempotency result cache.

        Redis when enabled, in-memory otherwise, None when idempotency
        caching is disabled (mirror rows still deduplicate).
        """
        if not self._idempotency_store_resolved:
            settings = get_settings()
            if not settings.IDEMPOTENCY_ENABLED:
                self._idempotency_store = None
            elif settings.REDIS_ENABLED:
                self._idempotency_store = RedisIdempotencyStore(
                    url=f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}",
                    db=settings.REDIS_DB,
                    password=settings.REDIS_PASSWORD or None,
                )
            else:
                self._idempotency_store = InMemoryIdempotencyStore()
            self._idempotency_store_resolved = True
        return self._idempotency_store

    @property
    def mirror_sync_worker(self) -> MirrorSyncWorker:
        """Get mirror sync worker instance."""
        if self._mirror_sync_worker is None:
            self._mirror_sync_worker = MirrorSyncWorker(
                session_factory=self.database.session,
                ledger_registry=self.ledger_registry,
                interval_seconds=get_settings().MIRROR_SYNC_INTERVAL_SECONDS,
            )
        return self._mirror_sync_worker

    # Repository Getters (Session-scoped)

    def get_milestone_repository(self, session: AsyncSession) -> IMilestoneRepository:
        return MilestoneRepository(session)

    def get_stablecoin_transaction_repository(
        self, session: AsyncSession
    ) -> IStablecoinTransactionRepository:
        return StablecoinTransactionRepository(session)

    # Use Case Getters

    def get_create_milestone_escrow(
        self, session: AsyncSession
    ) -> CreateMilestoneEscrow:
        """
        Get create escrow use case with session-scoped repository.

        Args:
            session: Active database session

        Returns:
            CreateMilestoneEscrow use case instance
        """
        return CreateMilestoneEscrow(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
            idempotency_store=self.idempotency_store,
            idempotency_ttl=get_settings().IDEMPOTENCY_TTL_SECONDS,
        )

    def get_check_milestone_readiness(
        self, session: AsyncSession
    ) -> CheckMilestoneReadiness:
        return CheckMilestoneReadiness(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
        )

    def get_release_milestone(self, session: AsyncSession) -> ReleaseMilestone:
        return ReleaseMilestone(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
        )

    def get_escrow_overview(self, session: AsyncSession) -> GetEscrowOverview:
        return GetEscrowOverview(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
        )

    def get_reconcile_escrow_mirror(
        self, session: AsyncSession
    ) -> ReconcileEscrowMirror:
        return ReconcileEscrowMirror(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
        )

    def get_rebuild_escrow_mirror(self, session: AsyncSession) -> RebuildEscrowMirror:
        return RebuildEscrowMirror(
            ledger_registry=self.ledger_registry,
            milestone_repository=self.get_milestone_repository(session),
        )

    def get_stablecoin_service(self, session: AsyncSession) -> StablecoinService:
        return StablecoinService(
            ledger_registry=self.ledger_registry,
            transaction_repository=self.get_stablecoin_transaction_repository(
                session
            ),
        )


# Global container instance
_container: Optional[DIContainer] = None


def get_container() -> DIContainer:
    """Get global DI container instance."""
    global _container
    if _container is None:
        _container = DIContainer()
    return _container


def reset_container() -> None:
    """Drop the global container (tests)."""
    global _container
    _container = None


async def initialize_container() -> DIContainer:
    """Initialize and return DI container."""
    container = get_container()
    await container.initialize()
    return container


async def shutdown_container() -> None:
    """Shutdown DI container."""
    container = get_container()
    await container.shutdown()
