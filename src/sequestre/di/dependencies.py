"""
FastAPI dependency injection.

Provides dependencies for FastAPI routes using the DI container.
All dependencies are async-compatible and use proper scoping.
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sequestre.di.container import get_container

# ================================================================
# Database Dependencies
# ================================================================


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    Yields async database session from container.
    Session is committed after the request, rolled back on error.
    """
    container = get_container()
    async with container.database.session() as session:
        yield session


# ================================================================
# Service Dependencies
# ================================================================


def get_ledger_registry():
    """Get network registry dependency."""
    return get_container().ledger_registry


def get_stablecoin_service(
    session: AsyncSession = Depends(get_db_session),
):
    """Get StablecoinService dependency."""
    return get_container().get_stablecoin_service(session)


# ================================================================
# Use Case Dependencies
# ================================================================


def get_create_milestone_escrow(
    session: AsyncSession = Depends(get_db_session),
):
    """Get CreateMilestoneEscrow use case dependency."""
    return get_container().get_create_milestone_escrow(session)


def get_check_milestone_readiness(
    session: AsyncSession = Depends(get_db_session),
):
    """Get CheckMilestoneReadiness use case dependency."""
    return get_container().get_check_milestone_readiness(session)


def get_release_milestone(
    session: AsyncSession = Depends(get_db_session),
):
    """Get ReleaseMilestone use case dependency."""
    return get_container().get_release_milestone(session)


def get_escrow_overview(
    session: AsyncSession = Depends(get_db_session),
):
    """Get GetEscrowOverview use case dependency."""
    return get_container().get_escrow_overview(session)


def get_reconcile_escrow_mirror(
    session: AsyncSession = Depends(get_db_session),
):
    """Get ReconcileEscrowMirror use case dependency."""
    return get_container().get_reconcile_escrow_mirror(session)


def get_rebuild_escrow_mirror(
    session: AsyncSession = Depends(get_db_session),
):
    """Get RebuildEscrowMirror use case dependency."""
    return get_container().get_rebuild_escrow_mirror(session)
