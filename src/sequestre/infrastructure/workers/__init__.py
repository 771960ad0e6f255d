"""Background workers."""

from sequestre.infrastructure.workers.mirror_sync_worker import MirrorSyncWorker

__all__ = ["MirrorSyncWorker"]
