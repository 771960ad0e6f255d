"""Persistence layer: database manager, ORM models, repositories."""

from sequestre.infrastructure.persistence.database import Database
from sequestre.infrastructure.persistence.models import Base

__all__ = ["Database", "Base"]
