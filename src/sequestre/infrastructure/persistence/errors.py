"""
Translation of SQLAlchemy failures into domain errors.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from sequestre.domain.exceptions import MirrorUnavailableError
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def mirror_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise store failures inside the block as MirrorUnavailableError.

    Domain errors raised in the block pass through untouched.

    Args:
        operation: Repository operation name, used in the message
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(
            f"Mirror store failed during {operation}: {e}",
            extra={"operation": operation},
        )
        raise MirrorUnavailableError(
            f"Mirror store unavailable during {operation}",
            operation=operation,
        ) from e
