"""
Global error handling middleware.
"""

from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from sequestre.domain.exceptions import LedgerUnavailableError, SequestreException
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)

STATUS_CODE_MAP = {
    "ENTITY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DUPLICATE_ENTITY": status.HTTP_409_CONFLICT,
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "CONFIGURATION_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    "LEDGER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "LEDGER_SUBMISSION_FAILED": status.HTTP_409_CONFLICT,
    "MILESTONE_NOT_READY": status.HTTP_409_CONFLICT,
    "MIRROR_INCONSISTENCY": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "MIRROR_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: Optional[SequestreException]) -> int:
    """HTTP status for a domain exception."""
    if exc is None:
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    # Sent but unconfirmed: outcome unknown, not a plain outage
    if isinstance(exc, LedgerUnavailableError) and exc.submitted:
        return status.HTTP_504_GATEWAY_TIMEOUT

    return STATUS_CODE_MAP.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def sequestre_exception_handler(
    request: Request, exc: SequestreException
) -> JSONResponse:
    """
    Handle Sequestre domain exceptions.

    Converts domain exceptions to appropriate HTTP responses.
    """
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.message}",
            extra={"error_code": exc.code},
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": exc.message,
            "errorCode": exc.code,
        },
    )
