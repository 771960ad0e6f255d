"""
Admin token gate for privileged routes.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from sequestre.config.settings import get_settings


async def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
    """
    Require ``X-Admin-Token`` to match ``ADMIN_API_TOKEN``.

    Raises:
        HTTPException: 503 if no admin token is configured, 401 if the
            header is missing or wrong
    """
    expected = get_settings().ADMIN_API_TOKEN
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is disabled (ADMIN_API_TOKEN not configured)",
        )

    if not x_admin_token or not secrets.compare_digest(
        x_admin_token.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )
