"""
Request ID middleware for request tracking.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sequestre.infrastructure.monitoring.logger import set_request_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to generate and track request IDs.

    Adds X-Request-ID header to responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_id(request.headers.get("X-Request-ID"))

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response
