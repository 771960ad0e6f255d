"""
Prometheus metrics middleware for FastAPI.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sequestre.infrastructure.monitoring import metrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.

    Records:
    - Request count by method/endpoint/status
    - Request duration by method/endpoint
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        start_time = time.time()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # Route template keeps label cardinality bounded
            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            metrics.http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint,
            ).observe(time.time() - start_time)
            metrics.http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status_code,
            ).inc()
