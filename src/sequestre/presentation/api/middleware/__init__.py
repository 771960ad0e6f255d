"""
API middleware for Sequestre.
"""

from sequestre.presentation.api.middleware.auth import require_admin_token
from sequestre.presentation.api.middleware.error_handler import (
    sequestre_exception_handler,
    status_for,
)
from sequestre.presentation.api.middleware.metrics_middleware import (
    MetricsMiddleware,
)
from sequestre.presentation.api.middleware.request_id_middleware import (
    RequestIDMiddleware,
)

__all__ = [
    "MetricsMiddleware",
    "RequestIDMiddleware",
    "require_admin_token",
    "sequestre_exception_handler",
    "status_for",
]
