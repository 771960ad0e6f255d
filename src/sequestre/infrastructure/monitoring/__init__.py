"""
Monitoring and observability infrastructure.
"""

from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import (
    get_logger,
    log_duration,
    set_request_id,
    setup_logging,
)

__all__ = [
    "metrics",
    "get_logger",
    "set_request_id",
    "setup_logging",
    "log_duration",
]
