"""
Prometheus metrics collection.
"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================================
# HTTP Metrics
# ============================================================

http_requests_total = Counter(
    "sequestre_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "sequestre_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================================
# Ledger Metrics
# ============================================================

ledger_requests_total = Counter(
    "sequestre_ledger_requests_total",
    "Total ledger requests",
    ["network", "operation", "status"],
)

ledger_request_duration_seconds = Histogram(
    "sequestre_ledger_request_duration_seconds",
    "Ledger request duration in seconds",
    ["network", "operation"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

circuit_breaker_state = Gauge(
    "sequestre_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["service"],
)

# ============================================================
# Business Metrics
# ============================================================

escrows_created_total = Counter(
    "sequestre_escrows_created_total",
    "Escrows created",
    ["network"],
)

milestones_released_total = Counter(
    "sequestre_milestones_released_total",
    "Milestones released",
    ["network"],
)

mirror_inconsistencies_total = Counter(
    "sequestre_mirror_inconsistencies_total",
    "Detected mirror/ledger divergences",
    ["network", "kind"],
)

stablecoin_transfers_total = Counter(
    "sequestre_stablecoin_transfers_total",
    "Stablecoin transfers",
    ["network", "token", "status"],
)
