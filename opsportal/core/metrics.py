"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram)
- HTTP request count by status code (counter)
- Active requests (gauge)
- Cache hit/miss rate (counter)
- Tenant resolution outcomes (counter + histogram)
- Access-control decisions (counter)
- Session context switches (counter)
"""

from prometheus_client import Counter, Gauge, Histogram, Info


# Application info
app_info = Info("opsportal_app", "Ops portal application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Cache metrics
cache_operations_total = Counter(
    "cache_operations_total",
    "Total cache operations",
    ["operation", "hit"],
)

cache_operation_duration_seconds = Histogram(
    "cache_operation_duration_seconds",
    "Cache operation duration in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1),
)

# Tenant resolution
# outcome: resolved | not_found | failed | cache_hit | discarded
tenant_resolutions_total = Counter(
    "tenant_resolutions_total",
    "Tenant resolutions by outcome",
    ["outcome"],
)

tenant_resolution_duration_seconds = Histogram(
    "tenant_resolution_duration_seconds",
    "Backend lookup duration for tenant resolution",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

# Access control
access_decisions_total = Counter(
    "access_decisions_total",
    "Access-control decisions",
    ["decision", "reason"],
)

# Session context
context_switches_total = Counter(
    "session_context_switches_total",
    "Session initialisations and context switches by outcome",
    ["operation", "outcome"],
)
