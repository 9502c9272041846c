from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

METRICS_NAMESPACE = "llm_relay"

registry = CollectorRegistry()

REQUEST_COUNTER = Counter(
    f"{METRICS_NAMESPACE}_requests_total",
    "Total /generate requests",
    ["status"],
    registry=registry,
)

LATENCY_HISTOGRAM = Histogram(
    f"{METRICS_NAMESPACE}_request_latency_seconds",
    "Request latency histogram",
    buckets=(0.01, 0.03, 0.1, 0.3, 1, 3, 10, 30),
    registry=registry,
)

CACHE_HIT_COUNTER = Counter(
    f"{METRICS_NAMESPACE}_cache_hits_total",
    "Response cache hits",
    registry=registry,
)

CACHE_MISS_COUNTER = Counter(
    f"{METRICS_NAMESPACE}_cache_miss_total",
    "Response cache misses",
    registry=registry,
)

UPSTREAM_ERROR_COUNTER = Counter(
    f"{METRICS_NAMESPACE}_upstream_errors_total",
    "Upstream failures by kind",
    ["kind"],  # error | empty
    registry=registry,
)

CACHE_ENTRIES_GAUGE = Gauge(
    f"{METRICS_NAMESPACE}_cache_entries",
    "Entries currently held by the response cache",
    registry=registry,
)

CACHE_EVICTION_COUNTER = Counter(
    f"{METRICS_NAMESPACE}_cache_evictions_total",
    "Expired entries removed by the sweep",
    registry=registry,
)
