from prometheus_client import Counter, Histogram

NESTWARE_DISPATCH_TOTAL = Counter(
    "nestware_dispatch_total",
    "Middleware invocations handled by the nested dispatcher",
    ["model", "action", "status"],
)

NESTWARE_DISPATCH_LATENCY_SECONDS = Histogram(
    "nestware_dispatch_latency_seconds",
    "Time from dispatch start until the invocation settled",
    ["model", "action"],
)

NESTWARE_NESTED_SITES_TOTAL = Counter(
    "nestware_nested_sites_total",
    "Nested write sites dispatched, by child model and action",
    ["model", "action"],
)

NESTWARE_BARRIER_WAIT_SECONDS = Histogram(
    "nestware_barrier_wait_seconds",
    "Time a parent operation waited for its nested writes to reach next()",
    ["model"],
)
