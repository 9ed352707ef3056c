from ..metrics.registry import (
    NESTWARE_BARRIER_WAIT_SECONDS,
    NESTWARE_DISPATCH_LATENCY_SECONDS,
    NESTWARE_DISPATCH_TOTAL,
    NESTWARE_NESTED_SITES_TOTAL,
)


def observe_dispatch(model: str, action: str, status: str, latency_s: float) -> None:
    NESTWARE_DISPATCH_TOTAL.labels(model=model, action=action, status=status).inc()
    NESTWARE_DISPATCH_LATENCY_SECONDS.labels(model=model, action=action).observe(latency_s)


def observe_nested_site(model: str, action: str) -> None:
    NESTWARE_NESTED_SITES_TOTAL.labels(model=model, action=action).inc()


def observe_barrier_wait(model: str, wait_s: float) -> None:
    NESTWARE_BARRIER_WAIT_SECONDS.labels(model=model).observe(wait_s)
