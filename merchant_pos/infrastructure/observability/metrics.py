"""Prometheus metrics for monitoring authorization outcomes, lockouts and history fetches"""

from prometheus_client import Counter, Histogram

# Authorization metrics
authorization_outcome_counter = Counter(
    "merchant_authorization_outcomes_total",
    "Transaction authorization outcomes",
    ["outcome"],  # success | pin_incorrect | locked | insufficient_funds | declined | network_error | unknown_error
)

pin_lockout_counter = Counter(
    "merchant_pin_lockouts_total",
    "Sessions locked after exhausting PIN attempts",
)

# History metrics
history_fetch_failures_counter = Counter(
    "merchant_history_fetch_failures_total",
    "Failed history page fetches",
    ["kind"],  # server | transport | protocol
)

history_records_dropped_counter = Counter(
    "merchant_history_records_dropped_total",
    "History records dropped by validation",
)

# Backend client metrics
gateway_latency_histogram = Histogram(
    "merchant_gateway_request_seconds",
    "Merchant backend request latency",
    ["endpoint"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def record_outcome(outcome_kind: str) -> None:
    """Record an authorization outcome; a lockout also bumps the lockout counter"""
    authorization_outcome_counter.labels(outcome=outcome_kind).inc()
    if outcome_kind == "locked":
        pin_lockout_counter.inc()


def record_history_failure(kind: str) -> None:
    history_fetch_failures_counter.labels(kind=kind).inc()
