"""Prometheus metrics for HSI recomputation, advancing and ledger health"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# HSI metrics
hsi_recompute_counter = Counter(
    "hsi_recompute_total",
    "HSI recomputations",
    ["outcome"],  # success | skipped | failed
)

hsi_bracket_counter = Counter(
    "hsi_bracket_total",
    "HSI brackets assigned",
    ["bracket"],
)

hsi_recompute_duration_histogram = Histogram(
    "hsi_recompute_duration_seconds",
    "Time to recompute one house's HSI",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Advance metrics
advance_decision_counter = Counter(
    "advance_decisions_total",
    "Advance attempts by outcome",
    ["outcome"],  # advanced | rejected | noop
)

advanced_dollars_counter = Counter(
    "advanced_dollars_total",
    "Dollars fronted by the platform",
)

ledger_drift_counter = Counter(
    "ledger_drift_detected_total",
    "Usage reads where ledger-based and state-based outstanding totals disagreed",
)

# Risk history
risk_history_deleted_counter = Counter(
    "risk_history_deleted_total",
    "Weekly risk snapshots purged by cleanup",
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification service response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_hsi(outcome: str, bracket: int | None = None) -> None:
    """Record recompute outcome and the bracket distribution"""
    hsi_recompute_counter.labels(outcome=outcome).inc()
    if bracket is not None:
        hsi_bracket_counter.labels(bracket=str(bracket)).inc()


def record_advance(outcome: str, amount: Decimal = Decimal("0")) -> None:
    advance_decision_counter.labels(outcome=outcome).inc()
    if outcome == "advanced" and amount > 0:
        advanced_dollars_counter.inc(float(amount))
