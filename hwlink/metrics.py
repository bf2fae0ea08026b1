"""Prometheus metrics for the link authority."""

from prometheus_client import CollectorRegistry, Counter, Gauge

registry = CollectorRegistry()

verifications = Counter(
    "hwlink_verifications_total",
    "Code verification attempts by outcome",
    ["outcome"],
    registry=registry,
)
dropped_requests = Counter(
    "hwlink_dropped_requests_total",
    "Requests dropped without a response",
    ["event"],
    registry=registry,
)
ledger_write_failures = Counter(
    "hwlink_ledger_write_failures_total",
    "Failed writes of the shared used code ledger",
    registry=registry,
)
connected_players = Gauge(
    "hwlink_connected_players",
    "Players connected to this instance",
    registry=registry,
)
