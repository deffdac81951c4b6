"""Prometheus metrics for monitoring request volume, transitions, and errors"""

from prometheus_client import Counter, Histogram

# Workflow metrics
requests_created_counter = Counter(
    "church_finance_requests_created_total",
    "Financial requests created",
    ["currency"],
)

transitions_counter = Counter(
    "church_finance_transitions_total",
    "Accepted status transitions",
    ["status"],  # target status
)

workflow_errors_counter = Counter(
    "church_finance_workflow_errors_total",
    "Workflow actions denied",
    ["kind"],  # VALIDATION_ERROR | AUTHORIZATION_ERROR | NOT_FOUND | STATE_CONFLICT
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_created(currency: str) -> None:
    requests_created_counter.labels(currency=currency).inc()


def record_transition(status: str) -> None:
    transitions_counter.labels(status=status).inc()


def record_workflow_error(kind: str) -> None:
    workflow_errors_counter.labels(kind=kind).inc()
