"""Prometheus metrics for the summary job pipeline."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

summary_jobs_total = Counter(
    "summary_jobs_total",
    "Summary jobs finished, by trigger and outcome",
    ["trigger", "outcome"],
)
summary_job_failures_total = Counter(
    "summary_job_failures_total",
    "Failed summary jobs, by the step that failed",
    ["step"],
)
summary_job_queue_depth = Gauge(
    "summary_job_queue_depth",
    "Summary jobs waiting for a worker",
)
summary_jobs_in_flight = Gauge(
    "summary_jobs_in_flight",
    "Summary jobs currently being processed",
)
nats_messages_total = Counter(
    "summary_nats_messages_total",
    "NATS messages received, by outcome",
    ["subject", "outcome"],
)


def render_metrics() -> tuple[bytes, str]:
    """Returns the exposition body and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST
