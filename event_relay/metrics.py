"""Prometheus metrics for the event consumer."""

from prometheus_client import CollectorRegistry, Counter, Histogram

registry = CollectorRegistry()

messages_received = Counter(
    "event_relay_messages_received_total",
    "Total messages received from the queue",
    registry=registry,
)

message_outcomes = Counter(
    "event_relay_message_outcomes_total",
    "Messages by the action taken on them",
    labelnames=["action"],
    registry=registry,
)

decode_failures = Counter(
    "event_relay_decode_failures_total",
    "Messages deleted because they could not be decoded",
    registry=registry,
)

processing_errors = Counter(
    "event_relay_processing_errors_total",
    "Messages deferred because of an unexpected error",
    labelnames=["error_type"],
    registry=registry,
)

message_processing_duration = Histogram(
    "event_relay_message_processing_duration_seconds",
    "Time spent on a single message, queue calls included",
    registry=registry,
)
