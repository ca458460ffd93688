from event_relay.processing.consumer import (
    BatchResult,
    MessageConsumer,
    MessagePublisher,
    MessageQueue,
    MessageResult,
)
from event_relay.processing.outcome import (
    Action,
    Backoff,
    Delete,
    DeliveryOutcome,
    Requeue,
)
from event_relay.processing.processor import (
    EventProcessor,
    ProcessorFactory,
    build_processor,
    load_processor,
    load_processor_factory,
    log_only_processor,
)

__all__ = [
    "Action",
    "Backoff",
    "BatchResult",
    "Delete",
    "DeliveryOutcome",
    "EventProcessor",
    "MessageConsumer",
    "MessagePublisher",
    "MessageQueue",
    "MessageResult",
    "ProcessorFactory",
    "Requeue",
    "build_processor",
    "load_processor",
    "load_processor_factory",
    "log_only_processor",
]
