"""Queue primitives: message models, backoff policy and the SQS gateway."""

from event_relay.queue.backoff import BackoffPolicy
from event_relay.queue.models import OutboundMessage, QueueMessage
from event_relay.queue.sqs import SQSGateway

__all__ = [
    "BackoffPolicy",
    "OutboundMessage",
    "QueueMessage",
    "SQSGateway",
]
