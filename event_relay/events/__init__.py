from event_relay.events.codec import (
    parse_from_message,
    to_public_view,
    to_queue_message,
)
from event_relay.events.models import Event, PublicEvent

__all__ = [
    "Event",
    "PublicEvent",
    "parse_from_message",
    "to_public_view",
    "to_queue_message",
]
