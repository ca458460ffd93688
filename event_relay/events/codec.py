"""Translation between queue messages and events.

Every envelope field except ``data`` travels as a string message attribute,
``data`` travels as the JSON message body. Attribute names are lower-case
per the CloudEvents naming rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from event_relay.events.models import Event, PublicEvent
from event_relay.exceptions import MessageDecodeError
from event_relay.json_utils import json_dumps, json_loads
from event_relay.queue.models import OutboundMessage

if TYPE_CHECKING:
    from event_relay.queue.models import QueueMessage

SPEC_VERSION_ATTRIBUTE = "specversion"
TYPE_ATTRIBUTE = "type"
SOURCE_ATTRIBUTE = "source"
ID_ATTRIBUTE = "id"
TIME_ATTRIBUTE = "time"
USER_ID_ATTRIBUTE = "userid"
DATA_CONTENT_TYPE_ATTRIBUTE = "datacontenttype"
FAILED_WEBHOOK_IDS_ATTRIBUTE = "faileddeliveryids"

# older producers, checked in order after the canonical name
LEGACY_FAILED_WEBHOOK_IDS_ATTRIBUTES = ("failedwebhookids", "deliveredwebhookids")

REQUIRED_ATTRIBUTES = (
    SPEC_VERSION_ATTRIBUTE,
    TYPE_ATTRIBUTE,
    SOURCE_ATTRIBUTE,
    ID_ATTRIBUTE,
    TIME_ATTRIBUTE,
    DATA_CONTENT_TYPE_ATTRIBUTE,
)


def _failed_webhook_ids(attributes: dict[str, str]) -> list[str]:
    for name in (FAILED_WEBHOOK_IDS_ATTRIBUTE, *LEGACY_FAILED_WEBHOOK_IDS_ATTRIBUTES):
        if name in attributes:
            raw = attributes[name]
            break
    else:
        return []

    webhook_ids: Any = json_loads(raw)
    if not isinstance(webhook_ids, list) or not all(
        isinstance(webhook_id, str) for webhook_id in webhook_ids
    ):
        raise ValueError(f"{name} must be a JSON array of strings, got {raw!r}")
    return webhook_ids


def parse_from_message(message: QueueMessage) -> Event:
    """Decode a queue message into an event.

    Raises:
        MessageDecodeError: The message is malformed. This is permanent, the
            message will never decode no matter how often it is delivered.
    """
    attributes = {name.lower(): value for name, value in message.attributes.items()}

    missing = [name for name in REQUIRED_ATTRIBUTES if not attributes.get(name)]
    if missing:
        raise MessageDecodeError(
            f"Message {message.message_id} is missing attributes: {', '.join(missing)}",
            message_id=message.message_id,
        )

    try:
        return Event(
            spec_version=attributes[SPEC_VERSION_ATTRIBUTE],
            type=attributes[TYPE_ATTRIBUTE],
            source=attributes[SOURCE_ATTRIBUTE],
            id=attributes[ID_ATTRIBUTE],
            time=attributes[TIME_ATTRIBUTE],
            user_id=attributes.get(USER_ID_ATTRIBUTE) or None,
            data_content_type=attributes[DATA_CONTENT_TYPE_ATTRIBUTE],
            failed_webhook_ids=_failed_webhook_ids(attributes),
            data=json_loads(message.body),
        )
    except ValueError as e:
        # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
        raise MessageDecodeError(
            f"Error parsing message {message.message_id}: {e}",
            message_id=message.message_id,
        ) from e


def format_time(event: Event) -> str:
    return event.time.isoformat().replace("+00:00", "Z")


def to_queue_message(event: Event, delay_seconds: int = 0) -> OutboundMessage:
    """Encode an event into a message ready to be sent to the queue."""
    attributes = {
        SPEC_VERSION_ATTRIBUTE: event.spec_version,
        TYPE_ATTRIBUTE: event.type,
        SOURCE_ATTRIBUTE: event.source,
        ID_ATTRIBUTE: event.id,
        TIME_ATTRIBUTE: format_time(event),
        DATA_CONTENT_TYPE_ATTRIBUTE: event.data_content_type,
        FAILED_WEBHOOK_IDS_ATTRIBUTE: json_dumps(list(event.failed_webhook_ids)),
    }
    # SQS rejects empty attribute values
    if event.user_id:
        attributes[USER_ID_ATTRIBUTE] = event.user_id
    return OutboundMessage(
        body=json_dumps(event.data),
        attributes=attributes,
        delay_seconds=delay_seconds,
    )


def to_public_view(event: Event | PublicEvent) -> PublicEvent:
    """Strip routing and delivery state before showing an event to subscribers."""
    return PublicEvent(id=event.id, type=event.type, time=event.time, data=event.data)
