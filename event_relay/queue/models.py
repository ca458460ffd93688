from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from event_relay.config import SQS_MAX_DELAY_SECONDS


def _string_attributes(
    attributes: Mapping[str, Mapping[str, Any]] | None,
    *,
    value_key: str,
    type_key: str,
) -> dict[str, str]:
    """Flatten SQS message attributes, dropping binary ones."""
    flat: dict[str, str] = {}
    for name, attribute in (attributes or {}).items():
        if str(attribute.get(type_key, "String")).startswith("Binary"):
            continue
        value = attribute.get(value_key)
        if value is not None:
            flat[name] = str(value)
    return flat


class QueueMessage(BaseModel, frozen=True):
    """A message as delivered by the queue.

    Each delivery carries its own receipt handle; a redelivered message gets
    a fresh one.
    """

    message_id: str
    receipt_handle: str
    body: str
    attributes: dict[str, str] = Field(default_factory=dict)
    sent_timestamp: int = Field(..., description="Epoch milliseconds")
    approximate_receive_count: int | None = Field(
        default=None,
        description="How often the queue handed out this message, including this delivery",
    )

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(self.sent_timestamp / 1000, tz=UTC)

    def age_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(tz=UTC)
        return max(0.0, (now - self.sent_at).total_seconds())

    @classmethod
    def from_lambda_record(cls, record: Mapping[str, Any]) -> QueueMessage:
        """Build from an entry of an SQS-triggered Lambda event's ``Records``."""
        system_attributes = record.get("attributes") or {}
        receive_count = system_attributes.get("ApproximateReceiveCount")
        return cls(
            message_id=record["messageId"],
            receipt_handle=record["receiptHandle"],
            body=record["body"],
            attributes=_string_attributes(
                record.get("messageAttributes"),
                value_key="stringValue",
                type_key="dataType",
            ),
            sent_timestamp=int(system_attributes["SentTimestamp"]),
            approximate_receive_count=int(receive_count) if receive_count else None,
        )

    @classmethod
    def from_sqs_message(cls, message: Mapping[str, Any]) -> QueueMessage:
        """Build from an entry of an SQS ReceiveMessage response."""
        system_attributes = message.get("Attributes") or {}
        receive_count = system_attributes.get("ApproximateReceiveCount")
        return cls(
            message_id=message["MessageId"],
            receipt_handle=message["ReceiptHandle"],
            body=message["Body"],
            attributes=_string_attributes(
                message.get("MessageAttributes"),
                value_key="StringValue",
                type_key="DataType",
            ),
            sent_timestamp=int(system_attributes["SentTimestamp"]),
            approximate_receive_count=int(receive_count) if receive_count else None,
        )


class OutboundMessage(BaseModel, frozen=True):
    """A message ready to be sent to the queue."""

    body: str
    attributes: dict[str, str] = Field(default_factory=dict)
    delay_seconds: int = Field(default=0, ge=0, le=SQS_MAX_DELAY_SECONDS)
