from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

import boto3
import structlog

from event_relay.exceptions import QueueGatewayInitError
from event_relay.queue.models import QueueMessage

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient
    from mypy_boto3_sqs.type_defs import MessageAttributeValueTypeDef

    from event_relay.config import Settings
    from event_relay.queue.models import OutboundMessage

log = structlog.get_logger(__name__)


class SQSGateway:
    """Wrapper around SQS AWS SDK"""

    def __init__(self, client: SQSClient, queue_url: str) -> None:
        if not queue_url:
            raise QueueGatewayInitError(
                "an SQS queue url is required, set EVENT_QUEUE or "
                "EVENT_RELAY_EVENT_QUEUE_URL"
            )
        self.sqs = client
        self.queue_url = queue_url

    @classmethod
    def from_settings(cls, settings: Settings, queue_url: str | None = None) -> Self:
        client = boto3.client(
            "sqs",
            region_name=settings.aws_region,
            endpoint_url=settings.sqs_endpoint_url,
        )
        return cls(client, queue_url or settings.event_queue_url)

    def for_queue(self, queue_url: str) -> Self:
        """Gateway for another queue, sharing this gateway's client."""
        return type(self)(self.sqs, queue_url)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *ext: Any) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        self.sqs.close()

    @staticmethod
    def queue_url_from_arn(arn: str, endpoint_url: str | None = None) -> str:
        """Turn ``arn:aws:sqs:<region>:<account>:<name>`` into a queue url."""
        parts = arn.split(":")
        if len(parts) != 6 or parts[2] != "sqs":  # noqa: PLR2004
            raise QueueGatewayInitError(f"not an SQS queue arn: {arn}")
        _, _, _, region, account, name = parts
        base_url = (endpoint_url or f"https://sqs.{region}.amazonaws.com").rstrip("/")
        return f"{base_url}/{account}/{name}"

    def send_message(self, message: OutboundMessage) -> str:
        attributes: dict[str, MessageAttributeValueTypeDef] = {
            name: {"DataType": "String", "StringValue": value}
            for name, value in message.attributes.items()
        }
        response = self.sqs.send_message(
            QueueUrl=self.queue_url,
            MessageBody=message.body,
            MessageAttributes=attributes,
            DelaySeconds=message.delay_seconds,
        )
        log.debug(
            "Sent message",
            queue_url=self.queue_url,
            message_id=response["MessageId"],
            delay_seconds=message.delay_seconds,
        )
        return response["MessageId"]

    def receive_messages(
        self,
        max_messages: int = 10,
        visibility_timeout: int = 30,
        wait_time_seconds: int = 20,
    ) -> list[QueueMessage]:
        messages = self.sqs.receive_message(
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=max_messages,
            VisibilityTimeout=visibility_timeout,
            WaitTimeSeconds=wait_time_seconds,
            AttributeNames=["SentTimestamp", "ApproximateReceiveCount"],
            MessageAttributeNames=["All"],
        ).get("Messages", [])
        return [QueueMessage.from_sqs_message(m) for m in messages]

    def delete_message(self, receipt_handle: str) -> None:
        self.sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)

    def change_visibility(self, receipt_handle: str, timeout_seconds: int) -> None:
        """Hide a received message for the given number of seconds."""
        self.sqs.change_message_visibility(
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=timeout_seconds,
        )
