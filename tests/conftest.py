"""Global test configuration for event_relay tests."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import boto3
import pytest
from moto import mock_aws

from event_relay.queue.models import OutboundMessage, QueueMessage
from event_relay.queue.sqs import SQSGateway

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient
else:
    SQSClient = object

SENT_TIMESTAMP = int(datetime(2020, 1, 1, tzinfo=UTC).timestamp() * 1000)


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure no test ever talks to a real AWS account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def sqs_client() -> Generator[SQSClient, None, None]:
    with mock_aws():
        yield boto3.client("sqs", region_name="us-east-1")


@pytest.fixture
def queue_url(sqs_client: SQSClient) -> str:
    return sqs_client.create_queue(QueueName="events")["QueueUrl"]


@pytest.fixture
def gateway(sqs_client: SQSClient, queue_url: str) -> SQSGateway:
    return SQSGateway(sqs_client, queue_url)


@pytest.fixture
def event_attributes() -> dict[str, str]:
    return {
        "specversion": "1.0",
        "type": "plane.created",
        "source": "/gutenberg/tests",
        "id": "123",
        "time": "2020-01-01T00:00:00.000Z",
        "userid": "user-123",
        "datacontenttype": "application/json",
    }


@pytest.fixture
def message_factory(
    event_attributes: dict[str, str],
) -> Callable[..., QueueMessage]:
    def _message(
        message_id: str = "message-1",
        body: str = '{"plane": "boeing"}',
        **kwargs: Any,
    ) -> QueueMessage:
        return QueueMessage(
            message_id=message_id,
            receipt_handle=f"handle-{message_id}",
            body=body,
            attributes=kwargs.pop("attributes", event_attributes),
            sent_timestamp=kwargs.pop("sent_timestamp", SENT_TIMESTAMP),
            approximate_receive_count=kwargs.pop("approximate_receive_count", 1),
            **kwargs,
        )

    return _message


@pytest.fixture
def deliver() -> Callable[[OutboundMessage], QueueMessage]:
    """What the queue would hand out for a sent message."""

    def _deliver(message: OutboundMessage) -> QueueMessage:
        return QueueMessage(
            message_id="delivered",
            receipt_handle="handle-delivered",
            body=message.body,
            attributes=message.attributes,
            sent_timestamp=SENT_TIMESTAMP,
        )

    return _deliver
