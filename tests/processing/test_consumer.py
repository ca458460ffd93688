"""Tests for the message consumer and the batch acknowledgment guard."""

import json
from collections.abc import Callable
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, call, create_autospec

import pytest

from event_relay.events.codec import parse_from_message, to_queue_message
from event_relay.events.models import Event
from event_relay.exceptions import UnsettledMessagesError
from event_relay.processing.consumer import BatchResult, MessageConsumer, MessageResult
from event_relay.processing.outcome import Action, Backoff, Delete, Requeue
from event_relay.queue.backoff import BackoffPolicy
from event_relay.queue.models import OutboundMessage, QueueMessage
from event_relay.queue.sqs import SQSGateway

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient
else:
    SQSClient = object

MessageFactory = Callable[..., QueueMessage]


@pytest.fixture
def queue() -> MagicMock:
    queue = create_autospec(SQSGateway, instance=True)
    queue.send_message.return_value = "new-message-id"
    return queue


def consumer_for(
    queue: MagicMock,
    processor: Callable[[Event, int], object],
    **kwargs: object,
) -> MessageConsumer:
    return MessageConsumer(
        queue,
        processor,  # type: ignore[arg-type]
        backoff_policy=BackoffPolicy(base_delay=30),
        **kwargs,  # type: ignore[arg-type]
    )


def test_delete(queue: MagicMock, message_factory: MessageFactory) -> None:
    consumer = consumer_for(queue, lambda event, sent: Delete())

    result = consumer.process_message(message_factory())

    assert result == MessageResult("message-1", Action.DELETE)
    queue.delete_message.assert_called_once_with("handle-message-1")
    queue.change_visibility.assert_not_called()
    queue.send_message.assert_not_called()


def test_processor_receives_event_and_sent_timestamp(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    processor = MagicMock(return_value=Delete())
    message = message_factory()

    consumer_for(queue, processor).process_message(message)

    processor.assert_called_once_with(parse_from_message(message), message.sent_timestamp)


def test_backoff(queue: MagicMock, message_factory: MessageFactory) -> None:
    consumer = consumer_for(queue, lambda event, sent: Backoff())

    result = consumer.process_message(message_factory(approximate_receive_count=3))

    assert result.action == Action.BACKOFF
    assert not result.settled
    queue.change_visibility.assert_called_once_with("handle-message-1", 120)
    queue.delete_message.assert_not_called()


def test_requeue(queue: MagicMock, message_factory: MessageFactory) -> None:
    def processor(event: Event, sent_timestamp: int) -> Requeue:
        return Requeue(event.with_failed_webhook_ids(["webhookA"]))

    consumer = consumer_for(queue, processor, requeue_delay_seconds=45)

    result = consumer.process_message(message_factory())

    assert result == MessageResult("message-1", Action.REQUEUE)
    queue.send_message.assert_called_once()
    sent: OutboundMessage = queue.send_message.call_args.args[0]
    assert json.loads(sent.attributes["faileddeliveryids"]) == ["webhookA"]
    assert sent.attributes["id"] == "123"
    assert sent.delay_seconds == 45
    # the continuation exists before the original goes away
    assert queue.mock_calls == [
        call.send_message(sent),
        call.delete_message("handle-message-1"),
    ]


def test_requeue_explicit_delay(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    def processor(event: Event, sent_timestamp: int) -> Requeue:
        return Requeue(event, delay_seconds=0)

    consumer_for(queue, processor, requeue_delay_seconds=45).process_message(
        message_factory()
    )

    assert queue.send_message.call_args.args[0].delay_seconds == 0


def test_requeue_to_separate_publisher(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    publisher = create_autospec(SQSGateway, instance=True)
    publisher.send_message.return_value = "new-message-id"

    def processor(event: Event, sent_timestamp: int) -> Requeue:
        return Requeue(event.with_failed_webhook_ids(["webhookA"]))

    consumer = consumer_for(queue, processor, publisher=publisher)

    result = consumer.process_message(message_factory())

    assert result.action == Action.REQUEUE
    publisher.send_message.assert_called_once()
    publisher.delete_message.assert_not_called()
    # the receipt handle belongs to the consumed queue
    assert queue.mock_calls == [call.delete_message("handle-message-1")]


def test_decode_failure_deletes_without_processing(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    processor = MagicMock()

    result = consumer_for(queue, processor).process_message(
        message_factory(body="not json")
    )

    assert result.action == Action.DELETE
    assert result.error
    processor.assert_not_called()
    queue.delete_message.assert_called_once_with("handle-message-1")
    queue.change_visibility.assert_not_called()


def test_unexpected_error_defers(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    def processor(event: Event, sent_timestamp: int) -> Delete:
        raise RuntimeError("webhook dispatch exploded")

    result = consumer_for(queue, processor).process_message(message_factory())

    assert result.action == Action.BACKOFF
    assert "webhook dispatch exploded" in (result.error or "")
    queue.change_visibility.assert_called_once_with("handle-message-1", 30)
    queue.delete_message.assert_not_called()


def test_unknown_outcome_defers(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    result = consumer_for(queue, lambda event, sent: "DELETE").process_message(
        message_factory()
    )

    assert result.action == Action.BACKOFF
    queue.delete_message.assert_not_called()
    queue.change_visibility.assert_called_once()


def test_failed_delete_defers(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    queue.delete_message.side_effect = ConnectionError("sqs is down")

    result = consumer_for(queue, lambda event, sent: Delete()).process_message(
        message_factory()
    )

    assert result.action == Action.BACKOFF
    queue.change_visibility.assert_called_once()


def test_failed_deferral_keeps_message_unsettled(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    queue.change_visibility.side_effect = ConnectionError("sqs is down")

    result = consumer_for(queue, lambda event, sent: Backoff()).process_message(
        message_factory()
    )

    assert result.action == Action.BACKOFF
    queue.delete_message.assert_not_called()


def test_batch_guard(queue: MagicMock, message_factory: MessageFactory) -> None:
    outcomes = {"a": Delete(), "b": Backoff()}

    def processor(event: Event, sent_timestamp: int) -> Delete | Backoff:
        return outcomes[event.id]

    messages = [
        message_factory(
            message_id=event_id,
            attributes={**message_factory().attributes, "id": event_id},
        )
        for event_id in ("a", "b")
    ]

    batch = consumer_for(queue, processor).process_batch(messages)

    queue.delete_message.assert_called_once_with("handle-a")
    queue.change_visibility.assert_called_once_with("handle-b", 30)
    assert batch.deleted == ["a"]
    assert batch.deferred == ["b"]
    assert batch.unsettled == ["b"]
    with pytest.raises(UnsettledMessagesError) as exc_info:
        batch.raise_for_unsettled()
    assert exc_info.value.message_ids == ["b"]


def test_batch_continues_after_failure(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    processor = MagicMock(side_effect=[RuntimeError("boom"), Delete()])

    batch = consumer_for(queue, processor).process_batch([
        message_factory(message_id="a"),
        message_factory(message_id="b"),
    ])

    assert [r.action for r in batch.results] == [Action.BACKOFF, Action.DELETE]
    queue.delete_message.assert_called_once_with("handle-b")


def test_settled_batch_does_not_raise(
    queue: MagicMock, message_factory: MessageFactory
) -> None:
    batch = consumer_for(queue, lambda event, sent: Delete()).process_batch([
        message_factory(message_id="a"),
        message_factory(message_id="b", body="not json"),
    ])

    batch.raise_for_unsettled()
    assert batch.deleted == ["a", "b"]


def test_empty_batch() -> None:
    BatchResult().raise_for_unsettled()


def test_requeue_end_to_end(gateway: SQSGateway, sqs_client: SQSClient) -> None:
    """Partial delivery replaces the message with one for the remaining webhooks."""
    original = Event.create("plane.created", "/gutenberg/tests", {"plane": "boeing"})
    gateway.send_message(to_queue_message(original))

    def processor(event: Event, sent_timestamp: int) -> Requeue:
        return Requeue(event.with_failed_webhook_ids(["webhookA"]))

    consumer = MessageConsumer(gateway, processor, requeue_delay_seconds=0)
    batch = consumer.process_batch(gateway.receive_messages(wait_time_seconds=0))
    batch.raise_for_unsettled()

    [message] = gateway.receive_messages(wait_time_seconds=0)
    requeued = parse_from_message(message)
    assert requeued.failed_webhook_ids == ("webhookA",)
    assert requeued.id == original.id
    assert requeued.data == {"plane": "boeing"}
    # only the continuation is left
    assert gateway.receive_messages(wait_time_seconds=0) == []
