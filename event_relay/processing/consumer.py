"""Message consumer: decode, process and settle queue messages.

Messages of a batch are handled one after another. Every message ends in
one of three states:

- deleted: processed for good, or never decodable
- requeued: a continuation message was sent and the original deleted
- deferred: hidden for a backoff delay and left in the queue

Deferred messages make the batch unsettled, see BatchResult.raise_for_unsettled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import structlog

from event_relay import metrics
from event_relay.events.codec import parse_from_message, to_queue_message
from event_relay.exceptions import MessageDecodeError, UnsettledMessagesError
from event_relay.processing.outcome import Action, Backoff, Delete, Requeue
from event_relay.queue.backoff import BackoffPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from event_relay.processing.processor import EventProcessor
    from event_relay.queue.models import OutboundMessage, QueueMessage

log = structlog.get_logger(__name__)


class MessagePublisher(Protocol):
    def send_message(self, message: OutboundMessage) -> str: ...


class MessageQueue(MessagePublisher, Protocol):
    """Queue primitives the consumer needs.

    Receipt handles are only valid for the queue that handed them out.
    """

    def delete_message(self, receipt_handle: str) -> None: ...

    def change_visibility(self, receipt_handle: str, timeout_seconds: int) -> None: ...


@dataclass(frozen=True)
class MessageResult:
    message_id: str
    action: Action
    error: str | None = None

    @property
    def settled(self) -> bool:
        return self.action != Action.BACKOFF


@dataclass
class BatchResult:
    results: list[MessageResult] = field(default_factory=list)

    def _ids(self, action: Action) -> list[str]:
        return [r.message_id for r in self.results if r.action == action]

    @property
    def deleted(self) -> list[str]:
        return self._ids(Action.DELETE)

    @property
    def requeued(self) -> list[str]:
        return self._ids(Action.REQUEUE)

    @property
    def deferred(self) -> list[str]:
        return self._ids(Action.BACKOFF)

    @property
    def unsettled(self) -> list[str]:
        return [r.message_id for r in self.results if not r.settled]

    def raise_for_unsettled(self) -> None:
        """Fail the invocation if any message has to stay in the queue.

        An SQS-triggered Lambda that returns normally gets its whole batch
        deleted. Raising keeps the deferred messages; the ones deleted
        explicitly are already gone. This is the deferral mechanism, not an
        incident, hence info level.
        """
        if unsettled := self.unsettled:
            log.info(
                "Throwing intentional error to prevent messages from being deleted",
                message_ids=unsettled,
            )
            raise UnsettledMessagesError(unsettled)


class MessageConsumer:
    def __init__(
        self,
        queue: MessageQueue,
        processor: EventProcessor,
        backoff_policy: BackoffPolicy | None = None,
        requeue_delay_seconds: int = 0,
        publisher: MessagePublisher | None = None,
    ) -> None:
        self.queue = queue
        # continuations may go to another queue than the one being consumed
        self.publisher = queue if publisher is None else publisher
        self.processor = processor
        self.backoff_policy = backoff_policy or BackoffPolicy()
        self.requeue_delay_seconds = requeue_delay_seconds

    def process_batch(self, messages: Iterable[QueueMessage]) -> BatchResult:
        batch = BatchResult()
        for message in messages:
            batch.results.append(self.process_message(message))
        log.info(
            "Processed batch",
            deleted=len(batch.deleted),
            requeued=len(batch.requeued),
            deferred=len(batch.deferred),
        )
        return batch

    def process_message(self, message: QueueMessage) -> MessageResult:
        metrics.messages_received.inc()
        with (
            structlog.contextvars.bound_contextvars(message_id=message.message_id),
            metrics.message_processing_duration.time(),
        ):
            try:
                result = self._process(message)
            except Exception as e:
                # unknown failures retry until the queue's retention runs out
                log.exception("An unexpected error occurred while processing message")
                metrics.processing_errors.labels(error_type=type(e).__name__).inc()
                self._defer(message)
                result = MessageResult(message.message_id, Action.BACKOFF, error=repr(e))
        metrics.message_outcomes.labels(action=result.action).inc()
        return result

    def _process(self, message: QueueMessage) -> MessageResult:
        try:
            event = parse_from_message(message)
        except MessageDecodeError as e:
            log.error("Deleting message that cannot be decoded", error=str(e))
            metrics.decode_failures.inc()
            self.queue.delete_message(message.receipt_handle)
            return MessageResult(message.message_id, Action.DELETE, error=str(e))

        with structlog.contextvars.bound_contextvars(
            event_type=event.type, event_id=event.id
        ):
            outcome = self.processor(event, message.sent_timestamp)
            match outcome:
                case Delete():
                    self.queue.delete_message(message.receipt_handle)
                    log.info("Deleted message")
                case Backoff():
                    self._defer(message)
                case Requeue(new_event=new_event, delay_seconds=delay_seconds):
                    delay = (
                        self.requeue_delay_seconds
                        if delay_seconds is None
                        else delay_seconds
                    )
                    new_message_id = self.publisher.send_message(
                        to_queue_message(new_event, delay_seconds=delay)
                    )
                    self.queue.delete_message(message.receipt_handle)
                    log.info(
                        "Requeued event",
                        new_message_id=new_message_id,
                        failed_webhook_ids=list(new_event.failed_webhook_ids),
                        delay_seconds=delay,
                    )
                case _:
                    raise TypeError(
                        f"processor returned {outcome!r}, expected Delete, Backoff or Requeue"
                    )
        return MessageResult(message.message_id, outcome.action)

    def _defer(self, message: QueueMessage) -> None:
        delay = self.backoff_policy.delay_for(message)
        try:
            self.queue.change_visibility(message.receipt_handle, delay)
        except Exception:
            # the message reappears once its current visibility timeout ends
            log.exception("Failed to defer message", delay_seconds=delay)
            return
        log.info("Deferred message", delay_seconds=delay)
