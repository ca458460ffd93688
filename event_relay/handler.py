"""SQS-triggered Lambda entrypoint."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from event_relay.config import Settings, settings
from event_relay.exceptions import UnsettledMessagesError
from event_relay.logger import setup_logging
from event_relay.processing.consumer import (
    MessageConsumer,
    MessagePublisher,
    MessageQueue,
)
from event_relay.processing.processor import EventProcessor, build_processor
from event_relay.queue.backoff import BackoffPolicy
from event_relay.queue.models import QueueMessage
from event_relay.queue.sqs import SQSGateway

type LambdaHandler = Callable[[Mapping[str, Any], Any], None]


def init_sentry(settings: Settings) -> bool:
    """Enable Sentry when a DSN is configured.

    The intentional batch failure is how deferred messages stay in the queue,
    it must never page anyone.
    """
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(
        settings.sentry_dsn,
        release=f"{settings.app_name}@{settings.version}",
        ignore_errors=[UnsettledMessagesError],
        integrations=[LoggingIntegration(event_level=logging.ERROR)],
    )
    return True


def _source_queue_url(settings: Settings, records: list[Mapping[str, Any]]) -> str:
    """Queue the batch was received from.

    Records of one invocation come from the same event source mapping.
    """
    for record in records:
        if arn := record.get("eventSourceARN"):
            return SQSGateway.queue_url_from_arn(arn, settings.sqs_endpoint_url)
    return settings.event_queue_url


def create_handler(
    processor: EventProcessor,
    *,
    settings: Settings = settings,
    queue: MessageQueue | None = None,
    publisher: MessagePublisher | None = None,
) -> LambdaHandler:
    """Build the Lambda handler.

    Messages are deleted and deferred on the queue that delivered them,
    continuations are sent to settings.event_queue_url (or back to the
    source queue when unset). SQS gateways are created on first use and
    reused for the lifetime of the process.
    """
    backoff_policy = BackoffPolicy.from_settings(settings)
    gateways: dict[str, SQSGateway] = {}

    def _gateway(queue_url: str) -> SQSGateway:
        if queue_url not in gateways:
            if gateways:
                shared = next(iter(gateways.values()))
                gateways[queue_url] = shared.for_queue(queue_url)
            else:
                gateways[queue_url] = SQSGateway.from_settings(
                    settings, queue_url=queue_url
                )
        return gateways[queue_url]

    def handle_sqs_messages(event: Mapping[str, Any], context: Any) -> None:
        records = list(event.get("Records", []))
        if not records:
            return
        source = queue
        if source is None:
            source = _gateway(_source_queue_url(settings, records))
        destination = publisher
        if destination is None:
            destination = (
                _gateway(settings.event_queue_url)
                if settings.event_queue_url
                else source
            )
        consumer = MessageConsumer(
            source,
            processor,
            backoff_policy=backoff_policy,
            requeue_delay_seconds=settings.requeue_delay_seconds,
            publisher=destination,
        )
        messages = [QueueMessage.from_lambda_record(record) for record in records]
        consumer.process_batch(messages).raise_for_unsettled()

    return handle_sqs_messages


setup_logging()
init_sentry(settings)
handler = create_handler(build_processor(settings))
