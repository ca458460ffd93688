from collections.abc import Callable

import click
import structlog
from prometheus_client import start_http_server

from event_relay.config import settings
from event_relay.events.codec import to_queue_message
from event_relay.events.models import Event
from event_relay.json_utils import json_dumps, json_loads
from event_relay.exceptions import EventRelayError
from event_relay.logger import setup_logging
from event_relay.metrics import registry
from event_relay.processing.consumer import MessageConsumer
from event_relay.processing.processor import build_processor
from event_relay.queue.backoff import BackoffPolicy
from event_relay.queue.sqs import SQSGateway

log = structlog.get_logger(__name__)


def queue_options(function: Callable) -> Callable:
    function = click.option(
        "--queue-url",
        help="SQS queue url. Defaults to EVENT_QUEUE.",
        default=lambda: settings.event_queue_url or None,
    )(function)
    function = click.option(
        "--endpoint-url",
        help="SQS endpoint override, e.g. http://localhost:9324 for ElasticMQ.",
        default=lambda: settings.sqs_endpoint_url,
    )(function)
    return function


def log_level(function: Callable) -> Callable:
    function = click.option(
        "--log-level",
        help="log-level of the command. Defaults to INFO.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    )(function)
    return function


def _gateway(queue_url: str | None, endpoint_url: str | None) -> SQSGateway:
    if not queue_url:
        raise click.UsageError("--queue-url or EVENT_QUEUE is required")
    cli_settings = settings.model_copy(update={"sqs_endpoint_url": endpoint_url})
    return SQSGateway.from_settings(cli_settings, queue_url=queue_url)


@click.group()
def cli() -> None:
    """Deliver domain events from the event queue."""


@cli.command()
@queue_options
@log_level
@click.option(
    "--processor",
    "processor_path",
    help="Import path of the event processor ('package.module:function'). "
    "Ignored when EVENT_RELAY_PROCESSOR_FACTORY is set.",
    default=lambda: settings.processor,
)
@click.option(
    "--requeue-url",
    help="Queue for continuation messages. Defaults to the polled queue.",
    default=None,
)
@click.option(
    "--wait-time",
    type=click.IntRange(0, 20),
    default=20,
    show_default=True,
    help="Long-poll wait time in seconds.",
)
@click.option(
    "--exit-when-empty/--no-exit-when-empty",
    default=False,
    help="Stop once a receive call returns no messages.",
)
@click.option(
    "--metrics-port",
    type=int,
    default=None,
    help="Expose prometheus metrics on this port.",
)
def poll(
    queue_url: str | None,
    endpoint_url: str | None,
    log_level: str | None,
    processor_path: str,
    requeue_url: str | None,
    wait_time: int,
    exit_when_empty: bool,  # noqa: FBT001
    metrics_port: int | None,
) -> None:
    """Consume the queue in a loop, like the Lambda trigger does."""
    setup_logging(log_level)
    try:
        processor = build_processor(
            settings.model_copy(update={"processor": processor_path})
        )
    except EventRelayError as e:
        raise click.BadParameter(str(e), param_hint="--processor") from e

    if metrics_port:
        start_http_server(port=metrics_port, registry=registry)

    with _gateway(queue_url, endpoint_url) as gateway:
        consumer = MessageConsumer(
            gateway,
            processor,
            backoff_policy=BackoffPolicy.from_settings(settings),
            requeue_delay_seconds=settings.requeue_delay_seconds,
            publisher=gateway.for_queue(requeue_url) if requeue_url else None,
        )
        while True:
            messages = gateway.receive_messages(wait_time_seconds=wait_time)
            log.info("Received messages", count=len(messages))
            if not messages:
                if exit_when_empty:
                    break
                continue
            # receive_message never deletes on its own, nothing to suppress
            batch = consumer.process_batch(messages)
            if batch.unsettled:
                log.info("Messages left in the queue", message_ids=batch.unsettled)


@cli.command()
@queue_options
@click.option("--type", "event_type", required=True, help="Event type.")
@click.option("--source", required=True, help="Emitting service URI-reference.")
@click.option("--data", default="{}", show_default=True, help="JSON payload.")
@click.option("--user-id", default=None, help="Originating user id.")
@click.option(
    "--failed-webhook-id",
    "failed_webhook_ids",
    multiple=True,
    help="Webhook still to be called; may be repeated.",
)
@click.option(
    "--delay",
    type=click.IntRange(0, 900),
    default=0,
    show_default=True,
    help="Delivery delay in seconds.",
)
def publish(
    queue_url: str | None,
    endpoint_url: str | None,
    event_type: str,
    source: str,
    data: str,
    user_id: str | None,
    failed_webhook_ids: tuple[str, ...],
    delay: int,
) -> None:
    """Publish a single event."""
    try:
        payload = json_loads(data)
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--data") from e

    event = Event.create(event_type, source, payload, user_id=user_id)
    event = event.with_failed_webhook_ids(failed_webhook_ids)
    with _gateway(queue_url, endpoint_url) as gateway:
        message_id = gateway.send_message(to_queue_message(event, delay_seconds=delay))
    click.echo(json_dumps({"event_id": event.id, "message_id": message_id}))
