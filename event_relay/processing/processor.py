"""Event processor contract.

The processor owns webhook dispatch. It receives the decoded event plus the
time the message was first sent, and returns what should happen to the
message.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from event_relay.exceptions import ProcessorLoadError
from event_relay.processing.outcome import Delete
from event_relay.secrets import SecretsManagerKeyProvider

if TYPE_CHECKING:
    from event_relay.config import Settings
    from event_relay.events.models import Event
    from event_relay.processing.outcome import DeliveryOutcome
    from event_relay.secrets import EncryptionKeyProvider

log = structlog.get_logger(__name__)


class EventProcessor(Protocol):
    def __call__(self, event: Event, sent_timestamp: int) -> DeliveryOutcome:
        """Process an event.

        Args:
            event: The decoded event
            sent_timestamp: Epoch milliseconds of the first send, for age checks

        Returns:
            Delete, Backoff or Requeue
        """
        ...


class ProcessorFactory(Protocol):
    def __call__(self, key_provider: EncryptionKeyProvider) -> EventProcessor: ...


def log_only_processor(event: Event, sent_timestamp: int) -> DeliveryOutcome:
    """Log the event and drop it. Useful against a local queue."""
    log.info(
        "Received event",
        event_type=event.type,
        event_id=event.id,
        event_source=event.source,
        sent_timestamp=sent_timestamp,
    )
    return Delete()


def _import_callable(path: str) -> Any:
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ProcessorLoadError(
            f"processor must look like 'package.module:function', got {path!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ProcessorLoadError(f"cannot import module {module_name!r}") from e
    try:
        target = getattr(module, attribute)
    except AttributeError as e:
        raise ProcessorLoadError(
            f"module {module_name!r} has no attribute {attribute!r}"
        ) from e
    if not callable(target):
        raise ProcessorLoadError(f"{path!r} is not callable")
    return target


def load_processor(path: str) -> EventProcessor:
    """Import a processor from ``package.module:attribute``."""
    return _import_callable(path)


def load_processor_factory(path: str) -> ProcessorFactory:
    """Import a processor factory from ``package.module:attribute``."""
    return _import_callable(path)


def build_processor(
    settings: Settings, key_provider: EncryptionKeyProvider | None = None
) -> EventProcessor:
    """Create the processor configured in settings.

    A configured factory gets the encryption key provider, by default the one
    backed by Secrets Manager. The key itself is fetched on first use.
    """
    if not settings.processor_factory:
        return load_processor(settings.processor)
    factory = load_processor_factory(settings.processor_factory)
    if key_provider is None:
        key_provider = SecretsManagerKeyProvider.from_settings(settings)
    log.info("Building processor", factory=settings.processor_factory)
    return factory(key_provider)
