"""Custom exceptions for event-relay."""

# Sentry filters on this exact text, keep it stable
INTENTIONAL_FAILURE_MESSAGE = "Intentional error to prevent automatic SQS deletions."


class EventRelayError(Exception):
    """Base exception for event-relay errors."""


class MessageDecodeError(EventRelayError):
    """Queue message can never be turned into an event.

    Retrying cannot fix a malformed message, so the consumer deletes it
    instead of deferring it.
    """

    def __init__(self, message: str, message_id: str | None = None) -> None:
        self.message_id = message_id
        super().__init__(message)


class QueueGatewayInitError(EventRelayError):
    """Queue gateway is missing required configuration."""


class ProcessorLoadError(EventRelayError):
    """Event processor import path cannot be resolved."""


class UnsettledMessagesError(EventRelayError):
    """Raised at the end of a batch when some messages were deferred.

    SQS-triggered Lambda deletes every message of a batch whose invocation
    succeeds. Failing the invocation keeps the deferred messages in the queue;
    messages deleted explicitly during the batch stay deleted.
    """

    def __init__(self, message_ids: list[str]) -> None:
        self.message_ids = message_ids
        super().__init__(INTENTIONAL_FAILURE_MESSAGE)
