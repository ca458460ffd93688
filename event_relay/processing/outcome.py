from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from event_relay.events.models import Event


class Action(StrEnum):
    """What the consumer did with a message."""

    DELETE = "DELETE"
    BACKOFF = "BACKOFF"
    REQUEUE = "REQUEUE"


@dataclass(frozen=True)
class Delete:
    """Processing is over, successfully or for good. Remove the message."""

    action = Action.DELETE


@dataclass(frozen=True)
class Backoff:
    """Transient failure. Hide the message for a while, do not remove it."""

    action = Action.BACKOFF


@dataclass(frozen=True)
class Requeue:
    """Some webhooks got the event, others did not.

    The original message is replaced by one for ``new_event``, whose
    ``failed_webhook_ids`` lists the webhooks still to call.
    """

    new_event: Event
    delay_seconds: int | None = None

    action = Action.REQUEUE


type DeliveryOutcome = Delete | Backoff | Requeue
