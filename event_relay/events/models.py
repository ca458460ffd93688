from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

SPEC_VERSION = "1.0"
JSON_CONTENT_TYPE = "application/json"


def _normalize_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Event(BaseModel, frozen=True):
    """An event that happened in one of our services.

    Multiple services may emit events and multiple services may subscribe to
    them. The envelope follows the CloudEvents attribute set so that generic
    tooling keeps working; the wire names live in the codec.
    """

    spec_version: Literal["1.0"] = Field(
        default=SPEC_VERSION,
        description="Version of the CloudEvents specification the event uses",
    )
    type: str = Field(
        ...,
        min_length=1,
        description="Dot-separated event type (e.g., 'billing.invoice.created')",
    )
    source: str = Field(
        ...,
        min_length=1,
        description="URI-reference of the emitting service (e.g., '/billing/api')",
    )
    id: str = Field(
        ...,
        min_length=1,
        description="Event id; unique in combination with source",
    )
    time: datetime = Field(
        ...,
        description="UTC timestamp of when the event was generated",
    )
    user_id: str | None = Field(
        default=None,
        description="Id of the user that caused the event, if any",
    )
    data_content_type: Literal["application/json"] = Field(
        default=JSON_CONTENT_TYPE,
        description="MIME type of data",
    )
    data: Any = Field(
        default=None,
        description="Event payload; its shape depends entirely on the event type",
    )
    failed_webhook_ids: tuple[str, ...] = Field(
        default=(),
        description="Webhooks that still have to receive this event after a partial delivery",
    )

    @field_validator("time")
    @classmethod
    def _time_is_utc(cls, value: datetime) -> datetime:
        return _normalize_time(value)

    @field_validator("failed_webhook_ids")
    @classmethod
    def _unique_webhook_ids(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @classmethod
    def create(
        cls,
        type: str,  # noqa: A002
        source: str,
        data: Any,
        *,
        user_id: str | None = None,
    ) -> Event:
        """Build a new event with a fresh id and the current time."""
        return cls(
            type=type,
            source=source,
            id=str(uuid4()),
            time=datetime.now(tz=UTC),
            user_id=user_id,
            data=data,
        )

    def with_failed_webhook_ids(self, webhook_ids: Iterable[str]) -> Event:
        """Return a copy that carries the given delivery state."""
        return self.model_copy(
            update={"failed_webhook_ids": tuple(dict.fromkeys(webhook_ids))}
        )


class PublicEvent(BaseModel, frozen=True):
    """The part of an event that may be shown to webhook subscribers."""

    id: str
    type: str
    time: datetime
    data: Any = None
