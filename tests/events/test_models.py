from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from event_relay.events.models import Event


def _event(**kwargs: object) -> Event:
    return Event.model_validate({
        "type": "plane.created",
        "source": "/gutenberg/tests",
        "id": "123",
        "time": datetime(2020, 1, 1, tzinfo=UTC),
        **kwargs,
    })


def test_event_defaults() -> None:
    event = _event()
    assert event.spec_version == "1.0"
    assert event.data_content_type == "application/json"
    assert event.user_id is None
    assert event.data is None
    assert event.failed_webhook_ids == ()


def test_event_naive_time_is_utc() -> None:
    event = _event(time=datetime(2020, 1, 1))  # noqa: DTZ001
    assert event.time == datetime(2020, 1, 1, tzinfo=UTC)


def test_event_failed_webhook_ids_keep_order_without_duplicates() -> None:
    event = _event(failed_webhook_ids=["b", "a", "b", "c", "a"])
    assert event.failed_webhook_ids == ("b", "a", "c")


@pytest.mark.parametrize("field", ["type", "source", "id"])
def test_event_required_fields_not_empty(field: str) -> None:
    with pytest.raises(ValidationError):
        _event(**{field: ""})


def test_event_is_frozen() -> None:
    event = _event()
    with pytest.raises(ValidationError):
        event.id = "456"  # type: ignore[misc]


def test_event_create() -> None:
    event = Event.create("plane.landed", "/gutenberg/tests", {"plane": "boeing"})
    other = Event.create("plane.landed", "/gutenberg/tests", {"plane": "boeing"})

    assert event.id != other.id
    assert event.time.tzinfo == UTC
    assert event.data == {"plane": "boeing"}
    assert event.user_id is None


def test_with_failed_webhook_ids() -> None:
    event = _event(failed_webhook_ids=["webhook1", "webhook2"])

    updated = event.with_failed_webhook_ids(["webhook2", "webhook2"])

    assert updated.failed_webhook_ids == ("webhook2",)
    assert updated.id == event.id
    assert event.failed_webhook_ids == ("webhook1", "webhook2")
