import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

JSON_COMPACT_SEPARATORS = (",", ":")


def json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    if isinstance(obj, datetime | date):
        return obj.isoformat()

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, set | frozenset | tuple):
        return list(obj)

    raise TypeError(
        f"Object of type '{obj.__class__.__name__}' is not JSON serializable"
    )


def json_dumps(data: Any, *, compact: bool = True) -> str:
    """Serialize data for the wire.

    Key order is preserved: message bodies are opaque payloads owned by the
    producer.

    Args:
        data: The data to serialize.
        compact: If True, use compact separators (no spaces).

    Returns:
        JSON formatted string.
    """
    separators = JSON_COMPACT_SEPARATORS if compact else None
    return json.dumps(data, separators=separators, default=json_default)


def json_loads(data: str | bytes) -> Any:
    """Deserialize JSON string to Python object.

    Raises:
        json.JSONDecodeError: If data is not valid JSON.
    """
    return json.loads(data)
