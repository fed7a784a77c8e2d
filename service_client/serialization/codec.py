"""JSON structured-text codec used when reading error payloads."""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import Any

from pydantic import BaseModel
from pydantic import TypeAdapter
from pydantic import ValidationError
from requests.structures import CaseInsensitiveDict

logger = logging.getLogger(__name__)

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)
_OBJECT_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


@lru_cache(maxsize=128)
def type_adapter(value_type: Any) -> TypeAdapter[Any]:
    """Return a shared pydantic adapter for ``value_type``."""
    return TypeAdapter(value_type)


def serialize_to_string(value: Any) -> str | None:
    """Serialize ``value`` to JSON text, or return ``None`` if it has no JSON form."""
    try:
        if isinstance(value, BaseModel):
            return value.model_dump_json(by_alias=True)
        return _ANY_ADAPTER.dump_json(value, by_alias=True).decode()
    except (TypeError, ValueError):
        logger.debug("Unable to serialize %s to JSON", type(value).__name__)
        return None


def deserialize_string_map(text: str | None) -> CaseInsensitiveDict[str] | None:
    """Parse a JSON object into a case-insensitive map of string values.

    Nested objects, arrays and non-string scalars are kept as their JSON text
    so callers can parse them again. ``null`` members are dropped. Returns
    ``None`` when ``text`` is not a JSON object; ``{}`` parses to an empty map.
    """
    if not text:
        return None

    try:
        raw = _OBJECT_ADAPTER.validate_json(text)
    except ValidationError:
        logger.debug("Payload is not a JSON object: %.80r", text)
        return None

    result: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for key, value in raw.items():
        if value is None:
            continue
        result[key] = value if isinstance(value, str) else _ANY_ADAPTER.dump_json(value).decode()
    return result
