"""Locate the ``ResponseStatus`` carried by a deserialized response object."""

from __future__ import annotations

from collections.abc import Mapping
import dataclasses
from functools import lru_cache
import logging
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from service_client.schemas.error import HasResponseStatus
from service_client.schemas.error import ResponseStatus

logger = logging.getLogger(__name__)

RESPONSE_STATUS = "ResponseStatus"
# Serialized key spellings, the second matching the `response_status` capability attribute.
RESPONSE_STATUS_KEYS = (RESPONSE_STATUS, to_snake(RESPONSE_STATUS))


def has_response_status(value: Any) -> bool:
    """Return whether ``value`` exposes ``response_status`` directly."""
    return isinstance(value, HasResponseStatus)


def find_response_status(value: Any) -> ResponseStatus | None:
    """Return the structured status of a response object, if it carries one.

    Objects with a ``response_status`` attribute are trusted as-is. Anything
    else is searched for a member named ``ResponseStatus``: a mapping key, a
    dataclass field, or a pydantic field (by name or alias).
    """
    if value is None:
        return None

    if has_response_status(value):
        return _as_response_status(value.response_status)

    if isinstance(value, Mapping):
        return _as_response_status(value.get(RESPONSE_STATUS))

    member = _status_member(type(value))
    if member is None:
        return None
    return _as_response_status(getattr(value, member, None))


@lru_cache(maxsize=256)
def _status_member(owner: type) -> str | None:
    if issubclass(owner, BaseModel):
        for name, info in owner.model_fields.items():
            if RESPONSE_STATUS in (name, info.alias):
                return name
        return None

    if dataclasses.is_dataclass(owner):
        for item in dataclasses.fields(owner):
            if item.name == RESPONSE_STATUS:
                return item.name
    return None


def _as_response_status(value: Any) -> ResponseStatus | None:
    if value is None or isinstance(value, ResponseStatus):
        return value
    if isinstance(value, Mapping):
        try:
            return ResponseStatus.model_validate(dict(value))
        except ValidationError:
            logger.debug("Discarding %s that does not match the expected shape", RESPONSE_STATUS)
    return None
