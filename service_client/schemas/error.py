"""Structured error payloads reported by remote services."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from typing import Protocol
from typing import runtime_checkable

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic.alias_generators import to_pascal


def _null_as_empty_text(value: Any) -> Any:
    return "" if value is None else value


def _text_meta(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(key): "" if item is None else str(item) for key, item in value.items()}
    return value


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


class ResponseError(_WireModel):
    """Single field-level validation failure."""

    field_name: str = ""
    error_code: str = ""
    message: str = ""
    meta: dict[str, str] = Field(default_factory=dict)

    @field_validator("field_name", "error_code", "message", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return _null_as_empty_text(value)

    @field_validator("meta", mode="before")
    @classmethod
    def _meta_text(cls, value: Any) -> Any:
        return _text_meta(value)


class ResponseStatus(_WireModel):
    """Canonical server-reported failure description.

    ``stack_trace`` is only populated by services running in debug mode.
    ``errors`` and ``meta`` keep the order the server sent them in. Null
    strings read as empty and meta values are kept as text.
    """

    error_code: str = ""
    message: str = ""
    stack_trace: str | None = None
    errors: list[ResponseError] = Field(default_factory=list)
    meta: dict[str, str] = Field(default_factory=dict)

    @field_validator("error_code", "message", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return _null_as_empty_text(value)

    @field_validator("meta", mode="before")
    @classmethod
    def _meta_text(cls, value: Any) -> Any:
        return _text_meta(value)

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors(cls, value: Any) -> Any:
        return [] if value is None else value


@runtime_checkable
class HasResponseStatus(Protocol):
    """Response objects that expose their ``ResponseStatus`` directly."""

    response_status: ResponseStatus | None
