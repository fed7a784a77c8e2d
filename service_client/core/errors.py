"""Client error types and the failed-call error envelope."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
import logging
from typing import Any

from requests.structures import CaseInsensitiveDict

from service_client.schemas.error import ResponseError
from service_client.schemas.error import ResponseStatus
from service_client.serialization.codec import deserialize_string_map
from service_client.serialization.codec import serialize_to_string
from service_client.serialization.shape import RESPONSE_STATUS
from service_client.serialization.shape import RESPONSE_STATUS_KEYS
from service_client.serialization.shape import find_response_status

logger = logging.getLogger(__name__)


class ServiceClientError(RuntimeError):
    """Base error raised by service client operations."""


class ServiceRequestError(ServiceClientError):
    """Raised when requests fail after the retry budget is exhausted."""


class ServiceResponseError(ServiceClientError):
    """Raised when a successful response carries a malformed payload."""


@dataclass(frozen=True)
class _ParsedStatus:
    error_code: str = ""
    error_message: str = ""
    server_stack_trace: str = ""


class WebServiceException(ServiceClientError):
    """Error envelope for one failed remote call.

    Transport metadata is set when the envelope is built; ``response_dto`` may
    be attached later once the body has been deserialized into a typed model.
    ``error_code``, ``error_message`` and ``server_stack_trace`` are read from
    the ``ResponseStatus`` payload on first access and never change after
    that. None of the accessors raise.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status_code: int = 0,
        status_description: str = "",
        response_headers: Mapping[str, str] | None = None,
        response_dto: Any | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message or status_description)
        self.message = message or status_description
        self.status_code = status_code
        self.status_description = status_description or ""
        self.response_headers: CaseInsensitiveDict[str] = CaseInsensitiveDict(response_headers or {})
        self.response_dto = response_dto
        self.response_body = response_body

    @property
    def error_code(self) -> str:
        return self._parsed_status.error_code

    @property
    def error_message(self) -> str:
        return self._parsed_status.error_message

    @property
    def server_stack_trace(self) -> str:
        return self._parsed_status.server_stack_trace

    @property
    def response_status(self) -> ResponseStatus | None:
        """Structured status of ``response_dto``, resolved on every access."""
        return find_response_status(self.response_dto)

    def to_response_status(self) -> ResponseStatus | None:
        return self.response_status

    def get_field_errors(self) -> list[ResponseError]:
        """Return field-level errors, or an empty list when there are none."""
        status = self.response_status
        if status is None:
            return []
        return status.errors

    def is_any_400(self) -> bool:
        return 400 <= self.status_code < 500

    def is_any_500(self) -> bool:
        return 500 <= self.status_code < 600

    def render(self) -> str:
        """Return a multi-line report of the failure."""
        lines = [
            f"{self.status_code} {self.status_description}",
            f"Code: {self.error_code}, Message: {self.error_message}",
        ]

        status = self.response_status
        if status is not None:
            if status.errors:
                lines.append("Field Errors:")
                for error in status.errors:
                    lines.append(f"  [{error.field_name}] {error.error_code}:{error.message}")
                    if error.meta:
                        lines.append("  Field Meta:")
                        lines.extend(f"    {key}:{value}" for key, value in error.meta.items())

            if status.meta:
                lines.append("Meta:")
                lines.extend(f"  {key}:{value}" for key, value in status.meta.items())

        if self.server_stack_trace:
            lines.append("Server StackTrace:")
            lines.append(f" {self.server_stack_trace}")

        return "".join(f"{line}\n" for line in lines)

    def __str__(self) -> str:
        return self.render()

    @cached_property
    def _parsed_status(self) -> _ParsedStatus:
        blob = self._status_blob_from_dto()
        if blob is None:
            blob = _status_blob(self.response_body)
        if blob is None:
            return _ParsedStatus(error_code=self.status_description)

        status_map = deserialize_string_map(blob)
        if not status_map:
            # A present but unreadable status does not fall back to the status description.
            logger.debug("Malformed %s in %s response", RESPONSE_STATUS, self.status_code)
            return _ParsedStatus()

        return _ParsedStatus(
            error_code=status_map.get("ErrorCode", ""),
            error_message=status_map.get("Message", ""),
            server_stack_trace=status_map.get("StackTrace", ""),
        )

    def _status_blob_from_dto(self) -> str | None:
        if self.response_dto is None:
            return None
        return _status_blob(serialize_to_string(self.response_dto))


def _status_blob(text: str | None) -> str | None:
    payload = deserialize_string_map(text)
    if payload is None:
        return None
    for key in RESPONSE_STATUS_KEYS:
        blob = payload.get(key)
        if blob is not None:
            return blob
    return None
