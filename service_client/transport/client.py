"""JSON service client that raises error envelopes for failed calls."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
import logging
import random
import time
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError
import requests

from service_client.core.config import ServiceClientSettings
from service_client.core.errors import ServiceRequestError
from service_client.core.errors import ServiceResponseError
from service_client.core.errors import WebServiceException
from service_client.serialization.codec import type_adapter

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def web_service_exception_from_response(
    response: Any,
    response_type: Any | None = None,
) -> WebServiceException:
    """Build the error envelope for a failed response.

    ``response`` may be a ``requests`` or ``httpx`` response. When
    ``response_type`` is given and the body validates into it, the typed
    object is attached as ``response_dto``.
    """
    status_description = getattr(response, "reason", None) or getattr(response, "reason_phrase", None) or ""
    body = response.text or None

    exc = WebServiceException(
        status_description,
        status_code=response.status_code,
        status_description=status_description,
        response_headers=response.headers,
        response_body=body,
    )

    if response_type is not None and body:
        try:
            exc.response_dto = type_adapter(response_type).validate_json(body)
        except ValidationError:
            logger.debug("Error body of %s response does not match %r", response.status_code, response_type)

    return exc


def _retry_after_seconds(headers: Mapping[str, Any] | None) -> float:
    """Return the server-requested wait in seconds; HTTP-date values are ignored."""
    raw = headers.get("Retry-After") if headers else None
    if raw is None:
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


class JsonServiceClient:
    """Send JSON requests to a remote service with retry/backoff behavior."""

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str = "",
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        session: requests.Session | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        jitter_fn: Callable[[], float] = random.random,
    ) -> None:
        normalized = base_url.rstrip("/")
        if not normalized:
            raise ValueError("base_url is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if backoff_seconds <= 0:
            raise ValueError("backoff_seconds must be positive")

        self._base_url = normalized
        self._api_token = api_token
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._session = session or requests.Session()
        self._sleep_fn = sleep_fn
        self._jitter_fn = jitter_fn

    @classmethod
    def from_settings(cls, settings: ServiceClientSettings, **kwargs: Any) -> JsonServiceClient:
        """Create a client from loaded settings."""
        logger.info("Creating service client with settings=%s", settings.safe_for_logging())
        return cls(
            base_url=settings.base_url,
            api_token=settings.api_token,
            timeout_seconds=settings.timeout_seconds,
            max_retries=settings.max_retries,
            backoff_seconds=settings.backoff_seconds,
            **kwargs,
        )

    def get(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        response_type: Any | None = None,
    ) -> Any:
        return self.send("GET", path, params=params, response_type=response_type)

    def post(self, path: str, body: Any = None, *, response_type: Any | None = None) -> Any:
        return self.send("POST", path, body=body, response_type=response_type)

    def put(self, path: str, body: Any = None, *, response_type: Any | None = None) -> Any:
        return self.send("PUT", path, body=body, response_type=response_type)

    def delete(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        response_type: Any | None = None,
    ) -> Any:
        return self.send("DELETE", path, params=params, response_type=response_type)

    def send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        response_type: Any | None = None,
    ) -> Any:
        """Send one request and decode the response.

        Raises ``WebServiceException`` for non-2xx responses and
        ``ServiceRequestError`` when the service cannot be reached.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        payload = body.model_dump(mode="json", by_alias=True) if isinstance(body, BaseModel) else body

        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params,
                    json=payload,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                if attempt >= self._max_retries:
                    raise ServiceRequestError(
                        f"{method} {url} failed after retry budget was exhausted",
                    ) from exc
                logger.warning("%s %s failed on attempt %d: %s", method, url, attempt + 1, exc)
                self._sleep_fn(self._retry_delay(attempt))
                continue
            except requests.RequestException as exc:
                raise ServiceRequestError(f"{method} {url} failed") from exc

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self._max_retries:
                logger.warning(
                    "%s %s returned retryable status %d on attempt %d",
                    method,
                    url,
                    response.status_code,
                    attempt + 1,
                )
                self._sleep_fn(self._retry_delay(attempt, response.headers))
                continue

            if not 200 <= response.status_code < 300:
                exc = web_service_exception_from_response(response, response_type)
                logger.warning("%s %s failed with %d %s", method, url, exc.status_code, exc.error_code)
                raise exc

            return self._decode(response, response_type)

        raise ServiceRequestError(f"{method} {url} failed")

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "service-client/0.1",
        }
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def _retry_delay(self, attempt: int, headers: Mapping[str, Any] | None = None) -> float:
        delay = self._backoff_seconds * (2**attempt + self._jitter_fn())
        return max(delay, _retry_after_seconds(headers))

    @staticmethod
    def _decode(response: Any, response_type: Any | None) -> Any:
        if not response.text:
            return None

        try:
            payload = response.json()
        except ValueError as exc:
            raise ServiceResponseError("Service response body is not valid JSON") from exc

        if response_type is None:
            return payload
        try:
            return type_adapter(response_type).validate_python(payload)
        except ValidationError as exc:
            raise ServiceResponseError(f"Service response does not match {response_type!r}") from exc
