"""
app/connectors/base.py

Base connector abstraction and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterator
from enum import Enum
from typing import Any

import requests

from app.config import ExternalHTTPSettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
MAX_LOGGED_URL_LENGTH = 100
MAX_ERROR_BODY_LENGTH = 200

_API_KEY_PATTERN = re.compile(r"([?&])key=[^&]*")


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"
    CONFIGURATION = "configuration"


class ConnectorRequestError(RuntimeError):
    """
    Raised when a connector cannot fetch data after retries.

    `kind` is decided at the transport boundary.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.http_status = http_status

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMITED


class ConnectorConfigError(ConnectorRequestError):
    """
    Raised when a connector is missing required configuration (e.g. a token).
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, kind=ErrorKind.CONFIGURATION)


def url_for_logging(url: str) -> str:
    """
    Hide API keys and cap the length of a URL before it reaches a log line.
    """

    sanitized = _API_KEY_PATTERN.sub(r"\1key=***HIDDEN***", url)
    if len(sanitized) > MAX_LOGGED_URL_LENGTH:
        return sanitized[:MAX_LOGGED_URL_LENGTH] + "..."
    return sanitized


def _looks_like_html(text: str) -> bool:
    stripped = text.lstrip().lower()
    return stripped.startswith("<!doctype html") or stripped.startswith("<html")


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:MAX_ERROR_BODY_LENGTH]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return str(message)
    return response.text[:MAX_ERROR_BODY_LENGTH]


class BaseConnector:
    """
    Authenticated JSON-over-HTTP fetcher shared by all domain connectors.

    One `_request_json` call is atomic from the caller's point of view: it
    either returns parsed JSON or raises ConnectorRequestError after its own
    retries are exhausted.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        access_token: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._access_token = access_token
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        self._min_request_interval_seconds = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    def _auth_headers(self) -> dict[str, str]:
        if not self._access_token:
            raise ConnectorConfigError(f"{self.source}: access token is not configured.")
        return {"Authorization": f"Bearer {self._access_token}"}

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        """
        Execute an authenticated HTTP request and return parsed JSON.
        """

        merged_headers = {**self._auth_headers(), **(headers or {})}
        response = self._request(
            method=method,
            url=url,
            params=params,
            headers=merged_headers,
            json_body=json_body,
        )

        text = response.text or ""
        if _looks_like_html(text):
            raise ConnectorRequestError(
                f"{self.source}: received HTML instead of JSON. Check API permissions "
                "and that the API is enabled for the project.",
                kind=ErrorKind.INVALID_RESPONSE,
                http_status=response.status_code,
            )
        if not text.strip():
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ConnectorRequestError(
                f"{self.source}: response was not valid JSON.",
                kind=ErrorKind.INVALID_RESPONSE,
                http_status=response.status_code,
            ) from exc

    def _paginate(
        self,
        *,
        url: str,
        items_key: str,
        params: dict[str, Any] | None = None,
        max_pages: int = 50,
    ) -> Iterator[dict[str, Any]]:
        """
        Yield items across pages linked by `nextPageToken`.
        """

        page_params = dict(params or {})
        for _ in range(max_pages):
            payload = self._request_json(method="GET", url=url, params=page_params or None)
            items = payload.get(items_key) if isinstance(payload, dict) else None
            for item in items or []:
                if isinstance(item, dict):
                    yield item

            next_token = payload.get("nextPageToken") if isinstance(payload, dict) else None
            if not next_token:
                return
            page_params["pageToken"] = next_token

        logger.warning(
            "Connector pagination truncated source=%s url=%s max_pages=%s",
            self.source,
            url_for_logging(url),
            max_pages,
        )

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> requests.Response:
        """
        Execute an HTTP request with rate limiting and exponential backoff.
        """

        logged_url = url_for_logging(url)
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(self._max_retries + 1):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    json=json_body,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                last_status = None
            else:
                status_code = response.status_code
                if 200 <= status_code < 300:
                    return response

                if status_code not in RETRYABLE_STATUS_CODES:
                    detail = _error_detail(response)
                    logger.error(
                        "Connector request failed source=%s status=%s url=%s error=%s",
                        self.source,
                        status_code,
                        logged_url,
                        detail,
                    )
                    raise ConnectorRequestError(
                        f"{self.source}: API error {status_code}: {detail}",
                        kind=ErrorKind.CLIENT_ERROR,
                        http_status=status_code,
                    )

                last_status = status_code
                last_error = requests.HTTPError(
                    f"Retryable HTTP status code: {status_code}",
                    response=response,
                )

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Connector request retry source=%s attempt=%s/%s status=%s wait_seconds=%.2f url=%s",
                self.source,
                attempt + 1,
                self._max_retries,
                last_status,
                backoff_seconds,
                logged_url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Connector request exhausted retries source=%s url=%s error=%s",
            self.source,
            logged_url,
            last_error,
        )
        raise ConnectorRequestError(
            self._exhausted_message(last_status),
            kind=self._exhausted_kind(last_status),
            http_status=last_status,
        ) from last_error

    def _exhausted_message(self, status_code: int | None) -> str:
        attempts = self._max_retries + 1
        if status_code == 429:
            return f"{self.source}: rate limit exceeded (429) after {attempts} attempts."
        if status_code is not None:
            return f"{self.source}: server error {status_code} after {attempts} attempts."
        return f"{self.source}: request failed after {attempts} attempts."

    @staticmethod
    def _exhausted_kind(status_code: int | None) -> ErrorKind:
        if status_code == 429:
            return ErrorKind.RATE_LIMITED
        if status_code is not None:
            return ErrorKind.SERVER_ERROR
        return ErrorKind.TRANSPORT

    def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        now = time.monotonic()
        elapsed = now - self._last_request_monotonic
        remaining = self._min_request_interval_seconds - elapsed
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()
