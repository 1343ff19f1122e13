"""HTTP lookup backend.

This module provides :class:`HttpLocationFetcher`, a :class:`Fetcher` that
performs one GET per key with ``requests`` in a worker thread and maps the
response onto a fetch result:

- 2xx with a location payload: ``FetchSuccess(LocationInfo dict)``
- 204, 404 or an empty payload: ``FetchSuccess(None)`` (nothing to report)
- 429: ``FetchThrottled`` with the reset hint from ``x-rate-limit-reset``
  (epoch seconds) or ``Retry-After`` (seconds)
- anything else, or a transport error: ``FetchFailure``
"""

from __future__ import annotations

import asyncio
import logging
import time
from urllib.parse import quote

import requests
from pydantic import ValidationError

from geovault.config.models.api_settings import APISettings
from geovault.core.clock import Clock
from geovault.services.fetcher import (
    FetchFailure,
    FetchResult,
    FetchSuccess,
    FetchThrottled,
)
from geovault.services.location import LocationInfo
from geovault.shared.constants import BASE_SECOND, HTTPStatus, NetworkConfig, RateLimitHeaders
from geovault.shared.errors import ErrorCode, create_fetch_error
from geovault.shared.logging import log_api_call, log_operation_error

logger = logging.getLogger(__name__)


class HttpLocationFetcher:
    """Location lookups over HTTP.

    Args:
        settings: Backend URL template, credentials and headers
        clock: Time source used to turn ``Retry-After`` into a timestamp
        session: Optional ``requests.Session`` (one is created if omitted)
    """

    def __init__(
        self,
        settings: APISettings,
        clock: Clock,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._session = session or requests.Session()
        self._session.headers.update(self._build_headers())

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": NetworkConfig.ACCEPT_JSON,
            "User-Agent": self.settings.user_agent,
        }
        if self.settings.bearer_token:
            headers["Authorization"] = f"Bearer {self.settings.bearer_token}"
        headers.update(self.settings.extra_headers)
        return headers

    def url_for(self, key: str) -> str:
        return self.settings.url_template.format(key=quote(key, safe=""))

    async def fetch(self, key: str, timeout_ms: float) -> FetchResult:
        """Look up ``key``; transport errors are returned, not raised."""
        return await asyncio.to_thread(self._fetch_sync, key, timeout_ms)

    def _fetch_sync(self, key: str, timeout_ms: float) -> FetchResult:
        url = self.url_for(key)
        start = time.perf_counter()

        try:
            response = self._session.get(url, timeout=timeout_ms / BASE_SECOND)
        except requests.exceptions.Timeout as e:
            return FetchFailure(f"request timed out: {e!s}", kind="timeout")
        except requests.exceptions.RequestException as e:
            log_operation_error(
                logger,
                create_fetch_error(
                    ErrorCode.FETCH_TRANSPORT_FAILED,
                    f"Request failed: {e!s}",
                    key,
                    original_error=e,
                ),
                operation="http_fetch",
                level=logging.WARNING,
            )
            return FetchFailure(f"{type(e).__name__}: {e!s}")

        log_api_call(
            logger,
            url,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
            context={"key": key},
        )
        return self._map_response(key, response)

    def _map_response(self, key: str, response: requests.Response) -> FetchResult:
        status = response.status_code

        if status == HTTPStatus.TOO_MANY_REQUESTS:
            return FetchThrottled(reset_at=self._extract_reset_at(response))

        if status in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_FOUND):
            return FetchSuccess(None)

        if not 200 <= status < 300:
            return FetchFailure(f"unexpected status {status}")

        try:
            payload = response.json()
        except ValueError as e:
            return self._invalid_response(key, f"response is not JSON: {e!s}", e)

        if payload is None:
            return FetchSuccess(None)

        try:
            info = LocationInfo.model_validate(payload)
        except ValidationError as e:
            return self._invalid_response(key, f"unexpected payload: {e!s}", e)

        if info.is_empty:
            return FetchSuccess(None)
        return FetchSuccess(info.model_dump())

    def _invalid_response(self, key: str, message: str, error: Exception) -> FetchFailure:
        log_operation_error(
            logger,
            create_fetch_error(ErrorCode.FETCH_INVALID_RESPONSE, message, key, original_error=error),
            operation="http_fetch",
            level=logging.WARNING,
        )
        return FetchFailure(message)

    def _extract_reset_at(self, response: requests.Response) -> float | None:
        """Turn the throttling headers into a clock timestamp (ms).

        Returns:
            Reset timestamp, or None when no usable header is present
        """
        headers = response.headers
        reset = headers.get(RateLimitHeaders.RESET)
        if reset:
            try:
                return float(reset) * BASE_SECOND
            except ValueError:
                logger.debug("Ignoring invalid %s header: %r", RateLimitHeaders.RESET, reset)

        retry_after = headers.get(RateLimitHeaders.RETRY_AFTER)
        if retry_after:
            try:
                return self._clock.now() + float(retry_after) * BASE_SECOND
            except ValueError:
                logger.debug("Ignoring invalid %s header: %r", RateLimitHeaders.RETRY_AFTER, retry_after)

        return None

    def close(self) -> None:
        self._session.close()


__all__ = ["HttpLocationFetcher"]
