"""
Network Configuration Constants

Constants used by the HTTP lookup backend.
"""

from __future__ import annotations

from .system import Application


class NetworkConfig:
    """Network configuration constants."""

    USER_AGENT = f"{Application.NAME}/{Application.VERSION}"
    ACCEPT_JSON = "application/json"
    DEFAULT_URL_TEMPLATE = "http://127.0.0.1:8080/accounts/{key}/location"


class HTTPStatus:
    """HTTP status codes the fetcher distinguishes."""

    OK = 200
    NO_CONTENT = 204
    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429


class RateLimitHeaders:
    """Response headers carrying a throttling reset hint."""

    RESET = "x-rate-limit-reset"  # epoch seconds
    RETRY_AFTER = "Retry-After"  # seconds from now


__all__ = ["HTTPStatus", "NetworkConfig", "RateLimitHeaders"]
