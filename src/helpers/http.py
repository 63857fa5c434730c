"""HTTP client utilities and helpers."""

from typing import Any

import httpx

from src.helpers.constants import (
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
)


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Every request made through the client is bounded by ``timeout`` and the
    connection pool is capped by the pooling constants.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs (base_url, auth, ...)

    Returns:
        Configured AsyncClient instance

    Example:
        ```python
        from src.helpers.http import create_http_client

        async with create_http_client(timeout=60.0) as client:
            response = await client.get("https://example.com")
        ```
    """
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
    )
    return httpx.AsyncClient(timeout=timeout, **kwargs)


def describe_http_error(error: httpx.HTTPError) -> str:
    """Short description of an httpx error for log and exception messages.

    Example:
        >>> describe_http_error(httpx.ConnectError("refused"))
        'ConnectError: refused'
    """
    if isinstance(error, httpx.HTTPStatusError):
        body = error.response.text[:100] if error.response.text else ""
        return f"HTTP {error.response.status_code} {body}".strip()
    return f"{type(error).__name__}: {error}"


__all__ = [
    "create_http_client",
    "describe_http_error",
]
