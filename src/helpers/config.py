"""Configuration management and environment variable utilities."""

import os

from dotenv import find_dotenv, load_dotenv

from src.helpers.constants import DEFAULT_TIMEOUT, RECEIPT_CONCURRENCY, SYNC_INTERVAL


# Load environment variables from .env file
load_dotenv(find_dotenv(usecwd=True))


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_required_url(
    key: str, url: str | None = None, description: str | None = None
) -> str:
    """Get a URL from a parameter or a required environment variable.

    Args:
        key: Environment variable name to fall back to
        url: Optional URL to use directly
        description: Human readable name used in the error message

    Returns:
        The URL

    Raises:
        ValueError: If no URL is given and the variable is not set
    """
    if url:
        return url

    env_url = os.getenv(key)
    if not env_url:
        msg = f"{description or key} must be provided or set in {key}"
        raise ValueError(msg)

    return env_url


def get_eth_rpc_url(rpc_url: str | None = None) -> str:
    """Get Ethereum RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Ethereum RPC URL

    Raises:
        ValueError: If RPC URL is not provided and ETH_RPC_URL env var is not set

    Example:
        ```python
        from src.helpers.config import get_eth_rpc_url

        # Get from environment
        rpc_url = get_eth_rpc_url()

        # Or provide explicitly
        rpc_url = get_eth_rpc_url("https://eth.llamarpc.com")
        ```
    """
    return get_required_url("ETH_RPC_URL", rpc_url, "Ethereum RPC URL")


def get_elasticsearch_url(es_url: str | None = None) -> str:
    """Get the search backend URL from parameter or environment.

    Args:
        es_url: Optional URL to use directly

    Returns:
        Elasticsearch base URL

    Raises:
        ValueError: If URL is not provided and ELASTICSEARCH_URL is not set
    """
    return get_required_url("ELASTICSEARCH_URL", es_url, "Elasticsearch URL")


def get_elasticsearch_auth() -> tuple[str, str] | None:
    """Get basic auth credentials for the search backend, if configured."""
    username = get_optional_env("ELASTICSEARCH_USERNAME")
    password = get_optional_env("ELASTICSEARCH_PASSWORD", "")
    if not username:
        return None
    return username, password or ""


def get_float_env(key: str, default: float) -> float:
    """Get a positive float from the environment.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset or empty

    Returns:
        Parsed value

    Raises:
        ValueError: If the value is not a positive number
    """
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{key} must be a number, got {raw!r}"
        raise ValueError(msg) from None
    if value <= 0:
        msg = f"{key} must be positive, got {raw!r}"
        raise ValueError(msg)
    return value


def get_int_env(key: str, default: int) -> int:
    """Get a positive integer from the environment.

    Raises:
        ValueError: If the value is not a positive integer
    """
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ValueError(msg) from None
    if value <= 0:
        msg = f"{key} must be positive, got {raw!r}"
        raise ValueError(msg)
    return value


def get_sync_interval() -> float:
    """Seconds to wait between catch-up passes (SYNC_INTERVAL)."""
    return get_float_env("SYNC_INTERVAL", SYNC_INTERVAL)


def get_rpc_timeout() -> float:
    """Per-call JSON-RPC timeout in seconds (RPC_TIMEOUT)."""
    return get_float_env("RPC_TIMEOUT", DEFAULT_TIMEOUT)


def get_index_timeout() -> float:
    """Per-call search backend timeout in seconds (INDEX_TIMEOUT)."""
    return get_float_env("INDEX_TIMEOUT", DEFAULT_TIMEOUT)


def get_receipt_concurrency() -> int:
    """Receipt fetches allowed in flight for one block (RECEIPT_CONCURRENCY)."""
    return get_int_env("RECEIPT_CONCURRENCY", RECEIPT_CONCURRENCY)


__all__ = [
    "get_elasticsearch_auth",
    "get_elasticsearch_url",
    "get_eth_rpc_url",
    "get_float_env",
    "get_index_timeout",
    "get_int_env",
    "get_optional_env",
    "get_receipt_concurrency",
    "get_required_url",
    "get_rpc_timeout",
    "get_sync_interval",
]
