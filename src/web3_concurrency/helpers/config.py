"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv

from web3_concurrency.helpers.constants import DEFAULT_TIMEOUT


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


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
        from web3_concurrency.helpers.config import get_eth_rpc_url

        # Get from environment
        rpc_url = get_eth_rpc_url()

        # Or provide explicitly
        rpc_url = get_eth_rpc_url("https://eth.llamarpc.com")
        ```
    """
    if rpc_url:
        return rpc_url

    env_rpc_url = os.getenv("ETH_RPC_URL")
    if not env_rpc_url:
        msg = "ETH_RPC_URL must be provided or set in environment variables"
        raise ValueError(msg)

    return env_rpc_url


def get_rpc_timeout(timeout: float | None = None) -> float:
    """Get the per-request RPC timeout from parameter or environment.

    Args:
        timeout: Optional timeout in seconds to use directly

    Returns:
        Timeout in seconds (ETH_RPC_TIMEOUT, falling back to DEFAULT_TIMEOUT)

    Raises:
        ValueError: If ETH_RPC_TIMEOUT is not a positive number
    """
    if timeout is not None:
        return timeout

    raw = os.getenv("ETH_RPC_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT

    try:
        value = float(raw)
    except ValueError as e:
        msg = f"ETH_RPC_TIMEOUT must be a number, got {raw!r}"
        raise ValueError(msg) from e

    if value <= 0:
        msg = f"ETH_RPC_TIMEOUT must be positive, got {raw!r}"
        raise ValueError(msg)

    return value


__all__ = [
    "get_eth_rpc_url",
    "get_optional_env",
    "get_required_env",
    "get_rpc_timeout",
]
