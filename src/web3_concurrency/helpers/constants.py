"""Common configuration constants used across the client."""

# JSON-RPC
JSONRPC_VERSION = "2.0"
"""Protocol version sent in every request body"""

FIRST_REQUEST_ID = 1
"""First request id allocated by a fresh transport"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

CONNECTION_TIMEOUT = 3.0
"""Timeout for establishing connections"""

# HTTP Connection Pooling
MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 10
"""Maximum total number of connections"""

# Caller-side retry defaults (the transport itself never retries)
MAX_RETRIES = 5
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 60.0
"""Maximum delay between retries in seconds"""

# Ethereum encodings
ADDRESS_LENGTH = 20
"""Size of an account address in bytes"""

HASH_LENGTH = 32
"""Size of a block or transaction hash in bytes"""

HEX_PREFIX = "0x"
"""Prefix of every hex-encoded value on the wire"""

# JSON-RPC error codes
METHOD_NOT_FOUND = -32601
"""Standard code returned for unsupported methods"""


__all__ = [
    "ADDRESS_LENGTH",
    "CONNECTION_TIMEOUT",
    "DEFAULT_TIMEOUT",
    "FIRST_REQUEST_ID",
    "HASH_LENGTH",
    "HEX_PREFIX",
    "JSONRPC_VERSION",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "MAX_RETRIES",
    "METHOD_NOT_FOUND",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
]
