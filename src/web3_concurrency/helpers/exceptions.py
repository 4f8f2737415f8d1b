"""Exception taxonomy shared by the codecs, the transport and the method surface.

Every failure a caller can observe from an RPC method is one of:

- ``DecodeError`` (and its ``ChecksumMismatch`` refinement) for malformed hex,
  quantities, addresses or result payloads
- ``TransportError`` when no JSON-RPC envelope could be formed
- ``RpcError`` for a well-formed JSON-RPC error response
- ``UnknownResponseId`` when a response cannot be correlated with its request
"""

from typing import Any


class Web3Error(Exception):
    """Base class for all client errors."""


class DecodeError(Web3Error, ValueError):
    """A wire value could not be decoded."""


class ChecksumMismatch(DecodeError):
    """An address casing does not match its EIP-55 checksum."""

    def __init__(self, address: str, expected: str) -> None:
        self.address = address
        self.expected = expected
        super().__init__(f"Address {address} does not match checksum {expected}")


class TransportError(Web3Error):
    """The request failed before a JSON-RPC envelope was received."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class RpcError(Web3Error):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error {code}: {message}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RpcError):
            return NotImplemented
        return (self.code, self.message, self.data) == (
            other.code,
            other.message,
            other.data,
        )

    __hash__ = Web3Error.__hash__


class UnknownResponseId(Web3Error):
    """A response carried an id with no matching pending request."""

    def __init__(self, response_id: Any) -> None:
        self.response_id = response_id
        super().__init__(f"No pending request for response id {response_id!r}")


__all__ = [
    "ChecksumMismatch",
    "DecodeError",
    "RpcError",
    "TransportError",
    "UnknownResponseId",
    "Web3Error",
]
