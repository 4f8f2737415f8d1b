"""Type definitions for JSON payloads."""

from typing import Any


# JSON value type - using Any for the recursive case
# since pyright has trouble with recursive type aliases
type JsonValue = str | int | float | bool | dict[str, Any] | list[Any] | None

# JSON-RPC params are always positional
type JsonParams = list[Any]

__all__ = ["JsonParams", "JsonValue"]
