"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from web3_concurrency.helpers.constants import JSONRPC_VERSION
from web3_concurrency.helpers.exceptions import RpcError


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default=JSONRPC_VERSION, description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class JsonRpcErrorObject(BaseModel):
    """Error member of a JSON-RPC response."""

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Human readable error message")
    data: Any = Field(default=None, description="Optional server-defined details")

    model_config = ConfigDict(extra="allow")

    def to_exception(self) -> RpcError:
        return RpcError(self.code, self.message, self.data)


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope.

    A success carries ``result``, a failure carries ``error``. A ``null``
    result is a legitimate success (e.g. an unknown block hash), so presence
    is tracked through ``model_fields_set`` rather than by value. Some nodes
    send ``"result": null`` next to an error; the error wins.
    """

    jsonrpc: str = Field(default=JSONRPC_VERSION, description="JSON-RPC version")
    id: int | str | None = Field(..., description="ID of the originating request")
    result: Any = Field(default=None, description="Success payload")
    error: JsonRpcErrorObject | None = Field(default=None, description="Error payload")

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def _result_xor_error(self) -> "JsonRpcResponse":
        if self.error is None and "result" not in self.model_fields_set:
            msg = "Response must contain 'result' or 'error'"
            raise ValueError(msg)
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Any:
        """Return the result payload or raise the decoded error.

        Raises:
            RpcError: If the envelope carries an error object
        """
        if self.error is not None:
            raise self.error.to_exception()
        return self.result


__all__ = [
    "JsonRpcErrorObject",
    "JsonRpcRequest",
    "JsonRpcResponse",
]
