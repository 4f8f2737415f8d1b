"""Pytest configuration and shared fixtures for the client tests."""

import json

import httpx
import pytest
import pytest_asyncio

from collections.abc import AsyncGenerator, Callable
from typing import Any

from pytest_httpx import HTTPXMock

from web3_concurrency.eth.client import Web3
from web3_concurrency.helpers.rpc import RPCClient


RPC_URL = "https://test.rpc"

_MISSING = object()


@pytest.fixture
def rpc_url() -> str:
    """Endpoint used by every mocked client."""
    return RPC_URL


@pytest.fixture
def rpc_reply(httpx_mock: HTTPXMock) -> Callable[..., None]:
    """Register one JSON-RPC answer that echoes the request id.

    Call with ``result=...`` for a success or ``error={...}`` for a failure.
    """

    def add(result: Any = _MISSING, *, error: dict[str, Any] | None = None) -> None:
        def callback(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            reply: dict[str, Any] = {"jsonrpc": "2.0", "id": body["id"]}
            if error is not None:
                reply["error"] = error
            if result is not _MISSING:
                reply["result"] = result
            return httpx.Response(200, json=reply)

        httpx_mock.add_callback(callback, url=RPC_URL)

    return add


@pytest_asyncio.fixture
async def rpc(rpc_url: str) -> AsyncGenerator[RPCClient]:
    """RPC transport closed after the test."""
    async with RPCClient(rpc_url) as client:
        yield client


@pytest_asyncio.fixture
async def web3(rpc_url: str) -> AsyncGenerator[Web3]:
    """Typed client closed after the test."""
    async with Web3.from_url(rpc_url) as client:
        yield client


@pytest.fixture
def sent_calls(httpx_mock: HTTPXMock) -> Callable[[], list[tuple[str, list[Any]]]]:
    """Return the (method, params) pairs sent so far, in order."""

    def calls() -> list[tuple[str, list[Any]]]:
        bodies = [json.loads(request.content) for request in httpx_mock.get_requests()]
        return [(body["method"], body["params"]) for body in bodies]

    return calls
