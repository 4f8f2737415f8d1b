"""Tests for the JSON-RPC transport."""

import asyncio
import json
import random

import httpx
import pytest

from collections.abc import Callable
from typing import Any

from pytest_httpx import HTTPXMock

from web3_concurrency.helpers.exceptions import (
    RpcError,
    TransportError,
    UnknownResponseId,
)
from web3_concurrency.helpers.rpc import RPCClient


def _gated_transport(
    expected: int, seed: int
) -> tuple[httpx.MockTransport, list[int]]:
    """Mock transport that holds every request until `expected` have arrived,
    then answers them in a shuffled order. Each answer echoes params[0].
    """
    gates: dict[int, asyncio.Event] = {}
    release_order: list[int] = []
    all_arrived = asyncio.Event()
    releasers: list[asyncio.Task[None]] = []

    async def release() -> None:
        await all_arrived.wait()
        ids = list(gates)
        random.Random(seed).shuffle(ids)
        for request_id in ids:
            release_order.append(request_id)
            gates[request_id].set()
            await asyncio.sleep(0)

    async def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        gate = gates.setdefault(body["id"], asyncio.Event())
        if len(gates) == expected:
            all_arrived.set()
            releasers.append(asyncio.create_task(release()))
        await gate.wait()
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "result": body["params"][0]},
        )

    return httpx.MockTransport(handler), release_order


class TestRPCClientInit:
    """Tests for RPCClient construction."""

    def test_init_with_valid_url(self) -> None:
        """Test RPCClient initialization with valid URL."""
        client = RPCClient("https://eth.llamarpc.com")

        assert client.rpc_url == "https://eth.llamarpc.com"
        assert client.timeout == 30.0
        assert client.pending_count == 0

    def test_init_with_custom_timeout(self) -> None:
        """Test RPCClient initialization with custom timeout."""
        client = RPCClient("https://eth.llamarpc.com", timeout=60.0)

        assert client.timeout == 60.0

    def test_init_with_empty_url_raises(self) -> None:
        """Test that empty URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient("")

    def test_init_with_none_url_raises(self) -> None:
        """Test that None URL raises ValueError."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCClient(None)  # type: ignore[arg-type]


class TestRPCClientSend:
    """Tests for single calls."""

    @pytest.mark.asyncio
    async def test_request_body(
        self, rpc: RPCClient, httpx_mock: HTTPXMock, rpc_reply: Callable[..., None]
    ) -> None:
        """Test the POST body is a JSON-RPC 2.0 request."""
        rpc_reply("0x1000")

        result = await rpc.request("eth_getBalance", ["0xabc", "latest"])

        assert result == "0x1000"
        request = httpx_mock.get_request()
        assert request is not None
        assert request.method == "POST"
        assert json.loads(request.content) == {
            "jsonrpc": "2.0",
            "method": "eth_getBalance",
            "params": ["0xabc", "latest"],
            "id": 1,
        }

    @pytest.mark.asyncio
    async def test_ids_increase(
        self,
        rpc: RPCClient,
        httpx_mock: HTTPXMock,
        rpc_reply: Callable[..., None],
    ) -> None:
        """Test each call gets a fresh id."""
        rpc_reply("0x1")
        rpc_reply("0x2")

        await rpc.request("eth_blockNumber")
        await rpc.request("eth_blockNumber")

        ids = [json.loads(r.content)["id"] for r in httpx_mock.get_requests()]
        assert ids == [1, 2]

    @pytest.mark.asyncio
    async def test_send_returns_error_envelope(
        self, rpc: RPCClient, rpc_reply: Callable[..., None]
    ) -> None:
        """Test send hands back the envelope without raising."""
        rpc_reply(error={"code": -32000, "message": "Error message"})

        envelope = await rpc.send("eth_blockNumber")

        assert envelope.is_error
        assert envelope.error is not None
        assert envelope.error.code == -32000

    @pytest.mark.asyncio
    async def test_request_raises_rpc_error(
        self, rpc: RPCClient, rpc_reply: Callable[..., None]
    ) -> None:
        """Test request raises the decoded error object."""
        rpc_reply(error={"code": -32601, "message": "method not found"})

        with pytest.raises(RpcError) as exc_info:
            await rpc.request("net_peerCount")

        assert exc_info.value == RpcError(-32601, "method not found")
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_null_result(self, rpc: RPCClient, rpc_reply: Callable[..., None]) -> None:
        """Test a null result is returned as None."""
        rpc_reply(None)

        assert await rpc.request("eth_getBlockByHash", ["0x00", False]) is None


class TestRPCClientTransportErrors:
    """Tests for failures before an envelope is formed."""

    @pytest.mark.asyncio
    async def test_truncated_body(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test malformed JSON raises TransportError."""
        httpx_mock.add_response(text='{"result":')

        with pytest.raises(TransportError, match="Malformed JSON"):
            await rpc.request("eth_gasPrice")

        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_http_status_error(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test non-2xx status raises TransportError."""
        httpx_mock.add_response(status_code=503, text="Service Unavailable")

        with pytest.raises(TransportError, match="HTTP 503") as exc_info:
            await rpc.request("eth_gasPrice")

        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_network_error(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test connection failure raises TransportError."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError, match="connection refused"):
            await rpc.request("eth_gasPrice")

    @pytest.mark.asyncio
    async def test_timeout(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test timeouts raise TransportError and are not retried."""
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(TransportError):
            await rpc.request("eth_gasPrice")

        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_not_an_envelope(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test JSON that is not a JSON-RPC envelope raises TransportError."""
        httpx_mock.add_response(json={"jsonrpc": "2.0", "id": 1})

        with pytest.raises(TransportError, match="Malformed JSON-RPC response"):
            await rpc.request("eth_gasPrice")

    @pytest.mark.asyncio
    async def test_unknown_response_id(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test an answer for a different id fails with UnknownResponseId."""
        httpx_mock.add_response(json={"jsonrpc": "2.0", "id": 42, "result": "0x1"})

        with pytest.raises(UnknownResponseId) as exc_info:
            await rpc.request("eth_gasPrice")

        assert exc_info.value.response_id == 42
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_null_id_error(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test a null-id error reply reaches the single caller as RpcError."""
        httpx_mock.add_response(
            json={
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": -32600, "message": "invalid request"},
            }
        )

        with pytest.raises(RpcError) as exc_info:
            await rpc.request("eth_gasPrice")

        assert exc_info.value == RpcError(-32600, "invalid request")
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_null_id_result_is_unknown(
        self, rpc: RPCClient, httpx_mock: HTTPXMock
    ) -> None:
        """Test a null-id success reply is still not correlated."""
        httpx_mock.add_response(json={"jsonrpc": "2.0", "id": None, "result": "0x1"})

        with pytest.raises(UnknownResponseId):
            await rpc.request("eth_gasPrice")

    @pytest.mark.asyncio
    async def test_closed_client_rejects_calls(self, rpc_url: str) -> None:
        """Test calls after aclose fail fast."""
        client = RPCClient(rpc_url)
        await client.aclose()

        with pytest.raises(TransportError, match="closed"):
            await client.request("eth_gasPrice")


class TestRPCClientConcurrency:
    """Tests for concurrent in-flight calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", [0, 1, 2])
    async def test_out_of_order_completion(self, rpc_url: str, seed: int) -> None:
        """Test N concurrent calls each receive their own result exactly once."""
        n = 12
        transport, release_order = _gated_transport(n, seed)

        async with httpx.AsyncClient(transport=transport) as http_client:
            rpc = RPCClient(rpc_url, client=http_client)
            results = await asyncio.gather(*[
                rpc.request("test_echo", [f"caller-{i}"]) for i in range(n)
            ])
            await rpc.aclose()

        assert results == [f"caller-{i}" for i in range(n)]
        assert sorted(release_order) == list(range(1, n + 1))
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_stray_id_does_not_affect_other_calls(self, rpc_url: str) -> None:
        """Test a mis-addressed answer only fails its own caller."""

        async def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if body["method"] == "bad_call":
                # Claims to answer the other in-flight call
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": body["id"] + 1, "result": "stolen"}
                )
            await asyncio.sleep(0.01)
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": body["id"], "result": "mine"}
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            rpc = RPCClient(rpc_url, client=http_client)
            bad, good = await asyncio.gather(
                rpc.request("bad_call"),
                rpc.request("good_call"),
                return_exceptions=True,
            )
            await rpc.aclose()

        assert isinstance(bad, UnknownResponseId)
        assert good == "mine"

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_leak(self, rpc_url: str) -> None:
        """Test abandoning a call still removes its pending entry."""
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            await gate.wait()
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x1"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            rpc = RPCClient(rpc_url, client=http_client)
            task = asyncio.create_task(rpc.request("eth_blockNumber"))
            while rpc.pending_count == 0:
                await asyncio.sleep(0)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            assert rpc.pending_count == 1

            gate.set()
            for _ in range(100):
                if rpc.pending_count == 0:
                    break
                await asyncio.sleep(0.01)

            assert rpc.pending_count == 0
            await rpc.aclose()

    @pytest.mark.asyncio
    async def test_aclose_fails_pending_calls(self, rpc_url: str) -> None:
        """Test closing the client fails calls still in flight."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.Event().wait()
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            rpc = RPCClient(rpc_url, client=http_client)
            task = asyncio.create_task(rpc.request("eth_blockNumber"))
            while rpc.pending_count == 0:
                await asyncio.sleep(0)

            await rpc.aclose()

            with pytest.raises(TransportError, match="closed"):
                await task


class TestRPCClientBatch:
    """Tests for batch requests."""

    @pytest.mark.asyncio
    async def test_batch_out_of_order(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test batch answers are matched by id, not position."""

        def callback(request: httpx.Request) -> httpx.Response:
            body: list[dict[str, Any]] = json.loads(request.content)
            replies = [
                {"jsonrpc": "2.0", "id": item["id"], "result": item["method"]}
                for item in reversed(body)
            ]
            return httpx.Response(200, json=replies)

        httpx_mock.add_callback(callback)

        envelopes = await rpc.batch_send([
            ("eth_blockNumber", []),
            ("eth_gasPrice", []),
            ("eth_chainId", []),
        ])

        assert [e.unwrap() for e in envelopes] == [
            "eth_blockNumber",
            "eth_gasPrice",
            "eth_chainId",
        ]

    @pytest.mark.asyncio
    async def test_batch_mixed_results(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test error entries stay in their own envelope."""
        httpx_mock.add_response(
            json=[
                {"jsonrpc": "2.0", "id": 2, "error": {"code": -32601, "message": "method not found"}},
                {"jsonrpc": "2.0", "id": 1, "result": "0x3039"},
            ]
        )

        first, second = await rpc.batch_send([("eth_gasPrice", []), ("net_peerCount", [])])

        assert first.unwrap() == "0x3039"
        with pytest.raises(RpcError):
            second.unwrap()

    @pytest.mark.asyncio
    async def test_batch_missing_answer(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test an unanswered batch entry raises TransportError."""
        httpx_mock.add_response(json=[{"jsonrpc": "2.0", "id": 1, "result": "0x1"}])

        with pytest.raises(TransportError, match="No response for request id 2"):
            await rpc.batch_send([("eth_gasPrice", []), ("eth_blockNumber", [])])

        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_batch_rejected_whole(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test a single null-id error for a batch is delivered to every entry."""
        httpx_mock.add_response(
            json={
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": -32700, "message": "parse error"},
            }
        )

        envelopes = await rpc.batch_send([("eth_gasPrice", []), ("eth_blockNumber", [])])

        assert [envelope.id for envelope in envelopes] == [1, 2]
        for envelope in envelopes:
            with pytest.raises(RpcError, match="parse error"):
                envelope.unwrap()
        assert rpc.pending_count == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, rpc: RPCClient, httpx_mock: HTTPXMock) -> None:
        """Test an empty batch sends nothing."""
        assert await rpc.batch_send([]) == []
        assert httpx_mock.get_requests() == []
