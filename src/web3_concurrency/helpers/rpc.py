"""Ethereum JSON-RPC transport over HTTP(S)."""

import asyncio

from collections.abc import Coroutine, Sequence
from typing import Any

import httpx

from pydantic import ValidationError

from web3_concurrency.helpers.constants import DEFAULT_TIMEOUT
from web3_concurrency.helpers.exceptions import TransportError, UnknownResponseId
from web3_concurrency.helpers.http import create_http_client
from web3_concurrency.helpers.http_models import JsonParams, JsonValue
from web3_concurrency.helpers.logging import get_logger
from web3_concurrency.helpers.pending import PendingCalls
from web3_concurrency.helpers.rpc_models import JsonRpcRequest, JsonRpcResponse


logger = get_logger(__name__)


class RPCClient:
    """JSON-RPC client with request-id correlation and batching support.

    Every call registers a pending entry before the request leaves the
    process. The HTTP round trip runs as a task owned by the client and
    resolves that entry; the caller only awaits its own future. Many calls
    can be in flight at once and may complete in any order.

    Example:
        ```python
        async with RPCClient("https://eth.llamarpc.com") as rpc:
            block_hex, gas_hex = await asyncio.gather(
                rpc.request("eth_blockNumber"),
                rpc.request("eth_gasPrice"),
            )
        ```
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds
            client: Shared HTTP client; one is created (and owned) if omitted

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else create_http_client(timeout)
        self._pending = PendingCalls()
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    async def __aenter__(self) -> "RPCClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def pending_count(self) -> int:
        """Number of dispatched calls still awaiting a response."""
        return len(self._pending)

    async def aclose(self) -> None:
        """Fail every pending call and release the HTTP client."""
        if self._closed:
            return
        self._closed = True

        failed = await self._pending.fail_all(TransportError("RPC client closed"))
        if failed:
            logger.warning("Closed RPC client with %d pending calls", failed)

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._owns_client:
            await self._client.aclose()

    async def send(
        self,
        method: str,
        params: JsonParams | None = None,
        *,
        timeout: float | None = None,
    ) -> JsonRpcResponse:
        """Make a single JSON-RPC call and return its envelope.

        Args:
            method: RPC method name (e.g., "eth_blockNumber")
            params: Positional method parameters
            timeout: Optional timeout override

        Returns:
            The response envelope, which may carry an error object

        Raises:
            TransportError: If the request failed or the body was malformed
            UnknownResponseId: If the response id matched no pending request
        """
        self._check_open()
        request_id, future = await self._pending.register()
        payload = JsonRpcRequest(
            method=method, params=params or [], id=request_id
        ).model_dump()

        logger.debug("-> %s #%d %s", method, request_id, payload["params"])
        self._spawn(self._round_trip(payload, [request_id], timeout))
        return await future

    async def request(
        self,
        method: str,
        params: JsonParams | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call and return its result payload.

        Raises:
            RpcError: If the node answered with an error object
            TransportError: If the request failed or the body was malformed
            UnknownResponseId: If the response id matched no pending request
        """
        envelope = await self.send(method, params, timeout=timeout)
        return envelope.unwrap()

    async def batch_send(
        self,
        requests: Sequence[tuple[str, JsonParams]],
        *,
        timeout: float | None = None,
    ) -> list[JsonRpcResponse]:
        """Make multiple JSON-RPC calls in a single batch request.

        The node may answer in any order; envelopes are matched by id.

        Args:
            requests: List of (method, params) tuples
            timeout: Optional timeout override

        Returns:
            List of envelopes in the same order as requests

        Raises:
            TransportError: If the request failed or an entry got no answer
            UnknownResponseId: If an answer could not be correlated
        """
        self._check_open()
        if not requests:
            return []

        futures: list[asyncio.Future[JsonRpcResponse]] = []
        payload: list[dict[str, Any]] = []
        for method, params in requests:
            request_id, future = await self._pending.register()
            futures.append(future)
            payload.append(
                JsonRpcRequest(method=method, params=params, id=request_id).model_dump()
            )

        logger.debug("-> batch of %d calls", len(payload))
        self._spawn(
            self._round_trip(payload, [p["id"] for p in payload], timeout)
        )

        results = await asyncio.gather(*futures, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)  # type: ignore[arg-type]

    def _check_open(self) -> None:
        if self._closed:
            msg = "RPC client is closed"
            raise TransportError(msg)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, payload: JsonValue, timeout: float | None) -> Any:
        try:
            response = await self._client.post(
                self.rpc_url, json=payload, timeout=timeout or self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"HTTP {e.response.status_code} from {self.rpc_url}"
            raise TransportError(msg, e) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error calling {self.rpc_url}: {e}"
            raise TransportError(msg, e) from e

        try:
            return response.json()
        except ValueError as e:
            msg = f"Malformed JSON body from {self.rpc_url}"
            raise TransportError(msg, e) from e

    async def _round_trip(
        self,
        payload: JsonValue,
        request_ids: list[int],
        timeout: float | None,
    ) -> None:
        try:
            body = await self._post(payload, timeout)
        except TransportError as e:
            logger.warning("Transport failure for ids %s: %s", request_ids, e)
            for request_id in request_ids:
                await self._pending.fail(request_id, e)
            return

        try:
            await self._correlate(body, request_ids)
        except Exception as e:
            logger.exception("Failed to correlate response for ids %s", request_ids)
            error = TransportError(f"Failed to correlate response: {e}", e)
            for request_id in request_ids:
                await self._pending.fail(request_id, error)

    async def _correlate(self, body: Any, request_ids: list[int]) -> None:
        """Deliver each envelope in body to the matching entry of this dispatch.

        Only ids sent in this dispatch are resolved, so a stray id can never
        reach a different caller. Entries left unanswered are failed. A
        null-id error (parse error or invalid request) goes to every entry of
        a single-call dispatch, or of a batch answered with one object.
        """
        items = body if isinstance(body, list) else [body]
        expected = set(request_ids)
        unknown: UnknownResponseId | None = None
        malformed = False

        for item in items:
            try:
                envelope = JsonRpcResponse.model_validate(item)
            except ValidationError:
                logger.warning("Discarding malformed JSON-RPC envelope: %.200r", item)
                malformed = True
                continue

            if envelope.id is None and envelope.is_error and (
                len(request_ids) == 1 or not isinstance(body, list)
            ):
                # Parse error / Invalid Request: the node could not read an id,
                # and only this dispatch can be the one it rejected.
                for request_id in list(expected):
                    await self._pending.resolve(
                        envelope.model_copy(update={"id": request_id})
                    )
                    expected.discard(request_id)
                logger.debug("<- null-id error for ids %s", request_ids)
                continue

            if envelope.id not in expected:
                unknown = UnknownResponseId(envelope.id)
                logger.warning("%s", unknown)
                continue

            try:
                await self._pending.resolve(envelope)
            except UnknownResponseId as e:
                # Duplicate id within one body: the first answer already won.
                unknown = e
                logger.warning("%s", e)
            else:
                expected.discard(envelope.id)  # type: ignore[arg-type]
                logger.debug("<- #%s %s", envelope.id, "error" if envelope.is_error else "ok")

        for request_id in request_ids:
            if request_id not in expected:
                continue
            if unknown is not None:
                exc: Exception = unknown
            elif malformed:
                exc = TransportError(f"Malformed JSON-RPC response for id {request_id}")
            else:
                exc = TransportError(f"No response for request id {request_id}")
            await self._pending.fail(request_id, exc)


__all__ = ["RPCClient"]
