"""Pending-call table correlating JSON-RPC responses with their waiters."""

import asyncio
import itertools

from typing import Any

from web3_concurrency.helpers.constants import FIRST_REQUEST_ID
from web3_concurrency.helpers.exceptions import UnknownResponseId
from web3_concurrency.helpers.logging import get_logger
from web3_concurrency.helpers.rpc_models import JsonRpcResponse


logger = get_logger(__name__)


class PendingCalls:
    """Map of in-flight request ids to the single future awaiting each one.

    Entries are created by ``register`` before a request is sent and removed
    by ``resolve``, ``fail`` or ``fail_all``. Removal happens under the lock
    before delivery, so an entry is delivered at most once. A future the
    caller has already cancelled is still removed; delivery is skipped.
    """

    def __init__(self, first_id: int = FIRST_REQUEST_ID) -> None:
        self._ids = itertools.count(first_id)
        self._entries: dict[int, asyncio.Future[JsonRpcResponse]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    async def register(self) -> tuple[int, asyncio.Future[JsonRpcResponse]]:
        """Allocate a fresh request id and the future that will receive its envelope."""
        async with self._lock:
            request_id = next(self._ids)
            future: asyncio.Future[JsonRpcResponse] = (
                asyncio.get_running_loop().create_future()
            )
            self._entries[request_id] = future
        return request_id, future

    async def _pop(self, request_id: Any) -> asyncio.Future[JsonRpcResponse] | None:
        async with self._lock:
            return self._entries.pop(request_id, None)

    async def resolve(self, envelope: JsonRpcResponse) -> None:
        """Deliver an envelope to the caller waiting on its id.

        Raises:
            UnknownResponseId: If no pending entry has the envelope's id
        """
        future = await self._pop(envelope.id)
        if future is None:
            raise UnknownResponseId(envelope.id)
        if future.done():
            logger.debug("Dropping response %s for abandoned call", envelope.id)
            return
        future.set_result(envelope)

    async def fail(self, request_id: int, exc: BaseException) -> bool:
        """Fail one pending entry.

        Returns:
            bool: False if the entry was already consumed
        """
        future = await self._pop(request_id)
        if future is None:
            return False
        if not future.done():
            future.set_exception(exc)
        return True

    async def fail_all(self, exc: BaseException) -> int:
        """Fail every pending entry, returning how many were failed."""
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        for future in entries:
            if not future.done():
                future.set_exception(exc)
        return len(entries)


__all__ = ["PendingCalls"]
