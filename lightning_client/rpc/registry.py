"""
Request/response correlation

Maps each outstanding request id to the single future its caller awaits and
settles that future exactly once when the response with the same id arrives.
There is no internal timeout: a response that never comes leaves its call
pending until the caller gives up or the client is closed.
"""

import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from lightning_client.exceptions import LightningError
from lightning_client.telemetry.metrics import increment_counter

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """An in-flight call awaiting its response"""
    id: str
    method: str
    params: List[Any]
    future: asyncio.Future
    created_at: float = field(default_factory=time.time)


class CorrelationRegistry:
    """Pending requests keyed by correlation id"""

    def __init__(self):
        self._pending: Dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._pending

    def pending(self) -> List[PendingRequest]:
        return list(self._pending.values())

    def register(self, request_id: str, method: str = "", params: List[Any] = None) -> asyncio.Future:
        """Take out the one-shot subscription for ``request_id``

        Args:
            request_id: Correlation id, never seen before
            method: Method name, kept for diagnostics
            params: Call parameters, kept for diagnostics

        Returns:
            asyncio.Future: Settled with the result or a LightningError

        Raises:
            ValueError: The id already has a live subscription
        """
        if request_id in self._pending:
            raise ValueError(f"Request id {request_id} is already pending")
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(
            id=request_id,
            method=method,
            params=params if params is not None else [],
            future=future,
        )
        return future

    def discard(self, request_id: str) -> None:
        """Forget a subscription without settling it"""
        self._pending.pop(request_id, None)

    def resolve(self, value: Any) -> bool:
        """Settle the call a decoded response belongs to

        Responses with an unknown id (duplicate, stale or never issued) are
        dropped.

        Args:
            value: A top-level value from the stream

        Returns:
            bool: Whether a pending call was settled
        """
        if not isinstance(value, dict) or "id" not in value:
            logger.debug(f"Dropping value without id: {value!r:.200}")
            increment_counter("rpc.client.dropped_responses", 1, {"reason": "no_id"})
            return False

        request_id = value["id"]
        if not isinstance(request_id, str):
            request_id = str(request_id)
        pending = self._pending.pop(request_id, None)
        if pending is None:
            logger.debug(f"Dropping response #{request_id}: no pending call")
            increment_counter("rpc.client.dropped_responses", 1, {"reason": "unknown_id"})
            return False

        if pending.future.done():
            # Caller cancelled or timed out while waiting
            return False

        error = value.get("error")
        if error is not None:
            logger.debug(f"#{request_id} <-- error {error}")
            pending.future.set_exception(LightningError(error))
        else:
            logger.debug(f"#{request_id} <-- {value.get('result')!r:.200}")
            pending.future.set_result(value.get("result"))
        return True

    def fail_all(self, exc: Exception) -> int:
        """Reject every pending call with ``exc``

        Returns:
            int: Number of calls rejected
        """
        pending, self._pending = self._pending, {}
        failed = 0
        for request in pending.values():
            if not request.future.done():
                request.future.set_exception(exc)
                failed += 1
        if failed:
            logger.warning(f"Failed {failed} pending call(s): {exc}")
        return failed
