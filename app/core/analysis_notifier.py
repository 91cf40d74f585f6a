"""In-process push notifications for business plan analysis row updates.

Subscribers register for one analysis id and receive the full new row image
every time the analysis worker commits a change to that row. There is no
replay: events published while nobody is subscribed are dropped.
"""

import asyncio
import threading
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from app.core.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    """One subscriber's view of a single analysis id."""

    def __init__(self, analysis_id: str, loop: asyncio.AbstractEventLoop):
        self.analysis_id = analysis_id
        self._loop = loop
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def _deliver(self, row: dict[str, Any]) -> None:
        # May be called from any thread
        self._loop.call_soon_threadsafe(self._queue.put_nowait, dict(row))

    async def get(self, timeout: float | None = None) -> dict[str, Any]:
        """
        Wait for the next row image.

        Raises:
            asyncio.TimeoutError: If timeout elapses first
        """
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def pending(self) -> int:
        return self._queue.qsize()


class AnalysisNotifier:
    """Registry of live subscriptions keyed by analysis id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)

    @asynccontextmanager
    async def subscribe(self, analysis_id: str) -> AsyncIterator[Subscription]:
        """
        Subscribe to updates of one analysis for the duration of the block.

        The subscription is always removed on exit, including when the block
        raises or the consuming task is cancelled.
        """
        subscription = Subscription(str(analysis_id), asyncio.get_running_loop())
        with self._lock:
            self._subscribers[subscription.analysis_id].add(subscription)
        logger.debug(f"Subscribed to analysis {analysis_id}")
        try:
            yield subscription
        finally:
            with self._lock:
                subscribers = self._subscribers.get(subscription.analysis_id)
                if subscribers is not None:
                    subscribers.discard(subscription)
                    if not subscribers:
                        del self._subscribers[subscription.analysis_id]
            logger.debug(f"Unsubscribed from analysis {analysis_id}")

    def publish(self, row: dict[str, Any]) -> int:
        """
        Push a full row image to every subscriber of ``row["id"]``.

        Returns:
            Number of subscribers notified
        """
        analysis_id = str(row["id"])
        with self._lock:
            targets = list(self._subscribers.get(analysis_id, ()))

        for subscription in targets:
            try:
                subscription._deliver(row)
            except RuntimeError:
                # Subscriber's event loop already closed
                logger.warning(f"Dropped update for closed subscriber of {analysis_id}")

        logger.debug(
            f"Published analysis {analysis_id} update",
            extra={"subscribers": len(targets), "status": row.get("status")},
        )
        return len(targets)

    def subscriber_count(self, analysis_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(str(analysis_id), ()))


_notifier = AnalysisNotifier()


def get_notifier() -> AnalysisNotifier:
    """Process-wide notifier shared by the worker and the viewer stream."""
    return _notifier
