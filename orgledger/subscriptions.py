"""
Live Query Streams

Store listeners push snapshots from whatever thread the backend uses
(Firestore runs them on a background thread). SnapshotStream hands them
to async code as an async iterator, in delivery order, one complete
result set per item.

Usage:
    async with repo.stream_transactions(org_id) as stream:
        async for snapshot in stream:
            render(snapshot)
"""

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

from orgledger.services.storage import Document, SnapshotCallback, Subscription


T = TypeVar("T")

_CLOSED = object()


class SnapshotStream(Generic[T]):
    """
    Async iterator over the snapshots of one live query.

    ``close()`` releases the underlying subscription and ends iteration;
    like ``Subscription.cancel()`` it must be called exactly once. Leaving
    an ``async with`` block closes the stream if it is still open.
    """

    def __init__(
        self,
        open_subscription: Callable[[SnapshotCallback], Subscription],
        decode: Callable[[list[Document]], list[T]],
    ):
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._decode = decode
        self._finished = False
        self._subscription = open_subscription(self._on_snapshot)

    def _on_snapshot(self, documents: list[Document]) -> None:
        snapshot = self._decode(documents)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, snapshot)

    @property
    def closed(self) -> bool:
        return self._subscription.closed

    def close(self) -> None:
        """
        Stop listening.

        Raises:
            SubscriptionClosedError: If already closed
        """
        self._subscription.cancel()
        self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)

    def __aiter__(self) -> "SnapshotStream[T]":
        return self

    async def __anext__(self) -> list[T]:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "SnapshotStream[T]":
        return self

    async def __aexit__(self, *exc_info) -> None:
        if not self.closed:
            self.close()
