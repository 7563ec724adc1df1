"""
Event Channel
=============

A bounded single-producer, single-consumer queue between a run's
producer task and whoever iterates the run.

``send`` waits while the channel is full, so a slow consumer slows the
producer down instead of letting events pile up. ``close`` never waits:
it is called from ``finally`` blocks, including in a cancelled task.

Example:
    channel = EventChannel(maxsize=16)

    async def produce():
        await channel.send(ContentEvent("hi"))
        await channel.close()

    async for event in channel:
        ...
"""

import asyncio
from typing import Generic, TypeVar

from agentloop.errors import ChannelClosedError

T = TypeVar("T")

_CLOSED = object()


class EventChannel(Generic[T]):
    def __init__(self, maxsize: int = 64):
        if maxsize < 1:
            raise ValueError("Channel capacity must be at least 1")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: T) -> None:
        """
        Raises:
            ChannelClosedError: If the channel was closed
        """
        if self._closed:
            raise ChannelClosedError("Cannot send on a closed channel")
        await self._queue.put(event)

    async def close(self) -> None:
        """Stop the channel; buffered events are still delivered."""
        if self._closed:
            return
        self._closed = True
        # A full queue means the consumer isn't waiting; it stops once drained
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> "EventChannel[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item
