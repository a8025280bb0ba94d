"""Progress delivery from the pipeline to callers"""

import asyncio
import inspect
import json
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from . import config
from .models import ProcessingStatus
from .utils.cancellation import CancellationToken
from .utils.logging import get_logger

logger = get_logger(__name__)

ProgressSink = Callable[[ProcessingStatus], Union[None, Awaitable[None]]]

_END = object()


async def emit_status(sink: Optional[ProgressSink], status: ProcessingStatus):
    """Deliver ``status`` to a sync or async sink; no-op without a sink"""
    if sink is None:
        return
    result = sink(status)
    if inspect.isawaitable(result):
        await result


class QueueProgressSink:
    """
    Bounded hand-off between the pipeline and a streaming consumer.

    Statuses come out in the order they were put in. If the consumer stops
    draining the queue for ``put_timeout`` seconds the sink is marked
    disconnected, later statuses are dropped, and ``cancel_token`` (when
    given) is cancelled so the pipeline stops scheduling new work.
    """

    def __init__(
        self,
        maxsize: int = config.PROGRESS_QUEUE_SIZE,
        put_timeout: float = config.PROGRESS_PUT_TIMEOUT,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.put_timeout = put_timeout
        self.cancel_token = cancel_token
        self.disconnected = False
        self._closed = False

    async def __call__(self, status: ProcessingStatus):
        if self.disconnected or self._closed:
            return
        try:
            await asyncio.wait_for(self._queue.put(status), timeout=self.put_timeout)
        except asyncio.TimeoutError:
            self.disconnect()

    def disconnect(self):
        """The consumer went away; cancel the run if we own a token"""
        if self.disconnected:
            return
        self.disconnected = True
        logger.warning("Progress consumer disconnected, cancelling processing")
        if self.cancel_token is not None:
            self.cancel_token.cancel("Client disconnected")

    async def close(self):
        """Signal end of stream to the consumer"""
        if self._closed:
            return
        self._closed = True
        if self.disconnected:
            return
        try:
            await asyncio.wait_for(self._queue.put(_END), timeout=self.put_timeout)
        except asyncio.TimeoutError:
            self.disconnect()

    def __aiter__(self) -> AsyncIterator[ProcessingStatus]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProcessingStatus]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item

    async def iter_json_lines(self) -> AsyncIterator[str]:
        """One JSON object per status, newline-terminated"""
        async for status in self:
            yield json.dumps(status.to_dict()) + "\n"
