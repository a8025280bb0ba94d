"""Cooperative cancellation shared across one pipeline run"""

import asyncio
from typing import Optional

from ..errors import ProcessingCancelled


class CancellationToken:
    """A single cancellation signal threaded through the whole call chain.

    The pipeline checks it before each stage and before each segment starts
    its backend call. Work that was already dispatched finishes on its own
    terms; nothing new is scheduled once the token is cancelled.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Processing was cancelled"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self):
        """Raise ProcessingCancelled if the token has been cancelled"""
        if self._event.is_set():
            raise ProcessingCancelled(self.reason or "Processing was cancelled")

    async def wait(self):
        await self._event.wait()


def check_cancelled(token: Optional[CancellationToken]):
    """raise_if_cancelled() for an optional token"""
    if token is not None:
        token.raise_if_cancelled()
