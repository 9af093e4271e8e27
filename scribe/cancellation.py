"""Cooperative cancellation for in-flight model requests."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .exceptions import TranscriptionCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """A one-shot cancellation signal shared between a caller and a request.

    ``cancel()`` may be called before or while the request runs; once set it
    stays set. Create a new token for every request.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise TranscriptionCancelled()


async def run_cancellable(awaitable: Awaitable[T], token: Optional[CancellationToken]) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    If the token is already set the awaitable is never started. If it fires
    while the awaitable is pending, the awaitable is cancelled and
    TranscriptionCancelled is raised; a result that arrives together with or
    after the signal is discarded.
    """
    if token is None:
        return await awaitable
    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise TranscriptionCancelled()

    request = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        request.cancel()
        raise
    finally:
        waiter.cancel()

    if token.cancelled:
        if request.done():
            if not request.cancelled():
                # retrieve so the discarded outcome is not reported as unhandled
                request.exception()
        else:
            request.cancel()
        logger.info("[TR] request cancelled: %s", token.reason)
        raise TranscriptionCancelled()
    return request.result()
