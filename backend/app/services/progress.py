"""Bridge a sync run's events onto a long-lived streaming HTTP response."""

import asyncio
import logging
from collections.abc import AsyncIterator

from app.schemas.sync import CompleteEvent, ErrorEvent, ProgressEvent, is_terminal

logger = logging.getLogger(__name__)

Event = ProgressEvent | CompleteEvent | ErrorEvent

_DONE = object()


def encode_event(event: Event) -> str:
    """One JSON object per line (NDJSON)."""
    return event.model_dump_json(by_alias=True, exclude_none=True) + "\n"


class ProgressStream:
    """
    Runs an event source in a background task behind a bounded queue.

    Iteration yields events until the first terminal one. Exactly one
    terminal event is delivered: if the source stops early or raises, an
    ``error`` event is synthesized. Closing the stream (consumer went away)
    cancels the background task, which also aborts any backoff sleep.
    """

    def __init__(self, source: AsyncIterator[Event], maxsize: int = 64):
        self._source = source
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task | None = None

    async def _produce(self) -> None:
        try:
            async for event in self._source:
                await self._queue.put(event)
        except Exception as e:
            logger.error(f"Sync stream source failed: {e}", exc_info=True)
            await self._queue.put(ErrorEvent(message=f"Fatal error: {e}"))
        finally:
            await self._queue.put(_DONE)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._produce())

    async def events(self) -> AsyncIterator[Event]:
        """Events in emission order, ending with exactly one terminal event."""
        self.start()
        finished = False
        try:
            while True:
                item = await self._queue.get()
                if item is _DONE:
                    finished = True
                    yield ErrorEvent(message="Sync stopped without a final status")
                    return
                if is_terminal(item):
                    finished = True
                yield item
                if finished:
                    return
        finally:
            # Consumer left early: cancel the run instead of letting it finish
            await self.close(wait=finished)

    async def lines(self) -> AsyncIterator[str]:
        """Encoded events for ``StreamingResponse``."""
        async for event in self.events():
            yield encode_event(event)

    async def close(self, wait: bool = False) -> None:
        """
        Stop the background task.

        With ``wait`` the producer may finish on its own first (so the source
        can run its cleanup after the terminal event); otherwise it is
        cancelled.
        """
        if self._task is None or self._task.done():
            return
        if wait:
            # Drain so a producer blocked on a full queue can reach its end
            while not self._task.done():
                try:
                    item = await asyncio.wait_for(self._queue.get(), timeout=5)
                except TimeoutError:
                    break
                if item is _DONE:
                    break
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
