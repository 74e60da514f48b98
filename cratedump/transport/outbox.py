"""
Outbox
======

An ordered queue of outbound lines drained by a single sender task.

Lines go out in the order they were posted, one at a time, each send
awaited before the next starts. Callers just ``post`` and move on; no
nested completion callbacks.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Outbox:
    """
    Single-consumer message queue.

    Example:
        outbox = Outbox(channel.chat_msg, name="trade")
        outbox.start()
        outbox.post("first", "second")
        await outbox.join()
    """

    def __init__(self, send: Callable[[str], Awaitable[None]], name: str = "outbox"):
        self._send = send
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.sent = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the sender task. Must be called from a running loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def post(self, *lines: str) -> None:
        """Queue one or more lines, in order."""
        for line in lines:
            self._queue.put_nowait(line)

    async def join(self) -> None:
        """Wait until every posted line has been handed to ``send``."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the sender. Lines still queued are dropped."""
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug("[%s] Dropped %d unsent lines", self.name, dropped)

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while True:
            line = await self._queue.get()
            try:
                await self._send(line)
                self.sent += 1
            except Exception:
                logger.exception("[%s] Failed to send: %s", self.name, line)
            finally:
                self._queue.task_done()
