"""
Bounded-concurrency work queue.

Items are accepted in push order into an unbounded backlog. At most
`concurrency` of them are handed to the worker at once, each as its own task
on the running event loop. When a worker run finishes the next backlog item
is admitted. push() never blocks.
"""

import asyncio
import collections
import logging
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Optional

from mcenter import handlers


logger = logging.getLogger(__name__)


WORKER = Callable[[Any], Awaitable[None]]


class DispatchQueue(object):
    """
    Runs an async worker over pushed items with a concurrency ceiling.

    A worker failure is logged and does not stop the queue.
    """

    def __init__(self, worker: WORKER, concurrency: int) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self._worker = worker
        self._concurrency = concurrency
        self._backlog: collections.deque = collections.deque()
        self._tasks: set[asyncio.Task] = set()
        self._active = 0
        self._drained: Optional[asyncio.Event] = None

    @property
    def concurrency(self) -> int:
        return self._concurrency

    def push(self, item: Any) -> None:
        """
        Queue an item for the worker.

        Must be called while an event loop is running in this thread.
        """
        loop = asyncio.get_running_loop()
        self._backlog.append(item)
        self._admit(loop)

    def length(self) -> int:
        """Number of items waiting for a free slot."""
        return len(self._backlog)

    def running(self) -> int:
        """Number of items currently being worked on."""
        return self._active

    def idle(self) -> bool:
        return not self._backlog and self._active == 0

    async def join(self) -> None:
        """Wait until the backlog is empty and no worker run is active."""
        while not self.idle():
            if self._drained is None or self._drained.is_set():
                self._drained = asyncio.Event()
            await self._drained.wait()

    def _admit(self, loop: asyncio.AbstractEventLoop) -> None:
        while self._backlog and self._active < self._concurrency:
            item = self._backlog.popleft()
            self._active += 1
            task = loop.create_task(self._run(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, item: Any) -> None:
        try:
            await self._worker(item)
        except asyncio.CancelledError:
            logger.warning(
                f"Queue worker '{handlers.get_callable_name(self._worker)}' "
                f"cancelled while handling {item!r}"
            )
            raise
        except Exception as e:
            logger.error(
                f"Queue worker '{handlers.get_callable_name(self._worker)}' "
                f"failed: {e.__class__.__name__}: {e}",
                exc_info=True,
            )
        finally:
            self._active -= 1
            self._admit(asyncio.get_running_loop())
            if self.idle() and self._drained is not None:
                self._drained.set()
