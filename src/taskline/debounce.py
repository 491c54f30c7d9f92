"""
Debounced recomputation

Repeated triggers within the delay window collapse into one call of the
wrapped coroutine function. A newer trigger cancels a pending (still
waiting) call; a call that has already started runs to completion but its
result is dropped if it has been superseded. Only the result of the most
recent trigger becomes observable.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set


class Debouncer:

    def __init__(self, func: Callable[[], Awaitable[Any]], delay: float = 0.1):
        """
        Args:
            func: Coroutine function to run after the quiet period
            delay: Quiet period in seconds
        """
        self._func = func
        self.delay = delay
        self.result: Any = None
        self.calls = 0

        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()
        self._settled: Optional[asyncio.Event] = None
        self._error: Optional[BaseException] = None

    def trigger(self) -> None:
        """Schedule a recomputation, superseding any pending one"""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()

        self._generation += 1
        self._event().clear()
        self._timer = asyncio.ensure_future(self._wait_then_run(self._generation))

    async def wait(self) -> Any:
        """
        Wait for the most recent trigger to settle

        Returns:
            Result of the latest recomputation

        Raises:
            Whatever the latest recomputation raised
        """
        await self._event().wait()
        if self._error is not None:
            raise self._error
        return self.result

    def cancel(self) -> None:
        """Drop the pending recomputation, if it has not started yet"""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        if self._settled is not None:
            self._settled.set()

    def _event(self) -> asyncio.Event:
        # Created on first use so it belongs to the running event loop
        if self._settled is None:
            self._settled = asyncio.Event()
            self._settled.set()
        return self._settled

    async def _wait_then_run(self, generation: int) -> None:
        await asyncio.sleep(self.delay)

        # Started: from here on a newer trigger no longer cancels this call
        self._timer = None
        run = asyncio.ensure_future(self._run(generation))
        self._running.add(run)
        run.add_done_callback(self._running.discard)

    async def _run(self, generation: int) -> None:
        self.calls += 1
        try:
            result = await self._func()
        except Exception as e:
            if generation == self._generation:
                self._error = e
                self._event().set()
            return

        if generation == self._generation:
            self.result = result
            self._error = None
            self._event().set()
