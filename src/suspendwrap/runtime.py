"""Values constructed by generated wrappers.

An ExecutionScope runs coroutines on an event loop in a background thread.
DeferredWrapper and StreamWrapper let non-async callers consume the result of
an async method, or the items of an async iterator, through that scope.
"""

import asyncio
import atexit
import concurrent.futures
import logging
import threading
import typing
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


async def _await(awaitable: Awaitable[T]) -> T:
    return await awaitable


class ExecutionScope:
    """Runs coroutines on an event loop owned by a daemon thread.

    The loop is started lazily on first use and stopped by ``close()`` (or at exit).
    """

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_creation_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stopping: Optional[asyncio.Event] = None
        atexit.register(self.close)

    def _start_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_creation_lock:
            if self._loop and self._loop.is_running():
                # another thread won the race
                return self._loop

            is_ready = threading.Event()

            def thread_inner():
                async def loop_inner():
                    self._loop = asyncio.get_running_loop()
                    self._stopping = asyncio.Event()
                    is_ready.set()
                    await self._stopping.wait()

                asyncio.run(loop_inner())

            thread = threading.Thread(target=thread_inner, daemon=True)
            thread.start()
            is_ready.wait()
            self._thread = thread
            logger.debug("Started execution scope loop in thread %s", thread.name)
            return self._loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._thread is not None and not self._thread.is_alive():
            logger.warning("Execution scope thread died, starting a new one")
            self._thread = None
            self._loop = None
        if self._loop is None:
            return self._start_loop()
        return self._loop

    def submit(self, awaitable: Awaitable[T]) -> "concurrent.futures.Future[T]":
        """Schedule an awaitable on the scope's loop."""
        return asyncio.run_coroutine_threadsafe(_await(awaitable), self._get_loop())

    def close(self) -> None:
        if self._thread is not None:
            if not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._stopping.set)
            self._thread.join()
            self._thread = None
            self._loop = None


class DeferredWrapper(typing.Generic[T]):
    """The eventual result of an async call, usable without awaiting.

    The call is started anew by each ``subscribe()`` or ``result()``.
    """

    def __init__(self, scope: ExecutionScope, factory: Callable[[], Awaitable[T]]):
        self._scope = scope
        self._factory = factory

    def subscribe(
        self, on_success: Callable[[T], None], on_error: Callable[[BaseException], None]
    ) -> "concurrent.futures.Future[T]":
        """Start the call, reporting its outcome to one of the callbacks.

        Returns:
            A future for the call; cancelling it cancels the call and calls neither callback.
        """
        future = self._scope.submit(self._factory())

        def done(fut: "concurrent.futures.Future[T]"):
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                on_error(exc)
            else:
                on_success(fut.result())

        future.add_done_callback(done)
        return future

    def result(self, timeout: Optional[float] = None) -> T:
        """Run the call and block until it returns."""
        return self._scope.submit(self._factory()).result(timeout)


class StreamWrapper(typing.Generic[T]):
    """An async iterator consumable with callbacks or with a regular for loop.

    Like DeferredWrapper, the stream is created anew by each ``subscribe()`` or iteration.
    """

    def __init__(self, scope: ExecutionScope, factory: Callable[[], typing.AsyncIterable[T]]):
        self._scope = scope
        self._factory = factory

    def subscribe(
        self,
        on_each: Callable[[T], None],
        on_complete: Callable[[], None],
        on_error: Callable[[BaseException], None],
    ) -> "concurrent.futures.Future[None]":
        """Consume the stream in the background, calling ``on_each`` for every item."""
        stream = self._factory()

        async def collect():
            async for item in stream:
                on_each(item)

        future = self._scope.submit(collect())

        def done(fut: "concurrent.futures.Future[None]"):
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                on_error(exc)
            else:
                on_complete()

        future.add_done_callback(done)
        return future

    def __iter__(self) -> typing.Iterator[T]:
        iterator = self._factory().__aiter__()
        exhausted = False
        try:
            while True:
                try:
                    item = self._scope.submit(iterator.__anext__()).result()
                except StopAsyncIteration:
                    exhausted = True
                    return
                yield item
        finally:
            if not exhausted and hasattr(iterator, "aclose"):
                self._scope.submit(iterator.aclose()).result()
