"""Run coroutines on a background asyncio loop."""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Callable, Coroutine

logger = logging.getLogger(__name__)


class AsyncRunner:
    """Owns a daemon thread running its own event loop.

    Callbacks passed to submit() are invoked on that thread; callers
    marshal results back to Qt through a signal.
    """

    def __init__(self):
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                ready = threading.Event()

                def run():
                    asyncio.set_event_loop(loop)
                    loop.call_soon(ready.set)
                    loop.run_forever()
                    loop.close()

                self._thread = threading.Thread(target=run, name="usage-poller", daemon=True)
                self._thread.start()
                ready.wait()
                self._loop = loop
            return self._loop

    def submit(self, coro: Coroutine, on_done: Callable[[Future], None]) -> Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._ensure_loop())
        future.add_done_callback(on_done)
        return future

    def shutdown(self, timeout: float = 2.0):
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
