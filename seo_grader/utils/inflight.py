"""Registry of audits currently in flight, keyed by normalized URL."""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Share one running task between all concurrent callers of the same key.

    The lookup and the registration happen under one lock and before the
    task gets a chance to run, so two callers can never both see the key as
    absent.  The entry is removed when the task finishes, whatever the
    outcome.

    Usage::

        registry = InFlightRegistry()
        result = await registry.run(key, lambda: do_audit(url))
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Await the in-flight task for *key*, starting it via *factory* if needed."""
        with self._lock:
            task = self._pending.get(key)
            if task is None:
                task = asyncio.ensure_future(self._run_and_release(key, factory))
                self._pending[key] = task
                logger.debug("Registered in-flight task for %s", key)
            else:
                logger.info("Joining in-flight audit for %s", key)
        # A caller that gives up must not cancel the work others wait on.
        return await asyncio.shield(task)

    async def _run_and_release(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await factory()
        finally:
            with self._lock:
                if self._pending.get(key) is asyncio.current_task():
                    del self._pending[key]
            logger.debug("Released in-flight task for %s", key)

    def pending(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
