"""In-process runner for fire-and-forget work.

Webhook intake and manual resends return to the caller before the
notification pipeline runs. Work handed to the runner executes on the
current event loop as an ``asyncio.Task`` wrapped in its own error boundary:
a failure is logged and the task resolves to ``None`` instead of raising into
whoever awaits it. Tasks are kept referenced until they finish so the loop
cannot garbage-collect them mid-flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, TypeVar

from app.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackgroundTaskRunner:
    """Tracks detached tasks and gives each one an error boundary."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def submit(
        self,
        coro: Coroutine[object, object, T],
        *,
        name: str,
        call_id: str | None = None,
    ) -> asyncio.Task[T | None]:
        """Schedule ``coro`` without waiting for it.

        The returned task may be awaited later (the orchestrator rejoins its
        video task this way); awaiting it never raises.
        """

        async def _guarded() -> T | None:
            try:
                return await coro
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Background task failed: %s",
                    name,
                    extra=build_log_context(call_id=call_id, stage=name, method="background"),
                )
                return None

        task = asyncio.create_task(_guarded(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def pending_names(self) -> list[str]:
        return sorted(task.get_name() for task in self._tasks)

    async def drain(self, *, timeout: float | None = None) -> None:
        """Wait for every tracked task, including tasks submitted while waiting."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        while self._tasks:
            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - loop.time())
            done, _ = await asyncio.wait(set(self._tasks), timeout=remaining)
            if deadline is not None and loop.time() >= deadline and self._tasks:
                logger.warning(
                    "Background drain timed out with %s task(s) pending", len(self._tasks)
                )
                return
            for task in done:
                self._tasks.discard(task)
