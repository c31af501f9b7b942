"""Change notifications with disposable subscriptions."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

LOGGER = logging.getLogger(__name__)


class Disposable:
    """Handle returned by :meth:`EventEmitter.subscribe`; call or :meth:`dispose` it to unsubscribe."""

    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Callable[[], None] | None = on_dispose

    def dispose(self) -> None:
        if self._on_dispose is not None:
            self._on_dispose()
            self._on_dispose = None

    __call__ = dispose


class EventEmitter:
    """Fan a notification out to listeners, in subscription order.

    ``fire`` never waits on listeners beyond calling them; a listener raising is logged and the rest still run. A
    coroutine function listener is scheduled as a task on the running loop, :meth:`wait_for_listeners` awaits those.

    """

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._listeners: list[Callable[..., Any]] = []
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, listener: Callable[..., Any]) -> Disposable:
        self._listeners.append(listener)
        return Disposable(lambda: self._remove(listener))

    def _remove(self, listener: Callable[..., Any]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def fire(self, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(*args)
                if inspect.iscoroutine(result):
                    self._schedule(listener, result)
            except Exception:
                LOGGER.exception("listener %r of %s failed", listener, self.name)

    def _schedule(self, listener: Callable[..., Any], coro: Coroutine[Any, Any, Any]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            raise
        self._pending.add(task)
        task.add_done_callback(functools.partial(self._listener_done, listener))

    def _listener_done(self, listener: Callable[..., Any], task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            LOGGER.error("listener %r of %s failed", listener, self.name, exc_info=exc)

    async def wait_for_listeners(self) -> None:
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def dispose(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = [
    "Disposable",
    "EventEmitter",
]
