# clusterstate/core/event_bus.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Set, TypeVar

from clusterstate.core.errors import ListenerError
from clusterstate.interfaces.types import ErrorHandler, ListenerErrorContext, Unsubscribe

logger = logging.getLogger(__name__)

WILDCARD = "*"

E = TypeVar("E")


def log_listener_error(error: BaseException, context: ListenerErrorContext) -> None:
    """Default error policy: log the failure with its traceback."""
    logger.error(
        "Unhandled error in listener %r for event '%s': %s",
        context.listener,
        context.event_name,
        error,
        exc_info=(type(error), error, error.__traceback__),
    )


class EventBus(Generic[E]):
    """
    Synchronous publish/subscribe over named events.

    Listeners are registered per event name or for every event with
    :data:`WILDCARD`. A listener that raises, or returns an awaitable that later
    fails, is reported to the bus's error handler and never affects its siblings
    or the publisher.
    """

    def __init__(self, error_handler: Optional[ErrorHandler] = None) -> None:
        """
        :param error_handler: Called with ``(error, ListenerErrorContext)`` for every
            listener failure. Defaults to :func:`log_listener_error`.
        """
        self._error_handler = error_handler or log_listener_error
        # dicts double as insertion-ordered sets
        self._listeners: Dict[str, Dict[Callable[[E], Any], None]] = {}
        self._wildcard: Dict[Callable[[E], Any], None] = {}
        self._tasks: Set[asyncio.Future] = set()

    def subscribe(self, event_name: str, listener: Callable[[E], Any]) -> Unsubscribe:
        """
        Register ``listener`` for ``event_name`` (or every event with ``"*"``).

        :return: A callable that removes exactly this registration. Calling it
            again does nothing.
        """
        if not event_name or not isinstance(event_name, str):
            raise ValueError("event_name must be a non-empty string")
        if not callable(listener):
            raise TypeError("listener must be callable")

        if event_name == WILDCARD:
            self._wildcard[listener] = None

            def unsubscribe() -> None:
                self._wildcard.pop(listener, None)

            return unsubscribe

        self._listeners.setdefault(event_name, {})[listener] = None

        def unsubscribe() -> None:
            bucket = self._listeners.get(event_name)
            if bucket is None:
                return
            bucket.pop(listener, None)
            if not bucket:
                del self._listeners[event_name]

        return unsubscribe

    def has_listeners(self, event_name: str) -> bool:
        if event_name == WILDCARD:
            return bool(self._wildcard)
        return bool(self._wildcard) or event_name in self._listeners

    def publish(self, event: E) -> None:
        """
        Deliver ``event`` to its listeners, then to wildcard listeners.

        Never raises for listener failures and never waits for awaitable
        listeners to finish; those run as tasks on the current event loop.
        """
        name = event.name
        specific = self._listeners.get(name)
        if not specific and not self._wildcard:
            return

        listeners = dict.fromkeys(specific or ())
        listeners.update(self._wildcard)

        for listener in list(listeners):
            context = ListenerErrorContext(name, listener)
            try:
                result = listener(event)
            except Exception as e:
                self._report(e, context)
                continue
            if inspect.isawaitable(result):
                self._schedule(result, context)

    @property
    def pending(self) -> int:
        """Number of awaitable listener results still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding awaitable listener to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, awaitable: Awaitable[Any], context: ListenerErrorContext) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._report(
                ListenerError(
                    f"Listener for event '{context.event_name}' returned an awaitable outside a running event loop",
                    {"event_name": context.event_name},
                ),
                context,
            )
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(fut: asyncio.Future) -> None:
            self._tasks.discard(fut)
            if fut.cancelled():
                return
            error = fut.exception()
            if error is not None:
                self._report(error, context)

        task.add_done_callback(_done)

    def _report(self, error: BaseException, context: ListenerErrorContext) -> None:
        try:
            self._error_handler(error, context)
        except Exception:
            logger.exception("Error handler failed while reporting a listener error for '%s'", context.event_name)
