# clusterstate/runtime/engine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from typing import Any, List, Mapping, Optional, Tuple, Union

from clusterstate.core.blueprint import Blueprint
from clusterstate.core.errors import HandlerResultError
from clusterstate.core.event_bus import WILDCARD, EventBus
from clusterstate.core.events import (
    HANDLER_FAILED,
    HANDLER_NOT_FOUND,
    INVALID_HANDLER_RESULT,
    LISTENER_FAILED,
    Command,
    DomainEvent,
    Feedback,
)
from clusterstate.core.projector import create_projector
from clusterstate.core.state import CoreState
from clusterstate.core.state_manager import StateManager
from clusterstate.core.validations import Validator
from clusterstate.interfaces.types import (
    CommandHandlerMap,
    ErrorHandler,
    EventListener,
    FeedbackListener,
    HandlerItem,
    ListenerErrorContext,
    Projector,
    StateListener,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class Engine:
    """
    Orchestration facade around a blueprint.

    Commands go to their handler; the handler's domain events are projected
    into the state manager through the domain bus, and its feedback goes
    straight to feedback subscribers. ``dispatch`` never raises for handler,
    configuration or listener faults: they all come back as error feedback.

    ``dispatch`` is not serialized. A handler reads state through a live
    accessor and may await external work before deciding what to emit, so two
    dispatches in flight can both pass the same precondition and both emit
    events; the resulting state follows completion order, not issue order.
    Callers that issue conflicting commands concurrently must serialize them.
    """

    def __init__(
        self,
        blueprint: Union[Blueprint, Mapping[str, Any]],
        handlers: CommandHandlerMap,
        *,
        validator: Optional[Validator] = None,
        feedback_error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        """
        :param blueprint: A :class:`Blueprint` or its plain-data form.
        :param handlers: Command name to handler ``(get_state, command) -> result``.
        :param validator: Blueprint lint run at construction; findings are logged.
        :param feedback_error_handler: Policy for failing feedback subscribers.
            It must not publish feedback. Defaults to logging.
        """
        if not isinstance(blueprint, Blueprint):
            blueprint = Blueprint.from_dict(blueprint)
        self._blueprint = blueprint
        self._handlers = dict(handlers)

        for finding in (validator or Validator()).validate_blueprint(blueprint):
            logger.warning("Blueprint '%s': %s", blueprint.app_name, finding.message)

        self._feedback_bus: EventBus[Feedback] = EventBus(feedback_error_handler or self._log_feedback_error)
        self._domain_bus: EventBus[DomainEvent] = EventBus(self._report_listener_error)
        # Outside observers; published only after the domain bus has projected.
        self._committed_bus: EventBus[DomainEvent] = EventBus(self._report_listener_error)
        self._state_manager = StateManager(blueprint, error_handler=self._report_listener_error)
        self._projector: Projector = create_projector(blueprint)

        self._domain_bus.subscribe(WILDCARD, self._project)

    @property
    def blueprint(self) -> Blueprint:
        return self._blueprint

    @property
    def command_names(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def get_state(self) -> CoreState:
        return self._state_manager.get_state()

    def subscribe_to_state(self, listener: StateListener) -> Unsubscribe:
        return self._state_manager.subscribe(listener)

    def subscribe_to_feedback(self, event_name: str, listener: FeedbackListener) -> Unsubscribe:
        """Listen for feedback named ``event_name``, or all feedback with ``"*"``."""
        return self._feedback_bus.subscribe(event_name, listener)

    def subscribe_to_events(self, event_name: str, listener: EventListener) -> Unsubscribe:
        """
        Observe domain events after they have been projected. Useful for
        collaborators that record events; listeners cannot influence state.
        """
        return self._committed_bus.subscribe(event_name, listener)

    async def dispatch(self, command: Union[Command, str]) -> None:
        """
        Run the handler for ``command`` and route what it returns.

        Always completes normally unless the calling task is cancelled.
        """
        name = command.name if isinstance(command, Command) else command
        handler = self._handlers.get(name) if name and isinstance(name, str) else None
        if handler is None:
            logger.warning("No handler registered for command '%s'", name)
            self._feedback_bus.publish(
                Feedback.error(
                    HANDLER_NOT_FOUND,
                    f"Command handler for '{name}' does not exist.",
                    {"command": name},
                )
            )
            return
        if isinstance(command, str):
            command = Command(command)

        logger.debug("Dispatching command '%s'", command.name)
        try:
            result = handler(self.get_state, command)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception("Handler for '%s' raised", command.name)
            self._feedback_bus.publish(
                Feedback.error(
                    HANDLER_FAILED,
                    f"Command handler for '{command.name}' failed: {e}",
                    {"command": command.name, "error": str(e), "error_type": type(e).__name__},
                )
            )
            return

        try:
            items = _normalize_result(result)
        except HandlerResultError as e:
            logger.error("Handler for '%s' returned an invalid result: %s", command.name, e)
            self._feedback_bus.publish(
                Feedback.error(
                    INVALID_HANDLER_RESULT,
                    f"Command handler for '{command.name}' returned an invalid result: {e}",
                    {"command": command.name, "error": str(e)},
                )
            )
            return

        self._route(items)
        logger.debug("Command '%s' produced %d item(s)", command.name, len(items))

    async def drain(self) -> None:
        """Wait for awaitable listeners still running on any bus."""
        await self._domain_bus.drain()
        await self._committed_bus.drain()
        await self._feedback_bus.drain()

    def _route(self, items: List[HandlerItem]) -> None:
        for item in items:
            if isinstance(item, Feedback):
                self._feedback_bus.publish(item)
            else:
                self._domain_bus.publish(item)
                self._committed_bus.publish(item)

    def _project(self, event: DomainEvent) -> None:
        state = self._projector(self._state_manager.get_state(), event)
        self._state_manager.set_state(state)

    def _report_listener_error(self, error: BaseException, context: ListenerErrorContext) -> None:
        logger.error(
            "Listener for '%s' failed: %s",
            context.event_name,
            error,
            exc_info=(type(error), error, error.__traceback__),
        )
        self._feedback_bus.publish(
            Feedback.error(
                LISTENER_FAILED,
                f"A listener for '{context.event_name}' failed.",
                {"event": context.event_name, "error": str(error), "error_type": type(error).__name__},
            )
        )

    @staticmethod
    def _log_feedback_error(error: BaseException, context: ListenerErrorContext) -> None:
        # Terminal: republishing here could loop forever.
        logger.error(
            "Feedback listener for '%s' failed; not republished: %s",
            context.event_name,
            error,
            exc_info=(type(error), error, error.__traceback__),
        )


def _normalize_result(result: Any) -> List[HandlerItem]:
    if result is None:
        return []
    if isinstance(result, (DomainEvent, Feedback)):
        return [result]
    if not isinstance(result, (list, tuple)):
        raise HandlerResultError(f"expected DomainEvent, Feedback or a list of them, got {type(result).__name__}")
    items = list(result)
    for item in items:
        if not isinstance(item, (DomainEvent, Feedback)):
            raise HandlerResultError(f"unexpected item of type {type(item).__name__}")
    return items
