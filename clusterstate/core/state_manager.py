# clusterstate/core/state_manager.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Dict, Optional

from clusterstate.core.blueprint import Blueprint
from clusterstate.core.event_bus import log_listener_error
from clusterstate.core.state import CoreState, initial_state
from clusterstate.interfaces.types import ErrorHandler, ListenerErrorContext, StateListener, Unsubscribe

logger = logging.getLogger(__name__)

STATE_CHANGED = "STATE_CHANGED"


class StateManager:
    """
    Single owner of the current :class:`CoreState`.

    Everything else reads snapshots by value; the snapshot is only ever swapped
    through :meth:`set_state`.
    """

    def __init__(self, blueprint: Blueprint, error_handler: Optional[ErrorHandler] = None) -> None:
        """
        :param blueprint: Source of the initial snapshot.
        :param error_handler: Receives subscriber failures. Defaults to logging them.
        """
        self._state = initial_state(blueprint)
        self._listeners: Dict[StateListener, None] = {}
        self._error_handler = error_handler or log_listener_error

    def get_state(self) -> CoreState:
        return self._state

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        """Register a state-change listener. The returned callable removes it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners[listener] = None

        def unsubscribe() -> None:
            self._listeners.pop(listener, None)

        return unsubscribe

    def set_state(self, new_state: CoreState) -> None:
        """
        Replace the snapshot and notify subscribers in registration order.

        Passing the current snapshot object is a no-op: the projector returns the
        same object whenever an event changes nothing.
        """
        if new_state is self._state:
            return
        self._state = new_state
        logger.debug("State replaced: %s", new_state)
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                try:
                    self._error_handler(e, ListenerErrorContext(STATE_CHANGED, listener))
                except Exception:
                    logger.exception("Error handler failed while reporting a state listener error")
