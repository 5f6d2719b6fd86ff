# clusterstate/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Awaitable, Callable, Dict, Mapping, NamedTuple, Optional, Sequence, Union

from clusterstate.core.events import Command, DomainEvent, Feedback
from clusterstate.core.state import CoreState


class ValidationResult(NamedTuple):
    severity: str
    message: str
    context: Dict[str, Any]


class ListenerErrorContext(NamedTuple):
    event_name: str
    listener: Callable[..., Any]


# Callback Types
Unsubscribe = Callable[[], None]
ErrorHandler = Callable[[BaseException, ListenerErrorContext], None]
StateListener = Callable[[CoreState], None]
FeedbackListener = Callable[[Feedback], Optional[Awaitable[None]]]
EventListener = Callable[[DomainEvent], Optional[Awaitable[None]]]

# Handlers and projection
GetState = Callable[[], CoreState]
HandlerItem = Union[DomainEvent, Feedback]
HandlerResult = Union[None, HandlerItem, Sequence[HandlerItem]]
CommandHandler = Callable[[GetState, Command], Union[HandlerResult, Awaitable[HandlerResult]]]
CommandHandlerMap = Mapping[str, CommandHandler]
Projector = Callable[[CoreState, DomainEvent], CoreState]
