# clusterstate/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# Names of the feedback the engine publishes about its own faults.
HANDLER_NOT_FOUND = "HANDLER_NOT_FOUND"
HANDLER_FAILED = "HANDLER_FAILED"
INVALID_HANDLER_RESULT = "INVALID_HANDLER_RESULT"
LISTENER_FAILED = "LISTENER_FAILED"


@dataclass(frozen=True)
class Command:
    """
    A request submitted to the engine. Commands are never stored; the engine
    hands them to the handler registered under ``name``.
    """

    name: str
    payload: Any = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ValueError("Command name must be a non-empty string")


@dataclass(frozen=True)
class EventMetadata:
    """Traceability data that may accompany a domain event."""

    event_id: str
    timestamp: str
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None

    @classmethod
    def new(cls, correlation_id: Optional[str] = None, causation_id: Optional[str] = None) -> "EventMetadata":
        """Stamp a fresh event id and a UTC ISO-8601 timestamp."""
        return cls(
            event_id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc).isoformat(),
            correlation_id=correlation_id,
            causation_id=causation_id,
        )


@dataclass(frozen=True)
class DomainEvent:
    """
    A fact produced by a command handler. Domain events are the only thing that
    can change engine state: the projector looks their ``name`` up in the
    compiled transition table.
    """

    name: str
    payload: Any = None
    metadata: Optional[EventMetadata] = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ValueError("Event name must be a non-empty string")


class FeedbackLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Feedback:
    """
    A transient, leveled notification for whoever is listening at publish time.
    Feedback never touches state and is lost if nobody is subscribed.
    """

    name: str
    level: FeedbackLevel
    message: str
    payload: Any = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ValueError("Feedback name must be a non-empty string")
        # FeedbackLevel(...) raises ValueError for unknown levels
        object.__setattr__(self, "level", FeedbackLevel(self.level))

    @classmethod
    def info(cls, name: str, message: str, payload: Any = None) -> "Feedback":
        return cls(name, FeedbackLevel.INFO, message, payload)

    @classmethod
    def success(cls, name: str, message: str, payload: Any = None) -> "Feedback":
        return cls(name, FeedbackLevel.SUCCESS, message, payload)

    @classmethod
    def warning(cls, name: str, message: str, payload: Any = None) -> "Feedback":
        return cls(name, FeedbackLevel.WARNING, message, payload)

    @classmethod
    def error(cls, name: str, message: str, payload: Any = None) -> "Feedback":
        return cls(name, FeedbackLevel.ERROR, message, payload)
