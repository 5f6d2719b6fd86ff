"""clusterstate: blueprint-driven, event-sourced state orchestration

Application behaviour is declared as a static blueprint of clusters, each a set
of enumerated state groups with a transition table. Runtime changes flow
through a single pipeline:

    Command -> handler -> DomainEvent -> projector -> CoreState

with a parallel, non-persisted feedback channel for transient notifications.

Responsibilities:
    - Blueprint declaration and structural checks
    - Compilation of transition tables into a pure projector
    - Command dispatch with async handlers and error containment
    - State and feedback subscriptions

Error Handling:
    - Construction faults raise ``ClusterStateError`` subclasses
    - Handler, configuration and listener faults become error feedback

Logging:
    - Standard ``logging`` loggers per module; no handlers are installed
"""

__version__ = "0.1.0"

# Import order matters to avoid circular dependencies
from .core.errors import BlueprintError, ClusterStateError, HandlerResultError, ListenerError, ValidationError
from .core.blueprint import Blueprint, Cluster, StateGroup, TransitionRule
from .core.events import Command, DomainEvent, EventMetadata, Feedback, FeedbackLevel
from .core.state import CoreState, initial_state
from .core.event_bus import WILDCARD, EventBus
from .core.projector import CompiledProjector, create_projector
from .core.state_manager import StateManager
from .core.validations import Validator
from .runtime.engine import Engine

__all__ = [
    # Errors
    "ClusterStateError",
    "BlueprintError",
    "ValidationError",
    "HandlerResultError",
    "ListenerError",
    # Blueprint
    "Blueprint",
    "Cluster",
    "StateGroup",
    "TransitionRule",
    # Messages
    "Command",
    "DomainEvent",
    "EventMetadata",
    "Feedback",
    "FeedbackLevel",
    # State
    "CoreState",
    "initial_state",
    # Components
    "WILDCARD",
    "EventBus",
    "CompiledProjector",
    "create_projector",
    "StateManager",
    "Validator",
    "Engine",
]
