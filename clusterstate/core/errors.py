# clusterstate/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Dict, Optional


class ClusterStateError(Exception):
    """
    Base exception class for errors raised by the clusterstate engine.

    :param message: Human readable description.
    :param details: Optional structured context about the failure.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = details or {}


class BlueprintError(ClusterStateError, ValueError):
    """
    Raised when a blueprint is structurally malformed and cannot be compiled.
    """


class ValidationError(ClusterStateError):
    """
    Raised by strict blueprint validation when transition targets fall outside
    the declared state groups.
    """


class HandlerResultError(ClusterStateError, TypeError):
    """
    Raised when a command handler returns something other than domain events
    and feedback.
    """


class ListenerError(ClusterStateError):
    """
    Raised (and reported to a bus error handler) when a listener cannot be run,
    such as an awaitable listener published outside a running event loop.
    """
