# tests/unit/test_event_bus.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio
import logging
from typing import Any, List, Tuple

import pytest

from clusterstate.core.errors import ListenerError
from clusterstate.core.event_bus import WILDCARD, EventBus
from clusterstate.core.events import DomainEvent
from clusterstate.interfaces.types import ListenerErrorContext

# -----------------------------------------------------------------------------
# FIXTURES
# -----------------------------------------------------------------------------


class ErrorSink:
    def __init__(self) -> None:
        self.errors: List[Tuple[BaseException, ListenerErrorContext]] = []

    def __call__(self, error: BaseException, context: ListenerErrorContext) -> None:
        self.errors.append((error, context))


@pytest.fixture
def sink() -> ErrorSink:
    return ErrorSink()


@pytest.fixture
def bus(sink) -> EventBus:
    return EventBus(sink)


def failing_listener(event: Any) -> None:
    raise RuntimeError(f"cannot handle {event.name}")


# -----------------------------------------------------------------------------
# SUBSCRIPTION
# -----------------------------------------------------------------------------


def test_publish_reaches_named_and_wildcard_listeners(bus, recorder_factory) -> None:
    named, other, everything = recorder_factory(), recorder_factory(), recorder_factory()
    bus.subscribe("A", named)
    bus.subscribe("B", other)
    bus.subscribe(WILDCARD, everything)

    bus.publish(DomainEvent("A"))
    bus.publish(DomainEvent("C"))

    assert named.names == ["A"]
    assert other.names == []
    assert everything.names == ["A", "C"]


def test_listener_order_is_registration_order_named_first(bus) -> None:
    calls = []
    bus.subscribe(WILDCARD, lambda e: calls.append("wild"))
    bus.subscribe("A", lambda e: calls.append("first"))
    bus.subscribe("A", lambda e: calls.append("second"))

    bus.publish(DomainEvent("A"))
    bus.publish(DomainEvent("A"))

    assert calls == ["first", "second", "wild"] * 2


def test_same_listener_registered_twice_is_called_once(bus, recorder) -> None:
    bus.subscribe("A", recorder)
    bus.subscribe("A", recorder)
    bus.subscribe(WILDCARD, recorder)

    bus.publish(DomainEvent("A"))

    assert recorder.names == ["A"]


def test_unsubscribe_removes_only_that_listener(bus, recorder_factory) -> None:
    kept, removed = recorder_factory(), recorder_factory()
    bus.subscribe("A", kept)
    unsubscribe = bus.subscribe("A", removed)

    unsubscribe()
    unsubscribe()
    bus.publish(DomainEvent("A"))

    assert kept.names == ["A"]
    assert removed.names == []


def test_unsubscribe_drops_empty_buckets(bus, recorder) -> None:
    unsubscribe = bus.subscribe("A", recorder)
    assert bus.has_listeners("A")
    unsubscribe()
    assert not bus.has_listeners("A")


def test_wildcard_unsubscribe(bus, recorder) -> None:
    unsubscribe = bus.subscribe(WILDCARD, recorder)
    assert bus.has_listeners(WILDCARD)
    assert bus.has_listeners("anything")
    unsubscribe()
    unsubscribe()
    bus.publish(DomainEvent("A"))
    assert recorder.received == []
    assert not bus.has_listeners(WILDCARD)


def test_listener_unsubscribing_during_publish_does_not_disturb_delivery(bus, recorder) -> None:
    handles = {}

    def one_shot(event):
        handles["self"]()

    handles["self"] = bus.subscribe("A", one_shot)
    bus.subscribe("A", recorder)

    bus.publish(DomainEvent("A"))
    bus.publish(DomainEvent("A"))

    assert recorder.names == ["A", "A"]
    assert not any(listener is one_shot for listener in bus._listeners["A"])


@pytest.mark.parametrize("name", ["", None])
def test_subscribe_requires_event_name(bus, recorder, name) -> None:
    with pytest.raises(ValueError):
        bus.subscribe(name, recorder)


def test_subscribe_requires_callable(bus) -> None:
    with pytest.raises(TypeError):
        bus.subscribe("A", "not callable")


def test_publish_without_listeners_is_noop(bus, sink) -> None:
    bus.publish(DomainEvent("A"))
    assert sink.errors == []


# -----------------------------------------------------------------------------
# FAILURE ISOLATION
# -----------------------------------------------------------------------------


def test_throwing_listener_does_not_stop_siblings(bus, sink, recorder) -> None:
    bus.subscribe("A", failing_listener)
    bus.subscribe("A", recorder)

    bus.publish(DomainEvent("A"))

    assert recorder.names == ["A"]
    assert len(sink.errors) == 1
    error, context = sink.errors[0]
    assert isinstance(error, RuntimeError)
    assert context.event_name == "A"
    assert context.listener is failing_listener


def test_default_error_handler_logs(recorder, caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    bus.subscribe("A", failing_listener)
    bus.subscribe("A", recorder)

    with caplog.at_level(logging.ERROR):
        bus.publish(DomainEvent("A"))

    assert recorder.names == ["A"]
    assert "cannot handle A" in caplog.text


def test_failing_error_handler_is_contained(recorder, caplog: pytest.LogCaptureFixture) -> None:
    def broken_handler(error, context):
        raise ValueError("handler broke")

    bus = EventBus(broken_handler)
    bus.subscribe("A", failing_listener)
    bus.subscribe("A", recorder)

    with caplog.at_level(logging.ERROR):
        bus.publish(DomainEvent("A"))

    assert recorder.names == ["A"]
    assert "Error handler failed" in caplog.text


# -----------------------------------------------------------------------------
# ASYNC LISTENERS
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_publish_does_not_wait_for_async_listeners(bus, sink) -> None:
    release = asyncio.Event()
    finished = []

    async def slow(event):
        await release.wait()
        finished.append(event.name)

    bus.subscribe("A", slow)
    bus.publish(DomainEvent("A"))

    assert finished == []
    assert bus.pending == 1

    release.set()
    await bus.drain()

    assert finished == ["A"]
    assert bus.pending == 0
    assert sink.errors == []


@pytest.mark.asyncio
async def test_async_listener_failure_is_routed(bus, sink, recorder) -> None:
    async def broken(event):
        await asyncio.sleep(0)
        raise RuntimeError("async failure")

    bus.subscribe("A", broken)
    bus.subscribe("A", recorder)

    bus.publish(DomainEvent("A"))
    await bus.drain()

    assert recorder.names == ["A"]
    assert len(sink.errors) == 1
    assert str(sink.errors[0][0]) == "async failure"
    assert sink.errors[0][1].listener is broken


def test_async_listener_without_loop_is_reported(bus, sink, recorder) -> None:
    async def needs_loop(event):
        return None

    bus.subscribe("A", needs_loop)
    bus.subscribe("A", recorder)

    bus.publish(DomainEvent("A"))

    assert recorder.names == ["A"]
    assert len(sink.errors) == 1
    assert isinstance(sink.errors[0][0], ListenerError)
