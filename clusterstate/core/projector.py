# clusterstate/core/projector.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Dict, List, NamedTuple, Tuple

from clusterstate.core.blueprint import Blueprint, TransitionRule
from clusterstate.core.events import DomainEvent
from clusterstate.core.state import CoreState


class CompiledRule(NamedTuple):
    cluster: str
    rule: TransitionRule


class CompiledProjector:
    """
    Pure reducer compiled from a blueprint.

    The transition tables of every cluster are folded into a single map from
    event name to the ``(cluster, rule)`` pairs that react to it, so projecting
    an event is one dictionary lookup rather than a scan of the blueprint.
    """

    def __init__(self, blueprint: Blueprint) -> None:
        table: Dict[str, List[CompiledRule]] = {}
        for cluster in blueprint:
            for event_name, rule in cluster.transitions.items():
                table.setdefault(event_name, []).append(CompiledRule(cluster.name, rule))
        self._table: Dict[str, Tuple[CompiledRule, ...]] = {name: tuple(rules) for name, rules in table.items()}

    @property
    def event_names(self) -> Tuple[str, ...]:
        return tuple(self._table)

    def rules_for(self, event_name: str) -> Tuple[CompiledRule, ...]:
        return self._table.get(event_name, ())

    def __call__(self, state: CoreState, event: DomainEvent) -> CoreState:
        """
        Apply ``event`` to ``state``.

        Events with no rule are irrelevant to state and return ``state`` itself.
        Matching rules overwrite only the groups they name, in clusters present in
        ``state``; the result is ``state`` again if no value changed.
        """
        rules = self._table.get(event.name)
        if not rules:
            return state

        changes: Dict[str, Dict[str, str]] = {}
        for cluster, rule in rules:
            changes.setdefault(cluster, {}).update(rule.target)
        return state.replace(changes)


def create_projector(blueprint: Blueprint) -> CompiledProjector:
    """Compile ``blueprint`` into a projector. Done once per engine."""
    return CompiledProjector(blueprint)
