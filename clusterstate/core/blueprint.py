# clusterstate/core/blueprint.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Static declaration of an application's state machines.

A blueprint is a set of clusters. Each cluster is one orthogonal region made of
state groups (enumerated dimensions with an initial value) and a transition
table keyed by domain event name. Everything here is immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

from clusterstate.core.errors import BlueprintError


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class StateGroup:
    """
    One enumerated dimension of a cluster, with a fixed ordered set of allowed
    values and exactly one initial value.
    """

    name: str
    states: Tuple[str, ...]
    initial: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise BlueprintError("State group name must be a non-empty string")
        object.__setattr__(self, "states", tuple(self.states))
        if not all(isinstance(state, str) for state in self.states):
            raise BlueprintError(f"State group '{self.name}' states must be strings", {"group": self.name})
        if not self.states:
            raise BlueprintError(f"State group '{self.name}' declares no states", {"group": self.name})
        if len(set(self.states)) != len(self.states):
            raise BlueprintError(f"State group '{self.name}' declares duplicate states", {"group": self.name})
        if self.initial not in self.states:
            raise BlueprintError(
                f"Initial state '{self.initial}' of group '{self.name}' is not one of {list(self.states)}",
                {"group": self.name, "initial": self.initial},
            )

    def allows(self, value: str) -> bool:
        return value in self.states


@dataclass(frozen=True)
class TransitionRule:
    """
    Target values written into a cluster when the rule's event is projected.
    Groups the target does not mention are left untouched.
    """

    target: Mapping[str, str] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", _freeze(self.target))
        for group, value in self.target.items():
            if not isinstance(value, str):
                raise BlueprintError(f"Target value for '{group}' must be a string", {"group": group})


@dataclass(frozen=True)
class Cluster:
    """A named region owning state groups and a transition table."""

    name: str
    state_groups: Tuple[StateGroup, ...]
    transitions: Mapping[str, TransitionRule] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise BlueprintError("Cluster name must be a non-empty string")
        object.__setattr__(self, "state_groups", tuple(self.state_groups))
        seen = set()
        for group in self.state_groups:
            if group.name in seen:
                raise BlueprintError(
                    f"Cluster '{self.name}' declares state group '{group.name}' twice",
                    {"cluster": self.name, "group": group.name},
                )
            seen.add(group.name)
        object.__setattr__(self, "transitions", _freeze(self.transitions))

    @property
    def group_names(self) -> Tuple[str, ...]:
        return tuple(group.name for group in self.state_groups)

    def group(self, name: str) -> Optional[StateGroup]:
        for group in self.state_groups:
            if group.name == name:
                return group
        return None

    def rule_for(self, event_name: str) -> Optional[TransitionRule]:
        return self.transitions.get(event_name)


@dataclass(frozen=True)
class Blueprint:
    """
    The immutable declaration an engine is built from.

    Cluster names are unique within a blueprint; iteration yields clusters in
    declaration order.
    """

    app_name: str
    version: str
    clusters: Tuple[Cluster, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "clusters", tuple(self.clusters))
        seen = set()
        for cluster in self.clusters:
            if cluster.name in seen:
                raise BlueprintError(f"Duplicate cluster '{cluster.name}'", {"cluster": cluster.name})
            seen.add(cluster.name)

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self.clusters)

    @property
    def cluster_names(self) -> Tuple[str, ...]:
        return tuple(cluster.name for cluster in self.clusters)

    def cluster(self, name: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if cluster.name == name:
                return cluster
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Blueprint":
        """
        Build a blueprint from its plain-data form::

            {"version": "1.0", "appName": "...",
             "clusters": {"Player": {"stateGroups": {"playback": {"initial": "stopped",
                                                                  "states": [...]}},
                                     "transitions": {"on": {"EVENT": {"target": {...}}}}}}}

        :raises BlueprintError: If a required key is missing or has the wrong type.
        """
        _expect_mapping(data, "blueprint")
        clusters_data = _require(data, "clusters", "blueprint")
        _expect_mapping(clusters_data, "clusters")

        clusters = []
        for cluster_name, cluster_data in clusters_data.items():
            path = f"clusters.{cluster_name}"
            _expect_mapping(cluster_data, path)
            groups_data = _require(cluster_data, "stateGroups", path)
            _expect_mapping(groups_data, f"{path}.stateGroups")

            groups = []
            for group_name, group_data in groups_data.items():
                group_path = f"{path}.stateGroups.{group_name}"
                _expect_mapping(group_data, group_path)
                states = _require(group_data, "states", group_path)
                if isinstance(states, (str, bytes)) or not isinstance(states, Sequence):
                    raise BlueprintError(f"'{group_path}.states' must be a list of strings", {"path": group_path})
                for state in states:
                    _expect_str(state, f"{group_path}.states")
                initial = _require(group_data, "initial", group_path)
                _expect_str(initial, f"{group_path}.initial")
                groups.append(
                    StateGroup(
                        name=group_name,
                        states=tuple(states),
                        initial=initial,
                        description=group_data.get("description"),
                    )
                )

            transitions_data = cluster_data.get("transitions", {})
            _expect_mapping(transitions_data, f"{path}.transitions")
            on = transitions_data.get("on", {})
            _expect_mapping(on, f"{path}.transitions.on")
            rules = {}
            for event_name, rule_data in on.items():
                rule_path = f"{path}.transitions.on.{event_name}"
                _expect_mapping(rule_data, rule_path)
                target = _require(rule_data, "target", rule_path)
                _expect_mapping(target, f"{rule_path}.target")
                for target_group, value in target.items():
                    _expect_str(value, f"{rule_path}.target.{target_group}")
                rules[event_name] = TransitionRule(target=target, description=rule_data.get("description"))

            clusters.append(
                Cluster(
                    name=cluster_name,
                    state_groups=tuple(groups),
                    transitions=rules,
                    description=cluster_data.get("description"),
                )
            )

        return cls(
            app_name=data.get("appName", ""),
            version=str(data.get("version", "")),
            clusters=tuple(clusters),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the plain-data form accepted by :meth:`from_dict`."""
        clusters: Dict[str, Any] = {}
        for cluster in self.clusters:
            entry: Dict[str, Any] = {
                "stateGroups": {
                    group.name: _without_none(
                        {"initial": group.initial, "states": list(group.states), "description": group.description}
                    )
                    for group in cluster.state_groups
                },
                "transitions": {
                    "on": {
                        event_name: _without_none({"target": dict(rule.target), "description": rule.description})
                        for event_name, rule in cluster.transitions.items()
                    }
                },
            }
            if cluster.description is not None:
                entry["description"] = cluster.description
            clusters[cluster.name] = entry
        return {"version": self.version, "appName": self.app_name, "clusters": clusters}


def _require(data: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise BlueprintError(f"Missing '{key}' in {path}", {"path": path, "key": key})
    return data[key]


def _expect_mapping(value: Any, path: str) -> None:
    if not isinstance(value, Mapping):
        raise BlueprintError(f"'{path}' must be a mapping, got {type(value).__name__}", {"path": path})


def _expect_str(value: Any, path: str) -> None:
    if not isinstance(value, str):
        raise BlueprintError(f"'{path}' must be a string, got {type(value).__name__}", {"path": path})


def _without_none(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in entry.items() if value is not None}
