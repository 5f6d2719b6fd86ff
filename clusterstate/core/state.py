# clusterstate/core/state.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections import abc
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterator, Mapping

if TYPE_CHECKING:
    from clusterstate.core.blueprint import Blueprint


class CoreState(abc.Mapping):
    """
    Immutable snapshot of every cluster's state group values.

    Behaves as a read-only ``Mapping[cluster, Mapping[group, value]]``. Updates go
    through :meth:`replace`, which builds a new snapshot and reuses the mapping
    of every cluster it does not touch, so older snapshots stay valid for anyone
    still holding them.
    """

    __slots__ = ("_clusters",)

    def __init__(self, clusters: Mapping[str, Mapping[str, str]]) -> None:
        self._clusters: Mapping[str, Mapping[str, str]] = MappingProxyType(
            {name: _frozen_groups(groups) for name, groups in clusters.items()}
        )

    @classmethod
    def _from_frozen(cls, clusters: Dict[str, Mapping[str, str]]) -> "CoreState":
        state = cls.__new__(cls)
        state._clusters = MappingProxyType(clusters)
        return state

    def __getitem__(self, cluster: str) -> Mapping[str, str]:
        return self._clusters[cluster]

    def __iter__(self) -> Iterator[str]:
        return iter(self._clusters)

    def __len__(self) -> int:
        return len(self._clusters)

    def __repr__(self) -> str:
        return f"CoreState({self.to_dict()!r})"

    @property
    def clusters(self) -> Mapping[str, Mapping[str, str]]:
        return self._clusters

    def value(self, cluster: str, group: str) -> str:
        """
        Return the current value of one state group.

        :raises KeyError: If the cluster or group is unknown.
        """
        return self._clusters[cluster][group]

    def replace(self, changes: Mapping[str, Mapping[str, str]]) -> "CoreState":
        """
        Return a snapshot with ``changes`` (cluster -> group -> value) applied.

        Clusters absent from this snapshot are ignored. If no value actually
        changes, ``self`` is returned.
        """
        updated: Dict[str, Mapping[str, str]] = {}
        for cluster, values in changes.items():
            current = self._clusters.get(cluster)
            if current is None:
                continue
            if all(current.get(group) == value for group, value in values.items()):
                continue
            groups = dict(current)
            groups.update(values)
            updated[cluster] = MappingProxyType(groups)

        if not updated:
            return self

        clusters = dict(self._clusters)
        clusters.update(updated)
        return CoreState._from_frozen(clusters)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        """Deep copy into plain dicts."""
        return {name: dict(groups) for name, groups in self._clusters.items()}


def _frozen_groups(groups: Mapping[str, str]) -> Mapping[str, str]:
    if isinstance(groups, MappingProxyType):
        return groups
    return MappingProxyType(dict(groups))


def initial_state(blueprint: "Blueprint") -> CoreState:
    """Derive the starting snapshot: every group of every cluster at its initial value."""
    return CoreState(
        {cluster.name: {group.name: group.initial for group in cluster.state_groups} for cluster in blueprint}
    )
