# clusterstate/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import List

from clusterstate.core.blueprint import Blueprint, Cluster
from clusterstate.core.errors import ValidationError
from clusterstate.interfaces.types import ValidationResult


class Validator:
    """
    Checks the part of a blueprint that construction does not: whether every
    transition target names a declared state group and one of its allowed
    values.

    Such a target is accepted by the engine and installs the value as-is when
    its event fires, so findings are warnings unless the caller asks for
    ``strict`` validation.
    """

    def validate_blueprint(self, blueprint: Blueprint, strict: bool = False) -> List[ValidationResult]:
        """
        :param blueprint: Blueprint to inspect.
        :param strict: Raise instead of returning when there are findings.
        :raises ValidationError: In strict mode, if any target is undeclared.
        """
        results = self.find_undeclared_targets(blueprint)
        if strict and results:
            raise ValidationError(
                "\n".join(result.message for result in results),
                {"findings": [result.context for result in results]},
            )
        return results

    def find_undeclared_targets(self, blueprint: Blueprint) -> List[ValidationResult]:
        results: List[ValidationResult] = []
        for cluster in blueprint:
            results.extend(_DefaultValidationRules.check_cluster_targets(cluster))
        return results


class _DefaultValidationRules:
    @staticmethod
    def check_cluster_targets(cluster: Cluster) -> List[ValidationResult]:
        results = []
        for event_name, rule in cluster.transitions.items():
            for group_name, value in rule.target.items():
                context = {"cluster": cluster.name, "event": event_name, "group": group_name, "value": value}
                group = cluster.group(group_name)
                if group is None:
                    results.append(
                        ValidationResult(
                            "warning",
                            f"Transition '{event_name}' in cluster '{cluster.name}' targets undeclared "
                            f"state group '{group_name}'",
                            context,
                        )
                    )
                elif not group.allows(value):
                    results.append(
                        ValidationResult(
                            "warning",
                            f"Transition '{event_name}' in cluster '{cluster.name}' sets '{group_name}' to "
                            f"'{value}', which is not one of {list(group.states)}",
                            context,
                        )
                    )
        return results
