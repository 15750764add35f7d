# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Compute in-place updates of a cluster and reject immutable changes."""

import copy
from dataclasses import dataclass, field
from typing import Dict, List

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
import cse_cluster_manager.common.utils.core_utils as core_utils
from cse_cluster_manager.exception.exceptions import MutabilityViolationError
from cse_cluster_manager.rde.constants import EntityKey
from cse_cluster_manager.rde.constants import SpecKey
from cse_cluster_manager.rde.models.cluster_models import ClusterDesiredState
from cse_cluster_manager.rde.models.cluster_models import WorkerPool
import cse_cluster_manager.rde.spec_builder as spec_builder


@dataclass
class WorkerPoolChanges:
    """Changes to the worker pool collection, pools are matched by name.

    updated maps a pool name to a merge patch of its mutable fields, a None
    value removes the field (e.g. machineCount when switching to
    autoscaling).
    """

    added: Dict[str, WorkerPool] = field(default_factory=dict)
    removed: List[str] = field(default_factory=list)
    updated: Dict[str, dict] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)


@dataclass
class Patch:
    """Minimal change to the spec subtree of a cluster entity.

    spec is a JSON merge patch relative to the spec subtree and holds only
    the fields that change. Worker pool changes are kept apart since the
    pools are stored as a list.
    """

    spec: dict = field(default_factory=dict)
    worker_pools: WorkerPoolChanges = field(default_factory=WorkerPoolChanges)  # noqa: E501

    def is_empty(self) -> bool:
        return not self.spec and self.worker_pools.is_empty()

    def apply(self, document):
        """Apply the patch to a cluster entity document.

        Every field the patch does not mention, including the status
        subtree and fields unknown to this version, is carried over
        unchanged. Existing pools keep their position, added pools are
        appended in name order.

        :param dict document: freshly read cluster entity document, not
            modified.

        :return: patched copy of the document
        :rtype: dict
        """
        patched = copy.deepcopy(document)
        spec = core_utils.apply_merge_patch(
            patched.get(EntityKey.SPEC.value) or {}, self.spec)

        if not self.worker_pools.is_empty():
            pools = []
            for entry in spec.get(SpecKey.WORKER_POOLS.value) or []:
                name = entry.get('name') if isinstance(entry, dict) else None
                if name in self.worker_pools.removed:
                    continue
                if name in self.worker_pools.updated:
                    entry = core_utils.apply_merge_patch(
                        entry, self.worker_pools.updated[name])
                pools.append(entry)
            for name in sorted(self.worker_pools.added):
                pool = self.worker_pools.added[name]
                pools.append(core_utils.remove_none_values(pool.to_dict()))
            spec[SpecKey.WORKER_POOLS.value] = pools

        patched[EntityKey.SPEC.value] = spec
        return patched


def find_diff_fields(input_dict: dict, reference_dict: dict,
                     exclude_fields: list = None) -> dict:
    """Compare two nested dictionaries field by field.

    Keys missing on one side compare as None, so clearing an optional
    field is reported as a difference.

    :param dict input_dict: requested values
    :param dict reference_dict: current values
    :param list exclude_fields: flattened keys to skip

    :return: flattened key to {'expected': current, 'actual': requested}
    :rtype: dict
    """
    if exclude_fields is None:
        exclude_fields = []
    flat_input = core_utils.flatten_dictionary(input_dict)
    flat_reference = core_utils.flatten_dictionary(reference_dict)
    keys = (set(flat_input.keys()) | set(flat_reference.keys())) \
        - set(exclude_fields)
    result = {}
    for key in keys:
        expected = flat_reference.get(key)
        actual = flat_input.get(key)
        if actual != expected:
            result[key] = {
                "expected": expected,
                "actual": actual
            }
    return result


def _to_comparable_dict(state: ClusterDesiredState):
    comparable = {
        key: value
        for key, value in spec_builder.to_spec_dict(state).items()
        if key not in cluster_constants.DIFF_EXCLUDED_SPEC_KEYS
    }
    comparable[EntityKey.METADATA.value] = {
        EntityKey.NAME.value: state.name,
        EntityKey.ORG_NAME.value: state.org,
    }
    return comparable


def _diff_worker_pools(current: ClusterDesiredState,
                       desired: ClusterDesiredState,
                       violations: dict) -> WorkerPoolChanges:
    changes = WorkerPoolChanges()
    current_names = set(current.worker_pools.keys())
    desired_names = set(desired.worker_pools.keys())

    for name in sorted(desired_names - current_names):
        changes.added[name] = desired.worker_pools[name]
    changes.removed = sorted(current_names - desired_names)

    for name in sorted(current_names & desired_names):
        diff_fields = find_diff_fields(
            core_utils.remove_none_values(
                desired.worker_pools[name].to_dict()),
            core_utils.remove_none_values(
                current.worker_pools[name].to_dict()))
        pool_patch = {}
        for key, value in diff_fields.items():
            if key in cluster_constants.VALID_WORKER_POOL_UPDATE_FIELDS:
                pool_patch[key] = value['actual']
            else:
                violations[f"{SpecKey.WORKER_POOLS.value}[{name}].{key}"] = value  # noqa: E501
        if pool_patch:
            changes.updated[name] = pool_patch
    return changes


def diff(current: ClusterDesiredState, desired: ClusterDesiredState) -> Patch:
    """Compute the patch that moves a cluster from current to desired.

    Only mutable fields may differ: control plane and worker pool machine
    counts, autoscaler bounds, auto repair and node health check. Worker
    pools may also be added or removed. The order of worker pools never
    matters. The credential and the operations timeout are not compared.

    :param ClusterDesiredState current: desired state stored in the cluster
        entity, read immediately before calling this.
    :param ClusterDesiredState desired: requested desired state

    :return: the minimal patch, empty if nothing changes

    :rtype: Patch

    :raises MutabilityViolationError: if any immutable field differs. The
        error lists every offending field.
    """
    violations = {}
    spec_patch = {}
    diff_fields = find_diff_fields(_to_comparable_dict(desired),
                                   _to_comparable_dict(current))
    for key, value in diff_fields.items():
        if key in cluster_constants.VALID_UPDATE_FIELDS:
            spec_patch[key] = value['actual']
        else:
            violations[key] = value

    pool_changes = _diff_worker_pools(current, desired, violations)
    if violations:
        raise MutabilityViolationError(violations)
    return Patch(spec=core_utils.unflatten_dictionary(spec_patch),
                 worker_pools=pool_changes)
