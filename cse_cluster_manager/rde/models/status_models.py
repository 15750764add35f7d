# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Observed state of a cluster as reported by the remote engine."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dataclasses_json import dataclass_json, LetterCase, Undefined

from cse_cluster_manager.common.constants.shared_constants import ClusterPhase


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class ClusterEvent:
    name: Optional[str] = None
    occurred_at: Optional[str] = None
    vcd_resource_name: Optional[str] = None
    additional_details: Optional[dict] = None

    def __str__(self):
        if self.additional_details:
            return f"{self.name}: {self.additional_details}"
        return str(self.name)


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class NodePoolStatus:
    name: str
    desired_replicas: Optional[int] = None
    available_replicas: Optional[int] = None


@dataclass
class ClusterObservedState:
    """Read-only view of the status subtree of a cluster entity.

    phase is None while the remote engine has not picked up the entity.
    auto_repair_on_errors and marked_for_delete are read from the desired
    state of the same entity, they drive how the status is interpreted.
    """

    phase: Optional[ClusterPhase] = None
    kubernetes_version: Optional[str] = None
    tkg_version: Optional[str] = None
    capvcd_version: Optional[str] = None
    cpi_version: Optional[str] = None
    csi_version: Optional[str] = None
    vcd_ke_version: Optional[str] = None
    events: List[ClusterEvent] = field(default_factory=list)
    errors: List[ClusterEvent] = field(default_factory=list)
    cluster_resource_set_bindings: List[str] = field(default_factory=list)
    node_pools: Dict[str, NodePoolStatus] = field(default_factory=dict)
    kubeconfig: Optional[str] = field(default=None, repr=False)
    auto_repair_on_errors: bool = False
    marked_for_delete: bool = False

    def to_display_dict(self):
        """Summarize the state for printing, the kubeconfig is left out."""
        return {
            'phase': self.phase.value if self.phase else None,
            'kubernetes_version': self.kubernetes_version,
            'tkg_version': self.tkg_version,
            'capvcd_version': self.capvcd_version,
            'cpi_version': self.cpi_version,
            'csi_version': self.csi_version,
            'node_pools': {
                name: {'desired': pool.desired_replicas,
                       'available': pool.available_replicas}
                for name, pool in sorted(self.node_pools.items())
            },
            'cluster_resource_set_bindings': list(
                self.cluster_resource_set_bindings),
            'events': [str(event) for event in self.events],
            'errors': [str(error) for error in self.errors],
        }
