# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Desired state of a cluster as declared by the caller."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from dataclasses_json import dataclass_json, LetterCase, Undefined

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
from cse_cluster_manager.rde.models.status_models import ClusterObservedState


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class ControlPlane:
    machine_count: int = cluster_constants.DEFAULT_CONTROL_PLANE_MACHINE_COUNT
    disk_size_gi: int = cluster_constants.DEFAULT_DISK_SIZE_GI
    sizing_policy_id: Optional[str] = None
    placement_policy_id: Optional[str] = None
    storage_profile_id: Optional[str] = None
    ip: Optional[str] = None


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class WorkerPool:
    """A named group of worker nodes sharing the same sizing.

    A pool is either fixed size (machine_count) or autoscaled (both
    autoscaler bounds), never both.
    """

    name: str
    machine_count: Optional[int] = None
    autoscaler_min_replicas: Optional[int] = None
    autoscaler_max_replicas: Optional[int] = None
    disk_size_gi: int = cluster_constants.DEFAULT_DISK_SIZE_GI
    sizing_policy_id: Optional[str] = None
    placement_policy_id: Optional[str] = None
    vgpu_policy_id: Optional[str] = None
    storage_profile_id: Optional[str] = None

    @property
    def is_autoscaled(self) -> bool:
        return self.autoscaler_min_replicas is not None or \
            self.autoscaler_max_replicas is not None


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class DefaultStorageClass:
    storage_profile_id: str
    name: str
    reclaim_policy: str = 'delete'
    filesystem: str = 'ext4'


@dataclass
class ClusterDesiredState:
    """Configuration the caller wants the cluster to converge to.

    worker_pools is keyed by pool name. credential is write-only, it is sent
    to VCD on create and never read back. operations_timeout_minutes only
    bounds how long the caller waits and is not stored in the cluster
    entity; 0 waits forever. site is the url of the VCD the cluster lives
    in, it is filled in from the session on create when not set.
    """

    name: str
    org: str
    vdc_id: str
    network_id: str
    kubernetes_template_id: str
    control_plane: ControlPlane = field(default_factory=ControlPlane)
    worker_pools: Dict[str, WorkerPool] = field(default_factory=dict)
    default_storage_class: Optional[DefaultStorageClass] = None
    runtime: str = cluster_constants.DEFAULT_RUNTIME
    pods_cidr: str = cluster_constants.DEFAULT_PODS_CIDR
    services_cidr: str = cluster_constants.DEFAULT_SERVICES_CIDR
    virtual_ip_subnet: Optional[str] = None
    ssh_public_key: Optional[str] = None
    site: Optional[str] = None
    auto_repair_on_errors: bool = False
    node_health_check: bool = False
    credential: Optional[str] = field(default=None, repr=False)
    operations_timeout_minutes: int = \
        cluster_constants.DEFAULT_OPERATIONS_TIMEOUT_MINUTES

    @property
    def operations_timeout_seconds(self) -> Optional[int]:
        if not self.operations_timeout_minutes:
            return None
        return self.operations_timeout_minutes * 60


@dataclass
class ClusterHandle:
    """Reference to a cluster entity created in VCD.

    observed_state holds the state read when the handle was returned, it is
    not refreshed.
    """

    id: str
    name: Optional[str] = None
    org: Optional[str] = None
    observed_state: Optional[ClusterObservedState] = None
