# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from enum import Enum
from enum import unique


SUPPORTED_RUNTIMES = ['tkg']
DEFAULT_RUNTIME = 'tkg'

DEFAULT_CONTROL_PLANE_MACHINE_COUNT = 3
MIN_DISK_SIZE_GI = 20
DEFAULT_DISK_SIZE_GI = 20

DEFAULT_PODS_CIDR = '100.96.0.0/11'
DEFAULT_SERVICES_CIDR = '100.64.0.0/13'

MAX_CLUSTER_NAME_LENGTH = 31
CLUSTER_NAME_PATTERN = r"^[a-z][a-z0-9-]*$"

STORAGE_CLASS_RECLAIM_POLICIES = ['delete', 'retain']
STORAGE_CLASS_FILESYSTEMS = ['ext4', 'xfs']

# 0 disables the timeout
DEFAULT_OPERATIONS_TIMEOUT_MINUTES = 60

DEFAULT_POLL_INITIAL_INTERVAL_SECONDS = 10
DEFAULT_POLL_MAX_INTERVAL_SECONDS = 60
DEFAULT_POLL_BACKOFF_MULTIPLIER = 1.5

# Name under which the remote engine reports the control plane node pool
CONTROL_PLANE_POOL_NAME_SUFFIX = '-control-plane-node-pool'


@unique
class FlattenedClusterSpecKey(str, Enum):
    """Flattened keys of the spec subtree of a cluster entity.

    Worker pool keys are relative to a single pool entry.
    """

    RUNTIME = 'runtime'
    KUBERNETES_TEMPLATE_ID = 'kubernetesTemplateId'
    VDC_ID = 'vdcId'
    NETWORK_ID = 'networkId'
    CONTROL_PLANE_MACHINE_COUNT = 'controlPlane.machineCount'
    CONTROL_PLANE_DISK_SIZE_GI = 'controlPlane.diskSizeGi'
    CONTROL_PLANE_SIZING_POLICY_ID = 'controlPlane.sizingPolicyId'
    CONTROL_PLANE_PLACEMENT_POLICY_ID = 'controlPlane.placementPolicyId'
    CONTROL_PLANE_STORAGE_PROFILE_ID = 'controlPlane.storageProfileId'
    CONTROL_PLANE_IP = 'controlPlane.ip'
    DEFAULT_STORAGE_CLASS_PROFILE_ID = 'defaultStorageClass.storageProfileId'
    DEFAULT_STORAGE_CLASS_NAME = 'defaultStorageClass.name'
    DEFAULT_STORAGE_CLASS_RECLAIM_POLICY = 'defaultStorageClass.reclaimPolicy'  # noqa: E501
    DEFAULT_STORAGE_CLASS_FILESYSTEM = 'defaultStorageClass.filesystem'
    PODS_CIDR = 'podsCidr'
    SERVICES_CIDR = 'servicesCidr'
    VIRTUAL_IP_SUBNET = 'virtualIpSubnet'
    SSH_PUBLIC_KEY = 'sshPublicKey'
    AUTO_REPAIR_ON_ERRORS = 'autoRepairOnErrors'
    NODE_HEALTH_CHECK = 'nodeHealthCheck'


@unique
class FlattenedWorkerPoolKey(str, Enum):
    NAME = 'name'
    MACHINE_COUNT = 'machineCount'
    AUTOSCALER_MIN_REPLICAS = 'autoscalerMinReplicas'
    AUTOSCALER_MAX_REPLICAS = 'autoscalerMaxReplicas'
    DISK_SIZE_GI = 'diskSizeGi'
    SIZING_POLICY_ID = 'sizingPolicyId'
    PLACEMENT_POLICY_ID = 'placementPolicyId'
    VGPU_POLICY_ID = 'vgpuPolicyId'
    STORAGE_PROFILE_ID = 'storageProfileId'


# Fields that can be changed on a live cluster. Everything else in the spec
# subtree requires the cluster to be recreated.
VALID_UPDATE_FIELDS = [
    FlattenedClusterSpecKey.CONTROL_PLANE_MACHINE_COUNT.value,
    FlattenedClusterSpecKey.AUTO_REPAIR_ON_ERRORS.value,
    FlattenedClusterSpecKey.NODE_HEALTH_CHECK.value,
]

VALID_WORKER_POOL_UPDATE_FIELDS = [
    FlattenedWorkerPoolKey.MACHINE_COUNT.value,
    FlattenedWorkerPoolKey.AUTOSCALER_MIN_REPLICAS.value,
    FlattenedWorkerPoolKey.AUTOSCALER_MAX_REPLICAS.value,
]

# Spec entries that are owned by the client or the delete flow and never
# take part in update comparison.
DIFF_EXCLUDED_SPEC_KEYS = [
    'secure',
    'markForDelete',
    'forceDelete',
    'workerPools',
]
