# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Constants used for interaction with the cluster defined entity."""
from enum import Enum
from enum import unique

import semantic_version

DEF_ENTITY_TYPE_ID_PREFIX = 'urn:vcloud:type'
DEF_ERROR_MESSAGE_KEY = 'message'
DEF_RESOLVED_STATE = 'RESOLVED'

# Oldest cluster entity type whose schema carries the layout used here
MIN_SUPPORTED_RDE_VERSION = semantic_version.Version('1.1.0')
DEFAULT_RDE_VERSION = '1.2.0'

PAYLOAD_VERSION_PREFIX = 'capvcd.vmware.com/'
PAYLOAD_VERSION_1_2 = PAYLOAD_VERSION_PREFIX + 'v1.2'
SUPPORTED_PAYLOAD_VERSIONS = [PAYLOAD_VERSION_1_2]
CLUSTER_KIND = 'CAPVCDCluster'


@unique
class Vendor(str, Enum):
    VMWARE = 'vmware'


@unique
class Nss(str, Enum):
    CAPVCD_CLUSTER = 'capvcdCluster'


def get_cluster_entity_type_id(rde_version=DEFAULT_RDE_VERSION):
    """Build the entity type urn of the cluster entity.

    :param str rde_version: semantic version of the entity type

    :return: e.g. urn:vcloud:type:vmware:capvcdCluster:1.2.0

    :rtype: str

    :raises ValueError: if the version is not a semantic version or is older
        than the oldest supported one.
    """
    version = semantic_version.Version(str(rde_version))
    if version < MIN_SUPPORTED_RDE_VERSION:
        raise ValueError(f"Cluster entity version {rde_version} is not "
                         f"supported, minimum is {MIN_SUPPORTED_RDE_VERSION}")
    return f"{DEF_ENTITY_TYPE_ID_PREFIX}:{Vendor.VMWARE.value}:" \
           f"{Nss.CAPVCD_CLUSTER.value}:{version}"


@unique
class EntityKey(str, Enum):
    """Keys of the top level and metadata of the cluster entity."""

    API_VERSION = 'apiVersion'
    KIND = 'kind'
    METADATA = 'metadata'
    SPEC = 'spec'
    STATUS = 'status'
    NAME = 'name'
    ORG_NAME = 'orgName'
    VDC_ID = 'virtualDataCenterId'
    SITE = 'site'


@unique
class SpecKey(str, Enum):
    """Keys of the spec subtree that are not plain desired state fields."""

    WORKER_POOLS = 'workerPools'
    SECURE = 'secure'
    API_TOKEN = 'apiToken'
    MARK_FOR_DELETE = 'markForDelete'
    FORCE_DELETE = 'forceDelete'
    AUTO_REPAIR_ON_ERRORS = 'autoRepairOnErrors'
    # present only in cluster specification files, never stored
    OPERATIONS_TIMEOUT_MINUTES = 'operationsTimeoutMinutes'


@unique
class StatusKey(str, Enum):
    """Keys of the status subtree written by the remote engine."""

    VCD_KE = 'vcdKe'
    STATE = 'state'
    VCD_KE_VERSION = 'vcdKeVersion'
    EVENT_SET = 'eventSet'
    ERROR_SET = 'errorSet'
    CAPVCD = 'capvcd'
    VERSION = 'version'
    UPGRADE = 'upgrade'
    CURRENT = 'current'
    KUBERNETES_VERSION = 'kubernetesVersion'
    TKG_VERSION = 'tkgVersion'
    CLUSTER_RESOURCE_SET_BINDINGS = 'clusterResourceSetBindings'
    NODE_POOL = 'nodePool'
    PRIVATE = 'private'
    KUBE_CONFIG = 'kubeConfig'
    CPI = 'cpi'
    CSI = 'csi'
