# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from enum import Enum
from enum import unique


CSE_PAGINATION_FIRST_PAGE_NUMBER = 1
CSE_PAGINATION_DEFAULT_PAGE_SIZE = 25

# Vcd api version to use when the config file does not specify one
DEFAULT_VCD_API_VERSION = '37.2'


@unique
class RequestMethod(str, Enum):
    GET = 'GET'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'


@unique
class PaginationKey(str, Enum):
    PAGE_NUMBER = 'page'
    PAGE_SIZE = 'pageSize'
    PAGE_COUNT = 'pageCount'
    RESULT_TOTAL = 'resultTotal'
    VALUES = 'values'


@unique
class HttpResponseHeader(str, Enum):
    ETAG = 'ETag'
    LOCATION = 'Location'
    X_VMWARE_VCLOUD_TASK_LOCATION = 'X-VMWARE-VCLOUD-TASK-LOCATION'


@unique
class HttpRequestHeader(str, Enum):
    IF_MATCH = 'If-Match'


@unique
class ClusterPhase(str, Enum):
    """Coarse lifecycle status of a cluster as written by the remote engine.

    The set is closed. Any other value found in a cluster entity is treated
    as a malformed document.
    """

    PROVISIONING = 'provisioning'
    PROVISIONED = 'provisioned'
    DELETING = 'deleting'
    ERROR = 'error'

    def is_busy(self) -> bool:
        if self == ClusterPhase.PROVISIONING:
            return True
        if self == ClusterPhase.DELETING:
            return True
        if self == ClusterPhase.PROVISIONED:
            return False
        if self == ClusterPhase.ERROR:
            return False
        raise ValueError(f"Unhandled cluster phase '{self.value}'")


@unique
class ClusterLifecycleState(str, Enum):
    """States a cluster goes through while driven by the cluster service."""

    ABSENT = 'absent'
    CREATING = 'creating'
    PROVISIONING = 'provisioning'
    PROVISIONED = 'provisioned'
    UPDATING = 'updating'
    DELETING = 'deleting'
    ERROR = 'error'

    @classmethod
    def from_phase(cls, phase):
        """Map a phase reported by the remote engine to a lifecycle state.

        :param ClusterPhase phase: phase read from the cluster entity, None if
            the remote engine has not reported any status yet.

        :rtype: ClusterLifecycleState
        """
        if phase is None:
            return cls.CREATING
        if phase == ClusterPhase.PROVISIONING:
            return cls.PROVISIONING
        if phase == ClusterPhase.PROVISIONED:
            return cls.PROVISIONED
        if phase == ClusterPhase.DELETING:
            return cls.DELETING
        if phase == ClusterPhase.ERROR:
            return cls.ERROR
        raise ValueError(f"Unhandled cluster phase '{phase}'")


@unique
class AccessLevel(str, Enum):
    READ_ONLY = 'urn:vcloud:accessLevel:ReadOnly'
    READ_WRITE = 'urn:vcloud:accessLevel:ReadWrite'
    FULL_CONTROL = 'urn:vcloud:accessLevel:FullControl'


@unique
class AclGrantType(str, Enum):
    MembershipAccessControlGrant = 'MembershipAccessControlGrant'
