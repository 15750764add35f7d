# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from enum import Enum

CLOUDAPI_URN_PREFIX = 'urn:vcloud'
CLOUDAPI_ROOT = 'cloudapi'


class CloudApiVersion(str, Enum):
    VERSION_1_0_0 = '1.0.0'


class CloudApiResource(str, Enum):
    """Keys that are used to get the cloudapi resource names."""

    ENTITY_TYPES = 'entityTypes'
    ENTITIES = 'entities'
    ENTITY_RESOLVE = 'resolve'
    ACL = 'accessControls'


class ResponseKeys(str, Enum):
    ID = 'id'
    MESSAGE = 'message'
    VALUES = 'values'
