# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Conversion between ClusterDesiredState and the cluster entity document.

build() validates a desired state and produces the document sent to VCD,
parse() reads the spec subtree of a document back into a desired state.
Both are pure: they never talk to VCD.
"""

import copy
import ipaddress
import re

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
from cse_cluster_manager.common.utils.core_utils import get_duplicate_items_in_list  # noqa: E501
from cse_cluster_manager.common.utils.core_utils import remove_none_values
from cse_cluster_manager.exception.exceptions import MalformedDocumentError
from cse_cluster_manager.exception.exceptions import ValidationError
import cse_cluster_manager.rde.constants as rde_constants
from cse_cluster_manager.rde.constants import EntityKey
from cse_cluster_manager.rde.constants import SpecKey
from cse_cluster_manager.rde.models.cluster_models import ClusterDesiredState
from cse_cluster_manager.rde.models.cluster_models import ControlPlane
from cse_cluster_manager.rde.models.cluster_models import DefaultStorageClass
from cse_cluster_manager.rde.models.cluster_models import WorkerPool


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_valid_name(name):
    if not isinstance(name, str) or not name:
        return False
    if len(name) > cluster_constants.MAX_CLUSTER_NAME_LENGTH:
        return False
    return re.match(cluster_constants.CLUSTER_NAME_PATTERN, name) is not None


def _validate_cidr(value, field_name, errors, required=True):
    if value is None:
        if required:
            errors.append(f"{field_name} is required")
        return
    try:
        ipaddress.ip_network(value, strict=False)
    except (TypeError, ValueError):
        errors.append(f"{field_name} '{value}' is not a valid CIDR")


def _validate_disk_size(disk_size_gi, location, errors):
    if not _is_int(disk_size_gi) or \
            disk_size_gi < cluster_constants.MIN_DISK_SIZE_GI:
        errors.append(f"{location} disk size must be an integer of at least "
                      f"{cluster_constants.MIN_DISK_SIZE_GI} Gi, got "
                      f"'{disk_size_gi}'")


def _validate_control_plane(control_plane: ControlPlane, errors):
    count = control_plane.machine_count
    if not _is_int(count) or count < 1 or count % 2 == 0:
        errors.append("control plane machine count must be an odd number "
                      f"greater than or equal to 1, got '{count}'")
    _validate_disk_size(control_plane.disk_size_gi, 'control plane', errors)
    if control_plane.ip is not None:
        try:
            ipaddress.ip_address(control_plane.ip)
        except ValueError:
            errors.append(f"control plane ip '{control_plane.ip}' is not a "
                          "valid IP address")


def _validate_worker_pool(key, pool: WorkerPool, errors):
    location = f"worker pool '{key}'"
    if key != pool.name:
        errors.append(f"{location} is registered under a different name "
                      f"'{pool.name}'")
    if not _is_valid_name(pool.name):
        errors.append(f"{location} name must start with a lowercase letter "
                      "and contain only lowercase letters, digits and "
                      "dashes")

    has_fixed_size = pool.machine_count is not None
    if has_fixed_size and pool.is_autoscaled:
        errors.append(f"{location} cannot set both a machine count and "
                      "autoscaler bounds")
    elif not has_fixed_size and not pool.is_autoscaled:
        errors.append(f"{location} must set either a machine count or "
                      "autoscaler bounds")
    elif has_fixed_size:
        if not _is_int(pool.machine_count) or pool.machine_count < 1:
            errors.append(f"{location} machine count must be greater than "
                          f"or equal to 1, got '{pool.machine_count}'")
    else:
        min_replicas = pool.autoscaler_min_replicas
        max_replicas = pool.autoscaler_max_replicas
        if min_replicas is None or max_replicas is None:
            errors.append(f"{location} must set both autoscaler minimum and "
                          "maximum replicas")
        elif not _is_int(min_replicas) or not _is_int(max_replicas):
            errors.append(f"{location} autoscaler bounds must be integers")
        elif min_replicas < 0 or max_replicas < 1 or \
                min_replicas > max_replicas:
            errors.append(f"{location} autoscaler bounds must satisfy "
                          f"0 <= min <= max and max >= 1, got "
                          f"min={min_replicas} max={max_replicas}")

    _validate_disk_size(pool.disk_size_gi, location, errors)
    if pool.placement_policy_id and pool.vgpu_policy_id:
        errors.append(f"{location} cannot set both a placement policy and a "
                      "vGPU policy")


def _validate_storage_class(storage_class: DefaultStorageClass, errors):
    if not storage_class.storage_profile_id:
        errors.append("default storage class requires a storage profile id")
    if not storage_class.name:
        errors.append("default storage class requires a name")
    if storage_class.reclaim_policy not in \
            cluster_constants.STORAGE_CLASS_RECLAIM_POLICIES:
        errors.append("default storage class reclaim policy must be one of "
                      f"{cluster_constants.STORAGE_CLASS_RECLAIM_POLICIES}, "
                      f"got '{storage_class.reclaim_policy}'")
    if storage_class.filesystem not in \
            cluster_constants.STORAGE_CLASS_FILESYSTEMS:
        errors.append("default storage class filesystem must be one of "
                      f"{cluster_constants.STORAGE_CLASS_FILESYSTEMS}, got "
                      f"'{storage_class.filesystem}'")


def validate(desired: ClusterDesiredState):
    """Validate a desired cluster state.

    All problems are collected and reported together.

    :param ClusterDesiredState desired:

    :raises ValidationError: if the desired state is malformed.
    """
    errors = []
    if not _is_valid_name(desired.name):
        errors.append(
            f"cluster name '{desired.name}' must start with a lowercase "
            "letter, contain only lowercase letters, digits and dashes and "
            f"be at most {cluster_constants.MAX_CLUSTER_NAME_LENGTH} "
            "characters long")
    if desired.runtime not in cluster_constants.SUPPORTED_RUNTIMES:
        errors.append(f"runtime '{desired.runtime}' is not supported, "
                      f"supported runtimes: "
                      f"{cluster_constants.SUPPORTED_RUNTIMES}")
    for field_name in ['org', 'vdc_id', 'network_id',
                       'kubernetes_template_id']:
        if not getattr(desired, field_name):
            errors.append(f"{field_name} is required")

    _validate_control_plane(desired.control_plane, errors)

    if not desired.worker_pools:
        errors.append("at least one worker pool is required")
    for key, pool in desired.worker_pools.items():
        _validate_worker_pool(key, pool, errors)

    if desired.default_storage_class is not None:
        _validate_storage_class(desired.default_storage_class, errors)

    _validate_cidr(desired.pods_cidr, 'pods CIDR', errors)
    _validate_cidr(desired.services_cidr, 'services CIDR', errors)
    _validate_cidr(desired.virtual_ip_subnet, 'virtual IP subnet', errors,
                   required=False)

    for field_name in ['auto_repair_on_errors', 'node_health_check']:
        if not isinstance(getattr(desired, field_name), bool):
            errors.append(f"{field_name} must be true or false")
    if not _is_int(desired.operations_timeout_minutes) or \
            desired.operations_timeout_minutes < 0:
        errors.append("operations timeout must be a non negative number of "
                      "minutes")

    if errors:
        raise ValidationError(f"Invalid cluster '{desired.name}'", errors)


def to_spec_dict(desired: ClusterDesiredState):
    """Serialize the persisted desired state fields into a spec subtree.

    Worker pools are emitted as a list sorted by pool name and unset
    optional fields are omitted, so equal states always serialize to equal
    documents. The credential is not part of the result.

    :param ClusterDesiredState desired:

    :rtype: dict
    """
    spec = {
        'runtime': desired.runtime,
        'kubernetesTemplateId': desired.kubernetes_template_id,
        'vdcId': desired.vdc_id,
        'networkId': desired.network_id,
        'controlPlane': desired.control_plane.to_dict(),
        SpecKey.WORKER_POOLS.value: [
            remove_none_values(pool.to_dict())
            for _, pool in sorted(desired.worker_pools.items())
        ],
        'defaultStorageClass': desired.default_storage_class.to_dict()
        if desired.default_storage_class else None,
        'podsCidr': desired.pods_cidr,
        'servicesCidr': desired.services_cidr,
        'virtualIpSubnet': desired.virtual_ip_subnet,
        'sshPublicKey': desired.ssh_public_key,
        SpecKey.AUTO_REPAIR_ON_ERRORS.value: desired.auto_repair_on_errors,
        'nodeHealthCheck': desired.node_health_check,
    }
    return remove_none_values(spec)


def build(desired: ClusterDesiredState):
    """Build the cluster entity document for a desired state.

    The document has no status subtree, the remote engine adds it.

    :param ClusterDesiredState desired:

    :return: cluster entity document

    :rtype: dict

    :raises ValidationError: if the desired state is malformed.
    """
    validate(desired)
    document = to_document(desired)
    if desired.credential:
        document[EntityKey.SPEC.value][SpecKey.SECURE.value] = {
            SpecKey.API_TOKEN.value: desired.credential
        }
    return document


def to_document(desired: ClusterDesiredState):
    """Lay out a desired state as a cluster entity document.

    Neither validates nor includes the credential, see build(). The site is
    left out of the metadata when it is not set.

    :param ClusterDesiredState desired:

    :rtype: dict
    """
    return {
        EntityKey.API_VERSION.value: rde_constants.PAYLOAD_VERSION_1_2,
        EntityKey.KIND.value: rde_constants.CLUSTER_KIND,
        EntityKey.METADATA.value: remove_none_values({
            EntityKey.NAME.value: desired.name,
            EntityKey.ORG_NAME.value: desired.org,
            EntityKey.VDC_ID.value: desired.vdc_id,
            EntityKey.SITE.value: desired.site,
        }),
        EntityKey.SPEC.value: to_spec_dict(desired),
    }


def _get_subtree(parent, key, path, required=True):
    value = parent.get(key)
    if value is None:
        if required:
            raise MalformedDocumentError("Missing section", path)
        return {}
    if not isinstance(value, dict):
        raise MalformedDocumentError("Expected an object", path)
    return value


def _from_dict(model_class, value, path):
    if not isinstance(value, dict):
        raise MalformedDocumentError("Expected an object", path)
    try:
        return model_class.from_dict(value)
    except (KeyError, TypeError, ValueError) as err:
        raise MalformedDocumentError(f"Invalid entry: {err}", path) from err


def _parse_worker_pools(spec):
    pool_entries = spec.get(SpecKey.WORKER_POOLS.value) or []
    if not isinstance(pool_entries, list):
        raise MalformedDocumentError("Expected a list",
                                     f"spec.{SpecKey.WORKER_POOLS.value}")
    pools = [_from_dict(WorkerPool, entry, f"spec.workerPools[{index}]")
             for index, entry in enumerate(pool_entries)]
    duplicates = get_duplicate_items_in_list([pool.name for pool in pools])
    if duplicates:
        raise ValidationError("Worker pool names must be unique",
                              [f"duplicate worker pool '{name}'"
                               for name in duplicates])
    return {pool.name: pool for pool in pools}


def parse(document, include_write_only=False):
    """Read the desired state stored in a cluster entity document.

    Fields unknown to this version are ignored. The credential is only read
    when include_write_only is set, which is meant for cluster specification
    files written by users, never for documents read from VCD.

    :param dict document: cluster entity document
    :param bool include_write_only: read credential and operations timeout

    :rtype: ClusterDesiredState

    :raises MalformedDocumentError: if the document does not have the
        expected shape or declares an unsupported payload version.
    """
    if not isinstance(document, dict):
        raise MalformedDocumentError("Cluster entity must be an object")
    api_version = document.get(EntityKey.API_VERSION.value)
    if api_version is not None and \
            api_version not in rde_constants.SUPPORTED_PAYLOAD_VERSIONS:
        raise MalformedDocumentError(
            f"Unsupported cluster entity version '{api_version}'",
            EntityKey.API_VERSION.value)

    metadata = _get_subtree(document, EntityKey.METADATA.value, 'metadata')
    spec = _get_subtree(document, EntityKey.SPEC.value, 'spec')

    control_plane = ControlPlane()
    if spec.get('controlPlane') is not None:
        control_plane = _from_dict(ControlPlane, spec['controlPlane'],
                                   'spec.controlPlane')
    storage_class = None
    if spec.get('defaultStorageClass') is not None:
        storage_class = _from_dict(DefaultStorageClass,
                                   spec['defaultStorageClass'],
                                   'spec.defaultStorageClass')

    desired = ClusterDesiredState(
        name=metadata.get(EntityKey.NAME.value),
        org=metadata.get(EntityKey.ORG_NAME.value),
        vdc_id=spec.get('vdcId', metadata.get(EntityKey.VDC_ID.value)),
        network_id=spec.get('networkId'),
        kubernetes_template_id=spec.get('kubernetesTemplateId'),
        control_plane=control_plane,
        worker_pools=_parse_worker_pools(spec),
        default_storage_class=storage_class,
        runtime=spec.get('runtime', cluster_constants.DEFAULT_RUNTIME),
        pods_cidr=spec.get('podsCidr', cluster_constants.DEFAULT_PODS_CIDR),
        services_cidr=spec.get('servicesCidr',
                               cluster_constants.DEFAULT_SERVICES_CIDR),
        virtual_ip_subnet=spec.get('virtualIpSubnet'),
        ssh_public_key=spec.get('sshPublicKey'),
        site=metadata.get(EntityKey.SITE.value),
        auto_repair_on_errors=spec.get(SpecKey.AUTO_REPAIR_ON_ERRORS.value,
                                       False),
        node_health_check=spec.get('nodeHealthCheck', False))

    if include_write_only:
        secure = _get_subtree(spec, SpecKey.SECURE.value, 'spec.secure',
                              required=False)
        desired.credential = secure.get(SpecKey.API_TOKEN.value)
        desired.operations_timeout_minutes = spec.get(
            SpecKey.OPERATIONS_TIMEOUT_MINUTES.value,
            cluster_constants.DEFAULT_OPERATIONS_TIMEOUT_MINUTES)
    return desired


def mark_for_delete(document):
    """Return a copy of a cluster entity document flagged for deletion.

    The remote engine tears the cluster down and removes the entity once
    it sees the flags. Everything else in the document is left untouched.

    :param dict document: cluster entity document, not modified.

    :rtype: dict
    """
    if not isinstance(document, dict):
        raise MalformedDocumentError("Cluster entity must be an object")
    marked = copy.deepcopy(document)
    spec = marked.get(EntityKey.SPEC.value)
    if not isinstance(spec, dict):
        raise MalformedDocumentError("Expected an object", 'spec')
    spec[SpecKey.MARK_FOR_DELETE.value] = True
    spec[SpecKey.FORCE_DELETE.value] = True
    return marked
