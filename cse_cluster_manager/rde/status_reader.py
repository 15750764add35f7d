# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Read the observed state of a cluster from its entity document."""

from cse_cluster_manager.common.constants.shared_constants import ClusterPhase
from cse_cluster_manager.exception.exceptions import MalformedDocumentError
from cse_cluster_manager.rde.constants import EntityKey
from cse_cluster_manager.rde.constants import SpecKey
from cse_cluster_manager.rde.constants import StatusKey
from cse_cluster_manager.rde.models.status_models import ClusterEvent
from cse_cluster_manager.rde.models.status_models import ClusterObservedState
from cse_cluster_manager.rde.models.status_models import NodePoolStatus


def _get_object(parent, key, path):
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedDocumentError("Expected an object", path)
    return value


def _get_list(parent, key, path):
    value = parent.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedDocumentError("Expected a list", path)
    return value


def _parse_phase(vcd_ke_status):
    state = vcd_ke_status.get(StatusKey.STATE.value)
    if state is None:
        return None
    try:
        return ClusterPhase(str(state).lower())
    except ValueError as err:
        raise MalformedDocumentError(f"Unknown cluster phase '{state}'",
                                     'status.vcdKe.state') from err


def _parse_events(entries, path):
    events = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MalformedDocumentError("Expected an object",
                                         f"{path}[{index}]")
        events.append(ClusterEvent.from_dict(entry))
    return events


def _parse_node_pools(entries):
    node_pools = {}
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get('name'):
            raise MalformedDocumentError("Expected a named node pool",
                                         f"status.capvcd.nodePool[{index}]")
        node_pool = NodePoolStatus.from_dict(entry)
        node_pools[node_pool.name] = node_pool
    return node_pools


def _parse_binding_names(entries):
    names = []
    for entry in entries:
        if isinstance(entry, dict):
            names.append(entry.get('name'))
        else:
            names.append(str(entry))
    return names


def read(document):
    """Extract the observed state from a cluster entity document.

    Unknown fields are ignored. The kubeconfig is only exposed once the
    cluster is provisioned.

    :param dict document: cluster entity document

    :rtype: ClusterObservedState

    :raises MalformedDocumentError: if the status subtree does not have the
        expected shape, reports an unknown phase, or lacks fields the
        reported phase requires.
    """
    if not isinstance(document, dict):
        raise MalformedDocumentError("Cluster entity must be an object")
    spec = _get_object(document, EntityKey.SPEC.value, 'spec')
    status = _get_object(document, EntityKey.STATUS.value, 'status')

    vcd_ke = _get_object(status, StatusKey.VCD_KE.value, 'status.vcdKe')
    capvcd = _get_object(status, StatusKey.CAPVCD.value, 'status.capvcd')
    upgrade = _get_object(capvcd, StatusKey.UPGRADE.value,
                          'status.capvcd.upgrade')
    current = _get_object(upgrade, StatusKey.CURRENT.value,
                          'status.capvcd.upgrade.current')
    private = _get_object(capvcd, StatusKey.PRIVATE.value,
                          'status.capvcd.private')
    cpi = _get_object(status, StatusKey.CPI.value, 'status.cpi')
    csi = _get_object(status, StatusKey.CSI.value, 'status.csi')

    phase = _parse_phase(vcd_ke)
    observed = ClusterObservedState(
        phase=phase,
        kubernetes_version=current.get(StatusKey.KUBERNETES_VERSION.value),
        tkg_version=current.get(StatusKey.TKG_VERSION.value),
        capvcd_version=capvcd.get(StatusKey.VERSION.value),
        cpi_version=cpi.get(StatusKey.VERSION.value),
        csi_version=csi.get(StatusKey.VERSION.value),
        vcd_ke_version=vcd_ke.get(StatusKey.VCD_KE_VERSION.value),
        events=_parse_events(
            _get_list(vcd_ke, StatusKey.EVENT_SET.value,
                      'status.vcdKe.eventSet'),
            'status.vcdKe.eventSet'),
        errors=_parse_events(
            _get_list(vcd_ke, StatusKey.ERROR_SET.value,
                      'status.vcdKe.errorSet'),
            'status.vcdKe.errorSet'),
        cluster_resource_set_bindings=_parse_binding_names(
            _get_list(capvcd, StatusKey.CLUSTER_RESOURCE_SET_BINDINGS.value,
                      'status.capvcd.clusterResourceSetBindings')),
        node_pools=_parse_node_pools(
            _get_list(capvcd, StatusKey.NODE_POOL.value,
                      'status.capvcd.nodePool')),
        auto_repair_on_errors=spec.get(
            SpecKey.AUTO_REPAIR_ON_ERRORS.value) is True,
        marked_for_delete=spec.get(SpecKey.MARK_FOR_DELETE.value) is True)

    if phase == ClusterPhase.PROVISIONED:
        if not observed.kubernetes_version:
            raise MalformedDocumentError(
                "Cluster is provisioned but reports no Kubernetes version",
                'status.capvcd.upgrade.current.kubernetesVersion')
        observed.kubeconfig = private.get(StatusKey.KUBE_CONFIG.value)
    return observed
