# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from fakes import KUBECONFIG
from fakes import KUBERNETES_VERSION
from fakes import make_status
import pytest

from cse_cluster_manager.common.constants.shared_constants import ClusterPhase
from cse_cluster_manager.exception.exceptions import MalformedDocumentError
import cse_cluster_manager.rde.spec_builder as spec_builder
import cse_cluster_manager.rde.status_reader as status_reader


@pytest.fixture
def document(make_desired_state):
    return spec_builder.build(make_desired_state(pools={'pool-a': 2}))


def test_0010_no_status_yet(document):
    """A freshly created entity has no phase."""
    observed = status_reader.read(document)
    assert observed.phase is None
    assert observed.kubeconfig is None
    assert observed.events == []
    assert observed.node_pools == {}


def test_0020_provisioned(document):
    document['status'] = make_status(document, 'provisioned')
    observed = status_reader.read(document)
    assert observed.phase == ClusterPhase.PROVISIONED
    assert observed.kubernetes_version == KUBERNETES_VERSION
    assert observed.tkg_version == 'v2.2.0'
    assert observed.capvcd_version == '1.1.0'
    assert observed.cpi_version == '1.4.0'
    assert observed.csi_version == '1.4.0'
    assert observed.vcd_ke_version == '4.1.0'
    assert observed.kubeconfig == KUBECONFIG
    assert observed.cluster_resource_set_bindings == ['cpi-crs', 'csi-crs']
    assert observed.node_pools['pool-a'].desired_replicas == 2
    assert observed.node_pools['my-cluster-control-plane-node-pool'].available_replicas == 1  # noqa: E501
    assert observed.events[0].name == 'ClusterPhaseChanged'


def test_0030_kubeconfig_hidden_until_provisioned(document):
    document['status'] = make_status(document, 'provisioning')
    observed = status_reader.read(document)
    assert observed.phase == ClusterPhase.PROVISIONING
    assert observed.kubeconfig is None


def test_0040_provisioned_without_kubernetes_version(document):
    document['status'] = make_status(document, 'provisioned')
    del document['status']['capvcd']['upgrade']['current']['kubernetesVersion']  # noqa: E501
    with pytest.raises(MalformedDocumentError) as excinfo:
        status_reader.read(document)
    assert excinfo.value.path == \
        'status.capvcd.upgrade.current.kubernetesVersion'


def test_0050_unknown_phase(document):
    document['status'] = make_status(document, 'upgrading')
    with pytest.raises(MalformedDocumentError) as excinfo:
        status_reader.read(document)
    assert "Unknown cluster phase 'upgrading'" in str(excinfo.value)


def test_0060_phase_is_case_insensitive(document):
    document['status'] = make_status(document, 'provisioned')
    document['status']['vcdKe']['state'] = 'PROVISIONED'
    assert status_reader.read(document).phase == ClusterPhase.PROVISIONED


def test_0070_error_details(document):
    document['status'] = make_status(document, 'error')
    observed = status_reader.read(document)
    assert observed.phase == ClusterPhase.ERROR
    assert len(observed.errors) == 1
    assert observed.errors[0].vcd_resource_name == 'my-cluster'
    assert 'quota exceeded' in str(observed.errors[0])


def test_0080_unknown_fields_are_ignored(document):
    document['status'] = make_status(document, 'provisioned')
    document['status']['vcdKe']['newField'] = 'x'
    document['status']['capvcd']['nodePool'][0]['newField'] = 3
    document['status']['projector'] = {'version': '0.1'}
    observed = status_reader.read(document)
    assert observed.phase == ClusterPhase.PROVISIONED


def test_0090_flags_read_from_spec(document):
    document['spec']['autoRepairOnErrors'] = True
    document['spec']['markForDelete'] = True
    observed = status_reader.read(document)
    assert observed.auto_repair_on_errors is True
    assert observed.marked_for_delete is True


def test_0100_malformed_status(document):
    document['status'] = make_status(document, 'provisioned')
    document['status']['vcdKe']['eventSet'] = 'not a list'
    with pytest.raises(MalformedDocumentError):
        status_reader.read(document)

    document['status'] = make_status(document, 'provisioned')
    document['status']['capvcd']['nodePool'] = [{'desiredReplicas': 1}]
    with pytest.raises(MalformedDocumentError):
        status_reader.read(document)

    document['status'] = 'provisioned'
    with pytest.raises(MalformedDocumentError):
        status_reader.read(document)


def test_0110_display_dict_leaves_out_kubeconfig(document):
    document['status'] = make_status(document, 'provisioned')
    display = status_reader.read(document).to_display_dict()
    assert display['phase'] == 'provisioned'
    assert display['node_pools']['pool-a'] == {'desired': 2, 'available': 2}
    assert 'kubeconfig' not in display
