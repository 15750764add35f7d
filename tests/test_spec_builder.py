# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import json

import pytest

from cse_cluster_manager.exception.exceptions import MalformedDocumentError
from cse_cluster_manager.exception.exceptions import ValidationError
from cse_cluster_manager.rde.models.cluster_models import DefaultStorageClass
from cse_cluster_manager.rde.models.cluster_models import WorkerPool
import cse_cluster_manager.rde.spec_builder as spec_builder


def test_0010_build_is_deterministic(make_desired_state):
    """Building the same desired state twice yields identical documents."""
    first = spec_builder.build(make_desired_state(pools={'pool-b': 2,
                                                         'pool-a': 1}))
    second = spec_builder.build(make_desired_state(pools={'pool-a': 1,
                                                          'pool-b': 2}))
    assert json.dumps(first) == json.dumps(second)


def test_0020_build_document_layout(make_desired_state):
    document = spec_builder.build(make_desired_state(pools={'pool-b': 2,
                                                            'pool-a': 1}))
    assert document['apiVersion'] == 'capvcd.vmware.com/v1.2'
    assert document['kind'] == 'CAPVCDCluster'
    assert document['metadata'] == {'name': 'my-cluster',
                                    'orgName': 'my-org',
                                    'virtualDataCenterId': 'urn:vcloud:vdc:1'}  # noqa: E501
    assert 'status' not in document
    spec = document['spec']
    assert [pool['name'] for pool in spec['workerPools']] == \
        ['pool-a', 'pool-b']
    assert spec['controlPlane']['machineCount'] == 1
    assert spec['secure'] == {'apiToken': 'secret-api-token'}
    assert 'sizingPolicyId' not in spec['controlPlane']
    assert 'markForDelete' not in spec


def test_0030_build_without_credential(make_desired_state):
    document = spec_builder.build(make_desired_state(credential=None))
    assert 'secure' not in document['spec']


@pytest.mark.parametrize('count', [0, 2, 4, -1])
def test_0040_invalid_control_plane_count(make_desired_state, count):
    """Even or non positive control plane counts are rejected."""
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.build(make_desired_state(control_plane_count=count))
    assert 'control plane machine count' in str(excinfo.value)


def test_0050_pool_with_both_sizing_modes(make_desired_state):
    desired = make_desired_state()
    desired.worker_pools['pool-a'] = WorkerPool(
        name='pool-a', machine_count=2, autoscaler_min_replicas=1,
        autoscaler_max_replicas=3)
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.validate(desired)
    assert 'cannot set both' in str(excinfo.value)


def test_0060_pool_without_sizing_mode(make_desired_state):
    desired = make_desired_state()
    desired.worker_pools['pool-a'] = WorkerPool(name='pool-a')
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.validate(desired)
    assert 'must set either' in str(excinfo.value)


@pytest.mark.parametrize('bounds', [(3, 2), (-1, 2), (0, 0)])
def test_0070_invalid_autoscaler_bounds(make_desired_state, bounds):
    with pytest.raises(ValidationError):
        spec_builder.validate(make_desired_state(pools={'pool-a': bounds}))


def test_0080_autoscaled_pool_is_valid(make_desired_state):
    document = spec_builder.build(make_desired_state(pools={'pool-a': (0, 3)}))  # noqa: E501
    assert document['spec']['workerPools'] == [{
        'name': 'pool-a',
        'autoscalerMinReplicas': 0,
        'autoscalerMaxReplicas': 3,
        'diskSizeGi': 20,
    }]


def test_0090_errors_are_collected(make_desired_state):
    """Every problem is reported by a single ValidationError."""
    desired = make_desired_state(name='My_Cluster', control_plane_count=2,
                                 pools={}, pods_cidr='not-a-cidr')
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.validate(desired)
    assert len(excinfo.value.errors) == 4


def test_0100_invalid_fields(make_desired_state):
    desired = make_desired_state(
        runtime='native',
        vdc_id=None,
        default_storage_class=DefaultStorageClass(
            storage_profile_id='urn:vcloud:vdcstorageProfile:1',
            name='default', reclaim_policy='recycle'),
        operations_timeout_minutes=-5)
    desired.worker_pools['pool-a'].placement_policy_id = 'urn:placement'
    desired.worker_pools['pool-a'].vgpu_policy_id = 'urn:vgpu'
    desired.control_plane.disk_size_gi = 10
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.validate(desired)
    message = str(excinfo.value)
    assert "runtime 'native'" in message
    assert 'vdc_id is required' in message
    assert 'reclaim policy' in message
    assert 'operations timeout' in message
    assert 'vGPU policy' in message
    assert 'control plane disk size' in message


def test_0110_pool_registered_under_other_name(make_desired_state):
    desired = make_desired_state()
    desired.worker_pools['pool-x'] = WorkerPool(name='pool-y',
                                                machine_count=1)
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.validate(desired)
    assert "'pool-x' is registered under a different name" in \
        str(excinfo.value)


def test_0120_parse_returns_desired_state(make_desired_state):
    desired = make_desired_state(pools={'pool-a': 1, 'pool-b': (1, 4)},
                                 auto_repair_on_errors=True)
    document = spec_builder.build(desired)
    parsed = spec_builder.parse(document)
    assert parsed.credential is None
    parsed.credential = desired.credential
    assert parsed == desired


def test_0130_parse_ignores_unknown_fields(make_desired_state):
    document = spec_builder.build(make_desired_state())
    document['spec']['futureField'] = {'a': 1}
    document['spec']['workerPools'][0]['futureKnob'] = True
    document['status'] = {'vcdKe': {'state': 'provisioned'}}
    parsed = spec_builder.parse(document)
    assert parsed.worker_pools['pool-a'].machine_count == 1


def test_0140_parse_include_write_only(make_desired_state):
    document = spec_builder.build(make_desired_state())
    document['spec']['operationsTimeoutMinutes'] = 5
    parsed = spec_builder.parse(document, include_write_only=True)
    assert parsed.credential == 'secret-api-token'
    assert parsed.operations_timeout_minutes == 5
    assert parsed.operations_timeout_seconds == 300


def test_0150_parse_rejects_malformed_documents(make_desired_state):
    document = spec_builder.build(make_desired_state())

    with pytest.raises(MalformedDocumentError):
        spec_builder.parse(['not', 'a', 'mapping'])

    unsupported = dict(document, apiVersion='capvcd.vmware.com/v9.9')
    with pytest.raises(MalformedDocumentError):
        spec_builder.parse(unsupported)

    no_spec = {key: value for key, value in document.items()
               if key != 'spec'}
    with pytest.raises(MalformedDocumentError) as excinfo:
        spec_builder.parse(no_spec)
    assert excinfo.value.path == 'spec'

    bad_pools = spec_builder.build(make_desired_state())
    bad_pools['spec']['workerPools'] = {'name': 'pool-a'}
    with pytest.raises(MalformedDocumentError):
        spec_builder.parse(bad_pools)


def test_0160_parse_rejects_duplicate_pool_names(make_desired_state):
    document = spec_builder.build(make_desired_state())
    document['spec']['workerPools'].append(
        dict(document['spec']['workerPools'][0]))
    with pytest.raises(ValidationError) as excinfo:
        spec_builder.parse(document)
    assert "duplicate worker pool 'pool-a'" in str(excinfo.value)


def test_0170_mark_for_delete_keeps_document(make_desired_state):
    document = spec_builder.build(make_desired_state())
    document['status'] = {'vcdKe': {'state': 'provisioned'}}
    marked = spec_builder.mark_for_delete(document)
    assert marked['spec']['markForDelete'] is True
    assert marked['spec']['forceDelete'] is True
    assert marked['status'] == document['status']
    assert 'markForDelete' not in document['spec']


def test_0180_site_in_metadata(make_desired_state):
    desired = make_desired_state(site='https://vcd.example.com')
    document = spec_builder.build(desired)
    assert document['metadata']['site'] == 'https://vcd.example.com'
    assert document['metadata']['virtualDataCenterId'] == 'urn:vcloud:vdc:1'
    assert spec_builder.parse(document).site == 'https://vcd.example.com'
