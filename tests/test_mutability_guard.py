# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import copy

from fakes import make_status
import pytest

from cse_cluster_manager.exception.exceptions import MutabilityViolationError
from cse_cluster_manager.rde.models.cluster_models import WorkerPool
import cse_cluster_manager.rde.spec_builder as spec_builder
import cse_cluster_manager.rde.validators.mutability_guard as mutability_guard


def test_0010_same_state_gives_empty_patch(make_desired_state):
    current = make_desired_state(pools={'pool-a': 1, 'pool-b': (1, 3)})
    patch = mutability_guard.diff(current, copy.deepcopy(current))
    assert patch.is_empty()


def test_0020_pool_order_does_not_matter(make_desired_state):
    current = make_desired_state(pools={'pool-a': 1, 'pool-b': 2})
    desired = make_desired_state(pools={'pool-b': 2, 'pool-a': 1})
    assert mutability_guard.diff(current, desired).is_empty()


def test_0030_credential_and_timeout_are_not_compared(make_desired_state):
    current = make_desired_state(credential=None)
    desired = make_desired_state(credential='other-token',
                                 operations_timeout_minutes=5)
    assert mutability_guard.diff(current, desired).is_empty()


def test_0040_control_plane_count_only(make_desired_state):
    current = make_desired_state(control_plane_count=1)
    desired = make_desired_state(control_plane_count=3)
    patch = mutability_guard.diff(current, desired)
    assert patch.spec == {'controlPlane': {'machineCount': 3}}
    assert patch.worker_pools.is_empty()


def test_0050_control_plane_disk_size_is_immutable(make_desired_state):
    current = make_desired_state()
    desired = make_desired_state()
    desired.control_plane.disk_size_gi = 40
    with pytest.raises(MutabilityViolationError) as excinfo:
        mutability_guard.diff(current, desired)
    assert list(excinfo.value.fields.keys()) == ['controlPlane.diskSizeGi']
    assert excinfo.value.fields['controlPlane.diskSizeGi'] == \
        {'expected': 20, 'actual': 40}


def test_0060_every_immutable_field_is_reported(make_desired_state):
    current = make_desired_state(ssh_public_key='ssh-rsa AAAA')
    desired = make_desired_state(name='other-cluster',
                                 kubernetes_template_id='urn:template:2',
                                 ssh_public_key=None)
    desired.worker_pools['pool-a'].sizing_policy_id = 'urn:sizing:large'
    with pytest.raises(MutabilityViolationError) as excinfo:
        mutability_guard.diff(current, desired)
    assert sorted(excinfo.value.fields.keys()) == [
        'kubernetesTemplateId',
        'metadata.name',
        'sshPublicKey',
        'workerPools[pool-a].sizingPolicyId',
    ]


def test_0070_add_pool(make_desired_state):
    current = make_desired_state(pools={'pool-a': 1})
    desired = make_desired_state(pools={'pool-a': 1, 'pool-b': 2})
    patch = mutability_guard.diff(current, desired)
    assert patch.spec == {}
    assert list(patch.worker_pools.added.keys()) == ['pool-b']
    assert patch.worker_pools.removed == []
    assert patch.worker_pools.updated == {}


def test_0080_remove_and_scale_pools(make_desired_state):
    current = make_desired_state(pools={'pool-a': 1, 'pool-b': 2})
    desired = make_desired_state(pools={'pool-a': 4})
    patch = mutability_guard.diff(current, desired)
    assert patch.worker_pools.removed == ['pool-b']
    assert patch.worker_pools.updated == {'pool-a': {'machineCount': 4}}


def test_0090_switch_pool_to_autoscaling(make_desired_state):
    current = make_desired_state(pools={'pool-a': 2})
    desired = make_desired_state(pools={'pool-a': (1, 5)})
    patch = mutability_guard.diff(current, desired)
    assert patch.worker_pools.updated == {'pool-a': {
        'machineCount': None,
        'autoscalerMinReplicas': 1,
        'autoscalerMaxReplicas': 5,
    }}


def test_0100_flags_are_mutable(make_desired_state):
    current = make_desired_state()
    desired = make_desired_state(auto_repair_on_errors=True,
                                 node_health_check=True)
    patch = mutability_guard.diff(current, desired)
    assert patch.spec == {'autoRepairOnErrors': True,
                          'nodeHealthCheck': True}


def test_0110_apply_keeps_unknown_fields_and_status(make_desired_state):
    current = make_desired_state(pools={'pool-a': 1, 'pool-c': 2})
    document = spec_builder.build(current)
    document['status'] = make_status(document, 'provisioned')
    document['spec']['futureField'] = {'keep': 'me'}
    document['spec']['workerPools'][0]['futureKnob'] = 'on'
    original = copy.deepcopy(document)

    desired = make_desired_state(control_plane_count=3,
                                 pools={'pool-a': (1, 3), 'pool-b': 1})
    patch = mutability_guard.diff(current, desired)
    patched = patch.apply(document)

    assert document == original
    assert patched['status'] == original['status']
    assert patched['metadata'] == original['metadata']
    assert patched['spec']['futureField'] == {'keep': 'me'}
    assert patched['spec']['secure'] == {'apiToken': 'secret-api-token'}
    assert patched['spec']['controlPlane']['machineCount'] == 3
    assert patched['spec']['controlPlane']['diskSizeGi'] == 20
    assert patched['spec']['workerPools'] == [
        {
            'name': 'pool-a',
            'autoscalerMinReplicas': 1,
            'autoscalerMaxReplicas': 3,
            'diskSizeGi': 20,
            'futureKnob': 'on',
        },
        {
            'name': 'pool-b',
            'machineCount': 1,
            'diskSizeGi': 20,
        },
    ]
    assert spec_builder.parse(patched) == \
        spec_builder.parse(spec_builder.build(desired))


def test_0120_find_diff_fields():
    result = mutability_guard.find_diff_fields(
        {'a': {'b': 1, 'c': 2}, 'd': 3},
        {'a': {'b': 1, 'c': 5}, 'e': 4},
        exclude_fields=['d'])
    assert result == {
        'a.c': {'expected': 5, 'actual': 2},
        'e': {'expected': 4, 'actual': None},
    }


def test_0130_added_pool_is_serialized_without_none_values():
    patch = mutability_guard.Patch()
    patch.worker_pools.added['pool-z'] = WorkerPool(name='pool-z',
                                                    machine_count=1)
    patched = patch.apply({'spec': {'workerPools': []}})
    assert patched['spec']['workerPools'] == [
        {'name': 'pool-z', 'machineCount': 1, 'diskSizeGi': 20}
    ]


def test_0140_site_is_not_compared(make_desired_state):
    """The site is recorded on create, specification files leave it out."""
    current = make_desired_state(site='https://vcd.example.com')
    desired = make_desired_state()
    assert mutability_guard.diff(current, desired).is_empty()
