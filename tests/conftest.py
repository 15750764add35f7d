# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""
conftest.py is used by pytest to automatically find shared fixtures.

Fixtures defined here can be used without importing.
"""
from fakes import FakeClock
from fakes import FakeEntityStore
import pytest

from cse_cluster_manager.rde.backend.cluster_service import ClusterService
from cse_cluster_manager.rde.backend.convergence_poller import ConvergencePoller  # noqa: E501
from cse_cluster_manager.rde.models.cluster_models import ClusterDesiredState
from cse_cluster_manager.rde.models.cluster_models import ControlPlane
from cse_cluster_manager.rde.models.cluster_models import WorkerPool


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def entity_store():
    return FakeEntityStore()


@pytest.fixture
def poller(entity_store, fake_clock):
    return ConvergencePoller(entity_store, clock=fake_clock,
                             sleep=fake_clock.sleep)


@pytest.fixture
def cluster_service(entity_store, poller):
    return ClusterService(entity_store, poller=poller)


@pytest.fixture
def make_desired_state():
    """Fixture returning a factory of valid desired states.

    Usage: make_desired_state(control_plane_count=1, pools={'pool-a': 1})
        where a pool maps to a machine count or to a (min, max) tuple of
        autoscaler bounds. Other keyword arguments override fields of
        ClusterDesiredState.
    """
    def factory(control_plane_count=1, pools=None, **overrides):
        if pools is None:
            pools = {'pool-a': 1}
        worker_pools = {}
        for name, size in pools.items():
            if isinstance(size, tuple):
                worker_pools[name] = WorkerPool(
                    name=name,
                    autoscaler_min_replicas=size[0],
                    autoscaler_max_replicas=size[1])
            else:
                worker_pools[name] = WorkerPool(name=name, machine_count=size)
        fields = {
            'name': 'my-cluster',
            'org': 'my-org',
            'vdc_id': 'urn:vcloud:vdc:1',
            'network_id': 'urn:vcloud:network:1',
            'kubernetes_template_id': 'urn:vcloud:vapptemplate:1',
            'control_plane': ControlPlane(machine_count=control_plane_count),
            'worker_pools': worker_pools,
            'credential': 'secret-api-token',
        }
        fields.update(overrides)
        return ClusterDesiredState(**fields)
    return factory
