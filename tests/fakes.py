# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""In-memory stand-ins for VCD used by the tests."""

import copy

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
import cse_cluster_manager.exception.exceptions as exceptions
from cse_cluster_manager.rde.common.entity_store import EntityStore
from cse_cluster_manager.rde.models.common_models import DefEntity

# step of the simulated engine removing the entity
GONE = 'gone'

KUBERNETES_VERSION = 'v1.25.7+vmware.2'
KUBECONFIG = 'apiVersion: v1\nkind: Config\nclusters: []\n'


def make_status(document, phase, node_pool_spec=None):
    """Build the status subtree the remote engine would write.

    :param dict document: cluster entity document
    :param str phase: value of status.vcdKe.state
    :param dict node_pool_spec: spec the node pool report is computed from,
        the spec of the document if not given.
    """
    spec = node_pool_spec if node_pool_spec is not None \
        else document.get('spec', {})
    name = document.get('metadata', {}).get('name')
    node_pools = [{
        'name': f"{name}{cluster_constants.CONTROL_PLANE_POOL_NAME_SUFFIX}",
        'desiredReplicas': spec.get('controlPlane', {}).get('machineCount'),
        'availableReplicas':
            spec.get('controlPlane', {}).get('machineCount')
            if phase == 'provisioned' else 0,
    }]
    for pool in spec.get('workerPools', []):
        replicas = pool.get('machineCount',
                            pool.get('autoscalerMinReplicas'))
        node_pools.append({
            'name': pool['name'],
            'desiredReplicas': replicas,
            'availableReplicas': replicas if phase == 'provisioned' else 0,
        })
    status = {
        'vcdKe': {
            'state': phase,
            'vcdKeVersion': '4.1.0',
            'eventSet': [{'name': 'ClusterPhaseChanged',
                          'occurredAt': '2023-06-01T10:00:00Z',
                          'additionalDetails': {'phase': phase}}],
            'errorSet': [],
        },
        'capvcd': {
            'version': '1.1.0',
            'upgrade': {
                'current': {
                    'kubernetesVersion': KUBERNETES_VERSION,
                    'tkgVersion': 'v2.2.0',
                },
            },
            'clusterResourceSetBindings': [{'name': 'cpi-crs'},
                                           {'name': 'csi-crs'}],
            'nodePool': node_pools,
            'private': {'kubeConfig': KUBECONFIG},
        },
        'cpi': {'version': '1.4.0'},
        'csi': {'version': '1.4.0'},
    }
    if phase == 'error':
        status['vcdKe']['errorSet'].append({
            'name': 'CapiClusterCreationError',
            'occurredAt': '2023-06-01T10:05:00Z',
            'vcdResourceName': name,
            'additionalDetails': {'error': 'quota exceeded'},
        })
    return status


class FakeEntityStore(EntityStore):
    """In-memory entity store that plays the role of the remote engine.

    Every write queues the steps of the matching progression for the entity.
    Each read consumes one step and rewrites the status accordingly; once the
    steps are exhausted the entity stays as it is. A None step leaves the
    entity untouched for one read. The node pool report
    reflects the spec the engine last picked up, which happens on a
    'provisioning' step.
    """

    def __init__(self):
        self.entities = {}
        self.on_create = ['provisioning', 'provisioned']
        self.on_update = ['provisioned', 'provisioning', 'provisioned']
        self.on_delete = ['deleting', GONE]
        self.calls = []
        self.grants = []
        self._pending = {}
        self._seen_spec = {}
        self._count = 0

    def _next_etag(self):
        self._count += 1
        return f'"etag-{self._count}"'

    def add_entity(self, document, entity_id='urn:vcloud:entity:vmware:capvcdCluster:existing'):  # noqa: E501
        """Store a document as if created earlier, without engine steps."""
        self.entities[entity_id] = DefEntity(
            name=document.get('metadata', {}).get('name'),
            entity=copy.deepcopy(document),
            id=entity_id,
            entityType='urn:vcloud:type:vmware:capvcdCluster:1.2.0',
            state='RESOLVED',
            etag=self._next_etag())
        self._seen_spec[entity_id] = copy.deepcopy(document.get('spec', {}))
        return entity_id

    def queue(self, entity_id, steps):
        self._pending[entity_id] = list(steps)

    def create(self, entity_type_id, name, entity):
        self.calls.append(('create', name))
        assert 'status' not in entity
        entity_id = f"urn:vcloud:entity:vmware:capvcdCluster:{len(self.entities) + 1}"  # noqa: E501
        self.entities[entity_id] = DefEntity(
            name=name,
            entity=copy.deepcopy(entity),
            id=entity_id,
            entityType=entity_type_id,
            state='RESOLVED',
            etag=self._next_etag())
        self._seen_spec[entity_id] = copy.deepcopy(entity['spec'])
        self.queue(entity_id, self.on_create)
        return entity_id

    def read(self, entity_id):
        self.calls.append(('read', entity_id))
        if entity_id not in self.entities:
            raise exceptions.EntityNotFoundError(
                f"Entity '{entity_id}' not found")
        steps = self._pending.get(entity_id)
        if steps:
            self._apply_step(entity_id, steps.pop(0))
            if entity_id not in self.entities:
                raise exceptions.EntityNotFoundError(
                    f"Entity '{entity_id}' not found")
        return copy.deepcopy(self.entities[entity_id])

    def _apply_step(self, entity_id, step):
        if step is None:
            return
        if step == GONE:
            del self.entities[entity_id]
            return
        def_entity = self.entities[entity_id]
        if step == 'provisioning':
            self._seen_spec[entity_id] = copy.deepcopy(
                def_entity.entity['spec'])
        def_entity.entity['status'] = make_status(
            def_entity.entity, step, self._seen_spec[entity_id])
        def_entity.etag = self._next_etag()

    def update(self, entity_id, def_entity):
        self.calls.append(('update', entity_id))
        if entity_id not in self.entities:
            raise exceptions.EntityNotFoundError(
                f"Entity '{entity_id}' not found")
        current = self.entities[entity_id]
        if def_entity.etag is not None and def_entity.etag != current.etag:
            raise exceptions.DefEntityServiceError(
                'ETag mismatch', status_code=412)
        current.entity = copy.deepcopy(def_entity.entity)
        current.etag = self._next_etag()
        if current.entity['spec'].get('markForDelete'):
            self.queue(entity_id, self.on_delete)
        else:
            self.queue(entity_id, self.on_update)

    def delete(self, entity_id):
        self.calls.append(('delete', entity_id))
        if entity_id not in self.entities:
            raise exceptions.EntityNotFoundError(
                f"Entity '{entity_id}' not found")
        del self.entities[entity_id]

    def grant_access(self, entity_id, member_ids, access_level_id):
        self.calls.append(('grant_access', entity_id))
        if entity_id not in self.entities:
            raise exceptions.EntityNotFoundError(
                f"Entity '{entity_id}' not found")
        for member_id in member_ids:
            self.grants.append((entity_id, member_id, access_level_id))

    def writes(self):
        return [call for call in self.calls
                if call[0] in ('create', 'update', 'delete')]


class FakeClock:
    """Monotonic clock only advanced by sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        assert seconds >= 0
        self.sleeps.append(seconds)
        self.now += seconds


