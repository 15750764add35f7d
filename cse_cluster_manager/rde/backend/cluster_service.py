# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Drive cluster entities through their lifecycle.

Every operation reads the cluster entity right before writing to it and
then waits for the remote engine to converge. Concurrent invocations on the
same cluster must be serialized by the caller.
"""

import contextlib
import dataclasses
import logging
from typing import List, Optional

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import AccessLevel
from cse_cluster_manager.common.constants.shared_constants import ClusterLifecycleState  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import ClusterPhase
import cse_cluster_manager.exception.exceptions as exceptions
from cse_cluster_manager.logging.logger import NULL_LOGGER
import cse_cluster_manager.rde.backend.convergence_poller as convergence_poller
import cse_cluster_manager.rde.constants as rde_constants
from cse_cluster_manager.rde.common.entity_store import EntityStore
from cse_cluster_manager.rde.models.cluster_models import ClusterDesiredState
from cse_cluster_manager.rde.models.cluster_models import ClusterHandle
from cse_cluster_manager.rde.models.status_models import ClusterObservedState
import cse_cluster_manager.rde.spec_builder as spec_builder
import cse_cluster_manager.rde.status_reader as status_reader
import cse_cluster_manager.rde.validators.mutability_guard as mutability_guard


class ClusterOperation:
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    SHARE = 'share'


@contextlib.contextmanager
def _translate_store_errors(operation, cluster_id):
    """Attach operation and cluster id to errors raised by the store."""
    try:
        yield
    except exceptions.EntityNotFoundError as err:
        raise exceptions.ClusterNotFoundError(
            operation, cluster_id, str(err)) from err
    except exceptions.DefEntityServiceError as err:
        raise exceptions.ClusterStoreError(
            operation, cluster_id, str(err)) from err
    except exceptions.MalformedDocumentError as err:
        if err.cluster_id:
            raise
        raise exceptions.MalformedDocumentError(
            err.error_message, err.path, operation=operation,
            cluster_id=cluster_id) from err


def _get_cluster_id(cluster):
    if isinstance(cluster, ClusterHandle):
        return cluster.id
    return cluster


def _node_pools_reflect(desired: ClusterDesiredState,
                        patch: mutability_guard.Patch):
    """Build a check telling whether the engine picked up a new size.

    Right after an update the entity may still report the previous
    provisioned state, the remote engine has not seen the change yet. The
    check holds once the node pools reported by the engine match the fixed
    sizes requested, added pools show up and removed pools are gone. Pools
    the engine does not report are not checked.
    """
    expected_counts = {
        f"{desired.name}{cluster_constants.CONTROL_PLANE_POOL_NAME_SUFFIX}":
            desired.control_plane.machine_count
    }
    for name, pool in desired.worker_pools.items():
        expected_counts[name] = None if pool.is_autoscaled \
            else pool.machine_count
    added = set(patch.worker_pools.added.keys())
    removed = set(patch.worker_pools.removed)

    def converged(observed: ClusterObservedState) -> bool:
        if not observed.node_pools:
            return True
        if removed & set(observed.node_pools.keys()):
            return False
        for name, count in expected_counts.items():
            pool_status = observed.node_pools.get(name)
            if pool_status is None:
                if name in added:
                    return False
                continue
            if count is not None and pool_status.desired_replicas != count:
                return False
        return True
    return converged


class ClusterService:
    """Creates, reads, updates and deletes clusters backed by an entity.

    The entity store is passed in explicitly so that independent instances
    can talk to different VCD sessions, or to fakes in tests. site is the
    url of the VCD behind the store, recorded in the clusters it creates.
    """

    def __init__(self, entity_store: EntityStore,
                 rde_version: str = rde_constants.DEFAULT_RDE_VERSION,
                 poller: convergence_poller.ConvergencePoller = None,
                 logger: logging.Logger = NULL_LOGGER,
                 site: Optional[str] = None):
        self._store = entity_store
        self._site = site
        self._entity_type_id = \
            rde_constants.get_cluster_entity_type_id(rde_version)
        self._poller = poller or convergence_poller.ConvergencePoller(
            entity_store, logger=logger)
        self._logger = logger

    def _log_transition(self, cluster, from_state: ClusterLifecycleState,
                        to_state: ClusterLifecycleState):
        self._logger.info(f"Cluster '{cluster}': {from_state.value} -> "
                          f"{to_state.value}")

    def _await_provisioned(self, cluster_id, operation, timeout_seconds,
                           converged=None,
                           baseline=None) -> ClusterObservedState:
        with _translate_store_errors(operation, cluster_id):
            return self._poller.await_phase(
                cluster_id,
                frozenset([ClusterPhase.PROVISIONED]),
                timeout_seconds,
                operation,
                converged=converged,
                baseline=baseline)

    def create_cluster(self, desired: ClusterDesiredState) -> ClusterHandle:
        """Create a cluster and wait until it is provisioned.

        :param ClusterDesiredState desired:

        :return: handle of the new cluster with its observed state

        :rtype: ClusterHandle

        :raises ValidationError: if desired is malformed, nothing is sent to
            VCD in that case.
        :raises ClusterProvisioningFailedError: if the cluster went to the
            error phase with auto repair off.
        :raises ClusterOperationTimeoutError: if the cluster was not
            provisioned in time. The error carries the id of the new
            cluster, which keeps being provisioned.
        """
        if desired.site is None and self._site:
            desired = dataclasses.replace(desired, site=self._site)
        document = spec_builder.build(desired)
        self._log_transition(desired.name, ClusterLifecycleState.ABSENT,
                             ClusterLifecycleState.CREATING)
        with _translate_store_errors(ClusterOperation.CREATE, desired.name):
            cluster_id = self._store.create(self._entity_type_id,
                                            desired.name, document)
        self._logger.info(f"Created cluster entity '{cluster_id}' for "
                          f"cluster '{desired.name}'")

        observed = self._await_provisioned(
            cluster_id, ClusterOperation.CREATE,
            desired.operations_timeout_seconds)
        self._log_transition(cluster_id, ClusterLifecycleState.CREATING,
                             ClusterLifecycleState.PROVISIONED)
        return ClusterHandle(id=cluster_id, name=desired.name,
                             org=desired.org, observed_state=observed)

    def read_cluster(self, cluster) -> ClusterObservedState:
        """Read the observed state of a cluster.

        :param cluster: ClusterHandle or cluster entity id

        :rtype: ClusterObservedState

        :raises ClusterNotFoundError: if the cluster does not exist.
        """
        cluster_id = _get_cluster_id(cluster)
        with _translate_store_errors(ClusterOperation.READ, cluster_id):
            def_entity = self._store.read(cluster_id)
            return status_reader.read(def_entity.entity)

    def read_cluster_configuration(self, cluster) -> ClusterDesiredState:
        """Read the desired state stored in a cluster entity.

        The credential is never returned.

        :param cluster: ClusterHandle or cluster entity id

        :rtype: ClusterDesiredState
        """
        cluster_id = _get_cluster_id(cluster)
        with _translate_store_errors(ClusterOperation.READ, cluster_id):
            def_entity = self._store.read(cluster_id)
            return spec_builder.parse(def_entity.entity)

    def get_lifecycle_state(self, cluster) -> ClusterLifecycleState:
        cluster_id = _get_cluster_id(cluster)
        try:
            observed = self.read_cluster(cluster_id)
        except exceptions.ClusterNotFoundError:
            return ClusterLifecycleState.ABSENT
        return ClusterLifecycleState.from_phase(observed.phase)

    def update_cluster(self, cluster,
                       desired: ClusterDesiredState) -> ClusterObservedState:
        """Apply the mutable changes of desired to a cluster.

        :param cluster: ClusterHandle or cluster entity id
        :param ClusterDesiredState desired:

        :return: observed state once the change is applied, or the current
            one if nothing changes.

        :rtype: ClusterObservedState

        :raises ValidationError: if desired is malformed.
        :raises ClusterReplacementRequiredError: if desired changes fields
            that can only be set by recreating the cluster.
        :raises ClusterBusyError: if the cluster is being provisioned or
            deleted.
        """
        spec_builder.validate(desired)
        cluster_id = _get_cluster_id(cluster)
        with _translate_store_errors(ClusterOperation.UPDATE, cluster_id):
            def_entity = self._store.read(cluster_id)
            current_observed = status_reader.read(def_entity.entity)
        phase = current_observed.phase
        if current_observed.marked_for_delete or phase is None or \
                phase.is_busy():
            state = ClusterLifecycleState.DELETING \
                if current_observed.marked_for_delete \
                else ClusterLifecycleState.from_phase(phase)
            raise exceptions.ClusterBusyError(
                ClusterOperation.UPDATE, cluster_id,
                f"cluster is {state.value}, retry once it settles")

        with _translate_store_errors(ClusterOperation.UPDATE, cluster_id):
            current = spec_builder.parse(def_entity.entity)
        try:
            patch = mutability_guard.diff(current, desired)
        except exceptions.MutabilityViolationError as err:
            raise exceptions.ClusterReplacementRequiredError(
                err.fields, cluster_id=cluster_id) from err
        if patch.is_empty():
            self._logger.info(f"Cluster '{cluster_id}' already matches the "
                              "requested state")
            return current_observed

        self._logger.debug(f"Updating cluster '{cluster_id}' with {patch}")
        def_entity.entity = patch.apply(def_entity.entity)
        self._log_transition(cluster_id,
                             ClusterLifecycleState.from_phase(phase),
                             ClusterLifecycleState.UPDATING)
        with _translate_store_errors(ClusterOperation.UPDATE, cluster_id):
            self._store.update(cluster_id, def_entity)

        observed = self._await_provisioned(
            cluster_id, ClusterOperation.UPDATE,
            desired.operations_timeout_seconds,
            converged=_node_pools_reflect(desired, patch),
            baseline=current_observed)
        self._log_transition(cluster_id, ClusterLifecycleState.UPDATING,
                             ClusterLifecycleState.PROVISIONED)
        return observed

    def delete_cluster(self, cluster,
                       operations_timeout_minutes=cluster_constants.DEFAULT_OPERATIONS_TIMEOUT_MINUTES):  # noqa: E501
        """Delete a cluster and wait until its entity is gone.

        Deleting a cluster that does not exist succeeds. An error reported
        while deleting is never retried, auto repair does not apply.

        :param cluster: ClusterHandle or cluster entity id
        :param int operations_timeout_minutes: 0 waits forever

        :raises ClusterProvisioningFailedError: if the deletion failed.
        :raises ClusterOperationTimeoutError: if the entity is still there
            when the timeout elapses.
        """
        cluster_id = _get_cluster_id(cluster)
        try:
            with _translate_store_errors(ClusterOperation.DELETE, cluster_id):
                def_entity = self._store.read(cluster_id)
                current_observed = status_reader.read(def_entity.entity)
                def_entity.entity = spec_builder.mark_for_delete(
                    def_entity.entity)
                self._store.update(cluster_id, def_entity)
        except exceptions.ClusterNotFoundError:
            self._logger.info(f"Cluster '{cluster_id}' is already deleted")
            return
        self._logger.info(f"Cluster '{cluster_id}' is marked for delete")

        timeout_seconds = None
        if operations_timeout_minutes:
            timeout_seconds = operations_timeout_minutes * 60
        with _translate_store_errors(ClusterOperation.DELETE, cluster_id):
            self._poller.await_phase(cluster_id,
                                     frozenset(),
                                     timeout_seconds,
                                     ClusterOperation.DELETE,
                                     accept_absent=True,
                                     honor_auto_repair=False,
                                     baseline=current_observed)
        self._log_transition(cluster_id, ClusterLifecycleState.DELETING,
                             ClusterLifecycleState.ABSENT)

    def share_cluster(self, cluster, member_ids: List[str],
                      access_level: AccessLevel = AccessLevel.READ_ONLY):
        """Grant users or groups access to a cluster entity.

        :param cluster: ClusterHandle or cluster entity id
        :param list member_ids: urns of the users or groups
        :param AccessLevel access_level:
        """
        cluster_id = _get_cluster_id(cluster)
        with _translate_store_errors(ClusterOperation.SHARE, cluster_id):
            self._store.grant_access(cluster_id, member_ids,
                                     access_level.value)
