# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Wait for a cluster entity to converge to a phase."""

from dataclasses import dataclass
import logging
import time
from typing import Callable, FrozenSet, Optional

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import ClusterPhase
from cse_cluster_manager.exception.exceptions import ClusterOperationTimeoutError  # noqa: E501
from cse_cluster_manager.exception.exceptions import ClusterProvisioningFailedError  # noqa: E501
from cse_cluster_manager.exception.exceptions import EntityNotFoundError
from cse_cluster_manager.exception.exceptions import MalformedDocumentError
from cse_cluster_manager.logging.logger import NULL_LOGGER
from cse_cluster_manager.rde.common.entity_store import EntityStore
from cse_cluster_manager.rde.models.status_models import ClusterObservedState
import cse_cluster_manager.rde.status_reader as status_reader


@dataclass
class BackoffPolicy:
    """Exponential backoff between two reads, capped at max_interval."""

    initial_interval_seconds: float = \
        cluster_constants.DEFAULT_POLL_INITIAL_INTERVAL_SECONDS
    max_interval_seconds: float = \
        cluster_constants.DEFAULT_POLL_MAX_INTERVAL_SECONDS
    multiplier: float = cluster_constants.DEFAULT_POLL_BACKOFF_MULTIPLIER

    def intervals(self):
        interval = self.initial_interval_seconds
        while True:
            yield min(interval, self.max_interval_seconds)
            interval *= self.multiplier


class PollTimeoutError(Exception):
    """Raised by poll_until when the timeout elapses.

    Carries the value of the last fetch.
    """

    def __init__(self, last_value, elapsed_seconds, attempts):
        self.last_value = last_value
        self.elapsed_seconds = elapsed_seconds
        self.attempts = attempts


def poll_until(fetch: Callable, predicate: Callable,
               timeout_seconds: Optional[float] = None,
               backoff: BackoffPolicy = None,
               clock: Callable[[], float] = time.monotonic,
               sleep: Callable[[float], None] = time.sleep):
    """Call fetch until predicate holds for its result.

    Each attempt is separated by the next backoff interval. No sleep goes
    past the deadline, so the last attempt happens right when the timeout
    elapses. Exceptions raised by fetch or predicate are propagated.

    :param fetch: callable without arguments returning the current value
    :param predicate: callable deciding whether a value is final
    :param float timeout_seconds: None waits forever
    :param BackoffPolicy backoff:
    :param clock: monotonic clock in seconds
    :param sleep: function suspending the caller for the given seconds

    :return: the first value accepted by predicate

    :raises PollTimeoutError: if the timeout elapsed first.
    """
    if backoff is None:
        backoff = BackoffPolicy()
    intervals = backoff.intervals()
    start = clock()
    attempts = 0
    while True:
        attempts += 1
        value = fetch()
        if predicate(value):
            return value
        elapsed = clock() - start
        if timeout_seconds is not None and elapsed >= timeout_seconds:
            raise PollTimeoutError(value, elapsed, attempts)
        interval = next(intervals)
        if timeout_seconds is not None:
            interval = min(interval, timeout_seconds - elapsed)
        sleep(interval)


# Marks a cluster entity that could not be found anymore
_ABSENT = object()


class ConvergencePoller:
    """Re-reads a cluster entity until it reaches an acceptable phase."""

    def __init__(self, entity_store: EntityStore,
                 backoff: BackoffPolicy = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep,
                 logger: logging.Logger = NULL_LOGGER):
        self._store = entity_store
        self._backoff = backoff or BackoffPolicy()
        self._clock = clock
        self._sleep = sleep
        self._logger = logger

    def await_phase(self, entity_id: str,
                    acceptable_phases: FrozenSet[ClusterPhase],
                    timeout_seconds: Optional[float],
                    operation: str,
                    accept_absent: bool = False,
                    honor_auto_repair: bool = True,
                    converged: Callable[[ClusterObservedState], bool] = None,
                    baseline: Optional[ClusterObservedState] = None
                    ) -> Optional[ClusterObservedState]:
        """Wait until the cluster entity reaches one of the given phases.

        An error phase ends the wait with a failure, unless auto repair is
        on in the entity and honor_auto_repair is set: then the remote
        engine retries on its own and the wait goes on.

        The remote engine picks up a write some time after it is made. If
        the cluster was in error phase before the write, that error keeps
        being read until the engine reacts, so it only ends the wait once
        the phase left error or a new error is reported.

        :param str entity_id: id of the cluster entity
        :param frozenset acceptable_phases: phases ending the wait
        :param float timeout_seconds: None waits forever
        :param str operation: name of the operation, used in errors and logs
        :param bool accept_absent: a deleted entity ends the wait
        :param converged: optional extra condition on an acceptable state
        :param ClusterObservedState baseline: state read right before the
            write that started the operation

        :return: the observed state, None if the entity is gone and
            accept_absent is set

        :rtype: ClusterObservedState

        :raises ClusterProvisioningFailedError: if the cluster reached the
            error phase.
        :raises ClusterOperationTimeoutError: if the timeout elapsed first.
        :raises EntityNotFoundError: if the entity is gone and accept_absent
            is not set.
        :raises MalformedDocumentError: if the entity cannot be read, with
            operation and cluster id set.
        """
        last_phase = {'value': None}
        stale_error = {
            'value': baseline is not None and
            baseline.phase == ClusterPhase.ERROR
        }
        known_error_count = len(baseline.errors) if baseline else 0

        def fetch():
            try:
                def_entity = self._store.read(entity_id)
            except EntityNotFoundError:
                if accept_absent:
                    self._logger.debug(f"Cluster entity '{entity_id}' is gone")  # noqa: E501
                    return _ABSENT
                raise
            try:
                observed = status_reader.read(def_entity.entity)
            except MalformedDocumentError as err:
                raise MalformedDocumentError(
                    err.error_message, err.path, operation=operation,
                    cluster_id=entity_id) from err
            if observed.phase != last_phase['value']:
                phase = observed.phase.value if observed.phase else 'unknown'
                self._logger.info(f"Cluster '{entity_id}' is now in phase "
                                  f"'{phase}' during {operation}")
                last_phase['value'] = observed.phase
            return observed

        def is_final(result):
            if result is _ABSENT:
                return True
            phase = result.phase
            if phase is None:
                return False
            if phase == ClusterPhase.ERROR:
                if stale_error['value'] and \
                        len(result.errors) <= known_error_count:
                    self._logger.debug(f"Cluster '{entity_id}' still reports "
                                       f"the error from before {operation}")
                    return False
                if honor_auto_repair and result.auto_repair_on_errors:
                    self._logger.debug(f"Cluster '{entity_id}' reported an "
                                       "error, waiting for auto repair")
                    return False
                raise ClusterProvisioningFailedError(
                    operation, entity_id, events=result.events,
                    errors=result.errors)
            stale_error['value'] = False
            if phase in (ClusterPhase.PROVISIONING, ClusterPhase.PROVISIONED,
                         ClusterPhase.DELETING):
                if phase not in acceptable_phases:
                    return False
                return converged is None or converged(result)
            raise ValueError(f"Unhandled cluster phase '{phase}'")

        try:
            result = poll_until(fetch, is_final,
                                timeout_seconds=timeout_seconds,
                                backoff=self._backoff,
                                clock=self._clock,
                                sleep=self._sleep)
        except PollTimeoutError as err:
            observed = err.last_value
            self._logger.info(f"Stopped waiting for cluster '{entity_id}' "
                              f"after {err.attempts} reads during "
                              f"{operation}")
            raise ClusterOperationTimeoutError(
                operation, entity_id,
                last_phase=observed.phase,
                elapsed_seconds=int(err.elapsed_seconds),
                last_observed_state=observed) from err
        if result is _ABSENT:
            return None
        return result
