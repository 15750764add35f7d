# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import requests

# events of the remote engine quoted in a provisioning failure message
_MAX_EVENTS_IN_MESSAGE = 5


class CseClusterError(Exception):
    """Base class for all cluster management exceptions."""


class ValidationError(CseClusterError):
    """Raised when a desired cluster state is malformed.

    Always raised before any request is sent to VCD.
    """

    def __init__(self, error_message, errors=None):
        self.error_message = str(error_message)
        self.errors = errors or []

    def __str__(self):
        if not self.errors:
            return self.error_message
        details = '; '.join(self.errors)
        return f"{self.error_message}: {details}"


class MalformedDocumentError(CseClusterError):
    """Raised when a cluster entity does not match the expected shape.

    operation and cluster_id are set when the document was read from VCD
    while acting on a cluster.
    """

    def __init__(self, error_message, path=None, operation=None,
                 cluster_id=None):
        self.error_message = str(error_message)
        self.path = path
        self.operation = operation
        self.cluster_id = cluster_id

    def __str__(self):
        msg = self.error_message
        if self.path:
            msg += f" (at '{self.path}')"
        if self.cluster_id:
            msg = f"Invalid cluster entity '{self.cluster_id}' during " \
                  f"{self.operation}: {msg}"
        return msg


class MutabilityViolationError(CseClusterError):
    """Raised when an update touches fields that cannot change in place.

    The cluster has to be recreated to apply such a change. The decision to
    do so is left to the caller.
    """

    def __init__(self, fields):
        """Construct the error.

        :param dict fields: flattened field name to a dict with keys
            'expected' (current value) and 'actual' (requested value).
        """
        self.fields = fields

    def __str__(self):
        return "Change detected in immutable field(s) " \
               f"{sorted(self.fields.keys())}; the cluster must be " \
               "replaced to apply it"


class ClusterReplacementRequiredError(MutabilityViolationError):
    """Raised by cluster update when the requested change needs a recreate."""

    def __init__(self, fields, cluster_id=None, operation='update'):
        super().__init__(fields)
        self.cluster_id = cluster_id
        self.operation = operation

    def __str__(self):
        return f"Cluster '{self.cluster_id}' requires replacement: " \
               f"{super().__str__()}"


class CseRequestError(CseClusterError):
    """Base class for errors returned by VCD for a REST request."""

    def __init__(self, status_code, error_message=None):
        self.status_code = status_code
        self.error_message = str(error_message)

    def __str__(self):
        return self.error_message


class DefEntityServiceError(CseRequestError):
    """Raised on any defined entity service operation failure."""

    def __init__(self, error_message=None,
                 status_code=requests.codes.internal_server_error):
        super().__init__(status_code, error_message)


class EntityNotFoundError(DefEntityServiceError):
    """Raised when the requested defined entity does not exist (anymore)."""

    def __init__(self, error_message=None):
        super().__init__(error_message, status_code=requests.codes.not_found)


class ClusterOperationError(CseClusterError):
    """Base class for failures of a cluster operation against VCD.

    Carries the name of the operation and the id of the cluster entity it
    was acting on.
    """

    def __init__(self, operation, cluster_id, error_message=None):
        self.operation = operation
        self.cluster_id = cluster_id
        self.error_message = error_message

    def __str__(self):
        msg = f"Cluster {self.operation} failed for '{self.cluster_id}'"
        if self.error_message:
            msg += f": {self.error_message}"
        return msg


class ClusterStoreError(ClusterOperationError):
    """Raised when VCD rejects a request on the cluster entity."""


class ClusterNotFoundError(ClusterOperationError):
    """Raised when the cluster entity is not found in VCD."""


class ClusterBusyError(ClusterOperationError):
    """Raised when the cluster is in a phase that does not allow the operation."""  # noqa: E501


class ClusterProvisioningFailedError(ClusterOperationError):
    """Raised when the remote engine reports the cluster in error phase.

    Raised only if auto repair is off, or if it was not honored for the
    operation. Carries the events and errors reported by the remote engine.
    """

    def __init__(self, operation, cluster_id, events=None, errors=None,
                 error_message=None):
        super().__init__(operation, cluster_id, error_message)
        self.events = events or []
        self.errors = errors or []

    def __str__(self):
        msg = f"Cluster '{self.cluster_id}' is in error phase during " \
              f"{self.operation}"
        if self.error_message:
            msg += f": {self.error_message}"
        if self.errors:
            details = '; '.join(str(error) for error in self.errors)
            msg += f". Reported errors: {details}"
        if self.events:
            recent = self.events[-_MAX_EVENTS_IN_MESSAGE:]
            details = '; '.join(str(event) for event in recent)
            msg += f". Last events: {details}"
        return msg


class ClusterOperationTimeoutError(ClusterOperationError):
    """Raised when a cluster did not converge within the operation timeout.

    This is not a failure of the cluster. The remote engine keeps working on
    the request and the cluster may converge later.
    """

    def __init__(self, operation, cluster_id, last_phase=None,
                 elapsed_seconds=None, last_observed_state=None):
        super().__init__(operation, cluster_id)
        self.last_phase = last_phase
        self.elapsed_seconds = elapsed_seconds
        self.last_observed_state = last_observed_state

    def __str__(self):
        phase = self.last_phase.value if self.last_phase else 'unknown'
        return f"Timed out after {self.elapsed_seconds} seconds waiting " \
               f"for cluster '{self.cluster_id}' to finish " \
               f"{self.operation}; last known phase: {phase}. The " \
               "operation is still in progress, check the cluster later."
