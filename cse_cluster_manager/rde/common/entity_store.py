# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import abc
from typing import List

from cse_cluster_manager.rde.models.common_models import DefEntity


class EntityStore(abc.ABC):
    """Storage of cluster entities addressed by id.

    Documents are opaque to the store. read() raises EntityNotFoundError
    once the entity is gone, every other failure is raised as
    DefEntityServiceError.
    """

    @abc.abstractmethod
    def create(self, entity_type_id: str, name: str, entity: dict) -> str:
        """Create an entity and return its id."""

    @abc.abstractmethod
    def read(self, entity_id: str) -> DefEntity:
        pass

    @abc.abstractmethod
    def update(self, entity_id: str, def_entity: DefEntity) -> None:
        """Replace the entity body.

        def_entity.etag, if set, guards against concurrent modification.
        """

    @abc.abstractmethod
    def delete(self, entity_id: str) -> None:
        pass

    @abc.abstractmethod
    def grant_access(self, entity_id: str, member_ids: List[str],
                     access_level_id: str) -> None:
        pass
