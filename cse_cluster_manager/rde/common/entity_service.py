# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import functools
import json
from typing import List

from requests.exceptions import HTTPError

from cse_cluster_manager.common.constants.shared_constants import AclGrantType
from cse_cluster_manager.common.constants.shared_constants import CSE_PAGINATION_DEFAULT_PAGE_SIZE  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import CSE_PAGINATION_FIRST_PAGE_NUMBER  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import HttpRequestHeader  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import HttpResponseHeader  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import PaginationKey
from cse_cluster_manager.common.constants.shared_constants import RequestMethod
import cse_cluster_manager.exception.exceptions as cse_exception
from cse_cluster_manager.lib.cloudapi.cloudapi_client import CloudApiClient
from cse_cluster_manager.lib.cloudapi.constants import CloudApiResource
from cse_cluster_manager.lib.cloudapi.constants import CloudApiVersion
from cse_cluster_manager.lib.cloudapi.constants import ResponseKeys
from cse_cluster_manager.logging.logger import CLIENT_LOGGER as LOGGER
import cse_cluster_manager.rde.constants as def_constants
from cse_cluster_manager.rde.common.entity_store import EntityStore
from cse_cluster_manager.rde.models.common_models import DefEntity


def _get_error_message(response):
    try:
        response_dict = json.loads(response.text)
    except ValueError:
        return response.text or response.reason
    if isinstance(response_dict, dict):
        return response_dict.get(def_constants.DEF_ERROR_MESSAGE_KEY,
                                 response.text)
    return response.text


def handle_entity_service_exception(func):
    """Decorate to trap exceptions and process them.

    Raise HTTPError with status 404 as EntityNotFoundError and any other
    HTTPError as DefEntityServiceError. Re-raise any other exception as it
    is.

    This decorator should be applied only on methods of entity_service.py

    :param method func: decorated function

    :return: reference to the function that executes the decorated function
        and traps exceptions raised by it.
    """
    @functools.wraps(func)
    def exception_handler_wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
        except HTTPError as error:
            response = error.response
            if response is None:
                LOGGER.error(str(error))
                raise cse_exception.DefEntityServiceError(
                    error_message=str(error)) from error
            error_message = _get_error_message(response)
            if response.status_code == 404:
                LOGGER.debug(f"Entity not found: {error_message}")
                raise cse_exception.EntityNotFoundError(
                    error_message=error_message) from error
            LOGGER.error(error_message)
            raise cse_exception.DefEntityServiceError(
                error_message=error_message,
                status_code=response.status_code) from error
        except Exception as error:
            LOGGER.error(error)
            raise error
        return result
    return exception_handler_wrapper


class DefEntityService(EntityStore):
    """Manages lifecycle of cluster entities through the VCD cloudapi."""

    def __init__(self, cloudapi_client: CloudApiClient):
        self._cloudapi_client = cloudapi_client

    @handle_entity_service_exception
    def create(self, entity_type_id: str, name: str, entity: dict) -> str:
        """Create a cluster entity, resolve it and return its id.

        VCD answers the creation with a task, the new entity is then looked
        up by name among the entities of the type that are not resolved yet.

        :param str entity_type_id: ID of the entity type
        :param str name: name of the entity
        :param dict entity: entity document, must not carry a status

        :return: id of the created entity
        :rtype: str
        """
        payload = {'name': name, 'entity': entity}
        response_body, response_headers = self._cloudapi_client.do_request(
            method=RequestMethod.POST,
            cloudapi_version=CloudApiVersion.VERSION_1_0_0,
            resource_url_relative_path=f"{CloudApiResource.ENTITY_TYPES.value}/"  # noqa: E501
                                       f"{entity_type_id}",
            payload=payload,
            return_response_headers=True)
        LOGGER.debug(f"Create request for entity '{name}' accepted, task: "
                     f"{response_headers.get(HttpResponseHeader.LOCATION.value)}")  # noqa: E501

        entity_id = None
        if response_body:
            entity_id = response_body.get(ResponseKeys.ID.value)
        if not entity_id:
            entity_id = self._find_unresolved_entity_id(entity_type_id, name)
        self.resolve_entity(entity_id)
        return entity_id

    def _find_unresolved_entity_id(self, entity_type_id, name):
        vendor, nss, version = entity_type_id.split(':')[-3:]
        candidates = [
            entity for entity in self.list_entities_by_entity_type(
                vendor, nss, version, filters={'name': name})
            if entity.state != def_constants.DEF_RESOLVED_STATE
        ]
        if len(candidates) != 1:
            raise cse_exception.DefEntityServiceError(
                f"Expected one new entity named '{name}' of type "
                f"'{entity_type_id}', found {len(candidates)}")
        return candidates[0].id

    def list_entities_by_entity_type(self, vendor: str, nss: str,
                                     version: str, filters: dict = None):
        """List entities of a given entity type.

        :param str vendor: Vendor of the entity type
        :param str nss: nss of the entity type
        :param str version: version of the entity type
        :param dict filters: Key-value pairs representing filter options
        :return: Generator of entities of that entity type
        :rtype: Generator[DefEntity, None, None]
        """
        params = {PaginationKey.PAGE_SIZE.value: CSE_PAGINATION_DEFAULT_PAGE_SIZE,  # noqa: E501
                  'sortAsc': 'name'}
        if filters:
            params['filter'] = ';'.join(f"{key}=={value}"
                                        for key, value in filters.items())
        page_num = CSE_PAGINATION_FIRST_PAGE_NUMBER
        while True:
            params[PaginationKey.PAGE_NUMBER.value] = page_num
            response_body = self._cloudapi_client.do_request(
                method=RequestMethod.GET,
                cloudapi_version=CloudApiVersion.VERSION_1_0_0,
                resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"  # noqa: E501
                                           f"types/{vendor}/{nss}/{version}",
                params=params)
            values = response_body[PaginationKey.VALUES.value]
            if len(values) == 0:
                break
            for entity in values:
                yield DefEntity.from_dict(entity)
            page_num += 1

    @handle_entity_service_exception
    def resolve_entity(self, entity_id: str) -> DefEntity:
        """Resolve the entity.

        Validates the entity against the schema of its type. Based on the
        result, entity state will be either changed to "RESOLVED" (or)
        "RESOLUTION_ERROR".

        :param str entity_id: Id of the entity
        :return: Defined entity with its state updated.
        :rtype: DefEntity
        """
        response_body = self._cloudapi_client.do_request(
            method=RequestMethod.POST,
            cloudapi_version=CloudApiVersion.VERSION_1_0_0,
            resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"
                                       f"{entity_id}/"
                                       f"{CloudApiResource.ENTITY_RESOLVE.value}")  # noqa: E501
        def_entity = DefEntity.from_dict(response_body)
        if def_entity.state != def_constants.DEF_RESOLVED_STATE:
            raise cse_exception.DefEntityServiceError(
                f"Entity '{entity_id}' could not be resolved, state: "
                f"{def_entity.state}")
        return def_entity

    @handle_entity_service_exception
    def read(self, entity_id: str) -> DefEntity:
        """Get the defined entity given entity id.

        :param str entity_id: Id of the entity.
        :return: Details of the entity, with the ETag of the response.
        :rtype: DefEntity
        """
        response_body, response_headers = self._cloudapi_client.do_request(
            method=RequestMethod.GET,
            cloudapi_version=CloudApiVersion.VERSION_1_0_0,
            resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"
                                       f"{entity_id}",
            return_response_headers=True)
        def_entity = DefEntity.from_dict(response_body)
        def_entity.etag = response_headers.get(HttpResponseHeader.ETAG.value)
        return def_entity

    @handle_entity_service_exception
    def update(self, entity_id: str, def_entity: DefEntity) -> None:
        """Replace the entity body.

        :param str entity_id: Id of the entity to be updated.
        :param DefEntity def_entity: Modified entity. Its etag, if any, is
            sent as If-Match so that concurrent writes are rejected.
        """
        additional_request_headers = {}
        if def_entity.etag:
            additional_request_headers[HttpRequestHeader.IF_MATCH.value] = \
                def_entity.etag
        payload = {
            'name': def_entity.name,
            'entityType': def_entity.entityType,
            'externalId': def_entity.externalId,
            'entity': def_entity.entity,
        }
        self._cloudapi_client.do_request(
            method=RequestMethod.PUT,
            cloudapi_version=CloudApiVersion.VERSION_1_0_0,
            resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"
                                       f"{entity_id}",
            payload=payload,
            additional_request_headers=additional_request_headers)

    @handle_entity_service_exception
    def delete(self, entity_id: str) -> None:
        """Delete the defined entity without waiting for the remote engine.

        :param str entity_id: Id of the entity.
        """
        self._cloudapi_client.do_request(
            method=RequestMethod.DELETE,
            cloudapi_version=CloudApiVersion.VERSION_1_0_0,
            resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"
                                       f"{entity_id}")

    @handle_entity_service_exception
    def grant_access(self, entity_id: str, member_ids: List[str],
                     access_level_id: str) -> None:
        """Create an ACL rule on the entity for each member.

        :param str entity_id: Id of the Entity
        :param list member_ids: user or group urns the grant applies to
        :param str access_level_id: level of access which the members will
            be granted.
        """
        for member_id in member_ids:
            acl_details = {
                'grantType': AclGrantType.MembershipAccessControlGrant.value,
                'accessLevelId': access_level_id,
                'memberId': member_id
            }
            self._cloudapi_client.do_request(
                method=RequestMethod.POST,
                cloudapi_version=CloudApiVersion.VERSION_1_0_0,
                resource_url_relative_path=f"{CloudApiResource.ENTITIES.value}/"  # noqa: E501
                                           f"{entity_id}/"
                                           f"{CloudApiResource.ACL.value}",
                payload=acl_details)
