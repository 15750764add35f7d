# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from copy import deepcopy
import json
import logging

import requests

from cse_cluster_manager.logging.logger import NULL_LOGGER


class CloudApiClient:
    """REST based client for the VCD /cloudapi endpoint."""

    def __init__(self,
                 base_url: str,
                 token: str,
                 is_jwt_token: bool,
                 api_version: str,
                 logger_debug: logging.Logger = NULL_LOGGER,
                 logger_wire: logging.Logger = NULL_LOGGER,
                 verify_ssl: bool = True,
                 session: requests.Session = None):
        if not base_url.endswith('/'):
            base_url += '/'
        self._base_url = base_url

        self._headers = {}
        if is_jwt_token:
            self._headers["Authorization"] = f"Bearer {token}"
        else:
            self._headers["x-vcloud-authorization"] = token
        self._headers["Accept"] = f"application/json;version={api_version}"
        self._headers["Content-Type"] = "application/json"

        self._verify_ssl = verify_ssl
        self._session = session or requests.Session()
        self.LOGGER = logger_debug
        self.LOGGER_WIRE = logger_wire
        self._last_response = None

    def get_last_response(self):
        return self._last_response

    def do_request(self,
                   method,
                   cloudapi_version=None,
                   resource_url_relative_path=None,
                   payload=None,
                   params=None,
                   additional_request_headers=None,
                   return_response_headers=False):
        """Make a request to vCD server at /cloudapi endpoint.

        :param shared_constants.RequestMethod method: One of the HTTP verb
            defined in the enum.
        :param str cloudapi_version: cloudapi version that's part of the url
            e.g. 1.0.0 in /cloudapi/1.0.0/entities
        :param str resource_url_relative_path: part of the url that identifies
            just the resource (the host and the common /cloudapi/ should be
            omitted). E.g. entities/urn:vcloud:entity:vmware:capvcdCluster:ac31
        :param dict payload: JSON payload for the REST call.
        :param dict params: query parameters of the request.
        :param dict additional_request_headers: request specific headers
        :param bool return_response_headers: should return response_headers?

        :return: body of the response text (JSON) in form of a dictionary and
            the response headers if return_response_headers is set

        :rtype: dict or (dict, dict)

        :raises HTTPError: if the underlying REST call fails.
        """
        url = self._base_url
        if cloudapi_version:
            url += f"{cloudapi_version}/"
        url += f"{resource_url_relative_path}"

        self.LOGGER_WIRE.debug(f"Request uri : {method.value} {url}")
        headers = deepcopy(self._headers)
        if additional_request_headers:
            headers.update(additional_request_headers)
        response = self._session.request(
            method.value,
            url,
            headers=headers,
            params=params,
            json=payload,
            verify=self._verify_ssl)
        self._last_response = response

        self.LOGGER_WIRE.debug("Request headers :"
                               f" {dict(response.request.headers)}")
        self.LOGGER_WIRE.debug(f"Request body : {response.request.body}")
        self.LOGGER_WIRE.debug(f"Response status code: {response.status_code}")
        self.LOGGER_WIRE.debug(f"Response headers : {dict(response.headers)}")
        self.LOGGER_WIRE.debug(f"Response body : {response.text}")

        if not response.ok:
            self.LOGGER.debug(f"{method.value} {url} failed with status "
                              f"{response.status_code}")
        response.raise_for_status()
        body = json.loads(response.text) if response.text else None
        if return_response_headers:
            return body, response.headers
        return body
