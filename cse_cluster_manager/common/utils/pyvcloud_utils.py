# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Utility module to open VCD sessions with pyvcloud."""

import pyvcloud.vcd.client as vcd_client
import requests

import cse_cluster_manager.lib.cloudapi.cloudapi_client as cloud_api_client
from cse_cluster_manager.logging.logger import NULL_LOGGER
from cse_cluster_manager.logging.logger import PYVCLOUD_WIRELOG_FILEPATH


def get_vcd_client(vcd_config):
    """Log in to VCD with the credentials of the vcd section of the config.

    :param dict vcd_config: 'vcd' section of a validated config file.

    :return: logged in pyvcloud client

    :rtype: pyvcloud.vcd.client.Client
    """
    verify_ssl_certs = vcd_config['verify']
    if not verify_ssl_certs:
        requests.packages.urllib3.disable_warnings()
    log_wire = vcd_config.get('log_wire', False)
    log_filename = PYVCLOUD_WIRELOG_FILEPATH if log_wire else None

    client = vcd_client.Client(
        uri=vcd_config['host'],
        api_version=vcd_config['api_version'],
        verify_ssl_certs=verify_ssl_certs,
        log_file=log_filename,
        log_requests=log_wire,
        log_headers=log_wire,
        log_bodies=log_wire)
    credentials = vcd_client.BasicLoginCredentials(
        vcd_config['username'],
        vcd_config['org'],
        vcd_config['password'])
    client.set_credentials(credentials)
    return client


def get_cloudapi_client_from_vcd_client(client: vcd_client.Client,
                                        logger_debug=NULL_LOGGER,
                                        logger_wire=NULL_LOGGER):
    """Build a cloudapi client that reuses the session of a pyvcloud client.

    A JWT bearer token is used when the session has one, the legacy
    x-vcloud-authorization token otherwise.

    :param pyvcloud.vcd.client.Client client: logged in client
    :param logging.Logger logger_debug:
    :param logging.Logger logger_wire:

    :rtype: cloud_api_client.CloudApiClient
    """
    token = client.get_access_token()
    is_jwt = True
    if not token:
        token = client.get_xvcloud_authorization_token()
        is_jwt = False
    return cloud_api_client.CloudApiClient(
        base_url=client.get_cloudapi_uri(),
        token=token,
        is_jwt_token=is_jwt,
        api_version=client.get_api_version(),
        logger_debug=logger_debug,
        logger_wire=logger_wire,
        verify_ssl=client._verify_ssl_certs)


def get_site_url(host):
    """Return the url of a VCD site from the host of the vcd config section.

    :param str host: host name, or url with or without a trailing slash

    :rtype: str
    """
    if '://' not in host:
        host = f"https://{host}"
    return host.rstrip('/')
