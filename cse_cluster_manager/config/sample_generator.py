# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import copy

import yaml

import cse_cluster_manager.common.constants.cluster_constants as cluster_constants  # noqa: E501
from cse_cluster_manager.common.constants.shared_constants import DEFAULT_VCD_API_VERSION  # noqa: E501
import cse_cluster_manager.rde.constants as rde_constants

SAMPLE_VCD_CONFIG = {
    'vcd': {
        'host': 'vcd.example.com',
        'org': 'my-org',
        'username': 'my-user',
        'password': 'my_secret_password',
        'api_version': DEFAULT_VCD_API_VERSION,
        'verify': True
    }
}

SAMPLE_CLUSTER_CONFIG = {
    'cluster': {
        'rde_version': rde_constants.DEFAULT_RDE_VERSION,
        'operations_timeout_minutes':
            cluster_constants.DEFAULT_OPERATIONS_TIMEOUT_MINUTES,
        'poll_initial_interval_seconds':
            float(cluster_constants.DEFAULT_POLL_INITIAL_INTERVAL_SECONDS),
        'poll_max_interval_seconds':
            float(cluster_constants.DEFAULT_POLL_MAX_INTERVAL_SECONDS),
        'poll_backoff_multiplier':
            cluster_constants.DEFAULT_POLL_BACKOFF_MULTIPLIER
    }
}

SAMPLE_LOGGING_CONFIG = {
    'logging': {
        'wire_logging': False
    }
}

SAMPLE_CLUSTER_SPEC = {
    'apiVersion': rde_constants.PAYLOAD_VERSION_1_2,
    'kind': rde_constants.CLUSTER_KIND,
    'metadata': {
        'name': 'my-cluster',
        'orgName': 'my-org'
    },
    'spec': {
        'runtime': cluster_constants.DEFAULT_RUNTIME,
        'kubernetesTemplateId': 'urn:vcloud:vapptemplate:00000000-0000-0000-0000-000000000000',  # noqa: E501
        'vdcId': 'urn:vcloud:vdc:00000000-0000-0000-0000-000000000000',
        'networkId': 'urn:vcloud:network:00000000-0000-0000-0000-000000000000',  # noqa: E501
        'controlPlane': {
            'machineCount': 1,
            'diskSizeGi': cluster_constants.DEFAULT_DISK_SIZE_GI
        },
        'workerPools': [
            {
                'name': 'pool-a',
                'machineCount': 2,
                'diskSizeGi': cluster_constants.DEFAULT_DISK_SIZE_GI
            }
        ],
        'podsCidr': cluster_constants.DEFAULT_PODS_CIDR,
        'servicesCidr': cluster_constants.DEFAULT_SERVICES_CIDR,
        'autoRepairOnErrors': False,
        'nodeHealthCheck': False,
        'operationsTimeoutMinutes':
            cluster_constants.DEFAULT_OPERATIONS_TIMEOUT_MINUTES,
        'secure': {
            'apiToken': 'my_api_token'
        }
    }
}

CLUSTER_SPEC_NOTE = """
# Only controlPlane.machineCount, the machine count and autoscaler bounds of
# worker pools (autoscalerMinReplicas, autoscalerMaxReplicas), the list of
# worker pools, autoRepairOnErrors and nodeHealthCheck can be changed once
# the cluster exists. Changing anything else requires a new cluster.
# secure.apiToken is only sent when the cluster is created.
"""  # noqa: E501


def generate_sample_config():
    """Build the sample configuration as a dictionary.

    :rtype: dict
    """
    sample_config = {}
    sample_config.update(copy.deepcopy(SAMPLE_VCD_CONFIG))
    sample_config.update(copy.deepcopy(SAMPLE_CLUSTER_CONFIG))
    sample_config.update(copy.deepcopy(SAMPLE_LOGGING_CONFIG))
    return sample_config


def generate_sample_config_text(sample_config=None):
    """Generate the text of a sample configuration file.

    :param dict sample_config: configuration to render, the sample one if
        not given.

    :rtype: str
    """
    if sample_config is None:
        sample_config = generate_sample_config()
    sample_config_text = ''
    for section in ['vcd', 'cluster', 'logging']:
        sample_config_text += yaml.safe_dump({section: sample_config[section]}, default_flow_style=False) + '\n'  # noqa: E501
    return sample_config_text.strip() + '\n'


def generate_sample_cluster_spec_text():
    """Generate the text of a sample cluster specification file.

    :rtype: str
    """
    spec_text = yaml.safe_dump(SAMPLE_CLUSTER_SPEC, default_flow_style=False,
                               sort_keys=False)
    return spec_text + CLUSTER_SPEC_NOTE
