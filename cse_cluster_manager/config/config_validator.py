# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import copy

import semantic_version
import yaml

from cse_cluster_manager.common.utils.core_utils import check_keys_and_value_types  # noqa: E501
from cse_cluster_manager.common.utils.core_utils import NullPrinter
from cse_cluster_manager.config.sample_generator import SAMPLE_CLUSTER_CONFIG
from cse_cluster_manager.config.sample_generator import SAMPLE_LOGGING_CONFIG
from cse_cluster_manager.config.sample_generator import SAMPLE_VCD_CONFIG
import cse_cluster_manager.rde.constants as rde_constants
from cse_cluster_manager.rde.constants import EntityKey
from cse_cluster_manager.rde.constants import SpecKey
from cse_cluster_manager.rde.models.cluster_models import ClusterDesiredState
import cse_cluster_manager.rde.spec_builder as spec_builder

# keys of the vcd section that fall back to the sample value when missing
_OPTIONAL_VCD_KEYS = ['api_version', 'verify']


def _load_yaml_file(file_name):
    with open(file_name) as yaml_file:
        return yaml.safe_load(yaml_file) or {}


def get_validated_config(config_file_name,
                         msg_update_callback=NullPrinter()):
    """Get the config file as a dictionary and check for validity.

    Ensures that all required properties exist and all values are the
    expected type. Missing optional properties are filled in with their
    default values. Does not connect to VCD.

    :param str config_file_name: path to config file.
    :param utils.ConsoleMessagePrinter msg_update_callback: Callback object.

    :return: config with every optional property populated

    :rtype: dict

    :raises KeyError: if config file has missing or extra properties.
    :raises TypeError: if the value type for a config file property
        is incorrect.
    :raises ValueError: if a property has an invalid value.
    """
    config = _load_yaml_file(config_file_name)
    msg_update_callback.info(
        f"Validating config file '{config_file_name}'")
    if not isinstance(config, dict):
        raise TypeError(f"Config file '{config_file_name}' must hold a "
                        "mapping")

    sample_config = {
        **SAMPLE_VCD_CONFIG, **SAMPLE_CLUSTER_CONFIG, **SAMPLE_LOGGING_CONFIG
    }
    check_keys_and_value_types(config, sample_config, location='config file',
                               excluded_keys=['cluster', 'logging'],
                               msg_update_callback=msg_update_callback)
    _validate_vcd_config(config['vcd'], msg_update_callback)

    config['cluster'] = _validate_cluster_config(
        config.get('cluster') or {}, msg_update_callback)

    logging_config = copy.deepcopy(SAMPLE_LOGGING_CONFIG['logging'])
    logging_config.update(config.get('logging') or {})
    check_keys_and_value_types(logging_config,
                               SAMPLE_LOGGING_CONFIG['logging'],
                               location="config file 'logging' section",
                               msg_update_callback=msg_update_callback)
    config['logging'] = logging_config
    config['vcd']['log_wire'] = logging_config['wire_logging']

    msg_update_callback.general(
        f"Config file '{config_file_name}' is valid")
    return config


def _validate_vcd_config(vcd_dict, msg_update_callback=NullPrinter()):
    """Ensure that the 'vcd' section of config is correct.

    :param dict vcd_dict: 'vcd' section of config file as a dict.
    :param utils.ConsoleMessagePrinter msg_update_callback: Callback object.

    :raises KeyError: if @vcd_dict has missing properties.
    :raises TypeError: if the value type for a @vcd_dict property is
        incorrect.
    """
    for key in _OPTIONAL_VCD_KEYS:
        vcd_dict.setdefault(key, SAMPLE_VCD_CONFIG['vcd'][key])
    check_keys_and_value_types(vcd_dict, SAMPLE_VCD_CONFIG['vcd'],
                               location="config file 'vcd' section",
                               msg_update_callback=msg_update_callback)
    if not vcd_dict['verify']:
        msg_update_callback.general(
            'InsecureRequestWarning: Unverified HTTPS request is '
            'being made. Adding certificate verification is '
            'strongly advised.')


def _validate_cluster_config(cluster_dict,
                             msg_update_callback=NullPrinter()):
    """Ensure that the 'cluster' section of config is correct.

    :param dict cluster_dict: 'cluster' section of config file as a dict.
    :param utils.ConsoleMessagePrinter msg_update_callback: Callback object.

    :return: the section with default values for missing properties

    :rtype: dict

    :raises TypeError: if the value type for a property is incorrect.
    :raises ValueError: if the entity version or the poll settings are
        invalid.
    """
    sample_cluster_config = SAMPLE_CLUSTER_CONFIG['cluster']
    cluster_config = copy.deepcopy(sample_cluster_config)
    cluster_config.update(cluster_dict)
    check_keys_and_value_types(cluster_config, sample_cluster_config,
                               location="config file 'cluster' section",
                               msg_update_callback=msg_update_callback)

    try:
        rde_version = semantic_version.Version(cluster_config['rde_version'])
    except ValueError as err:
        raise ValueError(f"Invalid rde_version "
                         f"'{cluster_config['rde_version']}': {err}") from err
    if rde_version < rde_constants.MIN_SUPPORTED_RDE_VERSION:
        raise ValueError(f"rde_version {rde_version} is not supported, "
                         "minimum is "
                         f"{rde_constants.MIN_SUPPORTED_RDE_VERSION}")

    if cluster_config['operations_timeout_minutes'] < 0:
        raise ValueError("operations_timeout_minutes must not be negative")
    initial_interval = cluster_config['poll_initial_interval_seconds']
    max_interval = cluster_config['poll_max_interval_seconds']
    if initial_interval <= 0 or max_interval <= 0:
        raise ValueError("Poll intervals must be positive")
    if max_interval < initial_interval:
        raise ValueError("poll_max_interval_seconds must be greater than or "
                         "equal to poll_initial_interval_seconds")
    if cluster_config['poll_backoff_multiplier'] < 1:
        raise ValueError("poll_backoff_multiplier must be at least 1")
    return cluster_config


def get_validated_cluster_spec(spec_file_name,
                               default_timeout_minutes=None,
                               msg_update_callback=NullPrinter()) -> ClusterDesiredState:  # noqa: E501
    """Read a cluster specification file into a validated desired state.

    :param str spec_file_name: path to a YAML file in the cluster entity
        layout.
    :param int default_timeout_minutes: operations timeout to use when the
        file does not set spec.operationsTimeoutMinutes
    :param utils.ConsoleMessagePrinter msg_update_callback: Callback object.

    :rtype: ClusterDesiredState

    :raises MalformedDocumentError: if the file does not have the layout of
        a cluster entity.
    :raises ValidationError: if the desired state is invalid.
    """
    msg_update_callback.info(
        f"Validating cluster specification '{spec_file_name}'")
    document = _load_yaml_file(spec_file_name)
    desired = spec_builder.parse(document, include_write_only=True)
    spec = document.get(EntityKey.SPEC.value) or {}
    if default_timeout_minutes is not None and \
            SpecKey.OPERATIONS_TIMEOUT_MINUTES.value not in spec:
        desired.operations_timeout_minutes = default_timeout_minutes
    spec_builder.validate(desired)
    return desired
