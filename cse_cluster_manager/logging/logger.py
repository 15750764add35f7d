# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from collections import namedtuple
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cse_cluster_manager.security.security import RedactingFilter

# max size for log files (8MB)
_MAX_BYTES = 2**23
_BACKUP_COUNT = 10


def run_once(f):
    """Ensure that a function is only run once using this decorator."""
    def wrapper(*args, **kwargs):
        if not wrapper.has_run:
            wrapper.has_run = True
            return f(*args, **kwargs)
    wrapper.has_run = False
    return wrapper


# standard formatters used by handlers
INFO_LOG_FORMATTER = logging.Formatter(fmt='%(asctime)s | '
                                       '%(levelname)s :: '
                                       '%(message)s',
                                       datefmt='%y-%m-%d %H:%M:%S')
DEBUG_LOG_FORMATTER = logging.Formatter(fmt='%(asctime)s | '
                                        '%(module)s:%(lineno)s - %(funcName)s | '  # noqa: E501
                                        '%(levelname)s :: '
                                        '%(message)s',
                                        datefmt='%y-%m-%d %H:%M:%S')

# directory for all cse cluster manager logs
LOGS_DIR_NAME = Path.home() / '.cse-cluster-logs'

# cluster manager logs info level and debug level logs to:
# ~/.cse-cluster-logs/cse-cluster-info.log
# ~/.cse-cluster-logs/cse-cluster-debug.log
# .log files are always the most current, with .log.9 being the oldest
CLIENT_LOGGER_NAME = 'cse_cluster_manager.client'
CLIENT_INFO_LOG_FILEPATH = f"{LOGS_DIR_NAME}/cse-cluster-info.log"
CLIENT_DEBUG_LOG_FILEPATH = f"{LOGS_DIR_NAME}/cse-cluster-debug.log"
CLIENT_LOGGER = logging.getLogger(CLIENT_LOGGER_NAME)

# cloudapi request/response pairs are logged to:
# ~/.cse-cluster-logs/cloudapi-wire.log
CLIENT_WIRE_LOGGER_NAME = 'cse_cluster_manager.client-wire'
CLIENT_WIRE_LOGGER_FILEPATH = f"{LOGS_DIR_NAME}/cloudapi-wire.log"
CLIENT_WIRE_LOGGER = logging.getLogger(CLIENT_WIRE_LOGGER_NAME)

# logfile for pyvcloud
PYVCLOUD_WIRELOG_FILEPATH = f"{LOGS_DIR_NAME}/pyvcloud-wire.log"

# NullLogger doesn't perform logging.
NULL_LOGGER = logging.getLogger('cse_cluster_manager.null-logger')


@run_once
def setup_log_file_directory():
    """Create directory for log files."""
    Path(LOGS_DIR_NAME).mkdir(parents=True, exist_ok=True)


@run_once
def configure_all_file_loggers():
    """Configure all loggers if not configured."""
    setup_log_file_directory()
    LoggerConfig = namedtuple('LoggerConfig', 'filepath formatter logger')
    logger_configs = [
        LoggerConfig(CLIENT_INFO_LOG_FILEPATH, INFO_LOG_FORMATTER,
                     CLIENT_LOGGER),
        LoggerConfig(CLIENT_DEBUG_LOG_FILEPATH, DEBUG_LOG_FORMATTER,
                     CLIENT_LOGGER),
        LoggerConfig(CLIENT_WIRE_LOGGER_FILEPATH, DEBUG_LOG_FORMATTER,
                     CLIENT_WIRE_LOGGER)
    ]

    for logger in {config.logger for config in logger_configs}:
        logger.addFilter(RedactingFilter())
        logger.setLevel(logging.DEBUG)

    for logger_config in logger_configs:
        file_handler = RotatingFileHandler(logger_config.filepath,
                                           maxBytes=_MAX_BYTES,
                                           backupCount=_BACKUP_COUNT,
                                           delay=True)
        if logger_config.formatter == INFO_LOG_FORMATTER:
            file_handler.setLevel(logging.INFO)
        else:
            file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logger_config.formatter)
        logger_config.logger.addHandler(file_handler)


@run_once
def configure_null_logger():
    """Configure null logger if it is not configured."""
    NULL_LOGGER.addHandler(logging.NullHandler())
    NULL_LOGGER.propagate = False
