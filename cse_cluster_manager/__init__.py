# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from cse_cluster_manager.logging.logger import configure_null_logger

configure_null_logger()
