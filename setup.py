#!/usr/bin/env python

# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

from setuptools import find_namespace_packages
from setuptools import setup

setup(
    name='cse-cluster-manager',
    version='1.0.0',
    description='Kubernetes cluster lifecycle management on VMware Cloud '
                'Director runtime defined entities',
    license='BSD-2-Clause',
    python_requires='>=3.8',
    setup_requires=['setuptools>=17.1'],
    packages=find_namespace_packages(include=['cse_cluster_manager*']),
    install_requires=[
        'click>=7.1',
        'dataclasses-json>=0.5.2',
        'pyvcloud>=23.0.4',
        'PyYAML>=5.4',
        'requests>=2.25',
        'semantic_version>=2.8.5',
    ],
    extras_require={
        'test': ['pytest>=6.2'],
    },
    entry_points={
        'console_scripts': [
            'cse-cluster=cse_cluster_manager.client.cluster_commands:cli',
        ],
    },
)
