# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import logging

import pytest

from cse_cluster_manager.security.security import RedactingFilter


@pytest.fixture
def redacting_logger():
    logger = logging.getLogger('cse_cluster_manager.tests.redaction')
    redacting_filter = RedactingFilter()
    logger.addFilter(redacting_filter)
    yield logger
    logger.removeFilter(redacting_filter)


def test_0010_redact_nested_dict():
    document = {
        'metadata': {'name': 'my-cluster'},
        'spec': {'secure': {'apiToken': 'secret-api-token'}},
        'status': {'capvcd': {'private': {'kubeConfig': 'apiVersion: v1'}}},
    }
    redacted = RedactingFilter().redact(document)
    assert redacted['metadata'] == {'name': 'my-cluster'}
    assert redacted['spec']['secure']['apiToken'] == '[REDACTED]'
    assert redacted['status']['capvcd']['private']['kubeConfig'] == \
        '[REDACTED]'
    assert document['spec']['secure']['apiToken'] == 'secret-api-token'


def test_0020_redact_string():
    redacting_filter = RedactingFilter()
    headers = str({'Authorization': 'Bearer abc', 'Accept': 'json'})
    assert redacting_filter.redact(headers) == \
        "{'Authorization': '[REDACTED]', 'Accept': 'json'}"
    body = '{"spec": {"secure": {"apiToken": "secret-api-token"}}}'
    assert 'secret-api-token' not in redacting_filter.redact(body)
    assert redacting_filter.redact('nothing to hide') == 'nothing to hide'


def test_0030_redact_scalars_and_sequences():
    redacting_filter = RedactingFilter()
    assert redacting_filter.redact(None) is None
    assert redacting_filter.redact(3) == 3
    assert redacting_filter.redact(True) is True
    assert redacting_filter.redact(['a', {'password': 'p'}]) == \
        ('a', {'password': '[REDACTED]'})


def test_0040_filter_log_record(redacting_logger, caplog):
    with caplog.at_level(logging.DEBUG, logger=redacting_logger.name):
        redacting_logger.debug("Request headers : {'x-vcloud-authorization': 'abc'}")  # noqa: E501
        redacting_logger.debug("Request body : %s", {'password': 'p'})
        redacting_logger.info("Polled %d times", 3)
    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        "Request headers : {'x-vcloud-authorization': '[REDACTED]'}",
        "Request body : {'password': '[REDACTED]'}",
        'Polled 3 times',
    ]
