# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import logging
import re


class RedactingFilter(logging.Filter):
    """Filter class to redact sensitive information in logs.

    Cluster entities carry the API token used by the remote engine and wire
    logs carry session headers, both are masked before a record is emitted.
    Dictionaries are redacted key by key, lists and tuples item by item, and
    anything else is redacted as a string with a key-value pattern.
    """

    _SENSITIVE_KEYS = ['authorization',
                       'x-vcloud-authorization',
                       'x-vmware-vcloud-access-token',
                       'apitoken',
                       'refresh_token',
                       'kubeconfig',
                       'secret',
                       'password']

    _REDACTED_MSG = r"[REDACTED]"

    def __init__(self):
        super().__init__()
        pattern_key = r"|".join(re.escape(key) for key in self._SENSITIVE_KEYS)

        # Matches
        #   key: value, 'key': 'value', "key": "value"
        # for any sensitive key, the value is captured in group 4.
        self._pattern = r"((" + pattern_key + r")(\"|')?:\s*[{\[]*[\"']?)([^'\",}]+)"  # noqa: E501

    def filter(self, record):
        """Redact the message and the arguments of a log record.

        :param logging.LogRecord record: record that needs redaction

        :returns: True, which forces the filter chain processing to continue.

        :rtype: bool
        """
        record.msg = self.redact(record.msg)
        if record.args:
            record.args = self.redact(record.args)
        return True

    def redact(self, obj):
        """Redact sensitive data in an object.

        The redaction preserves dictionary structure. Lists, tuples and sets
        are converted to tuples. Everything else is converted to string.

        :param object obj: the object which contains sensitive data to be
            redacted.

        :return: the redacted version of the object.

        :rtype: object
        """
        if obj is None or isinstance(obj, (bool, int, float)):
            return obj

        if isinstance(obj, dict):
            result = {}
            for k in obj.keys():
                if str(k).lower() in self._SENSITIVE_KEYS:
                    result[k] = self._REDACTED_MSG
                else:
                    result[k] = self.redact(obj[k])
            return result
        if isinstance(obj, (list, tuple, set)):
            return tuple(self.redact(item) for item in obj)
        return re.sub(pattern=self._pattern,
                      string=str(obj),
                      repl=r"\1" + self._REDACTED_MSG,
                      flags=re.IGNORECASE)
