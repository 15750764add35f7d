# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

"""Basic utility methods to perform data transformation."""

import copy

import click


_type_to_string = {
    str: 'string',
    int: 'number',
    float: 'number',
    bool: 'true/false',
    dict: 'mapping',
    list: 'sequence',
}


class NullPrinter:
    """Callback object which does nothing."""

    def general(self, msg):
        pass

    def info(self, msg):
        pass

    def error(self, msg):
        pass


class ConsoleMessagePrinter(NullPrinter):
    """Callback object to print color coded message on console."""

    def general(self, msg):
        click.secho(msg, fg='green')

    def info(self, msg):
        click.secho(msg, fg='yellow')

    def error(self, msg):
        click.secho(msg, fg='red', err=True)


def get_duplicate_items_in_list(items):
    """Find duplicate entries in a list.

    :param list items: list of items with possible duplicates.

    :return: the items that occur more than once in input list. Each duplicated
        item will be mentioned only once in the returned list.

    :rtype: list
    """
    seen = set()
    duplicates = set()
    if items:
        for item in items:
            if item in seen:
                duplicates.add(item)
            else:
                seen.add(item)
    return sorted(duplicates)


def check_keys_and_value_types(dikt, ref_dict, location='dictionary',
                               excluded_keys=None,
                               msg_update_callback=NullPrinter()):
    """Compare a dictionary with a reference dictionary.

    The method ensures that all keys and value types are the same in the
    dictionaries. An int is accepted where the reference holds a float.

    :param dict dikt: the dictionary to check for validity
    :param dict ref_dict: the dictionary to check against
    :param str location: where this check is taking place, so error messages
        can be more descriptive.
    :param list excluded_keys: list of str, representing the list of key which
        if missing won't raise an exception.
    :param NullPrinter msg_update_callback: Callback object.

    :raises KeyError: if @dikt has missing or invalid keys
    :raises TypeError: if the value of a property in @dikt does not match with
        the value of the same property in @ref_dict
    """
    if excluded_keys is None:
        excluded_keys = []
    ref_keys = set(ref_dict.keys())
    keys = set(dikt.keys())

    missing_keys = ref_keys - keys - set(excluded_keys)
    if missing_keys:
        msg_update_callback.error(
            f"Missing keys in {location}: {sorted(missing_keys)}")

    bad_value = False
    for k in ref_keys:
        if k not in keys:
            continue
        value_type = type(ref_dict[k])
        if value_type == float and isinstance(dikt[k], int) \
                and not isinstance(dikt[k], bool):
            continue
        if value_type == int and isinstance(dikt[k], bool):
            is_valid = False
        else:
            is_valid = isinstance(dikt[k], value_type)
        if not is_valid:
            msg_update_callback.error(
                f"{location} key '{k}': value type should be "
                f"'{_type_to_string[value_type]}'")
            bad_value = True

    if missing_keys:
        raise KeyError(f"Missing and/or invalid key in {location}")
    if bad_value:
        raise TypeError(f"Incorrect type for property value(s) in {location}")


def flatten_dictionary(input_dict, parent_key='', separator='.'):
    """Flatten a given dictionary with nested dictionaries if any.

    Example: { 'a' : {'b':'c', 'd': {'e' : 'f'}}, 'g' : 'h'} will be flattened
    to {'a.b': 'c', 'a.d.e': 'f', 'g': 'h'}

    This will flatten only the values of dict type.

    :param dict input_dict:
    :param str parent_key: parent key that gets prefixed while forming flattened key  # noqa: E501
    :param str separator: use the separator to form flattened key
    :return: flattened dictionary
    :rtype: dict
    """
    flattened_dict = {}
    for k in input_dict.keys():
        val = input_dict.get(k)
        key_prefix = f"{parent_key}{k}"
        if isinstance(val, dict) and val:
            flattened_dict.update(flatten_dictionary(val, f"{key_prefix}{separator}", separator))  # noqa: E501
        else:
            flattened_dict.update({key_prefix: val})
    return flattened_dict


def unflatten_dictionary(flattened_dict, separator='.'):
    """Reverse of flatten_dictionary.

    Example: {'a.b': 'c', 'g': 'h'} becomes {'a': {'b': 'c'}, 'g': 'h'}

    :param dict flattened_dict:
    :param str separator: separator used to form the flattened keys
    :return: nested dictionary
    :rtype: dict
    """
    result = {}
    for flattened_key, val in flattened_dict.items():
        keys = flattened_key.split(separator)
        node = result
        for key in keys[:-1]:
            node = node.setdefault(key, {})
        node[keys[-1]] = val
    return result


def remove_none_values(input_dict):
    """Recursively drop keys whose value is None.

    :param dict input_dict:
    :return: a new dictionary without None values
    :rtype: dict
    """
    result = {}
    for k, v in input_dict.items():
        if v is None:
            continue
        if isinstance(v, dict):
            v = remove_none_values(v)
        result[k] = v
    return result


def apply_merge_patch(target, patch):
    """Merge a JSON merge patch (RFC 7386) into a copy of target.

    Keys mapped to None in the patch are removed from the target, nested
    dictionaries are merged recursively and every other value (lists
    included) replaces the target value. Keys of the target that the patch
    does not mention are kept untouched.

    :param dict target: document to patch, not modified.
    :param dict patch: merge patch.

    :return: patched copy of target
    :rtype: dict
    """
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    if isinstance(target, dict):
        result = copy.deepcopy(target)
    else:
        result = {}
    for k, v in patch.items():
        if v is None:
            result.pop(k, None)
        else:
            result[k] = apply_merge_patch(result.get(k), v)
    return result
