# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Path transforms: reshape data by access paths.
#
# Transform statements:
# - key (string or integer): property access. On lists, an index accesses
#   the element, and any other string is applied to each element.
# - list: a chain, each transform applied to the result of the previous one.
# - dict: build a new dict (see _build).


from typing import *
import re

from .structqn import (
    UNDEF,
    getprop,
    islist,
    ismap,
)


# Canonical list index: no sign, no leading zeros, no spaces.
R_CANON_INDEX = re.compile(r'^(0|[1-9][0-9]*)$')


def transform(data: Any, statement: Any) -> Any:
    """
    Transform data by statement. Missing values are None.

    >>> transform({'users': [{'name': 'alice'}, {'name': 'bob'}]}, ['users', 'name'])
    ['alice', 'bob']
    """
    if data is None or UNDEF is data:
        return None

    if islist(statement):
        for step in statement:
            data = transform(data, step)
        return data

    if ismap(statement):
        if islist(data):
            return [transform(item, statement) for item in data]
        return _build(data, statement)

    if isinstance(statement, bool):
        return None

    if islist(data):
        if isinstance(statement, int):
            return data[statement] if 0 <= statement < len(data) else None
        if isinstance(statement, str):
            if R_CANON_INDEX.match(statement):
                index = int(statement)
                return data[index] if index < len(data) else None
            return [transform(item, statement) for item in data]
        return None

    if isinstance(statement, (str, int)):
        return _access(data, statement)

    return None


def _access(data, key):
    if not ismap(data):
        return None
    value = getprop(data, key)
    if UNDEF is value and isinstance(key, int):
        value = getprop(data, str(key))
    return None if UNDEF is value else value


def _build(data, statement):
    """
    Build a dict from the entries of the statement:
    - True copies data[key] when present.
    - False skips the key.
    - A nested dict applies to data[key] when it has a value. Otherwise the
      nested entries are each applied to the whole data, making a new dict.
    - Anything else is a transform of the whole data.
    Entries that produce nothing are omitted.
    """
    result = {}

    for key, sub in statement.items():
        if True is sub:
            value = getprop(data, key) if ismap(data) else UNDEF
            if UNDEF is not value:
                result[key] = value

        elif False is sub:
            continue

        elif ismap(sub):
            current = _access(data, key)
            if current is not None:
                built = transform(current, sub)
                if built:
                    result[key] = built
            else:
                nested = {}
                for nkey, nsub in sub.items():
                    if isinstance(nsub, bool):
                        continue
                    value = transform(data, nsub)
                    if value is not None:
                        nested[nkey] = value
                if nested:
                    result[key] = nested

        else:
            value = transform(data, sub)
            if value is not None:
                result[key] = value

    return result


__all__ = [
    'transform',
]
