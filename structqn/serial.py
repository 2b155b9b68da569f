# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Statement serialization. Operator keys are written as their string
# markers (see Op), and read back into Op members. Functions cannot be
# serialized.


from typing import *
import json

from .structqn import (
    Op,
    SerializationError,
    isfunc,
    islist,
    ismap,
    isop,
    strkey,
    walk,
)

# Marker string to operator.
MARKERS = {op.value: op for op in Op}


def to_json(statement: Any, path: List[str] = None) -> Any:
    """
    JSON-ready copy of a statement, with operator keys as markers.

    >>> to_json({'age': {GT: 18}, WHERE: {'active': True}})
    {'age': {'>': 18}, '?': {'active': True}}
    """
    path = [] if path is None else path

    if isfunc(statement):
        raise SerializationError('Cannot serialize functions', path)

    if ismap(statement):
        out = {}
        for key, val in statement.items():
            skey = key if isinstance(key, str) else strkey(key) if isop(key) else str(key)
            out[skey] = to_json(val, path + [skey])
        return out

    if isinstance(statement, (list, tuple)):
        return [to_json(val, path + [str(i)]) for i, val in enumerate(statement)]

    return statement


def from_json(obj: Any, path: List[str] = None) -> Any:
    "Statement from its JSON form, with markers as operator keys."
    path = [] if path is None else path

    if isfunc(obj):
        raise SerializationError('Functions are not allowed in deserialized data', path)

    if ismap(obj):
        return {MARKERS.get(key, key): from_json(val, path + [key])
                for key, val in obj.items()}

    if islist(obj):
        return [from_json(val, path + [str(i)]) for i, val in enumerate(obj)]

    return obj


def validate_no_functions(statement: Any) -> bool:
    "True if the statement has no functions, else raise SerializationError."

    def check(key, val, parent, path):
        if isfunc(val):
            raise SerializationError('Functions are not allowed', path)
        return val

    walk(statement, check)
    return True


def dumps(statement: Any, **kwargs) -> str:
    "JSON text of a statement. Keyword arguments are passed to json.dumps."
    return json.dumps(to_json(statement), **kwargs)


def loads(text: str) -> Any:
    "Statement from JSON text."
    return from_json(json.loads(text))


__all__ = [
    'MARKERS',
    'dumps',
    'from_json',
    'loads',
    'to_json',
    'validate_no_functions',
]
