# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Selection: build a filtered and reshaped copy of the data.
#
# Statement keys:
# - field: True selects the field value, a dict selects into it.
# - ALL: apply a sub-statement to every key (list results are dense).
# - WHERE: the node yields nothing unless the predicate passes.
# - DEEP_ALL: search the whole tree below the node (see _deep).
#
# The data is never modified. Selected values are not copied.


from typing import *
import logging

from .structqn import (
    UNDEF,
    ALL,
    DEEP_ALL,
    WHERE,
    fieldsof,
    getprop,
    islist,
    ismap,
    isnode,
    items,
    toindex,
)
from .predicate import eval_predicate


logger = logging.getLogger(__name__)


class _NoResult:
    def __repr__(self):
        return 'NO_RESULT'


# A node that contributes nothing to the result.
NO_RESULT = _NoResult()


def select(data: Any, statement: Any) -> Any:
    """
    Select from data. Returns None when nothing is selected.

    >>> select({'a': 1, 'b': 2}, {'a': True})
    {'a': 1}
    >>> select({'a': 1}, {'c': True})
    {'c': None}
    """
    result = _select(data, statement)
    return None if NO_RESULT is result else result


def _select(value: Any, stmt: Any) -> Any:
    if True is stmt:
        return _defined(value)

    if not ismap(stmt):
        return NO_RESULT

    where = stmt.get(WHERE, UNDEF)
    if UNDEF is not where and not eval_predicate(value, where):
        return NO_RESULT

    fields = fieldsof(stmt)
    all_stmt = stmt.get(ALL, UNDEF)
    deep_stmt = stmt.get(DEEP_ALL, UNDEF)

    if 0 == len(fields) and UNDEF is all_stmt and UNDEF is deep_stmt:
        return _defined(value)

    # Fields cannot be selected from a scalar.
    if not isnode(value):
        return NO_RESULT

    result = NO_RESULT

    if UNDEF is not deep_stmt:
        result = _deep(value, deep_stmt)

    if UNDEF is not all_stmt:
        result = _merge(result, _all(value, all_stmt))

    for key in fields:
        if islist(value):
            index = toindex(key)
            if index is None or index >= len(value):
                logger.debug('Ignoring list key %r in select', key)
                continue
        result = _put(result, value, key, _field(getprop(value, key), stmt[key]))

    return result


def _field(value: Any, sub: Any) -> Any:
    if True is sub:
        return _defined(value)
    elif ismap(sub):
        return _select(value, sub)
    return NO_RESULT


def _all(value: Any, sub: Any) -> Any:
    if ismap(value):
        result = {}
        for key, child in value.items():
            found = _field(child, sub)
            if NO_RESULT is not found:
                result[key] = found

    else:
        # Elements filtered out are dropped, not left as holes.
        result = []
        for child in value:
            found = _field(child, sub)
            if NO_RESULT is not found:
                result.append(found)

    return result if 0 < len(result) else NO_RESULT


def _deep(node: Any, pattern: Any) -> Any:
    """
    Search below node, at any depth, for matches of the pattern
    `{WHERE: predicate, field: sub, ...}`.

    With WHERE, each child is tested: a passing child is included whole
    (scalars included), a failing node child is searched in turn. Once
    something is found below a node, the listed fields the node carries
    are projected alongside.

    Without WHERE, the listed fields are projected from every node that
    carries them, independently of each other. That includes the node
    searched from, so `{DEEP_ALL: {'id': True}}` keeps a top-level id too.

    Absent fields read as UNDEF, which is loosely equal to None. So a
    WHERE such as `{'value': {EQ: None}}` also matches ancestor nodes that
    lack the field; add discriminating fields to the predicate to avoid it.
    """
    if not ismap(pattern) or not isnode(node):
        return NO_RESULT

    where = pattern.get(WHERE, UNDEF)
    result = NO_RESULT

    for key, child in items(node):
        found = NO_RESULT

        if UNDEF is not where and eval_predicate(child, where):
            found = child
        elif isnode(child):
            found = _deep(child, pattern)

        if NO_RESULT is not found:
            if NO_RESULT is result:
                result = [] if islist(node) else {}
            if islist(result):
                result.append(found)
            else:
                result[key] = found

    if UNDEF is where or NO_RESULT is not result:
        for key in fieldsof(pattern):
            value = getprop(node, key)
            if UNDEF is not value:
                result = _put(result, node, key, _field(value, pattern[key]))

    return result


def _put(result: Any, source: Any, key: Any, item: Any) -> Any:
    "Add item to the result under key, merging with any entry already there."
    if NO_RESULT is item:
        return result

    if NO_RESULT is result:
        result = [] if islist(source) else {}

    if islist(result):
        index = toindex(key)
        if index is None:
            return result
        # Unselected positions are left as None holes.
        while len(result) <= index:
            result.append(None)
        result[index] = _merge(result[index], item)

    else:
        result[key] = _merge(result[key], item) if key in result else item

    return result


def _merge(base: Any, over: Any) -> Any:
    "Combine two selections of the same value, without modifying either."
    if NO_RESULT is over:
        return base
    if NO_RESULT is base or None is base:
        return over

    if ismap(base) and ismap(over):
        merged = dict(base)
        for key, val in over.items():
            merged[key] = _merge(merged[key], val) if key in merged else val
        return merged

    if islist(base) and islist(over):
        merged = list(base)
        for index, val in enumerate(over):
            if index < len(merged):
                merged[index] = _merge(merged[index], val)
            else:
                merged.append(val)
        return merged

    return base


def _defined(value: Any) -> Any:
    return None if UNDEF is value else value


__all__ = [
    'select',
]
