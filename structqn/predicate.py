# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Predicate evaluation.
#
# A predicate is one of:
# - a function: called with the value, truthy result passes.
# - a list: OR over the elements (an empty list never passes).
# - a dict: AND over its operator keys and field keys (an empty dict always passes).
# - anything else: strict equality with the value.


from typing import *
import logging
import math
import re

from .structqn import (
    UNDEF,
    Op,
    ALL,
    SOME,
    NOT,
    LT,
    GT,
    LTE,
    GTE,
    EQ,
    NEQ,
    MATCH,
    PREDICATE_OPS,
    getprop,
    invoke,
    isfunc,
    islist,
    ismap,
    isnode,
    isnumber,
    isop,
    items,
)


logger = logging.getLogger(__name__)

S_empty = ''

# Regular expression flags of the /pattern/flags form.
# JavaScript-only flags (g, u, y, d) have no effect on a single search.
REGEX_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
}


def eval_predicate(value: Any, predicate: Any) -> bool:
    """
    Test value against predicate.

    >>> eval_predicate(5, {GT: 3, LT: 10})
    True
    >>> eval_predicate(5, [{GT: 10}, {LT: 3}])
    False
    >>> eval_predicate({'age': 30}, {'age': {GTE: 18}})
    True
    """
    if isfunc(predicate):
        return bool(invoke(predicate, value))

    if islist(predicate):
        return any(eval_predicate(value, p) for p in predicate)

    if not ismap(predicate):
        return strict_eq(value, predicate)

    for op in PREDICATE_OPS:
        if op in predicate and not eval_operator(value, op, predicate[op]):
            return False

    fields = [k for k in predicate.keys() if not isop(k)]
    if 0 == len(fields):
        return True

    # Field predicates can only hold for nodes.
    if not isnode(value):
        return False

    return all(eval_predicate(getprop(value, k), predicate[k]) for k in fields)


def eval_operator(value: Any, op: Op, condition: Any) -> bool:
    "Test a single predicate operator against value."

    if EQ == op:
        return loose_eq(value, condition)

    elif NEQ == op:
        return not loose_eq(value, condition)

    elif op in (LT, GT, LTE, GTE):
        if not comparable(value, condition):
            return False
        if LT == op:
            return value < condition
        elif GT == op:
            return value > condition
        elif LTE == op:
            return value <= condition
        return value >= condition

    elif MATCH == op:
        if not isinstance(value, str):
            return False
        try:
            return None is not to_regex(condition).search(value)
        except (re.error, TypeError) as err:
            logger.warning('Invalid regex pattern: %r (%s)', condition, err)
            return False

    elif NOT == op:
        return not eval_predicate(value, condition)

    elif ALL == op:
        if not isnode(value):
            return False
        return all(eval_predicate(v, condition) for _, v in items(value))

    elif SOME == op:
        if not isnode(value):
            return False
        return any(eval_predicate(v, condition) for _, v in items(value))

    return False


def strict_eq(a: Any, b: Any) -> bool:
    "Equality without type coercion. Nodes are equal only to themselves."
    if a is b:
        return True
    if UNDEF is a or UNDEF is b or None is a or None is b:
        return False
    if isinstance(a, bool) or isinstance(b, bool):
        return False
    if isnode(a) or isnode(b):
        return False
    if isnumber(a) and isnumber(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return type(a) is type(b) and a == b


def loose_eq(a: Any, b: Any) -> bool:
    """
    Equality with type coercion: null and absent equal each other (and
    nothing else), strings and booleans compare as numbers with numbers.
    """
    a_nullish = a is None or UNDEF is a
    b_nullish = b is None or UNDEF is b
    if a_nullish or b_nullish:
        return a_nullish and b_nullish

    if isnode(a) or isnode(b):
        return a is b

    if isinstance(a, str) and isinstance(b, str):
        return a == b

    na = to_number(a)
    nb = to_number(b)
    if na is None or nb is None:
        return a == b

    return na == nb


def to_number(val: Any) -> Optional[float]:
    if isinstance(val, bool):
        return 1 if val else 0
    if isnumber(val):
        return val
    if isinstance(val, str):
        text = val.strip()
        if S_empty == text:
            return 0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return None


def comparable(a: Any, b: Any) -> bool:
    return (isnumber(a) and isnumber(b)) or (isinstance(a, str) and isinstance(b, str))


def to_regex(condition: Any) -> re.Pattern:
    "Compile a MATCH condition: a pattern, a /pattern/flags string, or a compiled pattern."
    if isinstance(condition, re.Pattern):
        return condition

    if not isinstance(condition, str):
        raise TypeError('pattern must be a string')

    pattern = condition
    flags = 0

    # The /pattern/flags form needs a closing slash after the opening one.
    last = condition.rfind('/')
    if condition.startswith('/') and 0 < last:
        pattern = condition[1:last]
        for flag in condition[last + 1:]:
            flags |= REGEX_FLAGS.get(flag, 0)

    return re.compile(pattern, flags)


__all__ = [
    'eval_operator',
    'eval_predicate',
    'loose_eq',
    'strict_eq',
    'to_regex',
]
