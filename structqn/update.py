# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Updates: apply a statement to data in place, returning a change record.
#
# Statement keys:
# - field: the operand for that key (see kindof for operand kinds).
#   On lists, field keys are indexes, "-N" counts back from the end.
# - ALL: operand for every existing key not addressed by a field.
# - WHERE: guard, tested against the current node; failure skips the level.
# - DEFAULT: initial value when a partial update meets a non-node.
# - CONTEXT: variables merged into the context for this level and below.
#
# A change record mirrors the shape of the data. Each changed key holds
# either the new value, with the original under META, or a nested change
# record for partial updates:
#
#   {'user': {'age': 31, META: {'age': {'original': 30}}}}


from typing import *
import logging

from .structqn import (
    UNDEF,
    ALL,
    CONTEXT,
    DEFAULT,
    META,
    WHERE,
    K_delete,
    K_fields,
    K_replace,
    S_original,
    UpdateError,
    clone,
    fieldsof,
    getprop,
    invoke,
    isfunc,
    islist,
    ismap,
    isnode,
    keysof,
    kindof,
    pathify,
    setprop,
    toindex,
    typify,
)
from .predicate import eval_predicate, strict_eq
from .changes import undo


logger = logging.getLogger(__name__)


def update(
        data: Any,
        statement: Any,
        changes: Optional[dict] = None,
        context: Optional[dict] = None,
        strict: bool = True,
) -> Optional[dict]:
    """
    Apply statement to data (modified in place).

    Pass the change record of an earlier update as `changes` to accumulate
    into it. Returns the change record, or None if nothing changed.

    With strict=False, usage errors are logged and the offending key is
    skipped, instead of raising UpdateError.

    If the update fails, the changes it already made are undone before the
    error is raised, and `changes` is left as it was.

    >>> data = {'user': {'name': 'Alice', 'age': 30}}
    >>> update(data, {'user': {'age': 31}})
    {'user': {'age': 31, META: {'age': {'original': 30}}}}
    """
    if not isnode(data):
        raise UpdateError(f'Cannot update a non-object: {typify(data)}')

    record = {}
    try:
        _update(data, statement, record, context, strict, [])
    except Exception:
        logger.debug('Update failed, undoing %s', list(record.keys()))
        undo(data, record)
        raise

    if changes is None:
        return record if record else None

    _merge(changes, record, data)
    return changes if changes else None


def _update(data, stmt, changes, context, strict, path):
    if not ismap(stmt) or not isnode(data):
        return

    if CONTEXT in stmt:
        context = {**(context or {}), **(stmt[CONTEXT] or {})}

    where = stmt.get(WHERE, UNDEF)
    if UNDEF is not where and not _guard(data, where, context):
        logger.debug('WHERE failed, skipping %s', pathify(path))
        return

    for key, operand in _directives(data, stmt, path):
        _apply(data, key, operand, changes, context, strict, path)


def _guard(value, where, context):
    if isfunc(where):
        return bool(invoke(where, value, context))
    return eval_predicate(value, where)


def _directives(data, stmt, path):
    "Resolve the keys addressed at this level, explicit fields first, then ALL."
    directives = []
    covered = set()

    for key in fieldsof(stmt):
        if islist(data):
            index = toindex(key, len(data))

            # The index one past the end appends.
            if index is None or not 0 <= index <= len(data):
                logger.debug('Ignoring list key %r at %s', key, pathify(path))
                continue
            resolved = str(index)
        else:
            resolved = key

        if resolved not in covered:
            covered.add(resolved)
            directives.append((resolved, stmt[key]))

    all_stmt = stmt.get(ALL, UNDEF)
    if UNDEF is not all_stmt:
        for key in keysof(data):
            if key not in covered:
                directives.append((key, all_stmt))

    return directives


def _apply(data, key, operand, changes, context, strict, path):
    old = getprop(data, key)

    if isfunc(operand):
        operand = invoke(operand, old, data, key, context)

    kind = kindof(operand)

    if K_delete == kind:
        if UNDEF is old:
            return
        if islist(data):
            # Leave a hole so later indexes do not shift.
            data[int(key)] = None
        else:
            del data[key]
        _record(changes, data, key, old)

    elif K_replace == kind:
        if 1 < len(operand):
            raise UpdateError('Multiple element arrays not allowed', path + [key])
        value = operand[0] if isfunc(operand[0]) else clone(operand[0])
        _assign(data, key, old, value, changes)

    elif K_fields == kind:
        if isnode(old):
            _partial(key, old, operand, changes, context, strict, path)
        else:
            _default(data, key, old, operand, changes, context, strict, path)

    else:
        _assign(data, key, old, operand, changes)


def _assign(data, key, old, value, changes):
    if strict_eq(old, value):
        return
    setprop(data, key, value)
    _record(changes, data, key, old)


def _partial(key, old, operand, changes, context, strict, path):
    # Attached before descending, so a failure below can still be undone.
    nested = changes[key] = {}
    _update(old, operand, nested, context, strict, path + [key])
    if not nested:
        del changes[key]


def _default(data, key, old, operand, changes, context, strict, path):
    where = operand.get(WHERE, UNDEF)
    if UNDEF is not where and not _guard(old, where, context):
        logger.debug('WHERE failed, skipping %s', pathify(path + [key]))
        return

    if DEFAULT not in operand:
        err = UpdateError('Cannot partially update a non-object', path + [key])
        if strict:
            raise err
        logger.error('%s', err)
        return

    value = clone(operand[DEFAULT])
    setprop(data, key, value)
    _record(changes, data, key, old)

    # Changes inside the new value belong to the whole-value change.
    rest = {k: v for k, v in operand.items() if WHERE != k}
    _update(value, rest, {}, context, strict, path + [key])


def _merge(changes, record, data):
    "Fold the record of one update into an earlier change record of the same data."
    meta = record.get(META) or {}

    for key, entry in record.items():
        if META == key:
            continue

        if key in meta:
            _record(changes, data, key, meta[key][S_original])
            continue

        prior = changes.get(META) or {}

        # Already changed as a whole, so the record holds the current value.
        if key in prior:
            _record(changes, data, key, UNDEF)

        elif ismap(changes.get(key)):
            _merge(changes[key], entry, getprop(data, key))
            if not changes[key]:
                del changes[key]

        else:
            changes[key] = entry


def _record(changes, data, key, old):
    "Record a whole-value change of key, keeping the first original under META."
    new = getprop(data, key)
    meta = changes.get(META)

    if meta is None or key not in meta:
        # Revert earlier partial changes, so the original is the untouched value.
        if isnode(old) and ismap(changes.get(key)):
            undo(old, changes[key])

        changes[key] = new
        if meta is None:
            meta = changes[META] = {}
        meta[key] = {S_original: old}

    elif strict_eq(new, meta[key][S_original]):
        # Back to the original value, so there is no change.
        del changes[key]
        del meta[key]
        if 0 == len(meta):
            del changes[META]

    else:
        changes[key] = new


__all__ = [
    'update',
]
