# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Change records: undo, transactions, and change detection.


from typing import *
import logging

from .structqn import (
    UNDEF,
    ALL,
    META,
    S_object,
    S_array,
    S_original,
    getprop,
    invoke,
    isfunc,
    islist,
    ismap,
    isnode,
    setprop,
    toindex,
    typify,
)


logger = logging.getLogger(__name__)


def undo(data: Any, changes: Optional[dict]) -> None:
    """
    Revert the changes recorded by update (data is modified in place).
    Originals recorded as UNDEF are removed again.
    """
    if not isnode(data) or not ismap(changes):
        return

    meta = changes.get(META) or {}
    keys = [key for key in changes.keys() if META != key]

    # Highest index first, so that removing appended elements does not
    # shift the ones still to be restored.
    if islist(data):
        keys.sort(key=lambda key: toindex(key) or 0, reverse=True)

    for key in keys:
        if key in meta:
            setprop(data, key, meta[key].get(S_original, UNDEF))
        else:
            undo(getprop(data, key), changes[key])


class Transaction:
    """
    Accumulate the changes of several updates to the same data, so that
    they can be committed or reverted together.

    >>> data = {'count': 1}
    >>> tx = transaction(data)
    >>> tx.apply({'count': 2}).apply({'count': 3}).commit()
    {'count': 3, META: {'count': {'original': 1}}}
    >>> data
    {'count': 3}

    A transaction is not thread safe, and transactions do not nest. After
    commit or revert, the next apply starts a new change record.
    An apply that raises leaves the data and the change record as they were.
    """

    def __init__(self, data: Any, strict: bool = True):
        self.data = data
        self.strict = strict
        self._changes = None

    @property
    def changes(self) -> Optional[dict]:
        "The change record accumulated so far, or None."
        return self._changes

    def apply(self, statement: Any, context: Optional[dict] = None) -> 'Transaction':
        # Imported here as update imports undo from this module.
        from .update import update

        self._changes = update(self.data, statement, self._changes, context, self.strict)
        return self

    def commit(self) -> Optional[dict]:
        changes = self._changes
        self._changes = None
        return changes

    def revert(self) -> None:
        if self._changes is not None:
            logger.debug('Reverting transaction changes: %s', list(self._changes.keys()))
            undo(self.data, self._changes)
        self._changes = None


def transaction(data: Any, strict: bool = True) -> Transaction:
    "Start a transaction on data."
    return Transaction(data, strict)


def has_changes(changes: Optional[dict], detector: Any) -> bool:
    """
    Test a change record with a detector of the same shape as the data.
    Detector entries are functions of (key, changes), or nested detectors
    for nested change records. An ALL entry covers every other changed key.

    >>> changes = update({'a': {'b': 1}}, {'a': {'b': 2}})
    >>> has_changes(changes, {'a': {'b': any_change}})
    True
    """
    if not ismap(changes) or not ismap(detector):
        return False

    entries = [(key, det) for key, det in detector.items() if ALL != key]

    if ALL in detector:
        for key in changes.keys():
            if META != key and key not in detector:
                entries.append((key, detector[ALL]))

    for key, det in entries:
        if isfunc(det):
            if invoke(det, key, changes):
                return True
        elif ismap(det):
            if has_changes(changes.get(key), det):
                return True

    return False


def any_change(key: Any, changes: Optional[dict]) -> bool:
    "Detector: key has changed."
    return ismap(changes) and key in changes


def type_change(key: Any, changes: Optional[dict]) -> bool:
    "Detector: the type of the value at key has changed (null is its own type)."
    if not ismap(changes):
        return False

    meta = changes.get(META)
    if not ismap(meta) or key not in changes or key not in meta:
        return False

    return _typeof(changes[key]) != _typeof(meta[key].get(S_original, UNDEF))


def _typeof(value: Any) -> str:
    # Lists and maps are both objects.
    kind = typify(value)
    return S_object if S_array == kind else kind


__all__ = [
    'Transaction',
    'any_change',
    'has_changes',
    'transaction',
    'type_change',
    'undo',
]
