# structqn init

from .structqn import (
    ALL,
    CONTEXT,
    DEEP_ALL,
    DEFAULT,
    EQ,
    GT,
    GTE,
    LT,
    LTE,
    MATCH,
    META,
    NEQ,
    NOT,
    Op,
    PREDICATE_OPS,
    SELECT_OPS,
    SOME,
    SerializationError,
    StructQuery,
    StructQueryError,
    UNDEF,
    UPDATE_OPS,
    UpdateError,
    WHERE,
    clone,
    getelem,
    getprop,
    invoke,
    isfunc,
    iskey,
    islist,
    ismap,
    isnode,
    isop,
    items,
    keysof,
    kindof,
    pathify,
    setprop,
    stringify,
    typify,
    walk,
)
from .predicate import eval_operator, eval_predicate
from .select import select
from .changes import (
    Transaction,
    any_change,
    has_changes,
    transaction,
    type_change,
    undo,
)
from .update import update
from .serial import (
    MARKERS,
    dumps,
    from_json,
    loads,
    to_json,
    validate_no_functions,
)
from .transform import transform


__all__ = [
    'ALL',
    'CONTEXT',
    'DEEP_ALL',
    'DEFAULT',
    'EQ',
    'GT',
    'GTE',
    'LT',
    'LTE',
    'MARKERS',
    'MATCH',
    'META',
    'NEQ',
    'NOT',
    'Op',
    'PREDICATE_OPS',
    'SELECT_OPS',
    'SOME',
    'SerializationError',
    'StructQuery',
    'StructQueryError',
    'Transaction',
    'UNDEF',
    'UPDATE_OPS',
    'UpdateError',
    'WHERE',
    'any_change',
    'clone',
    'dumps',
    'eval_operator',
    'eval_predicate',
    'from_json',
    'getelem',
    'getprop',
    'has_changes',
    'invoke',
    'isfunc',
    'iskey',
    'islist',
    'ismap',
    'isnode',
    'isop',
    'items',
    'keysof',
    'kindof',
    'loads',
    'pathify',
    'select',
    'setprop',
    'stringify',
    'to_json',
    'transaction',
    'transform',
    'type_change',
    'typify',
    'undo',
    'update',
    'validate_no_functions',
    'walk',
]
