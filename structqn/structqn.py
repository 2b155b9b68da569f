# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Struct Query Notation
# =====================
#
# Declarative queries and updates over in-memory JSON-like data structures.
# Statements are plain data: dicts whose string keys address fields, and
# whose reserved keys (members of the Op enum) carry operators.
#
# Main utilities
# - select: extract a filtered/reshaped copy of the data (see select.py).
# - update: apply a statement in place, returning a change record (see update.py).
# - undo: revert a change record (see changes.py).
# - transaction: accumulate updates, then commit or revert (see changes.py).
# - eval_predicate: test a value against a predicate (see predicate.py).
# - has_changes: inspect a change record with detectors (see changes.py).
# - to_json, from_json: statement serialization (see serial.py).
#
# Minor utilities
# - isnode, islist, ismap, iskey, isfunc, isop: identify value kinds.
# - kindof: classify a statement operand.
# - keysof: list of node keys (insertion order for maps, indexes for lists).
# - clone: deep copy of a JSON-like data structure.
# - items: list entries of a map or list as [key, value] pairs.
# - getprop: safely get a property value by key.
# - getelem: safely get a list element value by key/index, negative from the end.
# - setprop: safely set a property value by key.
# - invoke: call a statement function with the arguments it accepts.
# - typify: type name of a value.
# - stringify: human-friendly string version of a value.
# - pathify: dotted string version of a key path.
# - walk: walk a node tree, applying a function at each node and leaf.


from typing import *
from enum import Enum
import inspect
import json
import re


# Decimal index syntax for list keys (optionally negative).
R_INDEX = re.compile(r'^-?[0-9]+$')

# Type names.
S_array = 'array'
S_boolean = 'boolean'
S_function = 'function'
S_number = 'number'
S_object = 'object'
S_string = 'string'
S_null = 'null'
S_undefined = 'undefined'

# General strings.
S_MT = ''
S_DT = '.'
S_CN = ':'
S_original = 'original'


class Undefined:
    """
    The absent value. Distinct from None, which is JSON null: a key that is
    missing from a map reads as UNDEF, a key holding null reads as None.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return 'UNDEF'

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNDEF = Undefined()


class Op(Enum):
    """
    Reserved statement tokens. The value of each member is the marker
    used for it in serialized statements.
    """
    ALL = '*'           # Apply to every key (update, select); every element (predicate).
    DEEP_ALL = '**'     # Recursive selection at any depth.
    WHERE = '?'         # Guard predicate or function.
    DEFAULT = '{}'      # Initial value for absent/null fields.
    CONTEXT = '$'       # Context variables for this level and below.
    META = '#'          # Original values in a change record.

    LT = '<'            # Less than.
    GT = '>'            # Greater than.
    LTE = '<='          # Less than or equal.
    GTE = '>='          # Greater than or equal.
    EQ = '=='           # Loose equality.
    NEQ = '!='          # Loose inequality.
    NOT = '!'           # Strict inequality / logical NOT.
    MATCH = '~'         # Regular expression match.
    SOME = '|'          # At least one element matches.

    def __repr__(self):
        return self.name


ALL = Op.ALL
DEEP_ALL = Op.DEEP_ALL
WHERE = Op.WHERE
DEFAULT = Op.DEFAULT
CONTEXT = Op.CONTEXT
META = Op.META
LT = Op.LT
GT = Op.GT
LTE = Op.LTE
GTE = Op.GTE
EQ = Op.EQ
NEQ = Op.NEQ
NOT = Op.NOT
MATCH = Op.MATCH
SOME = Op.SOME

UPDATE_OPS = frozenset([ALL, WHERE, DEFAULT, CONTEXT])
SELECT_OPS = frozenset([ALL, WHERE, DEEP_ALL])

# Predicate operators, in evaluation order.
PREDICATE_OPS = (ALL, SOME, NOT, LT, GT, LTE, GTE, EQ, NEQ, MATCH)

# Operand kinds, see kindof.
K_transform = 'transform'
K_delete = 'delete'
K_replace = 'replace'
K_fields = 'fields'
K_literal = 'literal'


class StructQueryError(ValueError):
    "Base error for statement usage problems."


class UpdateError(StructQueryError):
    "An update statement cannot be applied to the data it addresses."

    def __init__(self, message: str, path: List[str] = None):
        self.path = path
        if path:
            message = f'{message} at path: {pathify(path)}'
        super().__init__(message)


class SerializationError(StructQueryError):
    "A statement cannot be converted to or from its JSON form."

    def __init__(self, message: str, path: List[str] = None):
        self.path = path
        if path:
            message = f'{message} at path: {S_DT.join(path)}'
        super().__init__(message)


def isnode(val: Any = UNDEF) -> bool:
    "Value is a node - defined, and a map (hash) or list (array)."
    return isinstance(val, (dict, list))


def ismap(val: Any = UNDEF) -> bool:
    "Value is a defined map (hash)."
    return isinstance(val, dict)


def islist(val: Any = UNDEF) -> bool:
    "Value is a defined list (array) with integer keys (indexes)."
    return isinstance(val, list)


def iskey(key: Any = UNDEF) -> bool:
    "Value is a defined string (non-empty) or integer key."
    if isinstance(key, str):
        return len(key) > 0
    # Exclude bool (which is a subclass of int)
    if isinstance(key, bool):
        return False
    return isinstance(key, int)


def isfunc(val: Any = UNDEF) -> bool:
    "Value is a function."
    return callable(val)


def isop(key: Any = UNDEF) -> bool:
    "Key is a reserved statement token."
    return isinstance(key, Op)


def isnumber(val: Any = UNDEF) -> bool:
    "Value is an int or float, but not a bool."
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def kindof(operand: Any) -> str:
    """
    Classify a statement operand:
    - transform: a function producing the effective operand.
    - delete: an empty list, removing the addressed key.
    - replace: a list wrapping the value that replaces the addressed key whole.
    - fields: a map of field directives (and operators), applied partially.
    - literal: anything else, assigned or compared directly.
    """
    if isfunc(operand):
        return K_transform
    if islist(operand):
        return K_delete if 0 == len(operand) else K_replace
    if ismap(operand):
        return K_fields
    return K_literal


def fieldsof(stmt: Any) -> List[Any]:
    "The field (non-operator) keys of a statement map."
    if not ismap(stmt):
        return []
    return [k for k in stmt.keys() if not isop(k)]


def strkey(key: Any = UNDEF) -> str:
    if isinstance(key, Op):
        return key.value

    if isinstance(key, str):
        return key

    if isinstance(key, bool):
        return S_MT

    if isinstance(key, int):
        return str(key)

    if isinstance(key, float):
        return str(int(key))

    return S_MT


def toindex(key: Any, size: int = UNDEF) -> Optional[int]:
    """
    Convert a key to a list index. Keys are ints or decimal strings.
    When size is given, negative keys count back from the end.
    Returns None when the key is not an index.
    """
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        index = key
    elif isinstance(key, str) and R_INDEX.match(key):
        index = int(key)
    else:
        return None

    if index < 0:
        if size is UNDEF:
            return None
        index = size + index

    return index


def getelem(val: Any, key: Any, alt: Any = UNDEF) -> Any:
    """
    Get a list element. The key should be an integer, or a string
    that can parse to an integer only. Negative integers count from the end of the list.
    """
    if not islist(val):
        return alt

    index = toindex(key, len(val))
    if index is None or not 0 <= index < len(val):
        return alt

    return val[index]


def getprop(val: Any = UNDEF, key: Any = UNDEF, alt: Any = UNDEF) -> Any:
    """
    Safely get a property of a node. Undefined arguments return undefined.
    If the key is not found, return the alternative value.
    List indexes must be non-negative here, see getelem for negative access.
    """
    if UNDEF is val or UNDEF is key:
        return alt

    if ismap(val):
        return val.get(key, alt)

    elif islist(val):
        index = toindex(key)
        if index is None or index >= len(val):
            return alt
        return val[index]

    return alt


def keysof(val: Any = UNDEF) -> List[Any]:
    "Keys of a map (insertion order), or indexes of a list as strings."
    if not isnode(val):
        return []
    elif ismap(val):
        return list(val.keys())
    else:
        return [str(x) for x in range(len(val))]



def items(val: Any = UNDEF):
    "List the keys of a map or list as an array of [key, value] tuples."
    if ismap(val):
        return list(val.items())
    elif islist(val):
        return list(enumerate(val))
    else:
        return []


def setprop(parent: Any, key: Any, val: Any):
    """
    Safely set a property on a dictionary or list.
    - If `val` is UNDEF, delete the key from parent.
    - For lists, key >= len(list) -> append.
    - For lists, UNDEF value -> remove and shift down.
    """
    if ismap(parent):
        if UNDEF is val:
            parent.pop(key, None)
        else:
            parent[key] = val

    elif islist(parent):
        key_i = toindex(key)
        if key_i is None:
            return parent

        # Delete an element
        if UNDEF is val:
            if 0 <= key_i < len(parent):
                del parent[key_i]
        elif key_i >= len(parent):
            # Append if out of range
            parent.append(val)
        else:
            parent[key_i] = val

    return parent


def clone(val: Any = UNDEF):
    """
    Clone a JSON-like data structure.
    NOTE: function value references are copied, *not* cloned.
    """
    if isinstance(val, dict):
        return {k: clone(v) for k, v in val.items()}
    elif isinstance(val, (list, tuple)):
        return [clone(elem) for elem in val]
    return val


def invoke(func: Callable, *args: Any) -> Any:
    """
    Call a statement function, passing only as many leading arguments as
    its signature accepts. Transforms receive (value, parent, key, context),
    guards receive (value, context), detectors receive (key, changes).
    """
    try:
        params = list(inspect.signature(func).parameters.values())
    except (ValueError, TypeError):
        return func(*args)

    positional = 0
    for param in params:
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return func(*args)
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY,
                          inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1

    return func(*args[:positional])


def typify(value: Any = UNDEF) -> str:
    if value is UNDEF:
        return S_undefined
    if value is None:
        return S_null
    if isinstance(value, bool):
        return S_boolean
    if isinstance(value, (int, float)):
        return S_number
    if isinstance(value, str):
        return S_string
    if callable(value):
        return S_function
    if isinstance(value, list):
        return S_array
    return S_object


def stringify(val: Any, maxlen: int = UNDEF):
    "Safely stringify a value for printing (NOT JSON!)."

    valstr = S_MT

    if UNDEF is val:
        return valstr

    if isinstance(val, str):
        valstr = val
    else:
        try:
            valstr = json.dumps(_printable(val), sort_keys=True, separators=(',', ':'))
            valstr = valstr.replace('"', '')
        except Exception:
            valstr = str(val)

    if maxlen is not UNDEF:
        json_len = len(valstr)
        valstr = valstr[:maxlen]

        if 3 < maxlen < json_len:
            valstr = valstr[:maxlen - 3] + '...'

    return valstr


def _printable(val):
    if isinstance(val, dict):
        return {strkey(k): _printable(v) for k, v in val.items()}
    elif isinstance(val, (list, tuple)):
        return [_printable(v) for v in val]
    elif UNDEF is val:
        return None
    elif callable(val):
        return '<' + getattr(val, '__name__', S_function) + '>'
    return val


def pathify(val: Any = UNDEF, startin: int = UNDEF) -> str:
    "Dotted string form of a key path, for messages."
    path = val if islist(val) else [val] if iskey(val) or isop(val) else UNDEF

    if UNDEF is path:
        return f"<unknown-path{S_MT if UNDEF is val else S_CN + stringify(val, 47)}>"

    start = 0 if startin is UNDEF else startin if -1 < startin else 0
    path = path[start:]

    if 0 == len(path):
        return "<root>"

    return S_DT.join(strkey(p).replace(S_DT, S_MT) for p in path if iskey(p) or isop(p))


def walk(
        # These arguments are the public interface.
        val: Any,
        apply: Any,

        # These arguments are used for recursive state.
        key: Any = UNDEF,
        parent: Any = UNDEF,
        path: Any = UNDEF
):
    """
    Walk a data structure depth-first, calling apply at each node (after children).
    Paths are lists of string keys; operator keys appear as their markers.
    The structure itself is not modified.
    """
    if path is UNDEF:
        path = []
    if isnode(val):
        for (ckey, child) in items(val):
            walk(child, apply, ckey, val, path + [strkey(ckey)])

    # Nodes are applied *after* their children.
    # For the root node, key and parent will be UNDEF.
    return apply(key, val, parent, path)


# Aggregate of the public utilities, so that a single object can be passed
# around by clients and test runners.
class StructQuery:
    def __init__(self):
        # Imported here as the engine modules import this one.
        from .predicate import eval_operator, eval_predicate
        from .select import select
        from .update import update
        from .changes import undo, transaction, has_changes, any_change, type_change
        from .serial import to_json, from_json, validate_no_functions, dumps, loads
        from .transform import transform

        self.any_change = any_change
        self.clone = clone
        self.dumps = dumps
        self.eval_operator = eval_operator
        self.eval_predicate = eval_predicate
        self.from_json = from_json
        self.getelem = getelem
        self.getprop = getprop
        self.has_changes = has_changes
        self.invoke = invoke
        self.isfunc = isfunc
        self.iskey = iskey
        self.islist = islist
        self.ismap = ismap
        self.isnode = isnode
        self.isop = isop
        self.items = items
        self.keysof = keysof
        self.kindof = kindof
        self.loads = loads
        self.pathify = pathify
        self.select = select
        self.setprop = setprop
        self.stringify = stringify
        self.strkey = strkey
        self.to_json = to_json
        self.transaction = transaction
        self.transform = transform
        self.type_change = type_change
        self.typify = typify
        self.undo = undo
        self.update = update
        self.validate_no_functions = validate_no_functions
        self.walk = walk


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
    'UNDEF',
    'UPDATE_OPS',
    'UpdateError',
    'WHERE',
    'clone',
    'fieldsof',
    'getelem',
    'getprop',
    'invoke',
    'isfunc',
    'iskey',
    'islist',
    'ismap',
    'isnode',
    'isnumber',
    'isop',
    'items',
    'keysof',
    'kindof',
    'pathify',
    'setprop',
    'stringify',
    'strkey',
    'toindex',
    'typify',
    'walk',
]
