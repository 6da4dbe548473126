from collections.abc import MutableMapping, MutableSequence
import copy
import enum
from functools import singledispatch
import math


class DraftKind(enum.Enum):

    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OPAQUE = "opaque"


MISSING = object()  # marker for "no value at this key"


#
# Classification. Every value is exactly one of SEQUENCE, MAPPING or OPAQUE.
# Only SEQUENCE and MAPPING values get a draft; OPAQUE values are passed
# through untouched.
#

@singledispatch
def draftKind(value):
    return DraftKind.OPAQUE


@draftKind.register(MutableSequence)
def _draftKind_sequence(value):
    return DraftKind.SEQUENCE


@draftKind.register(MutableMapping)
def _draftKind_mapping(value):
    return DraftKind.MAPPING


def isDraftable(value):
    return draftKind(value) is not DraftKind.OPAQUE


def registerDraftable(type, kind, copier=None):
    """Register a custom container type as draftable. `kind` must be
    DraftKind.SEQUENCE or DraftKind.MAPPING. The type must support the item
    protocol of its kind (and `insert()` for sequences).

    `copier` is an optional function returning a mutable shallow copy of an
    instance; by default copy.copy() is used.
    """
    if kind not in (DraftKind.SEQUENCE, DraftKind.MAPPING):
        raise ValueError(f"can't register {type.__name__} as {kind}")
    draftKind.register(type, lambda value: kind)
    if copier is not None:
        shallowCopy.register(type, copier)


def isSameValue(a, b):
    """Return True if `a` and `b` count as the same value. Containers and
    other objects compare by identity, scalars of the same type by value.
    NaN is the same as NaN, but 0.0 and -0.0 are different.

        >>> isSameValue(float("nan"), float("nan"))
        True
        >>> isSameValue(0.0, -0.0)
        False
        >>> isSameValue(1, True)
        False
        >>> isSameValue([], [])
        False
    """
    if a is b:
        return True
    if type(a) is not type(b) or not isinstance(a, _scalarTypes):
        return False
    if isinstance(a, float):
        if math.isnan(a) and math.isnan(b):
            return True
        return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)
    if isinstance(a, complex):
        return isSameValue(a.real, b.real) and isSameValue(a.imag, b.imag)
    return a == b


_scalarTypes = (int, float, complex, str, bytes)


#
# Freezing. A finalized copy can be frozen: lists become FrozenList and dicts
# become FrozenDict. Both are regular list/dict subclasses, so they compare
# equal to plain containers and can be the base of a later update, but all
# mutating methods raise TypeError.
#

def _frozenMethod(name):
    def method(self, *args, **kwargs):
        raise TypeError(f"'{self.__class__.__name__}' object is frozen, can't call {name}()")
    method.__name__ = name
    return method


class FrozenList(list):

    def __reduce__(self):
        return (self.__class__, (list(self),))


class FrozenDict(dict):

    def __reduce__(self):
        return (self.__class__, (dict(self),))


for _name in ["__setitem__", "__delitem__", "__iadd__", "__imul__", "append",
              "extend", "insert", "pop", "remove", "clear", "sort", "reverse"]:
    setattr(FrozenList, _name, _frozenMethod(_name))

for _name in ["__setitem__", "__delitem__", "__ior__", "update", "pop",
              "popitem", "clear", "setdefault"]:
    setattr(FrozenDict, _name, _frozenMethod(_name))

del _name


def isFrozen(value):
    return isinstance(value, (FrozenList, FrozenDict))


@singledispatch
def freeze(value):
    # Only plain lists and dicts can be frozen; anything else is left as is.
    return value


@freeze.register(list)
def _freeze_list(value):
    return value if isinstance(value, FrozenList) else FrozenList(value)


@freeze.register(dict)
def _freeze_dict(value):
    return value if isinstance(value, FrozenDict) else FrozenDict(value)


@singledispatch
def shallowCopy(value):
    return copy.copy(value)


@shallowCopy.register(FrozenList)
def _shallowCopy_frozenList(value):
    return list(value)


@shallowCopy.register(FrozenDict)
def _shallowCopy_frozenDict(value):
    return dict(value)


def thaw(value):
    """Return a deep copy of a nested value in which every draftable
    container is a plain mutable one. Opaque values are shared.
    """
    kind = draftKind(value)
    if kind is DraftKind.SEQUENCE:
        return [thaw(item) for item in value]
    elif kind is DraftKind.MAPPING:
        return {key: thaw(item) for key, item in value.items()}
    return value
