from collections.abc import Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass
from functools import singledispatch
import logging
import typing

from .common import DraftKind, isSameValue, thaw
from .errors import PatchPathError, UnknownPatchOpError


logger = logging.getLogger(__name__)


APPEND = "-"  # final path element meaning "append to the sequence"


@dataclass(frozen=True)
class Patch:

    """A Patch is an object with three fields:

    - op: the operation to be performed. One of "add", "replace" or "remove"
    - path: a path identifying a child object in the value tree
    - value: the value to add or replace, or None when removing the child

    The path object is a tuple containing path elements. A path element is either a
    string (a mapping key) or an integer (a sequence index). An empty path
    represents the root value.

    Examples:
    - ("a",) represents the key "a" if the root object is a dictionary
    - (3,) represents the item with index 3 for a sequence root element
    - (3, "a") represents 123 in this object: [2, 4, 8, {"a": 123}]
    """

    op: str
    path: tuple  # path elements are str or int
    value: typing.Any = None

    def asDict(self):
        """Return the wire format of this patch: a dict with "op", "path" (a
        list) and, unless op is "remove", "value".
        """
        d = {"op": self.op, "path": list(self.path)}
        if self.op != "remove":
            d["value"] = self.value
        return d

    @classmethod
    def fromDict(cls, d):
        return cls(d["op"], tuple(d["path"]), d.get("value"))

    @classmethod
    def coerce(cls, patch):
        if isinstance(patch, cls):
            return patch
        if isinstance(patch, Mapping):
            return cls.fromDict(patch)
        raise TypeError(f"expected a Patch or a dict, got {type(patch).__name__}")

    def applyPatch(self, target):
        if self.op == "add":
            addNestedItem(target, self.path, thaw(self.value))
        elif self.op == "replace":
            replaceNestedItem(target, self.path, thaw(self.value))
        elif self.op == "remove":
            removeNestedItem(target, self.path)
        else:
            raise UnknownPatchOpError(self.op)


#
# Patch generation, from the DraftState of a modified node after its copy
# has been finalized.
#

def generatePatches(state, basePath, patches, inversePatches):
    if state.kind is DraftKind.SEQUENCE:
        _generateSequencePatches(state, basePath, patches, inversePatches)
    else:
        _generateMappingPatches(state, basePath, patches, inversePatches)


def _generateSequencePatches(state, basePath, patches, inversePatches):
    base, copy, assigned = state.base, state.copy, state.assigned
    oldLength = len(base)
    newLength = len(copy)
    minLength = min(oldLength, newLength)

    # Replaced items
    for i in range(minLength):
        if assigned.get(i) and not isSameValue(base[i], copy[i]):
            path = basePath + (i,)
            patches.append(Patch("replace", path, copy[i]))
            inversePatches.append(Patch("replace", path, base[i]))

    if newLength > oldLength:
        for i in range(oldLength, newLength):
            patches.append(Patch("add", basePath + (i,), copy[i]))
        for i in reversed(range(oldLength, newLength)):
            inversePatches.append(Patch("remove", basePath + (i,)))
    elif newLength < oldLength:
        # Truncate from the end, so every remove is the last item
        for i in reversed(range(newLength, oldLength)):
            patches.append(Patch("remove", basePath + (i,)))
        for i in range(newLength, oldLength):
            inversePatches.append(Patch("add", basePath + (i,), base[i]))


def _generateMappingPatches(state, basePath, patches, inversePatches):
    base, copy = state.base, state.copy
    for key, isAssigned in state.assigned.items():
        path = basePath + (key,)
        if not isAssigned:
            patches.append(Patch("remove", path))
            inversePatches.append(Patch("add", path, base[key]))
        elif key in base:
            if isSameValue(base[key], copy[key]):
                continue
            patches.append(Patch("replace", path, copy[key]))
            inversePatches.append(Patch("replace", path, base[key]))
        else:
            patches.append(Patch("add", path, copy[key]))
            inversePatches.append(Patch("remove", path))


def applyPatchesToDraft(draft, patches):
    """Apply `patches` in order to `draft`, mutating it, and return the
    result. A "replace" patch with an empty path replaces the entire value,
    in which case the new value is returned instead of the draft.
    """
    count = 0
    for patch in patches:
        patch = Patch.coerce(patch)
        if not patch.path and patch.op == "replace":
            draft = thaw(patch.value)
        else:
            patch.applyPatch(draft)
        count += 1
    logger.debug("applied %d patches", count)
    return draft


#
# Functions for querying and modifying nested objects, using path tuples to
# specify a location in the tree.
#
# The modifier functions follow the Patch operators and their semantics:
#
#   "add"       Add an item to the container. For a mapping this sets the
#               key, for a sequence it inserts at the index (or appends, if
#               the index is "-").
#   "replace"   Replace an existing item.
#   "remove"    Remove an existing item.
#

def getNestedItem(obj, path):
    for pathElement in path:
        obj = getItem(obj, pathElement)
    return obj


def addNestedItem(obj, path, value):
    obj = _getParent(obj, path)
    addItem(obj, path[-1], value)


def replaceNestedItem(obj, path, value):
    obj = _getParent(obj, path)
    replaceItem(obj, path[-1], value)


def removeNestedItem(obj, path):
    obj = _getParent(obj, path)
    removeItem(obj, path[-1])


def _getParent(obj, path):
    if not path:
        raise PatchPathError("the root value can only be replaced")
    try:
        return getNestedItem(obj, path[:-1])
    except (KeyError, IndexError, TypeError) as e:
        raise PatchPathError(f"cannot apply patch, path doesn't resolve: {list(path)}") from e


#
# Generic sub-item query and modification functions, specialized for
# sequences and mappings.
#

def _notAContainer(obj, key):
    raise PatchPathError(f"cannot resolve key {key!r} in {type(obj).__name__} value")


@singledispatch
def getItem(obj, key):
    _notAContainer(obj, key)


@singledispatch
def addItem(obj, key, value):
    _notAContainer(obj, key)


@singledispatch
def replaceItem(obj, key, value):
    _notAContainer(obj, key)


@singledispatch
def removeItem(obj, key):
    _notAContainer(obj, key)


@getItem.register(MutableSequence)
def _getItem_sequence(obj, index):
    return obj[_checkIndex(obj, index, len(obj) - 1)]


@addItem.register(MutableSequence)
def _addItem_sequence(obj, index, value):
    if index == APPEND:
        obj.append(value)
    else:
        obj.insert(_checkIndex(obj, index, len(obj)), value)


@replaceItem.register(MutableSequence)
def _replaceItem_sequence(obj, index, value):
    obj[_checkIndex(obj, index, len(obj) - 1)] = value


@removeItem.register(MutableSequence)
def _removeItem_sequence(obj, index):
    del obj[_checkIndex(obj, index, len(obj) - 1)]


def _checkIndex(obj, index, maxIndex):
    if not isinstance(index, int) or isinstance(index, bool) or not (0 <= index <= maxIndex):
        raise PatchPathError(f"invalid index {index!r} for sequence of length {len(obj)}")
    return index


@getItem.register(MutableMapping)
def _getItem_mapping(obj, key):
    if key not in obj:
        raise PatchPathError(f"key {key!r} not found")
    return obj[key]


@addItem.register(MutableMapping)
def _addItem_mapping(obj, key, value):
    obj[key] = value


@replaceItem.register(MutableMapping)
def _replaceItem_mapping(obj, key, value):
    obj[key] = value


@removeItem.register(MutableMapping)
def _removeItem_mapping(obj, key):
    if key not in obj:
        raise PatchPathError(f"key {key!r} not found")
    del obj[key]
