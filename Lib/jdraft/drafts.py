from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence

from .common import MISSING, DraftKind, draftKind, isDraftable, isSameValue, shallowCopy
from .errors import CyclicReferenceError, RevokedDraftError


class DraftState:

    """Per-node bookkeeping for a draft.

    - base: the original value, never modified
    - copy: a shallow copy of base, created on the first mutation; it exists
      if and only if `modified` is True
    - assigned: maps keys to True (added or changed) or False (deleted);
      keys that were never touched are absent
    - drafts: child drafts created while this node was still unmodified.
      Once modified, child drafts are stored in `copy` directly.
    """

    def __init__(self, base, kind, parent, scope):
        self.base = base
        self.kind = kind
        self.parent = parent
        self.scope = scope
        self.draft = None
        self.copy = None
        self.modified = False
        self.finalized = False
        self.revoked = False
        self.customDraft = False
        self.assigned = {}
        self.drafts = {}
        self._baseIds = None

    def __repr__(self):
        return (f"{self.__class__.__name__}({self.kind.name}, modified={self.modified}, "
                f"finalized={self.finalized}, revoked={self.revoked})")

    def source(self):
        return self.copy if self.modified else self.base

    def peek(self, key):
        """Return the base value at `key`, or MISSING."""
        if self.kind is DraftKind.SEQUENCE:
            return self.base[key] if 0 <= key < len(self.base) else MISSING
        return self.base[key] if key in self.base else MISSING

    def ensureUsable(self):
        if self.revoked:
            raise RevokedDraftError(
                "cannot use a draft after the update that created it has finished")

    def revoke(self):
        self.revoked = True
        self.drafts = {}

    def markChanged(self):
        if self.modified:
            return
        self.modified = True
        self.copy = shallowCopy(self.base)
        for key, child in self.drafts.items():
            self.copy[key] = child.draft
        self.drafts = {}
        if self.parent is not None:
            self.parent.markChanged()

    def _ownsBaseValue(self, key, value):
        # Once modified, only values that came from the base get drafted;
        # values assigned by the recipe are returned as they are.
        if self.kind is DraftKind.SEQUENCE:
            if self._baseIds is None:
                self._baseIds = {id(item) for item in self.base}
            return id(value) in self._baseIds
        return value is self.peek(key)

    # Accessor interface

    def get(self, key):
        self.ensureUsable()
        if not self.modified and key in self.drafts:
            return self.drafts[key].draft
        value = self.source()[key]
        if self.finalized or isDraft(value) or not isDraftable(value):
            return value
        if value is self.base:
            return value
        if self.modified and not self._ownsBaseValue(key, value):
            return value
        child = createDraftState(value, parent=self, scope=self.scope)
        if self.modified:
            self.copy[key] = child.draft
        else:
            self.drafts[key] = child
        return child.draft

    def set(self, key, value):
        self.ensureUsable()
        if value is self.draft:
            raise CyclicReferenceError("a draft can't be assigned as a child of itself")
        if not self.modified:
            if self._isUnchanged(key, value):
                return
            self.markChanged()
        self.assigned[key] = True
        self.copy[key] = value

    def _isUnchanged(self, key, value):
        child = self.drafts.get(key)
        if child is not None and value is child.draft:
            return True
        baseValue = self.peek(key)
        return baseValue is not MISSING and isSameValue(baseValue, value)

    def delete(self, key):
        self.ensureUsable()
        if self.kind is DraftKind.SEQUENCE:
            self.markChanged()
            del self.copy[key]
            self._markShifted(key)
            return
        if key not in self.source():
            raise KeyError(key)
        if self.peek(key) is not MISSING:
            self.markChanged()
            self.assigned[key] = False
        else:
            # the key was added during this update
            self.assigned.pop(key, None)
        del self.copy[key]

    def insert(self, index, value):
        self.ensureUsable()
        assert self.kind is DraftKind.SEQUENCE
        if value is self.draft:
            raise CyclicReferenceError("a draft can't be inserted into itself")
        self.markChanged()
        self.copy.insert(index, value)
        self._markShifted(index)

    def _markShifted(self, index):
        for i in range(index, len(self.copy)):
            self.assigned[i] = True

    def has(self, key):
        self.ensureUsable()
        if self.kind is DraftKind.SEQUENCE:
            return 0 <= key < len(self.source())
        return key in self.source()

    def keys(self):
        self.ensureUsable()
        if self.kind is DraftKind.SEQUENCE:
            return list(range(len(self.source())))
        return list(self.source())

    def length(self):
        self.ensureUsable()
        return len(self.source())


# Draft classes

class DraftBase:

    def __init__(self, state):
        self._draftState = state

    def __repr__(self):
        state = self._draftState
        if state.revoked:
            return f"<revoked {self.__class__.__name__}>"
        return f"{self.__class__.__name__}({state.source()!r})"


class DraftSequence(DraftBase, MutableSequence):

    def __len__(self):
        return self._draftState.length()

    def _normalizeIndex(self, index):
        numItems = len(self)
        if index < 0:
            index += numItems
        if not (0 <= index < numItems):
            raise IndexError("sequence index out of range")
        return index

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        index = self._normalizeIndex(index)
        return self._draftState.get(index)

    def __setitem__(self, index, item):
        if isinstance(index, slice):
            self._setSlice(index, item)
            return
        index = self._normalizeIndex(index)
        self._draftState.set(index, item)

    def __delitem__(self, index):
        if isinstance(index, slice):
            for i in sorted(range(*index.indices(len(self))), reverse=True):
                self._draftState.delete(i)
            return
        index = self._normalizeIndex(index)
        self._draftState.delete(index)

    def _setSlice(self, index, items):
        items = list(items)
        start, stop, step = index.indices(len(self))
        if step == 1:
            del self[start:stop]
            for offset, item in enumerate(items):
                self.insert(start + offset, item)
            return
        indices = range(start, stop, step)
        if len(indices) != len(items):
            raise ValueError(f"attempt to assign sequence of size {len(items)} "
                             f"to extended slice of size {len(indices)}")
        for i, item in zip(indices, items):
            self._draftState.set(i, item)

    def insert(self, index, item):
        numItems = len(self)
        if index >= numItems:
            index = numItems
        elif index < 0:
            index = max(0, index + numItems)
        self._draftState.insert(index, item)

    def __eq__(self, other):
        if not isinstance(other, Sequence) or isinstance(other, (str, bytes)):
            return NotImplemented
        return list(self) == list(other)

    __hash__ = None


class DraftMapping(DraftBase, MutableMapping):

    def __len__(self):
        return self._draftState.length()

    def __iter__(self):
        return iter(self._draftState.keys())

    def __contains__(self, key):
        return self._draftState.has(key)

    def __getitem__(self, key):
        return self._draftState.get(key)

    def __setitem__(self, key, value):
        self._draftState.set(key, value)

    def __delitem__(self, key):
        self._draftState.delete(key)

    def __eq__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        return dict(self.items()) == dict(other.items())

    __hash__ = None


_draftClasses = {
    DraftKind.SEQUENCE: DraftSequence,
    DraftKind.MAPPING: DraftMapping,
}


def createDraftState(base, parent, scope):
    """Wrap `base` in a new draft owned by `scope` and return its DraftState.
    `base` must be draftable.
    """
    kind = draftKind(base)
    state = DraftState(base, kind, parent, scope)
    state.draft = _draftClasses[kind](state)
    scope.addDraftState(state)
    return state


def getDraftState(value):
    if isinstance(value, DraftBase):
        return value._draftState
    return None


def isDraft(value):
    return isinstance(value, DraftBase)


def original(draft):
    """Return the base value a draft was created for."""
    state = getDraftState(draft)
    if state is None:
        return None
    return state.base


# Drafts copy to plain containers, for when a draft is used as the base of a
# nested update.

@shallowCopy.register(DraftSequence)
def _shallowCopy_draftSequence(value):
    return list(value)


@shallowCopy.register(DraftMapping)
def _shallowCopy_draftMapping(value):
    return dict(value.items())
