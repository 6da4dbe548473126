from .common import DraftKind, draftKind, freeze, isFrozen, isSameValue
from .drafts import getDraftState, isDraft
from .errors import CyclicReferenceError
from .patches import generatePatches


class Finalizer:

    """The Finalizer turns the draft tree of a Scope into the result value.
    Unmodified drafts resolve to their base value, modified drafts to their
    (optionally frozen) copy, in which all child drafts have been resolved
    recursively. Patches are generated along the way if the scope records
    them.
    """

    def __init__(self, config):
        self.config = config

    def finalize(self, value, path, scope):
        """Return the finalized version of `value`. `path` is the location of
        `value` in the result tree, or None if no patches should be generated
        for it.
        """
        state = getDraftState(value)
        if state is None:
            if isFrozen(value):
                return value
            return self._finalizeTree(value, None, None, scope)
        if state.scope is not scope:
            # Never finalize drafts owned by another scope
            scope.canAutoFreeze = False
            return value
        if not state.modified:
            return state.base
        if not state.finalized:
            state.finalized = True
            self._finalizeTree(state.copy, state, path, scope)
            config = self.config
            if config.onDelete is not None:
                for key, isAssigned in list(state.assigned.items()):
                    if not isAssigned:
                        config.onDelete(state, key)
            if config.onCopy is not None:
                config.onCopy(state)
            # All descendants have been finalized at this point, so
            # scope.canAutoFreeze is accurate.
            if config.autoFreeze and scope.canAutoFreeze:
                state.copy = freeze(state.copy)
            if path is not None and scope.patches is not None:
                generatePatches(state, path, scope.patches, scope.inversePatches)
        return state.copy

    def _finalizeTree(self, root, state, rootPath, scope):
        # Resolve all drafts in `root`, in place. If `state` is given, `root`
        # is its copy; otherwise `root` is a plain value that may contain
        # drafts, for example a new container built by the recipe.
        needPatches = rootPath is not None and scope.patches is not None

        def finalizeProperty(key, value, parent):
            if value is parent:
                raise CyclicReferenceError("a value can't contain itself")
            isDraftProp = state is not None and parent is root
            if isDraft(value):
                if isDraftProp and needPatches and not state.assigned.get(key):
                    path = rootPath + (key,)
                else:
                    path = None
                value = self.finalize(value, path, scope)
                if isDraft(value):
                    scope.canAutoFreeze = False
                parent[key] = value
                # Unchanged drafts are never passed to onAssign
                if isDraftProp and value is state.peek(key):
                    return
            elif isDraftProp and isSameValue(value, state.peek(key)):
                return
            elif not isFrozen(value):
                # Search new objects for drafts. Frozen values never contain any.
                for childKey, childValue in _items(value):
                    finalizeProperty(childKey, childValue, value)
            if isDraftProp and self.config.onAssign is not None:
                self.config.onAssign(state, key, value)

        for key, value in _items(root):
            finalizeProperty(key, value, root)
        return root


def _items(value):
    kind = draftKind(value)
    if kind is DraftKind.SEQUENCE:
        return list(enumerate(value))
    elif kind is DraftKind.MAPPING:
        return list(value.items())
    return []

