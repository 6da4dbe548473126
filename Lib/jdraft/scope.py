from contextvars import ContextVar


_currentScope = ContextVar("jdraft_currentScope", default=None)


class Scope:

    """A Scope is the bookkeeping unit for one update. It owns every
    DraftState created during that update (index 0 is the root draft), and
    optionally collects patches.
    """

    def __init__(self, parent=None):
        self.parent = parent
        self.drafts = []
        self.canAutoFreeze = True
        self.patches = None
        self.inversePatches = None
        self.patchListener = None
        self.revoked = False

    def __repr__(self):
        return f"{self.__class__.__name__}(drafts={len(self.drafts)}, revoked={self.revoked})"

    @property
    def rootState(self):
        return self.drafts[0]

    def addDraftState(self, state):
        assert not self.revoked, "can't add a draft to a revoked scope"
        self.drafts.append(state)


class ScopeManager:

    """The ScopeManager maintains the stack of in-flight updates. The stack
    lives in a context variable, so every thread and every asyncio task sees
    its own "current" scope, and nested updates push and pop in strict
    last-in-first-out order.

        >>> scopes = ScopeManager()
        >>> outer = scopes.enter()
        >>> inner = scopes.enter()
        >>> inner.parent is outer
        True
        >>> scopes.leave(inner)
        >>> scopes.current is outer
        True
        >>> scopes.revoke(outer)
        >>> scopes.current is None
        True
    """

    @property
    def current(self):
        return _currentScope.get()

    def enter(self, parent=None):
        """Push a new Scope and return it. If no parent is given, the current
        scope (if any) becomes the parent.
        """
        if parent is None:
            parent = self.current
        scope = Scope(parent)
        _currentScope.set(scope)
        return scope

    def leave(self, scope):
        """Make the parent of `scope` current again. The drafts of `scope`
        stay usable, so it can still be finalized later.
        """
        if self.current is scope:
            _currentScope.set(scope.parent)

    def revoke(self, scope):
        """Leave `scope` and invalidate every draft it owns. Any further use
        of those drafts raises RevokedDraftError.
        """
        self.leave(scope)
        if scope.revoked:
            return
        scope.revoked = True
        for state in scope.drafts:
            state.revoke()

    def attachPatchRecording(self, scope, patchListener):
        """Set up `scope` to record patches, if a listener was given."""
        if patchListener is None:
            return
        scope.patches = []
        scope.inversePatches = []
        scope.patchListener = patchListener
