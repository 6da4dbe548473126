from dataclasses import dataclass, replace
import inspect
import logging
import typing

from .common import isDraftable, thaw
from .drafts import createDraftState, getDraftState, isDraft
from .errors import AlreadyFinalizedError, DoubleReturnError, InvalidArgumentError
from .finalizer import Finalizer
from .patches import Patch, applyPatchesToDraft
from .scope import ScopeManager


logger = logging.getLogger(__name__)


class _Nothing:

    def __repr__(self):
        return "nothing"


nothing = _Nothing()  # return this from a recipe to produce None


@dataclass
class ProducerConfig:

    """Configuration for a Producer.

    - autoFreeze: freeze every new container in a result, so it can't be
      modified afterwards
    - onAssign: called as onAssign(state, key, value) for every changed
      property of a modified draft
    - onDelete: called as onDelete(state, key) for every deleted key
    - onCopy: called as onCopy(state) once for every modified draft
    """

    autoFreeze: bool = True
    onAssign: typing.Optional[typing.Callable] = None
    onDelete: typing.Optional[typing.Callable] = None
    onCopy: typing.Optional[typing.Callable] = None


class Producer:

    """A Producer creates new versions of an immutable value tree from
    recipes that mutate a draft of it.

        >>> producer = Producer(autoFreeze=False)
        >>> base = {"a": 1, "b": {"c": 2}, "d": [1, 2]}
        >>> result = producer.produce(base, lambda draft: draft["b"].update(c=3))
        >>> result
        {'a': 1, 'b': {'c': 3}, 'd': [1, 2]}
        >>> result["d"] is base["d"]
        True
        >>> base
        {'a': 1, 'b': {'c': 2}, 'd': [1, 2]}

    Keyword arguments are ProducerConfig fields.
    """

    def __init__(self, config=None, **overrides):
        if config is None:
            config = ProducerConfig()
        self.config = replace(config, **overrides)
        self.scopes = ScopeManager()
        self.finalizer = Finalizer(self.config)

    def setAutoFreeze(self, value):
        self.config.autoFreeze = bool(value)

    def produce(self, base, recipe=None, patchListener=None):
        """Run `recipe(draft)` against a draft of `base` and return the new
        value. `patchListener`, if given, is called with the list of patches
        and the list of inverse patches.

        If the recipe returns an awaitable, a coroutine is returned instead,
        which awaits the recipe and then returns the new value.

        If `base` is callable and `recipe` isn't, a curried producer is
        returned: produce(recipe, defaultBase) returns a function taking
        (base=defaultBase, *args), that calls recipe(draft, *args).
        """
        if callable(base) and not callable(recipe):
            return self._curry(base, recipe)
        if not callable(recipe):
            raise InvalidArgumentError("the recipe passed to produce() must be callable")
        if patchListener is not None and not callable(patchListener):
            raise InvalidArgumentError("the patch listener passed to produce() must be callable")
        return self._produce(base, recipe, (), patchListener)

    def _curry(self, recipe, defaultBase):
        def curriedProducer(base=defaultBase, *args):
            return self._produce(base, recipe, args, None)
        return curriedProducer

    def _produce(self, base, recipe, args, patchListener):
        if not isDraftable(base):
            result = recipe(base, *args)
            if inspect.isawaitable(result):
                return self._settleOpaque(base, result)
            return _opaqueResult(base, result)

        scope = self.scopes.enter()
        rootState = createDraftState(base, parent=None, scope=scope)
        try:
            result = recipe(rootState.draft, *args)
        except BaseException:
            logger.debug("recipe failed, revoking %r", scope)
            self.scopes.revoke(scope)
            raise
        self.scopes.leave(scope)

        if inspect.isawaitable(result):
            return self._produceAsync(result, scope, patchListener)
        self.scopes.attachPatchRecording(scope, patchListener)
        return self._processResult(result, scope)

    async def _settleOpaque(self, base, awaitable):
        return _opaqueResult(base, await awaitable)

    async def _produceAsync(self, awaitable, scope, patchListener):
        try:
            result = await awaitable
        except BaseException:
            logger.debug("async recipe failed, revoking %r", scope)
            self.scopes.revoke(scope)
            raise
        self.scopes.attachPatchRecording(scope, patchListener)
        return self._processResult(result, scope)

    def _processResult(self, result, scope):
        try:
            result = self._finalizeResult(result, scope)
        finally:
            self.scopes.revoke(scope)
        if scope.patches is not None:
            scope.patchListener(scope.patches, scope.inversePatches)
        return None if result is nothing else result

    def _finalizeResult(self, result, scope):
        rootState = scope.rootState
        isReplaced = result is not None and result is not rootState.draft
        if not isReplaced:
            return self.finalizer.finalize(rootState.draft, (), scope)
        if rootState.modified:
            raise DoubleReturnError(
                "a recipe returned a new value *and* modified its draft. "
                "Either return a new value *or* modify the draft.")
        logger.debug("recipe replaced the entire value")
        if isDraftable(result):
            # The result may contain (or be) a part of the draft
            result = self.finalizer.finalize(result, None, scope)
        if scope.patches is not None:
            scope.patches.append(Patch("replace", (), None if result is nothing else result))
            scope.inversePatches.append(Patch("replace", (), rootState.base))
        return result

    def createDraft(self, base):
        """Return a draft for `base`, to be modified directly by the caller
        and turned into a new value by finishDraft().
        """
        if not isDraftable(base):
            raise InvalidArgumentError(
                f"createDraft() needs a mutable sequence or mapping, not {type(base).__name__}")
        scope = self.scopes.enter()
        state = createDraftState(base, parent=None, scope=scope)
        self.scopes.leave(scope)
        state.customDraft = True
        return state.draft

    def finishDraft(self, draft, patchListener=None):
        """Finalize a draft created by createDraft() and return the new value."""
        state = getDraftState(draft)
        if state is None:
            raise InvalidArgumentError("finishDraft() needs a draft returned by createDraft()")
        if not state.customDraft:
            raise InvalidArgumentError("the draft passed to finishDraft() was not created by createDraft()")
        if state.finalized or state.revoked:
            raise AlreadyFinalizedError("the draft passed to finishDraft() has already been finished")
        if patchListener is not None and not callable(patchListener):
            raise InvalidArgumentError("the patch listener passed to finishDraft() must be callable")
        scope = state.scope
        self.scopes.attachPatchRecording(scope, patchListener)
        return self._processResult(None, scope)

    def applyPatches(self, base, patches):
        """Apply `patches` to `base`. If `base` is a draft, it is modified in
        place and returned; otherwise the new value is returned and `base` is
        left untouched.
        """
        patches = [Patch.coerce(patch) for patch in patches]
        if isDraft(base):
            return applyPatchesToDraft(base, patches)

        # Everything before the last replacement of the entire value is moot
        for i in reversed(range(len(patches))):
            patch = patches[i]
            if not patch.path and patch.op == "replace":
                base = thaw(patch.value)
                patches = patches[i + 1:]
                break

        return self.produce(base, lambda draft: applyPatchesToDraft(draft, patches))


def _opaqueResult(base, result):
    # Recipes for values that can't be drafted must return the new value
    if result is None:
        return base
    return None if result is nothing else result
