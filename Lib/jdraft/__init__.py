"""# jdraft

A general purpose library to create new versions of immutable, JSON-like data
trees by writing ordinary mutations against a temporary draft.

The main idea is that if one limits oneself to values that can be viewed as
JSON-like data structures (ie. are composed of strings, numbers, lists and
dictionaries) it is possible to describe an update in a completely generic
way: a recipe function receives a draft object that looks like the original
value and can be modified freely. Once the recipe is done, the draft is turned
into a new value, while the original value stays untouched.

The new value shares every subtree the recipe didn't touch with the original
value, so only the modified "spine" of the tree gets copied. Here is an
example:

    >>> base = {"todos": [{"title": "write docs", "done": False}], "user": {"name": "Just"}}
    >>> def recipe(draft):
    ...     draft["todos"][0]["done"] = True
    ...     draft["todos"].append({"title": "release", "done": False})
    ...
    >>> result = produce(base, recipe)
    >>> result["todos"][0]["done"]
    True
    >>> base["todos"][0]["done"]
    False
    >>> result["user"] is base["user"]
    True

Recipes that don't modify anything return the original value itself:

    >>> produce(base, lambda draft: None) is base
    True

Passing a patch listener gets the changes as patches, plus the patches needed
to revert them:

    >>> recorded = []
    >>> result = produce(base, lambda d: d["user"].update(name="Guido"),
    ...                  lambda p, inv: recorded.append((p, inv)))
    >>> recorded[0][0]
    [Patch(op='replace', path=('user', 'name'), value='Guido')]
    >>> applyPatches(result, recorded[0][1]) == base
    True

By default the new containers in a result are frozen: FrozenList and
FrozenDict are list and dict subclasses that refuse to be modified.

Besides lists and dictionaries, any MutableSequence or MutableMapping can be
drafted. Custom container types can be registered via the
`registerDraftable()` function. Any other value is treated as opaque and is
never drafted.

### Acknowledgments

The patch format is inspired by [jsonpatch](http://jsonpatch.com/).
"""

from .common import DraftKind, FrozenDict, FrozenList, isDraftable, isFrozen, registerDraftable
from .drafts import isDraft, original
from .errors import (
    AlreadyFinalizedError,
    CyclicReferenceError,
    DoubleReturnError,
    DraftError,
    InvalidArgumentError,
    PatchError,
    PatchPathError,
    RevokedDraftError,
    UnknownPatchOpError,
)
from .patches import Patch
from .producer import Producer, ProducerConfig, nothing

__all__ = [
    "AlreadyFinalizedError",
    "CyclicReferenceError",
    "DoubleReturnError",
    "DraftError",
    "DraftKind",
    "FrozenDict",
    "FrozenList",
    "InvalidArgumentError",
    "Patch",
    "PatchError",
    "PatchPathError",
    "Producer",
    "ProducerConfig",
    "RevokedDraftError",
    "UnknownPatchOpError",
    "applyPatches",
    "createDraft",
    "finishDraft",
    "isDraft",
    "isDraftable",
    "isFrozen",
    "nothing",
    "original",
    "produce",
    "registerDraftable",
    "setAutoFreeze",
]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "<unknown>"


_producer = Producer()

produce = _producer.produce
createDraft = _producer.createDraft
finishDraft = _producer.finishDraft
applyPatches = _producer.applyPatches
setAutoFreeze = _producer.setAutoFreeze
