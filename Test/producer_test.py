import asyncio
import logging
import math
import pytest
from jdraft import (
    AlreadyFinalizedError,
    CyclicReferenceError,
    DoubleReturnError,
    InvalidArgumentError,
    Patch,
    Producer,
    RevokedDraftError,
    applyPatches,
    createDraft,
    finishDraft,
    isDraft,
    isFrozen,
    nothing,
    original,
    produce,
)


def _recordPatches():
    recorded = {}

    def listener(patches, inversePatches):
        recorded["patches"] = patches
        recorded["inversePatches"] = inversePatches

    return recorded, listener


class TestProduce:

    def test_module_docstring_example(self):
        base = {"todos": [{"title": "write docs", "done": False}], "user": {"name": "Just"}}

        def recipe(draft):
            draft["todos"][0]["done"] = True
            draft["todos"].append({"title": "release", "done": False})

        result = produce(base, recipe)
        assert result == {
            "todos": [{"title": "write docs", "done": True}, {"title": "release", "done": False}],
            "user": {"name": "Just"},
        }
        assert base == {"todos": [{"title": "write docs", "done": False}], "user": {"name": "Just"}}
        assert result["user"] is base["user"]

    def test_no_mutation_returns_base(self):
        base = {"a": [1, 2, {"b": 3}], "c": {"d": "e"}}

        def recipe(draft):
            draft["a"][2]["b"]
            draft["c"]["d"]

        assert produce(base, recipe) is base

    def test_returning_draft_returns_base(self):
        base = [1, 2, 3]
        assert produce(base, lambda draft: draft) is base

    def test_scenario_nested_replace(self):
        base = {"a": 1, "b": {"c": 2}}
        recorded, listener = _recordPatches()

        def recipe(draft):
            draft["b"]["c"] = 3

        result = produce(base, recipe, listener)
        assert result == {"a": 1, "b": {"c": 3}}
        assert result["b"] is not base["b"]
        assert base == {"a": 1, "b": {"c": 2}}
        assert recorded["patches"] == [Patch("replace", ("b", "c"), 3)]
        assert recorded["inversePatches"] == [Patch("replace", ("b", "c"), 2)]

    def test_scenario_list_truncate(self):
        base = [1, 2, 3]
        recorded, listener = _recordPatches()

        def recipe(draft):
            draft.pop()

        result = produce(base, recipe, listener)
        assert result == [1, 2]
        assert recorded["patches"] == [Patch("remove", (2,))]
        assert recorded["inversePatches"] == [Patch("add", (2,), 3)]
        assert applyPatches(base, recorded["patches"]) == [1, 2]
        assert applyPatches(result, recorded["inversePatches"]) == [1, 2, 3]

    def test_structural_sharing(self):
        base = {
            "a": {"x": [1], "y": {"deep": [1, 2]}},
            "b": {"z": [2]},
            "c": [{"q": 1}, {"q": 2}],
        }

        def recipe(draft):
            draft["a"]["x"].append(3)
            draft["c"][1]["q"] = 20

        result = produce(base, recipe)
        assert result["a"]["x"] == [1, 3]
        assert result["a"] is not base["a"]
        assert result["a"]["y"] is base["a"]["y"]
        assert result["b"] is base["b"]
        assert result["c"][0] is base["c"][0]
        assert result["c"][1] == {"q": 20}
        assert base["c"][1] == {"q": 2}

    def test_noop_assignment(self):
        base = {"a": 1, "b": "text", "c": None, "n": float("nan"), "l": [1]}
        recorded, listener = _recordPatches()

        def recipe(draft):
            draft["a"] = 1
            draft["b"] = "text"
            draft["c"] = None
            draft["n"] = float("nan")
            draft["l"] = draft["l"]

        assert produce(base, recipe, listener) is base
        assert recorded["patches"] == []
        assert recorded["inversePatches"] == []

    def test_noop_assignment_sequence(self):
        base = [1, "a", 2.5]

        def recipe(draft):
            draft[0] = 1
            draft[-1] = 2.5

        assert produce(base, recipe) is base

    def test_negative_zero_is_a_change(self):
        base = {"z": 0.0}
        recorded, listener = _recordPatches()

        def recipe(draft):
            draft["z"] = -0.0

        result = produce(base, recipe, listener)
        assert result is not base
        assert math.copysign(1.0, result["z"]) == -1.0
        assert len(recorded["patches"]) == 1
        assert recorded["patches"][0].op == "replace"

    def test_bool_is_not_int(self):
        base = {"flag": 1}
        result = produce(base, lambda draft: draft.update(flag=True))
        assert result is not base
        assert result["flag"] is True

    def test_add_then_delete_key(self):
        base = {"a": 1}
        recorded, listener = _recordPatches()

        def recipe(draft):
            draft["b"] = 2
            del draft["b"]

        result = produce(base, recipe, listener)
        assert result == base
        assert recorded["patches"] == []

    def test_replace_value(self):
        base = {"a": 1}
        recorded, listener = _recordPatches()
        result = produce(base, lambda draft: {"b": 2}, listener)
        assert result == {"b": 2}
        assert recorded["patches"] == [Patch("replace", (), {"b": 2})]
        assert recorded["inversePatches"] == [Patch("replace", (), base)]

    def test_replace_with_part_of_draft(self):
        base = {"a": {"b": [1, 2]}, "c": 3}
        result = produce(base, lambda draft: draft["a"])
        assert result is base["a"]

    def test_replace_with_new_value_containing_drafts(self):
        base = {"a": {"b": 1}, "c": [1]}
        result = produce(base, lambda draft: {"wrapped": [draft["a"], draft["c"]]})
        assert result == {"wrapped": [{"b": 1}, [1]]}
        assert result["wrapped"][0] is base["a"]
        assert result["wrapped"][1] is base["c"]
        assert not isDraft(result["wrapped"][0])

    def test_new_containers_with_drafts(self):
        base = {"a": {"b": 1}, "list": []}

        def recipe(draft):
            draft["list"].append({"ref": draft["a"]})

        result = produce(base, recipe)
        assert result["list"][0]["ref"] is base["a"]

    def test_return_nothing(self):
        assert produce({"a": 1}, lambda draft: nothing) is None
        assert produce(12, lambda value: nothing) is None

    def test_double_return(self):
        base = {"a": 1}
        captured = []

        def recipe(draft):
            captured.append(draft)
            draft["a"] = 2
            return {"a": 3}

        with pytest.raises(DoubleReturnError):
            produce(base, recipe)
        assert base == {"a": 1}
        with pytest.raises(RevokedDraftError):
            captured[0]["a"]

    def test_opaque_base(self):
        assert produce(3, lambda value: value + 1) == 4
        assert produce("abc", lambda value: None) == "abc"
        assert produce((1, 2), lambda value: value + (3,)) == (1, 2, 3)

    def test_extra_args_via_curried_producer(self):
        addItem = produce(lambda draft, item: draft.append(item))
        base = ["a"]
        assert addItem(base, "b") == ["a", "b"]
        assert base == ["a"]

    def test_curried_default_base(self):
        increment = produce(lambda draft, amount=1: draft.update(count=draft["count"] + amount),
                            {"count": 0})
        assert increment() == {"count": 1}
        assert increment({"count": 10}, 5) == {"count": 15}

    def test_invalid_arguments(self):
        with pytest.raises(InvalidArgumentError):
            produce({}, 123)
        with pytest.raises(InvalidArgumentError):
            produce({}, lambda draft: None, "not callable")
        with pytest.raises(TypeError):
            produce({}, None)

    def test_self_reference(self):
        base = {"a": 1}
        captured = []

        def recipe(draft):
            captured.append(draft)
            draft["self"] = draft

        with pytest.raises(CyclicReferenceError):
            produce(base, recipe)
        assert base == {"a": 1}
        with pytest.raises(RevokedDraftError):
            len(captured[0])

    def test_self_reference_sequence(self):
        def recipe(draft):
            draft.append(draft)

        with pytest.raises(CyclicReferenceError):
            produce([], recipe)

    def test_error_revokes_all_drafts(self):
        base = {"a": {"b": [1, 2]}}
        captured = []

        def recipe(draft):
            inner = draft["a"]["b"]
            captured.append(inner)
            inner.append(3)
            raise ValueError("test")

        with pytest.raises(ValueError):
            produce(base, recipe)
        assert base == {"a": {"b": [1, 2]}}
        with pytest.raises(RevokedDraftError):
            captured[0][0]
        assert repr(captured[0]) == "<revoked DraftSequence>"

    def test_drafts_revoked_after_success(self):
        captured = []
        produce({"a": {}}, lambda draft: captured.append(draft["a"]))
        with pytest.raises(RevokedDraftError):
            captured[0]["x"] = 1

    def test_original(self):
        base = {"a": {"b": 1}}

        def recipe(draft):
            draft["a"]["b"] = 2
            assert original(draft["a"]) is base["a"]
            assert original(draft) is base

        produce(base, recipe)
        assert original({"a": 1}) is None

    def test_error_log(self, caplog):
        caplog.set_level(logging.DEBUG, logger="jdraft.producer")

        def recipe(draft):
            raise KeyError("x")

        with pytest.raises(KeyError):
            produce({}, recipe)
        assert "revoking" in caplog.text


class TestNested:

    def test_nested_produce(self):
        base = {"outer": {"count": 0}, "inner": {"count": 0}}

        def recipe(draft):
            draft["outer"]["count"] += 1
            draft["inner"] = produce(draft["inner"], lambda d: d.update(count=d["count"] + 10))

        result = produce(base, recipe)
        assert result == {"outer": {"count": 1}, "inner": {"count": 10}}

    def test_foreign_draft_prevents_freeze(self):
        base = {"child": {"x": 1}, "holder": None}

        def recipe(draft):
            child = draft["child"]
            inner = produce({"ref": None}, lambda d: d.update(ref=child))
            assert isDraft(inner["ref"])
            assert not isFrozen(inner)
            draft["holder"] = inner

        result = produce(base, recipe)
        assert result["holder"]["ref"] is base["child"]
        assert not isDraft(result["holder"]["ref"])


class TestAsync:

    @pytest.mark.asyncio
    async def test_async_recipe(self):
        base = {"a": 1, "b": {"c": 2}}
        recorded, listener = _recordPatches()

        async def recipe(draft):
            await asyncio.sleep(0)
            draft["b"]["c"] = 3

        result = await produce(base, recipe, listener)
        assert result == {"a": 1, "b": {"c": 3}}
        assert base == {"a": 1, "b": {"c": 2}}
        assert recorded["patches"] == [Patch("replace", ("b", "c"), 3)]

    @pytest.mark.asyncio
    async def test_async_failure(self):
        base = {"a": 1}
        captured = []

        async def recipe(draft):
            captured.append(draft)
            draft["a"] = 2
            await asyncio.sleep(0)
            raise ValueError("test")

        with pytest.raises(ValueError):
            await produce(base, recipe)
        assert base == {"a": 1}
        with pytest.raises(RevokedDraftError):
            captured[0]["a"]

    @pytest.mark.asyncio
    async def test_async_double_return(self):
        async def recipe(draft):
            draft["a"] = 2
            return {"b": 1}

        with pytest.raises(DoubleReturnError):
            await produce({"a": 1}, recipe)

    @pytest.mark.asyncio
    async def test_async_opaque_base(self):
        async def recipe(value):
            return value * 2

        assert await produce(21, recipe) == 42

    @pytest.mark.asyncio
    async def test_concurrent_updates(self):
        async def slowIncrement(draft):
            await asyncio.sleep(0)
            draft["count"] += 1

        results = await asyncio.gather(
            produce({"count": 0}, slowIncrement),
            produce({"count": 10}, slowIncrement),
        )
        assert results == [{"count": 1}, {"count": 11}]


class TestCreateDraft:

    def test_create_and_finish(self):
        base = {"a": 1, "b": [1]}
        draft = createDraft(base)
        draft["a"] = 2
        draft["b"].append(2)
        result = finishDraft(draft)
        assert result == {"a": 2, "b": [1, 2]}
        assert base == {"a": 1, "b": [1]}

    def test_finish_unmodified(self):
        base = [1, 2]
        draft = createDraft(base)
        assert finishDraft(draft) is base

    def test_finish_twice(self):
        draft = createDraft({"a": 1})
        draft["a"] = 2
        finishDraft(draft)
        with pytest.raises(AlreadyFinalizedError):
            finishDraft(draft)
        unmodified = createDraft({"a": 1})
        finishDraft(unmodified)
        with pytest.raises(AlreadyFinalizedError):
            finishDraft(unmodified)

    def test_finish_non_draft(self):
        with pytest.raises(InvalidArgumentError):
            finishDraft({"a": 1})

    def test_finish_draft_from_produce(self):
        def recipe(draft):
            finishDraft(draft)

        with pytest.raises(InvalidArgumentError):
            produce({"a": 1}, recipe)

    def test_create_from_opaque(self):
        with pytest.raises(InvalidArgumentError):
            createDraft(12)
        with pytest.raises(TypeError):
            createDraft((1, 2))

    def test_finish_with_patches(self):
        base = {"a": 1}
        recorded, listener = _recordPatches()
        draft = createDraft(base)
        draft["b"] = 2
        del draft["a"]
        result = finishDraft(draft, listener)
        assert result == {"b": 2}
        assert recorded["patches"] == [Patch("add", ("b",), 2), Patch("remove", ("a",))]
        assert recorded["inversePatches"] == [Patch("remove", ("b",)), Patch("add", ("a",), 1)]

    def test_interleaved_drafts(self):
        first = createDraft({"n": 1})
        second = createDraft({"n": 2})
        first["n"] = 10
        second["n"] = 20
        assert finishDraft(first) == {"n": 10}
        assert finishDraft(second) == {"n": 20}


class TestConfig:

    def test_auto_freeze(self):
        base = {"a": [1], "b": {"c": 1}}
        result = produce(base, lambda draft: draft["a"].append(2))
        assert isFrozen(result)
        assert isFrozen(result["a"])
        with pytest.raises(TypeError):
            result["a"].append(3)
        with pytest.raises(TypeError):
            result["x"] = 1
        # untouched subtrees are shared, not frozen
        assert result["b"] is base["b"]

    def test_frozen_result_as_base(self):
        first = produce({"a": [1]}, lambda draft: draft["a"].append(2))
        second = produce(first, lambda draft: draft["a"].append(3))
        assert first == {"a": [1, 2]}
        assert second == {"a": [1, 2, 3]}

    def test_no_auto_freeze(self):
        producer = Producer(autoFreeze=False)
        result = producer.produce({"a": [1]}, lambda draft: draft["a"].append(2))
        assert type(result) is dict
        assert type(result["a"]) is list
        result["a"].append(3)

    def test_set_auto_freeze(self):
        producer = Producer()
        producer.setAutoFreeze(False)
        result = producer.produce([1], lambda draft: draft.append(2))
        assert not isFrozen(result)

    def test_hooks(self):
        assignLog = []
        deleteLog = []
        copyLog = []
        producer = Producer(
            autoFreeze=False,
            onAssign=lambda state, key, value: assignLog.append((key, value)),
            onDelete=lambda state, key: deleteLog.append(key),
            onCopy=lambda state: copyLog.append(state.base),
        )
        base = {"a": 1, "b": 2, "c": {"d": 1}, "e": {"f": 1}}

        def recipe(draft):
            draft["a"] = 10
            del draft["b"]
            draft["c"]["d"] = 2
            draft["e"]["f"]

        producer.produce(base, recipe)
        assert assignLog == [("a", 10), ("d", 2), ("c", {"d": 2})]
        assert deleteLog == ["b"]
        assert copyLog == [base["c"], base]
        assert copyLog[-1] is base
