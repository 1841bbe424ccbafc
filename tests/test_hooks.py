"""
Tests for per-instance lifecycle hooks.

Covers:
- Registration shapes (mapping, lists, names)
- Ordering of before/after/around chains
- Generator around hooks
- Failure wrapping
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from folio.faults import HookFault, HookRegistrationFault, QueryFault
from folio.models import Model
from folio.models.hooks import HookRegistry


# ── Helpers ──────────────────────────────────────────────────────────────────


def fresh_model(name, configure=None, attrs=None):
    """
    Create a fresh Model subclass dynamically for testing.
    Uses unique names to avoid registry conflicts.
    """
    attrs = dict(attrs or {})
    if configure is not None:
        attrs["configure"] = configure
    unique_name = f"{name}_{uuid.uuid4().hex[:8]}"
    return type(unique_name, (Model,), attrs)


def mock_collection(insert_id="id-1"):
    collection = MagicMock()
    collection.name = "mock"
    collection.insert = AsyncMock(return_value={"_id": insert_id})
    collection.update_by_id = AsyncMock(return_value={"matched_count": 1})
    collection.remove = AsyncMock(return_value={"deleted_count": 1})
    return collection


def use_collection(monkeypatch, model_cls, collection):
    monkeypatch.setattr(model_cls, "collection", classmethod(lambda cls: collection))


# ============================================================================
# Registration
# ============================================================================


class TestRegistration:

    def test_before_and_after_append(self):
        def a(m): pass
        def b(m): pass

        post = fresh_model("Post")()
        post.before("create", a)
        post.before("create", b)
        post.after("create", b)
        assert post.hooks.chain("before", "create") == [a, b]
        assert post.hooks.chain("after", "create") == [b]

    def test_around_appends_before_and_prepends_after(self):
        def x(m): pass
        def y(m): pass

        post = fresh_model("Post")()
        post.around("save", x)
        post.around("save", y)
        assert post.hooks.chain("before", "save") == [x, y]
        assert post.hooks.chain("after", "save") == [y, x]

    def test_mapping_form(self):
        def a(m): pass
        def b(m): pass

        post = fresh_model("Post")()
        post.hook({"before:update": a, "after:remove": [a, b]})
        assert post.hooks.chain("before", "update") == [a]
        assert post.hooks.chain("after", "remove") == [a, b]

    def test_list_form(self):
        def a(m): pass
        def b(m): pass

        post = fresh_model("Post")()
        post.hook("before", "save", [a, b])
        assert post.hooks.chain("before", "save") == [a, b]

    def test_name_resolved_at_registration(self):
        def configure(self):
            self.before("save", "check")

        def check(self):
            pass

        post = fresh_model("Post", configure, {"check": check})()
        (hook,) = post.hooks.chain("before", "save")
        assert hook == post.check

    def test_unknown_phase_rejected(self):
        post = fresh_model("Post")()
        with pytest.raises(HookRegistrationFault):
            post.hook("during", "save", lambda m: None)

    def test_unknown_action_rejected(self):
        post = fresh_model("Post")()
        with pytest.raises(HookRegistrationFault):
            post.before("publish", lambda m: None)

    def test_non_callable_rejected(self):
        post = fresh_model("Post")()
        with pytest.raises(HookRegistrationFault):
            post.before("save", 42)

    def test_each_instance_has_own_registry(self):
        def configure(self):
            self.before("save", lambda m: None)

        Post = fresh_model("Post", configure)
        a, b = Post(), Post()
        assert a.hooks is not b.hooks
        assert len(a.hooks.chain("before", "save")) == 1
        a.before("save", lambda m: None)
        assert len(b.hooks.chain("before", "save")) == 1

    def test_chain_unknown_pair(self):
        registry = HookRegistry(fresh_model("Post")())
        with pytest.raises(HookRegistrationFault):
            registry.chain("before", "publish")


# ============================================================================
# Execution order
# ============================================================================


class TestOrdering:

    @pytest.mark.asyncio
    async def test_before_hooks_run_in_registration_order(self):
        log = []

        async def a(m):
            log.append("a-start")
            log.append("a-end")

        def b(m):
            log.append("b")

        post = fresh_model("Post")()
        post.before("create", a)
        post.before("create", b)
        await post.run_hooks("before", "create")
        assert log == ["a-start", "a-end", "b"]

    @pytest.mark.asyncio
    async def test_around_nesting_over_save(self, monkeypatch):
        log = []

        def configure(self):
            self.around("save", lambda m: log.append("X"))
            self.around("save", lambda m: log.append("Y"))
            self.before("create", lambda m: log.append("create"))

        Post = fresh_model("Post", configure)
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        await Post().save()
        assert log == ["X", "Y", "create", "Y", "X"]

    @pytest.mark.asyncio
    async def test_bound_method_called_without_arguments(self):
        seen = []

        def configure(self):
            self.before("save", self.mark)
            self.before("save", lambda m: seen.append(("plain", m)))

        def mark(self):
            seen.append(("bound", self))

        post = fresh_model("Post", configure, {"mark": mark})()
        await post.run_hooks("before", "save")
        assert seen == [("bound", post), ("plain", post)]

    @pytest.mark.asyncio
    async def test_lifecycle_hook_order(self, monkeypatch):
        log = []

        def configure(self):
            for when in ("before", "after"):
                for action in ("save", "create"):
                    self.hook(when, action, lambda m, tag=f"{when}:{action}": log.append(tag))

        Post = fresh_model("Post", configure)
        collection = mock_collection()
        collection.insert.side_effect = lambda doc: log.append("insert") or {"_id": "1"}
        use_collection(monkeypatch, Post, collection)

        await Post().save()
        assert log == ["before:save", "before:create", "insert", "after:create", "after:save"]


# ============================================================================
# Generator around hooks
# ============================================================================


class TestAroundGenerators:

    @pytest.mark.asyncio
    async def test_async_generators_unwind_lifo(self, monkeypatch):
        def configure(self):
            self.log = []
            self.around("save", self.outer)
            self.around("save", self.inner)

        async def outer(self):
            self.log.append("outer-before")
            yield
            self.log.append("outer-after")

        async def inner(self):
            self.log.append("inner-before")
            yield
            self.log.append("inner-after")

        Post = fresh_model("Post", configure, {"outer": outer, "inner": inner})
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        post = Post()
        await post.save()
        assert post.log == ["outer-before", "inner-before", "inner-after", "outer-after"]

    @pytest.mark.asyncio
    async def test_state_held_across_action(self, monkeypatch):
        def configure(self):
            self.around("create", self.remember)

        def remember(self):
            before = self.get("_id")
            yield
            self.set("id_was", before)
            self.set("id_now", self.get("_id"))

        Post = fresh_model("Post", configure, {"remember": remember})
        use_collection(monkeypatch, Post, mock_collection(insert_id="abc"))

        post = Post()
        await post.save()
        assert post.get("id_was") is None
        assert post.get("id_now") == "abc"

    @pytest.mark.asyncio
    async def test_generator_without_yield_skips_after_phase(self, monkeypatch):
        calls = []

        def configure(self):
            self.around("save", self.check)

        def check(self):
            calls.append("check")
            return
            yield

        Post = fresh_model("Post", configure, {"check": check})
        use_collection(monkeypatch, Post, mock_collection())

        await Post().save()
        assert calls == ["check"]

    @pytest.mark.asyncio
    async def test_second_yield_is_a_failure(self, monkeypatch):
        def configure(self):
            self.around("save", self.greedy)

        def greedy(self):
            yield
            yield

        Post = fresh_model("Post", configure, {"greedy": greedy})
        use_collection(monkeypatch, Post, mock_collection())

        with pytest.raises(HookFault):
            await Post().save()

    @pytest.mark.asyncio
    async def test_storage_failure_closes_open_generator(self, monkeypatch):
        events = []

        def configure(self):
            self.around("create", self.guarded)

        async def guarded(self):
            events.append("enter")
            try:
                yield
                events.append("exit")
            finally:
                events.append("cleanup")

        Post = fresh_model("Post", configure, {"guarded": guarded})
        collection = mock_collection()
        collection.insert.side_effect = ConnectionError("store down")
        use_collection(monkeypatch, Post, collection)

        with pytest.raises(ConnectionError):
            await Post().save()

        assert events == ["enter", "cleanup"]

    @pytest.mark.asyncio
    async def test_later_before_hook_failure_closes_open_generators(self, monkeypatch):
        events = []

        def configure(self):
            self.around("save", self.outer)
            self.around("save", self.inner)
            self.before("save", self.refuse)

        def outer(self):
            try:
                yield
            finally:
                events.append("outer-cleanup")

        def inner(self):
            try:
                yield
            finally:
                events.append("inner-cleanup")

        def refuse(self):
            raise ValueError("nope")

        Post = fresh_model("Post", configure, {"outer": outer, "inner": inner, "refuse": refuse})
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        with pytest.raises(HookFault):
            await Post().save()

        assert events == ["inner-cleanup", "outer-cleanup"]
        collection.insert.assert_not_called()


# ============================================================================
# Failures
# ============================================================================


class TestFailures:

    @pytest.mark.asyncio
    async def test_failure_aborts_before_storage(self, monkeypatch):
        after = []

        def configure(self):
            self.before("save", self.validate)
            self.before("save", lambda m: after.append("next"))

        def validate(self):
            raise ValueError("title is required")

        Post = fresh_model("Post", configure, {"validate": validate})
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        with pytest.raises(HookFault) as exc_info:
            await Post().save()

        fault = exc_info.value
        assert fault.code == "HOOK_FAILED"
        assert isinstance(fault.__cause__, ValueError)
        assert fault.metadata["when"] == "before"
        assert fault.metadata["action"] == "save"
        assert "validate" in fault.metadata["hook"]
        assert after == []
        collection.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_fault_passes_through_unchanged(self):
        fault = QueryFault(model="Post", operation="check", reason="nope")

        def boom(m):
            raise fault

        post = fresh_model("Post")()
        post.before("remove", boom)
        with pytest.raises(QueryFault) as exc_info:
            await post.run_hooks("before", "remove")
        assert exc_info.value is fault

    @pytest.mark.asyncio
    async def test_unresolved_name_fails_on_invocation(self, monkeypatch):
        def configure(self):
            self.before("save", "does_not_exist")

        Post = fresh_model("Post", configure)
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        post = Post()
        with pytest.raises(HookFault) as exc_info:
            await post.save()
        assert "does_not_exist" in str(exc_info.value)
        collection.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_after_hook_failure_follows_storage(self, monkeypatch):
        def configure(self):
            self.after("create", self.explode)

        def explode(self):
            raise RuntimeError("late")

        Post = fresh_model("Post", configure, {"explode": explode})
        collection = mock_collection()
        use_collection(monkeypatch, Post, collection)

        with pytest.raises(HookFault):
            await Post().save()
        collection.insert.assert_awaited_once()
