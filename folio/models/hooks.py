"""
Folio Model Hooks — per-instance before/after/around lifecycle hooks.

Each model instance owns a ``HookRegistry`` with two phases (``before`` and
``after``), each mapping a lifecycle action (create, update, remove, save)
to an ordered list of hooks.

Registering ``around`` on an action appends the hook to ``before[action]``
and prepends it to ``after[action]``. The first registered around hook
therefore enters first and exits last:

    around("save", X); around("save", Y)
    -> X-before, Y-before, [save], Y-after, X-after

Hooks can be sync or async. A bound method of the owning instance is
called with no arguments; any other callable receives the instance.

Around hooks may also be generator functions (sync or async). The code
before ``yield`` runs in the before phase and the rest in the after phase:

    class Post(Model):
        def configure(self):
            self.around("save", self.timed)

        async def timed(self):
            started = time.monotonic()
            yield
            logger.info("saved in %.3fs", time.monotonic() - started)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING

from ..faults.core import Fault
from ..faults.domains import HookFault, HookRegistrationFault

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("folio.models.hooks")

__all__ = ["HookRegistry", "ACTIONS", "PHASES"]

ACTIONS = ("create", "update", "remove", "save")
PHASES = ("before", "after")


def _hook_name(fn: Any) -> str:
    owner = getattr(fn, "__self__", None)
    if isinstance(owner, _AroundHook):
        return owner.__qualname__
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


def _invoke(owner: Any, fn: Callable) -> Any:
    """Call ``fn`` with ``owner`` as its implicit receiver."""
    if getattr(fn, "__self__", None) is owner:
        return fn()
    return fn(owner)


class _MissingHook:
    """Placeholder for a hook name that did not resolve on the instance."""

    def __init__(self, owner: Any, name: str):
        self._owner = owner
        self.__qualname__ = name

    def __call__(self, owner: Any) -> None:
        raise AttributeError(
            f"'{type(self._owner).__name__}' object has no hook method '{self.__qualname__}'"
        )


class _AroundHook:
    """
    A generator around hook split into an enter half and an exit half.

    One in-flight generator is kept per hook; concurrent lifecycle calls on
    the same instance are not supported.
    When the action fails before the exit half runs, ``abort`` closes the
    generator so its ``finally`` blocks run right away.
    """

    def __init__(self, fn: Callable):
        self.fn = fn
        self.__qualname__ = _hook_name(fn)
        self._pending: Any = None

    async def enter(self, owner: Any) -> None:
        if self._pending is not None:
            await self._close(self._pending)
        gen = _invoke(owner, self.fn)
        self._pending = gen
        try:
            if inspect.isasyncgen(gen):
                await gen.__anext__()
            else:
                next(gen)
        except (StopIteration, StopAsyncIteration):
            self._pending = None

    async def exit(self, owner: Any) -> None:
        gen, self._pending = self._pending, None
        if gen is None:
            return
        try:
            if inspect.isasyncgen(gen):
                await gen.__anext__()
            else:
                next(gen)
        except (StopIteration, StopAsyncIteration):
            return
        await self._close(gen)
        raise RuntimeError(f"around hook '{self.__qualname__}' yielded more than once")

    async def abort(self) -> None:
        gen, self._pending = self._pending, None
        if gen is not None:
            await self._close(gen)

    @staticmethod
    async def _close(gen: Any) -> None:
        if inspect.isasyncgen(gen):
            await gen.aclose()
        else:
            gen.close()


class HookRegistry:
    """
    Ordered hook tables for one model instance.

    Usage:
        registry = HookRegistry(post)
        registry.before("save", post.validate)
        registry.hook({"after:create": [notify, "reindex"]})
        await registry.run("before", "save")
    """

    def __init__(self, owner: Model):
        self.owner = owner
        self._tables: Dict[str, Dict[str, List[Callable]]] = {
            phase: {action: [] for action in ACTIONS} for phase in PHASES
        }

    def chain(self, when: str, action: str) -> List[Callable]:
        """Return the live hook list for (phase, action)."""
        try:
            return self._tables[when][action]
        except KeyError:
            raise HookRegistrationFault(when, action) from None

    # ── Registration ─────────────────────────────────────────────────

    def hook(self, when: Any, action: Optional[str] = None, method: Any = None) -> None:
        """
        Register hooks.

        Accepted shapes:
            hook({"before:save": fn, "around:create": [fn1, "method_name"]})
            hook("before", "save", [fn1, fn2])
            hook("after", "remove", "method_name")
            hook("around", "update", fn)
        """
        if isinstance(when, Mapping):
            for key, methods in when.items():
                phase, _, act = str(key).partition(":")
                self.hook(phase, act, methods)
            return

        if isinstance(method, (list, tuple)):
            for m in method:
                self.hook(when, action, m)
            return

        if when not in ("before", "after", "around") or action not in ACTIONS:
            raise HookRegistrationFault(when, action)

        if isinstance(method, str):
            method = self._resolve(method)
        elif not callable(method):
            raise HookRegistrationFault(when, action, metadata={"method": repr(method)})

        if when == "around":
            if inspect.isgeneratorfunction(method) or inspect.isasyncgenfunction(method):
                wrapper = _AroundHook(method)
                self._tables["before"][action].append(wrapper.enter)
                self._tables["after"][action].insert(0, wrapper.exit)
            else:
                self._tables["before"][action].append(method)
                self._tables["after"][action].insert(0, method)
        else:
            self._tables[when][action].append(method)

    def before(self, action: str, method: Any) -> None:
        self.hook("before", action, method)

    def after(self, action: str, method: Any) -> None:
        self.hook("after", action, method)

    def around(self, action: str, method: Any) -> None:
        self.hook("around", action, method)

    def _resolve(self, name: str) -> Callable:
        method = getattr(self.owner, name, None)
        if method is None:
            logger.debug(f"Hook '{name}' not found on {type(self.owner).__name__}")
            return _MissingHook(self.owner, name)
        return method

    # ── Execution ────────────────────────────────────────────────────

    async def run(self, when: str, action: str) -> None:
        """
        Run the (phase, action) chain strictly in order.

        Each hook, including any awaitable it returns, completes before
        the next one starts. The first failure aborts the chain.
        """
        model_name = type(self.owner).__name__
        for fn in list(self.chain(when, action)):
            name = _hook_name(fn)
            logger.debug(f"{model_name}: running {when}:{action} hook '{name}'")
            try:
                result = _invoke(self.owner, fn)
                if inspect.isawaitable(result):
                    await result
            except Fault:
                raise
            except Exception as exc:
                raise HookFault(
                    model=model_name,
                    when=when,
                    action=action,
                    hook=name,
                    reason=f"{exc.__class__.__name__}: {exc}",
                ) from exc

    async def abort(self, action: str) -> None:
        """Close generator around hooks on ``action`` still waiting for their exit half."""
        for fn in reversed(self.chain("before", action)):
            wrapper = getattr(fn, "__self__", None)
            if isinstance(wrapper, _AroundHook):
                await wrapper.abort()

    def __repr__(self) -> str:
        counts = {
            f"{phase}:{action}": len(hooks)
            for phase, table in self._tables.items()
            for action, hooks in table.items()
            if hooks
        }
        return f"<HookRegistry {type(self.owner).__name__} {counts}>"
