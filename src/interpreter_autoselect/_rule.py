"""Abstract base class for interpreter auto-selection rules."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ._interpreter import Interpreter, compare_versions
from ._state import PersistentState

if TYPE_CHECKING:
    from ._state import PersistentStateStore
    from ._workspace import FileSystem, Resource

LOGGER = logging.getLogger(__name__)


class AutoSelectionRule(str, Enum):
    """Kinds of rules, each backed by one discovery strategy."""

    settings = "settings"
    workspace_virtual_envs = "workspaceEnvs"
    cached_interpreters = "cachedInterpreters"
    current_path = "currentPath"
    windows_registry = "windowsRegistry"
    system_wide = "system"


class NextAction(Enum):
    run_next_rule = "runNextRule"
    exit = "exit"


@runtime_checkable
class AutoSelectionManager(Protocol):
    """The side of the auto-selection service rules report their findings to."""

    def get_auto_selected_interpreter(self, resource: Resource) -> Interpreter | None: ...

    async def set_workspace_interpreter(self, resource: Resource, interpreter: Interpreter | None) -> None: ...

    async def set_global_interpreter(self, interpreter: Interpreter | None) -> None: ...


@runtime_checkable
class SelectionRule(Protocol):
    def set_next_rule(self, rule: SelectionRule) -> None: ...

    async def auto_select_interpreter(self, resource: Resource, manager: AutoSelectionManager | None = None) -> None: ...

    def get_previously_auto_selected_interpreter(self, resource: Resource) -> Interpreter | None: ...


class BaseRule(ABC):
    """A link of the rule chain.

    Subclasses implement :meth:`on_auto_select_interpreter`, reporting findings through the manager and answering
    whether the next rule should run. Each rule also remembers its own last finding across sessions, which is what
    :meth:`get_previously_auto_selected_interpreter` returns.

    """

    def __init__(self, rule_name: AutoSelectionRule, fs: FileSystem, state_store: PersistentStateStore) -> None:
        self.rule_name = rule_name
        self._fs = fs
        self.next_rule: SelectionRule | None = None
        self._state: PersistentState[Interpreter] = PersistentState(
            state_store,
            f"InterpreterAutoSelectionRule-{rule_name.value}",
            encode=Interpreter.to_dict,
            decode=Interpreter.from_dict,
        )

    def set_next_rule(self, rule: SelectionRule) -> None:
        if self.next_rule is not None:
            msg = f"{self!r} is already followed by {self.next_rule!r}, refusing to chain {rule!r}"
            raise RuntimeError(msg)
        link: SelectionRule | None = rule
        while link is not None:
            if link is self:
                msg = f"chaining {rule!r} after {self!r} would create a cycle"
                raise RuntimeError(msg)
            link = getattr(link, "next_rule", None)
        self.next_rule = rule

    async def auto_select_interpreter(self, resource: Resource, manager: AutoSelectionManager | None = None) -> None:
        """Try this rule for ``resource``, falling through to the next one when it finds nothing usable.

        Without a ``manager`` the chain still runs, but its rules only refresh their own caches.

        """
        await self.clear_cached_interpreter_if_invalid(resource)
        action = await self.on_auto_select_interpreter(resource, manager)
        LOGGER.debug("rule %s for %s: %s", self.rule_name.value, resource or "<no resource>", action.value)
        if action is NextAction.run_next_rule:
            await self.next(resource, manager)

    def get_previously_auto_selected_interpreter(self, resource: Resource) -> Interpreter | None:  # noqa: ARG002
        value = self._state.value
        LOGGER.debug("current value for rule %s is %s", self.rule_name.value, value or "nothing")
        return value

    @abstractmethod
    async def on_auto_select_interpreter(
        self,
        resource: Resource,
        manager: AutoSelectionManager | None = None,
    ) -> NextAction:
        raise NotImplementedError

    async def set_global_interpreter(
        self,
        interpreter: Interpreter | None,
        manager: AutoSelectionManager | None = None,
    ) -> bool:
        """Remember ``interpreter`` and offer it as the global choice if it is newer than the current one.

        :returns: ``True`` if the manager was updated

        """
        await self.cache_selected_interpreter(None, interpreter)
        if interpreter is None or manager is None or interpreter.parsed_version is None:
            return False
        preferred = manager.get_auto_selected_interpreter(None)
        comparison = compare_versions(interpreter.version, None if preferred is None else preferred.version)
        if comparison is not None and comparison <= 0:
            return False
        await manager.set_global_interpreter(interpreter)
        return True

    async def clear_cached_interpreter_if_invalid(self, resource: Resource) -> None:
        cached = await self._state.load()
        if cached is None or await self._fs.path_exists(cached.path):
            return
        LOGGER.debug("rule %s forgets %s, the path no longer exists", self.rule_name.value, cached.path)
        await self.cache_selected_interpreter(resource, None)

    async def cache_selected_interpreter(self, resource: Resource, interpreter: Interpreter | None) -> None:  # noqa: ARG002
        cached = self._state.value
        if (None if cached is None else cached.path) != (None if interpreter is None else interpreter.path):
            LOGGER.debug("rule %s caches %s", self.rule_name.value, interpreter or "nothing")
        await self._state.update_value(interpreter)

    async def next(self, resource: Resource, manager: AutoSelectionManager | None = None) -> None:
        if self.next_rule is None:
            return
        LOGGER.debug("executing next rule from %s", self.rule_name.value)
        await self.next_rule.auto_select_interpreter(resource, manager)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule={self.rule_name.value!r})"


__all__ = [
    "AutoSelectionManager",
    "AutoSelectionRule",
    "BaseRule",
    "NextAction",
    "SelectionRule",
]
