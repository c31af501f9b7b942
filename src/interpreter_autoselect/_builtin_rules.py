from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ._compat import IS_WIN
from ._interpreter import get_best_interpreter
from ._rule import AutoSelectionRule, BaseRule, NextAction

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ._interpreter import Interpreter
    from ._rule import AutoSelectionManager, SelectionRule
    from ._state import PersistentStateStore
    from ._workspace import FileSystem, Resource, WorkspaceService

LOGGER = logging.getLogger(__name__)

#: value of the interpreter path setting when the user never changed it
DEFAULT_PYTHON_PATH = "python"


@runtime_checkable
class InterpreterLocator(Protocol):
    """Source of candidate interpreters for a resource (PATH scan, registry, virtual env folders, ...)."""

    async def get_interpreters(self, resource: Resource) -> Sequence[Interpreter]: ...


def _is_user_defined(python_path: str | None) -> bool:
    return bool(python_path) and python_path != DEFAULT_PYTHON_PATH


class SettingsInterpretersAutoSelectionRule(BaseRule):
    """An interpreter path configured by the user wins over anything discovered."""

    def __init__(self, workspace: WorkspaceService, fs: FileSystem, state_store: PersistentStateStore) -> None:
        super().__init__(AutoSelectionRule.settings, fs, state_store)
        self._workspace = workspace

    async def on_auto_select_interpreter(
        self,
        resource: Resource,  # noqa: ARG002
        manager: AutoSelectionManager | None = None,  # noqa: ARG002
    ) -> NextAction:
        python_path = self._workspace.get_python_path(None)
        return NextAction.exit if _is_user_defined(python_path) else NextAction.run_next_rule


class WorkspaceVirtualEnvInterpretersAutoSelectionRule(BaseRule):
    """Prefer a virtual environment living inside the resource's workspace folder."""

    def __init__(
        self,
        workspace: WorkspaceService,
        locator: InterpreterLocator,
        fs: FileSystem,
        state_store: PersistentStateStore,
        timeout: float | None = 10,
    ) -> None:
        super().__init__(AutoSelectionRule.workspace_virtual_envs, fs, state_store)
        self._workspace = workspace
        self._locator = locator
        self.timeout = timeout

    async def on_auto_select_interpreter(
        self,
        resource: Resource,
        manager: AutoSelectionManager | None = None,
    ) -> NextAction:
        folder = self._workspace.get_workspace_folder(resource) if resource is not None else None
        if folder is None:
            return NextAction.run_next_rule
        if _is_user_defined(self._workspace.get_workspace_python_path(resource)):
            return NextAction.exit
        best = get_best_interpreter(await self.get_workspace_interpreters(folder))
        if best is None or manager is None:
            return NextAction.run_next_rule
        await self.cache_selected_interpreter(folder, best)
        await manager.set_workspace_interpreter(folder, best)
        return NextAction.exit

    async def get_workspace_interpreters(self, folder: str) -> list[Interpreter]:
        try:
            return list(await asyncio.wait_for(self._locator.get_interpreters(folder), self.timeout))
        except asyncio.TimeoutError:
            LOGGER.debug("looking for virtual environments in %s timed out after %ss", folder, self.timeout)
            return []


class CachedInterpretersAutoSelectionRule(BaseRule):
    """Reuse the best interpreter any of the discovery rules found in an earlier run."""

    def __init__(self, rules: Iterable[SelectionRule], fs: FileSystem, state_store: PersistentStateStore) -> None:
        super().__init__(AutoSelectionRule.cached_interpreters, fs, state_store)
        self._rules = list(rules)

    async def on_auto_select_interpreter(
        self,
        resource: Resource,
        manager: AutoSelectionManager | None = None,
    ) -> NextAction:
        for rule in self._rules:
            if isinstance(rule, BaseRule):
                await rule.clear_cached_interpreter_if_invalid(resource)
        cached = [rule.get_previously_auto_selected_interpreter(resource) for rule in self._rules]
        best = get_best_interpreter(cached)
        LOGGER.debug("selected interpreter from cached interpreters: %s", best or "nothing")
        return NextAction.exit if await self.set_global_interpreter(best, manager) else NextAction.run_next_rule


class _LocatorRule(BaseRule):
    """Offer the newest interpreter a locator reports as the global choice."""

    def __init__(
        self,
        rule_name: AutoSelectionRule,
        locator: InterpreterLocator,
        fs: FileSystem,
        state_store: PersistentStateStore,
    ) -> None:
        super().__init__(rule_name, fs, state_store)
        self._locator = locator

    async def get_interpreters(self, resource: Resource) -> list[Interpreter]:
        return list(await self._locator.get_interpreters(resource))

    async def on_auto_select_interpreter(
        self,
        resource: Resource,
        manager: AutoSelectionManager | None = None,
    ) -> NextAction:
        best = get_best_interpreter(await self.get_interpreters(resource))
        return NextAction.exit if await self.set_global_interpreter(best, manager) else NextAction.run_next_rule


class CurrentPathInterpretersAutoSelectionRule(_LocatorRule):
    def __init__(self, locator: InterpreterLocator, fs: FileSystem, state_store: PersistentStateStore) -> None:
        super().__init__(AutoSelectionRule.current_path, locator, fs, state_store)


class WindowsRegistryInterpretersAutoSelectionRule(_LocatorRule):
    """Interpreters registered in the Windows registry; does nothing on other platforms."""

    def __init__(
        self,
        locator: InterpreterLocator,
        fs: FileSystem,
        state_store: PersistentStateStore,
        *,
        is_windows: bool = IS_WIN,
    ) -> None:
        super().__init__(AutoSelectionRule.windows_registry, locator, fs, state_store)
        self.is_windows = is_windows

    async def on_auto_select_interpreter(
        self,
        resource: Resource,
        manager: AutoSelectionManager | None = None,
    ) -> NextAction:
        if not self.is_windows:
            return NextAction.run_next_rule
        return await super().on_auto_select_interpreter(resource, manager)


class SystemWideInterpretersAutoSelectionRule(_LocatorRule):
    """Every interpreter known on the machine; virtual environments are not candidates for the global choice."""

    def __init__(self, locator: InterpreterLocator, fs: FileSystem, state_store: PersistentStateStore) -> None:
        super().__init__(AutoSelectionRule.system_wide, locator, fs, state_store)

    async def get_interpreters(self, resource: Resource) -> list[Interpreter]:
        return [i for i in await super().get_interpreters(resource) if not i.is_virtual_env]


class StaticLocator:
    """Locator returning a fixed list of interpreters, for hosts that discover interpreters up front."""

    def __init__(self, interpreters: Iterable[Interpreter] = ()) -> None:
        self.interpreters = list(interpreters)

    async def get_interpreters(self, resource: Resource) -> list[Interpreter]:  # noqa: ARG002
        return list(self.interpreters)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.interpreters!r})"


__all__ = [
    "DEFAULT_PYTHON_PATH",
    "CachedInterpretersAutoSelectionRule",
    "CurrentPathInterpretersAutoSelectionRule",
    "InterpreterLocator",
    "SettingsInterpretersAutoSelectionRule",
    "StaticLocator",
    "SystemWideInterpretersAutoSelectionRule",
    "WindowsRegistryInterpretersAutoSelectionRule",
    "WorkspaceVirtualEnvInterpretersAutoSelectionRule",
]
