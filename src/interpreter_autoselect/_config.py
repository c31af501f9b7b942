"""Ambient configuration and wiring of the default auto-selection service."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from platformdirs import user_data_path

from ._builtin_rules import (
    CachedInterpretersAutoSelectionRule,
    CurrentPathInterpretersAutoSelectionRule,
    SettingsInterpretersAutoSelectionRule,
    StaticLocator,
    SystemWideInterpretersAutoSelectionRule,
    WindowsRegistryInterpretersAutoSelectionRule,
    WorkspaceVirtualEnvInterpretersAutoSelectionRule,
)
from ._chain import build_rule_chain
from ._compat import IS_WIN
from ._rule import AutoSelectionRule
from ._service import InterpreterAutoSelectionService
from ._state import DiskStateStore, MemoryStateStore
from ._workspace import LocalFileSystem

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._builtin_rules import InterpreterLocator
    from ._rule import SelectionRule
    from ._state import PersistentStateStore
    from ._workspace import FileSystem, WorkspaceService

LOGGER = logging.getLogger(__name__)

APP_NAME = "interpreter-autoselect"
ENV_PREFIX = "INTERPRETER_AUTOSELECT_"
_TRUTHY = {"1", "true", "yes", "on"}


class AutoSelectionConfig:
    """Settings of the auto-selection machinery, read from ``INTERPRETER_AUTOSELECT_*`` environment variables."""

    def __init__(
        self,
        state_dir: Path | None = None,
        venv_timeout: float = 10,
        persist: bool = True,
    ) -> None:
        self.state_dir = state_dir if state_dir is not None else user_data_path(APP_NAME)
        self.venv_timeout = venv_timeout
        self.persist = persist

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> AutoSelectionConfig:
        env = os.environ if env is None else env
        state_dir = env.get(f"{ENV_PREFIX}STATE_DIR")
        raw_timeout = env.get(f"{ENV_PREFIX}VENV_TIMEOUT")
        try:
            venv_timeout = 10 if raw_timeout is None else float(raw_timeout)
        except ValueError as exc:
            msg = f"{ENV_PREFIX}VENV_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
            raise ValueError(msg) from exc
        no_persist = env.get(f"{ENV_PREFIX}NO_PERSIST", "").strip().lower() in _TRUTHY
        return cls(
            state_dir=Path(state_dir).expanduser() if state_dir else None,
            venv_timeout=venv_timeout,
            persist=not no_persist,
        )

    def create_state_store(self) -> PersistentStateStore:
        if not self.persist:
            return MemoryStateStore()
        return DiskStateStore(self.state_dir)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(state_dir={str(self.state_dir)!r}, "
            f"venv_timeout={self.venv_timeout!r}, persist={self.persist!r})"
        )


def create_rules(
    workspace: WorkspaceService,
    fs: FileSystem,
    state_store: PersistentStateStore,
    *,
    workspace_locator: InterpreterLocator | None = None,
    current_path_locator: InterpreterLocator | None = None,
    windows_registry_locator: InterpreterLocator | None = None,
    system_locator: InterpreterLocator | None = None,
    venv_timeout: float | None = 10,
    is_windows: bool = IS_WIN,
) -> dict[AutoSelectionRule, SelectionRule]:
    """Build one rule of every kind; locators left out report no interpreters."""
    current_path = CurrentPathInterpretersAutoSelectionRule(current_path_locator or StaticLocator(), fs, state_store)
    windows_registry = WindowsRegistryInterpretersAutoSelectionRule(
        windows_registry_locator or StaticLocator(),
        fs,
        state_store,
        is_windows=is_windows,
    )
    system_wide = SystemWideInterpretersAutoSelectionRule(system_locator or StaticLocator(), fs, state_store)
    return {
        AutoSelectionRule.settings: SettingsInterpretersAutoSelectionRule(workspace, fs, state_store),
        AutoSelectionRule.workspace_virtual_envs: WorkspaceVirtualEnvInterpretersAutoSelectionRule(
            workspace,
            workspace_locator or StaticLocator(),
            fs,
            state_store,
            timeout=venv_timeout,
        ),
        AutoSelectionRule.cached_interpreters: CachedInterpretersAutoSelectionRule(
            [system_wide, current_path, windows_registry],
            fs,
            state_store,
        ),
        AutoSelectionRule.current_path: current_path,
        AutoSelectionRule.windows_registry: windows_registry,
        AutoSelectionRule.system_wide: system_wide,
    }


def create_auto_selection_service(
    workspace: WorkspaceService,
    *,
    workspace_locator: InterpreterLocator | None = None,
    current_path_locator: InterpreterLocator | None = None,
    windows_registry_locator: InterpreterLocator | None = None,
    system_locator: InterpreterLocator | None = None,
    config: AutoSelectionConfig | None = None,
    fs: FileSystem | None = None,
    state_store: PersistentStateStore | None = None,
) -> InterpreterAutoSelectionService:
    config = AutoSelectionConfig.from_env() if config is None else config
    fs = LocalFileSystem() if fs is None else fs
    state_store = config.create_state_store() if state_store is None else state_store
    LOGGER.debug("create auto-selection service with %r", config)
    rules = create_rules(
        workspace,
        fs,
        state_store,
        workspace_locator=workspace_locator,
        current_path_locator=current_path_locator,
        windows_registry_locator=windows_registry_locator,
        system_locator=system_locator,
        venv_timeout=config.venv_timeout,
    )
    return InterpreterAutoSelectionService(workspace, state_store, fs, build_rule_chain(rules))


__all__ = [
    "APP_NAME",
    "AutoSelectionConfig",
    "create_auto_selection_service",
    "create_rules",
]
