"""Pick the Python interpreter for a workspace by running an ordered chain of selection rules."""

from __future__ import annotations

from importlib.metadata import version

from ._builtin_rules import (
    CachedInterpretersAutoSelectionRule,
    CurrentPathInterpretersAutoSelectionRule,
    InterpreterLocator,
    SettingsInterpretersAutoSelectionRule,
    StaticLocator,
    SystemWideInterpretersAutoSelectionRule,
    WindowsRegistryInterpretersAutoSelectionRule,
    WorkspaceVirtualEnvInterpretersAutoSelectionRule,
)
from ._cache import (
    InterpreterSpecificCache,
    ResourceCache,
    ResourceStore,
    cache_resource_specific_data,
    clear_cached_resource_specific_data,
)
from ._chain import RuleChain, build_rule_chain
from ._config import AutoSelectionConfig, create_auto_selection_service, create_rules
from ._events import Disposable, EventEmitter
from ._interpreter import Interpreter, compare_versions, get_best_interpreter, parse_version
from ._proxy import InterpreterAutoSelectionProxyService
from ._rule import AutoSelectionManager, AutoSelectionRule, BaseRule, NextAction, SelectionRule
from ._service import InterpreterAutoSelectionService, StoreState
from ._state import DiskStateStore, MemoryStateStore, PersistentState, PersistentStateStore
from ._workspace import FileSystem, LocalFileSystem, Resource, StaticWorkspace, WorkspaceService

__version__ = version("interpreter-autoselect")

__all__ = [
    "AutoSelectionConfig",
    "AutoSelectionManager",
    "AutoSelectionRule",
    "BaseRule",
    "CachedInterpretersAutoSelectionRule",
    "CurrentPathInterpretersAutoSelectionRule",
    "DiskStateStore",
    "Disposable",
    "EventEmitter",
    "FileSystem",
    "Interpreter",
    "InterpreterAutoSelectionProxyService",
    "InterpreterAutoSelectionService",
    "InterpreterLocator",
    "InterpreterSpecificCache",
    "LocalFileSystem",
    "MemoryStateStore",
    "NextAction",
    "PersistentState",
    "PersistentStateStore",
    "Resource",
    "ResourceCache",
    "ResourceStore",
    "RuleChain",
    "SelectionRule",
    "SettingsInterpretersAutoSelectionRule",
    "StaticLocator",
    "StaticWorkspace",
    "StoreState",
    "SystemWideInterpretersAutoSelectionRule",
    "WindowsRegistryInterpretersAutoSelectionRule",
    "WorkspaceService",
    "WorkspaceVirtualEnvInterpretersAutoSelectionRule",
    "__version__",
    "build_rule_chain",
    "cache_resource_specific_data",
    "clear_cached_resource_specific_data",
    "compare_versions",
    "create_auto_selection_service",
    "create_rules",
    "get_best_interpreter",
    "parse_version",
]
