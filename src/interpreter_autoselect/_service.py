"""Orchestrates the rule chain and keeps the per-workspace and global auto-selected interpreters."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from ._compat import fs_path_id
from ._events import EventEmitter
from ._interpreter import Interpreter, compare_versions
from ._state import PersistentState

if TYPE_CHECKING:
    from ._chain import RuleChain
    from ._state import PersistentStateStore
    from ._workspace import FileSystem, Resource, WorkspaceService

LOGGER = logging.getLogger(__name__)

PREFERRED_GLOBAL_INTERPRETER = "preferredGlobalInterpreter"
#: workspace key of resources outside any workspace folder
GLOBAL_WORKSPACE_KEY = ""


class StoreState(Enum):
    uninitialized = "uninitialized"
    initializing = "initializing"
    ready = "ready"


class InterpreterAutoSelectionService:
    """Pick an interpreter for a resource by running the rule chain, and remember the outcome.

    Workspace selections always replace the previous one; the global selection is only replaced by an interpreter
    that is not older than the current one. The global selection is persisted across sessions.

    """

    def __init__(
        self,
        workspace: WorkspaceService,
        state_store: PersistentStateStore,
        fs: FileSystem,
        chain: RuleChain,
    ) -> None:
        self._workspace = workspace
        self._state_store = state_store
        self._fs = fs
        self.chain = chain
        self.on_did_change_auto_selected_interpreter = EventEmitter("on_did_change_auto_selected_interpreter")
        self._auto_selected_by_workspace: dict[str, Interpreter | None] = {}
        self._globally_preferred: PersistentState[Interpreter] | None = None
        self._state = StoreState.uninitialized
        self._init_lock: asyncio.Lock | None = None
        self._init_lock_loop: asyncio.AbstractEventLoop | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> StoreState:
        return self._state

    async def auto_select_interpreter(self, resource: Resource) -> None:
        self._run_rules_in_background(resource)
        await self.initialize_store()
        await self.chain.head.auto_select_interpreter(resource, self)

    def get_auto_selected_interpreter(self, resource: Resource) -> Interpreter | None:
        # reached while resolving settings: only read what is already in memory, never call back into settings or I/O
        key = self.get_workspace_path_key(resource)
        if key in self._auto_selected_by_workspace:
            return self._auto_selected_by_workspace[key]
        return None if self._globally_preferred is None else self._globally_preferred.value

    async def set_workspace_interpreter(self, resource: Resource, interpreter: Interpreter | None) -> None:
        await self.store_auto_selected_interpreter(resource, interpreter)

    async def set_global_interpreter(self, interpreter: Interpreter | None) -> None:
        await self.store_auto_selected_interpreter(None, interpreter)

    async def store_auto_selected_interpreter(self, resource: Resource, interpreter: Interpreter | None) -> None:
        key = self.get_workspace_path_key(resource)
        if key == GLOBAL_WORKSPACE_KEY:
            preferred = await self.initialize_store()
            current = preferred.value
            if current is not None and interpreter is not None:
                comparison = compare_versions(current.version, interpreter.version)
                if comparison is not None and comparison > 0:
                    LOGGER.debug("keep global interpreter %s, it is newer than %s", current.path, interpreter.path)
                    return
            await preferred.update_value(interpreter)
            self._auto_selected_by_workspace[key] = interpreter
            LOGGER.info("auto-selected global interpreter %s", interpreter.path if interpreter else None)
        else:
            self._auto_selected_by_workspace[key] = interpreter
            LOGGER.info("auto-selected interpreter %s for %s", interpreter.path if interpreter else None, key)
        self.on_did_change_auto_selected_interpreter.fire()

    async def initialize_store(self) -> PersistentState[Interpreter]:
        """Load the persisted global interpreter once, dropping it if its executable is gone.

        :returns: the loaded global preference

        """
        if self._state is not StoreState.ready:
            async with self._get_init_lock():
                if self._state is not StoreState.ready:
                    self._state = StoreState.initializing
                    try:
                        self._globally_preferred = await self._load_global_preference()
                    except BaseException:
                        self._state = StoreState.uninitialized
                        raise
                    self._state = StoreState.ready
        if self._globally_preferred is None:
            msg = f"{self!r} has no global interpreter store"
            raise RuntimeError(msg)
        return self._globally_preferred

    def _get_init_lock(self) -> asyncio.Lock:
        # asyncio locks bind to the first loop that waits on them
        loop = asyncio.get_running_loop()
        if self._init_lock is None or self._init_lock_loop is not loop:
            self._init_lock, self._init_lock_loop = asyncio.Lock(), loop
        return self._init_lock

    async def _load_global_preference(self) -> PersistentState[Interpreter]:
        preferred: PersistentState[Interpreter] = PersistentState(
            self._state_store,
            PREFERRED_GLOBAL_INTERPRETER,
            encode=Interpreter.to_dict,
            decode=Interpreter.from_dict,
        )
        value = await preferred.load()
        if value is not None and not await self._fs.path_exists(value.path):
            LOGGER.debug("forget global interpreter %s, the path no longer exists", value.path)
            await preferred.update_value(None)
        return preferred

    def get_workspace_path_key(self, resource: Resource) -> str:
        folder = self._workspace.get_workspace_folder(resource) if resource is not None else None
        return fs_path_id(folder) if folder else GLOBAL_WORKSPACE_KEY

    def _run_rules_in_background(self, resource: Resource) -> None:
        task = asyncio.create_task(self._evaluate_background_rules(resource))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _evaluate_background_rules(self, resource: Resource) -> None:
        # best effort cache warming: a failing rule must not affect the caller or its siblings
        rules = self.chain.background
        results = await asyncio.gather(
            *(rule.auto_select_interpreter(resource) for rule in rules),
            return_exceptions=True,
        )
        for rule, result in zip(rules, results):
            if isinstance(result, BaseException):
                LOGGER.debug("background %r failed for %s", rule, resource or "<no resource>", exc_info=result)

    async def wait_for_background_tasks(self) -> None:
        while self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    def dispose(self) -> None:
        self.on_did_change_auto_selected_interpreter.dispose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(state={self._state.value})"


__all__ = [
    "GLOBAL_WORKSPACE_KEY",
    "PREFERRED_GLOBAL_INTERPRETER",
    "InterpreterAutoSelectionService",
    "StoreState",
]
