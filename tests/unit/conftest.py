from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from interpreter_autoselect import (
    AutoSelectionRule,
    BaseRule,
    Interpreter,
    MemoryStateStore,
    NextAction,
    StaticLocator,
    StaticWorkspace,
)

if TYPE_CHECKING:
    from pathlib import Path


class FakeFileSystem:
    def __init__(self) -> None:
        self.existing: set[str] = set()
        self.calls: list[str] = []

    async def path_exists(self, path: str) -> bool:
        self.calls.append(path)
        return path in self.existing


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_700_000_000_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeManager:
    def __init__(self) -> None:
        self.global_interpreter: Interpreter | None = None
        self.workspace: dict[str, Interpreter | None] = {}

    def get_auto_selected_interpreter(self, resource):
        return self.workspace.get(resource, self.global_interpreter)

    async def set_workspace_interpreter(self, resource, interpreter) -> None:
        self.workspace[resource] = interpreter

    async def set_global_interpreter(self, interpreter) -> None:
        self.global_interpreter = interpreter


class CountingLocator(StaticLocator):
    def __init__(self, interpreters=(), error: Exception | None = None) -> None:
        super().__init__(interpreters)
        self.calls: list[object] = []
        self.error = error

    async def get_interpreters(self, resource):
        self.calls.append(resource)
        if self.error is not None:
            raise self.error
        return await super().get_interpreters(resource)


class RecordingRule(BaseRule):
    def __init__(self, rule_name, fs, state_store, action=NextAction.run_next_rule) -> None:
        super().__init__(rule_name, fs, state_store)
        self.action = action
        self.calls: list[tuple[object, object]] = []

    async def on_auto_select_interpreter(self, resource, manager=None):
        self.calls.append((resource, manager))
        return self.action


@pytest.fixture
def fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager() -> FakeManager:
    return FakeManager()


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    return tmp_path / "proj"


@pytest.fixture
def workspace(project: Path) -> StaticWorkspace:
    return StaticWorkspace([project])


@pytest.fixture
def make_interpreter(fs: FakeFileSystem):
    def _make(path: str, version: str | None = None, env_type: str | None = None) -> Interpreter:
        fs.existing.add(path)
        return Interpreter(path, version, env_type=env_type)

    return _make


@pytest.fixture
def make_locator():
    return CountingLocator


@pytest.fixture
def make_rule(fs: FakeFileSystem, state_store: MemoryStateStore):
    def _make(rule_name: AutoSelectionRule, action: NextAction = NextAction.run_next_rule) -> RecordingRule:
        return RecordingRule(rule_name, fs, state_store, action)

    return _make
