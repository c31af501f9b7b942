from __future__ import annotations

import asyncio

import pytest

from interpreter_autoselect import (
    InterpreterSpecificCache,
    ResourceCache,
    StaticWorkspace,
    cache_resource_specific_data,
    clear_cached_resource_specific_data,
)
from interpreter_autoselect._cache import signature_key


@pytest.fixture
def cache(workspace, clock):
    return ResourceCache(workspace, clock)


def test_get_after_set(cache, project):
    store = cache.get_store("prefix", project)
    store.set("key", "value", 1000)
    assert store.has("key")
    assert store.get("key") == "value"


def test_expired_entry_is_evicted_on_read(cache, clock, project):
    store = cache.get_store("prefix", project)
    store.set("key", "value", 1000)
    clock.advance(1001)
    assert store.has("key") is False
    assert store.get("key") is None
    assert len(store) == 0


def test_entry_expires_when_expiry_reached(cache, clock, project):
    store = cache.get_store("prefix", project)
    store.set("key", "value", 1000)
    clock.advance(999)
    assert store.has("key")
    clock.advance(1)
    assert not store.has("key")


def test_set_overwrites_and_refreshes_expiry(cache, clock, project):
    store = cache.get_store("prefix", project)
    store.set("key", "old", 1000)
    clock.advance(900)
    store.set("key", "new", 1000)
    clock.advance(900)
    assert store.get("key") == "new"


def test_miss_returns_nothing(cache, project):
    assert cache.get_store("prefix", project).get("missing") is None


def test_clear_one_only_removes_that_entry(cache, project):
    store = cache.get_store("prefix", project)
    store.set("a", 1, 1000)
    store.set("b", 2, 1000)
    store.clear_one("a")
    assert not store.has("a")
    assert store.get("b") == 2


def test_cache_key_without_workspace_folders(clock):
    cache = ResourceCache(StaticWorkspace(python_path="/usr/bin/python3"), clock)
    assert cache.get_cache_key("prefix", "/some/file.py") == "prefix-/usr/bin/python3"


def test_cache_key_of_resource_in_workspace(clock, project):
    workspace = StaticWorkspace([project], python_path="python", folder_python_paths={project: "/venv/bin/python"})
    cache = ResourceCache(workspace, clock)
    key = cache.get_cache_key("prefix", project / "src" / "main.py")
    assert key == f"prefix-{workspace.workspace_folders[0]}-/venv/bin/python"


def test_cache_key_of_resource_outside_workspace(clock, project, tmp_path):
    cache = ResourceCache(StaticWorkspace([project], python_path="python"), clock)
    assert cache.get_cache_key("prefix", tmp_path / "elsewhere.py") == "prefix-python"


def test_cache_key_without_resource_uses_first_folder(clock, project, tmp_path):
    other = tmp_path / "other"
    workspace = StaticWorkspace([project, other], python_path="python")
    cache = ResourceCache(workspace, clock)
    assert cache.get_cache_key("prefix", None) == f"prefix-{workspace.workspace_folders[0]}-python"


def test_cache_key_is_deterministic(cache, project):
    resource = project / "a.py"
    assert cache.get_cache_key("prefix", resource) == cache.get_cache_key("prefix", resource)
    assert cache.get_store("prefix", resource) is cache.get_store("prefix", resource)


def test_changing_configured_interpreter_switches_store(clock, project):
    workspace = StaticWorkspace([project], python_path="python")
    cache = ResourceCache(workspace, clock)
    cache.get_store("prefix", project).set("key", "value", 1000)
    workspace.set_python_path("/other/python", project)
    assert not cache.get_store("prefix", project).has("key")
    workspace.set_python_path(None, project)
    assert cache.get_store("prefix", project).get("key") == "value"


def test_clear_drops_every_store(cache, project):
    cache.get_store("one", project).set("key", 1, 1000)
    cache.get_store("two", None).set("key", 2, 1000)
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0
    assert not cache.get_store("one", project).has("key")


def test_signature_key_is_order_sensitive():
    assert signature_key([1, 2]) != signature_key([2, 1])
    assert signature_key([]) == ""


def test_signature_key_keeps_types_apart():
    assert signature_key([1]) != signature_key(["1"])
    assert signature_key([{"a": 1}]) != signature_key([{"a": 2}])


def test_interpreter_specific_cache_excludes_resource_from_entry_key(cache, project):
    first = InterpreterSpecificCache(cache, "prefix", 1000, [project / "a.py", "x"])
    first.data = "cached"
    same_folder = InterpreterSpecificCache(cache, "prefix", 1000, [project / "b.py", "x"])
    other_args = InterpreterSpecificCache(cache, "prefix", 1000, [project / "a.py", "y"])
    assert same_folder.has_data
    assert same_folder.data == "cached"
    assert not other_args.has_data
    first.clear()
    assert not same_folder.has_data


def test_interpreter_specific_cache_tells_cached_none_apart(cache, project):
    entry = InterpreterSpecificCache(cache, "prefix", 1000, [project])
    assert not entry.has_data
    entry.data = None
    assert entry.has_data
    assert entry.data is None


class EnvironmentProvider:
    def __init__(self, resource_cache: ResourceCache) -> None:
        self.resource_cache = resource_cache
        self.calls = 0
        self.fail = False

    @cache_resource_specific_data("getEnvironmentVariables", 1000)
    async def get_environment_variables(self, resource=None):
        self.calls += 1
        if self.fail:
            msg = "cannot read env file"
            raise OSError(msg)
        return {"CALL": str(self.calls)}


def test_decorator_reuses_result_until_expiry(cache, clock, project):
    provider = EnvironmentProvider(cache)

    async def _run():
        first = await provider.get_environment_variables(project)
        second = await provider.get_environment_variables(project)
        clock.advance(1001)
        third = await provider.get_environment_variables(project)
        return first, second, third

    first, second, third = asyncio.run(_run())
    assert first == second == {"CALL": "1"}
    assert third == {"CALL": "2"}
    assert provider.calls == 2


def test_decorator_does_not_cache_failures(cache, project):
    provider = EnvironmentProvider(cache)
    provider.fail = True
    with pytest.raises(OSError, match="cannot read env file"):
        asyncio.run(provider.get_environment_variables(project))
    provider.fail = False
    assert asyncio.run(provider.get_environment_variables(project)) == {"CALL": "2"}


def test_decorator_without_resource(cache):
    provider = EnvironmentProvider(cache)
    asyncio.run(provider.get_environment_variables())
    asyncio.run(provider.get_environment_variables())
    assert provider.calls == 1


def test_decorator_accepts_resource_by_keyword(cache, project):
    provider = EnvironmentProvider(cache)

    async def _run():
        by_keyword = await provider.get_environment_variables(resource=project)
        positional = await provider.get_environment_variables(project)
        return by_keyword, positional

    by_keyword, positional = asyncio.run(_run())
    assert by_keyword == positional == {"CALL": "1"}
    assert provider.calls == 1


def test_decorator_keyword_only_arguments_are_part_of_the_key(cache, project):
    class ActivationProvider:
        def __init__(self, resource_cache: ResourceCache) -> None:
            self.resource_cache = resource_cache
            self.calls = 0

        @cache_resource_specific_data("getActivationCommand", 1000)
        async def get_activation_command(self, resource=None, *, shell="bash"):
            self.calls += 1
            return f"{shell}-{self.calls}"

    provider = ActivationProvider(cache)

    async def _run():
        return [
            await provider.get_activation_command(project),
            await provider.get_activation_command(project, shell="bash"),
            await provider.get_activation_command(resource=project, shell="fish"),
            await provider.get_activation_command(project, shell="fish"),
        ]

    assert asyncio.run(_run()) == ["bash-1", "bash-1", "fish-2", "fish-2"]
    assert provider.calls == 2


def test_clear_hook_forces_recompute_for_that_workspace_only(clock, project, tmp_path):
    other = tmp_path / "other"
    cache = ResourceCache(StaticWorkspace([project, other]), clock)
    provider = EnvironmentProvider(cache)

    async def _run():
        await provider.get_environment_variables(project)
        await provider.get_environment_variables(other)
        clear_cached_resource_specific_data(cache, "getEnvironmentVariables", project)
        await provider.get_environment_variables(project)
        await provider.get_environment_variables(other)

    asyncio.run(_run())
    assert provider.calls == 3
