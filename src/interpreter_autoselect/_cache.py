"""Expiring in-memory cache partitioned by workspace and configured interpreter."""

from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import TYPE_CHECKING, Any, Generic, NamedTuple, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from ._workspace import Resource, WorkspaceService

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

ARG_SEPARATOR = "-Arg-Separator-"


def _now_ms() -> float:
    return time.time() * 1000


def signature_key(args: Sequence[Any]) -> str:
    """Key of a call's arguments (the resource excluded), order sensitive."""
    return ARG_SEPARATOR.join(repr(arg) for arg in args)


class CacheData(NamedTuple):
    value: Any
    expiry: float


class ResourceStore:
    """Entries cached for one key prefix within one workspace/interpreter context."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._entries: dict[str, CacheData] = {}

    def has(self, key: str) -> bool:
        data = self._entries.get(key)
        if data is None:
            return False
        if data.expiry <= self._clock():
            del self._entries[key]
            return False
        return True

    def get(self, key: str) -> Any:
        """:returns: the cached value, or ``None`` if missing or expired"""
        if not self.has(key):
            return None
        return self._entries[key].value

    def set(self, key: str, value: Any, ttl_ms: float) -> None:
        self._entries[key] = CacheData(value, self._clock() + ttl_ms)

    def clear_one(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ResourceCache:
    """Registry of :class:`ResourceStore` objects keyed by prefix, workspace folder and configured interpreter.

    The configured interpreter path is part of the key, so changing the setting for a workspace makes its previously
    cached data unreachable rather than stale.

    """

    def __init__(self, workspace: WorkspaceService, clock: Callable[[], float] | None = None) -> None:
        self._workspace = workspace
        self.clock = clock or _now_ms
        self._stores: dict[str, ResourceStore] = {}

    def get_cache_key(self, key_prefix: str, resource: Resource) -> str:
        global_python_path = self._workspace.get_python_path(None)
        folders = self._workspace.workspace_folders
        if not folders:
            return f"{key_prefix}-{global_python_path}"
        folder = folders[0] if resource is None else self._workspace.get_workspace_folder(resource)
        if folder is None:
            return f"{key_prefix}-{global_python_path}"
        workspace_python_path = self._workspace.get_python_path(folder if resource is None else resource)
        return f"{key_prefix}-{folder}-{workspace_python_path}"

    def get_store(self, key_prefix: str, resource: Resource) -> ResourceStore:
        key = self.get_cache_key(key_prefix, resource)
        if key not in self._stores:
            self._stores[key] = ResourceStore(self.clock)
        return self._stores[key]

    def clear(self) -> None:
        self._stores.clear()

    def __len__(self) -> int:
        return len(self._stores)


class InterpreterSpecificCache(Generic[T]):
    """View on a single cached call: ``args[0]`` is the resource, the remaining arguments form the entry key."""

    def __init__(self, cache: ResourceCache, key_prefix: str, expiry_duration_ms: float, args: Sequence[Any]) -> None:
        self._cache = cache
        self._key_prefix = key_prefix
        self._expiry_duration_ms = expiry_duration_ms
        self._resource: Resource = args[0] if args else None
        self._key = signature_key(args[1:])

    @property
    def _store(self) -> ResourceStore:
        return self._cache.get_store(self._key_prefix, self._resource)

    @property
    def has_data(self) -> bool:
        return self._store.has(self._key)

    @property
    def data(self) -> T | None:
        """Cached value, ``None`` if there is none; use :attr:`has_data` to tell a cached ``None`` apart."""
        return self._store.get(self._key)

    @data.setter
    def data(self, value: T | None) -> None:
        self._store.set(self._key, value, self._expiry_duration_ms)

    def clear(self) -> None:
        self._store.clear_one(self._key)


def cache_resource_specific_data(
    key_prefix: str,
    expiry_duration_ms: float,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Cache the result of an async method per resource context.

    The instance must expose a :class:`ResourceCache` as ``resource_cache``; the method takes the resource as its
    first parameter. Calls are bound against the method signature, so passing an argument by keyword or leaving it at
    its default hits the same entry as passing it positionally. Failures are not cached.

    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            call_args = (*bound.args[1:], *sorted(bound.kwargs.items()))
            cache: InterpreterSpecificCache[T] = InterpreterSpecificCache(
                self.resource_cache, key_prefix, expiry_duration_ms, call_args
            )
            if cache.has_data:
                resource = call_args[0] if call_args else None
                LOGGER.debug("cached data exists %s, %s", key_prefix, resource if resource else "<no resource>")
                return cache.data  # type: ignore[return-value]
            result = await func(*bound.args, **bound.kwargs)
            cache.data = result
            return result

        return wrapper

    return decorator


def clear_cached_resource_specific_data(cache: ResourceCache, key_prefix: str, resource: Resource) -> None:
    """Drop every entry cached under ``key_prefix`` for the context of ``resource``."""
    LOGGER.debug("clear cached %s for %s", key_prefix, resource if resource else "<no resource>")
    cache.get_store(key_prefix, resource).clear()


__all__ = [
    "ARG_SEPARATOR",
    "CacheData",
    "InterpreterSpecificCache",
    "ResourceCache",
    "ResourceStore",
    "cache_resource_specific_data",
    "clear_cached_resource_specific_data",
    "signature_key",
]
