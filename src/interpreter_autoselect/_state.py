"""Persistent key/value state surviving process restarts, and the in-memory stand-in."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager, suppress
from hashlib import sha256
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class PersistentStateStore(Protocol):
    """Global (not workspace specific) durable storage of JSON serializable values."""

    async def load_global_value(self, key: str, default: Any = None) -> Any: ...

    async def update_global_value(self, key: str, value: Any) -> None: ...


class MemoryStateStore:
    """State that lives as long as the object -- used when persistence is disabled and in tests."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    async def load_global_value(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    async def update_global_value(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._values


class DiskStateFile:
    """One state value on disk, stored as ``{"key": ..., "value": ...}`` JSON next to its lock file.

    The file name is the sha256 of the key; the key inside the file is checked on load, a mismatch reads as missing.

    """

    def __init__(self, folder: Path, key: str) -> None:
        self.key = key
        self.path = folder / f"{sha256(key.encode('utf-8')).hexdigest()}.json"

    def load(self, default: Any = None) -> Any:
        with self._locked():
            content = self._read()
        if not isinstance(content, dict) or content.get("key") != self.key or "value" not in content:
            return default
        LOGGER.debug("got state %s from %s", self.key, self.path)
        return content["value"]

    def store(self, value: Any) -> None:
        with self._locked():
            self.path.write_text(json.dumps({"key": self.key, "value": value}, sort_keys=True, indent=2), "utf-8")
        LOGGER.debug("wrote state %s at %s", self.key, self.path)

    def _read(self) -> Any:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            pass
        except ValueError:
            LOGGER.debug("discard malformed state at %s", self.path)
            with suppress(OSError):
                self.path.unlink()
        except OSError:
            LOGGER.debug("failed to read %s", self.path, exc_info=True)
        return None

    @contextmanager
    def _locked(self) -> Generator[None]:
        from filelock import FileLock  # noqa: PLC0415

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(str(self.path.with_suffix(".lock"))):
            yield


class DiskStateStore:
    """File-system backed state store, one :class:`DiskStateFile` per key under ``<root>/state``.

    Disk access runs in a worker thread so the event loop is never blocked on the file lock.

    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def state_file(self, key: str) -> DiskStateFile:
        return DiskStateFile(self.root / "state", key)

    async def load_global_value(self, key: str, default: Any = None) -> Any:
        return await asyncio.to_thread(self.state_file(key).load, default)

    async def update_global_value(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self.state_file(key).store, value)


class PersistentState(Generic[T]):
    """One keyed value of a :class:`PersistentStateStore`, mirrored in memory after :meth:`load`.

    ``value`` is a plain attribute read so callers on synchronous paths never touch the backend. ``encode`` and
    ``decode`` convert between the in-memory value and its JSON form.

    """

    def __init__(
        self,
        store: PersistentStateStore,
        key: str,
        default: T | None = None,
        *,
        encode: Callable[[T], Any] | None = None,
        decode: Callable[[Any], T | None] | None = None,
    ) -> None:
        self._store = store
        self.key = key
        self._default = default
        self._encode = encode
        self._decode = decode
        self._value: T | None = default
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def value(self) -> T | None:
        return self._value

    async def load(self) -> T | None:
        if not self._loaded:
            raw = await self._store.load_global_value(self.key, None)
            if raw is None:
                self._value = self._default
            else:
                self._value = raw if self._decode is None else self._decode(raw)
            self._loaded = True
        return self._value

    async def update_value(self, value: T | None) -> None:
        self._value = value
        self._loaded = True
        raw = value if value is None or self._encode is None else self._encode(value)
        await self._store.update_global_value(self.key, raw)


__all__ = [
    "DiskStateFile",
    "DiskStateStore",
    "MemoryStateStore",
    "PersistentState",
    "PersistentStateStore",
]
