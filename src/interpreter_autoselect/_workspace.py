"""Workspace, configuration and file-system capabilities consumed by the auto-selection pipeline."""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

from ._compat import fs_path_id, is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

#: a file or folder used to find the owning workspace; ``None`` means the global context
Resource = Union[str, "os.PathLike[str]", None]


@runtime_checkable
class WorkspaceService(Protocol):
    """Synchronous view of the open workspace folders and the configured interpreter path."""

    @property
    def workspace_folders(self) -> Sequence[str]: ...

    def get_workspace_folder(self, resource: Resource) -> str | None: ...

    def get_python_path(self, resource: Resource = None) -> str | None: ...

    def get_workspace_python_path(self, resource: Resource) -> str | None: ...


@runtime_checkable
class FileSystem(Protocol):
    async def path_exists(self, path: str) -> bool: ...


class LocalFileSystem:
    """File system access through the local disk, off the event loop."""

    async def path_exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)


class StaticWorkspace:
    """In-process workspace: a fixed list of folders plus global and per-folder interpreter settings."""

    def __init__(
        self,
        folders: Iterable[str | os.PathLike[str]] = (),
        python_path: str | None = None,
        folder_python_paths: Mapping[str | os.PathLike[str], str] | None = None,
    ) -> None:
        self._folders: list[str] = [normalize_path(folder) for folder in folders]
        self._python_path = python_path
        self._folder_python_paths: dict[str, str] = {}
        for folder, value in (folder_python_paths or {}).items():
            self.set_python_path(value, folder)

    @property
    def workspace_folders(self) -> Sequence[str]:
        return tuple(self._folders)

    def add_folder(self, folder: str | os.PathLike[str]) -> None:
        path = normalize_path(folder)
        if path not in self._folders:
            self._folders.append(path)

    def get_workspace_folder(self, resource: Resource) -> str | None:
        """:returns: the innermost workspace folder containing ``resource``, if any"""
        if resource is None:
            return None
        owner: str | None = None
        for folder in self._folders:
            if is_within(resource, folder) and (owner is None or len(folder) > len(owner)):
                owner = folder
        return owner

    def get_python_path(self, resource: Resource = None) -> str | None:
        workspace_value = self.get_workspace_python_path(resource)
        return self._python_path if workspace_value is None else workspace_value

    def get_workspace_python_path(self, resource: Resource) -> str | None:
        folder = self.get_workspace_folder(resource)
        return None if folder is None else self._folder_python_paths.get(fs_path_id(folder))

    def set_python_path(self, value: str | None, resource: Resource = None) -> None:
        """Update the global setting, or the folder-level one when ``resource`` lies in a workspace folder."""
        if resource is None:
            self._python_path = value
            return
        folder = self.get_workspace_folder(resource)
        if folder is None:
            msg = f"{os.fspath(resource)} is not inside a workspace folder"
            raise ValueError(msg)
        if value is None:
            self._folder_python_paths.pop(fs_path_id(folder), None)
        else:
            self._folder_python_paths[fs_path_id(folder)] = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(folders={self._folders!r}, python_path={self._python_path!r})"


__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "Resource",
    "StaticWorkspace",
    "WorkspaceService",
]
