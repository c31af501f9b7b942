"""The interpreter value object and version ordering used to pick between candidates."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, NamedTuple

from packaging.version import InvalidVersion, Version

if TYPE_CHECKING:
    from collections.abc import Iterable

LOGGER = logging.getLogger(__name__)

_RELEASE = re.compile(r"^\s*v?(?P<release>\d+(?:\.\d+)*)")

#: environment types that denote an isolated environment rather than a base install
VIRTUAL_ENV_TYPES = frozenset({"venv", "virtualenv", "pipenv", "conda", "poetry"})


class Interpreter(NamedTuple):
    """A discovered Python runtime, identified by its executable path."""

    path: str
    version: str | None = None
    display_name: str | None = None
    env_type: str | None = None

    @property
    def parsed_version(self) -> Version | None:
        return parse_version(self.version)

    @property
    def is_virtual_env(self) -> bool:
        return self.env_type is not None and self.env_type.lower() in VIRTUAL_ENV_TYPES

    def to_dict(self) -> dict[str, Any]:
        return self._asdict()

    @classmethod
    def from_dict(cls, data: Any) -> Interpreter | None:
        """Rebuild an interpreter from persisted state, ignoring keys it does not know about.

        :returns: the interpreter, or ``None`` if the data carries no usable path

        """
        if not isinstance(data, dict) or not isinstance(data.get("path"), str) or not data["path"]:
            return None
        return cls(**{key: value for key, value in data.items() if key in cls._fields})


def parse_version(raw: str | None) -> Version | None:
    """Parse an interpreter version string.

    Strings that are not valid PEP 440 versions (e.g. ``3.7.0-final``) fall back to their leading release
    number; anything else is treated as an unknown version.

    """
    if not raw:
        return None
    try:
        return Version(raw)
    except InvalidVersion:
        match = _RELEASE.match(raw)
        if match is None:
            LOGGER.debug("cannot parse interpreter version %r", raw)
            return None
        return Version(match["release"])


def compare_versions(left: str | None, right: str | None) -> int | None:
    """Compare two version strings.

    :returns: negative, zero or positive like ``cmp``, or ``None`` if either side is unknown

    """
    left_version, right_version = parse_version(left), parse_version(right)
    if left_version is None or right_version is None:
        return None
    return (left_version > right_version) - (left_version < right_version)


def get_best_interpreter(interpreters: Iterable[Interpreter | None]) -> Interpreter | None:
    """Pick the interpreter with the highest known version; unversioned ones rank lowest, ties keep the first."""
    best: Interpreter | None = None
    best_version: Version | None = None
    for interpreter in interpreters:
        if interpreter is None:
            continue
        version = interpreter.parsed_version
        if best is None or (version is not None and (best_version is None or version > best_version)):
            best, best_version = interpreter, version
    return best


__all__ = [
    "VIRTUAL_ENV_TYPES",
    "Interpreter",
    "compare_versions",
    "get_best_interpreter",
    "parse_version",
]
