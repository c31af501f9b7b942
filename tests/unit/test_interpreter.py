from __future__ import annotations

import pytest
from packaging.version import Version

from interpreter_autoselect import Interpreter, compare_versions, get_best_interpreter, parse_version


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("3.12.1", Version("3.12.1")),
        ("3.13.0rc1", Version("3.13.0rc1")),
        ("3.7.0-final", Version("3.7.0")),
        ("v3.9", Version("3.9")),
        ("unknown", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_version(raw, expected):
    assert parse_version(raw) == expected


def test_compare_versions():
    assert compare_versions("2.0", "1.5") > 0
    assert compare_versions("2.0", "2.1") < 0
    assert compare_versions("3.10", "3.10.0") == 0
    assert compare_versions("3.10", "3.9") > 0
    assert compare_versions(None, "3.9") is None
    assert compare_versions("3.9", "garbage") is None


def test_best_interpreter_prefers_newest():
    old, new = Interpreter("/a", "3.8"), Interpreter("/b", "3.12")
    assert get_best_interpreter([old, new]) == new


def test_best_interpreter_ranks_unversioned_lowest():
    unknown, known = Interpreter("/a"), Interpreter("/b", "2.7")
    assert get_best_interpreter([unknown, known]) == known
    assert get_best_interpreter([unknown]) == unknown


def test_best_interpreter_tie_keeps_first():
    first, second = Interpreter("/a", "3.11"), Interpreter("/b", "3.11")
    assert get_best_interpreter([first, second]) == first


def test_best_interpreter_of_nothing():
    assert get_best_interpreter([]) is None
    assert get_best_interpreter([None, None]) is None


def test_round_trip_through_dict():
    interpreter = Interpreter("/bin/python", "3.12.0", display_name="Python 3.12", env_type="system")
    assert Interpreter.from_dict(interpreter.to_dict()) == interpreter


def test_from_dict_ignores_unknown_keys():
    assert Interpreter.from_dict({"path": "/bin/python", "sysPrefix": "/usr"}) == Interpreter("/bin/python")


@pytest.mark.parametrize("data", [None, {}, {"version": "3.12"}, {"path": ""}, {"path": 3}])
def test_from_dict_without_path(data):
    assert Interpreter.from_dict(data) is None


def test_is_virtual_env():
    assert Interpreter("/p", env_type="Venv").is_virtual_env
    assert not Interpreter("/p", env_type="system").is_virtual_env
    assert not Interpreter("/p").is_virtual_env
