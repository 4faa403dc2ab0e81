from __future__ import annotations

from psr.core.structured import (
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_raw_str,
    get_str,
    get_str_list,
    get_table,
)


def test_as_str_dict_rejects_non_string_keys() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict({1: "a"}) is None
    assert as_str_dict([1]) is None


def test_as_obj_list() -> None:
    assert as_obj_list([1, "a"]) == [1, "a"]
    assert as_obj_list({"a": 1}) is None


def test_get_str_strips_and_drops_empty() -> None:
    data: dict[str, object] = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(data, "a") == "x"
    assert get_str(data, "b") is None
    assert get_str(data, "c") is None
    assert get_str(data, "missing") is None


def test_get_raw_str_keeps_whitespace() -> None:
    assert get_raw_str({"body": "  notes\n"}, "body") == "  notes\n"


def test_get_int_rejects_bool() -> None:
    assert get_int({"n": 7}, "n") == 7
    assert get_int({"n": True}, "n") is None
    assert get_int({"n": "7"}, "n") is None


def test_get_bool_and_table() -> None:
    data: dict[str, object] = {"merged": False, "user": {"login": "octo"}}
    assert get_bool(data, "merged") is False
    assert get_table(data, "user") == {"login": "octo"}
    assert get_table(data, "merged") is None


def test_get_str_list() -> None:
    assert get_str_list({"p": ["*.psd1", " ", "*.psm1"]}, "p") == ["*.psd1", "*.psm1"]
    assert get_str_list({"p": ["*.psd1", 3]}, "p") is None
    assert get_str_list({}, "p") is None
