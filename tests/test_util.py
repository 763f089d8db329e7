import os

import pytest

from scopestate.util import (
    average,
    enum_parse,
    is_blank,
    list_difference,
    replace_env_var_references,
    trim_lines,
    unindent,
)


def test_replace_env_var_references():
    scss = "$test: ${USER};"
    assert replace_env_var_references(scss) == f"$test: {os.environ.get('USER', '')};"


def test_replace_env_var_references_with_set_variable(monkeypatch):
    monkeypatch.setenv("SCOPESTATE_COLOR", "red")
    assert replace_env_var_references("a: ${SCOPESTATE_COLOR};") == "a: red;"


def test_replace_env_var_references_missing_variable(monkeypatch):
    monkeypatch.delenv("SCOPESTATE_MISSING", raising=False)
    assert replace_env_var_references("x${SCOPESTATE_MISSING}y") == "xy"


def test_unindent():
    indented = """
            line one
            line two"""
    assert unindent(indented) == "line one\nline two"


def test_unindent_keeps_relative_indentation():
    assert unindent("\n    a\n      b\n    c") == "a\n  b\nc"


def test_unindent_empty():
    assert unindent("") == ""


def test_list_difference():
    missing, new = list_difference([1, 2, 3], [2, 3, 4, 5])
    assert missing == [1]
    assert new == [4, 5]


def test_list_difference_identical_lists():
    assert list_difference(["a", "b"], ["b", "a"]) == ([], [])


def test_is_blank():
    assert is_blank("  \n \n\t")
    assert is_blank("")
    assert not is_blank("\n x \n")


def test_trim_lines():
    assert trim_lines("  a  \n\tb\n c ") == "a\nb\nc"


def test_trim_lines_drops_final_newline():
    assert trim_lines(" a \n") == "a"


def test_average():
    assert average([1.0, 2.0, 3.0]) == pytest.approx(2.0)


def test_average_of_generator():
    assert average(x / 2 for x in [2.0, 4.0]) == pytest.approx(1.5)


def test_average_of_nothing_is_nan():
    result = average([])
    assert str(result) == "nan"


def test_enum_parse_matches_case_insensitively():
    options = {"up": "UP", "down": "DOWN"}
    assert enum_parse("direction", "Up", options) == "UP"
    assert enum_parse("direction", "down", options) == "DOWN"


def test_enum_parse_alternatives():
    options = {("top", "t"): 1, "bottom": 2}
    assert enum_parse("side", "T", options) == 1


def test_enum_parse_error_lists_options():
    with pytest.raises(ValueError) as info:
        enum_parse("direction", "Left", {"up": 1, "down": 2})
    assert str(info.value) == "Couldn't parse direction: 'left'. Possible values are up down "