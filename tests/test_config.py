import pytest

from mailsieve.config import (
    MAX_NAME_SIZE,
    ConfigError,
    Macro,
    MacroType,
    extract_macro,
    find_macro,
    fmt_strings,
)


def test_string_macro():
    assert extract_macro("$dir=/var/mail") == Macro("$dir", MacroType.STRING, "/var/mail")


def test_string_macro_without_value():
    assert extract_macro("$dir") == Macro("$dir", MacroType.STRING, "")


def test_string_macro_keeps_later_equals():
    assert extract_macro("$x=a=b").value == "a=b"


def test_number_macro():
    assert extract_macro("%count=42") == Macro("%count", MacroType.NUMBER, 42)


def test_number_macro_without_value():
    assert extract_macro("%count").value == 0


@pytest.mark.parametrize(
    "text, reason",
    [("%n=abc", "invalid"), ("%n=", "invalid"), ("%n=-1", "too small"),
     ("%n=99999999999999999999", "too large")],
)
def test_number_macro_errors(text, reason):
    with pytest.raises(ConfigError, match=f"number is {reason}"):
        extract_macro(text)


def test_invalid_macro():
    with pytest.raises(ConfigError, match="invalid macro: name"):
        extract_macro("name=value")


def test_macro_name_too_long():
    with pytest.raises(ConfigError, match="macro name too long"):
        extract_macro("$" + "x" * MAX_NAME_SIZE + "=v")


def test_find_macro():
    macros = [extract_macro("$a=1"), extract_macro("%b=2"), extract_macro("$a=3")]
    assert find_macro(macros, "%b").value == 2
    assert find_macro(macros, "$a").value == "1"
    assert find_macro(macros, "$missing") is None


def test_fmt_strings():
    assert fmt_strings(" users=", ["alice", "bob"]) == ' users="alice" "bob"'


def test_fmt_strings_empty_prefix_and_list():
    assert fmt_strings("", []) == ""


def test_fmt_strings_no_items_drops_last_prefix_char():
    prefix = " users="
    assert fmt_strings(prefix, []) == prefix[:-1]


def test_fmt_strings_item_count_invariant():
    items = ["a", "b", "c"]
    result = fmt_strings("", items)
    assert result.count('"') == 2 * len(items)
    assert result.split(" ") == [f'"{item}"' for item in items]