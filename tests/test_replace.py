import pwd

import pytest

from mailsieve.regex import Regex
from mailsieve.replace import expand_path, replace, replace_path
from mailsieve.tags import Tags


@pytest.fixture
def tags():
    t = Tags()
    t.add("account", "work")
    t.add("user", "alice")
    t.add("home", "/home/alice")
    t.add("dotted", "a.b.c")
    t.add("year", "2024")
    return t


def test_none_and_empty(tags):
    assert replace(None, tags) is None
    assert replace("", tags) == ""


def test_plain_text_unchanged(tags):
    assert replace("no escapes here", tags) == "no escapes here"


def test_percent_escape(tags):
    assert replace("100%%", tags) == "100%"


def test_named_tag(tags):
    assert replace("acct=%[account]", tags) == "acct=work"


def test_missing_tag_is_dropped(tags):
    assert replace("x%[nothing]y", tags) == "xy"


def test_empty_tag_name_dropped(tags):
    assert replace("x%[]y", tags) == "xy"


def test_unterminated_bracket_kept(tags):
    assert replace("x%[abc", tags) == "x%[abc"


def test_aliases(tags):
    assert replace("%a/%u/%y", tags) == "work/alice/2024"


def test_unknown_alias_dropped(tags):
    assert replace("a%zb%?c", tags) == "abc"


def test_trailing_percent_dropped(tags):
    assert replace("abc%", tags) == "abc"


def test_colon_non_digit_is_literal(tags):
    assert replace("%:x", tags) == "x"


def test_strip_chars_applied(tags):
    assert replace("%[dotted]", tags, strip_chars=".") == "abc"


def test_colon_disables_strip_for_rest(tags):
    assert replace("%[dotted]%[:dotted]", tags, strip_chars=".") == "abca.b.c"
    assert replace("%[:dotted]%[dotted]", tags, strip_chars=".") == "a.b.ca.b.c"


def test_submatches(tags):
    data = b"From: bob@example.com\n"
    found = Regex("From: ([^@]+)@(.*)$").search(data)
    assert replace("%1 at %2", tags, data, found) == "bob at example.com"
    assert replace("%0", tags, data, found) == "From: bob@example.com"


def test_colon_submatch_not_stripped(tags):
    data = "x.y"
    found = Regex("(.*)").search(data)
    assert replace("%1", tags, data, found, strip_chars=".") == "xy"
    assert replace("%:1", tags, data, found, strip_chars=".") == "x.y"


def test_submatch_without_data_dropped(tags):
    assert replace("a%1b", tags) == "ab"
    found = Regex("(x)").search("x")
    assert replace("a%5b", tags, "x", found) == "ab"


def test_expand_path_home(tags):
    assert expand_path("~", "/home/alice") == "/home/alice"
    assert expand_path("  ~/mail", "/home/alice") == "/home/alice/mail"
    assert expand_path("/var/mail", "/home/alice") is None


def test_expand_path_other_user():
    entry = pwd.getpwuid(0)
    assert expand_path(f"~{entry.pw_name}", "/h") == entry.pw_dir
    assert expand_path(f"~{entry.pw_name}/x", "/h") == f"{entry.pw_dir}/x"


def test_expand_path_unknown_user():
    assert expand_path("~no_such_user_zz9/x", "/h") is None


def test_replace_path(tags):
    assert replace_path("~/%a", tags, home="/home/alice") == "/home/alice/work"
    assert replace_path("/var/%u", tags, home="/home/alice") == "/var/alice"
    assert replace_path(None, tags) is None