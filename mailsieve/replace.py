"""Expansion of %-escapes in configuration strings and ``~`` in paths."""

from __future__ import annotations

from .regex import Submatches
from .tags import Tags

try:
    import pwd
except ImportError:  # pragma: no cover - non-POSIX systems
    pwd = None

_ALIASES = {
    "a": "account",
    "d": "day",
    "h": "home",
    "m": "month",
    "n": "uid",
    "s": "source",
    "t": "action",
    "u": "user",
    "y": "year",
    "H": "hour",
    "M": "minute",
    "Q": "quarter",
    "S": "second",
    "W": "dayofweek",
    "Y": "dayofyear",
}

_DIGITS = "0123456789"


def _submatch(
    digit: str, data: str | bytes | None, submatches: Submatches | None
) -> str | None:
    if submatches is None or data is None:
        return None
    span = submatches.group(int(digit))
    if span is None:
        return None
    piece = data[span[0]:span[1]]
    if isinstance(piece, (bytes, bytearray)):
        return bytes(piece).decode("latin-1")
    return piece


def replace(
    template: str | None,
    tags: Tags,
    data: str | bytes | None = None,
    submatches: Submatches | None = None,
    strip_chars: str = "",
) -> str | None:
    """Expand %-escapes in ``template``.

    ``%%`` is a literal percent, ``%[name]`` a tag, ``%0``..``%9`` a
    submatch of ``data``, and single letters are aliases for common tags.
    Characters in ``strip_chars`` are removed from substituted values
    unless the escape is written ``%[:name]`` or ``%:N``, after which
    stripping stays off for the rest of the template.
    """
    if template is None:
        return None

    out: list[str] = []
    strip = True
    length = len(template)
    i = 0
    while i < length:
        char = template[i]
        if char != "%":
            out.append(char)
            i += 1
            continue

        i += 1
        if i >= length:
            break
        ch = template[i]

        if ch == "%":
            out.append("%")
            i += 1
            continue

        if ch == "[":
            end = template.find("]", i)
            if end == -1:
                out.append("%[")
                i += 1
                continue
            start = i + 1
            if template[start] == ":":
                strip = False
                start += 1
            i = end + 1
            if start >= end:
                continue
            value = tags.find(template[start:end])
            if value is None:
                continue
        elif ch == ":":
            i += 1
            if i >= length:
                break
            ch = template[i]
            i += 1
            if ch not in _DIGITS:
                out.append(ch)
                continue
            value = _submatch(ch, data, submatches)
            if value is None:
                continue
            strip = False
        else:
            i += 1
            if ch in _DIGITS:
                value = _submatch(ch, data, submatches)
                if value is None:
                    continue
            else:
                alias = _ALIASES.get(ch)
                if alias is None:
                    continue
                value = tags.find(alias)
                if value is None:
                    continue

        if not value:
            continue
        if strip:
            value = "".join(c for c in value if c not in strip_chars)
        out.append(value)

    return "".join(out)


def expand_path(path: str, home: str) -> str | None:
    """Expand a leading ``~`` or ``~user``; None if nothing to expand."""
    src = path.lstrip()
    if not src.startswith("~"):
        return None

    if src == "~":
        return home
    if src[1] == "/":
        return f"{home}/{src[2:]}"

    user, slash, rest = src[1:].partition("/")
    if pwd is None:
        return None
    try:
        entry = pwd.getpwnam(user)
    except KeyError:
        return None
    if not entry.pw_dir:
        return None
    if not slash:
        return entry.pw_dir
    return f"{entry.pw_dir}/{rest}"


def replace_path(
    template: str | None,
    tags: Tags,
    data: str | bytes | None = None,
    submatches: Submatches | None = None,
    strip_chars: str = "",
    home: str = "",
) -> str | None:
    """Expand %-escapes in ``template``, then a leading ``~``."""
    expanded = replace(template, tags, data, submatches, strip_chars)
    if expanded is None:
        return None
    path = expand_path(expanded, home)
    return expanded if path is None else path