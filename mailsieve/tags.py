"""Ordered key/value tag store attached to each mail, plus standard tag sets."""

from __future__ import annotations

import email.utils
from datetime import datetime
from fnmatch import fnmatchcase
from typing import Iterator


class Tags:
    """An ordered set of string tags.

    Adding a key that already exists replaces its value in place, so the
    order of first insertion is kept.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def add(self, key: str, value: object) -> None:
        """Set ``key`` to the string form of ``value``."""
        self._entries[key] = str(value)

    def find(self, key: str) -> str | None:
        """Return the value of ``key``, or None if it is not set."""
        return self._entries.get(key)

    def match(self, pattern: str) -> str | None:
        """Return the value of the first key matching the shell pattern."""
        for key, value in self._entries.items():
            if fnmatchcase(key, pattern):
                return value
        return None

    def clear(self) -> None:
        """Remove every tag."""
        self._entries.clear()

    def dump(self, prefix: str) -> Iterator[str]:
        """Yield one ``prefix: key: value`` line per tag, in order."""
        for key, value in self._entries.items():
            yield f"{prefix}: {key}: {value}"

    def items(self) -> list[tuple[str, str]]:
        return list(self._entries.items())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Tags({self._entries!r})"


def default_tags(
    tags: Tags,
    source: str | None = None,
    host_name: str | None = None,
    now: datetime | None = None,
) -> None:
    """Reset ``tags`` to the standard set: source, host name and date fields."""
    tags.clear()
    if source is not None:
        tags.add("source", source)
    if host_name is not None:
        tags.add("hostname", host_name)

    if now is None:
        now = datetime.now()
    tm = now.timetuple()
    tags.add("hour", f"{tm.tm_hour:02d}")
    tags.add("minute", f"{tm.tm_min:02d}")
    tags.add("second", f"{tm.tm_sec:02d}")
    tags.add("day", f"{tm.tm_mday:02d}")
    tags.add("month", f"{tm.tm_mon:02d}")
    tags.add("year", f"{tm.tm_year:04d}")
    tags.add("year2", f"{tm.tm_year % 100:02d}")
    # Sunday is day 0 of the week.
    tags.add("dayofweek", str(now.isoweekday() % 7))
    tags.add("dayofyear", f"{tm.tm_yday:02d}")
    tags.add("quarter", str((tm.tm_mon - 1) // 3 + 1))
    tags.add("rfc822date", email.utils.format_datetime(now.astimezone()))


def update_tags(tags: Tags, name: str, home: str, uid: int, gid: int) -> None:
    """Record the user a delivery runs as."""
    tags.add("user", name)
    tags.add("home", home)
    tags.add("uid", uid)
    tags.add("gid", gid)


def reset_tags(tags: Tags) -> None:
    """Blank the user tags set by :func:`update_tags`."""
    for key in ("user", "home", "uid", "gid"):
        tags.add(key, "")