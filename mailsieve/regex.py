"""Regular expressions matched against mail text, with submatch spans."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

# Number of submatches (the whole match plus nine groups) that are recorded.
NPMATCH = 10


class RegexError(Exception):
    """A pattern could not be compiled."""


class RegexFlag(enum.IntFlag):
    NONE = 0
    NOSUBST = 1
    IGNCASE = 2


@dataclass(frozen=True)
class Submatches:
    """Spans of a successful match: group 0 is the whole match."""

    spans: tuple[tuple[int, int], ...] = ()

    def group(self, index: int) -> tuple[int, int] | None:
        """Return the (start, end) of submatch ``index``, or None."""
        if 0 <= index < len(self.spans):
            return self.spans[index]
        return None

    def __len__(self) -> int:
        return len(self.spans)


def _as_text(data: str | bytes) -> str:
    # Latin-1 keeps offsets identical to byte offsets.
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("latin-1")
    return data


class Regex:
    """A compiled pattern; ``^`` and ``$`` match at every line boundary.

    An empty pattern matches only empty data.
    """

    def __init__(self, pattern: str, flags: RegexFlag = RegexFlag.NONE) -> None:
        if pattern is None:
            raise ValueError("null regexp")
        self.pattern = pattern
        self.flags = RegexFlag(flags)
        self._compiled: re.Pattern[str] | None = None
        if pattern == "":
            return
        reflags = re.MULTILINE
        if self.flags & RegexFlag.IGNCASE:
            reflags |= re.IGNORECASE
        try:
            self._compiled = re.compile(pattern, reflags)
        except re.error as exc:
            raise RegexError(f"{pattern}: {exc}") from exc

    def search(self, data: str | bytes) -> Submatches | None:
        """Search ``data``; return the submatches, or None if no match."""
        text = _as_text(data)
        if self._compiled is None:
            return Submatches() if text == "" else None
        found = self._compiled.search(text)
        if found is None:
            return None
        if self.flags & RegexFlag.NOSUBST:
            return Submatches()
        spans = []
        for index in range(min(self._compiled.groups + 1, NPMATCH)):
            start, end = found.span(index)
            if start == -1:
                break
            spans.append((start, end))
        return Submatches(tuple(spans))

    def matches(self, text: str | bytes) -> bool:
        """Return whether the pattern is found in ``text``."""
        return self.search(text) is not None

    def __repr__(self) -> str:
        return f"Regex({self.pattern!r}, {self.flags!r})"