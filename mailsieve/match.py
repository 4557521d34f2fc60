"""Conditions that rules test against a mail: size, regexps, tags and caches."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Container, Mapping

from .regex import Regex, Submatches
from .replace import replace
from .tags import Tags

if TYPE_CHECKING:
    from .attachment import Attachment


class MatchError(Exception):
    """A condition could not be evaluated."""


class Cmp(enum.Enum):
    """Comparison operators; the value is the operator as written."""

    LT = "<"
    GT = ">"
    EQ = "=="
    NE = "!="


class Area(enum.Enum):
    """The part of a mail a regexp is matched against."""

    BODY = "body"
    HEADERS = "headers"
    ANY = "any"


@dataclass
class Mail:
    """A mail being filtered.

    ``body`` is the offset where the body starts, 0 if the mail has none.
    ``submatches`` holds the spans of the last regexp match against it.
    """

    data: bytearray = field(default_factory=bytearray)
    body: int = 0
    tags: Tags = field(default_factory=Tags)
    submatches: Submatches | None = None
    attachments: Attachment | None = None

    def __post_init__(self) -> None:
        self.data = bytearray(self.data)

    @property
    def size(self) -> int:
        return len(self.data)

    def append_line(self, line: str | bytes) -> None:
        """Append ``line`` followed by a newline."""
        if isinstance(line, str):
            line = line.encode("latin-1")
        self.data += line
        self.data += b"\n"


@dataclass
class MailContext:
    """What a condition sees while a mail passes through the rules."""

    mail: Mail
    account: str = ""
    matched: bool = False
    caches: Mapping[str, Container[str]] = field(default_factory=dict)
    strip_chars: str = ""

    def expand(self, template: str | None) -> str | None:
        """Expand %-escapes in ``template`` using this mail."""
        mail = self.mail
        return replace(
            template, mail.tags, bytes(mail.data), mail.submatches,
            self.strip_chars,
        )


@dataclass
class SizeMatch:
    """True if the mail is smaller or larger than ``size`` bytes."""

    size: int
    cmp: Cmp

    def match(self, ctx: MailContext) -> bool:
        size = ctx.mail.size
        if self.cmp is Cmp.LT:
            return size < self.size
        if self.cmp is Cmp.GT:
            return size > self.size
        return False

    def describe(self) -> str:
        op = self.cmp.value if self.cmp in (Cmp.LT, Cmp.GT) else ""
        return f"size {op} {self.size}"


@dataclass
class StringMatch:
    """True if the expanded ``template`` matches ``regex``."""

    template: str
    regex: Regex

    def match(self, ctx: MailContext) -> bool:
        text = ctx.expand(self.template) or ""
        return self.regex.matches(text)

    def describe(self) -> str:
        return f'string "{self.template}" to "{self.regex.pattern}"'


@dataclass
class RegexpMatch:
    """True if ``regex`` is found in the chosen area of the mail.

    A successful search records its submatches on the mail.
    """

    regex: Regex
    area: Area = Area.ANY

    def match(self, ctx: MailContext) -> bool:
        mail = ctx.mail
        start, end = 0, mail.size
        if self.area is Area.HEADERS:
            if mail.body == 0:
                return False
            end = mail.body
        elif self.area is Area.BODY:
            start = mail.body
        mail.submatches = self.regex.search(bytes(mail.data[start:end]))
        return mail.submatches is not None

    def describe(self) -> str:
        return f'regexp "{self.regex.pattern}" in {self.area.value}'


@dataclass
class TaggedMatch:
    """True if any tag name matches the expanded shell pattern."""

    tag: str

    def match(self, ctx: MailContext) -> bool:
        pattern = ctx.expand(self.tag) or ""
        return ctx.mail.tags.match(pattern) is not None

    def describe(self) -> str:
        return f"tagged {self.tag}"


@dataclass
class MatchedMatch:
    """True if an earlier rule has matched the mail."""

    def match(self, ctx: MailContext) -> bool:
        return ctx.matched

    def describe(self) -> str:
        return "matched"


@dataclass
class UnmatchedMatch:
    """True if no earlier rule has matched the mail."""

    def match(self, ctx: MailContext) -> bool:
        return not ctx.matched

    def describe(self) -> str:
        return "unmatched"


@dataclass
class InCacheMatch:
    """True if the expanded ``key`` is in the cache declared at ``path``."""

    path: str
    key: str

    def match(self, ctx: MailContext) -> bool:
        key = ctx.expand(self.key)
        if not key:
            raise MatchError(f"{ctx.account}: empty key")
        cache = ctx.caches.get(self.path)
        if cache is None:
            raise MatchError(f"{ctx.account}: cache {self.path} not declared")
        return key in cache

    def describe(self) -> str:
        return f'in-cache "{self.path}" key "{self.key}"'