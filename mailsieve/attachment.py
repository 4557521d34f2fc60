"""Conditions on the attachments of a mail."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Iterator

from .match import Cmp, MailContext, MatchError


@dataclass
class Attachment:
    """One MIME part of a mail, with the parts nested inside it."""

    type: str | None = None
    name: str | None = None
    size: int = 0
    children: list[Attachment] = field(default_factory=list)

    def walk(self) -> Iterator[Attachment]:
        """Yield this part and every nested part, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class AttachOp(enum.Enum):
    COUNT = "count"
    TOTAL_SIZE = "total-size"
    ANY_SIZE = "any-size"
    ANY_TYPE = "any-type"
    ANY_NAME = "any-name"


def _compare(cmp: Cmp, left: int, right: int, allowed: tuple[Cmp, ...]) -> bool:
    if cmp not in allowed:
        raise MatchError(f"comparison {cmp.value} not allowed here")
    if cmp is Cmp.LT:
        return left < right
    if cmp is Cmp.GT:
        return left > right
    if cmp is Cmp.EQ:
        return left == right
    return left != right


def _casefold_match(value: str, pattern: str) -> bool:
    return fnmatchcase(value.lower(), pattern.lower())


@dataclass
class AttachmentMatch:
    """Test the count, sizes, types or names of a mail's attachments.

    ``value`` is a number for the count and size operations and a shell
    pattern, with %-escapes, for the type and name operations.
    """

    op: AttachOp
    cmp: Cmp | None = None
    value: int | str = 0

    def match(self, ctx: MailContext) -> bool:
        root = ctx.mail.attachments
        parts = list(root.walk()) if root is not None else []

        if self.op is AttachOp.COUNT:
            return _compare(
                self._cmp(), len(parts), int(self.value),
                (Cmp.EQ, Cmp.NE, Cmp.LT, Cmp.GT),
            )
        if self.op is AttachOp.TOTAL_SIZE:
            total = sum(part.size for part in parts)
            return _compare(
                self._cmp(), total, int(self.value), (Cmp.LT, Cmp.GT)
            )

        if not parts:
            return False

        if self.op is AttachOp.ANY_SIZE:
            cmp = self._cmp()
            return any(
                _compare(cmp, part.size, int(self.value), (Cmp.LT, Cmp.GT))
                for part in parts
            )

        pattern = ctx.expand(str(self.value)) or ""
        if self.op is AttachOp.ANY_TYPE:
            return any(
                part.type is not None and _casefold_match(part.type, pattern)
                for part in parts
            )
        return any(
            part.name is not None and _casefold_match(part.name, pattern)
            for part in parts
        )

    def _cmp(self) -> Cmp:
        if self.cmp is None:
            raise MatchError(f"attachment {self.op.value} needs a comparison")
        return self.cmp

    def describe(self) -> str:
        op = self.cmp.value if self.cmp is not None else ""
        if self.op in (AttachOp.ANY_TYPE, AttachOp.ANY_NAME):
            return f'attachment {self.op.value} "{self.value}"'
        return f"attachment {self.op.value} {op} {self.value}"