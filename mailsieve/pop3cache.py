"""The file of POP3 UIDs already seen, kept between runs."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from typing import Iterable

_SPACE = b" \t\n\v\f\r"


class CacheError(Exception):
    """The cache file could not be read or written, or is malformed."""


@dataclass(order=True)
class Pop3Mail:
    """A mail on a POP3 server: its UID and its index in the mailbox.

    Mails compare and sort by UID only.
    """

    uid: str
    idx: int = field(default=0, compare=False)


def _skip_space(raw: bytes, pos: int) -> int:
    while pos < len(raw) and raw[pos] in _SPACE:
        pos += 1
    return pos


def load_cache(path: str | None) -> set[str]:
    """Read the UIDs in the cache file; a missing file holds none.

    Each entry is the UID's length in bytes, a space, then the UID.
    """
    if path is None:
        return set()
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        return set()
    except OSError as exc:
        raise CacheError(f"{path}: {exc.strerror}") from exc

    uids: set[str] = set()
    pos = _skip_space(raw, 0)
    while pos < len(raw):
        start = pos
        while pos < len(raw) and raw[pos:pos + 1].isdigit():
            pos += 1
        if pos == start:
            raise CacheError(f"{path}: invalid cache entry")
        length = int(raw[start:pos])
        pos = _skip_space(raw, pos)
        uid = raw[pos:pos + length]
        if len(uid) != length:
            raise CacheError(f"{path}: invalid cache entry")
        uids.add(uid.decode("latin-1"))
        pos = _skip_space(raw, pos + length)
    return uids


def save_cache(path: str | None, uids: Iterable[str]) -> int:
    """Replace the cache file with ``uids`` in sorted order.

    The file is written beside the target and renamed into place, so a
    failure leaves the old cache intact. Returns the number of entries.
    """
    if path is None:
        return 0
    directory = os.path.dirname(path) or "."
    entries = sorted(set(uids))
    try:
        fd, tmp = tempfile.mkstemp(
            prefix=f"{os.path.basename(path)}.", dir=directory
        )
    except OSError as exc:
        raise CacheError(f"{path}: {exc.strerror}") from exc
    try:
        with os.fdopen(fd, "wb") as f:
            for uid in entries:
                encoded = uid.encode("latin-1")
                f.write(b"%d %s\n" % (len(encoded), encoded))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as exc:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise CacheError(f"{path}: {exc.strerror}") from exc
    return len(entries)