"""Fetching mail from a POP3 server, one protocol step at a time."""

from __future__ import annotations

import enum
import hashlib
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .match import Mail
from .pop3cache import Pop3Mail, load_cache, save_cache
from .tags import default_tags

# Longest UID accepted from the server.
_UID_MAX = 70

_STAT = re.compile(r"\+OK\s*(\d+)\s+(\d+)")
_LIST = re.compile(r"\+OK\s*(\d+)\s+(\d+)")
_UIDL = re.compile(r"\s*(\d+)")


class FetchResult(enum.Enum):
    """What a fetch step asks its caller to do next."""

    AGAIN = 1  # call again at once
    BLOCK = 2  # wait for more data from the server
    MAIL = 4  # a complete mail is in the context
    EXIT = 5  # the session is finished


class FetchFlag(enum.IntFlag):
    NONE = 0
    PURGE = 0x1
    EMPTY = 0x2
    POLL = 0x4


class FetchOnly(enum.Enum):
    NEW = "new"
    OLD = "old"
    ALL = "all"


class Pop3Error(Exception):
    """The server sent something unexpected or the mailbox is unusable."""


class _Connection(Protocol):
    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def start_tls(self) -> None: ...

    def getln(self) -> str | None: ...

    def putln(self, line: str) -> None: ...


@dataclass
class Pop3Account:
    """Settings of a POP3 account.

    ``path`` is the UID cache file; without one nothing is remembered
    between sessions.
    """

    name: str
    user: str
    password: str
    path: str | None = None
    only: FetchOnly = FetchOnly.ALL
    starttls: bool = False
    apop: bool = False
    uidl: bool = True
    source: str | None = None
    host_name: str | None = None
    server_host: str | None = None
    server_port: str | None = None
    max_size: int = 32 * 1024 * 1024


@dataclass
class FetchContext:
    """State shared between the fetch loop and the fetcher."""

    flags: FetchFlag = FetchFlag.NONE
    mail: Mail | None = None


@dataclass
class _FetchedMail(Mail):
    pop3: Pop3Mail | None = None
    drop: bool = False


_State = Callable[[FetchContext], FetchResult]


class Pop3Fetcher:
    """A POP3 session driven by repeated calls to :meth:`step`.

    Each mail returned with :attr:`FetchResult.MAIL` must be handed back
    to :meth:`commit`; setting its ``drop`` attribute first deletes it
    from the server.
    """

    def __init__(self, account: Pop3Account, connection: _Connection) -> None:
        self.account = account
        self.connection = connection
        self._state: _State = self._state_init
        self._serverq: dict[str, Pop3Mail] = {}
        self._cacheq: set[str] = set()
        self._wantq: list[Pop3Mail] = []
        self._dropq: deque[Pop3Mail] = deque()
        self._total = 0
        self._committed = 0
        self._cur = 0
        self._num = 0
        self._size = 0
        self._flushing = False
        self._current: Pop3Mail | None = None

    # Public interface.

    def step(self, ctx: FetchContext) -> FetchResult:
        """Run the current state once."""
        return self._state(ctx)

    def commit(self, mail: Mail) -> None:
        """Finish with a fetched mail: queue it for deletion or cache it."""
        if not isinstance(mail, _FetchedMail) or mail.pop3 is None:
            raise Pop3Error(f"{self.account.name}: mail not fetched here")
        aux = mail.pop3
        mail.pop3 = None
        if mail.drop:
            self._dropq.append(aux)
            return
        self._cacheq.add(aux.uid)
        self._committed += 1
        if self.account.only is not FetchOnly.OLD:
            self._save()

    def abort(self) -> None:
        """Forget every queue and disconnect."""
        self._serverq.clear()
        self._cacheq.clear()
        self._wantq.clear()
        self._dropq.clear()
        self.connection.disconnect()

    def total(self) -> int:
        """Return the number of mails to be fetched."""
        return self._total

    # Helpers.

    def _getln(self) -> str | None:
        return self.connection.getln()

    def _putln(self, line: str) -> None:
        self.connection.putln(line)

    def _bad(self, line: str) -> Pop3Error:
        return Pop3Error(f"{self.account.name}: unexpected data: {line}")

    def _invalid(self, line: str) -> Pop3Error:
        return Pop3Error(f"{self.account.name}: invalid response: {line}")

    def _okay_line(self) -> str | None:
        line = self._getln()
        if line is not None and not line.startswith("+OK"):
            raise self._bad(line)
        return line

    def _save(self) -> None:
        save_cache(self.account.path, self._cacheq)

    def _quit(self) -> FetchResult:
        self._putln("QUIT")
        self._state = self._state_quit
        return FetchResult.BLOCK

    # States.

    def _state_init(self, ctx: FetchContext) -> FetchResult:
        # Kept apart from connecting so reconnects keep the queues.
        self._serverq = {}
        self._cacheq = set()
        self._wantq = []
        self._dropq = deque()
        self._total = self._committed = 0
        self._state = self._state_connect
        return FetchResult.AGAIN

    def _state_connect(self, ctx: FetchContext) -> FetchResult:
        self.connection.connect()
        if self.account.starttls:
            self._state = self._state_starttls
        else:
            self._state = self._state_connected
        return FetchResult.BLOCK

    def _state_starttls(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self._putln("STLS")
        self._state = self._state_connected
        return FetchResult.BLOCK

    def _state_connected(self, ctx: FetchContext) -> FetchResult:
        line = self._okay_line()
        if line is None:
            return FetchResult.BLOCK
        account = self.account

        if account.starttls:
            self.connection.start_tls()

        if account.apop:
            start = line.find("<")
            end = line.find(">", start + 1) if start != -1 else -1
            if end != -1:
                challenge = line[start:end + 1] + account.password
                digest = hashlib.md5(challenge.encode("latin-1")).hexdigest()
                self._putln(f"APOP {account.user} {digest}")
                self._state = self._state_stat
                return FetchResult.BLOCK

        self._putln(f"USER {account.user}")
        self._state = self._state_user
        return FetchResult.BLOCK

    def _state_user(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self._putln(f"PASS {self.account.password}")
        self._state = self._state_stat
        return FetchResult.BLOCK

    def _state_stat(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self._putln("STAT")
        self._state = self._state_first
        return FetchResult.BLOCK

    def _state_first(self, ctx: FetchContext) -> FetchResult:
        line = self._okay_line()
        if line is None:
            return FetchResult.BLOCK
        found = _STAT.match(line)
        if found is None:
            raise self._invalid(line)
        self._num = int(found.group(1))
        self._cur = 0

        if self._num == 0:
            if self._total != 0:
                self._state = self._state_next
                return FetchResult.AGAIN
            return self._quit()

        if not self.account.uidl:
            # Without UIDL every mail is wanted, in mailbox order.
            for idx in range(1, self._num + 1):
                self._wantq.append(Pop3Mail("", idx))
                self._total += 1
            self._state = self._state_next
            return FetchResult.AGAIN

        self._putln("UIDL")
        self._state = self._state_cache1
        return FetchResult.BLOCK

    def _state_cache1(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self._serverq.clear()
        self._state = self._state_cache2
        return FetchResult.AGAIN

    def _state_cache2(self, ctx: FetchContext) -> FetchResult:
        name = self.account.name
        while self._cur != self._num:
            line = self._getln()
            if line is None:
                return FetchResult.BLOCK

            found = _UIDL.match(line)
            space = line.find(" ")
            if found is None or space == -1:
                raise self._invalid(line)
            idx = int(found.group(1))
            if idx != self._cur + 1:
                raise self._bad(line)
            uid = line[space + 1:]

            # Bad UIDs could end up conflicting, so refuse them outright.
            if uid == "":
                raise Pop3Error(f"{name}: empty UID")
            if any(not 0x21 <= ord(char) <= 0x7E for char in uid):
                raise Pop3Error(f"{name}: invalid UID: {uid}")
            if len(uid) > _UID_MAX:
                raise Pop3Error(f"{name}: UID too big: {uid}")
            if uid in self._serverq:
                raise Pop3Error(f"{name}: UID collision: {uid}")

            self._serverq[uid] = Pop3Mail(uid, idx)
            self._cur += 1

        self._state = self._state_cache3
        return FetchResult.AGAIN

    def _state_cache3(self, ctx: FetchContext) -> FetchResult:
        line = self._getln()
        if line is None:
            return FetchResult.BLOCK
        if line != ".":
            raise self._bad(line)

        if self._total == 0:
            cached = load_cache(self.account.path)
            self._cacheq = {uid for uid in cached if uid in self._serverq}

            wanted = []
            for uid in sorted(self._serverq):
                server_mail = self._serverq[uid]
                in_cache = uid in self._cacheq
                if self.account.only is FetchOnly.NEW and in_cache:
                    continue
                if self.account.only is FetchOnly.OLD and not in_cache:
                    continue
                wanted.append(Pop3Mail(uid, server_mail.idx))
            self._wantq.extend(wanted)
            self._wantq.sort(key=lambda mail: mail.idx)
            self._total += len(wanted)

            if self._total == 0 or ctx.flags & FetchFlag.POLL:
                return self._quit()
        else:
            # Reconnected: refresh indexes, dropping mails now gone.
            kept = []
            for mail in self._wantq:
                server_mail = self._serverq.get(mail.uid)
                if server_mail is None:
                    self._total -= 1
                    continue
                mail.idx = server_mail.idx
                kept.append(mail)
            self._wantq = kept

        self._state = self._state_next
        return FetchResult.AGAIN

    def _state_next(self, ctx: FetchContext) -> FetchResult:
        if self._dropq:
            self._putln(f"DELE {self._dropq[0].idx}")
            self._state = self._state_delete
            return FetchResult.BLOCK

        if not self._wantq:
            if self._committed != self._total:
                return FetchResult.BLOCK
            return self._quit()

        # Purging must come after the drop queue is flushed, or indexes
        # would be wrong after reconnecting.
        if ctx.flags & FetchFlag.PURGE:
            if ctx.flags & FetchFlag.EMPTY:
                ctx.flags &= ~FetchFlag.PURGE
                self._putln("QUIT")
                self._state = self._state_reconnect
            return FetchResult.BLOCK

        self._current = self._wantq[0]
        self._putln(f"LIST {self._current.idx}")
        self._state = self._state_list
        return FetchResult.BLOCK

    def _state_delete(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        aux = self._dropq.popleft()
        self._cacheq.add(aux.uid)
        self._committed += 1
        if self.account.only is not FetchOnly.OLD:
            self._save()
        self._state = self._state_next
        return FetchResult.AGAIN

    def _state_reconnect(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self.connection.disconnect()
        self._state = self._state_connect
        return FetchResult.AGAIN

    def _state_list(self, ctx: FetchContext) -> FetchResult:
        line = self._okay_line()
        if line is None:
            return FetchResult.BLOCK
        found = _LIST.match(line)
        if found is None:
            raise self._invalid(line)
        assert self._current is not None
        if int(found.group(1)) != self._current.idx:
            raise self._bad(line)
        self._size = int(found.group(2))
        self._putln(f"RETR {self._current.idx}")
        self._state = self._state_retr
        return FetchResult.BLOCK

    def _state_retr(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        account = self.account
        aux = self._current
        assert aux is not None

        mail = _FetchedMail(pop3=aux)
        default_tags(mail.tags, account.source, account.host_name)
        if account.server_host is not None:
            mail.tags.add("server", account.server_host)
            mail.tags.add("port", account.server_port or "")
        mail.tags.add("server_uid", aux.uid)
        ctx.mail = mail

        self._flushing = False
        self._state = self._state_line
        return FetchResult.AGAIN

    def _state_line(self, ctx: FetchContext) -> FetchResult:
        mail = ctx.mail
        assert mail is not None
        while True:
            line = self._getln()
            if line is None:
                return FetchResult.BLOCK
            if line.startswith("."):
                if line == ".":
                    break
                line = line[1:]
            if self._flushing:
                continue
            mail.append_line(line)
            if mail.size > self.account.max_size:
                self._flushing = True

        aux = self._current
        self._wantq = [item for item in self._wantq if item is not aux]
        self._state = self._state_next
        return FetchResult.MAIL

    def _state_quit(self, ctx: FetchContext) -> FetchResult:
        if self._okay_line() is None:
            return FetchResult.BLOCK
        self.abort()
        return FetchResult.EXIT