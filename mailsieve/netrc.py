"""Lookup of login names and passwords in a ``.netrc`` file."""

from __future__ import annotations

import enum
import os
import stat
from dataclasses import dataclass
from typing import Iterator, TextIO

# Longest token accepted, matching the fixed buffer the format is read with.
_TOKEN_MAX = 8192

_SPACE = " \t\n\v\f\r"


class NetrcError(Exception):
    """The ``.netrc`` file is missing, unsafe, malformed or incomplete."""


@dataclass(frozen=True)
class NetrcEntry:
    """The login and password found for a host; either may be None."""

    user: str | None
    password: str | None


class _State(enum.Enum):
    NO_MACHINE_FOUND = enum.auto()
    MACHINE_FOUND = enum.auto()
    USER_FOUND = enum.auto()


def open_netrc(home: str) -> TextIO:
    """Open ``home/.netrc`` for reading, refusing a world-accessible file."""
    path = f"{home}/.netrc"
    try:
        info = os.stat(path)
    except OSError as exc:
        raise NetrcError(f"{path}: {exc.strerror}") from exc
    if info.st_mode & (stat.S_IROTH | stat.S_IWOTH):
        raise NetrcError(f"{path}: world readable or writable")
    try:
        return open(path, encoding="utf-8", errors="surrogateescape")
    except OSError as exc:
        raise NetrcError(f"{path}: {exc.strerror}") from exc


def netrc_tokens(stream: TextIO) -> Iterator[str]:
    """Yield the tokens of a ``.netrc`` stream.

    Tokens are separated by white space or commas, may be enclosed in
    double quotes, and a backslash takes the next character literally.
    """
    while True:
        char = stream.read(1)
        while char and (char in _SPACE or char == ","):
            char = stream.read(1)
        if not char:
            return

        token: list[str] = []
        if char == '"':
            while True:
                char = stream.read(1)
                if not char or char == '"':
                    break
                if char == "\\":
                    char = stream.read(1)
                    if not char:
                        break
                token.append(char)
                if len(token) >= _TOKEN_MAX:
                    raise NetrcError("token too long")
            if not char:
                raise NetrcError('missing "')
            yield "".join(token)
        else:
            token.append(char)
            ended = False
            while True:
                char = stream.read(1)
                if not char:
                    ended = True
                    break
                if char in _SPACE or char == ",":
                    break
                if char == "\\":
                    char = stream.read(1)
                    if not char:
                        ended = True
                        break
                token.append(char)
                if len(token) >= _TOKEN_MAX:
                    raise NetrcError("token too long")
            yield "".join(token)
            if ended:
                return


def _argument(tokens: Iterator[str], keyword: str) -> str:
    value = next(tokens, None)
    if value is None:
        raise NetrcError(f"missing value after {keyword}")
    return value


def netrc_lookup(
    stream: TextIO, host: str, user: str | None = None
) -> NetrcEntry:
    """Find the login and password for ``host``.

    With ``user`` given only entries for that login count; otherwise the
    first login found for the host is taken. A ``default`` entry applies
    when no machine entry has matched. Repeated entries for the same host
    and login are an error.
    """
    state = _State.NO_MACHINE_FOUND
    found = 0
    found_default = False
    default_entries = 0
    password: str | None = None

    tokens = netrc_tokens(stream)
    for token in tokens:
        if state is _State.NO_MACHINE_FOUND:
            if token == "machine":
                if _argument(tokens, "machine") == host:
                    state = _State.MACHINE_FOUND
            elif not found and token == "default":
                state = _State.MACHINE_FOUND
                found_default = True
            continue

        if state is _State.MACHINE_FOUND:
            if token != "login":
                continue
            login = _argument(tokens, "login")
            if login == "":
                raise NetrcError("empty login")

            if user is None:
                user = login
                state = _State.USER_FOUND
                continue

            if login != user:
                continue
            if not found:
                state = _State.USER_FOUND
            elif not found_default:
                raise NetrcError(
                    f"duplicate netrc entry with the same login ({user}) "
                    "and machine"
                )
            elif default_entries == 0:
                state = _State.NO_MACHINE_FOUND
                found_default = False
                default_entries += 1
            else:
                raise NetrcError(
                    f"duplicate netrc entry with the same login ({user}) "
                    "and 'default' machine"
                )
            continue

        if token != "password":
            continue
        value = _argument(tokens, "password")
        if value == "":
            raise NetrcError("empty password")
        password = value

        # Keep reading so that duplicate entries are noticed.
        state = _State.NO_MACHINE_FOUND
        found += 1
        if found_default:
            found_default = False
            default_entries += 1

    return NetrcEntry(user, password)


def find_netrc(home: str, host: str, user: str | None = None) -> NetrcEntry:
    """Look up ``host`` in ``home/.netrc``, requiring both login and password."""
    with open_netrc(home) as stream:
        try:
            entry = netrc_lookup(stream, host, user)
        except NetrcError as exc:
            raise NetrcError("error reading .netrc") from exc

    if entry.user is None:
        raise NetrcError(f'can\'t find user for "{host}" in .netrc')
    if entry.user == "":
        raise NetrcError("invalid user")
    if entry.password is None:
        raise NetrcError(f'can\'t find pass for "{host}" in .netrc')
    if entry.password == "":
        raise NetrcError("invalid pass")
    return entry