"""Helpers used while reading the configuration: macros and string lists."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable

MAX_NAME_SIZE = 64

_LLONG_MAX = 2**63 - 1
_NUMBER = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+")


class ConfigError(Exception):
    """The configuration contains an invalid item."""


class MacroType(enum.Enum):
    STRING = "string"
    NUMBER = "number"


@dataclass
class Macro:
    """A user-defined ``$name`` (string) or ``%name`` (number) macro."""

    name: str
    type: MacroType
    value: str | int


def _parse_number(text: str) -> int:
    if not _NUMBER.fullmatch(text):
        raise ConfigError(f"number is invalid: {text}")
    number = int(text)
    if number < 0:
        raise ConfigError(f"number is too small: {text}")
    if number > _LLONG_MAX:
        raise ConfigError(f"number is too large: {text}")
    return number


def extract_macro(text: str) -> Macro:
    """Parse ``name=value`` into a macro; the name's sigil sets its type."""
    name, sep, value = text.partition("=")
    if len(name) > MAX_NAME_SIZE:
        raise ConfigError(f"macro name too long: {name}")

    if name.startswith("$"):
        return Macro(name, MacroType.STRING, value if sep else "")
    if name.startswith("%"):
        return Macro(name, MacroType.NUMBER, _parse_number(value) if sep else 0)
    raise ConfigError(f"invalid macro: {name}")


def find_macro(macros: Iterable[Macro], name: str) -> Macro | None:
    """Return the first macro called ``name``, or None."""
    for macro in macros:
        if macro.name == name:
            return macro
    return None


def fmt_strings(prefix: str, strings: Iterable[str]) -> str:
    """Format ``strings`` quoted and space-separated after ``prefix``.

    The last character of the built text is always dropped, so with no
    strings the prefix loses its final character.
    """
    text = prefix + "".join(f'"{item}" ' for item in strings)
    return text[:-1]