"""Small text helpers shared by the lexer, parser and builtins."""

from __future__ import annotations

from itertools import zip_longest

_SPACE_CHARS = frozenset(" \t\n\v\f\r")
_DIGIT_CHARS = frozenset("0123456789")
_LONG_MAX = 2**63 - 1


def is_space(ch: str) -> bool:
    """Return True if *ch* is a single whitespace character."""
    return len(ch) == 1 and ch in _SPACE_CHARS


def is_digit(ch: str) -> bool:
    """Return True if *ch* is a single ASCII decimal digit."""
    return len(ch) == 1 and ch in _DIGIT_CHARS


def atol(text: str) -> int:
    """Parse a leading integer like C ``atol``.

    Leading whitespace and one sign are accepted; parsing stops at the first
    non-digit. A value that overflows a signed 64-bit integer yields 0 when
    negative and -1 when positive.
    """
    rest = text.lstrip("".join(_SPACE_CHARS))
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    value = 0
    for ch in rest:
        if not is_digit(ch):
            break
        value = value * 10 + int(ch)
        if value > _LONG_MAX:
            return 0 if negative else -1
    return -value if negative else value


def split_fields(text: str | None, sep: str) -> list[str]:
    """Split *text* on *sep*, dropping empty fields."""
    if not text:
        return []
    return [part for part in text.split(sep) if part]


def strncmp(first: str, second: str, n: int) -> int:
    """Compare at most *n* characters, as C ``strncmp`` does."""
    if n <= 0:
        return 0
    for a, b in zip_longest(first[:n], second[:n], fillvalue="\0"):
        if a != b:
            return ord(a) - ord(b)
    return 0