"""Environment variables, shell-wide state and error reporting helpers."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Iterable, Iterator


class Environment:
    """An ordered list of ``name=value`` variables.

    Lookups, updates and removals act on the first variable with a given
    name. ``add`` always appends, so duplicates are possible.
    """

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        self._entries: list[tuple[str, str]] = [
            (name, value) for name, value in pairs
        ]

    @classmethod
    def from_envp(cls, envp: Iterable[str] | None) -> Environment:
        """Build an environment from ``NAME=value`` strings.

        Entries without ``=`` are skipped.
        """
        pairs = []
        for entry in envp or ():
            name, sep, value = entry.partition("=")
            if sep:
                pairs.append((name, value))
        return cls(pairs)

    def _index(self, name: str) -> int | None:
        return next(
            (i for i, (var, _) in enumerate(self._entries) if var == name),
            None,
        )

    def get(self, name: str) -> str:
        """Return the value of *name*, or an empty string if it is unset."""
        index = self._index(name)
        return "" if index is None else self._entries[index][1]

    def set(self, name: str, value: str) -> None:
        """Replace the value of *name*, appending it if it is not present."""
        index = self._index(name)
        if index is None:
            self.add(name, value)
        else:
            self._entries[index] = (name, value)

    def add(self, name: str, value: str) -> None:
        """Append a variable at the end, without looking for an existing one."""
        self._entries.append((name, value))

    def unset(self, name: str) -> None:
        """Remove the first variable called *name*, if any."""
        index = self._index(name)
        if index is not None:
            del self._entries[index]

    def to_envp(self) -> list[str]:
        """Return the variables as ``NAME=value`` strings."""
        return [f"{name}={value}" for name, value in self._entries]

    def copy(self) -> Environment:
        """Return an independent copy."""
        return Environment(self._entries)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return any(var == name for var, _ in self._entries)


class ErrorTracker:
    """Remembers the last error code.

    After a 130 (interrupted) code is recorded, the next code is ignored so
    that the interruption is not overwritten by the command that followed.
    """

    def __init__(self) -> None:
        self._code = 0
        self._interrupted = False

    def set(self, code: int) -> None:
        """Record *code*, unless the previous code was an interruption."""
        if self._interrupted:
            self._interrupted = False
            return
        if code == 130:
            self._interrupted = True
        self._code = code

    def get(self) -> int:
        """Return the last recorded code."""
        return self._code


@dataclass
class ShellState:
    """State shared by the whole shell session."""

    env: Environment = field(default_factory=Environment)
    exit_status: int = 0
    errors: ErrorTracker = field(default_factory=ErrorTracker)


def find_char(text: str | None, ch: str) -> int:
    """Return the index of *ch* in *text*, -1 if absent, 0 if *text* is None."""
    if text is None:
        return 0
    return text.find(ch)


def print_error(*args: str) -> None:
    """Write ``bash: arg1: arg2...`` to standard error."""
    message = "".join(f": {arg}" for arg in args)
    sys.stderr.write(f"bash{message}\n")
    sys.stderr.flush()