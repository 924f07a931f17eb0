"""Data types shared by the lexer, parser and executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Iterator


class LexerType(Enum):
    """Kind of a lexical token."""

    WORD = "word"
    OPERATOR = "operator"
    REDIR_NOTATION = "redir_notation"


class NodeFlags(IntFlag):
    """Execution flags carried by a parse-tree node."""

    NONE = 0
    WAIT = 0x1
    PIPE = 0x2


@dataclass
class Token:
    """A word or operator produced by the lexer."""

    text: str
    kind: LexerType = LexerType.WORD


@dataclass
class Redirection:
    """One input or output redirection attached to a command."""

    std_fd: int
    flags: int
    text: str | None = None
    is_here_doc: bool = False


@dataclass(eq=False)
class ParserNode:
    """A node of the command tree: an operator or a simple command."""

    text: str | None
    lexer_type: LexerType
    cmd_line: list[str] = field(default_factory=list)
    flags: NodeFlags = NodeFlags.NONE
    redirections: list[Redirection] = field(default_factory=list)
    parent: ParserNode | None = field(default=None, repr=False)
    left: ParserNode | None = None
    right: ParserNode | None = None

    def is_pipe(self) -> bool:
        """Return True if the node is part of a pipeline."""
        return bool(self.flags & NodeFlags.PIPE)

    def is_wait(self) -> bool:
        """Return True if the shell waits for this command to finish."""
        return bool(self.flags & NodeFlags.WAIT)

    def walk(self) -> Iterator[ParserNode]:
        """Yield the nodes of this subtree in order: left, self, right."""
        if self.left is not None:
            yield from self.left.walk()
        yield self
        if self.right is not None:
            yield from self.right.walk()