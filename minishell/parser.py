"""Turn a token list into a command tree of operators and simple commands."""

from __future__ import annotations

import os
from itertools import takewhile
from typing import Sequence

from minishell.models import LexerType, NodeFlags, ParserNode, Redirection, Token

DEFAULT_OPERATORS = ("&&", "||", "|")

_REDIRECTION_MODES = {
    "<": (0, os.O_RDONLY, False),
    "<<": (0, 0, True),
    ">": (1, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, False),
    ">>": (1, os.O_CREAT | os.O_WRONLY | os.O_APPEND, False),
}


class ParseError(ValueError):
    """Raised when a token list is not a valid command line."""

    def __init__(self, token: str) -> None:
        super().__init__("syntax error: near unexpected token")
        self.token = token


def find_syntax_error(tokens: Sequence[Token]) -> str | None:
    """Return the text of an offending token, or None if the tokens are valid.

    A line may not start or end with an operator, hold two operators in a
    row, or follow a redirection with anything but a word.
    """
    if not tokens:
        return None
    if tokens[0].kind is LexerType.OPERATOR:
        return tokens[0].text
    for current, following in zip(tokens, tokens[1:]):
        if (
            current.kind is LexerType.OPERATOR
            and following.kind is LexerType.OPERATOR
        ) or (
            current.kind is LexerType.REDIR_NOTATION
            and following.kind is not LexerType.WORD
        ):
            return following.text
    if tokens[-1].kind is LexerType.OPERATOR:
        return tokens[-1].text
    return None


def make_redirection(operator: str) -> Redirection:
    """Return an empty redirection for the operator ``<``, ``<<``, ``>`` or ``>>``."""
    try:
        std_fd, flags, is_here_doc = _REDIRECTION_MODES[operator]
    except KeyError:
        raise ValueError(f"not a redirection operator: {operator!r}") from None
    return Redirection(std_fd=std_fd, flags=flags, is_here_doc=is_here_doc)


def _collect_redirections(
    tokens: Sequence[Token], pos: int, node: ParserNode
) -> int:
    while pos < len(tokens) and tokens[pos].kind is LexerType.REDIR_NOTATION:
        redirection = make_redirection(tokens[pos].text)
        pos += 1
        if pos < len(tokens) and tokens[pos].kind is LexerType.WORD:
            redirection.text = tokens[pos].text
            pos += 1
        node.redirections.append(redirection)
    return pos


def _collect_words(tokens: Sequence[Token], pos: int, node: ParserNode) -> int:
    words = [
        token.text
        for token in takewhile(
            lambda token: token.kind is LexerType.WORD, tokens[pos:]
        )
    ]
    if words:
        node.cmd_line = words
    return pos + len(words)


def create_node(tokens: Sequence[Token], parent: ParserNode | None = None) -> ParserNode:
    """Build one node from the tokens that start at its first token.

    An operator token gives an operator node. Otherwise words and
    redirections are gathered up to the next operator; the node waits for
    its command unless a pipe follows it.
    """
    if not tokens:
        raise ValueError("cannot create a node from no tokens")
    first = tokens[0]
    node = ParserNode(
        text=None if first.kind is LexerType.REDIR_NOTATION else first.text,
        lexer_type=first.kind,
        parent=parent,
    )
    if parent is not None and parent.text == "|":
        node.flags |= NodeFlags.PIPE
    if first.kind is LexerType.OPERATOR:
        return node
    pos = _collect_redirections(tokens, 0, node)
    if node.text is None and pos < len(tokens) and tokens[pos].kind is LexerType.WORD:
        node.text = tokens[pos].text
        node.lexer_type = LexerType.WORD
    while pos < len(tokens) and tokens[pos].kind is not LexerType.OPERATOR:
        pos = _collect_words(tokens, pos, node)
        pos = _collect_redirections(tokens, pos, node)
    if pos >= len(tokens) or tokens[pos].text != "|":
        node.flags |= NodeFlags.WAIT
    return node


def _find_operator(
    tokens: Sequence[Token], start: int, last: int, operators: Sequence[str]
) -> int | None:
    for operator in operators:
        for index in range(start, last):
            if tokens[index].text == operator:
                return index
    return None


def _build_range(
    tokens: Sequence[Token],
    start: int,
    last: int,
    operators: Sequence[str],
    parent: ParserNode | None,
) -> ParserNode:
    split = _find_operator(tokens, start, last, operators)
    if split is None:
        return create_node(tokens[start:], parent)
    node = create_node(tokens[split:], parent)
    node.left = _build_range(tokens, start, split - 1, operators, node)
    node.right = _build_range(tokens, split + 1, last, operators, node)
    return node


def build_tree(
    tokens: Sequence[Token],
    operators: Sequence[str] = DEFAULT_OPERATORS,
    parent: ParserNode | None = None,
) -> ParserNode | None:
    """Build a tree, splitting first on the earliest operator listed first."""
    tokens = list(tokens)
    if not tokens:
        return None
    return _build_range(tokens, 0, len(tokens) - 1, operators, parent)


def parse(tokens: Sequence[Token]) -> ParserNode | None:
    """Check *tokens* and build their command tree.

    Returns None for an empty list. Raises ParseError on a syntax error.
    """
    tokens = list(tokens)
    if not tokens:
        return None
    offending = find_syntax_error(tokens)
    if offending is not None:
        raise ParseError(offending)
    return build_tree(tokens, DEFAULT_OPERATORS)