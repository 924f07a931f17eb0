"""Split a command line into words and operators."""

from __future__ import annotations

from minishell.models import LexerType, Token
from minishell.textutils import is_space

_TWO_CHAR_OPERATORS = ("||", "&&", "<<", ">>")
_ONE_CHAR_OPERATORS = ("|", "<", ">")
_CONTROL_OPERATORS = frozenset({"|", "&&", "||"})
_REDIRECTIONS = frozenset({"<", "<<", ">", ">>"})


class LexerError(ValueError):
    """Raised when a command line cannot be split into tokens."""


def operator_length(text: str) -> int:
    """Return the length of the operator *text* starts with, or 0."""
    if text.startswith(_TWO_CHAR_OPERATORS):
        return 2
    if text.startswith(_ONE_CHAR_OPERATORS):
        return 1
    return 0


def word_length(text: str) -> int:
    """Return the length of the token at the start of *text*.

    Quoted parts keep spaces and operators inside the word. Raises
    LexerError if a quote is left open.
    """
    length = operator_length(text)
    if length:
        return length
    quote = ""
    while length < len(text):
        ch = text[length]
        if not quote and ch in ("'", '"'):
            quote = ch
        elif quote and ch == quote:
            quote = ""
        length += 1
        if not quote and length < len(text) and (
            is_space(text[length]) or operator_length(text[length:])
        ):
            break
    if quote:
        raise LexerError("syntax error: unclosed quotes")
    return length


def classify(text: str) -> LexerType:
    """Return the token kind of *text*."""
    if text in _CONTROL_OPERATORS:
        return LexerType.OPERATOR
    if text in _REDIRECTIONS:
        return LexerType.REDIR_NOTATION
    return LexerType.WORD


def tokenize(line: str) -> list[Token]:
    """Split *line* into tokens. Raises LexerError on unclosed quotes."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(line):
        if is_space(line[pos]):
            pos += 1
            continue
        length = word_length(line[pos:])
        text = line[pos:pos + length]
        tokens.append(Token(text, classify(text)))
        pos += length
    return tokens