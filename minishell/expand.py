"""Variable expansion and quote removal for command words."""

from __future__ import annotations

import re
import sys

from minishell.env import Environment
from minishell.models import LexerType, ParserNode

_NAME = re.compile(r"[A-Za-z0-9_]*")
_QUOTES = ("'", '"')


def is_identifier(ch: str) -> bool:
    """Return True if *ch* may appear in a variable name."""
    return len(ch) == 1 and ch.isascii() and (ch.isalnum() or ch == "_")


def expand_variable(
    text: str, pos: int, env: Environment, status: int
) -> tuple[str, int]:
    """Expand the variable whose name starts at *pos* (just after ``$``).

    ``?`` gives *status*. Returns the value, empty if unset, and the
    position after the name.
    """
    if text[pos:pos + 1] == "?":
        return str(status), pos + 1
    end = _NAME.match(text, pos).end()
    return env.get(text[pos:end]), end


def _expand_double_quoted(
    text: str, pos: int, env: Environment, status: int, out: list[str]
) -> int:
    out.append(text[pos])
    pos += 1
    while pos < len(text):
        ch = text[pos]
        if ch == "$" and is_identifier(text[pos + 1:pos + 2]):
            value, pos = expand_variable(text, pos + 1, env, status)
            out.append(value)
        elif ch == '"':
            out.append(ch)
            return pos + 1
        else:
            out.append(ch)
            pos += 1
    return pos


def expand(text: str | None, env: Environment, status: int) -> str:
    """Replace ``$NAME`` and ``$?`` outside single quotes, keeping the quotes.

    Inside double quotes only ``$NAME`` is expanded. A ``$`` directly before
    a quote is dropped.
    """
    if not text:
        return ""
    out: list[str] = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        following = text[pos + 1:pos + 2]
        if ch == "'":
            close = text.find("'", pos + 1)
            end = len(text) if close == -1 else close + 1
            out.append(text[pos:end])
            pos = end
        elif ch == '"':
            pos = _expand_double_quoted(text, pos, env, status, out)
        elif ch == "$" and (is_identifier(following) or following == "?"):
            value, pos = expand_variable(text, pos + 1, env, status)
            out.append(value)
        elif ch == "$" and following in _QUOTES:
            pos += 1
        else:
            out.append(ch)
            pos += 1
    return "".join(out)


def remove_quotes(text: str) -> str:
    """Strip paired single and double quotes, keeping what they enclose.

    An unclosed quote is reported on standard output and the rest of the
    text is kept as is.
    """
    out: list[str] = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch in _QUOTES:
            close = text.find(ch, pos + 1)
            if close == -1:
                print("syntax error: unclosed quotes")
                out.append(text[pos + 1:])
                break
            out.append(text[pos + 1:close])
            pos = close + 1
        else:
            out.append(ch)
            pos += 1
    return "".join(out)


def mutate(text: str | None, env: Environment, status: int) -> str:
    """Expand variables in *text*, then remove its quotes."""
    return remove_quotes(expand(text, env, status))


def fill_empty_command(node: ParserNode) -> None:
    """Turn an empty command name into ``''`` so that it is reported as missing."""
    if node.text == "":
        node.text = "''"
        if node.cmd_line:
            node.cmd_line[0] = "''"


def mutate_node(node: ParserNode, env: Environment, status: int) -> None:
    """Expand and unquote the redirection targets and words of *node* in place."""
    for redirection in node.redirections:
        redirection.text = mutate(redirection.text, env, status)
    if node.lexer_type is LexerType.WORD:
        node.text = mutate(node.text, env, status)
        node.cmd_line = [mutate(word, env, status) for word in node.cmd_line]
        fill_empty_command(node)