"""Interactive loop and command-line entry point of the shell."""

from __future__ import annotations

import os
import signal
import sys
from typing import Callable, Sequence

from minishell.env import Environment, ShellState
from minishell.executor import INTERRUPTED_STATUS, Executor
from minishell.lexer import LexerError, tokenize
from minishell.parser import ParseError, parse

try:
    import readline as _readline
except ImportError:  # pragma: no cover - platform without readline
    _readline = None

PROMPT = "minishell> "
SYNTAX_ERROR_STATUS = 2
USAGE = "Usage: minishell"


def _add_history(line: str) -> None:
    if _readline is not None and line and line != "exit":
        _readline.add_history(line)


def _read_terminal_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def _ignore_quit_signal() -> None:
    if hasattr(signal, "SIGQUIT"):
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)


def run_line(line: str, state: ShellState) -> int:
    """Split, parse and execute one command line; return the exit status.

    Unclosed quotes and syntax errors are reported on standard output and
    set the status to 2.
    """
    try:
        tokens = tokenize(line)
    except LexerError as exc:
        print(exc)
        state.exit_status = SYNTAX_ERROR_STATUS
        return state.exit_status
    try:
        tree = parse(tokens)
    except ParseError as exc:
        print(exc)
        state.exit_status = SYNTAX_ERROR_STATUS
        return state.exit_status
    if tree is None:
        return state.exit_status
    return Executor(state).run(tree)


def repl(
    state: ShellState,
    read_line: Callable[[str], str | None] = _read_terminal_line,
) -> int:
    """Read and run lines until end of input or ``exit``.

    *read_line* takes a prompt and returns a line, or None at end of input.
    An interrupt while reading sets the status to 130 and shows a new
    prompt. Returns ``-(status + 1)``, which for a stored exit request is
    the requested exit code.
    """
    while state.exit_status >= 0:
        try:
            line = read_line(PROMPT)
        except KeyboardInterrupt:
            print()
            state.exit_status = INTERRUPTED_STATUS
            continue
        if line is None:
            break
        _add_history(line)
        run_line(line, state)
    sys.stderr.write("exit\n")
    sys.stderr.flush()
    state.exit_status = -(state.exit_status + 1)
    return state.exit_status


def main(argv: Sequence[str] | None = None) -> int:
    """Start an interactive session with the current process environment."""
    args = sys.argv[1:] if argv is None else list(argv)
    state = ShellState(env=Environment.from_envp(
        f"{name}={value}" for name, value in os.environ.items()
    ))
    if args:
        sys.stderr.write(USAGE + "\n")
        sys.stderr.flush()
        return 0
    _ignore_quit_signal()
    return repl(state)


if __name__ == "__main__":
    raise SystemExit(main())