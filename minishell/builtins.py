"""Commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import os
import sys
from typing import Sequence, TextIO

from minishell.env import ShellState
from minishell.expand import is_identifier
from minishell.models import ParserNode
from minishell.textutils import atol, is_digit, strncmp

BUILTINS = frozenset({"echo", "export", "env", "cd", "unset", "pwd", "exit"})
SYNTAX_STATUS = 258


def _out(stream: TextIO | None) -> TextIO:
    return sys.stdout if stream is None else stream


def _err(stream: TextIO | None) -> TextIO:
    return sys.stderr if stream is None else stream


def _report(err: TextIO, *parts: str) -> None:
    err.write("bash" + "".join(f": {part}" for part in parts) + "\n")
    err.flush()


def _to_int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def is_builtin(name: str | None) -> bool:
    """Return True if *name* is a command the shell runs itself."""
    return name in BUILTINS


def is_identifier_start(ch: str) -> bool:
    """Return True if *ch* may start a variable name."""
    return len(ch) == 1 and ch.isascii() and (ch.isalpha() or ch == "_")


def _identifier_separator(spec: str) -> str | None:
    """Return the separator after a valid name in *spec*, or None if invalid.

    The separator is ``=``, ``+`` (for ``+=``) or an empty string.
    """
    front = 0
    while front < len(spec) and is_identifier_start(spec[front]):
        front += 1
    end = front
    while end < len(spec) and is_identifier(spec[end]):
        end += 1
    rest = spec[end:]
    if not front:
        return None
    if rest.startswith("+="):
        return "+"
    if rest[:1] in ("=", ""):
        return rest[:1]
    return None


def _is_n_option(arg: str) -> bool:
    if not arg:
        return False
    rest = arg
    if arg[0] == "-" and len(arg) > 1:
        rest = arg[1:].lstrip("n")
    return not rest


def echo(args: Sequence[str], out: TextIO | None = None) -> int:
    """Print the arguments separated by spaces; ``-n`` drops the newline."""
    out = _out(out)
    words = list(args[1:])
    newline = True
    while words and _is_n_option(words[0]):
        words.pop(0)
        newline = False
    out.write(" ".join(words))
    if newline:
        out.write("\n")
    out.flush()
    return 0


def pwd(out: TextIO | None = None, err: TextIO | None = None) -> int:
    """Print the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as exc:
        _err(err).write(f"Error: {exc.strerror}\n")
        return 1
    out = _out(out)
    out.write(cwd + "\n")
    out.flush()
    return 0


def _cd_failure(err: TextIO, exc: OSError) -> int:
    err.write(f"cd Error: {exc.strerror}\n")
    err.flush()
    return 1


def cd(args: Sequence[str] | None, state: ShellState, err: TextIO | None = None) -> int:
    """Change directory to ``args[1]`` or to ``$HOME``, updating PWD and OLDPWD."""
    err = _err(err)
    env = state.env
    if not args or len(env) == 0:
        return 1
    if len(args) < 2:
        target = env.get("HOME")
        if not target:
            err.write("cd: HOME not set\n")
            err.flush()
            return 1
        try:
            os.chdir(target)
        except OSError as exc:
            return _cd_failure(err, exc)
    else:
        target = args[1]
        try:
            with os.scandir(target):
                pass
            os.chdir(target)
        except OSError as exc:
            return _cd_failure(err, exc)
    env.set("OLDPWD", env.get("PWD"))
    try:
        cwd = os.getcwd()
    except OSError:
        cwd = ""
    env.set("PWD", cwd)
    return 0


def env_builtin(
    args: Sequence[str] | None,
    state: ShellState,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Print the environment; an argument is reported as not runnable."""
    if len(state.env) == 0:
        return 1
    if args is not None and len(args) > 1:
        err = _err(err)
        if os.access(args[1], os.F_OK):
            err.write("permission denied\n")
            err.flush()
            return 126
        err.write("command not found\n")
        err.flush()
        return 127
    out = _out(out)
    for name, value in state.env:
        out.write(f"{name}={value}\n")
    out.flush()
    return 0


def export_variable(spec: str, sep: str, state: ShellState) -> None:
    """Apply one ``export`` argument whose name ends at separator *sep*.

    ``=`` assigns, ``+`` appends the text after ``+=`` and an empty
    separator declares the name with an empty value if it is not set.
    """
    env = state.env
    if sep == "+":
        index = spec.index("+=")
        name, value = spec[:index], spec[index + 2:]
        if name in env:
            env.set(name, env.get(name) + value)
        else:
            env.add(name, value)
    elif sep == "=":
        name, _, value = spec.partition("=")
        env.set(name, value)
    elif sep == "":
        if spec not in env:
            env.add(spec, "")
    else:
        raise ValueError(f"invalid export separator: {sep!r}")


def export(
    args: Sequence[str],
    state: ShellState,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Set variables, or list them sorted by name when given no arguments."""
    if len(args) < 2:
        out = _out(out)
        for name, value in sorted(state.env, key=lambda pair: pair[0]):
            out.write(f'declare -x {name}="{value}"\n')
        out.flush()
        return 0
    for spec in args[1:]:
        sep = _identifier_separator(spec)
        if sep is None:
            _report(_err(err), "export", spec, "not a valid identifier")
            return 0
        export_variable(spec, sep, state)
    return 0


def unset(args: Sequence[str], state: ShellState, err: TextIO | None = None) -> int:
    """Remove the named variables."""
    for name in args[1:]:
        if _identifier_separator(name) is None:
            _report(_err(err), "unset", name, "not a valid identifier")
            continue
        state.exit_status = 0
        state.env.unset(name)
    return 0


def _is_numeric(arg: str) -> bool:
    body = arg[1:] if arg[:1] in ("+", "-") else arg
    return all(is_digit(ch) for ch in body)


def exit_builtin(
    node: ParserNode | None, state: ShellState, err: TextIO | None = None
) -> int:
    """Request the shell to stop.

    The requested status ``n`` is stored as ``-(n + 1)`` in
    ``state.exit_status`` and returned; a negative status ends the session.
    Bad arguments give 258 without stopping.
    """
    if (
        node is None
        or not node.text
        or not node.cmd_line
        or strncmp(node.text, "exit", len(node.text))
    ):
        return 1
    args = node.cmd_line[1:]
    if not all(_is_numeric(arg) for arg in args):
        _report(_err(err), "exit", "incorrect arguments")
        return SYNTAX_STATUS
    if len(args) > 1:
        _report(_err(err), "exit", "too many arguments")
        return SYNTAX_STATUS
    code = -state.exit_status - 1
    if args and args[0]:
        code = -_to_int32(atol(args[0])) - 1
    code = _to_int32(code)
    state.exit_status = code
    return code


def run_builtin(
    node: ParserNode,
    state: ShellState,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Run the builtin named by *node* and return its status."""
    args = node.cmd_line
    match node.text:
        case "echo":
            return echo(args, out)
        case "export":
            return export(args, state, out, err)
        case "env":
            return env_builtin(args, state, out, err)
        case "cd":
            return cd(args, state, err)
        case "unset":
            return unset(args, state, err)
        case "pwd":
            return pwd(out, err)
        case "exit":
            return exit_builtin(node, state, err)
    return 1