"""Run a command tree: builtins, external programs, pipes and redirections."""

from __future__ import annotations

import io
import os
import subprocess
import sys
import tempfile
import threading
from dataclasses import dataclass, field
from typing import IO, Callable, TextIO

from minishell.builtins import is_builtin, run_builtin
from minishell.env import Environment, ShellState
from minishell.expand import mutate_node
from minishell.models import LexerType, NodeFlags, ParserNode, Redirection
from minishell.textutils import split_fields

HEREDOC_PROMPT = "heredoc>"
INTERRUPTED_STATUS = 130
_FILE_MODE = 0o755

_Drain = tuple[IO[bytes], TextIO]


def resolve_command(name: str, env: Environment) -> str:
    """Return the first ``$PATH`` entry holding *name*, or *name* unchanged."""
    for directory in split_fields(env.get("PATH"), ":"):
        candidate = f"{directory}/{name}"
        if os.access(candidate, os.F_OK):
            return candidate
    return name


def missing_command_status(cmd: str, err: TextIO | None = None) -> int:
    """Report a command that could not be started and return its status.

    An existing file gives 126 (permission denied), anything else 127.
    """
    err = sys.stderr if err is None else err
    if os.access(cmd, os.F_OK):
        message, status = "Permission denied", 126
    else:
        message, status = "command not found", 127
    err.write(f"bash: {cmd}: {message}\n")
    err.flush()
    return status


def read_heredoc(
    delimiter: str,
    read_line: Callable[[str], str | None],
    err: TextIO | None = None,
) -> str:
    """Read lines until *delimiter* and return them, each ending in a newline.

    *read_line* takes a prompt and returns a line, or None at end of input.
    """
    err = sys.stderr if err is None else err
    lines: list[str] = []
    while True:
        line = read_line(HEREDOC_PROMPT)
        if line is None:
            err.write("warning: here-document delimited by end-of-file\n")
            err.flush()
            break
        if line == delimiter:
            break
        lines.append(line + "\n")
    return "".join(lines)


def _fileno(stream: object) -> int | None:
    try:
        return stream.fileno()  # type: ignore[attr-defined]
    except (AttributeError, OSError, ValueError):
        return None


def _empty_pipe() -> int:
    read_fd, write_fd = os.pipe()
    os.close(write_fd)
    return read_fd


def _exit_status(returncode: int) -> int:
    return 128 - returncode if returncode < 0 else returncode


def _write_and_close(fd: int, data: bytes) -> None:
    try:
        with os.fdopen(fd, "wb") as pipe:
            pipe.write(data)
    except BrokenPipeError:
        pass


def _drain(drains: list[_Drain]) -> None:
    for tmp, stream in drains:
        tmp.seek(0)
        stream.write(tmp.read().decode("utf-8", "replace"))
        stream.flush()
        tmp.close()
    drains.clear()


@dataclass
class _Finished:
    status: int

    def wait(self) -> int:
        return self.status


@dataclass
class _ProcessJob:
    proc: subprocess.Popen
    drains: list[_Drain] = field(default_factory=list)

    def wait(self) -> int:
        try:
            status = _exit_status(self.proc.wait())
        except KeyboardInterrupt:
            self.proc.wait()
            status = INTERRUPTED_STATUS
        _drain(self.drains)
        return status


@dataclass
class _ThreadJob:
    thread: threading.Thread
    status: int

    def wait(self) -> int:
        self.thread.join()
        return self.status


@dataclass
class _Redirects:
    out_fd: int | None = None
    failed: bool = False
    status: int = 0


_Job = _Finished | _ProcessJob | _ThreadJob


class Executor:
    """Runs command trees against a shell state and three text streams."""

    def __init__(
        self,
        state: ShellState,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self.state = state
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout
        self.stderr = sys.stderr if stderr is None else stderr
        self.read_line: Callable[[str], str | None] = self._read_stdin_line
        self._jobs: list[_Job] = []
        self._prev_fd: int | None = None
        self._go_on = True
        self._ctrl_c = False

    def run(self, tree: ParserNode | None) -> int:
        """Execute *tree* in order and return the resulting exit status."""
        self._go_on = True
        self._ctrl_c = False
        try:
            if tree is not None:
                for node in tree.walk():
                    self.execute_node(node)
        finally:
            self._wait_all()
            self._close_prev()
        return self.state.exit_status

    def execute_node(self, node: ParserNode) -> None:
        """Execute one node: evaluate an operator or run a command."""
        if node.lexer_type is LexerType.OPERATOR:
            self._check_prolong(node)
            return
        if not self._go_on:
            return
        mutate_node(node, self.state.env, self.state.exit_status)
        if node.lexer_type is LexerType.REDIR_NOTATION:
            self._redirect_without_command(node)
        if node.lexer_type is LexerType.WORD and not self._ctrl_c:
            if not is_builtin(node.text):
                self._bind_path(node)
            self._create_process(node)
        if node.is_wait():
            self._wait_all()

    # -- control flow -------------------------------------------------

    def _check_prolong(self, node: ParserNode) -> None:
        status = self.state.exit_status
        if node.text == "&&" and status:
            self._go_on = False
        elif node.text == "||" and not status:
            self._go_on = False
        else:
            self._go_on = True

    def _set_status(self, code: int) -> None:
        if self.state.exit_status < 0:
            return
        if self._ctrl_c:
            code = INTERRUPTED_STATUS
        if code == 4:
            code = 1
        self.state.exit_status = code

    def _wait_all(self) -> None:
        jobs, self._jobs = self._jobs, []
        for job in jobs:
            job.wait()

    def _bind_path(self, node: ParserNode) -> None:
        path = resolve_command(node.text or "", self.state.env)
        node.text = path
        if node.cmd_line:
            node.cmd_line[0] = path
        else:
            node.cmd_line = [path]

    # -- streams ------------------------------------------------------

    def _read_stdin_line(self, prompt: str) -> str | None:
        if self.stdin is sys.stdin and sys.stdin.isatty():
            try:
                return input(prompt)
            except EOFError:
                return None
        line = self.stdin.readline()
        if not line:
            return None
        return line[:-1] if line.endswith("\n") else line

    def _close_prev(self) -> None:
        if self._prev_fd is not None:
            os.close(self._prev_fd)
            self._prev_fd = None

    def _replace_input(self, fd: int) -> None:
        self._close_prev()
        self._prev_fd = fd

    def _stdin_fd(self) -> int:
        fileno = _fileno(self.stdin)
        if fileno is not None:
            return os.dup(fileno)
        data = self.stdin.read()
        if isinstance(data, str):
            data = data.encode()
        with tempfile.TemporaryFile() as tmp:
            tmp.write(data)
            tmp.flush()
            tmp.seek(0)
            return os.dup(tmp.fileno())

    def _take_input(self) -> int:
        if self._prev_fd is not None:
            fd, self._prev_fd = self._prev_fd, None
            return fd
        return self._stdin_fd()

    @staticmethod
    def _output_fd(stream: TextIO, drains: list[_Drain]) -> int:
        fileno = _fileno(stream)
        if fileno is not None:
            stream.flush()
            return os.dup(fileno)
        tmp = tempfile.TemporaryFile()
        drains.append((tmp, stream))
        return os.dup(tmp.fileno())

    def _report_open_error(self, name: str, exc: OSError) -> None:
        self.stderr.write(f"{name}: {exc.strerror}\n")
        self.stderr.flush()

    # -- redirections -------------------------------------------------

    def _here_doc(self, redirection: Redirection, result: _Redirects) -> None:
        try:
            text = read_heredoc(redirection.text or "", self.read_line, self.stderr)
        except KeyboardInterrupt:
            self._ctrl_c = True
            result.failed = True
            result.status = INTERRUPTED_STATUS
            return
        with tempfile.TemporaryFile() as tmp:
            tmp.write(text.encode())
            tmp.flush()
            tmp.seek(0)
            fd = os.dup(tmp.fileno())
        self._replace_input(fd)

    def _open_redirections(self, node: ParserNode) -> _Redirects:
        result = _Redirects()
        for redirection in node.redirections:
            if redirection.is_here_doc:
                self._here_doc(redirection, result)
                continue
            if result.failed:
                continue
            target = redirection.text or ""
            try:
                if redirection.std_fd == 0:
                    self._close_prev()
                    self._prev_fd = os.open(target, redirection.flags)
                else:
                    fd = os.open(target, redirection.flags, _FILE_MODE)
                    if result.out_fd is not None:
                        os.close(result.out_fd)
                    result.out_fd = fd
            except OSError as exc:
                result.failed = True
                result.status = 1
                self._report_open_error(target, exc)
        return result

    def _redirect_without_command(self, node: ParserNode) -> None:
        if not node.redirections:
            return
        if any(redirection.std_fd == 0 for redirection in node.redirections):
            node.lexer_type = LexerType.WORD
            node.text = "cat"
            node.cmd_line = ["cat"]
            first = node.redirections[0]
            if first.is_here_doc and (node.parent is None or node.parent.text == "|"):
                node.flags = NodeFlags.WAIT
            return
        for redirection in node.redirections:
            target = redirection.text or ""
            try:
                fd = os.open(target, redirection.flags, _FILE_MODE)
            except OSError as exc:
                self._report_open_error(target, exc)
                return
            os.close(fd)

    # -- processes ----------------------------------------------------

    def _create_process(self, node: ParserNode) -> None:
        redirects = self._open_redirections(node)
        if redirects.failed:
            if redirects.out_fd is not None:
                os.close(redirects.out_fd)
            self._close_prev()
            if node.is_wait():
                self._set_status(redirects.status)
            else:
                self._prev_fd = _empty_pipe()
            return
        if is_builtin(node.text):
            if not node.is_pipe():
                self._run_builtin_here(node, redirects.out_fd)
                return
            job = self._run_builtin_piped(node, redirects.out_fd)
        else:
            job = self._spawn(node, redirects.out_fd)
        if node.is_wait():
            self._set_status(job.wait())
        else:
            self._jobs.append(job)

    def _run_builtin_here(self, node: ParserNode, out_fd: int | None) -> None:
        self._close_prev()
        if out_fd is not None:
            with os.fdopen(out_fd, "w") as out:
                status = run_builtin(node, self.state, out, self.stderr)
        else:
            status = run_builtin(node, self.state, self.stdout, self.stderr)
        if node.is_wait():
            self._set_status(status)

    def _run_builtin_piped(self, node: ParserNode, out_fd: int | None) -> _Job:
        self._close_prev()
        child_state = ShellState(
            env=self.state.env.copy(), exit_status=self.state.exit_status
        )
        buffer = io.StringIO()
        try:
            cwd: str | None = os.getcwd()
        except OSError:
            cwd = None
        try:
            status = run_builtin(node, child_state, buffer, self.stderr)
        finally:
            if cwd is not None:
                try:
                    os.chdir(cwd)
                except OSError:
                    pass
        if status < 0:
            status = -status - 1
        status &= 0xFF
        data = buffer.getvalue()
        if out_fd is not None:
            with os.fdopen(out_fd, "w") as out:
                out.write(data)
            if not node.is_wait():
                self._prev_fd = _empty_pipe()
            return _Finished(status)
        if node.is_wait():
            self.stdout.write(data)
            self.stdout.flush()
            return _Finished(status)
        read_fd, write_fd = os.pipe()
        thread = threading.Thread(
            target=_write_and_close, args=(write_fd, data.encode()), daemon=True
        )
        thread.start()
        self._prev_fd = read_fd
        return _ThreadJob(thread, status)

    def _spawn(self, node: ParserNode, out_fd: int | None) -> _Job:
        name = node.text or ""
        drains: list[_Drain] = []
        read_fd: int | None = None
        stdin_fd = self._take_input()
        if out_fd is not None:
            stdout_fd = out_fd
            if not node.is_wait():
                read_fd = _empty_pipe()
        elif node.is_wait():
            stdout_fd = self._output_fd(self.stdout, drains)
        else:
            read_fd, stdout_fd = os.pipe()
        stderr_fd = self._output_fd(self.stderr, drains)
        args = node.cmd_line or [name]
        executable = name if "/" in name else os.path.join(".", name)
        try:
            proc = subprocess.Popen(
                args,
                executable=executable,
                stdin=stdin_fd,
                stdout=stdout_fd,
                stderr=stderr_fd,
                env=dict(self.state.env),
                close_fds=True,
            )
            job: _Job = _ProcessJob(proc, drains)
        except OSError:
            for tmp, _ in drains:
                tmp.close()
            job = _Finished(missing_command_status(name, self.stderr))
        finally:
            for fd in (stdin_fd, stdout_fd, stderr_fd):
                os.close(fd)
        self._prev_fd = read_fd
        return job