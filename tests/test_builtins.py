import io
import os

import pytest

from minishell.builtins import (
    cd,
    echo,
    env_builtin,
    exit_builtin,
    export,
    export_variable,
    is_builtin,
    is_identifier_start,
    pwd,
    run_builtin,
    unset,
)
from minishell.env import Environment, ShellState
from minishell.models import LexerType, ParserNode


def make_state(*pairs):
    return ShellState(env=Environment(pairs))


def make_node(*words):
    return ParserNode(text=words[0], lexer_type=LexerType.WORD, cmd_line=list(words))


@pytest.mark.parametrize("name", ["echo", "export", "env", "cd", "unset", "pwd", "exit"])
def test_is_builtin_true(name):
    assert is_builtin(name) is True


@pytest.mark.parametrize("name", ["ls", "", "Echo", None])
def test_is_builtin_false(name):
    assert is_builtin(name) is False


@pytest.mark.parametrize("ch,expected", [("a", True), ("Z", True), ("_", True), ("1", False), ("-", False)])
def test_is_identifier_start(ch, expected):
    assert is_identifier_start(ch) is expected


def test_echo_joins_words():
    out = io.StringIO()
    assert echo(["echo", "hello", "world"], out) == 0
    assert out.getvalue() == "hello world\n"


def test_echo_n_options_drop_newline():
    out = io.StringIO()
    assert echo(["echo", "-n", "-nnn", "hi"], out) == 0
    assert out.getvalue() == "hi"


@pytest.mark.parametrize("word", ["-nx", "-", "n"])
def test_echo_non_options_are_printed(word):
    out = io.StringIO()
    echo(["echo", word, "a"], out)
    assert out.getvalue() == f"{word} a\n"


def test_echo_without_arguments_prints_newline():
    out = io.StringIO()
    echo(["echo"], out)
    assert out.getvalue() == "\n"


def test_pwd_prints_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    out = io.StringIO()
    assert pwd(out, io.StringIO()) == 0
    assert out.getvalue() == os.getcwd() + "\n"


def test_cd_changes_directory_and_updates_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "sub"
    target.mkdir()
    state = make_state(("PWD", "/start"))
    assert cd(["cd", str(target)], state, io.StringIO()) == 0
    assert os.getcwd() == os.path.realpath(target)
    assert state.env.get("OLDPWD") == "/start"
    assert state.env.get("PWD") == os.getcwd()


def test_cd_missing_directory_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    err = io.StringIO()
    state = make_state(("PWD", str(tmp_path)))
    assert cd(["cd", str(tmp_path / "missing")], state, err) == 1
    assert err.getvalue().startswith("cd Error")
    assert os.getcwd() == os.path.realpath(tmp_path)


def test_cd_to_file_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "file.txt"
    path.write_text("x")
    assert cd(["cd", str(path)], make_state(("A", "1")), io.StringIO()) == 1


def test_cd_home_not_set():
    err = io.StringIO()
    assert cd(["cd"], make_state(("A", "1")), err) == 1
    assert err.getvalue() == "cd: HOME not set\n"


def test_cd_home(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "home"
    home.mkdir()
    state = make_state(("HOME", str(home)))
    assert cd(["cd"], state, io.StringIO()) == 0
    assert os.getcwd() == os.path.realpath(home)
    assert state.env.get("PWD") == os.getcwd()


def test_cd_empty_environment_fails(tmp_path):
    assert cd(["cd", str(tmp_path)], ShellState(), io.StringIO()) == 1


def test_env_prints_variables():
    out = io.StringIO()
    assert env_builtin(["env"], make_state(("A", "1"), ("B", "")), out, io.StringIO()) == 0
    assert out.getvalue().splitlines() == ["A=1", "B="]


def test_env_with_existing_path(tmp_path):
    err = io.StringIO()
    assert env_builtin(["env", str(tmp_path)], make_state(("A", "1")), io.StringIO(), err) == 126
    assert err.getvalue() == "permission denied\n"


def test_env_with_missing_path(tmp_path):
    err = io.StringIO()
    status = env_builtin(["env", str(tmp_path / "nope")], make_state(("A", "1")), io.StringIO(), err)
    assert status == 127
    assert err.getvalue() == "command not found\n"


def test_env_empty_environment():
    assert env_builtin(["env"], ShellState(), io.StringIO(), io.StringIO()) == 1


def test_export_lists_sorted():
    out = io.StringIO()
    assert export(["export"], make_state(("B", "2"), ("A", "1")), out, io.StringIO()) == 0
    assert out.getvalue() == 'declare -x A="1"\ndeclare -x B="2"\n'


def test_export_sets_and_overwrites():
    state = make_state(("A", "old"))
    assert export(["export", "A=new", "B=x=y"], state, io.StringIO(), io.StringIO()) == 0
    assert state.env.get("A") == "new"
    assert state.env.get("B") == "x=y"
    assert len(state.env) == 2


def test_export_name_only_keeps_existing_value():
    state = make_state(("A", "keep"))
    export(["export", "A", "C"], state, io.StringIO(), io.StringIO())
    assert state.env.get("A") == "keep"
    assert "C" in state.env
    assert state.env.get("C") == ""


def test_export_append():
    state = make_state(("PATH", "/bin"))
    export(["export", "PATH+=:/usr/bin"], state, io.StringIO(), io.StringIO())
    assert state.env.get("PATH") == "/bin:/usr/bin"


def test_export_invalid_identifier_stops():
    state = make_state()
    err = io.StringIO()
    assert export(["export", "1A=x", "B=y"], state, io.StringIO(), err) == 0
    assert err.getvalue() == "bash: export: 1A=x: not a valid identifier\n"
    assert "B" not in state.env


def test_export_variable_direct():
    state = make_state()
    export_variable("NAME=value", "=", state)
    assert state.env.get("NAME") == "value"
    with pytest.raises(ValueError):
        export_variable("NAME", "?", state)


def test_unset_removes_variables():
    state = make_state(("A", "1"), ("B", "2"), ("C", "3"))
    state.exit_status = 7
    assert unset(["unset", "A", "C"], state, io.StringIO()) == 0
    assert list(state.env) == [("B", "2")]
    assert state.exit_status == 0


def test_unset_invalid_identifier():
    state = make_state(("A", "1"))
    err = io.StringIO()
    unset(["unset", "-x"], state, err)
    assert "not a valid identifier" in err.getvalue()
    assert list(state.env) == [("A", "1")]


def test_exit_with_status():
    state = make_state()
    result = exit_builtin(make_node("exit", "42"), state, io.StringIO())
    assert -(result + 1) == 42
    assert state.exit_status == result


def test_exit_with_negative_status():
    state = make_state()
    result = exit_builtin(make_node("exit", "-3"), state, io.StringIO())
    assert -(result + 1) == -3


def test_exit_without_argument_keeps_last_status():
    state = make_state()
    state.exit_status = 5
    result = exit_builtin(make_node("exit"), state, io.StringIO())
    assert -(result + 1) == 5
    assert state.exit_status < 0


def test_exit_non_numeric():
    state = make_state()
    err = io.StringIO()
    assert exit_builtin(make_node("exit", "abc"), state, err) == 258
    assert err.getvalue() == "bash: exit: incorrect arguments\n"
    assert state.exit_status == 0


def test_exit_too_many_arguments():
    err = io.StringIO()
    assert exit_builtin(make_node("exit", "1", "2"), make_state(), err) == 258
    assert err.getvalue() == "bash: exit: too many arguments\n"


def test_exit_wrong_command():
    assert exit_builtin(make_node("ls"), make_state(), io.StringIO()) == 1


def test_run_builtin_dispatches_echo():
    out = io.StringIO()
    assert run_builtin(make_node("echo", "hi"), make_state(), out, io.StringIO()) == 0
    assert out.getvalue() == "hi\n"


def test_run_builtin_unknown():
    assert run_builtin(make_node("ls"), make_state(), io.StringIO(), io.StringIO()) == 1


def test_run_builtin_export_then_unset():
    state = make_state()
    run_builtin(make_node("export", "X=1"), state, io.StringIO(), io.StringIO())
    assert state.env.get("X") == "1"
    run_builtin(make_node("unset", "X"), state, io.StringIO(), io.StringIO())
    assert "X" not in state.env