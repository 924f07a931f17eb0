import pytest

from minishell.env import Environment
from minishell.expand import (
    expand,
    expand_variable,
    fill_empty_command,
    is_identifier,
    mutate,
    mutate_node,
    remove_quotes,
)
from minishell.models import LexerType, ParserNode, Redirection


@pytest.fixture
def env():
    return Environment([("HOME", "/home/user"), ("USER", "alice")])


@pytest.mark.parametrize("ch", ["a", "Z", "0", "_"])
def test_identifier_chars(ch):
    assert is_identifier(ch) is True


@pytest.mark.parametrize("ch", ["", "$", "-", "?", " ", "'"])
def test_non_identifier_chars(ch):
    assert is_identifier(ch) is False


def test_expand_variable_name(env):
    text = "$HOME/x"
    assert expand_variable(text, 1, env, 0) == ("/home/user", len("$HOME"))


def test_expand_variable_status(env):
    assert expand_variable("$?", 1, env, 42) == ("42", 2)


def test_expand_variable_unset(env):
    assert expand_variable("$NOPE", 1, env, 0) == ("", len("$NOPE"))


def test_expand_plain_variable(env):
    assert expand("$HOME", env, 0) == "/home/user"


def test_expand_status(env):
    assert expand("$?", env, 42) == "42"


def test_expand_keeps_single_quoted(env):
    assert expand("'$HOME'", env, 0) == "'$HOME'"


def test_expand_inside_double_quotes(env):
    assert expand('"$HOME x"', env, 0) == '"/home/user x"'


def test_status_not_expanded_inside_double_quotes(env):
    assert expand('"$?"', env, 7) == '"$?"'


def test_unset_variable_vanishes(env):
    assert expand("a$NOPE", env, 0) == "a"


def test_dollar_before_quote_is_dropped(env):
    assert expand('$"abc"', env, 0) == '"abc"'


def test_lone_dollar_kept(env):
    assert expand("a$", env, 0) == "a$"


def test_expand_none_and_empty(env):
    assert expand(None, env, 0) == ""
    assert expand("", env, 0) == ""


@pytest.mark.parametrize("word", ["abc", "a b", "$HOME", "x|y"])
@pytest.mark.parametrize("quote", ["'", '"'])
def test_remove_quotes_round_trip(word, quote):
    assert remove_quotes(quote + word + quote) == word


def test_remove_quotes_without_quotes_is_identity():
    assert remove_quotes("plain-text") == "plain-text"


def test_remove_quotes_nested_other_quote():
    assert remove_quotes("\"it's\"") == "it's"


def test_remove_quotes_reports_unclosed(capsys):
    result = remove_quotes("ab'cd")
    assert result == "abcd"
    assert "syntax error: unclosed quotes" in capsys.readouterr().out


def test_mutate_single_quotes_block_expansion(env):
    assert mutate("'$HOME'", env, 0) == "$HOME"


def test_mutate_double_quotes_expand(env):
    assert mutate('"$USER"', env, 0) == "alice"


def test_mutate_concatenated_parts(env):
    assert mutate("$USER'$USER'", env, 0) == "alice$USER"


def test_fill_empty_command():
    node = ParserNode(text="", lexer_type=LexerType.WORD, cmd_line=["", "x"])
    fill_empty_command(node)
    assert node.text == "''"
    assert node.cmd_line == ["''", "x"]


def test_fill_empty_command_leaves_names():
    node = ParserNode(text="ls", lexer_type=LexerType.WORD, cmd_line=["ls"])
    fill_empty_command(node)
    assert node.text == "ls"
    assert node.cmd_line == ["ls"]


def test_mutate_node(env):
    node = ParserNode(
        text="echo",
        lexer_type=LexerType.WORD,
        cmd_line=["echo", "$USER", "'$USER'"],
        redirections=[Redirection(std_fd=1, flags=0, text="$HOME")],
    )
    mutate_node(node, env, 0)
    assert node.cmd_line == ["echo", "alice", "$USER"]
    assert node.redirections[0].text == "/home/user"
    assert node.text == "echo"


def test_mutate_node_empty_command(env):
    node = ParserNode(text="$NOPE", lexer_type=LexerType.WORD, cmd_line=["$NOPE"])
    mutate_node(node, env, 0)
    assert node.text == "''"
    assert node.cmd_line == ["''"]


def test_mutate_node_redirection_only(env):
    node = ParserNode(
        text=None,
        lexer_type=LexerType.REDIR_NOTATION,
        redirections=[Redirection(std_fd=0, flags=0, text="'$USER'")],
    )
    mutate_node(node, env, 0)
    assert node.text is None
    assert node.redirections[0].text == "$USER"