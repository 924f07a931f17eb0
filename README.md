# minishell

A small interactive command shell. It reads lines at a `minishell> ` prompt,
splits them into words and operators, builds a command tree and runs it.

## Features

- Pipelines with `|`, and conditional chains with `&&` and `||`.
- Redirections: `<`, `>`, `>>`, and here-documents with `<<` (read at a
  `heredoc>` prompt until the delimiter line).
- Single and double quotes; `$NAME` and `$?` expansion outside single quotes
  (inside double quotes only `$NAME` is expanded).
- Built-in commands: `echo` (with `-n`), `cd`, `pwd`, `env`, `export`,
  `unset`, `exit`.
- Other commands are looked up on `PATH` and started as child processes.
- Ctrl-C while reading a line shows a fresh prompt and sets `$?` to 130;
  Ctrl-\ is ignored; Ctrl-D leaves the shell.
- Unclosed quotes and misplaced operators are reported as syntax errors and
  set `$?` to 2.

## Installation

```
pip install .
```

## Usage

Start the shell with no arguments:

```
minishell
```

Example session:

```
minishell> export GREETING=hello
minishell> echo "$GREETING world" | cat
hello world
minishell> ls missing-file || echo "not there"
not there
minishell> cat << EOF > notes.txt
heredoc>some text
heredoc>EOF
minishell> exit 3
```

`exit N` ends the session and the shell exits with status `N`. Given any
argument on its command line, `minishell` prints a usage line and exits.

## Using it from Python

- `minishell.shell.run_line(line, state)` runs one command line against a
  `minishell.env.ShellState` and returns the exit status.
- `minishell.shell.repl(state, read_line)` runs the read loop with any line
  source: `read_line` takes a prompt and returns a line, or `None` at end of
  input.
- `minishell.executor.Executor(state, stdin, stdout, stderr).run(tree)` runs a
  command tree against given text streams.
- `minishell.lexer.tokenize`, `minishell.parser.parse` and
  `minishell.expand.mutate` can be used on their own to split, parse and
  expand command lines.
- `minishell.env.Environment` holds the shell's ordered variables and can be
  built from `NAME=value` strings with `Environment.from_envp`.

## What it does not do

The shell is interactive only: it does not run script files or `-c` strings.
There is no `;` separator, no parentheses or subshells, no wildcard
expansion, no job control and no shell functions. Builtins that are part of a
pipeline run on a copy of the environment, so `export`, `unset` and `cd`
there do not affect the session.

## Running the tests

```
pip install .[test]
pytest
```