# minish

`minish` provides the pieces of a small POSIX-style shell as a library. It has a
lexer, quote checking, variable expansion, the common builtins, and an executor
that runs single commands and pipelines with file redirections.

## Modules

- `minish.lexer`: `tokenize(text)` returns a list of `Token` objects. Each token
  has `kind`, `text`, `index` and `join_next`, and the list always ends with an
  `END_OF_INPUT` token. The token kinds are the members of `TokenType`: words,
  single- and double-quoted words, `$NAME` (`ENV_VAR`), `$?` (`EXIT_STATUS`) and
  the operators `|`, `<`, `>`, `>>` and `<<`. `join_next` is set when the next
  token follows with no blank in between. An unclosed quote or a character the
  lexer does not accept raises `LexerError`. The character-class helpers
  `is_separator`, `is_quote`, `is_operator_start` and `is_word_char` are public.
- `minish.quotes`: `validate_quotes(text)` returns `False` when a quote is opened
  and never closed.
- `minish.errors`: `ShellError` carries a message and an exit status, and its
  string form is `minishell: <message>`. Syntax errors are `ParseError`.
  `error_message(code)` returns the text of a numbered shell error.
  `unexpected_token(kind)` builds the "syntax error near unexpected token" error
  for an operator. `check_segment_start(tokens)` raises when a pipeline segment
  is empty or starts with `|`.
- `minish.paths`: `find_path`, `split_path` and `paths_from_env` read the `PATH`
  entry of an environment list (`["NAME=value", ...]`) and return its
  directories, each ending in `/`.
- `minish.models`: the dataclasses `Redirection`, `Command` and `Shell`. A
  `Shell` holds the environment list, the `PATH` directories (recomputed by
  `refresh_paths()`), the commands of the current line, the pipe count, the
  child processes and the last exit status in `error_num`. `reset()` clears the
  per-line state and closes any here-document descriptors that are still open.
- `minish.expander`: `expand_token` expands `$NAME` and `$?` outside single
  quotes and removes the quotes. `expand_args` drops words that expand to
  nothing, unless they contained quotes. `expand_redirections`,
  `expand_command` and `expand_commands` apply expansion in place. They leave
  here-document delimiters as they are. `get_env_value` returns `''` for an
  unset name. `expanded_length` gives an upper bound on the expanded length.
- `minish.environment`: environment helpers (`is_valid_key`, `find_env_entry`,
  `set_env`, `remove_env_entry`, `get_key`, `get_val`, `format_export`) and the
  builtins `builtin_export`, `builtin_unset` and `builtin_env`.
- `minish.builtins`: `builtin_echo` (with `-n`, `-nnn`, ...), `builtin_cd`
  (`cd` alone goes to `$HOME`, and `cd -` goes to `$OLDPWD` and prints it; both
  update `PWD` and `OLDPWD`), `builtin_pwd` and `builtin_exit`.
  `lookup_builtin(name)` returns the builtin for any of the seven names.
  `runs_in_parent(name)` is true for `cd`, `exit`, `export` and `unset`.
  `exit` raises `ShellExit`. With a non-numeric argument, or one that
  overflows a signed 64-bit integer, the status is 2. With more than one
  argument it prints an error, returns 1 and does not exit. Otherwise the
  status is the number modulo 256.
- `minish.executor`: `execute(shell)` expands `shell.commands` and runs them.
  With `shell.pipes == 0` it calls `run_single`; otherwise it calls
  `run_pipeline`.
  - `cd`, `exit`, `export` and `unset` run in the shell process when they stand
    alone. Inside a pipeline, builtins work on a copy of the shell.
  - Programs are found with `resolve_command`, which searches `shell.paths` for
    names without `/`. It raises `CommandNotRunnable` with status 127 (not found)
    or 126 (a directory, or not executable).
  - `open_redirections` opens `<`, `>` and `>>` targets. For `<<`, it uses the
    descriptor already stored in a `Redirection`'s `heredoc_fd`.
  - `status_from_returncode` and `wait_all` report `128 + n` for a child killed
    by signal `n`.

## Example

```python
import os

from minish.builtins import lookup_builtin
from minish.executor import execute
from minish.lexer import TokenType
from minish.models import Command, Redirection, Shell

shell = Shell(env=[f"{key}={value}" for key, value in os.environ.items()])

# echo "$HOME" > home.txt
shell.commands = [
    Command(
        ["echo", '"$HOME"'],
        [Redirection(TokenType.REDIR_OUT, "home.txt")],
        builtin=lookup_builtin("echo"),
    )
]
shell.pipes = 0
print(execute(shell))  # 0

# ls | wc -l
shell.reset()
shell.commands = [Command(["ls"]), Command(["wc", "-l"])]
shell.pipes = 1
print(execute(shell))
```

## What the package does not do

- There is no command to run and no interactive prompt, line editing or history.
  The package is used as a library.
- Nothing turns the token list from `tokenize` into `Command` objects. The caller
  builds `Command` and `Redirection` values and sets `Shell.pipes`.
- Here-document bodies are not read. A `<<` redirection works only when the
  caller has put a readable descriptor in `Redirection.heredoc_fd`.
- No signal handlers are installed for the prompt. The executor ignores SIGINT
  only while it waits for children, and it restores default SIGINT and SIGQUIT
  handling in the children it starts.