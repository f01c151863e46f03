"""Variable expansion and quote removal for command words."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .lexer import TokenType
from .models import Command, Redirection


def _is_name_start(char: str) -> bool:
    return char == "_" or (char.isascii() and char.isalpha())


def _is_name_char(char: str) -> bool:
    return char == "_" or (char.isascii() and char.isalnum())


def _name_end(text: str, pos: int) -> int:
    while pos < len(text) and _is_name_char(text[pos]):
        pos += 1
    return pos


def get_env_value(env: Iterable[str], key: str) -> str:
    """Return the value of ``key`` in ``env``, or '' when it is not set."""
    prefix = key + "="
    return next((entry[len(prefix):] for entry in env if entry.startswith(prefix)), "")


def has_quote(text: str) -> bool:
    return "'" in text or '"' in text


def _status_length(last_status: int) -> int:
    return len(str(last_status)) if last_status >= 0 else 1


def expanded_length(text: str, env: Sequence[str], last_status: int) -> int:
    """Upper bound on the length of ``expand_token(text, ...)``.

    Quote characters are counted although expansion removes them.
    """
    length = 0
    pos = 0
    in_single = in_double = False
    while pos < len(text):
        char = text[pos]
        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
        if char == "$" and not in_single:
            pos += 1
            following = text[pos : pos + 1]
            if following == "?":
                length += _status_length(last_status)
                pos += 1
            elif _is_name_start(following):
                end = _name_end(text, pos)
                length += len(get_env_value(env, text[pos:end]))
                pos = end
            else:
                length += 1
        else:
            length += 1
            pos += 1
    return length


def expand_token(text: str, env: Sequence[str], last_status: int) -> str:
    """Expand ``$NAME`` and ``$?`` outside single quotes and strip the quotes."""
    parts: list[str] = []
    pos = 0
    in_single = in_double = False
    while pos < len(text):
        char = text[pos]
        if char == "'" and not in_double:
            in_single = not in_single
            pos += 1
        elif char == '"' and not in_single:
            in_double = not in_double
            pos += 1
        elif char == "$" and not in_single:
            pos += 1
            following = text[pos : pos + 1]
            if following == "?":
                parts.append(str(last_status))
                pos += 1
            elif _is_name_start(following):
                end = _name_end(text, pos)
                parts.append(get_env_value(env, text[pos:end]))
                pos = end
            else:
                parts.append("$")
        else:
            parts.append(char)
            pos += 1
    return "".join(parts)


def expand_args(args: Iterable[str], env: Sequence[str], last_status: int) -> list[str]:
    """Expand every argument, dropping those that vanish and were not quoted."""
    result = []
    for arg in args:
        expanded = expand_token(arg, env, last_status)
        if expanded or has_quote(arg):
            result.append(expanded)
    return result


def expand_redirections(
    redirections: Iterable[Redirection], env: Sequence[str], last_status: int
) -> None:
    """Expand redirection targets in place; here-document delimiters stay as they are."""
    for redirection in redirections:
        if redirection.kind is TokenType.HEREDOC:
            continue
        redirection.target = expand_token(redirection.target, env, last_status)


def expand_command(command: Command, env: Sequence[str], last_status: int) -> None:
    """Expand the arguments and redirection targets of one command in place."""
    command.args = expand_args(command.args, env, last_status)
    expand_redirections(command.redirections, env, last_status)


def expand_commands(commands: Iterable[Command], env: Sequence[str], last_status: int) -> None:
    for command in commands:
        expand_command(command, env, last_status)