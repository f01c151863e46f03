"""The environment list and the builtins that read and change it."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence

from .models import Command, Shell

EXPORT_PREFIX = "declare -x "


def is_valid_key(key: str | None) -> bool:
    """True for a name made of ASCII letters, digits and ``_`` not starting with a digit."""
    if not key:
        return False
    first = key[0]
    if not (first == "_" or (first.isascii() and first.isalpha())):
        return False
    return all(char == "_" or (char.isascii() and char.isalnum()) for char in key[1:])


def _names_key(entry: str, key: str) -> bool:
    """True when ``entry`` is ``key`` alone or ``key=...``."""
    return entry.startswith(key) and entry[len(key) : len(key) + 1] in ("=", "")


def find_env_entry(env: Iterable[str], key: str | None) -> bool:
    """True when ``env`` holds ``key`` with or without a value."""
    if key is None:
        return False
    return any(_names_key(entry, key) for entry in env)


def set_env(shell: Shell, key: str, value: str) -> None:
    """Replace the first ``key=`` entry of the shell's env, or append one."""
    entry = f"{key}={value}"
    prefix = key + "="
    for position, existing in enumerate(shell.env):
        if existing.startswith(prefix):
            shell.env[position] = entry
            return
    shell.env.append(entry)


def remove_env_entry(env: Iterable[str], key: str) -> list[str]:
    """Return ``env`` without the entries that name ``key``."""
    return [entry for entry in env if not _names_key(entry, key)]


def get_key(arg: str) -> str:
    """The part of ``arg`` before the first ``=`` (all of it if there is none)."""
    return arg.partition("=")[0]


def get_val(arg: str) -> str | None:
    """The part of ``arg`` after the first ``=``, or None if it has none."""
    _, sep, value = arg.partition("=")
    return value if sep else None


def _export_line(entry: str) -> str:
    key, sep, value = entry.partition("=")
    if not sep:
        return EXPORT_PREFIX + entry
    return f'{EXPORT_PREFIX}{key}="{value}"'


def format_export(env: Iterable[str]) -> list[str]:
    """Lines ``export`` prints with no arguments, sorted by entry."""
    return [_export_line(entry) for entry in sorted(env)]


def _export_error(arg: str) -> None:
    print(f"minishell: export: `{arg}': not a valid identifier", file=sys.stderr)


def _export_one(shell: Shell, arg: str) -> bool:
    """Apply one ``export`` argument; return False when its name is invalid."""
    key = get_key(arg)
    if not is_valid_key(key):
        _export_error(arg)
        return False
    value = get_val(arg)
    if value is not None:
        set_env(shell, key, value)
    elif not find_env_entry(shell.env, key):
        set_env(shell, key, "")
    return True


def builtin_export(shell: Shell, command: Command) -> int:
    """``export``: list the environment, or set each ``NAME[=VALUE]`` given."""
    arguments: Sequence[str] = command.args[1:]
    if not arguments:
        for line in format_export(shell.env):
            print(line)
        return 0
    status = 0
    for arg in arguments:
        if not _export_one(shell, arg):
            status = 1
    return status


def builtin_unset(shell: Shell, command: Command) -> int:
    """``unset``: remove each named variable from the environment."""
    for key in command.args[1:]:
        shell.env = remove_env_entry(shell.env, key)
    return 0


def builtin_env(shell: Shell, command: Command) -> int:
    """``env``: print every entry that carries a value."""
    for entry in shell.env:
        if "=" in entry:
            print(entry)
    return 0