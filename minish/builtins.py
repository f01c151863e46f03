"""The builtins that do not touch the environment list, and the builtin table."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable

from .environment import builtin_env, builtin_export, builtin_unset, set_env
from .models import Command, Shell

BuiltinFn = Callable[[Shell, Command], int]

_LONG_MAX = 2**63 - 1
_LONG_MIN_MAGNITUDE = 2**63
_DIGITS = "0123456789"
_PARENT_BUILTINS = frozenset({"cd", "exit", "export", "unset"})


class ShellExit(SystemExit):
    """Raised by ``exit`` to leave the shell with ``status``."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(status)


def _error(message: str) -> None:
    print(f"minishell: {message}", file=sys.stderr)


def _write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def get_env(env: Iterable[str], key: str | None) -> str | None:
    """Return the value of ``key`` in ``env``, or None when it is not set."""
    if key is None:
        return None
    prefix = key + "="
    return next((entry[len(prefix):] for entry in env if entry.startswith(prefix)), None)


def _is_n_flag(arg: str) -> bool:
    return len(arg) > 1 and arg[0] == "-" and set(arg[1:]) == {"n"}


def builtin_echo(shell: Shell, command: Command) -> int:
    """``echo``: print the arguments; leading ``-n``/``-nnn`` flags drop the newline."""
    words = command.args[1:]
    newline = True
    while words and _is_n_flag(words[0]):
        newline = False
        words = words[1:]
    _write(" ".join(words) + ("\n" if newline else ""))
    return 0


def _target_path(shell: Shell, command: Command) -> str | None:
    if len(command.args) < 2:
        path = get_env(shell.env, "HOME")
        if path is None:
            _error("cd: HOME not set")
        return path
    if command.args[1] == "-":
        path = get_env(shell.env, "OLDPWD")
        if path is None:
            _error("cd: OLDPWD not set")
        else:
            _write(path + "\n")
        return path
    return command.args[1]


def builtin_cd(shell: Shell, command: Command) -> int:
    """``cd``: change directory and record PWD and OLDPWD."""
    if len(command.args) > 2:
        _error("cd: too many arguments")
        return 1
    try:
        oldpwd = os.getcwd()
    except OSError:
        oldpwd = ""
    path = _target_path(shell, command)
    if path is None:
        return 1
    try:
        os.chdir(path)
    except OSError as exc:
        _error(f"cd: {exc.strerror}")
        return 1
    try:
        cwd = os.getcwd()
    except OSError:
        return 0
    set_env(shell, "PWD", cwd)
    set_env(shell, "OLDPWD", oldpwd)
    return 0


def builtin_pwd(shell: Shell, command: Command) -> int:
    """``pwd``: print the working directory."""
    try:
        cwd = os.getcwd()
    except OSError as exc:
        _error(f"pwd: {exc.strerror}")
        shell.error_num = 1
    else:
        _write(cwd + "\n")
        shell.error_num = 0
    return shell.error_num


def _split_number(text: str) -> tuple[int, str]:
    """Skip spaces and tabs, read a sign; return it with the digits that follow."""
    rest = text.lstrip(" \t")
    sign = 1
    if rest[:1] in ("-", "+"):
        if rest[0] == "-":
            sign = -1
        rest = rest[1:]
    end = 0
    while end < len(rest) and rest[end] in _DIGITS:
        end += 1
    return sign, rest[:end]


def is_numeric(text: str) -> bool:
    """True for optional blanks, an optional sign, digits and optional blanks."""
    rest = text.lstrip(" \t")
    if rest[:1] in ("-", "+"):
        rest = rest[1:]
    if not rest[:1] or rest[0] not in _DIGITS:
        return False
    rest = rest.lstrip(_DIGITS)
    return rest.lstrip(" \t") == ""


def is_overflow(text: str) -> bool:
    """True when the leading number of ``text`` does not fit in a signed 64-bit value."""
    sign, digits = _split_number(text)
    if not digits:
        return False
    limit = _LONG_MAX if sign == 1 else _LONG_MIN_MAGNITUDE
    return int(digits) > limit


def builtin_exit(shell: Shell, command: Command) -> int:
    """``exit``: leave the shell by raising ShellExit.

    Returns 1 without leaving when given more than one numeric argument.
    """
    if len(command.args) < 2:
        raise ShellExit(shell.error_num)
    arg = command.args[1]
    if not is_numeric(arg) or is_overflow(arg):
        _error(f"exit: {arg}: numeric argument required")
        raise ShellExit(2)
    if len(command.args) > 2:
        _error("exit: too many arguments")
        shell.error_num = 1
        return 1
    sign, digits = _split_number(arg)
    raise ShellExit((sign * int(digits)) % 256)


_BUILTINS: dict[str, BuiltinFn] = {
    "echo": builtin_echo,
    "cd": builtin_cd,
    "pwd": builtin_pwd,
    "export": builtin_export,
    "unset": builtin_unset,
    "env": builtin_env,
    "exit": builtin_exit,
}


def lookup_builtin(name: str | None) -> BuiltinFn | None:
    """Return the builtin called ``name``, or None if there is none."""
    if name is None:
        return None
    return _BUILTINS.get(name)


def runs_in_parent(name: str | None) -> bool:
    """True for builtins that must run in the shell process itself when alone."""
    return name in _PARENT_BUILTINS