"""Run parsed command lines: builtins in the shell process, other commands as children."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, redirect_stdout
from dataclasses import replace

from .builtins import ShellExit, builtin_cd, builtin_exit
from .environment import builtin_export, builtin_unset
from .errors import ShellError, error_message
from .expander import expand_commands
from .lexer import TokenType
from .models import Command, Redirection, Shell

_PARENT_BUILTINS = (builtin_cd, builtin_exit, builtin_export, builtin_unset)
_FILE_MODE = 0o644
_OPEN_FLAGS = {
    TokenType.REDIR_IN: os.O_RDONLY,
    TokenType.REDIR_OUT: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    TokenType.REDIR_APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
}
_QUIT_MESSAGE = "Quit: (core dumped)"

Outcome = "subprocess.Popen | int"


class CommandNotRunnable(ShellError):
    """A command that cannot be started; ``status`` is 126 or 127."""

    def __init__(self, name: str, reason: str, status: int) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}", status)


def _report(error: ShellError) -> None:
    print(str(error), file=sys.stderr)


def _close(*fds: int | None) -> None:
    for fd in fds:
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass


def resolve_command(command: Command, shell: Shell) -> str:
    """Return the file to run for ``command``, or raise CommandNotRunnable."""
    name = command.args[0] if command.args else ""
    if "/" in name:
        if not os.path.exists(name):
            raise CommandNotRunnable(name, "No such file or directory", 127)
        if os.path.isdir(name):
            raise CommandNotRunnable(name, "Is a directory", 126)
        if not os.access(name, os.X_OK):
            raise CommandNotRunnable(name, "Permission denied", 126)
        return name
    if name and shell.paths is not None:
        for directory in shell.paths:
            candidate = directory + name
            if os.access(candidate, os.F_OK | os.X_OK) and not os.path.isdir(candidate):
                return candidate
    raise CommandNotRunnable(name, "command not found", 127)


def _open_target(redirection: Redirection) -> int:
    flags = _OPEN_FLAGS.get(redirection.kind)
    if flags is None:
        raise ShellError(f"{redirection.target}: invalid redirection")
    return os.open(redirection.target, flags, _FILE_MODE)


def open_redirections(command: Command) -> tuple[int | None, int | None]:
    """Open the command's redirections in order and return ``(stdin_fd, stdout_fd)``.

    A later redirection of the same stream replaces an earlier one, whose file
    is still opened (and so created or truncated) first. A here-document's
    pipe is handed over and taken off its redirection. Either element is None
    when that stream is not redirected; the caller closes what is returned.
    """
    stdin_fd: int | None = None
    stdout_fd: int | None = None
    for redirection in command.redirections:
        if redirection.kind is TokenType.HEREDOC:
            if redirection.heredoc_fd is None:
                continue
            fd = redirection.heredoc_fd
            redirection.heredoc_fd = None
            _close(stdin_fd)
            stdin_fd = fd
            continue
        try:
            fd = _open_target(redirection)
        except OSError as exc:
            _close(stdin_fd, stdout_fd)
            raise ShellError(f"{redirection.target}: {exc.strerror}") from exc
        except ShellError:
            _close(stdin_fd, stdout_fd)
            raise
        if redirection.kind is TokenType.REDIR_IN:
            _close(stdin_fd)
            stdin_fd = fd
        else:
            _close(stdout_fd)
            stdout_fd = fd
    return stdin_fd, stdout_fd


def status_from_returncode(returncode: int) -> int:
    """Exit status as the shell reports it: 128 plus the signal for killed children."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def wait_all(processes: Sequence[subprocess.Popen | int]) -> int:
    """Wait for every stage and return the status of the last one.

    Stages given as ints have already finished with that status. The first
    child killed by SIGINT or SIGQUIT gets a newline or a quit message.
    """
    status = 0
    reported = False
    quit_signal = getattr(signal, "SIGQUIT", None)
    for process in processes:
        if isinstance(process, int):
            status = process
            continue
        returncode = process.wait()
        signum = -returncode if returncode < 0 else 0
        if signum and not reported:
            if signum == signal.SIGINT:
                sys.stdout.write("\n")
                sys.stdout.flush()
                reported = True
            elif quit_signal is not None and signum == quit_signal:
                print(_QUIT_MESSAGE, file=sys.stderr)
                reported = True
        status = status_from_returncode(returncode)
    return status


@contextmanager
def _interrupts_ignored() -> Iterator[None]:
    try:
        previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    except ValueError:
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


def _restore_default_signals() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    quit_signal = getattr(signal, "SIGQUIT", None)
    if quit_signal is not None:
        signal.signal(quit_signal, signal.SIG_DFL)


def _env_mapping(env: Sequence[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for entry in env:
        key, sep, value = entry.partition("=")
        if sep:
            mapping.setdefault(key, value)
    return mapping


def _spawn(
    command: Command, shell: Shell, stdin_fd: int | None, stdout_fd: int | None
) -> subprocess.Popen:
    path = resolve_command(command, shell)
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        return subprocess.Popen(
            command.args,
            executable=path,
            stdin=stdin_fd,
            stdout=stdout_fd,
            env=_env_mapping(shell.env),
            preexec_fn=_restore_default_signals if os.name == "posix" else None,
        )
    except OSError as exc:
        raise ShellError(f"{command.args[0]}: {exc.strerror}") from exc


def _run_builtin(command: Command, shell: Shell, stdout_fd: int | None) -> int:
    """Run the command's builtin with its output sent to ``stdout_fd`` if given."""
    if stdout_fd is None:
        return command.builtin(shell, command)
    status = 0
    try:
        with open(stdout_fd, "w", encoding="utf-8", closefd=False) as out, redirect_stdout(out):
            status = command.builtin(shell, command)
    except BrokenPipeError:
        pass
    return status


def _start(
    command: Command, shell: Shell, stdin_fd: int | None, stdout_fd: int | None
) -> subprocess.Popen | int:
    """Start one stage as a child would: builtins work on a copy of the shell."""
    try:
        redirected_in, redirected_out = open_redirections(command)
    except ShellError as exc:
        _report(exc)
        return exc.status
    try:
        if not command.args:
            return 0
        out = redirected_out if redirected_out is not None else stdout_fd
        if command.builtin is not None:
            try:
                return _run_builtin(command, replace(shell, env=list(shell.env)), out)
            except ShellExit as exc:
                return exc.status
        source = redirected_in if redirected_in is not None else stdin_fd
        try:
            return _spawn(command, shell, source, out)
        except ShellError as exc:
            _report(exc)
            return exc.status
    finally:
        _close(redirected_in, redirected_out)


def _run_parent_builtin(command: Command, shell: Shell) -> int:
    try:
        redirected_in, redirected_out = open_redirections(command)
    except ShellError as exc:
        _report(exc)
        return 1
    try:
        return _run_builtin(command, shell, redirected_out)
    finally:
        _close(redirected_in, redirected_out)


def run_single(command: Command, shell: Shell) -> int:
    """Run a command line without pipes; set and return ``shell.error_num``.

    ``cd``, ``exit``, ``export`` and ``unset`` act on the shell itself;
    ``exit`` raises ShellExit.
    """
    if command.builtin in _PARENT_BUILTINS:
        shell.error_num = _run_parent_builtin(command, shell)
        return shell.error_num
    outcome = _start(command, shell, None, None)
    if isinstance(outcome, subprocess.Popen):
        shell.processes = [outcome]
    with _interrupts_ignored():
        shell.error_num = wait_all([outcome])
    return shell.error_num


def run_pipeline(shell: Shell) -> int:
    """Run ``shell.commands`` joined by pipes; set and return ``shell.error_num``."""
    outcomes: list[subprocess.Popen | int] = []
    previous_read: int | None = None
    commands = shell.commands
    for position, command in enumerate(commands):
        read_end: int | None = None
        write_end: int | None = None
        if position < len(commands) - 1:
            try:
                read_end, write_end = os.pipe()
            except OSError:
                _report(ShellError(error_message(5)))
                break
        try:
            outcomes.append(_start(command, shell, previous_read, write_end))
        finally:
            _close(write_end, previous_read)
        previous_read = read_end
    _close(previous_read)
    shell.processes = [o for o in outcomes if isinstance(o, subprocess.Popen)]
    with _interrupts_ignored():
        shell.error_num = wait_all(outcomes)
    return shell.error_num


def execute(shell: Shell) -> int:
    """Expand the parsed commands and run them; return the new exit status."""
    expand_commands(shell.commands, shell.env, shell.error_num)
    if not shell.commands:
        return shell.error_num
    if shell.pipes == 0:
        return run_single(shell.commands[0], shell)
    return run_pipeline(shell)