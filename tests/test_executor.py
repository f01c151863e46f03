import os
import signal
import subprocess
import sys

import pytest

from minish.builtins import ShellExit, builtin_echo, builtin_exit
from minish.environment import builtin_export
from minish.errors import ShellError
from minish.executor import (
    CommandNotRunnable,
    execute,
    open_redirections,
    resolve_command,
    run_pipeline,
    run_single,
    status_from_returncode,
    wait_all,
)
from minish.lexer import TokenType
from minish.models import Command, Redirection, Shell

PY = sys.executable
UPPER = "import sys; sys.stdout.write(sys.stdin.read().upper())"


def out_to(path, kind=TokenType.REDIR_OUT):
    return Redirection(kind, str(path))


def py(code, *redirections):
    return Command([PY, "-c", code], list(redirections))


def make_tool(directory, name="tool"):
    path = directory / name
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


# resolve_command

def test_resolve_searches_path(tmp_path):
    make_tool(tmp_path)
    shell = Shell(env=[f"PATH={tmp_path}"])
    assert resolve_command(Command(["tool"]), shell) == f"{tmp_path}/tool"


def test_resolve_first_directory_wins(tmp_path):
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    make_tool(first)
    make_tool(second)
    shell = Shell(env=[f"PATH={first}:{second}"])
    assert resolve_command(Command(["tool"]), shell) == f"{first}/tool"


def test_resolve_not_found(tmp_path):
    shell = Shell(env=[f"PATH={tmp_path}"])
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command(["nosuchtool"]), shell)
    assert info.value.status == 127
    assert str(info.value) == "minishell: nosuchtool: command not found"


def test_resolve_without_path_variable(tmp_path):
    make_tool(tmp_path)
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command(["tool"]), Shell(env=[]))
    assert info.value.status == 127


def test_resolve_empty_name(tmp_path):
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command([""]), Shell(env=[f"PATH={tmp_path}"]))
    assert info.value.status == 127


def test_resolve_slash_missing(tmp_path):
    missing = str(tmp_path / "missing")
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command([missing]), Shell())
    assert info.value.status == 127
    assert info.value.reason == "No such file or directory"


def test_resolve_slash_directory(tmp_path):
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command([str(tmp_path)]), Shell())
    assert info.value.status == 126
    assert info.value.reason == "Is a directory"


def test_resolve_slash_not_executable(tmp_path):
    path = tmp_path / "plain"
    path.write_text("data")
    path.chmod(0o644)
    with pytest.raises(CommandNotRunnable) as info:
        resolve_command(Command([str(path)]), Shell())
    assert info.value.status == 126
    assert info.value.reason == "Permission denied"


def test_resolve_slash_executable(tmp_path):
    tool = make_tool(tmp_path)
    assert resolve_command(Command([str(tool)]), Shell()) == str(tool)


# open_redirections

def test_open_output_truncates(tmp_path):
    target = tmp_path / "out.txt"
    target.write_text("old contents")
    stdin_fd, stdout_fd = open_redirections(Command(["x"], [out_to(target)]))
    assert stdin_fd is None
    os.write(stdout_fd, b"new")
    os.close(stdout_fd)
    assert target.read_text() == "new"


def test_open_append(tmp_path):
    target = tmp_path / "log.txt"
    target.write_text("one\n")
    _, stdout_fd = open_redirections(
        Command(["x"], [out_to(target, TokenType.REDIR_APPEND)])
    )
    os.write(stdout_fd, b"two\n")
    os.close(stdout_fd)
    assert target.read_text() == "one\ntwo\n"


def test_open_input(tmp_path):
    source = tmp_path / "in.txt"
    source.write_text("payload")
    stdin_fd, stdout_fd = open_redirections(
        Command(["x"], [Redirection(TokenType.REDIR_IN, str(source))])
    )
    assert stdout_fd is None
    assert os.read(stdin_fd, 100) == b"payload"
    os.close(stdin_fd)


def test_open_missing_input_raises(tmp_path):
    missing = tmp_path / "missing"
    with pytest.raises(ShellError) as info:
        open_redirections(Command(["x"], [Redirection(TokenType.REDIR_IN, str(missing))]))
    assert "No such file or directory" in str(info.value)


def test_every_output_file_is_created(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    _, stdout_fd = open_redirections(Command(["x"], [out_to(first), out_to(second)]))
    os.write(stdout_fd, b"data")
    os.close(stdout_fd)
    assert first.exists() and first.read_text() == ""
    assert second.read_text() == "data"


def test_heredoc_fd_is_handed_over():
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b"line\n")
    os.close(write_fd)
    redirection = Redirection(TokenType.HEREDOC, "EOF", heredoc_fd=read_fd)
    stdin_fd, _ = open_redirections(Command(["x"], [redirection]))
    assert stdin_fd == read_fd
    assert redirection.heredoc_fd is None
    assert os.read(stdin_fd, 100) == b"line\n"
    os.close(stdin_fd)


# status_from_returncode and wait_all

def test_status_from_returncode_plain():
    assert status_from_returncode(0) == 0
    assert status_from_returncode(3) == 3


def test_status_from_returncode_signal():
    assert status_from_returncode(-signal.SIGTERM) == 128 + signal.SIGTERM


def test_wait_all_last_status_wins():
    assert wait_all([1, 0]) == 0
    assert wait_all([0, 5]) == 5
    assert wait_all([]) == 0


def test_wait_all_signaled_child():
    process = subprocess.Popen(
        [PY, "-c", "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"]
    )
    assert wait_all([process]) == 128 + signal.SIGTERM


def test_wait_all_sigint_prints_newline(capsys):
    process = subprocess.Popen(
        [
            PY,
            "-c",
            "import os, signal; signal.signal(signal.SIGINT, signal.SIG_DFL); "
            "os.kill(os.getpid(), signal.SIGINT)",
        ]
    )
    assert wait_all([process]) == 128 + signal.SIGINT
    assert capsys.readouterr().out == "\n"


# run_single

def test_single_builtin_to_file(tmp_path):
    target = tmp_path / "echo.txt"
    command = Command(["echo", "hi"], [out_to(target)], builtin_echo)
    shell = Shell()
    assert run_single(command, shell) == 0
    assert target.read_text() == "hi\n"


def test_single_parent_builtin_changes_env():
    shell = Shell(env=["HOME=/tmp"])
    command = Command(["export", "NAME=value"], [], builtin_export)
    assert run_single(command, shell) == 0
    assert "NAME=value" in shell.env


def test_single_external_status():
    shell = Shell()
    assert run_single(py("import sys; sys.exit(3)"), shell) == 3
    assert shell.error_num == 3


def test_single_external_output(tmp_path):
    target = tmp_path / "out.txt"
    assert run_single(py("print('out')", out_to(target)), Shell()) == 0
    assert target.read_text() == "out\n"


def test_single_heredoc_feeds_stdin(tmp_path):
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b"abc\n")
    os.close(write_fd)
    target = tmp_path / "out.txt"
    heredoc = Redirection(TokenType.HEREDOC, "EOF", heredoc_fd=read_fd)
    assert run_single(py(UPPER, heredoc, out_to(target)), Shell()) == 0
    assert target.read_text() == "ABC\n"
    assert heredoc.heredoc_fd is None


def test_single_command_not_found(tmp_path, capsys):
    shell = Shell(env=[f"PATH={tmp_path}"])
    assert run_single(Command(["nosuchcmd"]), shell) == 127
    assert "minishell: nosuchcmd: command not found" in capsys.readouterr().err


def test_single_redirection_failure(tmp_path, capsys):
    missing = tmp_path / "missing"
    command = py("pass", Redirection(TokenType.REDIR_IN, str(missing)))
    assert run_single(command, Shell()) == 1
    assert "No such file or directory" in capsys.readouterr().err


def test_single_empty_command_creates_file(tmp_path):
    target = tmp_path / "created"
    assert run_single(Command([], [out_to(target)]), Shell()) == 0
    assert target.exists()


def test_single_exit_raises():
    command = Command(["exit", "7"], [], builtin_exit)
    with pytest.raises(ShellExit) as info:
        run_single(command, Shell())
    assert info.value.status == 7


# run_pipeline

def test_pipeline_builtin_into_external(tmp_path):
    target = tmp_path / "out.txt"
    shell = Shell(pipes=1)
    shell.commands = [
        Command(["echo", "hello"], [], builtin_echo),
        py(UPPER, out_to(target)),
    ]
    assert run_pipeline(shell) == 0
    assert target.read_text() == "HELLO\n"


def test_pipeline_externals(tmp_path):
    target = tmp_path / "out.txt"
    shell = Shell(pipes=1)
    shell.commands = [py("print('abc')"), py(UPPER, out_to(target))]
    assert run_pipeline(shell) == 0
    assert target.read_text() == "ABC\n"


def test_pipeline_status_is_last():
    shell = Shell(pipes=1)
    shell.commands = [py("import sys; sys.exit(4)"), py("pass")]
    assert run_pipeline(shell) == 0
    shell = Shell(pipes=1)
    shell.commands = [py("pass"), py("import sys; sys.exit(4)")]
    assert run_pipeline(shell) == 4
    assert shell.error_num == 4


def test_pipeline_builtin_runs_on_copy(tmp_path):
    target = tmp_path / "out.txt"
    shell = Shell(env=["KEEP=1"], pipes=1)
    shell.commands = [
        Command(["export", "NEW=value"], [], builtin_export),
        Command(["echo", "x"], [out_to(target)], builtin_echo),
    ]
    assert run_pipeline(shell) == 0
    assert shell.env == ["KEEP=1"]
    assert target.read_text() == "x\n"


def test_pipeline_exit_does_not_leave():
    shell = Shell(pipes=1)
    shell.commands = [Command(["exit", "7"], [], builtin_exit), py("pass")]
    assert run_pipeline(shell) == 0
    shell = Shell(pipes=1)
    shell.commands = [py("pass"), Command(["exit", "7"], [], builtin_exit)]
    assert run_pipeline(shell) == 7


def test_pipeline_missing_command_first(tmp_path):
    target = tmp_path / "out.txt"
    shell = Shell(env=[f"PATH={tmp_path}"], pipes=1)
    shell.commands = [
        Command(["nosuchcmd"]),
        Command(["echo", "after"], [out_to(target)], builtin_echo),
    ]
    assert run_pipeline(shell) == 0
    assert target.read_text() == "after\n"


# execute

def test_execute_expands_variables(tmp_path):
    target = tmp_path / "out.txt"
    shell = Shell(env=["GREETING=hi"])
    shell.commands = [Command(["echo", "$GREETING", "$NOPE", "x"], [out_to(target)], builtin_echo)]
    assert execute(shell) == 0
    assert target.read_text() == "hi x\n"


def test_execute_expands_redirection_target(tmp_path):
    shell = Shell(env=[f"DIR={tmp_path}"])
    shell.commands = [Command(["echo", "data"], [out_to("$DIR/file")], builtin_echo)]
    assert execute(shell) == 0
    assert (tmp_path / "file").read_text() == "data\n"


def test_execute_parent_builtin():
    shell = Shell()
    shell.commands = [Command(["export", "A=1"], [], builtin_export)]
    assert execute(shell) == 0
    assert "A=1" in shell.env


def test_execute_pipeline_status():
    shell = Shell(pipes=1)
    shell.commands = [py("pass"), py("import sys; sys.exit(2)")]
    assert execute(shell) == 2
    assert shell.error_num == 2


def test_execute_no_commands_keeps_status():
    shell = Shell(error_num=9)
    assert execute(shell) == 9