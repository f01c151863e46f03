"""State shared by the parser, the expander and the executor."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field

from .lexer import Token, TokenType
from .paths import paths_from_env


@dataclass
class Redirection:
    """A redirection of one command: its operator and the word after it.

    ``heredoc_fd`` holds the read end of the pipe a here-document was
    written into; it is None for every other kind of redirection.
    """

    kind: TokenType
    target: str
    heredoc_fd: int | None = None


@dataclass
class Command:
    """One simple command of a pipeline."""

    args: list[str]
    redirections: list[Redirection] = field(default_factory=list)
    builtin: Callable[[Shell, Command], int] | None = None


@dataclass
class Shell:
    """Everything the shell keeps between and during command lines."""

    env: list[str] = field(default_factory=list)
    paths: list[str] | None = None
    commands: list[Command] = field(default_factory=list)
    tokens: list[Token] = field(default_factory=list)
    line: str | None = None
    pipes: int = 0
    processes: list[subprocess.Popen] = field(default_factory=list)
    error_num: int = 0

    def __post_init__(self) -> None:
        self.refresh_paths()

    def refresh_paths(self) -> None:
        """Recompute the search directories from the PATH entry of ``env``."""
        self.paths = paths_from_env(self.env)

    def reset(self) -> None:
        """Drop the state of the last command line, keeping env and status."""
        for command in self.commands:
            _close_heredocs(command.redirections)
        self.commands = []
        self.line = None
        self.processes = []
        self.tokens = []
        self.refresh_paths()


def _close_heredocs(redirections: list[Redirection]) -> None:
    for redirection in redirections:
        if redirection.kind is TokenType.HEREDOC and redirection.heredoc_fd is not None:
            try:
                os.close(redirection.heredoc_fd)
            except OSError:
                pass
            redirection.heredoc_fd = None