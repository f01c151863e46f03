"""Errors the shell reports to the user."""

from __future__ import annotations

from collections.abc import Sequence

from .lexer import Token, TokenType

_MESSAGES = {
    0: "syntax error near unexpected token `newline'",
    1: "memory error: unable to assign memory",
    2: "syntax error: unable to locate closing quotation",
    3: "Failed to fork",
    4: "Failed to dup2",
    5: "Failed to pipe",
}

_TOKEN_TEXT = {
    TokenType.PIPE: "`|'",
    TokenType.REDIR_OUT: "`>'",
    TokenType.REDIR_APPEND: "`>>'",
    TokenType.REDIR_IN: "`<'",
    TokenType.HEREDOC: "`<<'",
    TokenType.END_OF_INPUT: "`newline'",
}


class ShellError(Exception):
    """An error reported as ``minishell: <message>`` with an exit status."""

    def __init__(self, message: str, status: int = 1) -> None:
        self.message = message
        self.status = status
        super().__init__(message)

    def __str__(self) -> str:
        return f"minishell: {self.message}"


class ParseError(ShellError):
    """A syntax error in a command line."""


def error_message(code: int) -> str:
    """Return the message for one of the numbered shell errors ('' if unknown)."""
    return _MESSAGES.get(code, "")


def unexpected_token(kind: TokenType) -> ParseError:
    """Build the syntax error for an operator token found where it is not allowed."""
    shown = _TOKEN_TEXT.get(kind)
    if shown is None:
        return ParseError("syntax error near unexpected token")
    return ParseError(f"syntax error near unexpected token {shown}")


def check_segment_start(tokens: Sequence[Token]) -> None:
    """Raise ParseError unless ``tokens`` starts a command of a pipeline."""
    if not tokens or tokens[0].kind is TokenType.END_OF_INPUT:
        raise ParseError(error_message(0))
    if tokens[0].kind is TokenType.PIPE:
        raise unexpected_token(TokenType.PIPE)