"""Split a command line into shell tokens."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class TokenType(IntEnum):
    """Kinds of token produced by the lexer."""

    PIPE = 1
    REDIR_OUT = 2
    REDIR_APPEND = 3
    REDIR_IN = 4
    HEREDOC = 5
    WORD = 6
    DQUOTE_WORD = 7
    SQUOTE_WORD = 8
    ENV_VAR = 9
    EXIT_STATUS = 10
    END_OF_INPUT = 11


@dataclass
class Token:
    """One lexical token; ``join_next`` marks a token glued to the next one."""

    kind: TokenType
    text: str | None = None
    index: int = 0
    join_next: bool = False


class LexerError(ValueError):
    """Raised when the input cannot be tokenized."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"lexer error: {reason}")


_SEPARATORS = frozenset(" \t\n|<>'\"")
_TWO_CHAR_OPS = {"<<": TokenType.HEREDOC, ">>": TokenType.REDIR_APPEND}
_ONE_CHAR_OPS = {
    "|": TokenType.PIPE,
    "<": TokenType.REDIR_IN,
    ">": TokenType.REDIR_OUT,
}


def is_separator(char: str) -> bool:
    """True for characters that end a bare word (an empty string counts)."""
    return char == "" or char in _SEPARATORS


def is_quote(char: str) -> bool:
    return char in ("'", '"')


def is_operator_start(char: str) -> bool:
    return char in ("<", ">", "|")


def is_word_char(char: str) -> bool:
    return not is_separator(char) and not is_quote(char) and not is_operator_start(char)


def _is_name_char(char: str) -> bool:
    return char == "_" or (char.isascii() and char.isalnum())


def _skip_spaces(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in " \t":
        pos += 1
    return pos


def _read_quoted(text: str, pos: int) -> tuple[Token, int]:
    quote = text[pos]
    end = text.find(quote, pos + 1)
    if end == -1:
        raise LexerError("unclosed quote")
    kind = TokenType.SQUOTE_WORD if quote == "'" else TokenType.DQUOTE_WORD
    return Token(kind, text[pos : end + 1]), end + 1


def _read_operator(text: str, pos: int) -> tuple[Token, int]:
    pair = text[pos : pos + 2]
    if pair in _TWO_CHAR_OPS:
        return Token(_TWO_CHAR_OPS[pair]), pos + 2
    char = text[pos]
    if char in _ONE_CHAR_OPS:
        return Token(_ONE_CHAR_OPS[char]), pos + 1
    raise LexerError("unexpected operator")


def _read_dollar(text: str, pos: int) -> tuple[Token, int]:
    end = pos + 1
    if text[end : end + 1] == "?":
        return Token(TokenType.EXIT_STATUS, "$?"), end + 1
    while end < len(text) and _is_name_char(text[end]):
        end += 1
    return Token(TokenType.ENV_VAR, text[pos:end]), end


def _read_word(text: str, pos: int) -> tuple[Token, int]:
    end = pos
    while end < len(text) and not is_separator(text[end]):
        end += 1
    return Token(TokenType.WORD, text[pos:end]), end


def _read_token(text: str, pos: int) -> tuple[Token, int]:
    char = text[pos]
    if is_quote(char):
        return _read_quoted(text, pos)
    if is_operator_start(char):
        return _read_operator(text, pos)
    if char == "$":
        return _read_dollar(text, pos)
    if is_word_char(char):
        return _read_word(text, pos)
    raise LexerError("invalid character")


def tokenize(text: str) -> list[Token]:
    """Return the tokens of ``text``, always ending with an END_OF_INPUT token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        pos = _skip_spaces(text, pos)
        if pos >= len(text):
            break
        token, pos = _read_token(text, pos)
        token.index = len(tokens)
        token.join_next = (
            pos < len(text)
            and text[pos] not in " \t\n"
            and not is_operator_start(text[pos])
        )
        tokens.append(token)
    tokens.append(Token(TokenType.END_OF_INPUT, None, len(tokens)))
    return tokens