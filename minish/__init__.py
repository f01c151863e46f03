"""Shell building blocks: lexer, quote checks, expansion, builtins and executor."""

__version__ = "0.1.0"