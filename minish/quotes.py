"""Check that quotes on a command line are closed."""

from __future__ import annotations


def validate_quotes(text: str) -> bool:
    """Return False when a quote opened outside other quotes is never closed."""
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char in ("'", '"'):
            end = text.find(char, pos + 1)
            if end == -1:
                return False
            pos = end + 1
        else:
            pos += 1
    return True