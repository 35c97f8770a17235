"""Command-line tokenizer honoring single and double quotes."""

from __future__ import annotations

_QUOTES = ("'", '"')


def tokenize(line: str) -> list[str]:
    """Split one command line into arguments.

    A quote character opens a span that ends at the next occurrence of the same
    character; inside it whitespace and the other quote character are literal.
    Quote characters themselves are not emitted. An unterminated quote runs to
    the end of the line.
    """

    tokens: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for char in line:
        if quote is None and char in _QUOTES:
            quote = char
        elif quote is not None and char == quote:
            quote = None
        elif quote is None and char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens
