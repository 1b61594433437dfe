from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .spans import Span


class TokenKind(str, Enum):
    # Identifiers and strings
    IDENT = "identifier"
    STRING = "interpreted string"
    RAW_STRING = "raw string"

    # Punctuation / operators
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    EQ = "="
    ARROW = "=>"

    # Directive keywords
    MODULE = "module"
    GO = "go"
    TOOLCHAIN = "toolchain"
    GODEBUG = "godebug"
    REQUIRE = "require"
    EXCLUDE = "exclude"
    REPLACE = "replace"
    RETRACT = "retract"

    NEWLINE = "newline"
    EOF = "end of input"


@dataclass(frozen=True, slots=True)
class Token:
    """A lexed token.

    The token does not copy its text: ``lexeme`` slices the source on demand.
    ``value`` is only set for interpreted strings and holds the decoded text.
    """

    kind: TokenKind
    span: Span
    src: str = field(repr=False, compare=False)
    value: str | None = None

    @property
    def lexeme(self) -> str:
        return self.src[self.span.start.index : self.span.end.index]

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.lexeme!r}, {self.span.format()})"
