from __future__ import annotations

from .api import ParseResult, parse_file, parse_files, parse_source
from .ast import (
    Comment,
    Directive,
    Document,
    Exclude,
    Go,
    Godebug,
    Identifier,
    Interpreted,
    Module,
    Plain,
    Replace,
    Require,
    Retract,
    Toolchain,
)
from .errors import ParseError
from .spans import Position, Span

__all__ = [
    "Comment",
    "Directive",
    "Document",
    "Exclude",
    "Go",
    "Godebug",
    "Identifier",
    "Interpreted",
    "Module",
    "ParseError",
    "ParseResult",
    "Plain",
    "Position",
    "Replace",
    "Require",
    "Retract",
    "Span",
    "Toolchain",
    "parse_file",
    "parse_files",
    "parse_source",
]
