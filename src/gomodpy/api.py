from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .ast import Directive, Document, Replace
from .comments import attach_comments
from .errors import ParseError
from .gomod import build_gomod_grammar
from .lexer import lex
from .parser import Parser
from .spans import Cursor, Position, Span

logger = logging.getLogger(__name__)

_PARSER: Parser | None = None
_PARSER_LOCK = threading.Lock()


def _get_parser() -> Parser:
    global _PARSER
    if _PARSER is None:
        with _PARSER_LOCK:
            if _PARSER is None:
                _PARSER = Parser.for_grammar(build_gomod_grammar())
    return _PARSER


@dataclass(frozen=True, slots=True)
class ParseResult:
    entrypoints: tuple[str, ...]
    files: dict[str, Document]  # absolute path -> document


def parse_source(src: str, *, file: str = "<memory>") -> Document:
    """Parse go.mod text into a Document.

    Bare identifiers in the result are views into ``src``; keep it alive as long
    as the document is used. Raises ParseError on the first lexical or syntax error.
    """
    tokens, comments = lex(src, file=file)
    out = _get_parser().parse(tokens)
    if not isinstance(out, tuple):
        raise RuntimeError(f"parser returned unexpected value: {type(out)!r}")
    directives: tuple[Directive, ...] = attach_comments(out, comments)

    end = Cursor(src=src)
    end.advance_to(len(src))
    span = Span(file=file, start=Position(offset=0, line=1, column=1, index=0), end=end.pos())
    return Document(span=span, directives=directives, comments=tuple(comments))


def parse_file(path: str | Path) -> Document:
    p = Path(path).expanduser().resolve()
    data = p.read_bytes()
    try:
        src = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise _decode_error(str(p), data, e) from None
    logger.debug("parsing %s (%d bytes)", p, len(data))
    return parse_source(src, file=str(p))


def _decode_error(file: str, data: bytes, e: UnicodeDecodeError) -> ParseError:
    # Everything before the bad byte decoded fine, so positions can be computed on it.
    prefix = data[: e.start].decode("utf-8")
    cur = Cursor(src=prefix)
    cur.advance_to(len(prefix))
    at = cur.pos()
    return ParseError(
        span=Span(file=file, start=at, end=Position(at.offset + 1, at.line, at.column + 1, at.index)),
        message=f"invalid UTF-8 byte 0x{data[e.start]:02x}",
        hint="go.mod files must be UTF-8 encoded",
    )


def parse_files(
    *,
    entrypoints: list[str | Path],
    follow_replacements: bool = True,
) -> ParseResult:
    """Parse go.mod files, following local-path replacements to their go.mod.

    Entrypoints may name a go.mod file or a module directory.
    """
    files: dict[str, Document] = {}

    def resolve_replacement(target: str, span: Span, importer: Path) -> Path:
        base = Path(target)
        if not base.is_absolute():
            base = importer.parent / base
        candidate = base / "go.mod"
        if candidate.is_file():
            return candidate.resolve()
        raise ParseError(
            span=span,
            message=f"replacement directory has no go.mod: {target!r}",
            hint=f"looked for {candidate}",
        )

    def load(p: Path) -> None:
        ap = str(p.resolve())
        if ap in files:
            return
        doc = parse_file(p)
        files[ap] = doc
        if not follow_replacements:
            return
        for d in doc.of_kind(Replace):
            for spec in d.specs:
                if spec.is_local:
                    load(resolve_replacement(spec.new.path.value, spec.new.span, p))

    eps: list[Path] = []
    for e in entrypoints:
        p = Path(e).expanduser().resolve()
        if p.is_dir():
            p = p / "go.mod"
        eps.append(p)
    for e in eps:
        load(e)

    logger.debug("parsed %d go.mod files from %d entrypoints", len(files), len(eps))
    return ParseResult(entrypoints=tuple(str(p) for p in eps), files=files)
