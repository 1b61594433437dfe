from __future__ import annotations

import re

from .ast import Comment
from .errors import ParseError
from .gomod import KEYWORDS
from .spans import Cursor, Position, Span
from .tokens import Token, TokenKind


# Bare identifiers: module paths, versions, local paths (Windows ones included). Any run
# of non-blank characters except brackets, commas and quotes. It stops before a comment,
# an arrow or a line continuation; a leading "=" is punctuation.
_IDENT_RE = re.compile(r"(?:[^\s()\[\],\"`/\\=]|/(?![/*])|\\(?!\r?\n)|=(?!>))+")
_BLANK_RE = re.compile(r"[ \t\r]+")
_CONTINUATION_RE = re.compile(r"\\\r?\n")

_SIMPLE_ESCAPES: dict[str, str] = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_OCT_DIGITS = frozenset("01234567")

_PUNCT: dict[str, TokenKind] = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    "=": TokenKind.EQ,
}


def tokenize(src: str, *, file: str = "<memory>") -> list[Token]:
    tokens, _ = lex(src, file=file)
    return tokens


def lex(src: str, *, file: str = "<memory>") -> tuple[list[Token], list[Comment]]:
    """Split ``src`` into tokens and comments.

    Newlines are significant in go.mod and come out as NEWLINE tokens. A zero-width
    NEWLINE is added before EOF when the input does not end with one, so every line
    is terminated the same way.
    """
    cur = Cursor(src=src)
    tokens: list[Token] = []
    comments: list[Comment] = []
    # Whether a token or comment has already been seen on the current line.
    line_used = False

    def make_span(start: Position, end: Position) -> Span:
        return Span(file=file, start=start, end=end)

    def error_at(start: Position, msg: str, hint: str | None = None) -> ParseError:
        end = cur.pos()
        if end.index < start.index:
            end = start
        return ParseError(span=make_span(start, end), message=msg, hint=hint)

    def emit(kind: TokenKind, start: Position, value: str | None = None) -> None:
        tokens.append(Token(kind, make_span(start, cur.pos()), src, value))

    while not cur.eof():
        ch = cur.peek()

        # whitespace
        m = _BLANK_RE.match(src, cur.index)
        if m:
            cur.advance_to(m.end())
            continue

        # line continuation
        m = _CONTINUATION_RE.match(src, cur.index)
        if m:
            cur.advance_to(m.end())
            continue

        start = cur.pos()

        if ch == "\n":
            cur.advance()
            emit(TokenKind.NEWLINE, start)
            line_used = False
            continue

        # line comment //
        if cur.startswith("//"):
            end = src.find("\n", cur.index)
            if end < 0:
                end = len(src)
            elif src[end - 1] == "\r":
                end -= 1
            cur.advance_to(end)
            comments.append(Comment(make_span(start, cur.pos()), src, standalone=not line_used))
            line_used = True
            continue

        # block comment /* ... */
        if cur.startswith("/*"):
            close = src.find("*/", cur.index + 2)
            if close < 0:
                cur.advance_to(len(src))
                raise error_at(start, "unterminated block comment", hint="add closing */")
            nested = src.find("/*", cur.index + 2, close)
            if nested >= 0:
                at = cur.position_at(nested)
                raise ParseError(
                    span=make_span(at, cur.position_at(nested + 2)),
                    message="nested block comment",
                    hint="block comments do not nest; close the outer comment first",
                )
            cur.advance_to(close + 2)
            comments.append(Comment(make_span(start, cur.pos()), src, standalone=not line_used))
            line_used = True
            continue

        line_used = True

        # interpreted strings "..."
        if ch == '"':
            value = _scan_interpreted(cur, make_span)
            emit(TokenKind.STRING, start, value)
            continue

        # raw strings `...`
        if ch == "`":
            close = src.find("`", cur.index + 1)
            nl = src.find("\n", cur.index + 1)
            if close < 0 or (0 <= nl < close):
                cur.advance_to(len(src) if nl < 0 else nl)
                raise error_at(start, "unterminated raw string", hint="close the back quote")
            cur.advance_to(close + 1)
            emit(TokenKind.RAW_STRING, start)
            continue

        if cur.startswith("=>"):
            cur.advance(2)
            emit(TokenKind.ARROW, start)
            continue

        k = _PUNCT.get(ch)
        if k is not None:
            cur.advance()
            emit(k, start)
            continue

        # identifiers / keywords
        m = _IDENT_RE.match(src, cur.index)
        if m:
            kind = _keyword_at(src, cur.index, m.end())
            cur.advance_to(m.end())
            emit(kind, start)
            continue

        raise error_at(
            start,
            f"unexpected character {ch!r}",
            hint="only spaces and tabs may separate tokens",
        )

    eof_pos = cur.pos()
    if not tokens or tokens[-1].kind is not TokenKind.NEWLINE:
        tokens.append(Token(TokenKind.NEWLINE, make_span(eof_pos, eof_pos), src))
    tokens.append(Token(TokenKind.EOF, make_span(eof_pos, eof_pos), src))
    return tokens, comments


def _keyword_at(src: str, i: int, j: int) -> TokenKind:
    # Compare in place so that plain identifiers are never copied out of the source.
    for word, kind in KEYWORDS.items():
        if j - i == len(word) and src.startswith(word, i):
            return kind
    return TokenKind.IDENT


def _scan_interpreted(cur: Cursor, make_span) -> str:
    """Consume an interpreted string at the cursor and return its decoded value.

    Byte escapes (\\xhh, \\ooo) are collected and must decode as UTF-8 together.
    """
    src = cur.src
    start = cur.pos()
    i = cur.index + 1
    out: list[str] = []
    pending = bytearray()
    pending_at = -1

    def fail(at: int, width: int, msg: str, hint: str | None = None) -> ParseError:
        return ParseError(
            span=make_span(cur.position_at(at), cur.position_at(min(at + width, len(src)))),
            message=msg,
            hint=hint,
        )

    def flush() -> None:
        nonlocal pending_at
        if not pending:
            return
        try:
            out.append(pending.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise fail(pending_at, 4, "invalid UTF-8 in string escape", hint=str(e)) from None
        pending.clear()
        pending_at = -1

    while True:
        if i >= len(src) or src[i] == "\n":
            cur.advance_to(i)
            raise ParseError(
                span=make_span(start, cur.pos()),
                message="unterminated string literal",
                hint="close the quote",
            )
        c = src[i]
        if c == '"':
            flush()
            cur.advance_to(i + 1)
            return "".join(out)
        if c != "\\":
            flush()
            j = i
            while j < len(src) and src[j] not in '"\\\n':
                j += 1
            out.append(src[i:j])
            i = j
            continue

        esc = src[i + 1] if i + 1 < len(src) else ""
        if esc in _SIMPLE_ESCAPES:
            flush()
            out.append(_SIMPLE_ESCAPES[esc])
            i += 2
        elif esc == "x":
            digits = src[i + 2 : i + 4]
            if len(digits) != 2 or not set(digits) <= _HEX_DIGITS:
                raise fail(i, 4, "invalid \\x escape", hint="use exactly two hex digits")
            if not pending:
                pending_at = i
            pending.append(int(digits, 16))
            i += 4
        elif esc in _OCT_DIGITS:
            digits = src[i + 1 : i + 4]
            if len(digits) != 3 or not set(digits) <= _OCT_DIGITS or int(digits, 8) > 0xFF:
                raise fail(i, 4, "invalid octal escape", hint="use three octal digits up to \\377")
            if not pending:
                pending_at = i
            pending.append(int(digits, 8))
            i += 4
        elif esc in ("u", "U"):
            n = 4 if esc == "u" else 8
            digits = src[i + 2 : i + 2 + n]
            if len(digits) != n or not set(digits) <= _HEX_DIGITS:
                raise fail(i, 2 + n, f"invalid \\{esc} escape", hint=f"use exactly {n} hex digits")
            cp = int(digits, 16)
            if cp > 0x10FFFF or 0xD800 <= cp <= 0xDFFF:
                raise fail(i, 2 + n, f"escape \\{esc}{digits} is not a valid code point")
            flush()
            out.append(chr(cp))
            i += 2 + n
        else:
            raise fail(i, 2, f"unknown escape sequence \\{esc}" if esc else "unterminated string escape")
