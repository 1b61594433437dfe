"""
go.mod grammar in one place:

- **Token policy**: directive keywords and which token kinds count as identifiers
- **Grammar**: `build_gomod_grammar()` producing the LALR(1) grammar used by the parser

Newlines terminate directives and block entries; the lexer guarantees that the
last line is terminated too. Every directive accepts a single form
(`require a v1`) and a block form (`require (` NEWLINE ... `)`).

This module is meant to be *human scannable*.
"""

from __future__ import annotations

from collections.abc import Callable

from . import ast as A
from .errors import ParseError
from .grammar import Grammar
from .parser import join_span
from .production_dsl import GrammarBuilder, RuleNt, eps
from .spans import Cursor, Span
from .tokens import Token, TokenKind


# ---------------------------------------------------------------------------
# Tokens / keyword policy
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, TokenKind] = {
    "module": TokenKind.MODULE,
    "go": TokenKind.GO,
    "toolchain": TokenKind.TOOLCHAIN,
    "godebug": TokenKind.GODEBUG,
    "require": TokenKind.REQUIRE,
    "exclude": TokenKind.EXCLUDE,
    "replace": TokenKind.REPLACE,
    "retract": TokenKind.RETRACT,
}

# Keywords are only special at the start of a line; anywhere an identifier is expected
# they are taken literally (a module may well be called "example.com/go").
IDENTIFIER_TOKEN_KINDS: tuple[TokenKind, ...] = (
    TokenKind.IDENT,
    TokenKind.STRING,
    TokenKind.RAW_STRING,
    *KEYWORDS.values(),
)


# ---------------------------------------------------------------------------
# Semantic helpers
# ---------------------------------------------------------------------------


def _tok(v: object) -> Token:
    if not isinstance(v, Token):
        raise TypeError(f"expected Token, got {type(v)!r}")
    return v


def _node(tp: type, v: object):
    if not isinstance(v, tp):
        raise TypeError(f"expected {tp.__name__}, got {type(v)!r}")
    return v


def _as_list(v: object) -> list[object]:
    if isinstance(v, list):
        return v
    raise TypeError(f"expected list, got {type(v)!r}")


def identifier_from_token(tok: Token) -> A.Identifier:
    sp = tok.span
    if tok.kind is TokenKind.STRING:
        if tok.value is None:
            raise RuntimeError(f"interpreted string token without decoded value: {tok!r}")
        return A.Interpreted(span=sp, value=tok.value)
    if tok.kind is TokenKind.RAW_STRING:
        return A.Plain(span=sp, source=tok.src, lo=sp.start.index + 1, hi=sp.end.index - 1)
    return A.Plain(span=sp, source=tok.src, lo=sp.start.index, hi=sp.end.index)


def _split_at(ident: A.Plain, at: int) -> tuple[A.Plain, A.Plain]:
    """Split a plain identifier around the separator at ``value[at]``, still without copying."""
    sp = ident.span
    start = sp.start
    cur = Cursor(src=ident.source, index=start.index, offset=start.offset, line=start.line, column=start.column)
    sep = ident.lo + at
    key = A.Plain(
        span=Span(file=sp.file, start=cur.position_at(ident.lo), end=cur.position_at(sep)),
        source=ident.source,
        lo=ident.lo,
        hi=sep,
    )
    value = A.Plain(
        span=Span(file=sp.file, start=cur.position_at(sep + 1), end=cur.position_at(ident.hi)),
        source=ident.source,
        lo=sep + 1,
        hi=ident.hi,
    )
    return key, value


def build_gomod_grammar() -> Grammar:
    g = GrammarBuilder()
    NT = g.nt
    T = g.t

    # Terminals
    LPAREN = T(TokenKind.LPAREN)
    RPAREN = T(TokenKind.RPAREN)
    LBRACKET = T(TokenKind.LBRACKET)
    RBRACKET = T(TokenKind.RBRACKET)
    COMMA = T(TokenKind.COMMA)
    EQ = T(TokenKind.EQ)
    ARROW = T(TokenKind.ARROW)
    NEWLINE = T(TokenKind.NEWLINE)

    # Nonterminals
    File = NT("File")
    Lines = NT("Lines")
    Line = NT("Line")
    Directive = NT("Directive")
    Ident = NT("Ident")
    ModulePathEntry = NT("ModulePathEntry")
    GoVersionEntry = NT("GoVersionEntry")
    ToolchainEntry = NT("ToolchainEntry")
    GodebugEntry = NT("GodebugEntry")
    ModuleVersionEntry = NT("ModuleVersionEntry")
    ModuleRef = NT("ModuleRef")
    ReplaceEntry = NT("ReplaceEntry")
    RetractEntry = NT("RetractEntry")

    # -----------------------------------------------------------------------
    # Semantic actions
    # -----------------------------------------------------------------------
    def act_passthrough(xs: list[object]) -> object:
        return xs[0]

    def act_none(xs: list[object]) -> object:
        return None

    def act_empty_list(xs: list[object]) -> object:
        return []

    def act_list_append(xs: list[object]) -> object:
        # Left-recursive lists grow in place so long files stay linear.
        acc = _as_list(xs[0])
        if xs[1] is not None:
            acc.append(xs[1])
        return acc

    def act_list_keep(xs: list[object]) -> object:
        return _as_list(xs[0])

    def act_ident(xs: list[object]) -> object:
        return identifier_from_token(_tok(xs[0]))

    def act_module_path(xs: list[object]) -> object:
        return A.ModulePath(span=join_span(xs[0]), path=xs[0])

    def act_go_version(xs: list[object]) -> object:
        return A.GoVersion(span=join_span(xs[0]), version=xs[0])

    def act_toolchain(xs: list[object]) -> object:
        return A.ToolchainName(span=join_span(xs[0]), name=xs[0])

    def act_godebug(xs: list[object]) -> object:
        return A.GodebugSetting(span=join_span(xs[0], xs[2]), key=xs[0], value=xs[2])

    def act_godebug_joined(xs: list[object]) -> object:
        ident = xs[0]
        at = ident.value.find("=") if isinstance(ident, A.Plain) else -1
        if at <= 0 or at == len(ident.value) - 1:
            raise ParseError(
                span=ident.span,
                message=f"malformed godebug setting {str(ident)!r}",
                hint="expected key=value",
            )
        key, value = _split_at(ident, at)
        return A.GodebugSetting(span=ident.span, key=key, value=value)

    def act_module_version(xs: list[object]) -> object:
        return A.ModuleVersion(span=join_span(xs[0], xs[1]), path=xs[0], version=xs[1])

    def act_ref_path(xs: list[object]) -> object:
        return A.ModuleRef(span=join_span(xs[0]), path=xs[0])

    def act_ref_versioned(xs: list[object]) -> object:
        return A.ModuleRef(span=join_span(xs[0], xs[1]), path=xs[0], version=xs[1])

    def act_replacement(xs: list[object]) -> object:
        return A.Replacement(
            span=join_span(xs[0], xs[2]),
            old=_node(A.ModuleRef, xs[0]),
            new=_node(A.ModuleRef, xs[2]),
        )

    def act_retract_version(xs: list[object]) -> object:
        return A.RetractVersion(span=join_span(xs[0]), version=xs[0])

    def act_retract_range(xs: list[object]) -> object:
        return A.RetractRange(span=join_span(xs[0], xs[4]), low=xs[1], high=xs[3])

    def act_single(cls: type[A.Directive]) -> Callable[[list[object]], object]:
        def act(xs: list[object]) -> object:
            return cls(span=join_span(xs[0], xs[1]), specs=(xs[1],), block=False)

        return act

    def act_block(cls: type[A.Directive]) -> Callable[[list[object]], object]:
        def act(xs: list[object]) -> object:
            return cls(span=join_span(xs[0], xs[4]), specs=tuple(_as_list(xs[3])), block=True)

        return act

    def act_file(xs: list[object]) -> object:
        return tuple(_node(A.Directive, d) for d in _as_list(xs[0]))

    # -----------------------------------------------------------------------
    # Productions
    # -----------------------------------------------------------------------

    # Identifiers: bare tokens, strings, and keywords used as plain words
    ident_alts = T(IDENTIFIER_TOKEN_KINDS[0])
    for kind in IDENTIFIER_TOKEN_KINDS[1:]:
        ident_alts = ident_alts | T(kind)
    Ident |= ident_alts @ act_ident

    # Entries
    ModulePathEntry |= Ident @ act_module_path
    GoVersionEntry |= Ident @ act_go_version
    ToolchainEntry |= Ident @ act_toolchain
    GodebugEntry |= Ident @ act_godebug_joined
    GodebugEntry |= Ident & EQ & Ident @ act_godebug
    ModuleVersionEntry |= Ident & Ident @ act_module_version
    ModuleRef |= Ident @ act_ref_path
    ModuleRef |= Ident & Ident @ act_ref_versioned
    ReplaceEntry |= ModuleRef & ARROW & ModuleRef @ act_replacement
    RetractEntry |= Ident @ act_retract_version
    RetractEntry |= LBRACKET & Ident & COMMA & Ident & RBRACKET @ act_retract_range

    # Directives: single and block form for each keyword
    def directive(keyword: TokenKind, cls: type[A.Directive], entry: RuleNt) -> RuleNt:
        name = cls.__name__
        KW = T(keyword)
        Dir = NT(f"{name}Directive")
        Block = NT(f"{name}Block")
        Dir |= KW & entry @ act_single(cls)
        Dir |= KW & LPAREN & NEWLINE & Block & RPAREN @ act_block(cls)
        Block |= Block & entry & NEWLINE @ act_list_append
        Block |= Block & NEWLINE @ act_list_keep
        Block |= eps() @ act_empty_list
        return Dir

    directives = [
        directive(TokenKind.MODULE, A.Module, ModulePathEntry),
        directive(TokenKind.GO, A.Go, GoVersionEntry),
        directive(TokenKind.TOOLCHAIN, A.Toolchain, ToolchainEntry),
        directive(TokenKind.GODEBUG, A.Godebug, GodebugEntry),
        directive(TokenKind.REQUIRE, A.Require, ModuleVersionEntry),
        directive(TokenKind.EXCLUDE, A.Exclude, ModuleVersionEntry),
        directive(TokenKind.REPLACE, A.Replace, ReplaceEntry),
        directive(TokenKind.RETRACT, A.Retract, RetractEntry),
    ]
    for d in directives:
        Directive |= d @ act_passthrough

    # Top-level
    Line |= NEWLINE @ act_none
    Line |= Directive & NEWLINE @ act_passthrough
    Lines |= Lines & Line @ act_list_append
    Lines |= eps() @ act_empty_list
    File |= Lines @ act_file

    return g.build(File)
