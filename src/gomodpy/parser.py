from __future__ import annotations

from dataclasses import dataclass

from .errors import ParseError
from .grammar import Grammar, Production
from .lalr import ParseTable, build_lalr_table, expected_terminals
from .spans import Span
from .tokens import Token, TokenKind


def _span_of(v: object) -> Span:
    # Token and AST nodes both carry .span.
    sp = getattr(v, "span", None)
    if sp is None:
        raise TypeError(f"semantic value has no span: {type(v)!r}")
    return sp


def join_span(*vals: object) -> Span:
    """Join spans of tokens/nodes into a single span (from first to last)."""
    real = [v for v in vals if v is not None]
    if not real:
        raise ValueError("join_span() requires at least one value")
    first = _span_of(real[0])
    last = _span_of(real[-1])
    return Span(file=first.file, start=first.start, end=last.end)


# Token kinds the grammar accepts in identifier position.
_IDENT_KINDS = frozenset({TokenKind.IDENT, TokenKind.STRING, TokenKind.RAW_STRING})
_KEYWORD_KINDS = frozenset(
    {
        TokenKind.MODULE,
        TokenKind.GO,
        TokenKind.TOOLCHAIN,
        TokenKind.GODEBUG,
        TokenKind.REQUIRE,
        TokenKind.EXCLUDE,
        TokenKind.REPLACE,
        TokenKind.RETRACT,
    }
)


def describe_expected(kinds: set[TokenKind]) -> tuple[str, ...]:
    """Collapse a set of acceptable token kinds into readable alternatives."""
    kinds = set(kinds)
    out: list[str] = []
    if TokenKind.IDENT in kinds:
        # Keywords are only acceptable here because they double as identifiers.
        kinds -= _IDENT_KINDS | _KEYWORD_KINDS
        out.append("identifier")
    elif _KEYWORD_KINDS <= kinds:
        # Start of a line: blank lines are always fine, so only name what can start one.
        kinds -= _KEYWORD_KINDS | {TokenKind.NEWLINE}
        out.append("directive keyword")
    order = list(TokenKind)
    for k in sorted(kinds, key=order.index):
        out.append(k.value if k in _WORDY_KINDS else f"'{k.value}'")
    return tuple(out)


_WORDY_KINDS = _IDENT_KINDS | {TokenKind.NEWLINE, TokenKind.EOF}


def _token_display(tok: Token) -> str:
    if tok.kind in (TokenKind.NEWLINE, TokenKind.EOF):
        return tok.kind.value
    if tok.kind in _KEYWORD_KINDS:
        return f"keyword {tok.lexeme!r}"
    if tok.kind in _IDENT_KINDS:
        return f"{tok.kind.value} {tok.lexeme!r}"
    return repr(tok.lexeme)


@dataclass(slots=True)
class Parser:
    grammar: Grammar
    table: ParseTable

    @classmethod
    def for_grammar(cls, grammar: Grammar) -> "Parser":
        return cls(grammar=grammar, table=build_lalr_table(grammar))

    def parse(self, tokens: list[Token]) -> object:
        """Run the table over ``tokens`` (which must end with EOF).

        Returns whatever the start production's action built. The first token
        without an action in the current state raises ParseError.
        """
        states: list[int] = [0]
        values: list[object] = []
        pos = 0
        while True:
            tok = tokens[pos]
            act = self.table.action.get(states[-1], {}).get(tok.kind)
            if act is None:
                raise self._syntax_error(states[-1], tok)
            kind, arg = act
            if kind == "shift":
                states.append(arg)
                values.append(tok)
                pos += 1
            elif kind == "reduce":
                self._reduce(arg, states, values)
            elif kind == "accept":
                if len(values) != 1:
                    raise RuntimeError(f"accept with {len(values)} values on the stack")
                return values[0]
            else:
                raise RuntimeError(f"unknown action: {act}")

    def _reduce(self, index: int, states: list[int], values: list[object]) -> None:
        prod: Production = self.grammar.productions[index]
        width = len(prod.body)
        if width > len(values):
            raise RuntimeError(f"stack underflow reducing {prod} ({len(values)} values)")
        args = values[len(values) - width :]
        del values[len(values) - width :]
        del states[len(states) - width :]
        values.append(prod.action(args))
        nxt = self.table.goto.get(states[-1], {}).get(prod.head)
        if nxt is None:
            raise RuntimeError(f"no goto from state {states[-1]} on {prod.head.name}")
        states.append(nxt)

    def _syntax_error(self, state: int, tok: Token) -> ParseError:
        expected = describe_expected(expected_terminals(self.table, state))
        return ParseError(
            span=tok.span,
            message=f"unexpected {_token_display(tok)}",
            hint=f"expected {_join_alternatives(expected)}" if expected else None,
            expected=expected,
        )


def _join_alternatives(items: tuple[str, ...]) -> str:
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " or " + items[-1]
