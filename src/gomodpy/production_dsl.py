"""Operator DSL for writing productions.

    Entry |= PATH & VERSION @ act_entry
    Ident |= (IDENT | STRING | RAW_STRING) @ act_ident
    Block |= eps() @ act_empty_list

``&`` concatenates symbols, ``|`` separates alternatives that share one action,
``@`` binds the action and ``|=`` adds the result to a nonterminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .grammar import ActionFn, Grammar, NonTerminal, Production, Symbol, Terminal, n, t
from .tokens import TokenKind


def _syms(x: object) -> tuple[Symbol, ...] | None:
    if isinstance(x, Sym):
        return (x.sym,)
    if isinstance(x, Rhs):
        return x.syms
    return None


@dataclass(frozen=True, slots=True)
class Rhs:
    syms: tuple[Symbol, ...]

    def __and__(self, other):
        # A & B & C @ act parses as A & B & (C @ act)
        if isinstance(other, Bound):
            if len(other.alts) != 1:
                raise TypeError("cannot concatenate with an alternation; parenthesize the alternation")
            return Bound((self.syms + other.alts[0],), other.action)
        more = _syms(other)
        if more is None:
            return NotImplemented
        return Rhs(self.syms + more)

    def __or__(self, other):
        if isinstance(other, Bound):
            return Bound((self.syms, *other.alts), other.action)
        if isinstance(other, Alts):
            return Alts((self.syms, *other.alts))
        more = _syms(other)
        if more is None:
            return NotImplemented
        return Alts((self.syms, more))

    def __matmul__(self, action: ActionFn) -> "Bound":
        return Bound((self.syms,), action)


@dataclass(frozen=True, slots=True)
class Sym(Rhs):
    sym: Symbol = field(default=None)  # type: ignore[assignment]

    def __init__(self, sym: Symbol) -> None:
        object.__setattr__(self, "syms", (sym,))
        object.__setattr__(self, "sym", sym)


@dataclass(frozen=True, slots=True)
class Alts:
    alts: tuple[tuple[Symbol, ...], ...]

    def __or__(self, other):
        if isinstance(other, Bound):
            return Bound((*self.alts, *other.alts), other.action)
        if isinstance(other, Alts):
            return Alts((*self.alts, *other.alts))
        more = _syms(other)
        if more is None:
            return NotImplemented
        return Alts((*self.alts, more))

    def __matmul__(self, action: ActionFn) -> "Bound":
        return Bound(self.alts, action)


@dataclass(frozen=True, slots=True)
class Bound:
    """One or more alternative bodies sharing a semantic action."""

    alts: tuple[tuple[Symbol, ...], ...]
    action: ActionFn

    def __and__(self, other):
        raise TypeError("cannot use & after @ action; put @ action at the end")

    def __or__(self, other):
        raise TypeError("cannot use | after @ action; put @ action at the end")


@dataclass(frozen=True, slots=True)
class RuleNt(Sym):
    """Nonterminal usable as a body symbol and as a head with ``|=``."""

    _builder: "GrammarBuilder" = field(default=None, compare=False)  # type: ignore[assignment]

    def __init__(self, sym: NonTerminal, builder: "GrammarBuilder") -> None:
        Sym.__init__(self, sym)
        object.__setattr__(self, "_builder", builder)

    def __ior__(self, rhs):
        if isinstance(rhs, Bound):
            for body in rhs.alts:
                self._builder.add(self.sym, body, rhs.action)
            return self
        if isinstance(rhs, Rhs):
            raise TypeError("production missing action: use `rhs @ action`")
        if isinstance(rhs, Alts):
            raise TypeError("alternation missing action: use `(a | b | c) @ action`")
        raise TypeError("production must be `rhs @ action`")


@dataclass(slots=True)
class GrammarBuilder:
    productions: list[Production] = field(default_factory=list)

    def nt(self, name: str) -> RuleNt:
        return RuleNt(n(name), self)

    def t(self, kind: TokenKind) -> Sym:
        return Sym(t(kind))

    def add(self, head: Symbol, body: tuple[Symbol, ...], action: ActionFn) -> None:
        if not isinstance(head, NonTerminal):
            raise TypeError("head must be a NonTerminal")
        for s in body:
            if not isinstance(s, (Terminal, NonTerminal)):
                raise TypeError(f"body symbol must be a Terminal or NonTerminal, got {s!r}")
        self.productions.append(Production(head=head, body=body, action=action))

    def build(self, start: RuleNt) -> Grammar:
        if not isinstance(start.sym, NonTerminal):
            raise TypeError("start symbol must be a NonTerminal")
        return Grammar(start=start.sym, productions=tuple(self.productions))


def eps() -> Rhs:
    return Rhs(())
