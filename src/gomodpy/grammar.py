from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .tokens import TokenKind


@dataclass(frozen=True, slots=True)
class Terminal:
    kind: TokenKind

    def __str__(self) -> str:
        return f"T({self.kind.name})"


@dataclass(frozen=True, slots=True)
class NonTerminal:
    name: str

    def __str__(self) -> str:
        return f"N({self.name})"


Symbol = Terminal | NonTerminal


# A semantic action receives the values of the body symbols: Token for terminals,
# whatever the nested action returned for nonterminals.
ActionFn = Callable[[list[object]], object]


@dataclass(frozen=True, slots=True)
class Production:
    head: NonTerminal
    body: tuple[Symbol, ...]
    action: ActionFn = field(compare=False)

    def __str__(self) -> str:
        rhs = " ".join(str(s) for s in self.body) if self.body else "ε"
        return f"{self.head.name} -> {rhs}"


@dataclass(frozen=True, slots=True)
class Grammar:
    start: NonTerminal
    productions: tuple[Production, ...]
    _by_head: dict[NonTerminal, tuple[int, ...]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        index: dict[NonTerminal, list[int]] = {}
        for i, p in enumerate(self.productions):
            index.setdefault(p.head, []).append(i)
        self._by_head.update({k: tuple(v) for k, v in index.items()})

    def prods_for(self, head: NonTerminal) -> tuple[int, ...]:
        return self._by_head.get(head, ())

    def nonterminals(self) -> set[NonTerminal]:
        return set(self._by_head)

    def terminals(self) -> set[TokenKind]:
        return {s.kind for p in self.productions for s in p.body if isinstance(s, Terminal)}


def t(kind: TokenKind) -> Terminal:
    return Terminal(kind)


def n(name: str) -> NonTerminal:
    return NonTerminal(name)
