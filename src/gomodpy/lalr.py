from __future__ import annotations

import logging
from dataclasses import dataclass

from .grammar import Grammar, NonTerminal, Production, Symbol, Terminal
from .tokens import TokenKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LR1Item:
    prod_index: int
    dot: int
    lookahead: TokenKind

    def core(self) -> tuple[int, int]:
        return (self.prod_index, self.dot)


@dataclass(frozen=True, slots=True)
class ParseTable:
    """ACTION / GOTO tables for an LALR parser.

    ACTION[state][terminal] = ("shift", next_state) | ("reduce", prod_index) | ("accept", 0)
    GOTO[state][nonterminal] = next_state

    Reduce indexes refer to the productions of the grammar the table was built from.
    """

    action: dict[int, dict[TokenKind, tuple[str, int]]]
    goto: dict[int, dict[NonTerminal, int]]

    @property
    def state_count(self) -> int:
        return len(self.action)


class GrammarAnalysisError(Exception):
    pass


_EPS = object()


class _Analysis:
    """FIRST sets, closure and goto over the augmented grammar."""

    def __init__(self, grammar: Grammar) -> None:
        self.start = NonTerminal(grammar.start.name + "'")
        augmented = Production(head=self.start, body=(grammar.start,), action=lambda xs: xs[0])
        self.g = Grammar(start=self.start, productions=(augmented,) + grammar.productions)
        self.first: dict[Symbol, set[object]] = {}
        self._closures: dict[frozenset[LR1Item], frozenset[LR1Item]] = {}
        self._compute_first()

    def _first_of(self, sym: Symbol) -> set[object]:
        if isinstance(sym, Terminal):
            return {sym.kind}
        return self.first.setdefault(sym, set())

    def first_seq(self, seq: tuple[Symbol, ...]) -> set[object]:
        out: set[object] = set()
        for sym in seq:
            f = self._first_of(sym)
            out |= f - {_EPS}
            if _EPS not in f:
                return out
        out.add(_EPS)
        return out

    def _compute_first(self) -> None:
        for nt in self.g.nonterminals():
            self.first[nt] = set()
        changed = True
        while changed:
            changed = False
            for p in self.g.productions:
                f = self.first[p.head]
                before = len(f)
                f |= self.first_seq(p.body)
                if len(f) != before:
                    changed = True

    def closure(self, items: frozenset[LR1Item]) -> frozenset[LR1Item]:
        cached = self._closures.get(items)
        if cached is not None:
            return cached
        out = set(items)
        work = list(items)
        while work:
            it = work.pop()
            prod = self.g.productions[it.prod_index]
            if it.dot >= len(prod.body):
                continue
            sym = prod.body[it.dot]
            if not isinstance(sym, NonTerminal):
                continue
            look = self.first_seq(prod.body[it.dot + 1 :] + (Terminal(it.lookahead),))
            for j in self.g.prods_for(sym):
                for la in look:
                    if la is _EPS:
                        continue
                    new_it = LR1Item(j, 0, la)  # type: ignore[arg-type]
                    if new_it not in out:
                        out.add(new_it)
                        work.append(new_it)
        result = frozenset(out)
        self._closures[items] = result
        return result

    def goto(self, items: frozenset[LR1Item], sym: Symbol) -> frozenset[LR1Item]:
        moved = frozenset(
            LR1Item(it.prod_index, it.dot + 1, it.lookahead)
            for it in items
            if it.dot < len(self.g.productions[it.prod_index].body)
            and self.g.productions[it.prod_index].body[it.dot] == sym
        )
        return self.closure(moved) if moved else moved


def build_lalr_table(grammar: Grammar) -> ParseTable:
    an = _Analysis(grammar)
    g2 = an.g

    symbols: set[Symbol] = {s for p in g2.productions for s in p.body}
    # EOF is never shifted; it only appears as a lookahead.
    symbols.discard(Terminal(TokenKind.EOF))
    ordered_symbols = sorted(symbols, key=str)

    # Canonical LR(1) collection
    i0 = an.closure(frozenset({LR1Item(0, 0, TokenKind.EOF)}))
    states: list[frozenset[LR1Item]] = [i0]
    index: dict[frozenset[LR1Item], int] = {i0: 0}
    transitions: dict[tuple[int, Symbol], int] = {}

    work = [0]
    while work:
        i = work.pop()
        for sym in ordered_symbols:
            nxt = an.goto(states[i], sym)
            if not nxt:
                continue
            j = index.get(nxt)
            if j is None:
                j = len(states)
                states.append(nxt)
                index[nxt] = j
                work.append(j)
            transitions[(i, sym)] = j

    # Merge LR(1) states with the same LR(0) core => LALR
    core_to_new: dict[frozenset[tuple[int, int]], int] = {}
    old_to_new: dict[int, int] = {}
    merged_states: list[set[LR1Item]] = []
    for i, st in enumerate(states):
        core = frozenset(it.core() for it in st)
        k = core_to_new.get(core)
        if k is None:
            k = len(merged_states)
            core_to_new[core] = k
            merged_states.append(set())
        merged_states[k] |= st
        old_to_new[i] = k

    merged_trans = {(old_to_new[i], sym): old_to_new[j] for (i, sym), j in transitions.items()}

    action: dict[int, dict[TokenKind, tuple[str, int]]] = {}
    goto_tbl: dict[int, dict[NonTerminal, int]] = {}

    def add_action(st: int, term: TokenKind, act: tuple[str, int]) -> None:
        row = action.setdefault(st, {})
        if term in row and row[term] != act:
            raise GrammarAnalysisError(
                f"conflict in state {st} on {term.name}: "
                f"{_describe(g2, row[term])} vs {_describe(g2, act)}"
            )
        row[term] = act

    for i, st in enumerate(merged_states):
        for it in st:
            prod = g2.productions[it.prod_index]
            if it.dot < len(prod.body):
                sym = prod.body[it.dot]
                if isinstance(sym, Terminal):
                    j = merged_trans.get((i, sym))
                    if j is not None:
                        add_action(i, sym.kind, ("shift", j))
            elif it.prod_index == 0:
                add_action(i, TokenKind.EOF, ("accept", 0))
            else:
                # Shift past the augmented production to index the original grammar.
                add_action(i, it.lookahead, ("reduce", it.prod_index - 1))

        for sym in ordered_symbols:
            if isinstance(sym, NonTerminal):
                j = merged_trans.get((i, sym))
                if j is not None:
                    goto_tbl.setdefault(i, {})[sym] = j

    logger.debug(
        "built LALR table: %d productions, %d LR(1) states, %d LALR states",
        len(grammar.productions),
        len(states),
        len(merged_states),
    )
    return ParseTable(action=action, goto=goto_tbl)


def _describe(g: Grammar, act: tuple[str, int]) -> str:
    kind, arg = act
    if kind == "reduce":
        return f"reduce {g.productions[arg + 1]}"
    return f"{kind} {arg}"


def expected_terminals(table: ParseTable, state: int) -> set[TokenKind]:
    return set(table.action.get(state, {}).keys())
