from __future__ import annotations

from gomodpy.gomod import build_gomod_grammar
from gomodpy.lalr import build_lalr_table


def main() -> None:
    g = build_gomod_grammar()
    print(f"productions: {len(g.productions)}")
    for i, p in enumerate(g.productions):
        print(f"{i:>3}: {p}")
    table = build_lalr_table(g)
    print(f"states: {table.state_count}")


if __name__ == "__main__":
    main()
