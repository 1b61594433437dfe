from __future__ import annotations

from dataclasses import dataclass, field


def _utf8_len(s: str) -> int:
    if s.isascii():
        return len(s)
    return len(s.encode("utf-8", "surrogatepass"))


@dataclass(frozen=True, slots=True)
class Position:
    """A concrete source position.

    ``offset`` is the 0-based UTF-8 byte offset into the source; ``index`` is the
    0-based index into the decoded ``str``. Line and column are 1-based for
    user-facing messages; columns count characters.
    """

    offset: int
    line: int
    column: int
    index: int


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open span [start, end) in a single file."""

    file: str
    start: Position
    end: Position

    def format(self) -> str:
        return f"{self.file}:{self.start.line}:{self.start.column}"

    def slice(self, src: str | bytes) -> str | bytes:
        """Covered text: by byte offset for ``bytes``, by string index for ``str``."""
        if isinstance(src, bytes):
            return src[self.start.offset : self.end.offset]
        return src[self.start.index : self.end.index]


@dataclass(slots=True)
class Cursor:
    """Forward-only read position over a source string.

    ``index`` moves over the ``str``; line, column and the byte offset are updated
    from the text consumed by each move, so the total bookkeeping cost is linear
    in the input length.
    """

    src: str = field(repr=False)
    index: int = 0
    offset: int = 0
    line: int = 1
    column: int = 1

    def eof(self) -> bool:
        return self.index >= len(self.src)

    def peek(self, n: int = 0) -> str:
        j = self.index + n
        if j >= len(self.src):
            return ""
        return self.src[j]

    def startswith(self, s: str) -> bool:
        return self.src.startswith(s, self.index)

    def pos(self) -> Position:
        return Position(offset=self.offset, line=self.line, column=self.column, index=self.index)

    def position_at(self, j: int) -> Position:
        """Position of string index ``j`` (at or ahead of the cursor), without moving."""
        if j < self.index:
            raise ValueError(f"cannot look behind the cursor: {j} < {self.index}")
        j = min(j, len(self.src))
        offset = self.offset + _utf8_len(self.src[self.index : j])
        newlines = self.src.count("\n", self.index, j)
        if not newlines:
            return Position(offset=offset, line=self.line, column=self.column + (j - self.index), index=j)
        last_nl = self.src.rfind("\n", self.index, j)
        return Position(offset=offset, line=self.line + newlines, column=j - last_nl, index=j)

    def advance_to(self, j: int) -> None:
        p = self.position_at(j)
        self.index = p.index
        self.offset = p.offset
        self.line = p.line
        self.column = p.column

    def advance(self, n: int = 1) -> None:
        self.advance_to(self.index + n)
