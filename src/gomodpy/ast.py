from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import ClassVar, TypeVar

from .spans import Position, Span


@dataclass(frozen=True, slots=True)
class Node:
    span: Span

    @property
    def range(self) -> tuple[Position, Position]:
        return (self.span.start, self.span.end)


@dataclass(frozen=True, slots=True)
class Plain(Node):
    """An identifier that is a view into the parsed source.

    Bare tokens and raw (back-quoted) strings produce Plain identifiers. The text is
    not copied at parse time: ``value`` slices ``source[lo:hi]`` when asked. ``lo`` and
    ``hi`` are string indexes; for raw strings they exclude the quotes while ``span``
    includes them.
    """

    source: str = field(repr=False)
    lo: int
    hi: int

    @property
    def value(self) -> str:
        return self.source[self.lo : self.hi]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Interpreted(Node):
    """A double-quoted identifier with its escape sequences decoded."""

    value: str

    def __str__(self) -> str:
        return self.value


Identifier = Plain | Interpreted


@dataclass(frozen=True, slots=True)
class Comment(Node):
    source: str = field(repr=False)
    standalone: bool = False  # nothing but whitespace precedes it on its line

    @property
    def text(self) -> str:
        """Comment body without the ``//`` or ``/* */`` delimiters, stripped."""
        raw = self.span.slice(self.source)
        if raw.startswith("/*"):
            return raw[2:-2].strip()
        return raw[2:].strip()


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Entry(Node):
    comments: tuple[Comment, ...] = field(default=(), kw_only=True)


@dataclass(frozen=True, slots=True)
class ModulePath(Entry):
    path: Identifier


@dataclass(frozen=True, slots=True)
class GoVersion(Entry):
    version: Identifier


@dataclass(frozen=True, slots=True)
class ToolchainName(Entry):
    name: Identifier


@dataclass(frozen=True, slots=True)
class GodebugSetting(Entry):
    key: Identifier
    value: Identifier


@dataclass(frozen=True, slots=True)
class ModuleVersion(Entry):
    """A ``path version`` pair, as used by require and exclude."""

    path: Identifier
    version: Identifier

    @property
    def indirect(self) -> bool:
        for c in self.comments:
            text = c.text
            if text == "indirect" or text.startswith("indirect;"):
                return True
        return False


@dataclass(frozen=True, slots=True)
class ModuleRef(Node):
    """One side of a replacement: a module path or file path, optionally versioned."""

    path: Identifier
    version: Identifier | None = None


@dataclass(frozen=True, slots=True)
class Replacement(Entry):
    old: ModuleRef
    new: ModuleRef

    @property
    def is_local(self) -> bool:
        """True when the replacement target is a directory rather than a module."""
        if self.new.version is not None:
            return False
        p = self.new.path.value
        if p in (".", "..") or p.startswith(("./", "../", "/", ".\\", "..\\", "\\")):
            return True
        # Windows drive path such as C:\src\x
        return len(p) > 2 and p[0].isascii() and p[0].isalpha() and p[1] == ":" and p[2] in "/\\"


@dataclass(frozen=True, slots=True)
class RetractVersion(Entry):
    version: Identifier


@dataclass(frozen=True, slots=True)
class RetractRange(Entry):
    """Inclusive version interval ``[low, high]``."""

    low: Identifier
    high: Identifier


RetractSpec = RetractVersion | RetractRange


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Directive(Node):
    keyword: ClassVar[str] = ""

    specs: tuple[Entry, ...] = ()
    block: bool = False
    comments: tuple[Comment, ...] = ()


@dataclass(frozen=True, slots=True)
class Module(Directive):
    keyword: ClassVar[str] = "module"
    specs: tuple[ModulePath, ...] = ()

    @property
    def path(self) -> Identifier | None:
        return self.specs[0].path if self.specs else None


@dataclass(frozen=True, slots=True)
class Go(Directive):
    keyword: ClassVar[str] = "go"
    specs: tuple[GoVersion, ...] = ()

    @property
    def version(self) -> Identifier | None:
        return self.specs[0].version if self.specs else None


@dataclass(frozen=True, slots=True)
class Toolchain(Directive):
    keyword: ClassVar[str] = "toolchain"
    specs: tuple[ToolchainName, ...] = ()

    @property
    def name(self) -> Identifier | None:
        return self.specs[0].name if self.specs else None


@dataclass(frozen=True, slots=True)
class Godebug(Directive):
    keyword: ClassVar[str] = "godebug"
    specs: tuple[GodebugSetting, ...] = ()


@dataclass(frozen=True, slots=True)
class Require(Directive):
    keyword: ClassVar[str] = "require"
    specs: tuple[ModuleVersion, ...] = ()


@dataclass(frozen=True, slots=True)
class Exclude(Directive):
    keyword: ClassVar[str] = "exclude"
    specs: tuple[ModuleVersion, ...] = ()


@dataclass(frozen=True, slots=True)
class Replace(Directive):
    keyword: ClassVar[str] = "replace"
    specs: tuple[Replacement, ...] = ()


@dataclass(frozen=True, slots=True)
class Retract(Directive):
    keyword: ClassVar[str] = "retract"
    specs: tuple[RetractSpec, ...] = ()


D = TypeVar("D", bound=Directive)


@dataclass(frozen=True, slots=True)
class Document(Node):
    directives: tuple[Directive, ...] = ()
    comments: tuple[Comment, ...] = ()

    def __len__(self) -> int:
        return len(self.directives)

    def __iter__(self) -> Iterator[Directive]:
        return iter(self.directives)

    def __getitem__(self, i: int) -> Directive:
        return self.directives[i]

    def of_kind(self, kind: type[D]) -> tuple[D, ...]:
        return tuple(d for d in self.directives if isinstance(d, kind))

    @property
    def module_path(self) -> str | None:
        for d in self.of_kind(Module):
            if d.path is not None:
                return d.path.value
        return None


def walk(obj: object) -> Iterator[Node]:
    """Yield every node reachable from ``obj``, depth first, ``obj`` included.

    Attached comments are reached both from their owner and from the document.
    """
    if isinstance(obj, Node):
        yield obj
        for f in fields(obj):
            if f.name != "span":
                yield from walk(getattr(obj, f.name))
    elif isinstance(obj, tuple):
        for x in obj:
            yield from walk(x)
