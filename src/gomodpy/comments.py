"""Attach comments to the directives and entries they belong to.

A node owns:

- the *leading* comments: standalone comment lines directly above its first line,
  with no blank line in between, plus a comment in front of it on that line;
- the *trailing* comments: comments that start on its last line after it ends.

Block directives also own the comments after ``(`` on the keyword line. This is
how ``// indirect`` markers and retraction rationales reach their entries.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from . import ast as A


class _CommentIndex:
    def __init__(self, comments: Iterable[A.Comment]) -> None:
        self.standalone_by_end_line: dict[int, A.Comment] = {}
        self.trailing_by_line: dict[int, list[A.Comment]] = {}
        for c in comments:
            if c.standalone:
                self.standalone_by_end_line[c.span.end.line] = c
            else:
                self.trailing_by_line.setdefault(c.span.start.line, []).append(c)

    def leading(self, line: int, before: int) -> tuple[A.Comment, ...]:
        out: list[A.Comment] = []
        # A standalone comment may also end on the node's own line, in front of it.
        c = self.standalone_by_end_line.get(line)
        if c is None or c.span.end.offset > before:
            c = self.standalone_by_end_line.get(line - 1)
        while c is not None:
            out.append(c)
            c = self.standalone_by_end_line.get(c.span.start.line - 1)
        out.reverse()
        return tuple(out)

    def trailing(self, line: int, after: int) -> tuple[A.Comment, ...]:
        return tuple(c for c in self.trailing_by_line.get(line, ()) if c.span.start.offset >= after)


def attach_comments(
    directives: Sequence[A.Directive], comments: Sequence[A.Comment]
) -> tuple[A.Directive, ...]:
    if not comments:
        return tuple(directives)
    index = _CommentIndex(comments)
    return tuple(_attach(d, index) for d in directives)


def _attach(d: A.Directive, index: _CommentIndex) -> A.Directive:
    start, end = d.span.start, d.span.end
    if not d.block:
        specs = tuple(
            dataclasses.replace(s, comments=index.trailing(s.span.end.line, s.span.end.offset))
            for s in d.specs
        )
        own = index.leading(start.line, start.offset) + index.trailing(end.line, end.offset)
        return dataclasses.replace(d, specs=specs, comments=own)

    specs = tuple(
        dataclasses.replace(
            s,
            comments=index.leading(s.span.start.line, s.span.start.offset)
            + index.trailing(s.span.end.line, s.span.end.offset),
        )
        for s in d.specs
    )
    own = (
        index.leading(start.line, start.offset)
        + index.trailing(start.line, start.offset)
        + index.trailing(end.line, end.offset)
    )
    return dataclasses.replace(d, specs=specs, comments=own)
