from __future__ import annotations

from pathlib import Path

import pytest

from gomodpy import (
    Exclude,
    Go,
    Godebug,
    Interpreted,
    Module,
    ParseError,
    Position,
    Plain,
    Replace,
    Require,
    Retract,
    Toolchain,
    parse_file,
    parse_files,
    parse_source,
)
from gomodpy.ast import RetractRange, RetractVersion, walk


EXAMPLE = (
    "module example.com/my/thing\n"
    "\n"
    "go 1.12\n"
    "\n"
    "require (\n"
    " example.com/other/thing v1.0.2\n"
    " example.com/new/thing/v2 v2.3.4\n"
    ")\n"
    "\n"
    "exclude example.com/old/thing v1.2.3\n"
    "replace example.com/bad/thing v1.4.5 => example.com/good/thing v1.4.5\n"
    "retract [v1.9.0, v1.9.5]"
)


def test_example_directives_in_source_order() -> None:
    doc = parse_source(EXAMPLE, file="go.mod")
    assert [type(d) for d in doc] == [Module, Go, Require, Exclude, Replace, Retract]
    assert doc.module_path == "example.com/my/thing"
    assert doc[1].version.value == "1.12"


def test_example_require_block() -> None:
    doc = parse_source(EXAMPLE, file="go.mod")
    (req,) = doc.of_kind(Require)
    assert req.block
    assert [(s.path.value, s.version.value) for s in req.specs] == [
        ("example.com/other/thing", "v1.0.2"),
        ("example.com/new/thing/v2", "v2.3.4"),
    ]

    first = req.specs[0]
    assert first.span.slice(EXAMPLE) == "example.com/other/thing v1.0.2"
    assert first.span.start.line == 6
    assert first.span.start.column == 2
    assert first.span.start.offset == 49

    assert req.span.slice(EXAMPLE) == (
        "require (\n example.com/other/thing v1.0.2\n example.com/new/thing/v2 v2.3.4\n)"
    )
    assert (req.span.start.line, req.span.end.line, req.span.end.column) == (5, 8, 2)


def test_example_replace_and_retract() -> None:
    doc = parse_source(EXAMPLE, file="go.mod")
    (rep,) = doc.of_kind(Replace)
    (spec,) = rep.specs
    assert not rep.block
    assert spec.old.path.value == "example.com/bad/thing"
    assert spec.old.version.value == "v1.4.5"
    assert spec.new.path.value == "example.com/good/thing"
    assert spec.new.version.value == "v1.4.5"
    assert not spec.is_local
    assert spec.span.slice(EXAMPLE) == "example.com/bad/thing v1.4.5 => example.com/good/thing v1.4.5"
    assert spec.old.span.slice(EXAMPLE) == "example.com/bad/thing v1.4.5"

    (ret,) = doc.of_kind(Retract)
    (rng,) = ret.specs
    assert isinstance(rng, RetractRange)
    assert (rng.low.value, rng.high.value) == ("v1.9.0", "v1.9.5")
    assert rng.span.slice(EXAMPLE) == "[v1.9.0, v1.9.5]"
    assert ret.span.slice(EXAMPLE) == "retract [v1.9.0, v1.9.5]"
    assert ret.span.end.offset == len(EXAMPLE)


def test_every_span_slices_back_to_its_text() -> None:
    doc = parse_source(EXAMPLE)
    for node in walk(doc):
        assert node.span.start.offset <= node.span.end.offset
        if isinstance(node, Plain):
            assert node.span.slice(EXAMPLE) == node.value
    for d in doc:
        assert d.span.slice(EXAMPLE).startswith(d.keyword)


def test_plain_identifiers_are_views_into_the_source() -> None:
    doc = parse_source(EXAMPLE)
    plains = [n for n in walk(doc) if isinstance(n, Plain)]
    assert plains
    assert not any(isinstance(n, Interpreted) for n in walk(doc))
    for p in plains:
        assert p.source is EXAMPLE
        assert (p.lo, p.hi) == (p.span.start.index, p.span.end.index)


def test_parsing_is_idempotent() -> None:
    a = parse_source(EXAMPLE, file="go.mod")
    b = parse_source(EXAMPLE, file="go.mod")
    assert a == b
    assert parse_source(EXAMPLE, file="go.mod") == a


def test_empty_block() -> None:
    doc = parse_source("require (\n)\n")
    (req,) = doc
    assert isinstance(req, Require)
    assert req.block
    assert req.specs == ()


def test_empty_and_comment_only_input() -> None:
    assert len(parse_source("")) == 0
    doc = parse_source("// nothing here\n\n/* still\nnothing */\n")
    assert len(doc) == 0
    assert [c.text for c in doc.comments] == ["nothing here", "still\nnothing"]


def test_block_comment_keeps_line_numbers() -> None:
    src = "module m\n\n/* a\nb\nc */\ngo 1.12\n"
    doc = parse_source(src)
    go = doc[1]
    assert isinstance(go, Go)
    assert go.span.start.line == 6
    assert go.span.start.column == 1
    assert go.version.span.start.column == 4


def test_crlf_line_endings() -> None:
    src = "module m\r\n\r\ngo 1.12\r\nrequire (\r\n\tx.io/y v1.0.0 // indirect\r\n)\r\n"
    doc = parse_source(src)
    assert doc[1].span.start.line == 3
    (req,) = doc.of_kind(Require)
    (spec,) = req.specs
    assert (spec.span.start.line, spec.span.start.column) == (5, 2)
    assert spec.span.slice(src) == "x.io/y v1.0.0"
    assert spec.indirect
    assert req.span.end.line == 6


def test_blank_lines_and_comments_inside_block() -> None:
    src = """require (
    // leading
    a.io/a v1.0.0 /* mid */ // tail

    /* block
       comment */
    b.io/b v2.0.0
)
"""
    (req,) = parse_source(src)
    assert [s.path.value for s in req.specs] == ["a.io/a", "b.io/b"]
    assert req.specs[1].span.start.line == 7


def test_line_continuation_is_whitespace() -> None:
    src = "require a.io/a \\\n  v1.0.0\n"
    (req,) = parse_source(src)
    (spec,) = req.specs
    assert spec.version.value == "v1.0.0"
    assert spec.version.span.start.line == 2
    assert spec.span.slice(src) == "a.io/a \\\n  v1.0.0"


def test_single_and_block_forms_for_every_directive() -> None:
    src = """module (
    example.com/blocky
)
go (
    1.21
)
toolchain go1.21.3
godebug default=go1.21
godebug (
    panicnil=1
    asynctimerchan=0
)
retract (
    v1.0.0 // published too early
    [v1.1.0, v1.2.0]
)
"""
    doc = parse_source(src)
    assert doc.module_path == "example.com/blocky"
    assert doc[1].version.value == "1.21"
    (tc,) = doc.of_kind(Toolchain)
    assert tc.name.value == "go1.21.3"
    single, block = doc.of_kind(Godebug)
    assert [(s.key.value, s.value.value) for s in single.specs] == [("default", "go1.21")]
    assert [(s.key.value, s.value.value) for s in block.specs] == [
        ("panicnil", "1"),
        ("asynctimerchan", "0"),
    ]
    (ret,) = doc.of_kind(Retract)
    assert isinstance(ret.specs[0], RetractVersion)
    assert isinstance(ret.specs[1], RetractRange)
    assert [c.text for c in ret.specs[0].comments] == ["published too early"]


def test_local_path_replacement() -> None:
    (rep,) = parse_source("replace example.com/x => ../x\n")
    (spec,) = rep.specs
    assert spec.old.version is None
    assert spec.new.version is None
    assert spec.new.path.value == "../x"
    assert spec.is_local


def test_keywords_are_plain_identifiers_inside_entries() -> None:
    src = "require (\n\tgo v1.0.0\n\tmodule v2.0.0\n)\nreplace go => ./go\n"
    doc = parse_source(src)
    (req,) = doc.of_kind(Require)
    assert [s.path.value for s in req.specs] == ["go", "module"]
    (rep,) = doc.of_kind(Replace)
    assert rep.specs[0].old.path.value == "go"
    assert rep.specs[0].new.path.value == "./go"


def test_interpreted_and_plain_identifiers() -> None:
    src = 'require "example.com/we\\"ird\\n" v1.0.0\n'
    (req,) = parse_source(src)
    (spec,) = req.specs
    assert isinstance(spec.path, Interpreted)
    assert spec.path.value == 'example.com/we"ird\n'
    assert spec.path.span.slice(src) == '"example.com/we\\"ird\\n"'
    assert isinstance(spec.version, Plain)
    assert spec.version.value == "v1.0.0"


def test_interpreted_unicode_and_byte_escapes() -> None:
    src = 'module "ex\\u00e9\\xc3\\xa9\\101\\U0001F600"\n'
    (mod,) = parse_source(src)
    assert mod.path.value == "exééA\U0001F600"


def test_raw_string_identifier_is_plain() -> None:
    src = "module `example.com/raw\\path`\n"
    (mod,) = parse_source(src)
    assert isinstance(mod.path, Plain)
    assert mod.path.value == "example.com/raw\\path"
    assert mod.path.span.slice(src) == "`example.com/raw\\path`"


def test_multiple_module_directives_are_accepted() -> None:
    doc = parse_source("module a\nmodule b\n")
    assert [d.path.value for d in doc.of_kind(Module)] == ["a", "b"]


def test_unknown_keyword_fails_on_its_line() -> None:
    src = "module m\n\ngo 1.21\nrequir x.io/y v1.0.0\n"
    with pytest.raises(ParseError) as e:
        parse_source(src, file="go.mod")
    err = e.value
    assert (err.position.line, err.position.column) == (4, 1)
    assert err.message == "unexpected identifier 'requir'"
    assert err.expected == ("directive keyword", "end of input")
    assert str(err) == (
        "go.mod:4:1: unexpected identifier 'requir'\n"
        "hint: expected directive keyword or end of input"
    )


def test_missing_version_is_reported_at_end_of_line() -> None:
    with pytest.raises(ParseError) as e:
        parse_source("require example.com/x\n")
    assert e.value.message == "unexpected newline"
    assert (e.value.position.line, e.value.position.column) == (1, 22)
    assert e.value.expected == ("identifier",)


def test_extra_token_after_entry() -> None:
    with pytest.raises(ParseError) as e:
        parse_source("module m\ngo 1.21 extra\n")
    assert (e.value.position.line, e.value.position.column) == (2, 9)
    assert e.value.expected == ("newline",)


def test_block_needs_newline_after_paren() -> None:
    with pytest.raises(ParseError) as e:
        parse_source("require (x.io/y v1.0.0)\n")
    assert e.value.position.column == 10


def test_unclosed_block_fails_at_end_of_input() -> None:
    with pytest.raises(ParseError) as e:
        parse_source("require (\n\ta.io/a v1.0.0\n")
    assert e.value.message == "unexpected end of input"
    assert e.value.position.line == 3


@pytest.mark.parametrize(
    "src, message, line, column",
    [
        ('require "abc\\q" v1\n', "unknown escape sequence \\q", 1, 13),
        ('require "a\\x4" v1\n', "invalid \\x escape", 1, 11),
        ('module "\\xff"\n', "invalid UTF-8 in string escape", 1, 9),
        ('module "\\ud800"\n', "escape \\ud800 is not a valid code point", 1, 9),
        ('module m\nmodule "abc\n', "unterminated string literal", 2, 8),
        ("module `abc\n`\n", "unterminated raw string", 1, 8),
        ("/* a /* b */\nmodule m\n", "nested block comment", 1, 6),
        ("module m\n/* abc", "unterminated block comment", 2, 1),
        ("module m\ngo 1.21 \f\n", "unexpected character '\\x0c'", 2, 9),
    ],
)
def test_lexical_errors(src: str, message: str, line: int, column: int) -> None:
    with pytest.raises(ParseError) as e:
        parse_source(src)
    assert e.value.message == message
    assert (e.value.position.line, e.value.position.column) == (line, column)


def test_parse_file_reports_invalid_utf8(tmp_path: Path) -> None:
    p = tmp_path / "go.mod"
    p.write_bytes(b"module m\ngo 1.2\xff\n")
    with pytest.raises(ParseError) as e:
        parse_file(p)
    assert e.value.position == Position(offset=15, line=2, column=7, index=15)
    assert "0xff" in e.value.message


def test_parse_files_follows_local_replacements(tmp_path: Path) -> None:
    app = tmp_path / "app"
    lib = tmp_path / "lib"
    app.mkdir()
    lib.mkdir()
    (app / "go.mod").write_text(
        "module example.com/app\n\nrequire example.com/lib v0.0.0\n\nreplace example.com/lib => ../lib\n",
        encoding="utf-8",
    )
    (lib / "go.mod").write_text("module example.com/lib\n", encoding="utf-8")

    res = parse_files(entrypoints=[app])
    assert res.entrypoints == (str((app / "go.mod").resolve()),)
    assert set(res.files) == {str((app / "go.mod").resolve()), str((lib / "go.mod").resolve())}
    assert res.files[str((lib / "go.mod").resolve())].module_path == "example.com/lib"

    res = parse_files(entrypoints=[app / "go.mod"], follow_replacements=False)
    assert len(res.files) == 1


def test_missing_replacement_target_is_nice_error(tmp_path: Path) -> None:
    root = tmp_path / "go.mod"
    root.write_text("module m\nreplace example.com/x => ./missing\n", encoding="utf-8")
    with pytest.raises(ParseError) as e:
        parse_files(entrypoints=[root])
    assert "has no go.mod" in str(e.value)
    assert (e.value.position.line, e.value.position.column) == (2, 26)


@pytest.mark.parametrize("target", ["C:\\src\\x", "..\\lib", "../my@dir", "/abs/dir"])
def test_local_replacement_targets(target: str) -> None:
    src = f"replace example.com/x => {target}\n"
    (rep,) = parse_source(src)
    (spec,) = rep.specs
    assert spec.new.path.value == target
    assert spec.new.path.span.slice(src) == target
    assert spec.is_local


@pytest.mark.parametrize(
    "src, value",
    [
        ("require example.com/x v1.0.0-pre!1\n", "v1.0.0-pre!1"),
        ("module example.com/x:y\n", "example.com/x:y"),
        ("toolchain go1.22rc1+local#2\n", "go1.22rc1+local#2"),
    ],
)
def test_identifiers_are_any_non_blank_run(src: str, value: str) -> None:
    (d,) = parse_source(src)
    last = [n for n in walk(d) if isinstance(n, Plain)][-1]
    assert last.value == value


def test_godebug_joined_and_spaced_settings() -> None:
    src = "godebug (\n\tpanicnil=1\n\tkey = value\n\t`raw=x`\n)\n"
    (dbg,) = parse_source(src)
    assert [(s.key.value, s.value.value) for s in dbg.specs] == [
        ("panicnil", "1"),
        ("key", "value"),
        ("raw", "x"),
    ]
    joined = dbg.specs[0]
    assert joined.span.slice(src) == "panicnil=1"
    assert joined.key.span.slice(src) == "panicnil"
    assert joined.value.span.slice(src) == "1"
    assert (joined.value.span.start.line, joined.value.span.start.column) == (2, 11)
    assert joined.key.source is src
    assert dbg.specs[2].key.span.slice(src) == "raw"


@pytest.mark.parametrize("setting", ["panicnil", "panicnil=", '"a=b"'])
def test_malformed_godebug_setting(setting: str) -> None:
    with pytest.raises(ParseError) as e:
        parse_source(f"godebug {setting}\n")
    assert e.value.message.startswith("malformed godebug setting")
    assert e.value.position.column == 9


def test_offsets_count_utf8_bytes() -> None:
    src = "// héllo\nmodule example.com/é\n"
    (mod,) = parse_source(src)
    assert mod.span.start == Position(offset=10, line=2, column=1, index=9)
    data = src.encode("utf-8")
    assert mod.span.slice(data) == "module example.com/é".encode("utf-8")
    assert mod.path.span.end.offset == len(data) - 1
    assert mod.path.span.slice(src) == "example.com/é"
    assert mod.path.span.end.column == 21


def test_error_offset_after_non_ascii_text() -> None:
    with pytest.raises(ParseError) as e:
        parse_source('module "é\\q"\n')
    assert e.value.position == Position(offset=10, line=1, column=10, index=9)


def test_parse_file_offsets_point_into_the_file_bytes(tmp_path: Path) -> None:
    p = tmp_path / "go.mod"
    p.write_bytes("// déjà vu\nmodule m\n\nrequire a.io/ü v1.0.0\n".encode("utf-8"))
    doc = parse_file(p)
    data = p.read_bytes()
    (req,) = doc.of_kind(Require)
    assert req.specs[0].span.slice(data) == "a.io/ü v1.0.0".encode("utf-8")
    assert doc.span.end.offset == len(data)
