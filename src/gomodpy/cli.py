from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import fields, is_dataclass

from .api import parse_files
from .ast import Comment, Directive, Interpreted, Plain
from .errors import ParseError
from .spans import Position

logger = logging.getLogger(__name__)


def _to_jsonable(obj):
    # Identifiers and comments hold a reference to the whole source; emit their text instead.
    if isinstance(obj, Plain):
        return {"kind": "plain", "value": obj.value, "span": _to_jsonable(obj.span)}
    if isinstance(obj, Interpreted):
        return {"kind": "interpreted", "value": obj.value, "span": _to_jsonable(obj.span)}
    if isinstance(obj, Comment):
        return {"text": obj.text, "span": _to_jsonable(obj.span)}
    if isinstance(obj, Position):
        return [obj.offset, obj.line, obj.column]
    if is_dataclass(obj):
        out = {f.name: _to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        if isinstance(obj, Directive):
            out["keyword"] = obj.keyword
        return out
    if isinstance(obj, (tuple, list)):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    return obj


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="gomodpy", description="Parse go.mod files")
    ap.add_argument("entrypoints", nargs="+", help="go.mod files or module directories")
    ap.add_argument(
        "--no-follow",
        action="store_true",
        help="Do not parse the go.mod of local-path replacements",
    )
    ap.add_argument("--json", action="store_true", help="Print parsed documents as JSON")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 0 else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        res = parse_files(entrypoints=args.entrypoints, follow_replacements=not args.no_follow)
    except ParseError as e:
        logger.debug("parse failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.debug("read failed", exc_info=True)
        where = f"{e.filename}: " if e.filename else ""
        print(f"error: {where}{e.strerror or e}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "entrypoints": list(res.entrypoints),
            "files": {k: _to_jsonable(v) for k, v in res.files.items()},
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        for path, doc in res.files.items():
            print(f"{path}: {doc.module_path or '<no module directive>'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
