#!/usr/bin/env python3
"""
grabcode.py

Recover the script embedded in a published report. The renderers place
the verbatim source between the SOURCE BEGIN / SOURCE END marker lines at
the very end of the report. Reports can be read from disk or from an
http(s) URL.
"""
from __future__ import annotations

import argparse
import html
import re
import sys
import urllib.request
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union
from urllib.parse import urlparse

from errors import InvalidInput
from publish_renderer import SOURCE_BEGIN, SOURCE_END

REPORT_SUFFIXES = (".htm", ".tex")
URL_SCHEMES = ("http", "https")
URL_TIMEOUT = 30

# footer openers written by the renderers, with the decoder for what follows
SOURCE_OPENERS: tuple[tuple[str, Optional[Callable[[str], str]]], ...] = (
    ("<!--\n" + SOURCE_BEGIN + "\n", html.unescape),
    ("\\begin{comment}\n" + SOURCE_BEGIN + "\n", None),
)

_BARE_BEGIN_RE = re.compile("^" + re.escape(SOURCE_BEGIN) + "$\n?", re.MULTILINE)


def _source_start(document: str) -> tuple[int, Optional[Callable[[str], str]]]:
    for opener, decode in SOURCE_OPENERS:
        idx = document.find(opener)
        if idx != -1:
            return idx + len(opener), decode

    # marker on a line of its own, e.g. from a hand-edited report
    match = _BARE_BEGIN_RE.search(document)
    if match is None:
        raise InvalidInput("No embedded source found (missing SOURCE BEGIN marker).")
    return match.end(), None


def extract_source(document: str) -> str:
    """
    Return the text strictly between the SOURCE BEGIN and SOURCE END
    marker lines of a published report.

    The begin marker is looked up together with the footer opener that
    precedes it, and the end marker is the last one in the document, so
    code that prints the marker strings does not confuse the search.
    """
    start, decode = _source_start(document)

    # the newline in front of the end marker belongs to the marker line
    end = document.rfind("\n" + SOURCE_END)
    if end == -1 or end < start - 1:
        raise InvalidInput("No embedded source found (missing SOURCE END marker).")

    source = document[start : max(start, end)]
    return decode(source) if decode is not None else source


def is_url(location: Union[str, Path]) -> bool:
    return isinstance(location, str) and urlparse(location).scheme in URL_SCHEMES


def is_report_path(path: Union[str, Path]) -> bool:
    if is_url(path):
        path = PurePosixPath(urlparse(str(path)).path)
    return PurePosixPath(str(path)).suffix.lower().startswith(REPORT_SUFFIXES)


def read_report(location: Union[str, Path]) -> str:
    """Read a report from a local path or an http(s) URL."""
    if not is_url(location):
        return Path(location).read_text(encoding="utf-8")

    with urllib.request.urlopen(str(location), timeout=URL_TIMEOUT) as response:
        charset = response.headers.get_content_charset() or "utf-8"
        return response.read().decode(charset)


def grabcode(location: Union[str, Path]) -> str:
    """
    Return the script embedded in the published report at `location`,
    a file path or an http(s) URL.
    """
    if not is_report_path(location):
        name = location if is_url(location) else Path(location).name
        raise InvalidInput(f"{name} should be a published .html or .tex report")
    return extract_source(read_report(location))


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grabcode.py",
        description="Extract the script embedded in a published report.",
    )
    parser.add_argument("input", help="Published .html or .tex report (path or http(s) URL)")
    parser.add_argument("-o", "--output", default=None, help="Write the code here instead of stdout")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        code = grabcode(args.input)
    except InvalidInput as e:
        print(f"[grabcode] {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"[grabcode] Cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(code + "\n", encoding="utf-8")
    else:
        print(code)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
