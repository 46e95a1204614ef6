from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterator

from config_loader import DEFAULT_CONFIG, PublishConfig, load_config
from errors import InvalidInput
from helper import print_event_gray
from m_parser import parse_script
from publish_model import CodeSegment, ContentItem, DocumentModel, HeaderSegment


def safe_input_path(raw: str, *, root: Path | None = None) -> Path:
    """
    Parse and validate a user-supplied path.

    Goals:
    - reject obvious malicious / malformed inputs (NUL, empty)
    - avoid directory traversal surprises when a root is given
    - resolve symlinks safely (best effort) and return an absolute path
    """
    if not raw or raw.strip() == "":
        raise ValueError("Empty input path.")

    if "\x00" in raw:
        raise ValueError("NUL byte in path is not allowed.")

    p = Path(raw).expanduser()

    # Disallow path traversal patterns (conservative).
    if any(part == ".." for part in p.parts):
        raise ValueError("Path traversal ('..') is not allowed.")

    resolved = p.resolve(strict=False)

    if root is not None:
        root_resolved = root.resolve(strict=True)
        try:
            resolved.relative_to(root_resolved)
        except ValueError as e:
            raise ValueError(f"Input path must be within root: {root_resolved}") from e

    if not resolved.exists():
        raise FileNotFoundError(f"File not found: {resolved}")
    if not resolved.is_file():
        raise IsADirectoryError(f"Not a file: {resolved}")

    return resolved


def check_script_suffix(path: Path, cfg: PublishConfig = DEFAULT_CONFIG) -> None:
    if path.suffix.lower() not in cfg.script_suffixes:
        allowed = ", ".join(sorted(cfg.script_suffixes))
        raise InvalidInput(f"Only scripts ({allowed}) can be published: {path.name}")


def iter_script_lines(path: Path) -> Iterator[str]:
    """
    Iterate over a script line by line with line terminators stripped.

    A trailing newline at the end of the file does not yield an extra
    empty line.
    """
    with Path(path).open(encoding="utf-8", newline="") as f:
        for raw_line in f:
            yield raw_line.rstrip("\r\n")


def read_script_lines(path: Path) -> list[str]:
    return list(iter_script_lines(path))


def resolve_include(include_path: str, script_path: Path) -> Path:
    """
    Resolve the target of an <include> tag relative to the script.

    The target must stay within the script directory, the same rule
    safe_input_path() applies with a root.
    """
    if "\x00" in include_path:
        raise InvalidInput("NUL byte in include path is not allowed.")

    base = Path(script_path).parent.resolve()
    target = (base / include_path).resolve()
    try:
        target.relative_to(base)
    except ValueError as e:
        raise InvalidInput(
            f"Include path must stay within the script directory: {include_path}"
        ) from e
    return target


def read_include(include_path: str, script_path: Path) -> str:
    return "\n".join(read_script_lines(resolve_include(include_path, script_path)))


def describe_item(item: ContentItem) -> str:
    """One-line summary of a content item for event output."""
    name = type(item).__name__
    value = getattr(item, "text", None)
    if value is None:
        value = getattr(item, "items", None) or getattr(item, "path", None) or getattr(item, "raw", "")
    return f"{name}: {value!r}"


def describe_model(doc: DocumentModel) -> Iterator[str]:
    """Yield event lines describing the parsed structure of a script."""
    if doc.title or doc.intro:
        yield f"title: {doc.title!r}"
        for item in doc.intro:
            yield f"  intro {describe_item(item)}"

    for idx, segment in enumerate(doc.body):
        if isinstance(segment, CodeSegment):
            yield f"[{idx}] code lines {segment.start + 1}-{segment.end + 1}"
        elif isinstance(segment, HeaderSegment):
            kind = "section" if segment.breaks_section else "section_no_break"
            yield f"[{idx}] {kind} {segment.title!r} lines {segment.start + 1}-{segment.end + 1}"
            for item in segment.content:
                yield f"  {describe_item(item)}"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="m_reader.py",
        description="Parse an annotated script and print its cell structure.",
    )
    parser.add_argument("input", help="Script to read")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yml (default: built-in defaults)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Optional root directory: input file must be within this directory.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    cfg = DEFAULT_CONFIG
    if args.config:
        try:
            cfg = load_config(Path(args.config))
        except Exception as e:
            print(f"[m_reader] Failed to load config: {e}", file=sys.stderr)
            return 2

    root_dir: Path | None = None
    if args.root:
        try:
            root_dir = Path(args.root).expanduser().resolve(strict=True)
        except Exception as e:
            print(f"[m_reader] Invalid --root: {e}", file=sys.stderr)
            return 2

    try:
        input_path = safe_input_path(args.input, root=root_dir)
    except Exception as e:
        print(f"[m_reader] Invalid input path: {e}", file=sys.stderr)
        return 2

    try:
        doc = parse_script(read_script_lines(input_path), cfg, source_name=input_path.name)
        for event in describe_model(doc):
            print_event_gray(event)
    except Exception as e:
        print(f"[m_reader] Error while reading: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
