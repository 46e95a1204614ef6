#!/usr/bin/env python3
from __future__ import annotations

import re
import warnings
from typing import Any, Optional

from config_loader import DEFAULT_CONFIG, PublishConfig
from errors import InternalInvariantViolation, MalformedMarkup
from publish_model import (
    BulletedList,
    CodeLiteral,
    CodeSegment,
    ContentItem,
    DocumentModel,
    Graphic,
    HeaderSegment,
    Html,
    Include,
    Latex,
    NumberedList,
    PreformattedText,
    Segment,
    Text,
    TitleIntroSegment,
)


# ---------------- Line classifier --------------------------------------------


def _is_publish_markup(line: str, count: int, cfg: PublishConfig) -> bool:
    """
    True if `line` starts with `count` copies of the same comment character
    and is either exactly that long or continues with a space.
    """
    if not any(line.startswith(ch * count) for ch in cfg.comment_chars):
        return False
    return len(line) == count or line[count] == " "


def is_header(line: str, cfg: PublishConfig = DEFAULT_CONFIG) -> bool:
    """'%% Title' or '## Title': starts a new section."""
    return _is_publish_markup(line, 2, cfg)


def is_no_break_header(line: str, cfg: PublishConfig = DEFAULT_CONFIG) -> bool:
    """'%%% Title' or '### Title': a heading without a section break."""
    return _is_publish_markup(line, 3, cfg)


def is_paragraph_line(line: str, cfg: PublishConfig = DEFAULT_CONFIG) -> bool:
    """'% text' or '# text': a body line of the preceding header."""
    return _is_publish_markup(line, 1, cfg)


def is_any_header(line: str, cfg: PublishConfig = DEFAULT_CONFIG) -> bool:
    return is_no_break_header(line, cfg) or is_header(line, cfg)


def is_blank(line: str) -> bool:
    return line.strip() == ""


def strip_markup(line: str, count: int) -> str:
    """Remove a `count` character prefix and at most one following space."""
    rest = line[count:]
    if rest.startswith(" "):
        rest = rest[1:]
    return rest


def header_title(line: str, cfg: PublishConfig = DEFAULT_CONFIG) -> str:
    count = 3 if is_no_break_header(line, cfg) else 2
    return strip_markup(line, count).strip()


# ---------------- Segmenter --------------------------------------------------

AT_DOC_START = "at_doc_start"
SCANNING_HEADER = "scanning_header"
SCANNING_CODE = "scanning_code"


def _scan_title_intro(
    lines: list[str],
    cfg: PublishConfig,
) -> Optional[TitleIntroSegment]:
    """
    Promote the first header to the document title.

    Only commits when, after the header's paragraph lines and any blank
    lines, another header follows. Otherwise the first header is left to
    be read as an ordinary section.
    """
    if not lines or not is_any_header(lines[0], cfg):
        return None

    pos = 1
    while pos < len(lines) and is_paragraph_line(lines[pos], cfg):
        pos += 1
    intro_end = pos

    while pos < len(lines) and is_blank(lines[pos]):
        pos += 1

    if pos >= len(lines) or not is_any_header(lines[pos], cfg):
        return None

    return TitleIntroSegment(
        title=header_title(lines[0], cfg),
        body=[strip_markup(ln, 1) for ln in lines[1:intro_end]],
        start=0,
        end=intro_end - 1,
    )


def _scan_header_segment(
    lines: list[str],
    pos: int,
    cfg: PublishConfig,
) -> tuple[Optional[HeaderSegment], int]:
    """
    Consume a header line and its paragraph lines.

    Returns (segment or None, next position). Untitled headers with an
    all-blank body produce no segment.
    """
    head = lines[pos]
    breaks_section = not is_no_break_header(head, cfg)
    title = header_title(head, cfg)

    end = pos + 1
    while end < len(lines) and is_paragraph_line(lines[end], cfg):
        end += 1

    body = [strip_markup(ln, 1) for ln in lines[pos + 1 : end]]

    if not title and all(is_blank(ln) for ln in body):
        return None, end

    segment = HeaderSegment(
        title=title,
        breaks_section=breaks_section,
        body=body,
        start=pos,
        end=end - 1,
    )
    return segment, end


def _scan_code_segment(
    lines: list[str],
    pos: int,
    cfg: PublishConfig,
) -> tuple[Optional[CodeSegment], int]:
    """
    Consume lines up to the next header. Leading and trailing blank lines
    are trimmed; an all-blank range produces no segment.
    """
    end = pos
    while end < len(lines) and not is_any_header(lines[end], cfg):
        end += 1

    first, last = pos, end - 1
    while first <= last and is_blank(lines[first]):
        first += 1
    while last >= first and is_blank(lines[last]):
        last -= 1

    if first > last:
        return None, end

    return CodeSegment(lines=list(lines[first : last + 1]), start=first, end=last), end


def _next_state(lines: list[str], pos: int, cfg: PublishConfig) -> str:
    if pos < len(lines) and is_any_header(lines[pos], cfg):
        return SCANNING_HEADER
    return SCANNING_CODE


def segment_lines(
    lines: list[str],
    cfg: PublishConfig = DEFAULT_CONFIG,
) -> tuple[Optional[TitleIntroSegment], list[Segment]]:
    """
    Carve a script into an optional title/intro and an ordered list of
    header and code segments.
    """
    title_intro: Optional[TitleIntroSegment] = None
    segments: list[Segment] = []

    state = AT_DOC_START
    pos = 0

    while pos < len(lines):
        before = pos

        if state == AT_DOC_START:
            title_intro = _scan_title_intro(lines, cfg)
            if title_intro is not None:
                pos = title_intro.end + 1
            # the title scan may legitimately consume nothing
            state = _next_state(lines, pos, cfg)
            continue

        if state == SCANNING_HEADER:
            segment, pos = _scan_header_segment(lines, pos, cfg)
        else:
            segment, pos = _scan_code_segment(lines, pos, cfg)

        if pos <= before:
            raise InternalInvariantViolation(
                f"segmenter made no progress at line {before + 1}: {lines[before]!r}"
            )

        if segment is not None:
            segments.append(segment)

        state = _next_state(lines, pos, cfg)

    return title_intro, segments


# ---------------- Paragraph content parser -----------------------------------


def split_sub_blocks(lines: list[str]) -> list[tuple[int, list[str]]]:
    """
    Split body lines at runs of blank lines.

    Returns (blank lines before the block, block lines) pairs. Leading blank
    lines of the body are not counted.
    """
    blocks: list[tuple[int, list[str]]] = []
    current: list[str] = []
    gap = 0
    pending_gap = 0

    for line in lines:
        if is_blank(line):
            if current:
                blocks.append((gap, current))
                current = []
                pending_gap = 0
            pending_gap += 1
            continue
        if not current:
            gap = pending_gap if blocks else 0
        current.append(line)

    if current:
        blocks.append((gap, current))
    return blocks


def _handle_code_literal_if_present(block: list[str]) -> Optional[ContentItem]:
    if all(ln.startswith("  ") for ln in block):
        return CodeLiteral("\n".join(ln[2:] for ln in block))
    return None


def _handle_preformatted_if_present(block: list[str]) -> Optional[ContentItem]:
    if all(ln.startswith(" ") for ln in block):
        return PreformattedText("\n".join(ln[1:] for ln in block))
    return None


def _split_list_items(block: list[str], marker: str) -> Optional[list[str]]:
    if not block[0].startswith(marker):
        return None
    joined = "\n".join(block)[len(marker):]
    return joined.split("\n" + marker)


def _handle_bulleted_list_if_present(block: list[str]) -> Optional[ContentItem]:
    items = _split_list_items(block, "* ")
    return BulletedList(items) if items is not None else None


def _handle_numbered_list_if_present(block: list[str]) -> Optional[ContentItem]:
    items = _split_list_items(block, "# ")
    return NumberedList(items) if items is not None else None


def _extract_delimited(joined: str, open_tag: str, close_tag: str) -> Optional[str]:
    """
    Return the trimmed text between `open_tag` and `close_tag` when the
    whole string is wrapped by them (tags compared case-insensitively).

    With more than one closing tag the text up to the first one is used
    and a MalformedMarkup warning is issued.
    """
    lowered = joined.lower()
    if len(joined) < len(open_tag) + len(close_tag):
        return None
    if not (lowered.startswith(open_tag) and lowered.endswith(close_tag)):
        return None

    inner = joined[len(open_tag) : len(joined) - len(close_tag)]
    first_close = inner.lower().find(close_tag)
    if first_close != -1:
        warnings.warn(
            f"ambiguous markup {joined!r}: more than one {close_tag!r}, "
            "using the text up to the first one",
            MalformedMarkup,
            stacklevel=3,
        )
        inner = inner[:first_close]

    inner = inner.strip()
    return inner or None


def _handle_include_if_present(block: list[str]) -> Optional[ContentItem]:
    path = _extract_delimited("".join(block), "<include>", "</include>")
    return Include(path) if path is not None else None


def _handle_graphic_if_present(block: list[str]) -> Optional[ContentItem]:
    path = _extract_delimited("".join(block), "<<", ">>")
    return Graphic(path) if path is not None else None


BLOCK_HANDLERS = (
    _handle_code_literal_if_present,
    _handle_preformatted_if_present,
    _handle_bulleted_list_if_present,
    _handle_numbered_list_if_present,
    _handle_include_if_present,
    _handle_graphic_if_present,
)

REGION_TAGS: dict[str, tuple[str, type]] = {
    "<html>": ("</html>", Html),
    "<latex>": ("</latex>", Latex),
}


def _append_text(items: list[ContentItem], text: str, separator: str) -> None:
    """Append running text, merging it into a directly preceding Text item."""
    if items and isinstance(items[-1], Text):
        items[-1].text = f"{items[-1].text}{separator}{text}"
    else:
        items.append(Text(text))


def _parse_mixed_block(block: list[str], items: list[ContentItem]) -> None:
    """
    Parse a block line by line into <html>/<latex> regions and running text.
    """
    text_lines: list[str] = []
    first_text_in_block = True

    def flush_text() -> None:
        nonlocal first_text_in_block
        if not text_lines:
            return
        separator = "\n\n" if first_text_in_block else "\n"
        _append_text(items, "\n".join(text_lines), separator)
        text_lines.clear()
        first_text_in_block = False

    j = 0
    while j < len(block):
        tag = block[j].strip().lower()
        if tag not in REGION_TAGS:
            text_lines.append(block[j])
            j += 1
            continue

        flush_text()
        close_tag, item_type = REGION_TAGS[tag]

        k = j + 1
        while k < len(block) and block[k].strip().lower() != close_tag:
            k += 1

        captured = block[j + 1 : k]
        if k >= len(block):
            warnings.warn(
                f"no closing {close_tag} found",
                MalformedMarkup,
                stacklevel=3,
            )
            j = k
        else:
            j = k + 1

        if captured:
            items.append(item_type("\n".join(captured)))
        # text after a region starts a fresh Text item
        first_text_in_block = False

    flush_text()


def parse_paragraph_content(lines: list[str]) -> list[ContentItem]:
    """
    Turn the prefix-stripped body lines of one header into content items.

    Blocks are separated by blank lines and classified in this order:
    code literal (two leading spaces), preformatted text (one leading
    space), bulleted list ("* "), numbered list ("# "),
    <include>file</include>, <<graphic>>, and finally text with embedded
    <html>/<latex> regions. Running text is merged into a single Text item
    until something else interrupts it; blank-line separated text joins
    with an empty line.
    """
    items: list[ContentItem] = []
    previous_kind: Optional[type] = None

    for gap, block in split_sub_blocks(lines):
        item: Optional[ContentItem] = None
        for handler in BLOCK_HANDLERS:
            item = handler(block)
            if item is not None:
                break

        if item is None:
            _parse_mixed_block(block, items)
            previous_kind = None
            continue

        # code and preformatted blocks keep interior blank lines
        if (
            isinstance(item, (CodeLiteral, PreformattedText))
            and previous_kind is type(item)
            and isinstance(items[-1], type(item))
        ):
            items[-1].text = items[-1].text + "\n" * (gap + 1) + item.text
        else:
            items.append(item)
        previous_kind = type(item)

    return items


# ---------------- Whole script -----------------------------------------------


def parse_script(
    lines: list[str],
    cfg: PublishConfig = DEFAULT_CONFIG,
    *,
    source_name: str = "",
) -> DocumentModel:
    """
    Build the document model of a script: title, intro, and the ordered
    code and header segments with parsed paragraph content.
    """
    doc = DocumentModel(source_lines=list(lines), source_name=source_name)

    title_intro, segments = segment_lines(doc.source_lines, cfg)
    if title_intro is not None:
        doc.title = title_intro.title
        doc.intro = parse_paragraph_content(title_intro.body)

    for segment in segments:
        if isinstance(segment, HeaderSegment):
            segment.content = parse_paragraph_content(segment.body)
        doc.body.append(segment)

    return doc


# ---------------- Inline markup ----------------------------------------------

NULL_SEP = "\u0000"  # used to pack url + label for link tokens

_PROTECTED_RE = re.compile(
    r"(?P<math_block>\$\$(?P<block_src>.+?)\$\$)"
    r"|(?P<math_inline>\$(?P<inline_src>[^$\n]+)\$)"
    r"|(?P<link><(?P<url>(?:https?|ftp|file|mailto):[^\s>]+)(?:\s+(?P<label>[^>]*?))?\s*>)",
    re.DOTALL,
)

EMPHASIS_DELIMITERS: tuple[tuple[str, str], ...] = (
    ("*", "bold"),
    ("_", "italic"),
    ("|", "monospaced"),
)

_SYMBOL_RE = re.compile(r"(\(TM\)|\(R\))")
_SYMBOL_TYPES = {"(TM)": "trademark", "(R)": "registered_trademark"}

EMPHASIS_TYPES = frozenset(token_type for _, token_type in EMPHASIS_DELIMITERS)

# (type, text) for leaves, (type, [children]) for emphasis spans
InlineToken = tuple[str, Any]


def _merge_plaintext(tokens: list[InlineToken]) -> list[InlineToken]:
    out: list[InlineToken] = []
    for kind, value in tokens:
        if kind == "plaintext" and out and out[-1][0] == "plaintext":
            out[-1] = ("plaintext", out[-1][1] + value)
        else:
            out.append((kind, value))
    return out


def _split_emphasis(
    tokens: list[InlineToken],
    delimiter: str,
    token_type: str,
) -> list[InlineToken]:
    """
    Pair up `delimiter` occurrences among the tokens of one nesting level
    and wrap what lies between each pair into a `token_type` span.

    Spans made by earlier rules are treated as opaque units at this level,
    but their children are split as well, so "*a _b_*" nests. An unpaired
    last delimiter stays literal.
    """
    # None marks a delimiter position
    atoms: list[Optional[InlineToken]] = []
    for kind, value in tokens:
        if kind == "plaintext":
            for idx, piece in enumerate(value.split(delimiter)):
                if idx:
                    atoms.append(None)
                if piece:
                    atoms.append(("plaintext", piece))
        elif kind in EMPHASIS_TYPES:
            atoms.append((kind, _split_emphasis(value, delimiter, token_type)))
        else:
            atoms.append((kind, value))

    marks = [idx for idx, atom in enumerate(atoms) if atom is None]
    if len(marks) % 2:
        atoms[marks[-1]] = ("plaintext", delimiter)

    out: list[InlineToken] = []
    span: Optional[list[InlineToken]] = None
    for atom in atoms:
        if atom is None:
            if span is None:
                span = []
            else:
                out.append((token_type, _merge_plaintext(span)))
                span = None
        elif span is not None:
            span.append(atom)
        else:
            out.append(atom)
    return _merge_plaintext(out)


def _split_symbols(tokens: list[InlineToken]) -> list[InlineToken]:
    out: list[InlineToken] = []
    for kind, value in tokens:
        if kind in EMPHASIS_TYPES:
            out.append((kind, _split_symbols(value)))
            continue
        if kind != "plaintext":
            out.append((kind, value))
            continue
        for piece in _SYMBOL_RE.split(value):
            if piece in _SYMBOL_TYPES:
                out.append((_SYMBOL_TYPES[piece], piece))
            elif piece:
                out.append(("plaintext", piece))
    return out


def tokenize_inline_markup(text: str) -> list[InlineToken]:
    """
    Tokenize running text into (type, value) spans.

    Supported:
      <https://url label>   -> ("link", "url<NULL>label")
      $$ ... $$             -> ("math_block", "raw latex")
      $ ... $               -> ("math_inline", "raw latex")
      *bold*                -> ("bold", [children])
      _italic_              -> ("italic", [children])
      |mono|                -> ("monospaced", [children])
      (TM), (R)             -> ("trademark", ...), ("registered_trademark", ...)

    Everything else -> ("plaintext", "...")

    Emphasis is paired bold, italic, monospaced in that order. Spans nest:
    "*bold _it_*" gives a bold span holding an italic one. Links and math
    are never split.
    """
    tokens: list[InlineToken] = []
    pos = 0
    for match in _PROTECTED_RE.finditer(text):
        if match.start() > pos:
            tokens.append(("plaintext", text[pos : match.start()]))
        if match.group("math_block") is not None:
            tokens.append(("math_block", match.group("block_src")))
        elif match.group("math_inline") is not None:
            tokens.append(("math_inline", match.group("inline_src")))
        else:
            url = match.group("url")
            label = (match.group("label") or "").strip() or url
            tokens.append(("link", f"{url}{NULL_SEP}{label}"))
        pos = match.end()
    if pos < len(text):
        tokens.append(("plaintext", text[pos:]))

    for delimiter, token_type in EMPHASIS_DELIMITERS:
        tokens = _split_emphasis(tokens, delimiter, token_type)

    return _split_symbols(tokens)
