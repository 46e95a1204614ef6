#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from config_loader import DEFAULT_CONFIG, SUPPORTED_FORMATS, PublishConfig


# ---------------- Content items ----------------------------------------------


@dataclass
class CodeLiteral:
    """Body lines indented by two spaces: code shown but never evaluated."""
    text: str


@dataclass
class PreformattedText:
    text: str


@dataclass
class BulletedList:
    items: list[str]


@dataclass
class NumberedList:
    items: list[str]


@dataclass
class Include:
    """
    <include>file.m</include>

    `text` is filled in by publish() once the file has been read relative
    to the script; the parser only records the path.
    """
    path: str
    text: Optional[str] = None


@dataclass
class Graphic:
    path: str


@dataclass
class Html:
    raw: str


@dataclass
class Latex:
    raw: str


@dataclass
class Text:
    """
    Running text. Inline markup (*bold*, _italic_, |mono|, links, math)
    is left untouched here and interpreted by the renderers.
    """
    text: str


ContentItem = Union[
    CodeLiteral,
    PreformattedText,
    BulletedList,
    NumberedList,
    Include,
    Graphic,
    Html,
    Latex,
    Text,
]


# ---------------- Segments ---------------------------------------------------


@dataclass
class ExecutionResult:
    """
    What the evaluation harness captured for one code segment.
    """
    output_lines: list[str] = field(default_factory=list)
    graphics: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def output(self) -> str:
        return "\n".join(self.output_lines)

    def truncated(self, max_output_lines: Optional[int]) -> "ExecutionResult":
        """Return a copy holding at most `max_output_lines` output lines."""
        if max_output_lines is None or len(self.output_lines) <= max_output_lines:
            return self
        return ExecutionResult(
            output_lines=self.output_lines[:max_output_lines],
            graphics=list(self.graphics),
            error=self.error,
        )


@dataclass
class CodeSegment:
    """
    A run of code lines. `start`/`end` are the inclusive 0-based indices
    of the trimmed range in DocumentModel.source_lines.
    """
    lines: list[str]
    start: int
    end: int
    result: Optional[ExecutionResult] = None

    @property
    def code(self) -> str:
        return "\n".join(self.lines)


@dataclass
class HeaderSegment:
    title: str
    breaks_section: bool
    body: list[str]
    start: int
    end: int
    content: list[ContentItem] = field(default_factory=list)


Segment = Union[CodeSegment, HeaderSegment]


@dataclass
class TitleIntroSegment:
    """
    The first header of a script, promoted to document title because a
    second header follows it before any code.
    """
    title: str
    body: list[str]
    start: int
    end: int


@dataclass
class DocumentModel:
    title: str = ""
    intro: list[ContentItem] = field(default_factory=list)
    body: list[Segment] = field(default_factory=list)
    source_lines: list[str] = field(default_factory=list)
    source_name: str = ""

    @property
    def source_text(self) -> str:
        return "\n".join(self.source_lines)

    def code_segments(self) -> list[tuple[int, CodeSegment]]:
        return [(i, seg) for i, seg in enumerate(self.body) if isinstance(seg, CodeSegment)]

    def attach_result(
        self,
        index: int,
        result: ExecutionResult,
        max_output_lines: Optional[int] = None,
    ) -> None:
        """
        Attach an evaluation result to the code segment at body[index],
        truncating its output to `max_output_lines`.
        """
        segment = self.body[index]
        if not isinstance(segment, CodeSegment):
            raise TypeError(f"body[{index}] is not a code segment")
        segment.result = result.truncated(max_output_lines)

    def toc_titles(self) -> list[tuple[str, bool]]:
        """(title, breaks_section) for every titled header, in order."""
        return [
            (seg.title, seg.breaks_section)
            for seg in self.body
            if isinstance(seg, HeaderSegment) and seg.title
        ]


# ---------------- Options ----------------------------------------------------


@dataclass
class PublishOptions:
    format: str = "html"
    image_format: Optional[str] = None
    show_code: bool = True
    eval_code: bool = True
    catch_error: bool = True
    max_output_lines: Optional[int] = None
    output_dir: Optional[str] = None
    code_to_evaluate: str = ""

    @classmethod
    def from_config(cls, cfg: PublishConfig = DEFAULT_CONFIG, **overrides) -> "PublishOptions":
        values = {
            "format": cfg.format,
            "image_format": cfg.image_format,
            "show_code": cfg.show_code,
            "eval_code": cfg.eval_code,
            "catch_error": cfg.catch_error,
            "max_output_lines": cfg.max_output_lines,
            "output_dir": cfg.output_dir,
            "code_to_evaluate": cfg.code_to_evaluate,
        }
        for key, value in overrides.items():
            if key not in values:
                raise TypeError(f"Unknown publish option: {key}")
            if value is not None:
                values[key] = value
        options = cls(**values)
        validate_options(options)
        return options

    @property
    def resolved_image_format(self) -> str:
        if self.image_format:
            return self.image_format
        return "epsc2" if self.format == "latex" else "png"

    @property
    def resolved_output_dir(self) -> str:
        if self.output_dir:
            return self.output_dir
        return self.format


def validate_options(options: PublishOptions) -> None:
    if options.format not in SUPPORTED_FORMATS:
        raise ValueError(
            f"Output format {options.format!r} not supported "
            f"(use one of: {', '.join(SUPPORTED_FORMATS)})"
        )
    limit = options.max_output_lines
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
        raise ValueError("max_output_lines must be an integer >= 0")
