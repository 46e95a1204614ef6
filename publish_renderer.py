#!/usr/bin/env python3
"""
publish_renderer.py

Rendering contract shared by the HTML and LaTeX back ends.

A renderer maps each node kind to an output fragment:

  - header (title, intro, toc)     - footer (source text)
  - code (str)                     - code_output (str, is_error)
  - section (str)                  - section_no_break (str)
  - preformatted_code (str)        - preformatted_text (str)
  - bulleted_list (items)          - numbered_list (items)
  - include (path, text)           - graphic (path)
  - html (str)                     - latex (str)
  - text (str)                     - graphics_gallery (paths)
  - bold / italic / monospaced (str)
  - link (url, label)              - math_inline / math_block (str)
  - trademark () / registered_trademark ()

render_document() walks the model in order and concatenates fragments.
The section counter lives on the instance and is reset by header(), so a
renderer renders one document at a time.
"""
from __future__ import annotations

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
    PublishOptions,
    Segment,
    Text,
)
from m_parser import NULL_SEP, InlineToken, tokenize_inline_markup

SOURCE_BEGIN = "##### SOURCE BEGIN #####"
SOURCE_END = "##### SOURCE END #####"


class Renderer:
    file_suffix = ""

    def __init__(self) -> None:
        self.section_counter = 1

    # ---------------- counter ------------------------------------------------

    def reset_counter(self) -> None:
        self.section_counter = 1

    def next_anchor(self) -> int:
        anchor = self.section_counter
        self.section_counter += 1
        return anchor

    # ---------------- document walk ------------------------------------------

    def render_document(
        self,
        doc: DocumentModel,
        options: PublishOptions | None = None,
    ) -> str:
        options = options or PublishOptions()
        title = doc.title or doc.source_name
        intro = self.render_items(doc.intro)

        out: list[str] = [self.header(title, intro, doc.toc_titles())]
        for segment in doc.body:
            out.append(self.render_segment(segment, options))
        out.append(self.footer(doc.source_text))
        return "".join(out)

    def render_segment(self, segment: Segment, options: PublishOptions) -> str:
        if isinstance(segment, CodeSegment):
            out: list[str] = []
            if options.show_code:
                out.append(self.code(segment.code))
            result = segment.result
            if result is not None:
                if result.output_lines:
                    out.append(self.code_output(result.output, result.is_error))
                if result.graphics:
                    out.append(self.graphics_gallery(result.graphics))
            return "".join(out)

        if isinstance(segment, HeaderSegment):
            if segment.breaks_section:
                heading = self.section(segment.title)
            else:
                heading = self.section_no_break(segment.title)
            return heading + self.render_items(segment.content)

        raise TypeError(f"Unknown segment type: {type(segment).__name__}")

    def render_items(self, items: list[ContentItem]) -> str:
        return "".join(self.render_item(item) for item in items)

    def render_item(self, item: ContentItem) -> str:
        if isinstance(item, Text):
            return "".join(
                self.text(self.render_inline(paragraph))
                for paragraph in item.text.split("\n\n")
                if paragraph.strip()
            )
        if isinstance(item, CodeLiteral):
            return self.preformatted_code(item.text)
        if isinstance(item, PreformattedText):
            return self.preformatted_text(item.text)
        if isinstance(item, BulletedList):
            return self.bulleted_list([self.render_inline(i) for i in item.items])
        if isinstance(item, NumberedList):
            return self.numbered_list([self.render_inline(i) for i in item.items])
        if isinstance(item, Include):
            return self.include(item.path, item.text)
        if isinstance(item, Graphic):
            return self.graphic(item.path)
        if isinstance(item, Html):
            return self.html(item.raw)
        if isinstance(item, Latex):
            return self.latex(item.raw)
        raise TypeError(f"Unknown content item: {type(item).__name__}")

    def render_inline(self, text: str) -> str:
        """Render running text with inline markup to an output fragment."""
        return self.render_tokens(tokenize_inline_markup(text))

    def render_tokens(self, tokens: list[InlineToken]) -> str:
        out: list[str] = []
        for token_type, value in tokens:
            if token_type == "plaintext":
                out.append(self.escape(value))
            elif token_type == "bold":
                out.append(self.bold(self.render_tokens(value)))
            elif token_type == "italic":
                out.append(self.italic(self.render_tokens(value)))
            elif token_type == "monospaced":
                out.append(self.monospaced(self.render_tokens(value)))
            elif token_type == "link":
                url, _, label = value.partition(NULL_SEP)
                out.append(self.link(url, self.escape(label or url)))
            elif token_type == "math_inline":
                out.append(self.math_inline(value))
            elif token_type == "math_block":
                out.append(self.math_block(value))
            elif token_type == "trademark":
                out.append(self.trademark())
            elif token_type == "registered_trademark":
                out.append(self.registered_trademark())
            else:
                raise TypeError(f"Unknown inline token: {token_type}")
        return "".join(out)

    # ---------------- node kinds ---------------------------------------------

    def escape(self, text: str) -> str:
        raise NotImplementedError

    def header(self, title: str, intro: str, toc: list[tuple[str, bool]]) -> str:
        raise NotImplementedError

    def footer(self, source: str) -> str:
        raise NotImplementedError

    def code(self, text: str) -> str:
        raise NotImplementedError

    def code_output(self, text: str, is_error: bool = False) -> str:
        raise NotImplementedError

    def section(self, title: str) -> str:
        raise NotImplementedError

    def section_no_break(self, title: str) -> str:
        raise NotImplementedError

    def preformatted_code(self, text: str) -> str:
        raise NotImplementedError

    def preformatted_text(self, text: str) -> str:
        raise NotImplementedError

    def bulleted_list(self, items: list[str]) -> str:
        raise NotImplementedError

    def numbered_list(self, items: list[str]) -> str:
        raise NotImplementedError

    def include(self, path: str, text: str | None) -> str:
        raise NotImplementedError

    def graphic(self, path: str) -> str:
        raise NotImplementedError

    def graphics_gallery(self, paths: list[str]) -> str:
        raise NotImplementedError

    def html(self, raw: str) -> str:
        raise NotImplementedError

    def latex(self, raw: str) -> str:
        raise NotImplementedError

    def text(self, rendered: str) -> str:
        raise NotImplementedError

    def bold(self, rendered: str) -> str:
        raise NotImplementedError

    def italic(self, rendered: str) -> str:
        raise NotImplementedError

    def monospaced(self, rendered: str) -> str:
        raise NotImplementedError

    def link(self, url: str, label: str) -> str:
        raise NotImplementedError

    def math_inline(self, src: str) -> str:
        raise NotImplementedError

    def math_block(self, src: str) -> str:
        raise NotImplementedError

    def trademark(self) -> str:
        raise NotImplementedError

    def registered_trademark(self) -> str:
        raise NotImplementedError


def get_renderer(fmt: str) -> Renderer:
    """Return a fresh renderer instance for an output format."""
    # local imports: the back ends import this module
    if fmt == "html":
        from publish_html import HtmlRenderer
        return HtmlRenderer()
    if fmt == "latex":
        from publish_latex import LatexRenderer
        return LatexRenderer()
    raise ValueError(f"Output format {fmt!r} not supported")
