#!/usr/bin/env python3
"""
publish_html.py

HTML back end of the publish pipeline.

- header: prolog with MathJax, <h1> title, intro and a table of contents
- sections: <h2><a name="nodeN"> anchors, breaking headers open a new
  <div class="section"> container, no-break headers do not
- code / output: <pre class="oct-code"> and <pre class="oct-code-output">
- footer: the verbatim script inside an HTML comment between the
  SOURCE BEGIN / SOURCE END markers (read back by grabcode.py)
"""
from __future__ import annotations

import html

from publish_renderer import SOURCE_BEGIN, SOURCE_END, Renderer

MATHJAX_URL = (
    "https://cdn.jsdelivr.net/npm/mathjax@2/MathJax.js?config=TeX-MML-AM_CHTML"
)
GENERATOR = "octave-publish"


def escape_html(text: str) -> str:
    """Escape text for HTML output."""
    return html.escape(text, quote=True)


def embed_source(source: str) -> str:
    """
    Encode the script for the footer comment. With "<", ">" and "&" as
    entities a "-->" in the script cannot end the comment early;
    grabcode.extract_source() reverses this.
    """
    return html.escape(source, quote=False)


class HtmlRenderer(Renderer):
    file_suffix = ".html"

    def __init__(self) -> None:
        super().__init__()
        self.inside_section = False

    def escape(self, text: str) -> str:
        return escape_html(text)

    def open_section_container(self) -> str:
        out = "</div>\n" if self.inside_section else ""
        self.inside_section = True
        return out + '<div class="section">\n'

    def close_section_container(self) -> str:
        if not self.inside_section:
            return ""
        self.inside_section = False
        return "</div>\n"

    def header(self, title: str, intro: str, toc: list[tuple[str, bool]]) -> str:
        self.reset_counter()
        self.inside_section = False

        safe_title = escape_html(title)
        out = (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "<head>\n"
            '<meta charset="UTF-8">\n'
            f'<meta name="generator" content="{GENERATOR}">\n'
            f"<title>{safe_title}</title>\n"
            f'<script type="text/javascript" async src="{MATHJAX_URL}"></script>\n'
            "</head>\n"
            "<body>\n"
            f"<h1>{safe_title}</h1>\n"
            f"{intro}"
        )

        if toc:
            entries: list[str] = []
            for anchor, (entry, breaks_section) in enumerate(toc, start=1):
                cls = "" if breaks_section else ' class="no-break"'
                entries.append(
                    f'<li{cls}><a href="#node{anchor}">{escape_html(entry)}</a></li>\n'
                )
            out += "<h2>Contents</h2>\n<ul>\n" + "".join(entries) + "</ul>\n"
        return out

    def footer(self, source: str) -> str:
        return (
            self.close_section_container()
            + "\n"
            + f"<footer>Published with {GENERATOR}</footer>\n"
            + "<!--\n"
            + f"{SOURCE_BEGIN}\n"
            + embed_source(source)
            + f"\n{SOURCE_END}\n"
            + "-->\n"
            + "</body>\n"
            + "</html>\n"
        )

    def code(self, text: str) -> str:
        return f'<pre class="oct-code">{escape_html(text)}</pre>\n'

    def code_output(self, text: str, is_error: bool = False) -> str:
        cls = "oct-code-output error" if is_error else "oct-code-output"
        return f'<pre class="{cls}">{escape_html(text)}</pre>\n'

    def section(self, title: str) -> str:
        out = self.open_section_container()
        if title:
            out += (
                f'<h2><a name="node{self.next_anchor()}">'
                f"{escape_html(title)}</a></h2>\n"
            )
        return out

    def section_no_break(self, title: str) -> str:
        if not title:
            return ""
        return (
            f'<h3><a name="node{self.next_anchor()}">'
            f"{escape_html(title)}</a></h3>\n"
        )

    def preformatted_code(self, text: str) -> str:
        return f'<pre class="pre-code">{escape_html(text)}</pre>\n'

    def preformatted_text(self, text: str) -> str:
        return f'<pre class="pre-text">{escape_html(text)}</pre>\n'

    def bulleted_list(self, items: list[str]) -> str:
        return "<ul>" + "".join(f"<li>{i}</li>" for i in items) + "</ul>\n"

    def numbered_list(self, items: list[str]) -> str:
        return "<ol>" + "".join(f"<li>{i}</li>" for i in items) + "</ol>\n"

    def include(self, path: str, text: str | None) -> str:
        if text is None:
            return ""
        return (
            f'<pre class="oct-code" data-include="{escape_html(path)}">'
            f"{escape_html(text)}</pre>\n"
        )

    def graphic(self, path: str) -> str:
        return f'<img src="{escape_html(path)}" alt="{escape_html(path)}">\n'

    def graphics_gallery(self, paths: list[str]) -> str:
        images = "".join(
            f'<img src="{escape_html(p)}" alt="{escape_html(p)}">' for p in paths
        )
        return f'<div class="oct-figures">{images}</div>\n'

    def html(self, raw: str) -> str:
        return raw + "\n"

    def latex(self, raw: str) -> str:
        # LaTeX-only markup has no HTML rendition
        return ""

    def text(self, rendered: str) -> str:
        return f"<p>{rendered}</p>\n"

    def bold(self, rendered: str) -> str:
        return f"<b>{rendered}</b>"

    def italic(self, rendered: str) -> str:
        return f"<i>{rendered}</i>"

    def monospaced(self, rendered: str) -> str:
        return f"<code>{rendered}</code>"

    def link(self, url: str, label: str) -> str:
        return f'<a href="{escape_html(url)}">{label}</a>'

    def math_inline(self, src: str) -> str:
        return f"\\({escape_html(src)}\\)"

    def math_block(self, src: str) -> str:
        return f"$${escape_html(src)}$$"

    def trademark(self) -> str:
        return "&trade;"

    def registered_trademark(self) -> str:
        return "&reg;"
