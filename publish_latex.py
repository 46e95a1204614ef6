#!/usr/bin/env python3
"""
publish_latex.py

LaTeX back end of the publish pipeline. Code segments are emitted as
source listing, captured results and generated graphics, in that order.
The script source is kept in a comment environment between the SOURCE
BEGIN / SOURCE END markers so grabcode.py works on .tex reports too.
"""
from __future__ import annotations

from publish_renderer import SOURCE_BEGIN, SOURCE_END, Renderer

LATEX_PREAMBLE = (
    "\\documentclass[a4paper,12pt]{article}\n"
    "\\usepackage{listings}\n"
    "\\usepackage{graphicx}\n"
    "\\usepackage{color}\n"
    "\\usepackage{verbatim}\n"
    "\\usepackage{hyperref}\n"
    "\\usepackage[T1]{fontenc}\n"
    "\\usepackage{textcomp}\n"
    "\\definecolor{lightgray}{rgb}{0.9,0.9,0.9}\n"
    "\\lstdefinestyle{source}{\n"
    "language = Octave,\n"
    "basicstyle = \\footnotesize,\n"
    "numbers = left,\n"
    "numberstyle = \\footnotesize,\n"
    "backgroundcolor = \\color{lightgray},\n"
    "frame = single,\n"
    "tabsize = 2,\n"
    "breaklines = true}\n"
    "\\lstdefinestyle{output}{\n"
    "language = Octave,\n"
    "basicstyle = \\footnotesize,\n"
    "numbers = none,\n"
    "backgroundcolor = \\color{white},\n"
    "frame = none,\n"
    "tabsize = 2,\n"
    "breaklines = true}\n"
)

_LATEX_SPECIALS = {
    "\\": "\\textbackslash{}",
    "&": "\\&",
    "%": "\\%",
    "$": "\\$",
    "#": "\\#",
    "_": "\\_",
    "{": "\\{",
    "}": "\\}",
    "~": "\\textasciitilde{}",
    "^": "\\textasciicircum{}",
}


def escape_latex(text: str) -> str:
    """Escape text for LaTeX body output."""
    return "".join(_LATEX_SPECIALS.get(ch, ch) for ch in text)


# hyperref reads the other specials in \href URLs literally
_HREF_SPECIALS = {"%": "\\%", "#": "\\#"}


def escape_href(url: str) -> str:
    return "".join(_HREF_SPECIALS.get(ch, ch) for ch in url)


class LatexRenderer(Renderer):
    file_suffix = ".tex"

    def escape(self, text: str) -> str:
        return escape_latex(text)

    def header(self, title: str, intro: str, toc: list[tuple[str, bool]]) -> str:
        self.reset_counter()
        out = (
            LATEX_PREAMBLE
            + "\\begin{document}\n"
            + f"\\title{{{escape_latex(title)}}}\n"
            + "\\date{}\n"
            + "\\maketitle\n"
            + intro
        )
        if toc:
            out += "\\tableofcontents\n"
        return out

    def footer(self, source: str) -> str:
        return (
            "\\begin{comment}\n"
            + f"{SOURCE_BEGIN}\n"
            + source
            + f"\n{SOURCE_END}\n"
            + "\\end{comment}\n"
            + "\\end{document}\n"
        )

    def code(self, text: str) -> str:
        return f"\\begin{{lstlisting}}[style=source]\n{text}\n\\end{{lstlisting}}\n"

    def code_output(self, text: str, is_error: bool = False) -> str:
        caption = "Error" if is_error else "Output"
        return (
            f"\\begin{{lstlisting}}[style=output,title={caption}]\n"
            f"{text}\n"
            "\\end{lstlisting}\n"
        )

    def section(self, title: str) -> str:
        if not title:
            return "\\bigskip\n"
        return f"\\section{{{escape_latex(title)}}}\\label{{node{self.next_anchor()}}}\n"

    def section_no_break(self, title: str) -> str:
        if not title:
            return ""
        safe = escape_latex(title)
        return (
            f"\\subsection*{{{safe}}}\\label{{node{self.next_anchor()}}}\n"
            f"\\addcontentsline{{toc}}{{subsection}}{{{safe}}}\n"
        )

    def preformatted_code(self, text: str) -> str:
        return f"\\begin{{lstlisting}}[style=source,numbers=none]\n{text}\n\\end{{lstlisting}}\n"

    def preformatted_text(self, text: str) -> str:
        return f"\\begin{{verbatim}}\n{text}\n\\end{{verbatim}}\n"

    def bulleted_list(self, items: list[str]) -> str:
        body = "".join(f"\\item {i}\n" for i in items)
        return f"\\begin{{itemize}}\n{body}\\end{{itemize}}\n"

    def numbered_list(self, items: list[str]) -> str:
        body = "".join(f"\\item {i}\n" for i in items)
        return f"\\begin{{enumerate}}\n{body}\\end{{enumerate}}\n"

    def include(self, path: str, text: str | None) -> str:
        if text is None:
            return ""
        return f"\\begin{{lstlisting}}[style=source,title={{{escape_latex(path)}}}]\n{text}\n\\end{{lstlisting}}\n"

    def graphic(self, path: str) -> str:
        return f"\\begin{{center}}\n\\includegraphics{{{path}}}\n\\end{{center}}\n"

    def graphics_gallery(self, paths: list[str]) -> str:
        figures = "".join(f"\\includegraphics[scale=0.6]{{{p}}}\n" for p in paths)
        return f"\\begin{{center}}\n{figures}\\end{{center}}\n"

    def html(self, raw: str) -> str:
        # HTML-only markup has no LaTeX rendition
        return ""

    def latex(self, raw: str) -> str:
        return raw + "\n"

    def text(self, rendered: str) -> str:
        return f"{rendered}\n\n"

    def bold(self, rendered: str) -> str:
        return f"\\textbf{{{rendered}}}"

    def italic(self, rendered: str) -> str:
        return f"\\textit{{{rendered}}}"

    def monospaced(self, rendered: str) -> str:
        return f"\\texttt{{{rendered}}}"

    def link(self, url: str, label: str) -> str:
        return f"\\href{{{escape_href(url)}}}{{{label}}}"

    def math_inline(self, src: str) -> str:
        return f"${src}$"

    def math_block(self, src: str) -> str:
        return f"$${src}$$"

    def trademark(self) -> str:
        return "\\texttrademark{}"

    def registered_trademark(self) -> str:
        return "\\textregistered{}"
