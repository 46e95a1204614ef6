#!/usr/bin/env python3
from __future__ import annotations
from pathlib import Path

from dataclasses import dataclass, field
from urllib.parse import quote
import html as _html

from flask import Flask, Response, abort, render_template_string

from config_loader import DEFAULT_CONFIG, load_config
from errors import InvalidInput
from grabcode import grabcode, is_report_path
from m_parser import parse_script
from m_reader import read_script_lines
from publish_html import HtmlRenderer
from publish_model import PublishOptions

BASE_DIR = Path.cwd()
CONFIG_PATH = BASE_DIR / "config.yml"

app = Flask(__name__)
app.config.setdefault("SCRIPT_DIR", BASE_DIR)
app.config.setdefault("PUBLISH_CONFIG", load_config(CONFIG_PATH) if CONFIG_PATH.is_file() else DEFAULT_CONFIG)


LAYOUT_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ page_title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <script type="text/javascript" async
    src="https://cdn.jsdelivr.net/npm/mathjax@2/MathJax.js?config=TeX-MML-AM_CHTML"></script>
</head>
<body class="with-sidebar">
  <div class="layout">
    <aside class="sidebar">
      <div class="sidebar-title"><a href="/">Script Viewer</a></div>

      <div class="sidebar-section">
        <div class="sidebar-label">Scripts</div>
        {{ file_tree|safe }}
      </div>
    </aside>

    <main class="content">
    {{ content|safe }}
    </main>
  </div>
</body>
</html>
"""

@dataclass
class FileTreeNode:
    dirs: dict[str, "FileTreeNode"] = field(default_factory=dict)
    files: list[str] = field(default_factory=list)

def _insert_path(root: FileTreeNode, rel_parts: tuple[str, ...]) -> None:
    node = root
    for part in rel_parts[:-1]:
        node = node.dirs.setdefault(part, FileTreeNode())
    node.files.append(rel_parts[-1])

def build_script_tree(script_dir: Path, suffixes: set[str]) -> FileTreeNode:
    root = FileTreeNode()
    if not script_dir.exists():
        return root

    for p in sorted(script_dir.glob("**/*")):
        if not p.is_file() or p.suffix.lower() not in suffixes:
            continue
        # skip hidden dirs
        if any(seg.startswith(".") for seg in p.relative_to(script_dir).parts):
            continue
        _insert_path(root, p.relative_to(script_dir).parts)
    return root

def _open_dir_set_for_current(current_rel: str) -> set[str]:
    """
    current_rel is like 'demos/foo.m'. We want the ancestor directories
    opened: 'demos' for example.
    """
    parts = [p for p in current_rel.split("/") if p]
    open_dirs: set[str] = set()
    acc: list[str] = []
    for seg in parts[:-1]:
        acc.append(seg)
        open_dirs.add("/".join(acc))
    return open_dirs

def render_tree_html(node: FileTreeNode, *, prefix: str, open_dirs: set[str], current_file: str) -> str:
    """
    prefix: path inside the script directory (e.g. '' or 'demos')
    current_file: rel path of the script being shown (e.g. 'demos/foo.m')
    """
    out: list[str] = []

    # directories
    for dirname in sorted(node.dirs.keys()):
        child = node.dirs[dirname]
        child_prefix = f"{prefix}/{dirname}".strip("/")
        open_attr = " open" if child_prefix in open_dirs else ""
        out.append(f'<details class="fm-dir"{open_attr}>')
        out.append(f"<summary>{_html.escape(dirname)}/</summary>")
        out.append('<div class="fm-children">')
        out.append(render_tree_html(child, prefix=child_prefix, open_dirs=open_dirs, current_file=current_file))
        out.append("</div></details>")

    # files
    for fname in sorted(node.files):
        rel = f"{prefix}/{fname}".strip("/")
        href = "/view/" + quote(rel)
        active = " active" if rel == current_file else ""
        out.append(f'<div class="fm-file{active}"><a href="{href}">{_html.escape(fname)}</a></div>')

    return "".join(out)


def _resolve_inside(base: Path, filename: str) -> Path:
    """Resolve `filename` below `base` or abort with 404."""
    base = base.resolve()
    target = (base / filename).resolve()
    try:
        target.relative_to(base)
    except ValueError:
        abort(404)
    if not target.is_file():
        abort(404)
    return target


def _sidebar(current_rel: str) -> str:
    cfg = app.config["PUBLISH_CONFIG"]
    tree = build_script_tree(Path(app.config["SCRIPT_DIR"]), cfg.script_suffixes)
    return render_tree_html(
        tree,
        prefix="",
        open_dirs=_open_dir_set_for_current(current_rel),
        current_file=current_rel,
    )


def render_script_body(script_path: Path) -> tuple[str, str]:
    """
    Publish a script without evaluation and return (title, body html).

    The body is everything the HTML renderer emits between <body> and the
    footer, without the table of contents.
    """
    cfg = app.config["PUBLISH_CONFIG"]
    doc = parse_script(read_script_lines(script_path), cfg, source_name=script_path.name)
    options = PublishOptions.from_config(cfg, format="html", eval_code=False)

    renderer = HtmlRenderer()
    renderer.reset_counter()
    parts: list[str] = [f"<h1>{_html.escape(doc.title or doc.source_name)}</h1>\n"]
    parts.append(renderer.render_items(doc.intro))
    for segment in doc.body:
        parts.append(renderer.render_segment(segment, options))
    parts.append(renderer.close_section_container())
    return doc.title or doc.source_name, "".join(parts)


@app.route("/")
def index():
    content = """
      <h1>Script Viewer</h1>
      <p>Choose a script on the left.</p>
    """

    return render_template_string(
        LAYOUT_TEMPLATE,
        page_title="Script Viewer",
        file_tree=_sidebar(""),
        content=content,
    )


@app.route("/view/<path:filename>")
def view_file(filename: str):
    cfg = app.config["PUBLISH_CONFIG"]
    script_dir = Path(app.config["SCRIPT_DIR"]).resolve()
    script_path = _resolve_inside(script_dir, filename)
    if script_path.suffix.lower() not in cfg.script_suffixes:
        abort(404)

    title, body_html = render_script_body(script_path)
    current_rel = script_path.relative_to(script_dir).as_posix()

    return render_template_string(
        LAYOUT_TEMPLATE,
        page_title=title,
        file_tree=_sidebar(current_rel),
        content=body_html,
    )


@app.route("/grabcode/<path:filename>")
def grab_code(filename: str):
    report_path = _resolve_inside(Path(app.config["SCRIPT_DIR"]), filename)
    if not is_report_path(report_path):
        abort(404)
    try:
        code = grabcode(report_path)
    except InvalidInput:
        abort(404)
    return Response(code, mimetype="text/plain")


if __name__ == "__main__":
    # Run in dev mode
    app.run(debug=False)
