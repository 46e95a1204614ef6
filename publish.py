#!/usr/bin/env python3
"""
publish.py

Publish an annotated script as an HTML or LaTeX report:

- m_reader.read_script_lines() reads the script
- m_parser.parse_script() builds the document model
- an evaluator (evaluator.py) runs the code segments and captures output
- a renderer (publish_html.py / publish_latex.py) writes the report
"""
from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path
from typing import Optional

from config_loader import DEFAULT_CONFIG, PublishConfig, load_config
from errors import EvaluationError, InvalidInput, MalformedMarkup
from evaluator import NullEvaluator, OctaveEvaluator
from helper import print_event_gray
from m_parser import parse_script
from m_reader import check_script_suffix, describe_model, read_include, read_script_lines
from publish_model import (
    DocumentModel,
    ExecutionResult,
    HeaderSegment,
    Include,
    PublishOptions,
)
from publish_renderer import get_renderer


def error_output_lines(err: EvaluationError, code: str) -> list[str]:
    """Captured output of a failed segment: what it printed, then the error."""
    return err.output_lines + f"error: {err.message}\n\tin:\n\n{code}".split("\n")


def evaluate_document(doc: DocumentModel, options: PublishOptions, evaluator) -> None:
    """
    Run every code segment through `evaluator` and attach the results.

    With options.catch_error a failing segment gets its error message as
    output and evaluation continues; otherwise the EvaluationError
    propagates and aborts the publish run.

    `evaluator` is any callable (code, context) -> EvalOutcome. Optional
    new_context() and discard(context) methods manage the context handle;
    without them evaluation starts from None and nothing is cleaned up.
    """
    new_context = getattr(evaluator, "new_context", None)
    discard = getattr(evaluator, "discard", None)

    context = new_context() if new_context is not None else None
    try:
        if options.code_to_evaluate.strip():
            context = evaluator(options.code_to_evaluate, context).context

        for index, segment in doc.code_segments():
            try:
                outcome = evaluator(segment.code, context)
            except EvaluationError as err:
                if not options.catch_error:
                    raise
                result = ExecutionResult(
                    output_lines=error_output_lines(err, segment.code),
                    error=err.message,
                )
            else:
                context = outcome.context
                result = ExecutionResult(
                    output_lines=list(outcome.output_lines),
                    graphics=list(outcome.graphics),
                )
            doc.attach_result(index, result, options.max_output_lines)
    finally:
        if discard is not None:
            discard(context)


def resolve_includes(doc: DocumentModel, script_path: Path) -> None:
    """Read the files named by <include> tags, relative to the script."""
    items = list(doc.intro)
    for segment in doc.body:
        if isinstance(segment, HeaderSegment):
            items.extend(segment.content)

    for item in items:
        if not isinstance(item, Include):
            continue
        try:
            item.text = read_include(item.path, script_path)
        except (OSError, InvalidInput) as e:
            warnings.warn(f"cannot include {item.path!r}: {e}", MalformedMarkup)


def publish_text(
    lines: list[str],
    options: Optional[PublishOptions] = None,
    *,
    cfg: PublishConfig = DEFAULT_CONFIG,
    evaluator=None,
    source_name: str = "",
    script_path: Optional[Path] = None,
) -> str:
    """
    Render script lines to a report string without touching the disk
    (apart from includes when `script_path` is given).
    """
    options = options or PublishOptions.from_config(cfg)
    doc = parse_script(lines, cfg, source_name=source_name)

    if script_path is not None:
        resolve_includes(doc, script_path)

    if options.eval_code:
        evaluate_document(doc, options, evaluator or NullEvaluator())

    return get_renderer(options.format).render_document(doc, options)


def output_path_for(script_path: Path, options: PublishOptions) -> Path:
    out_dir = Path(options.resolved_output_dir)
    if not out_dir.is_absolute():
        out_dir = script_path.parent / out_dir
    suffix = ".tex" if options.format == "latex" else ".html"
    return out_dir / f"{script_path.stem}{suffix}"


def publish(
    path: Path,
    options: Optional[PublishOptions] = None,
    *,
    cfg: PublishConfig = DEFAULT_CONFIG,
    evaluator=None,
) -> Path:
    """
    Publish the script at `path` and return the path of the written report.
    """
    script_path = Path(path).resolve()
    if not script_path.is_file():
        raise FileNotFoundError(f"File not found: {script_path}")
    check_script_suffix(script_path, cfg)

    options = options or PublishOptions.from_config(cfg)
    out_path = output_path_for(script_path, options)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if evaluator is None and options.eval_code:
        evaluator = OctaveEvaluator(
            cfg.interpreter,
            figure_dir=out_path.parent,
            figure_prefix=script_path.stem,
            image_format=options.resolved_image_format,
        )

    document = publish_text(
        read_script_lines(script_path),
        options,
        cfg=cfg,
        evaluator=evaluator,
        source_name=script_path.name,
        script_path=script_path,
    )
    out_path.write_text(document, encoding="utf-8")
    return out_path


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="publish.py",
        description="Publish an annotated script as an HTML or LaTeX report.",
    )
    parser.add_argument("input", help="Script to publish")
    parser.add_argument("-f", "--format", choices=["html", "latex"], default=None)
    parser.add_argument("-o", "--output-dir", default=None, help="Output directory (default: html/ or latex/ next to the script)")
    parser.add_argument("--image-format", default=None, help="Figure format passed to the exporter")
    parser.add_argument("--max-output-lines", type=int, default=None)
    parser.add_argument("--no-code", action="store_true", help="Do not show code segments")
    parser.add_argument("--no-eval", action="store_true", help="Do not evaluate code segments")
    parser.add_argument("--no-catch-error", action="store_true", help="Abort on the first failing segment")
    parser.add_argument("-c", "--config", default=None, help="Config YAML file (default: built-in defaults)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the parsed cell structure")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    cfg = DEFAULT_CONFIG
    if args.config:
        try:
            cfg = load_config(Path(args.config))
        except Exception as e:
            print(f"[publish] Failed to load config: {e}", file=sys.stderr)
            return 2

    try:
        options = PublishOptions.from_config(
            cfg,
            format=args.format,
            output_dir=args.output_dir,
            image_format=args.image_format,
            max_output_lines=args.max_output_lines,
            show_code=False if args.no_code else None,
            eval_code=False if args.no_eval else None,
            catch_error=False if args.no_catch_error else None,
        )
    except (TypeError, ValueError) as e:
        print(f"[publish] Invalid options: {e}", file=sys.stderr)
        return 2

    input_path = Path(args.input)
    if args.verbose:
        try:
            doc = parse_script(read_script_lines(input_path), cfg, source_name=input_path.name)
        except OSError as e:
            print(f"[publish] Cannot read {input_path}: {e}", file=sys.stderr)
            return 2
        for event in describe_model(doc):
            print_event_gray(event)

    try:
        out_path = publish(input_path, options, cfg=cfg)
    except Exception as e:
        print(f"[publish] Error while publishing: {e}", file=sys.stderr)
        return 1

    print(out_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
