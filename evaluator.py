"""
Evaluation harness for code segments.

An evaluator is called as evaluator(code, context) and returns an
EvalOutcome holding the captured output lines, the context handle to pass
to the next call, and the figure files it exported. Failures raise
EvaluationError.
"""
from __future__ import annotations

import os
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from errors import EvaluationError

# print() device names whose file extension differs from the device
IMAGE_EXTENSIONS = {
    "epsc2": "eps",
    "epsc": "eps",
    "eps2": "eps",
    "jpeg": "jpg",
}


@dataclass
class EvalOutcome:
    output_lines: list[str] = field(default_factory=list)
    context: Any = None
    graphics: list[str] = field(default_factory=list)


class NullEvaluator:
    """Evaluates nothing; used when evaluation is switched off."""

    def new_context(self) -> Any:
        return None

    def __call__(self, code: str, context: Any = None) -> EvalOutcome:
        return EvalOutcome(context=context)

    def discard(self, context: Any) -> None:
        pass


def _octave_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _error_message(stderr: str, returncode: int) -> str:
    """First "error: ..." line of the interpreter, without the prefix."""
    lines = [ln.strip() for ln in stderr.splitlines() if ln.strip()]
    for line in lines:
        if line.startswith("error: "):
            return line[len("error: "):]
    if lines:
        return lines[-1]
    return f"interpreter exited with status {returncode}"


class OctaveEvaluator:
    """
    Run code through an Octave interpreter, one process per segment.

    Variables persist between segments through a .mat context file that is
    loaded before and saved after each segment. Open figures are printed to
    `figure_dir` and closed after each segment.
    """

    def __init__(
        self,
        interpreter: list[str],
        *,
        figure_dir: Optional[Path] = None,
        figure_prefix: str = "figure",
        image_format: str = "png",
    ):
        self.interpreter = list(interpreter)
        self.figure_dir = Path(figure_dir) if figure_dir is not None else None
        self.figure_prefix = figure_prefix
        self.image_format = image_format
        self.segment_counter = 0

    def new_context(self) -> Path:
        fd, name = tempfile.mkstemp(prefix="publish-context-", suffix=".mat")
        os.close(fd)
        os.unlink(name)  # created by the first save
        return Path(name)

    def discard(self, context: Any) -> None:
        if isinstance(context, Path) and context.exists():
            context.unlink()

    def figure_name(self, index: str) -> str:
        ext = IMAGE_EXTENSIONS.get(self.image_format, self.image_format)
        return f"{self.figure_prefix}_{self.segment_counter:02d}_{index}.{ext}"

    def figure_path(self, index: int) -> Path:
        return (self.figure_dir or Path.cwd()) / self.figure_name(f"{index:02d}")

    def build_script(self, code: str, context: Path) -> str:
        ctx = _octave_string(str(context))
        lines = [
            f"if (exist ({ctx}, 'file') == 2)",
            f"  load ({ctx});",
            "endif",
            code,
        ]
        if self.figure_dir is not None:
            directory = str(self.figure_dir).replace("%", "%%")
            pattern = _octave_string(os.path.join(directory, self.figure_name("%02d")))
            lines += [
                "__publish_figs__ = sort (findall (0, 'type', 'figure'));",
                "for __publish_i__ = 1:numel (__publish_figs__)",
                f"  print (__publish_figs__(__publish_i__), sprintf ({pattern}, __publish_i__), "
                f"{_octave_string('-d' + self.image_format)});",
                "endfor",
                "close all;",
                "clear __publish_figs__ __publish_i__;",
            ]
        lines.append(f"save ({ctx});")
        return "\n".join(lines) + "\n"

    def collect_graphics(self) -> list[str]:
        graphics: list[str] = []
        index = 1
        while self.figure_path(index).exists():
            graphics.append(self.figure_path(index).name)
            index += 1
        return graphics

    def __call__(self, code: str, context: Any = None) -> EvalOutcome:
        if context is None:
            context = self.new_context()
        if not code.strip():
            return EvalOutcome(context=context)

        self.segment_counter += 1
        if self.figure_dir is not None:
            self.figure_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory() as tmp:
            script_path = Path(tmp) / "publish_segment.m"
            script_path.write_text(self.build_script(code, context), encoding="utf-8")
            try:
                proc = subprocess.run(
                    [*self.interpreter, str(script_path)],
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as e:
                raise EvaluationError(f"cannot run {self.interpreter[0]}: {e}") from e

        output_lines = proc.stdout.splitlines()
        if proc.returncode != 0:
            raise EvaluationError(_error_message(proc.stderr, proc.returncode), output_lines)

        return EvalOutcome(
            output_lines=output_lines,
            context=context,
            graphics=self.collect_graphics() if self.figure_dir is not None else [],
        )
