# config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

try:
    import yaml  # PyYAML
except ImportError as e:
    raise SystemExit(
        "Missing dependency: PyYAML\n"
        "Install with: python -m pip install pyyaml"
    ) from e


SUPPORTED_FORMATS = ("html", "latex")


class PublishConfig:
    """
    Immutable-ish container for publish configuration.
    """

    def __init__(
        self,
        *,
        comment_chars: tuple[str, str],
        format: str,
        image_format: Optional[str],
        show_code: bool,
        eval_code: bool,
        catch_error: bool,
        max_output_lines: Optional[int],
        output_dir: Optional[str],
        code_to_evaluate: str,
        interpreter: list[str],
        script_suffixes: set[str],
    ):
        self.comment_chars = comment_chars
        self.format = format
        self.image_format = image_format
        self.show_code = show_code
        self.eval_code = eval_code
        self.catch_error = catch_error
        self.max_output_lines = max_output_lines
        self.output_dir = output_dir
        self.code_to_evaluate = code_to_evaluate
        self.interpreter = interpreter
        self.script_suffixes = script_suffixes


# ---------------- Defaults ---------------------------------------------------

DEFAULT_CONFIG = PublishConfig(
    comment_chars=("%", "#"),
    format="html",
    image_format=None,
    show_code=True,
    eval_code=True,
    catch_error=True,
    max_output_lines=None,
    output_dir=None,
    code_to_evaluate="",
    interpreter=["octave-cli", "--no-gui", "--quiet"],
    script_suffixes={".m"},
)

# ---------------- Loader -----------------------------------------------------


def _as_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be true or false")
    return value


def _as_limit(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer >= 0 or null")
    if value < 0:
        raise ValueError(f"{name} must be an integer >= 0 or null")
    return value


def _as_comment_chars(value: Any) -> tuple[str, str]:
    if not isinstance(value, list) or len(value) != 2:
        raise TypeError("comment_chars must be a list of two characters")
    chars = tuple(str(v) for v in value)
    if any(len(c) != 1 for c in chars) or chars[0] == chars[1]:
        raise ValueError("comment_chars must hold two distinct single characters")
    return chars[0], chars[1]


def _as_str_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise TypeError(f"{name} must be a non-empty list of strings")
    return [str(v) for v in value]


def _as_format(value: Any) -> str:
    fmt = str(value).lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"format must be one of: {', '.join(SUPPORTED_FORMATS)}")
    return fmt


def _as_optional_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    return value


def load_config(path: Path) -> PublishConfig:
    """
    Load YAML config and return a PublishConfig instance.
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise TypeError("Config root must be a mapping")

    return PublishConfig(
        comment_chars=_as_comment_chars(
            raw.get("comment_chars", list(DEFAULT_CONFIG.comment_chars))
        ),
        format=_as_format(raw.get("format", DEFAULT_CONFIG.format)),
        image_format=_as_optional_str(
            raw.get("image_format", DEFAULT_CONFIG.image_format), "image_format"
        ),
        show_code=_as_bool(raw.get("show_code", DEFAULT_CONFIG.show_code), "show_code"),
        eval_code=_as_bool(raw.get("eval_code", DEFAULT_CONFIG.eval_code), "eval_code"),
        catch_error=_as_bool(
            raw.get("catch_error", DEFAULT_CONFIG.catch_error), "catch_error"
        ),
        max_output_lines=_as_limit(
            raw.get("max_output_lines", DEFAULT_CONFIG.max_output_lines),
            "max_output_lines",
        ),
        output_dir=_as_optional_str(
            raw.get("output_dir", DEFAULT_CONFIG.output_dir), "output_dir"
        ),
        code_to_evaluate=_as_optional_str(
            raw.get("code_to_evaluate", DEFAULT_CONFIG.code_to_evaluate),
            "code_to_evaluate",
        ) or "",
        interpreter=_as_str_list(
            raw.get("interpreter", list(DEFAULT_CONFIG.interpreter)), "interpreter"
        ),
        script_suffixes={
            s.lower()
            for s in _as_str_list(
                raw.get("script_suffixes", list(DEFAULT_CONFIG.script_suffixes)),
                "script_suffixes",
            )
        },
    )
