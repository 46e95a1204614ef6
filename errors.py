"""
Error taxonomy shared by the parser, the publish pipeline and grabcode.
"""
from __future__ import annotations


class PublishError(Exception):
    """Base class for all publish failures."""


class InvalidInput(PublishError, ValueError):
    """The input is not the expected kind of document."""


class MalformedMarkup(UserWarning):
    """
    Warning category for recoverable markup problems, e.g. an unterminated
    <html> region or an include tag with more than one closing tag.
    """


class EvaluationError(PublishError):
    """A code segment failed inside the evaluation harness."""

    def __init__(self, message: str, output_lines: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.output_lines = list(output_lines or [])


class InternalInvariantViolation(PublishError, AssertionError):
    """The segmenter stopped making progress; always a parser bug."""
