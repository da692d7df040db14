"""Custom exception hierarchy for njq.

All exceptions inherit from NjqError so callers can catch broadly
or narrowly as needed. Each class carries the process exit status the
CLI uses when it aborts with that error.
"""

from __future__ import annotations

from collections.abc import Iterable


class NjqError(Exception):
    """Base for all njq errors."""

    exit_code = 1


class PayloadReadError(NjqError):
    """A payload file or standard input could not be read."""

    exit_code = 2

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"failed to read file {path}: {reason}")


class PayloadParseError(NjqError):
    """A payload declared as JSON is not valid JSON."""

    exit_code = 3

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"failed to parse JSON input from {source}: {detail}")


class EvaluationFailed(NjqError):
    """An evaluation phase produced no value or reported errors."""

    phase = "evaluation"

    def __init__(
        self,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings)
        super().__init__(f"{self.phase} evaluation failed")


class InputEvaluationFailed(EvaluationFailed):
    """The program that loads the payload did not evaluate."""

    exit_code = 4
    phase = "input"


class QueryEvaluationFailed(EvaluationFailed):
    """The query program did not evaluate."""

    exit_code = 5
    phase = "query"


class NullResult(NjqError):
    """The query produced no value and no errors.

    Not to be confused with a query that evaluates to JSON ``null``,
    which succeeds and prints ``null``.
    """

    exit_code = 6

    def __init__(self) -> None:
        super().__init__("evaluation returned no value")


class OutputDecodeError(NjqError):
    """The serialized query result could not be decoded.

    This is an internal contract violation between the ``toJSON`` call
    wrapped around every query and the decoder, never a user error.
    """

    exit_code = 70


class EscapeError(NjqError):
    """Raw output could not be unescaped."""

    exit_code = 7


class InvalidUnicodeEscape(EscapeError):
    """A ``\\u`` escape is not followed by four hexadecimal digits."""


class InvalidCodepoint(EscapeError):
    """A ``\\u`` escape names a code point that is not a Unicode scalar value."""


class ExtensionError(NjqError):
    """A custom builtin definition is malformed."""

    exit_code = 8
