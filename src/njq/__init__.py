"""njq: query JSON data or Nix files with Nix expressions."""

__version__ = "0.3.0"

from njq.bridge import run_query, synthesize_query, unwrap_serialized
from njq.errors import (
    EscapeError,
    EvaluationFailed,
    ExtensionError,
    InputEvaluationFailed,
    InvalidCodepoint,
    InvalidUnicodeEscape,
    NjqError,
    NullResult,
    OutputDecodeError,
    PayloadParseError,
    PayloadReadError,
    QueryEvaluationFailed,
)
from njq.evaluator import (
    Evaluator,
    EvaluatorInstance,
    NixExpression,
    NixInstantiateEvaluator,
    NixValue,
)
from njq.literals import to_literal, unescape_json_text
from njq.models import (
    EvaluationOutcome,
    FilePayload,
    InlinePayload,
    NoPayload,
    OutputMode,
    PayloadFormat,
    QueryOptions,
    QueryResult,
    StdinPayload,
    StdinStrategy,
)
from njq.output import render
from njq.paths import normalize
from njq.query_logger import configure_logging

__all__ = [
    "configure_logging",
    "normalize",
    "render",
    "run_query",
    "synthesize_query",
    "to_literal",
    "unescape_json_text",
    "unwrap_serialized",
    "EscapeError",
    "EvaluationFailed",
    "EvaluationOutcome",
    "Evaluator",
    "EvaluatorInstance",
    "ExtensionError",
    "FilePayload",
    "InlinePayload",
    "InputEvaluationFailed",
    "InvalidCodepoint",
    "InvalidUnicodeEscape",
    "NixExpression",
    "NixInstantiateEvaluator",
    "NixValue",
    "NjqError",
    "NoPayload",
    "NullResult",
    "OutputDecodeError",
    "OutputMode",
    "PayloadFormat",
    "PayloadParseError",
    "PayloadReadError",
    "QueryEvaluationFailed",
    "QueryOptions",
    "QueryResult",
    "StdinPayload",
    "StdinStrategy",
]
