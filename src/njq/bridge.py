"""The query pipeline: payload in, JSON text out.

Runs two evaluations, each in a fresh evaluator instance:

1. The input phase evaluates the program the payload loader produced.
   JSON payloads are carried over as their JSON value; Nix payloads are
   only forced here and then bound into the query as source.
2. The query phase binds that value as ``input`` and evaluates the
   query wrapped in ``toJSON``.

The serialized result is then decoded and rendered.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TextIO

from njq import query_logger
from njq.errors import (
    EvaluationFailed,
    InputEvaluationFailed,
    NullResult,
    OutputDecodeError,
    QueryEvaluationFailed,
)
from njq.evaluator import Evaluator, NixExpression, NixInstantiateEvaluator
from njq.literals import strip_quotes, unescape_json_text
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
from njq.payload import load

INPUT_PHASE = "input"
QUERY_PHASE = "query"

WarningHandler = Callable[[str], None]


def synthesize_query(query: str, mode: OutputMode) -> str:
    """Build the query program.

    In JSON mode the result is serialized by ``toJSON``; ``unwrap_serialized``
    depends on that. The closing parenthesis sits on its own line so a
    trailing ``#`` comment in *query* cannot swallow it.
    """
    if mode is OutputMode.JSON:
        return f"with builtins; toJSON ({query}\n)"
    return f"with builtins; {query}"


def forcing_program(source: str) -> str:
    """Evaluate Nix *source* to weak head normal form and yield ``null``.

    Checks that a Nix payload parses, imports and evaluates without
    serializing it, so functions and paths inside it survive.
    """
    return f"builtins.seq ({source}\n) null"


def unwrap_serialized(text: str) -> Any:
    """Decode the text of a ``toJSON`` result back into a JSON value.

    *text* is the evaluator's rendering of a string, i.e. JSON text that
    is itself JSON-encoded. Both layers are decoded.

    Raises:
        OutputDecodeError: If either layer is not what ``toJSON`` produces.
    """
    try:
        inner = json.loads(text)
    except json.JSONDecodeError as e:
        raise OutputDecodeError(f"invalid JSON output: {e}") from e
    if not isinstance(inner, str):
        raise OutputDecodeError(
            f"expected serialized JSON string, got {type(inner).__name__}"
        )
    try:
        return json.loads(inner)
    except json.JSONDecodeError as e:
        raise OutputDecodeError(f"invalid JSON output: {e}") from e


def _evaluate_phase(
    phase: str,
    evaluator: Evaluator,
    bindings: Mapping[str, Any],
    source: str,
    options: QueryOptions,
    working_directory: Path,
    on_warning: WarningHandler | None,
) -> EvaluationOutcome:
    query_logger.log_phase_start(phase, source)
    start = time.monotonic()

    instance = evaluator.build(bindings, impure=not options.restricted)
    outcome = instance.evaluate(source, working_directory)

    duration_ms = (time.monotonic() - start) * 1000
    query_logger.log_phase_complete(phase, duration_ms, outcome.ok)

    for warning in outcome.warnings:
        query_logger.log_diagnostic(phase, "warning", warning)
        if on_warning is not None:
            on_warning(warning)
    for error in outcome.errors:
        query_logger.log_diagnostic(phase, "error", error)
    return outcome


def _fail(error: EvaluationFailed) -> EvaluationFailed:
    query_logger.log_error(error.phase, str(error))
    return error


def run_query(
    query: str,
    payload: InlinePayload | FilePayload | StdinPayload | NoPayload | None = None,
    options: QueryOptions | None = None,
    *,
    evaluator: Evaluator | None = None,
    extensions: Mapping[str, Any] | None = None,
    stdin: TextIO | None = None,
    on_warning: WarningHandler | None = None,
) -> QueryResult:
    """Evaluate *query* against *payload* and return the text to print.

    Args:
        query: Nix expression; the payload is reachable as ``input``
            (or ``options.input_name``) and ``builtins`` is in scope.
        payload: Where the payload comes from. Ignored in self-contained
            mode; ``None`` means no payload.
        options: Rendering and evaluation options.
        evaluator: Evaluator to use; defaults to ``nix-instantiate``.
        extensions: Extra bindings for the query phase, e.g. custom
            builtins. ``input`` takes precedence over a clash.
        stdin: Stream to read a stdin payload from (default ``sys.stdin``).
        on_warning: Called with each evaluator warning as it is reported.

    Returns:
        QueryResult with the output text, the decoded value (JSON mode
        only) and all warnings.

    Raises:
        PayloadReadError, PayloadParseError: Payload problems; nothing is
            evaluated.
        InputEvaluationFailed: The payload did not evaluate; the query is
            never run.
        QueryEvaluationFailed: The query reported errors.
        NullResult: The query produced no value and no errors.
        OutputDecodeError: The serialized result was not decodable.
        EscapeError: Raw mode met an invalid ``\\u`` escape.
    """
    options = options or QueryOptions()
    evaluator = evaluator or NixInstantiateEvaluator()
    working_directory = options.working_directory or Path.cwd()
    if options.self_contained or payload is None:
        payload = NoPayload()
    elif options.restricted and isinstance(payload, StdinPayload):
        # Restricted evaluation cannot read a spooled temporary file.
        payload = payload.model_copy(update={"strategy": StdinStrategy.INLINE})

    warnings: list[str] = []

    def collect(warning: str) -> None:
        warnings.append(warning)
        if on_warning is not None:
            on_warning(warning)

    with load(payload, working_directory=working_directory, stdin=stdin) as loaded:
        is_nix = loaded.format is PayloadFormat.NIX
        bound = _evaluate_phase(
            INPUT_PHASE, evaluator, {},
            forcing_program(loaded.source) if is_nix else loaded.source,
            options, working_directory, collect,
        )
        if not bound.ok:
            raise _fail(InputEvaluationFailed(bound.errors, warnings))

        bound_value = NixExpression(loaded.source) if is_nix else bound.value
        bindings = {**(extensions or {}), options.input_name: bound_value}
        outcome = _evaluate_phase(
            QUERY_PHASE, evaluator, bindings,
            synthesize_query(query, options.output_mode),
            options, working_directory, collect,
        )

    if outcome.errors:
        raise _fail(QueryEvaluationFailed(outcome.errors, warnings))
    if outcome.value is None:
        query_logger.log_error(QUERY_PHASE, "no value")
        raise NullResult()

    text = evaluator.to_text(outcome.value)
    match options.output_mode:
        case OutputMode.JSON:
            value = unwrap_serialized(text)
            return QueryResult(text=render(value, options.pretty), value=value, warnings=warnings)
        case OutputMode.RAW:
            return QueryResult(text=unescape_json_text(strip_quotes(text)), warnings=warnings)
        case _:
            return QueryResult(text=text, warnings=warnings)
