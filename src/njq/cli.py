"""Command-line interface for njq.

Enables execution via ``uvx njq`` or a plain ``njq`` command after
install.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from njq import __version__
from njq.bridge import run_query
from njq.errors import EvaluationFailed, NjqError, OutputDecodeError
from njq.evaluator import BINARY_ENV_VAR, Evaluator, NixInstantiateEvaluator
from njq.extensions import parse_builtins
from njq.models import (
    FilePayload,
    NoPayload,
    OutputMode,
    PayloadFormat,
    QueryOptions,
    StdinPayload,
    StdinStrategy,
)
from njq.query_logger import configure_logging

# ── Human-readable help strings ──────────────────────────────────────────────

_DESCRIPTION = """\
Query JSON data (or a Nix file) with a Nix expression.

The payload is bound as `input` and every builtin is in scope, so
`input.users`, `map (u: u.name) input.users` and `length input` all work.
String results print without quotes; everything else prints as JSON.
"""

_EPILOG = """\
The input file (or stdin) should contain:
  - JSON data, if --nix is not given.
  - A Nix expression, if --nix is given.

Examples:
  # JSON from stdin
  echo '{"key": "value"}' | njq 'input.key'

  # JSON from a file, compact output
  njq --compact 'filter (u: u.age > 27) input.users' users.json

  # A Nix file as the payload
  njq --nix 'map (x: x * 2) input' list.nix

  # No payload at all
  njq --self-contained 'length [1 2 3 4]'

Exit codes:
  0 -- success
  2 -- payload could not be read
  3 -- payload is not valid JSON
  4 -- payload did not evaluate
  5 -- query did not evaluate
  6 -- query returned no value
  7 -- raw output has an invalid \\u escape
  8 -- malformed --builtin
  70 -- internal error

For a machine-readable JSON description of this CLI:

  njq --schema
"""


# ── Structured JSON schema (for `njq --schema`) ──────────────────────────────

def _cli_schema() -> dict[str, Any]:
    """Return a structured JSON description of the CLI."""
    return {
        "tool": "njq",
        "description": (
            "Query JSON data or a Nix file with a Nix expression. "
            "The payload is bound as `input`; builtins are in scope."
        ),
        "usage": "njq [OPTIONS] [EXPR] [FILE]",
        "arguments": {
            "EXPR": {
                "type": "string",
                "required": False,
                "description": (
                    "Nix expression to evaluate. Defaults to `input` when "
                    "stdin is not a terminal."
                ),
            },
            "FILE": {
                "type": "string",
                "format": "file path",
                "required": False,
                "description": "Payload file; stdin is read when omitted.",
            },
            "--nix": {"short": "-n", "type": "flag", "description": "Payload is Nix source, not JSON."},
            "--self-contained": {"short": "-s", "type": "flag", "description": "Read no payload; `input` is null."},
            "--compact": {"short": "-c", "type": "flag", "description": "Print JSON without whitespace."},
            "--raw": {"short": "-r", "type": "flag", "description": "Print the value's text with quotes stripped and escapes resolved."},
            "--escaped": {"short": "-e", "type": "flag", "description": "Print the value's text as the evaluator renders it."},
            "--inline-stdin": {"type": "flag", "description": "Embed stdin JSON in the program instead of spooling it to a temporary file."},
            "--builtin": {"type": "string", "format": "NAME=EXPR", "repeatable": True, "description": "Bind an extra function for the query."},
            "--with-examples": {"type": "flag", "description": "Bind the bundled example builtins (prependHello)."},
            "--restricted": {"type": "flag", "description": "Evaluate in restricted mode. Implies --inline-stdin; payload files must be on the Nix search path."},
            "--nix-binary": {"type": "string", "description": f"nix-instantiate to run (default: ${BINARY_ENV_VAR} or nix-instantiate)."},
            "--log-dir": {"type": "string", "format": "directory path", "description": "Write JSONL execution logs to DIR/query.log."},
        },
        "output": {
            "stdout": "the result: bare text for strings, JSON otherwise",
            "stderr": "`Warning: ...` and `Error: ...` lines",
        },
        "exit_codes": {
            "0": "success",
            "2": "payload could not be read",
            "3": "payload is not valid JSON",
            "4": "payload did not evaluate",
            "5": "query did not evaluate",
            "6": "query returned no value",
            "7": "invalid escape in raw output",
            "8": "malformed --builtin",
            "70": "internal error",
        },
        "examples": [
            {"description": "Query stdin JSON", "command": "echo '{\"a\": 1}' | njq input.a"},
            {"description": "Query a JSON file", "command": "njq 'input.numbers' data.json"},
            {"description": "Query a Nix file", "command": "njq --nix 'input.attr' file.nix"},
            {"description": "Evaluate without a payload", "command": "njq -s 'length [1 2 3 4]'"},
        ],
    }


# ── Argument parser ───────────────────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="njq",
        usage="njq [OPTIONS] [EXPR] [FILE]",
        description=_DESCRIPTION,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("query", nargs="?", metavar="EXPR", help="The Nix expression to evaluate (quoted)")
    parser.add_argument(
        "file",
        nargs="?",
        metavar="FILE",
        help="Path to the JSON (or Nix, with --nix) payload; if omitted, reads from stdin",
    )
    parser.add_argument("--nix", "-n", action="store_true", help="Treat the payload as a Nix expression")
    parser.add_argument(
        "--self-contained", "-s",
        action="store_true",
        help="Treat EXPR as self-contained: read no payload and bind input to null",
    )
    parser.add_argument("--compact", "-c", action="store_true", help="Print JSON without whitespace")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--raw", "-r", action="store_true", help="Print output without JSON escapes")
    mode.add_argument("--escaped", "-e", action="store_true", help="Print output with JSON escapes and quotes")

    parser.add_argument(
        "--inline-stdin",
        action="store_true",
        help="Embed stdin JSON directly in the program instead of a temporary file",
    )
    parser.add_argument(
        "--builtin",
        action="append",
        default=[],
        metavar="NAME=EXPR",
        help="Bind NAME to the Nix expression EXPR for the query. Repeatable.",
    )
    parser.add_argument(
        "--with-examples",
        action="store_true",
        help="Bind the bundled example builtins (prependHello)",
    )
    parser.add_argument(
        "--restricted",
        action="store_true",
        help="Evaluate in restricted mode; stdin JSON is embedded and payload files must be on the Nix search path",
    )
    parser.add_argument(
        "--nix-binary",
        metavar="PATH",
        help=f"nix-instantiate executable (default: ${BINARY_ENV_VAR} or nix-instantiate)",
    )
    parser.add_argument("--log-dir", type=Path, metavar="DIR", help="Write JSONL execution logs to DIR/query.log")
    parser.add_argument("--schema", action="store_true", help="Print a machine-readable JSON schema of this CLI")
    parser.add_argument("--version", "-V", action="version", version=f"%(prog)s {__version__}")
    return parser


# ── Command handlers ──────────────────────────────────────────────────────────

def _payload_spec(args: argparse.Namespace) -> FilePayload | StdinPayload | NoPayload:
    fmt = PayloadFormat.NIX if args.nix else PayloadFormat.JSON
    if args.self_contained:
        return NoPayload()
    if args.file is not None:
        return FilePayload(path=args.file, format=fmt)
    strategy = StdinStrategy.INLINE if args.inline_stdin else StdinStrategy.TEMPFILE
    return StdinPayload(format=fmt, strategy=strategy)


def _options(args: argparse.Namespace) -> QueryOptions:
    if args.raw:
        mode = OutputMode.RAW
    elif args.escaped:
        mode = OutputMode.ESCAPED
    else:
        mode = OutputMode.JSON
    return QueryOptions(
        self_contained=args.self_contained,
        pretty=not args.compact,
        output_mode=mode,
        restricted=args.restricted,
        working_directory=Path.cwd(),
    )


def _build_evaluator(args: argparse.Namespace) -> Evaluator:
    return NixInstantiateEvaluator(args.nix_binary)


def _print_warning(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def _report(error: NjqError) -> None:
    if isinstance(error, EvaluationFailed):
        for message in error.errors:
            print(f"Error: {message}", file=sys.stderr)
    if isinstance(error, OutputDecodeError):
        print(f"Internal error: {error}", file=sys.stderr)
    else:
        print(f"Error: {error}", file=sys.stderr)


def _cmd_query(args: argparse.Namespace) -> int:
    if args.log_dir:
        configure_logging(args.log_dir)

    try:
        extensions = parse_builtins(args.builtin, with_examples=args.with_examples)
        result = run_query(
            args.query,
            _payload_spec(args),
            _options(args),
            evaluator=_build_evaluator(args),
            extensions=extensions,
            stdin=sys.stdin,
            on_warning=_print_warning,
        )
    except NjqError as e:
        _report(e)
        return e.exit_code

    print(result.text)
    return 0


def _cmd_schema() -> int:
    print(json.dumps(_cli_schema(), indent=2))
    return 0


# ── Entry point ───────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.schema:
        sys.exit(_cmd_schema())

    if args.query is None:
        if args.self_contained or sys.stdin.isatty():
            parser.print_help()
            sys.exit(0)
        args.query = "input"

    sys.exit(_cmd_query(args))


if __name__ == "__main__":
    main()
