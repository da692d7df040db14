"""Payload loading: turn a payload spec into a Nix program that yields it.

JSON is parsed here, before anything is evaluated, so malformed input
fails fast with a parser message instead of an evaluator trace.
"""

from __future__ import annotations

import json
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TextIO

from njq import query_logger
from njq.errors import PayloadParseError, PayloadReadError
from njq.literals import to_literal
from njq.models import (
    FilePayload,
    InlinePayload,
    LoadedPayload,
    NoPayload,
    PayloadFormat,
    StdinPayload,
    StdinStrategy,
)
from njq.paths import normalize

STDIN_NAME = "<stdin>"


def compact_json(text: str, source: str) -> str:
    """Parse *text* as JSON and re-serialize it without whitespace.

    Raises:
        PayloadParseError: If *text* is not valid JSON.
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise PayloadParseError(source, str(e)) from e
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def read_file(path: str, working_directory: Path) -> str:
    """Read a payload file as UTF-8, resolving *path* against *working_directory*."""
    resolved = working_directory / Path(path.replace("\\", "/"))
    try:
        return resolved.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise PayloadReadError(path, "unexistent or invalid path") from e
    except (OSError, UnicodeDecodeError) as e:
        raise PayloadReadError(path, str(e)) from e


def read_stdin(stream: TextIO | None = None) -> str:
    stream = stream if stream is not None else sys.stdin
    try:
        return stream.read()
    except (OSError, UnicodeDecodeError) as e:
        raise PayloadReadError(STDIN_NAME, str(e)) from e


def json_file_source(path: str) -> str:
    return f"builtins.fromJSON (builtins.readFile {normalize(path)})"


def json_inline_source(compact: str) -> str:
    return f"builtins.fromJSON {to_literal(compact)}"


@contextmanager
def _spooled(compact: str) -> Iterator[Path]:
    """Hold *compact* in a temporary file for the duration of the block."""
    handle = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", prefix="njq-", suffix=".json", delete=False
    )
    path = Path(handle.name)
    try:
        with handle:
            handle.write(compact)
        yield path
    finally:
        path.unlink(missing_ok=True)
        query_logger.log_tempfile_removed(path)


@contextmanager
def load(
    spec: InlinePayload | FilePayload | StdinPayload | NoPayload,
    *,
    working_directory: Path,
    stdin: TextIO | None = None,
) -> Iterator[LoadedPayload]:
    """Resolve *spec* into a Nix program that evaluates to the payload.

    Used as a context manager: a temporary file spooled from standard
    input lives until the block exits, however it exits.

    Raises:
        PayloadReadError: If the file or standard input cannot be read.
        PayloadParseError: If a JSON payload does not parse.
    """
    match spec:
        case NoPayload():
            loaded = LoadedPayload(source="null")
        case InlinePayload():
            loaded = LoadedPayload(source=spec.source, format=PayloadFormat.NIX)
        case FilePayload(format=PayloadFormat.NIX):
            read_file(spec.path, working_directory)
            loaded = LoadedPayload(source=f"import {normalize(spec.path)}", format=PayloadFormat.NIX)
        case FilePayload():
            compact_json(read_file(spec.path, working_directory), spec.path)
            loaded = LoadedPayload(source=json_file_source(spec.path))
        case StdinPayload(format=PayloadFormat.NIX):
            loaded = LoadedPayload(source=read_stdin(stdin), format=PayloadFormat.NIX)
        case StdinPayload(strategy=StdinStrategy.INLINE):
            compact = compact_json(read_stdin(stdin), STDIN_NAME)
            loaded = LoadedPayload(source=json_inline_source(compact))
        case StdinPayload():
            compact = compact_json(read_stdin(stdin), STDIN_NAME)
            with _spooled(compact) as path:
                loaded = LoadedPayload(source=json_file_source(str(path)), temp_path=path)
                query_logger.log_payload_loaded(spec.kind, loaded.source, path)
                yield loaded
            return
        case _:
            raise TypeError(f"Unknown payload spec: {spec!r}")

    query_logger.log_payload_loaded(spec.kind, loaded.source)
    yield loaded
