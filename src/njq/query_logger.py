"""JSON-lines log of what a query did: payload, phases, diagnostics.

Nothing is written until ``configure_logging`` points the ``njq`` logger
at a directory. Every record is one JSON object per line with an
``event`` key.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

LOG_FILENAME = "query.log"
PREVIEW_CHARS = 200

_logger = logging.getLogger("njq")
_file_handler: logging.FileHandler | None = None


def configure_logging(log_dir: str | Path, level: int = logging.DEBUG) -> Path:
    """Send query events to ``<log_dir>/query.log`` and return that path.

    Calling it again moves logging to the new directory; the previous
    file is closed rather than written twice.
    """
    global _file_handler

    log_path = Path(log_dir) / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    if _file_handler is not None:
        _logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = logging.FileHandler(log_path, encoding="utf-8")
    _file_handler.setLevel(level)
    _file_handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_file_handler)
    _logger.setLevel(level)
    return log_path


def _log(event: str, **fields: Any) -> None:
    if _logger.isEnabledFor(logging.INFO):
        _logger.info(json.dumps({"event": event, **fields}, default=str, ensure_ascii=False))


def _preview(source: str) -> str:
    return source[:PREVIEW_CHARS]


def log_payload_loaded(kind: str, source: str, temp_path: Path | None = None) -> None:
    _log("payload_loaded", kind=kind, source_preview=_preview(source), temp_path=temp_path)


def log_tempfile_removed(path: Path) -> None:
    _log("tempfile_removed", path=path)


def log_phase_start(phase: str, source: str) -> None:
    _log("phase_start", phase=phase, source_preview=_preview(source))


def log_phase_complete(phase: str, duration_ms: float, ok: bool) -> None:
    _log("phase_complete", phase=phase, ok=ok, duration_ms=round(duration_ms, 2))


def log_diagnostic(phase: str, severity: str, message: str) -> None:
    _log("diagnostic", phase=phase, severity=severity, message=message)


def log_error(phase: str, error: str) -> None:
    _log("error", phase=phase, error=error)
