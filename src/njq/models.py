"""Pydantic models for payload specs, query options and results.

All data structures live here. No business logic, just shapes.
Payload specs use a discriminated union on the ``kind`` field so a
caller states up front where the payload comes from and what it is.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PayloadFormat(str, Enum):
    JSON = "json"
    NIX = "nix"


class StdinStrategy(str, Enum):
    TEMPFILE = "tempfile"
    INLINE = "inline"


class OutputMode(str, Enum):
    JSON = "json"  # toJSON the result, decode it, print strings bare
    ESCAPED = "escaped"  # print the evaluator's text for the value
    RAW = "raw"  # like escaped, with quotes stripped and escapes resolved


# ── Payload specs ────────────────────────────────────────────────


class InlinePayload(BaseModel):
    kind: Literal["inline"] = "inline"
    source: str


class FilePayload(BaseModel):
    kind: Literal["file"] = "file"
    path: str
    format: PayloadFormat = PayloadFormat.JSON


class StdinPayload(BaseModel):
    kind: Literal["stdin"] = "stdin"
    format: PayloadFormat = PayloadFormat.JSON
    strategy: StdinStrategy = StdinStrategy.TEMPFILE


class NoPayload(BaseModel):
    kind: Literal["none"] = "none"


PayloadSpec = Annotated[
    InlinePayload | FilePayload | StdinPayload | NoPayload,
    Field(discriminator="kind"),
]

_PAYLOAD_ADAPTER: TypeAdapter[Any] = TypeAdapter(PayloadSpec)


def parse_payload_spec(raw: dict[str, Any]) -> InlinePayload | FilePayload | StdinPayload | NoPayload:
    """Validate a plain dict into the matching payload spec."""
    return _PAYLOAD_ADAPTER.validate_python(raw)


# ── Options ──────────────────────────────────────────────────────


class QueryOptions(BaseModel):
    self_contained: bool = False
    pretty: bool = True
    output_mode: OutputMode = OutputMode.JSON
    input_name: str = "input"
    restricted: bool = False
    working_directory: Path | None = None


# ── Runtime results ──────────────────────────────────────────────


class EvaluationOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors


class LoadedPayload(BaseModel):
    source: str
    # NIX sources are bound into the query as written, not via JSON.
    format: PayloadFormat = PayloadFormat.JSON
    temp_path: Path | None = None


class QueryResult(BaseModel):
    text: str
    value: Any = None
    warnings: list[str] = Field(default_factory=list)
