"""Shared fixtures: a scripted stand-in for the Nix evaluator.

The fake understands the payload programs the loader generates
(``builtins.fromJSON (builtins.readFile <path>)``, inline
``builtins.fromJSON "<literal>"``, ``null`` and the ``builtins.seq``
wrapper around Nix sources) and answers queries with Python callables
keyed by query text. A Nix source bound as ``input`` is resolved through
``scripted``. Every evaluation is recorded so tests can check what ran,
with which bindings, in which instance.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from njq.evaluator import NixExpression
from njq.literals import unescape_json_text
from njq.models import EvaluationOutcome

_READ_FILE = re.compile(r"builtins\.fromJSON \(builtins\.readFile (.+)\)", re.S)
_INLINE = re.compile(r'builtins\.fromJSON "(.*)"', re.S)
_TO_JSON = re.compile(r"with builtins; toJSON \((.*)\n\)", re.S)
_BARE = re.compile(r"with builtins; (.*)", re.S)
_FORCE = re.compile(r"builtins\.seq \((.*)\n\) null", re.S)


@dataclass(frozen=True)
class FakeValue:
    data: Any


@dataclass
class Call:
    source: str
    bindings: dict[str, Any]
    working_directory: Path
    impure: bool


def _path_from_token(token: str, cwd: Path) -> Path:
    token = token.strip()
    if token.startswith("/. + "):
        return Path(unescape_json_text(token[len("/. + "):].strip('"')))
    if token.startswith("./. + "):
        return cwd / unescape_json_text(token[len("./. + "):].strip('"')).lstrip("/")
    return cwd / token


@dataclass
class FakeEvaluator:
    queries: dict[str, Callable[[Any], Any]] = field(default_factory=dict)
    scripted: dict[str, EvaluationOutcome] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)
    builds: int = 0

    def build(self, bindings: Mapping[str, Any], *, impure: bool = True) -> FakeInstance:
        self.builds += 1
        return FakeInstance(self, dict(bindings), impure)

    def to_text(self, value: Any) -> str:
        assert isinstance(value, FakeValue)
        return json.dumps(value.data, ensure_ascii=False)

    def respond(self, source: str, bindings: dict[str, Any], cwd: Path) -> EvaluationOutcome:
        if source in self.scripted:
            return self.scripted[source]
        if source == "null":
            return EvaluationOutcome(value=FakeValue(None))

        match = _READ_FILE.fullmatch(source)
        if match:
            path = _path_from_token(match.group(1), cwd)
            return EvaluationOutcome(value=FakeValue(json.loads(path.read_text(encoding="utf-8"))))
        match = _INLINE.fullmatch(source)
        if match:
            return EvaluationOutcome(value=FakeValue(json.loads(unescape_json_text(match.group(1)))))
        match = _FORCE.fullmatch(source)
        if match:
            forced = self.respond(match.group(1), {}, cwd)
            if not forced.ok:
                return forced
            return EvaluationOutcome(value=FakeValue(None), warnings=forced.warnings)

        bound = bindings.get("input")
        if isinstance(bound, NixExpression):
            bound = self.respond(bound.source, {}, cwd).value
        data = bound.data if isinstance(bound, FakeValue) else None
        match = _TO_JSON.fullmatch(source)
        if match and match.group(1) in self.queries:
            result = self.queries[match.group(1)](data)
            serialized = json.dumps(result, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
            return EvaluationOutcome(value=FakeValue(serialized))
        match = _BARE.fullmatch(source)
        if match and match.group(1) in self.queries:
            return EvaluationOutcome(value=FakeValue(self.queries[match.group(1)](data)))

        return EvaluationOutcome(errors=[f"undefined variable in {source!r}"])


@dataclass
class FakeInstance:
    evaluator: FakeEvaluator
    bindings: dict[str, Any]
    impure: bool

    def evaluate(self, source: str, working_directory: Path) -> EvaluationOutcome:
        self.evaluator.calls.append(Call(source, self.bindings, working_directory, self.impure))
        return self.evaluator.respond(source, self.bindings, working_directory)


@pytest.fixture
def fake_evaluator() -> FakeEvaluator:
    return FakeEvaluator()

