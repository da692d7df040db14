"""The Nix evaluator, seen through a small injectable interface.

The bridge only needs three things from an evaluator: build an isolated
instance with some names bound, evaluate source text in it, and turn a
resulting value into text. ``NixInstantiateEvaluator`` provides them by
running ``nix-instantiate --eval`` once per evaluation, so no state can
leak between instances.
"""

from __future__ import annotations

import os
import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from njq.literals import to_literal
from njq.models import EvaluationOutcome

DEFAULT_BINARY = "nix-instantiate"
BINARY_ENV_VAR = "NJQ_NIX_INSTANTIATE"

_DIAGNOSTIC_START = re.compile(r"^(error|evaluation warning|warning|trace):\s?(.*)$")

# Bindings are also reachable as builtins.<name>; the shadowing attrset
# is staged under this name so the inner let does not refer to itself.
_STAGED_BUILTINS = "__njqBuiltins"


@dataclass(frozen=True)
class NixValue:
    """A value produced by ``nix-instantiate``, held as its JSON text."""

    json_text: str


@dataclass(frozen=True)
class NixExpression:
    """Nix source bound verbatim, e.g. a custom builtin function."""

    source: str


class EvaluatorInstance(Protocol):
    def evaluate(self, source: str, working_directory: Path) -> EvaluationOutcome: ...


class Evaluator(Protocol):
    def build(
        self, bindings: Mapping[str, Any], *, impure: bool = True
    ) -> EvaluatorInstance: ...

    def to_text(self, value: Any) -> str: ...


def diagnostics(stderr: str) -> list[tuple[bool, str]]:
    """Parse evaluator stderr into ``(is_error, message)`` pairs, in order.

    A diagnostic starts at a line prefixed with ``error:``, ``warning:``,
    ``evaluation warning:`` or ``trace:`` and runs until the next such
    line. Unprefixed text before the first prefix is its own diagnostic
    and counts as an error.
    """
    blocks: list[tuple[bool, list[str]]] = []
    for line in stderr.splitlines():
        match = _DIAGNOSTIC_START.match(line)
        if match:
            blocks.append((match.group(1) == "error", [match.group(2)]))
        elif blocks:
            blocks[-1][1].append(line)
        elif line.strip():
            blocks.append((True, [line]))
    return [(is_error, "\n".join(lines).rstrip()) for is_error, lines in blocks]


def split_diagnostics(stderr: str) -> tuple[list[str], list[str]]:
    """Split evaluator stderr into (errors, warnings). Traces are warnings."""
    parsed = diagnostics(stderr)
    return (
        [message for is_error, message in parsed if is_error],
        [message for is_error, message in parsed if not is_error],
    )


def binding_source(value: Any) -> str:
    if isinstance(value, NixValue):
        return f"builtins.fromJSON {to_literal(value.json_text)}"
    if isinstance(value, NixExpression):
        return f"({value.source}\n)"
    raise TypeError(f"Cannot bind {type(value).__name__} into a Nix program")


class NixInstantiateInstance:
    """One isolated evaluation context with a fixed set of bindings."""

    def __init__(self, binary: str, bindings: Mapping[str, Any], impure: bool) -> None:
        self.binary = binary
        self.bindings = dict(bindings)
        self.impure = impure

    def program(self, source: str) -> str:
        """Wrap *source* in ``let`` blocks holding the bindings.

        Each binding is visible both as a plain name and as an attribute
        of ``builtins``, so ``input.a`` and ``builtins.input.a`` agree.
        """
        if not self.bindings:
            return source
        lines = ["let"]
        for name, value in self.bindings.items():
            lines.append(f"  {name} = {binding_source(value)};")
        names = " ".join(self.bindings)
        lines.append(f"  {_STAGED_BUILTINS} = builtins // {{ inherit {names}; }};")
        lines.append("in")
        lines.append(f"let builtins = {_STAGED_BUILTINS}; in")
        lines.append(source)
        return "\n".join(lines)

    def command(self) -> list[str]:
        args = [self.binary, "--eval", "--strict", "--json"]
        if not self.impure:
            args += ["--option", "restrict-eval", "true"]
        args.append("-")
        return args

    def evaluate(self, source: str, working_directory: Path) -> EvaluationOutcome:
        try:
            proc = subprocess.run(
                self.command(),
                input=self.program(source),
                cwd=working_directory,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                shell=False,
            )
        except FileNotFoundError:
            return EvaluationOutcome(errors=[f"evaluator not found: {self.binary}"])

        if proc.returncode != 0:
            errors, warnings = split_diagnostics(proc.stderr)
            if not errors:
                errors = [f"{self.binary} exited with status {proc.returncode}"]
            return EvaluationOutcome(errors=errors, warnings=warnings)

        # A zero exit means nothing on stderr was fatal.
        text = proc.stdout.strip()
        return EvaluationOutcome(
            value=NixValue(text) if text else None,
            warnings=[message for _, message in diagnostics(proc.stderr)],
        )


class NixInstantiateEvaluator:
    """Evaluator backed by the ``nix-instantiate`` command."""

    def __init__(self, binary: str | None = None) -> None:
        self.binary = binary or os.environ.get(BINARY_ENV_VAR) or DEFAULT_BINARY

    def build(
        self, bindings: Mapping[str, Any], *, impure: bool = True
    ) -> NixInstantiateInstance:
        return NixInstantiateInstance(self.binary, bindings, impure)

    def to_text(self, value: Any) -> str:
        if not isinstance(value, NixValue):
            raise TypeError(f"Not a Nix value: {value!r}")
        return value.json_text
