"""Custom builtins: extra named functions visible to the query.

Extensions are plain Nix source bound next to ``input`` for the query
phase only. The bridge behaves identically when none are registered.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from njq.errors import ExtensionError
from njq.evaluator import NixExpression

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_'\-]*")
_RESERVED = frozenset({"builtins", "__njqBuiltins"})

PREPEND_HELLO = NixExpression(
    's: assert builtins.isString s; "hello ${s}"'
)

EXAMPLE_BUILTINS: dict[str, NixExpression] = {"prependHello": PREPEND_HELLO}


def parse_builtin(pair: str) -> tuple[str, NixExpression]:
    """Parse a ``NAME=EXPR`` definition."""
    if "=" not in pair:
        raise ExtensionError(f"builtin must be NAME=EXPR, got {pair!r}")
    name, source = pair.split("=", 1)
    name = name.strip()
    if not _IDENTIFIER.fullmatch(name) or name in _RESERVED:
        raise ExtensionError(f"invalid builtin name: {name!r}")
    if not source.strip():
        raise ExtensionError(f"builtin {name!r} has an empty definition")
    return name, NixExpression(source)


def parse_builtins(pairs: Iterable[str], with_examples: bool = False) -> dict[str, NixExpression]:
    """Collect builtins from ``NAME=EXPR`` pairs; later pairs win."""
    registered: dict[str, NixExpression] = dict(EXAMPLE_BUILTINS) if with_examples else {}
    for pair in pairs:
        name, expr = parse_builtin(pair)
        registered[name] = expr
    return registered
