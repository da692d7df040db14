"""Final rendering of a query result."""

from __future__ import annotations

import json
from typing import Any


def render(value: Any, pretty: bool) -> str:
    """Render a decoded JSON value for printing.

    Strings print bare, without quotes. Everything else is JSON, indented
    by two spaces when *pretty*, otherwise without any whitespace. Object
    keys keep their insertion order; ``builtins.toJSON`` emits attribute
    names sorted, so query results come out sorted.
    """
    if isinstance(value, str):
        return value
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
