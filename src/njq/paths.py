"""Filesystem paths rendered as Nix path expressions.

The result is spliced unquoted into ``import <path>`` or
``builtins.readFile <path>``. A bare relative name like ``data.json``
would parse as an identifier lookup, so it gets a ``./`` prefix.
"""

from __future__ import annotations

import re

from njq.literals import to_literal

# What the Nix lexer accepts as a path literal.
_PATH_LITERAL = re.compile(r"\.{0,2}(/[A-Za-z0-9._+\-]+)+")
_DRIVE = re.compile(r"[A-Za-z]:/")


def is_absolute(path: str) -> bool:
    return path.startswith("/") or bool(_DRIVE.match(path))


def normalize(path: str) -> str:
    """Return a Nix expression for *path* that evaluates to a path.

    Deterministic and never touches the filesystem.
    """
    path = path.replace("\\", "/")
    if path in (".", ".."):
        path += "/."
    elif not is_absolute(path) and not path.startswith(("./", "../")):
        path = "./" + path

    if _PATH_LITERAL.fullmatch(path):
        return path
    # Characters a path literal cannot hold: append a string to a path so
    # the result is still a path value.
    if path.startswith("/"):
        return f"/. + {to_literal(path)}"
    if is_absolute(path):
        return to_literal(path)
    return f"./. + {to_literal('/' + path)}"
