"""Rendering of a declaration's lifetime parameters in impl headers."""

from __future__ import annotations

from ..ir import Declaration


def angle(items: list[str]) -> str:
    """`['a, 'b]` -> `<'a, 'b>`; empty -> ``."""
    if len(items) == 0:
        return ""
    return "<" + ", ".join(items) + ">"


def impl_params(decl: Declaration, extra: str | None = None) -> list[str]:
    """Parameters for `impl<...>`, bounds included, extra marker first."""
    result: list[str] = []
    if extra is not None:
        result.append(extra)
    for p in decl.scope_params():
        if len(p.bounds) > 0:
            result.append(p.marker + ": " + " + ".join(p.bounds))
        else:
            result.append(p.marker)
    return result


def type_args(decl: Declaration, replacement: str | None = None) -> list[str]:
    """Arguments for `Name<...>`, each marker optionally replaced."""
    result: list[str] = []
    for p in decl.scope_params():
        result.append(p.marker if replacement is None else replacement)
    return result


def applied(decl: Declaration, replacement: str | None = None) -> str:
    """`Name<'a, 'b>` or, with a replacement, `Name<'r, 'r>`."""
    return decl.name + angle(type_args(decl, replacement))


def outlives(decl: Declaration, marker: str) -> list[str]:
    """`'a: 'r` predicates so marker cannot outlive any declared lifetime."""
    return [p.marker + ": " + marker for p in decl.scope_params()]
