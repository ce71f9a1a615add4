"""Generation errors.

Every failure aborts generation for the whole declaration; no partial impl
is ever emitted.
"""

from __future__ import annotations

from .ir import Pos


class GenerationError(Exception):
    """Base error for declarations the generators cannot handle."""

    kind: str = "GenerationError"

    def __init__(self, msg: str, pos: Pos | None = None):
        if pos is None or pos.line == 0:
            super().__init__(msg)
        else:
            super().__init__(f"{msg} at line {pos.line} col {pos.col}")
        self.msg = msg
        self.pos = pos


class UnsupportedParameterKind(GenerationError):
    """A type or const generic parameter."""

    kind = "UnsupportedParameterKind"

    def __init__(self, name: str, param_kind: str, pos: Pos | None = None):
        super().__init__(
            f"{param_kind} parameters are not supported, found '{name}'", pos
        )
        self.name = name
        self.param_kind = param_kind


class BoundedScopeParameter(GenerationError):
    """A lifetime parameter with bounds, rejected under the strict policy."""

    kind = "BoundedScopeParameter"

    def __init__(self, marker: str, bounds: list[str], pos: Pos | None = None):
        super().__init__(
            f"lifetime parameters with bounds are not supported, found '{marker}: "
            + " + ".join(bounds)
            + "'",
            pos,
        )
        self.marker = marker
        self.bounds = bounds


class EmptyShapeUnsupported(GenerationError):
    """A record or variant without fields, or an enum without variants."""

    kind = "EmptyShapeUnsupported"

    def __init__(self, shape: str, pos: Pos | None = None):
        super().__init__(f"'{shape}' has no fields; unit shapes are not supported", pos)
        self.shape = shape


class UnsupportedDeclarationKind(GenerationError):
    """Anything that is neither a struct nor an enum."""

    kind = "UnsupportedDeclarationKind"

    def __init__(self, name: str, decl_kind: str, pos: Pos | None = None):
        super().__init__(
            f"only structs and enums are supported, '{name}' is a {decl_kind}", pos
        )
        self.name = name
        self.decl_kind = decl_kind
