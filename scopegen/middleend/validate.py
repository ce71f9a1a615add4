"""Generic parameter validation.

Runs once per declaration, before any generator. Only lifetime parameters
survive; the generators assume that and never re-check.
"""

from __future__ import annotations

from ..errors import BoundedScopeParameter, UnsupportedParameterKind
from ..ir import ConstParam, Declaration, ScopeParam, TypeParam
from .scope import STRICT, ScopePolicy


def validate(decl: Declaration, policy: ScopePolicy = STRICT) -> None:
    """Raise on the first parameter the generators cannot handle."""
    for param in decl.params:
        if isinstance(param, TypeParam):
            raise UnsupportedParameterKind(param.name, "generic type", param.pos)
        if isinstance(param, ConstParam):
            raise UnsupportedParameterKind(param.name, "const generic", param.pos)
        if isinstance(param, ScopeParam):
            if len(param.bounds) > 0 and not policy.allow_bounded_params:
                raise BoundedScopeParameter(param.marker, param.bounds, param.pos)
            continue
        raise UnsupportedParameterKind(type(param).__name__, "unknown", param.pos)
