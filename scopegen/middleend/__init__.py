"""Analysis passes over parsed declarations (read-only)."""

from ..ir import Declaration

from .scope import (
    PERMISSIVE,
    STRICT,
    FieldScope,
    ScopePolicy,
    analyze_fields,
    collect_markers,
    depends_on_scope,
)
from .validate import validate


def analyze(decl: Declaration, policy: ScopePolicy = STRICT) -> list[FieldScope]:
    """Validate decl, then classify every field as scope-dependent or not."""
    validate(decl, policy)
    return analyze_fields(decl, policy)
