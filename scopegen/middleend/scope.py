"""Scope-dependence analysis.

Decides, per field type, whether a value of that type can hold data tied to
a non-`'static` lifetime. The walk is a plain structural recursion over the
type tree; anything it cannot prove independent counts as dependent, since
a missed dependency produces an impl that does not compile while a spurious
one only costs an extra trait call.

Two policies exist:

| Policy     | `&'static T`   | `&'a T` | bounded `'b: 'a` params |
|------------|----------------|---------|-------------------------|
| strict     | independent    | dep.    | rejected                |
| permissive | dependent      | dep.    | accepted                |

Strict is the default; permissive reproduces the older behavior. Under strict
only a reference's own marker decides, so `&'static Location<'a>` is
independent even though it names `'a` inside; the older walker visited every
lifetime in the type and called it dependent.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..ir import (
    STATIC,
    ArrayType,
    AssocArg,
    AssocBound,
    Bound,
    ConstArg,
    Declaration,
    Field,
    FnPtrType,
    GenericArg,
    ImplTraitType,
    InferType,
    LifetimeArg,
    LifetimeBound,
    MacroType,
    NeverType,
    ParenType,
    PathType,
    PtrType,
    RefType,
    ScopeParam,
    SliceType,
    TaggedUnion,
    TraitBound,
    TraitObjectType,
    TupleType,
    TypeArg,
    TypeExpr,
    TypeParam,
    all_fields,
)


@dataclass(frozen=True)
class ScopePolicy:
    """How conservative the analysis and validation are."""

    name: str
    static_refs_independent: bool
    allow_bounded_params: bool


STRICT = ScopePolicy("strict", static_refs_independent=True, allow_bounded_params=False)
PERMISSIVE = ScopePolicy("permissive", static_refs_independent=False, allow_bounded_params=True)


def _is_scoped(marker: str | None) -> bool:
    """True for any lifetime other than 'static; elided lifetimes count."""
    return marker != STATIC


def depends_on_scope(typ: TypeExpr, policy: ScopePolicy = STRICT) -> bool:
    """Return True if typ may carry data bound to a non-'static lifetime."""
    if isinstance(typ, RefType):
        if not policy.static_refs_independent:
            return True
        return _is_scoped(typ.marker)
    if isinstance(typ, TupleType):
        return any(depends_on_scope(e, policy) for e in typ.elements)
    if isinstance(typ, (ArrayType, SliceType)):
        return depends_on_scope(typ.element, policy)
    if isinstance(typ, (PtrType, ParenType)):
        return depends_on_scope(typ.inner, policy)
    if isinstance(typ, PathType):
        return _path_depends(typ, policy)
    if isinstance(typ, (TraitObjectType, ImplTraitType)):
        return any(_bound_depends(b, policy) for b in typ.bounds)
    if isinstance(typ, (FnPtrType, NeverType)):
        return False
    if isinstance(typ, (InferType, MacroType)):
        return True
    return True


def _path_depends(path: PathType, policy: ScopePolicy) -> bool:
    if path.qself is not None:
        return True
    for segment in path.segments:
        for arg in segment.args:
            if _arg_depends(arg, policy):
                return True
    return False


def _arg_depends(arg: GenericArg, policy: ScopePolicy) -> bool:
    if isinstance(arg, LifetimeArg):
        return _is_scoped(arg.marker)
    if isinstance(arg, (TypeArg, AssocArg)):
        return depends_on_scope(arg.typ, policy)
    if isinstance(arg, AssocBound):
        return any(_bound_depends(b, policy) for b in arg.bounds)
    if isinstance(arg, ConstArg):
        return False
    return True


def _bound_depends(bound: Bound, policy: ScopePolicy) -> bool:
    if isinstance(bound, LifetimeBound):
        return _is_scoped(bound.marker)
    if isinstance(bound, TraitBound):
        # Higher-ranked markers are bound inside the trait, not by the shape.
        for segment in bound.path.segments:
            for arg in segment.args:
                if isinstance(arg, LifetimeArg) and arg.marker in bound.for_markers:
                    continue
                if _arg_depends(arg, policy):
                    return True
        return False
    return True


# ── Declaration-level helpers ───────────────────────────────


@dataclass
class FieldScope:
    """Analysis result for one field, for reporting."""

    owner: str
    field: Field
    dependent: bool


def analyze_fields(decl: Declaration, policy: ScopePolicy = STRICT) -> list[FieldScope]:
    """Classify every field of decl, in declaration order."""
    results: list[FieldScope] = []
    if isinstance(decl.body, TaggedUnion):
        for variant in decl.body.variants:
            owner = decl.name + "::" + variant.name
            for f in variant.fields:
                results.append(FieldScope(owner, f, depends_on_scope(f.typ, policy)))
        return results
    for f in all_fields(decl):
        results.append(FieldScope(decl.name, f, depends_on_scope(f.typ, policy)))
    return results


def collect_markers(decl: Declaration) -> set[str]:
    """Every lifetime spelled anywhere in decl: params, bounds, and field types."""
    markers: set[str] = set()
    for p in decl.params:
        if isinstance(p, ScopeParam):
            markers.add(p.marker)
            markers.update(p.bounds)
        elif isinstance(p, TypeParam):
            for b in p.bounds:
                _collect_bound(b, markers)
    for f in all_fields(decl):
        _collect_type(f.typ, markers)
    return markers


def _collect_type(typ: TypeExpr | None, markers: set[str]) -> None:
    if typ is None:
        return
    if isinstance(typ, RefType):
        if typ.marker is not None:
            markers.add(typ.marker)
        _collect_type(typ.inner, markers)
    elif isinstance(typ, TupleType):
        for e in typ.elements:
            _collect_type(e, markers)
    elif isinstance(typ, (ArrayType, SliceType)):
        _collect_type(typ.element, markers)
    elif isinstance(typ, (PtrType, ParenType)):
        _collect_type(typ.inner, markers)
    elif isinstance(typ, PathType):
        _collect_type(typ.qself, markers)
        for segment in typ.segments:
            for arg in segment.args:
                _collect_arg(arg, markers)
    elif isinstance(typ, (TraitObjectType, ImplTraitType)):
        for b in typ.bounds:
            _collect_bound(b, markers)
    elif isinstance(typ, FnPtrType):
        markers.update(typ.for_markers)
        for p in typ.params:
            _collect_type(p, markers)
        _collect_type(typ.ret, markers)


def _collect_arg(arg: GenericArg, markers: set[str]) -> None:
    if isinstance(arg, LifetimeArg):
        markers.add(arg.marker)
    elif isinstance(arg, (TypeArg, AssocArg)):
        _collect_type(arg.typ, markers)
    elif isinstance(arg, AssocBound):
        for b in arg.bounds:
            _collect_bound(b, markers)


def _collect_bound(bound: Bound, markers: set[str]) -> None:
    if isinstance(bound, LifetimeBound):
        markers.add(bound.marker)
    elif isinstance(bound, TraitBound):
        markers.update(bound.for_markers)
        _collect_type(bound.path, markers)
