"""Shape traversal - the field-constructor builder shared by both generators.

The builder owns everything about shape: named vs positional fields,
struct vs enum, one match arm per variant. The caller owns only what
happens to each field, passed in as a strategy:

    strategy(index, field, access) -> Expr

where access is the place the field's value is read from (`self.name`,
`self.0`, or the binding introduced by a match arm).
"""

from __future__ import annotations

from typing import Callable

from ..errors import EmptyShapeUnsupported, UnsupportedDeclarationKind
from ..ir import Declaration, Field, FieldStyle, Pos, Record, TaggedUnion, Variant
from .code import (
    Binding,
    Constructor,
    Expr,
    FieldInit,
    MatchArm,
    MatchCtor,
    PatternBinding,
    SelfField,
    StructCtor,
    VariantPattern,
)
from .util import NameAllocator

FieldStrategy = Callable[[int, Field, Expr], Expr]


def build(
    decl: Declaration,
    strategy: FieldStrategy,
    names: NameAllocator | None = None,
) -> Constructor:
    """Return the expression that rebuilds decl with every field run through strategy."""
    if names is None:
        names = NameAllocator.for_declaration(decl)
    body = decl.body
    if isinstance(body, Record):
        _check_fields(decl.name, body.style, body.fields, decl.pos)
        return _ctor(decl.name, body.style, body.fields, strategy, _self_access)
    if isinstance(body, TaggedUnion):
        if len(body.variants) == 0:
            raise EmptyShapeUnsupported(decl.name, decl.pos)
        for variant in body.variants:
            _check_fields(decl.name + "::" + variant.name, variant.style, variant.fields, variant.pos)
        arms: list[MatchArm] = []
        for variant in body.variants:
            arms.append(_variant_arm(decl.name, variant, strategy, names))
        return MatchCtor(arms)
    raise UnsupportedDeclarationKind(decl.name, decl.kind, decl.pos)


def _check_fields(shape: str, style: FieldStyle, fields: list[Field], pos: Pos) -> None:
    if style == "unit" or len(fields) == 0:
        raise EmptyShapeUnsupported(shape, pos)


def _self_access(f: Field) -> Expr:
    if f.name is not None:
        return SelfField(f.name)
    return SelfField(str(f.index))


def _ctor(
    path: str,
    style: FieldStyle,
    fields: list[Field],
    strategy: FieldStrategy,
    access: Callable[[Field], Expr],
) -> StructCtor:
    """Constructor for one field list, in declaration order."""
    inits: list[FieldInit] = []
    for f in fields:
        inits.append(FieldInit(f.name, strategy(f.index, f, access(f))))
    return StructCtor(path, style, inits)


def _variant_arm(
    enum_name: str,
    variant: Variant,
    strategy: FieldStrategy,
    names: NameAllocator,
) -> MatchArm:
    path = enum_name + "::" + variant.name
    bindings: list[PatternBinding] = []
    bound: dict[int, str] = {}
    for f in variant.fields:
        if f.name is not None:
            bound[f.index] = f.name
        else:
            bound[f.index] = names.positional(f.index)
        bindings.append(PatternBinding(f.name, bound[f.index]))
    pattern = VariantPattern(path, variant.name, variant.style, bindings)
    body = _ctor(path, variant.style, variant.fields, strategy, lambda f: Binding(bound[f.index]))
    return MatchArm(pattern, body)
