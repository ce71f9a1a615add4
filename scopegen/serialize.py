"""Serialization of the declaration model to JSON-compatible dicts."""

from __future__ import annotations

from .ir import (
    ArrayType,
    AssocArg,
    AssocBound,
    Bound,
    ConstArg,
    ConstParam,
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
    Param,
    ParenType,
    PathType,
    Pos,
    PtrType,
    Record,
    RefType,
    ScopeParam,
    SliceType,
    SourceFile,
    TaggedUnion,
    TraitBound,
    TraitObjectType,
    TupleType,
    TypeArg,
    TypeExpr,
    TypeParam,
    UnionBody,
)
from .middleend.scope import FieldScope


# ── Types as Rust text ──────────────────────────────────────


def format_type(typ: TypeExpr | None) -> str:
    """Render a type expression back to Rust syntax."""
    if typ is None:
        return ""
    if isinstance(typ, PathType):
        return _format_path(typ)
    if isinstance(typ, RefType):
        out = "&"
        if typ.marker is not None:
            out += typ.marker + " "
        if typ.mutable:
            out += "mut "
        return out + format_type(typ.inner)
    if isinstance(typ, PtrType):
        return ("*mut " if typ.mutable else "*const ") + format_type(typ.inner)
    if isinstance(typ, TupleType):
        if len(typ.elements) == 1:
            return "(" + format_type(typ.elements[0]) + ",)"
        return "(" + ", ".join(format_type(e) for e in typ.elements) + ")"
    if isinstance(typ, ArrayType):
        return "[" + format_type(typ.element) + "; " + typ.length + "]"
    if isinstance(typ, SliceType):
        return "[" + format_type(typ.element) + "]"
    if isinstance(typ, TraitObjectType):
        prefix = "dyn " if typ.dyn else ""
        return prefix + " + ".join(_format_bound(b) for b in typ.bounds)
    if isinstance(typ, ImplTraitType):
        return "impl " + " + ".join(_format_bound(b) for b in typ.bounds)
    if isinstance(typ, FnPtrType):
        out = ""
        if len(typ.for_markers) > 0:
            out = "for<" + ", ".join(typ.for_markers) + "> "
        out += "fn(" + ", ".join(format_type(p) for p in typ.params) + ")"
        if typ.ret is not None:
            out += " -> " + format_type(typ.ret)
        return out
    if isinstance(typ, NeverType):
        return "!"
    if isinstance(typ, InferType):
        return "_"
    if isinstance(typ, MacroType):
        return typ.text
    if isinstance(typ, ParenType):
        return "(" + format_type(typ.inner) + ")"
    raise TypeError("unhandled type " + type(typ).__name__)


def _format_path(path: PathType) -> str:
    parts: list[str] = []
    for seg in path.segments:
        if len(seg.args) == 0:
            parts.append(seg.name)
        else:
            parts.append(seg.name + "<" + ", ".join(_format_arg(a) for a in seg.args) + ">")
    text = "::".join(parts)
    if path.qself is not None:
        if len(path.segments) > 1:
            trait = "::".join(parts[:-1])
            return "<" + format_type(path.qself) + " as " + trait + ">::" + parts[-1]
        return "<" + format_type(path.qself) + ">::" + text
    if path.leading_colon:
        return "::" + text
    return text


def _format_arg(arg: GenericArg) -> str:
    if isinstance(arg, LifetimeArg):
        return arg.marker
    if isinstance(arg, TypeArg):
        return format_type(arg.typ)
    if isinstance(arg, ConstArg):
        return arg.text
    if isinstance(arg, AssocArg):
        return arg.name + " = " + format_type(arg.typ)
    if isinstance(arg, AssocBound):
        return arg.name + ": " + " + ".join(_format_bound(b) for b in arg.bounds)
    raise TypeError("unhandled generic argument " + type(arg).__name__)


def _format_bound(bound: Bound) -> str:
    if isinstance(bound, LifetimeBound):
        return bound.marker
    if isinstance(bound, TraitBound):
        out = ""
        if len(bound.for_markers) > 0:
            out = "for<" + ", ".join(bound.for_markers) + "> "
        if bound.maybe:
            out += "?"
        return out + _format_path(bound.path)
    raise TypeError("unhandled bound " + type(bound).__name__)


# ── Declarations as dicts ───────────────────────────────────


def _pos(pos: Pos) -> dict[str, object]:
    return {"line": pos.line, "col": pos.col}


def _param_to_dict(p: Param) -> dict[str, object]:
    if isinstance(p, ScopeParam):
        return {"_type": "ScopeParam", "marker": p.marker, "bounds": list(p.bounds), "pos": _pos(p.pos)}
    if isinstance(p, TypeParam):
        d: dict[str, object] = {
            "_type": "TypeParam",
            "name": p.name,
            "bounds": [_format_bound(b) for b in p.bounds],
            "pos": _pos(p.pos),
        }
        if p.default is not None:
            d["default"] = format_type(p.default)
        return d
    if isinstance(p, ConstParam):
        d = {"_type": "ConstParam", "name": p.name, "typ": format_type(p.typ), "pos": _pos(p.pos)}
        if p.default is not None:
            d["default"] = p.default
        return d
    raise TypeError("unhandled param " + type(p).__name__)


def _field_to_dict(f: Field) -> dict[str, object]:
    d: dict[str, object] = {"index": f.index, "typ": format_type(f.typ), "pos": _pos(f.pos)}
    if f.name is not None:
        d["name"] = f.name
    return d


def declaration_to_dict(decl: Declaration) -> dict[str, object]:
    d: dict[str, object] = {
        "_type": "Declaration",
        "kind": decl.kind,
        "name": decl.name,
        "params": [_param_to_dict(p) for p in decl.params],
        "pos": _pos(decl.pos),
    }
    derives = decl.derives()
    if len(derives) > 0:
        d["derives"] = derives
    body = decl.body
    if isinstance(body, Record):
        d["body"] = {
            "_type": "Record",
            "style": body.style,
            "fields": [_field_to_dict(f) for f in body.fields],
        }
    elif isinstance(body, TaggedUnion):
        d["body"] = {
            "_type": "TaggedUnion",
            "variants": [
                {
                    "name": v.name,
                    "style": v.style,
                    "fields": [_field_to_dict(f) for f in v.fields],
                }
                for v in body.variants
            ],
        }
    elif isinstance(body, UnionBody):
        d["body"] = {"_type": "UnionBody", "fields": [_field_to_dict(f) for f in body.fields]}
    return d


def source_to_dict(source: SourceFile) -> dict[str, object]:
    return {"decls": [declaration_to_dict(d) for d in source.decls]}


def analysis_to_dict(decl: Declaration, scopes: list[FieldScope]) -> dict[str, object]:
    fields: list[dict[str, object]] = []
    for s in scopes:
        entry: dict[str, object] = {
            "owner": s.owner,
            "index": s.field.index,
            "typ": format_type(s.field.typ),
            "depends_on_scope": s.dependent,
        }
        if s.field.name is not None:
            entry["name"] = s.field.name
        fields.append(entry)
    return {"name": decl.name, "fields": fields}
