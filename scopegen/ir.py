"""scopegen IR - the declaration model.

A parsed `struct`, `enum` or `union` item, normalized so the analyzer and the
generators never look at tokens. Nodes are created once by the parser and are
never mutated afterwards.

Architecture:
    Source -> Frontend (tokens, parse) -> [IR] -> Middleend (validate, scope) -> Backend -> Rust
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

STATIC: str = "'static"
"""The fixed, unbounded scope marker."""


# ============================================================
# POSITION
# ============================================================


@dataclass(unsafe_hash=True)
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


def pos_unknown() -> Pos:
    return Pos(0, 0)


# ============================================================
# TYPE EXPRESSIONS
#
# Structural trees over which the scope analyzer recurses. All
# frozen-by-convention and hashable.
# ============================================================


@dataclass(unsafe_hash=True)
class TypeExpr:
    """Base for all type expressions. Abstract."""


@dataclass(unsafe_hash=True)
class GenericArg:
    """Base for the arguments between `<` and `>` of a path segment."""


@dataclass(unsafe_hash=True)
class LifetimeArg(GenericArg):
    """`'a` used as a generic argument."""

    marker: str


@dataclass(unsafe_hash=True)
class TypeArg(GenericArg):
    """A type used as a generic argument: `Vec<u8>`."""

    typ: TypeExpr


@dataclass(unsafe_hash=True)
class ConstArg(GenericArg):
    """A const generic argument, kept as source text: `[u8; N]`, `Buf<4>`."""

    text: str


@dataclass(unsafe_hash=True)
class AssocArg(GenericArg):
    """Associated type binding: `Iterator<Item = T>`."""

    name: str
    typ: TypeExpr


@dataclass(unsafe_hash=True)
class AssocBound(GenericArg):
    """Associated type bound: `Iterator<Item: Debug + 'a>`."""

    name: str
    bounds: tuple[Bound, ...]


@dataclass(unsafe_hash=True)
class PathSegment:
    """One `::`-separated segment of a path, with optional generic arguments.

    `args` is empty for a bare identifier. Parenthesized sugar
    (`Fn(&str) -> u8`) is normalized to type arguments with the return
    type as an `AssocArg` named `Output`.
    """

    name: str
    args: tuple[GenericArg, ...] = ()


@dataclass(unsafe_hash=True)
class PathType(TypeExpr):
    """`std::borrow::Cow<'a, str>`, `usize`, `<T as Trait>::Assoc`.

    Invariants:
    - segments is non-empty
    - qself is set only for qualified paths
    """

    segments: tuple[PathSegment, ...]
    qself: TypeExpr | None = None
    leading_colon: bool = False


@dataclass(unsafe_hash=True)
class RefType(TypeExpr):
    """`&'a T` / `&'a mut T`. marker is None when elided."""

    marker: str | None
    mutable: bool
    inner: TypeExpr


@dataclass(unsafe_hash=True)
class PtrType(TypeExpr):
    """`*const T` / `*mut T`."""

    mutable: bool
    inner: TypeExpr


@dataclass(unsafe_hash=True)
class TupleType(TypeExpr):
    """`(A, B)`; `()` when elements is empty."""

    elements: tuple[TypeExpr, ...]


@dataclass(unsafe_hash=True)
class ArrayType(TypeExpr):
    """`[T; N]` with the length kept as source text."""

    element: TypeExpr
    length: str


@dataclass(unsafe_hash=True)
class SliceType(TypeExpr):
    """`[T]`."""

    element: TypeExpr


@dataclass(unsafe_hash=True)
class Bound:
    """Base for bounds in `dyn`/`impl` types and generic parameters."""


@dataclass(unsafe_hash=True)
class LifetimeBound(Bound):
    """`'a` used as a bound."""

    marker: str


@dataclass(unsafe_hash=True)
class TraitBound(Bound):
    """`Trait<..>`, `?Sized`, `for<'x> Fn(&'x str)`."""

    path: PathType
    maybe: bool = False
    for_markers: tuple[str, ...] = ()


@dataclass(unsafe_hash=True)
class TraitObjectType(TypeExpr):
    """`dyn Trait + 'a` (dyn is False for bare 2015-style trait objects)."""

    bounds: tuple[Bound, ...]
    dyn: bool = True


@dataclass(unsafe_hash=True)
class ImplTraitType(TypeExpr):
    """`impl Trait + 'a`."""

    bounds: tuple[Bound, ...]


@dataclass(unsafe_hash=True)
class FnPtrType(TypeExpr):
    """`fn(A, B) -> R`, possibly `unsafe`/`extern "C"`/`for<'x>` qualified."""

    params: tuple[TypeExpr, ...]
    ret: TypeExpr | None
    for_markers: tuple[str, ...] = ()


@dataclass(unsafe_hash=True)
class NeverType(TypeExpr):
    """`!`."""


@dataclass(unsafe_hash=True)
class InferType(TypeExpr):
    """`_`."""


@dataclass(unsafe_hash=True)
class MacroType(TypeExpr):
    """`mac!(...)` in type position, kept as source text."""

    text: str


@dataclass(unsafe_hash=True)
class ParenType(TypeExpr):
    """`(T)` - a single parenthesized type, not a tuple."""

    inner: TypeExpr


# ============================================================
# PARAMETERS
# ============================================================


@dataclass
class Param:
    """Base for generic parameters of a declaration."""

    pos: Pos


@dataclass
class ScopeParam(Param):
    """Lifetime parameter `'a` or `'b: 'a + 'c`."""

    marker: str
    bounds: list[str] = field(default_factory=list)


@dataclass
class TypeParam(Param):
    """Type parameter `T: Bound = Default`."""

    name: str
    bounds: list[Bound] = field(default_factory=list)
    default: TypeExpr | None = None


@dataclass
class ConstParam(Param):
    """Const parameter `const N: usize = 4`."""

    name: str
    typ: TypeExpr | None = None
    default: str | None = None


# ============================================================
# BODIES
# ============================================================

FieldStyle = Literal["named", "positional", "unit"]
"""How a record or variant spells its fields.

| Style      | Rust                | Constructor       |
|------------|---------------------|-------------------|
| named      | `S { a: T }`        | `S { a: .. }`     |
| positional | `S(T)`              | `S(..)`           |
| unit       | `S;` / `S {}` / `V` | (unsupported)     |
"""


@dataclass
class Field:
    """A field of a record or variant.

    Invariants:
    - index is the 0-based declaration position
    - name is None exactly when the owner's style is positional
    """

    pos: Pos
    index: int
    name: str | None
    typ: TypeExpr


@dataclass
class Record:
    """Body of a `struct`."""

    style: FieldStyle
    fields: list[Field]


@dataclass
class Variant:
    """One arm of an `enum`."""

    pos: Pos
    name: str
    style: FieldStyle
    fields: list[Field]


@dataclass
class TaggedUnion:
    """Body of an `enum`; variants keep declaration order."""

    variants: list[Variant]


@dataclass
class UnionBody:
    """Body of a `union`. Parsed so generation can reject it by name."""

    fields: list[Field]


Body = Record | TaggedUnion | UnionBody


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Attribute:
    """An outer attribute, `#[path(args)]`, with args kept as source text."""

    pos: Pos
    path: str
    args: str


@dataclass
class Declaration:
    """A parsed item.

    kind is the introducing keyword ("struct", "enum", "union") and
    determines the body class.
    """

    pos: Pos
    kind: str
    name: str
    params: list[Param]
    body: Body
    attrs: list[Attribute] = field(default_factory=list)

    def scope_params(self) -> list[ScopeParam]:
        return [p for p in self.params if isinstance(p, ScopeParam)]

    def derives(self) -> list[str]:
        """Names listed in `#[derive(...)]` attributes, last path segment only."""
        names: list[str] = []
        for attr in self.attrs:
            if attr.path != "derive":
                continue
            for part in attr.args.split(","):
                part = part.strip()
                if part == "":
                    continue
                names.append(part.split("::")[-1].strip())
        return names


@dataclass
class SourceFile:
    """All declarations of one input, in source order."""

    decls: list[Declaration]
    strict: bool | None = None
    crate: str | None = None


# ============================================================
# HELPERS
# ============================================================


def all_fields(decl: Declaration) -> list[Field]:
    """Fields of every variant (or the record/union), in declaration order."""
    body = decl.body
    if isinstance(body, TaggedUnion):
        result: list[Field] = []
        for v in body.variants:
            result.extend(v.fields)
        return result
    return list(body.fields)
