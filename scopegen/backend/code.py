"""Generated-code tree.

The builder and the generators produce these nodes; `rust.py` renders them
as Rust text and `runtime.py` evaluates them against Python values. Nothing
here knows which trait is being implemented.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..ir import FieldStyle


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for per-field init expressions."""


@dataclass
class SelfField(Expr):
    """`self.name` or `self.0`. key is the field name or its index as text."""

    key: str


@dataclass
class Binding(Expr):
    """A name bound by a match arm pattern."""

    name: str


@dataclass
class MethodCall(Expr):
    """`recv.method()`."""

    recv: Expr
    method: str


@dataclass
class Deref(Expr):
    """`*expr`: copy out of a reference."""

    expr: Expr


# ============================================================
# CONSTRUCTORS
# ============================================================


@dataclass
class FieldInit:
    """One constructor argument. name is None for positional fields."""

    name: str | None
    value: Expr


@dataclass
class Constructor:
    """Base for what the shape builder produces."""


@dataclass
class StructCtor(Constructor):
    """`Path { a: .. }` or `Path(..)`."""

    path: str
    style: FieldStyle
    inits: list[FieldInit]


@dataclass
class PatternBinding:
    """A field in a variant pattern. field_name is None for positional fields."""

    field_name: str | None
    binding: str


@dataclass
class VariantPattern:
    """`Path { a, b }` or `Path(x0, x1)`."""

    path: str
    variant: str
    style: FieldStyle
    bindings: list[PatternBinding]


@dataclass
class MatchArm:
    pattern: VariantPattern
    body: StructCtor


@dataclass
class MatchCtor(Constructor):
    """`match self { arms }`, one arm per variant in declaration order."""

    arms: list[MatchArm]


# ============================================================
# IMPL BLOCKS
# ============================================================


@dataclass
class ImplBlock:
    """A complete trait impl with one associated type and one method.

    Invariants:
    - self_type is the full implementing type, including any `&'r`
    - assoc_type is also the method's return type
    - trait_name is brought into scope inside the method via `use`
    """

    decl_name: str
    contract: str
    generics: list[str]
    trait_path: str
    self_type: str
    assoc_name: str
    assoc_type: str
    method: str
    body: Constructor
    where: list[str] = field(default_factory=list)
