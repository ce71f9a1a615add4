"""Runtime model of the widen/reborrow contracts.

Python values standing in for the Rust types the generated impls operate
on, plus an evaluator for the generated-code tree. Used to check that a
generated impl does what the contract promises without a Rust toolchain:

    rt = Runtime()
    rt.derive(decl)
    wide = rt.widen(Instance("Example", None, {"buf": Cow.borrowed("Elm")}))
    assert wide.fields["buf"].is_owned()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .backend import build_impls
from .backend import reborrow as reborrow_gen
from .backend import widen as widen_gen
from .backend.code import (
    Binding,
    Constructor,
    Deref,
    Expr,
    ImplBlock,
    MatchCtor,
    MethodCall,
    SelfField,
    StructCtor,
)
from .ir import Declaration
from .options import REBORROW, WIDEN, Options


# ============================================================
# Diagnostics
# ============================================================


class ContractError(Exception):
    """A value has no impl for a contract, or does not fit the impl."""


# ============================================================
# Values
# ============================================================


@dataclass(eq=False)
class _Storage:
    text: str


class Cow:
    """Dual-mode text buffer: borrowed (shares storage) or owned.

    Equality compares content only, so a borrowed and an owned buffer with
    the same text are equal.
    """

    def __init__(self, storage: _Storage, owned: bool):
        self._storage = storage
        self._owned = owned

    @classmethod
    def borrowed(cls, text: str) -> Cow:
        return cls(_Storage(text), False)

    @classmethod
    def owned(cls, text: str) -> Cow:
        return cls(_Storage(text), True)

    @property
    def content(self) -> str:
        return self._storage.text

    def is_borrowed(self) -> bool:
        return not self._owned

    def is_owned(self) -> bool:
        return self._owned

    def shares_storage(self, other: Cow) -> bool:
        return self._storage is other._storage

    def into_owned(self) -> Cow:
        """An owned buffer with a private copy of the content."""
        return Cow(_Storage(self._storage.text), True)

    def borrow(self) -> Cow:
        """A borrowed view of this buffer's storage."""
        return Cow(self._storage, False)

    def to_mut(self) -> Cow:
        """Make this buffer owned in place, cloning borrowed storage first."""
        if not self._owned:
            self._storage = _Storage(self._storage.text)
            self._owned = True
        return self

    def push_str(self, text: str) -> None:
        self.to_mut()
        self._storage.text += text

    def __iadd__(self, text: str) -> Cow:
        self.push_str(text)
        return self

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Cow):
            return self.content == other.content
        if isinstance(other, str):
            return self.content == other
        return NotImplemented

    # Content changes under push_str, so a Cow cannot be a dict key.
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        mode = "Owned" if self._owned else "Borrowed"
        return f"Cow::{mode}({self.content!r})"


@dataclass
class Ok:
    value: object


@dataclass
class Err:
    value: object


@dataclass
class Instance:
    """A value of a derived declaration.

    variant is None for records. fields is keyed by field name, or by the
    field's index as text for positional fields.
    """

    type_name: str
    variant: str | None
    fields: dict[str, object] = field(default_factory=dict)


_SCALARS = (bool, int, float, str, bytes)
_TUPLE_ARITIES = range(2, 10)


# ============================================================
# Runtime
# ============================================================


class Runtime:
    """Impl registry plus the built-in contract impls."""

    def __init__(self) -> None:
        self.impls: dict[tuple[str, str], ImplBlock] = {}
        self._methods: dict[str, Callable[[object], object]] = {
            widen_gen.METHOD: self.widen,
            reborrow_gen.METHOD: self.reborrow,
        }

    def register(self, impl: ImplBlock) -> None:
        self.impls[(impl.decl_name, impl.contract)] = impl

    def derive(
        self,
        decl: Declaration,
        traits: tuple[str, ...] | None = None,
        options: Options | None = None,
    ) -> list[ImplBlock]:
        """Validate decl, generate the requested impls and register them."""
        impls = build_impls(decl, traits, options)
        for impl in impls:
            self.register(impl)
        return impls

    # ── contracts ────────────────────────────────────────────

    def widen(self, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, Cow):
            return value.into_owned()
        if isinstance(value, _SCALARS):
            return value
        if isinstance(value, list):
            return [self.widen(v) for v in value]
        if isinstance(value, tuple):
            if len(value) not in _TUPLE_ARITIES:
                raise ContractError(f"no widen impl for a tuple of arity {len(value)}")
            return tuple(self.widen(v) for v in value)
        if isinstance(value, Ok):
            return Ok(self.widen(value.value))
        if isinstance(value, Err):
            return Err(self.widen(value.value))
        if isinstance(value, Instance):
            return self._invoke(WIDEN, value)
        raise ContractError("no widen impl for " + type(value).__name__)

    def reborrow(self, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, Cow):
            return value.borrow()
        if isinstance(value, _SCALARS):
            return value
        if isinstance(value, Instance):
            return self._invoke(REBORROW, value)
        raise ContractError("no reborrow impl for " + type(value).__name__)

    # ── evaluation ───────────────────────────────────────────

    def _invoke(self, contract: str, value: Instance) -> Instance:
        impl = self.impls.get((value.type_name, contract))
        if impl is None:
            raise ContractError(f"no {contract} impl for '{value.type_name}'")
        return self._construct(impl, impl.body, value)

    def _construct(self, impl: ImplBlock, body: Constructor, value: Instance) -> Instance:
        if isinstance(body, StructCtor):
            if value.variant is not None:
                raise ContractError(f"'{impl.decl_name}' is a struct, got variant '{value.variant}'")
            return self._build(impl, body, None, value, {})
        if isinstance(body, MatchCtor):
            for arm in body.arms:
                if arm.pattern.variant != value.variant:
                    continue
                env: dict[str, object] = {}
                for i, b in enumerate(arm.pattern.bindings):
                    key = b.field_name if b.field_name is not None else str(i)
                    env[b.binding] = _field(value, key)
                return self._build(impl, arm.body, arm.pattern.variant, value, env)
            raise ContractError(f"'{impl.decl_name}' has no variant '{value.variant}'")
        raise ContractError("cannot evaluate " + type(body).__name__)

    def _build(
        self,
        impl: ImplBlock,
        ctor: StructCtor,
        variant: str | None,
        value: Instance,
        env: dict[str, object],
    ) -> Instance:
        fields: dict[str, object] = {}
        for i, init in enumerate(ctor.inits):
            key = init.name if init.name is not None else str(i)
            fields[key] = self._eval(init.value, value, env)
        return Instance(impl.decl_name, variant, fields)

    def _eval(self, expr: Expr, value: Instance, env: dict[str, object]) -> object:
        if isinstance(expr, SelfField):
            return _field(value, expr.key)
        if isinstance(expr, Binding):
            if expr.name not in env:
                raise ContractError("unbound name '" + expr.name + "'")
            return env[expr.name]
        if isinstance(expr, MethodCall):
            method = self._methods.get(expr.method)
            if method is None:
                raise ContractError("unknown method '" + expr.method + "'")
            return method(self._eval(expr.recv, value, env))
        if isinstance(expr, Deref):
            return self._eval(expr.expr, value, env)
        raise ContractError("cannot evaluate " + type(expr).__name__)


def _field(value: Instance, key: str) -> object:
    if key not in value.fields:
        raise ContractError(f"'{value.type_name}' value has no field '{key}'")
    return value.fields[key]
