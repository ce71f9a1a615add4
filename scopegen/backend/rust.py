"""RustBackend: generated-code tree -> Rust source text.

Unhandled nodes raise NotImplementedError so gaps are obvious.
"""

from __future__ import annotations

from .code import (
    Binding,
    Constructor,
    Deref,
    Expr,
    ImplBlock,
    MatchCtor,
    MethodCall,
    SelfField,
    StructCtor,
    VariantPattern,
)
from .generics import angle
from .util import Emitter


class RustBackend(Emitter):
    """Emit Rust code for impl blocks."""

    def emit(self, impls: list[ImplBlock]) -> str:
        self.lines = []
        self.indent = 0
        first = True
        for impl in impls:
            if not first:
                self.line()
            first = False
            self._emit_impl(impl)
        return self.output() + "\n"

    # ── impl blocks ──────────────────────────────────────────

    def _emit_impl(self, impl: ImplBlock) -> None:
        header = "impl" + angle(impl.generics) + " " + impl.trait_path + " for " + impl.self_type
        if len(impl.where) > 0:
            self.line(header)
            self.line("where")
            self.indent += 1
            for pred in impl.where:
                self.line(pred + ",")
            self.indent -= 1
            self.line("{")
        else:
            self.line(header + " {")
        self.indent += 1
        self.line("type " + impl.assoc_name + " = " + impl.assoc_type + ";")
        self.line()
        self.line("fn " + impl.method + "(self) -> " + impl.assoc_type + " {")
        self.indent += 1
        self.line("use " + impl.trait_path + ";")
        self.line()
        self._emit_body(impl.body)
        self.indent -= 1
        self.line("}")
        self.indent -= 1
        self.line("}")

    def _emit_body(self, body: Constructor) -> None:
        if isinstance(body, StructCtor):
            if body.style == "named":
                self.line(body.path + " {")
                self.indent += 1
                for init in body.inits:
                    self.line(str(init.name) + ": " + self._expr(init.value) + ",")
                self.indent -= 1
                self.line("}")
            else:
                self.line(self._ctor(body))
            return
        if isinstance(body, MatchCtor):
            self.line("match self {")
            self.indent += 1
            for arm in body.arms:
                self.line(self._pattern(arm.pattern) + " => " + self._ctor(arm.body) + ",")
            self.indent -= 1
            self.line("}")
            return
        raise NotImplementedError("constructor " + type(body).__name__)

    # ── single-line forms ────────────────────────────────────

    def _ctor(self, ctor: StructCtor) -> str:
        if ctor.style == "named":
            parts = [str(i.name) + ": " + self._expr(i.value) for i in ctor.inits]
            return ctor.path + " { " + ", ".join(parts) + " }"
        parts = [self._expr(i.value) for i in ctor.inits]
        return ctor.path + "(" + ", ".join(parts) + ")"

    def _pattern(self, pattern: VariantPattern) -> str:
        if pattern.style == "named":
            parts: list[str] = []
            for b in pattern.bindings:
                if b.field_name == b.binding:
                    parts.append(b.binding)
                else:
                    parts.append(str(b.field_name) + ": " + b.binding)
            return pattern.path + " { " + ", ".join(parts) + " }"
        return pattern.path + "(" + ", ".join(b.binding for b in pattern.bindings) + ")"

    def _expr(self, expr: Expr) -> str:
        if isinstance(expr, SelfField):
            return "self." + expr.key
        if isinstance(expr, Binding):
            return expr.name
        if isinstance(expr, MethodCall):
            return self._expr(expr.recv) + "." + expr.method + "()"
        if isinstance(expr, Deref):
            return "*" + self._expr(expr.expr)
        raise NotImplementedError("expression " + type(expr).__name__)


def emit_rust(impls: list[ImplBlock]) -> str:
    return RustBackend().emit(impls)
