"""Shared utilities for the code generators."""

from __future__ import annotations

from ..ir import ConstParam, Declaration, PathSegment, TaggedUnion, TypeParam, all_fields
from ..middleend.scope import collect_markers

RUST_RESERVED = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "type",
    "union", "unsafe", "use", "where", "while", "abstract", "become", "box",
    "do", "final", "macro", "override", "priv", "try", "typeof", "unsized",
    "virtual", "yield",
})


class Emitter:
    """Base class for code emitters with indentation tracking."""

    def __init__(self, indent_str: str = "    ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

    def output(self) -> str:
        """Return the accumulated output as a string."""
        return "\n".join(self.lines)


class NameAllocator:
    """Hands out identifiers that cannot collide with anything the user wrote.

    One allocator serves one generated function body. Asking twice for the
    same key returns the same name, so every arm binds positional field 0 to
    the same identifier.
    """

    def __init__(self, reserved: set[str] | None = None) -> None:
        self.used: set[str] = set(RUST_RESERVED)
        if reserved is not None:
            self.used.update(reserved)
        self._assigned: dict[str, str] = {}

    def fresh(self, base: str) -> str:
        """Return base, or base with the smallest free numeric suffix."""
        sep = "" if base.endswith("_") else "_"
        name = base
        n = 1
        while name in self.used:
            name = base + sep + str(n)
            n += 1
        self.used.add(name)
        return name

    def named(self, key: str, base: str) -> str:
        if key not in self._assigned:
            self._assigned[key] = self.fresh(base)
        return self._assigned[key]

    def positional(self, index: int) -> str:
        """Binding for the positional field at index: x0, x1, ..."""
        return self.named("pos:" + str(index), "x" + str(index))

    def lifetime(self, base: str) -> str:
        """A lifetime marker not spelled anywhere in the declaration."""
        return self.named("lt:" + base, base)

    @classmethod
    def for_declaration(cls, decl: Declaration) -> NameAllocator:
        """Reserve every identifier and lifetime visible in decl."""
        reserved: set[str] = {decl.name}
        for f in all_fields(decl):
            if f.name is not None:
                reserved.add(f.name)
            _collect_idents(f.typ, reserved)
        if isinstance(decl.body, TaggedUnion):
            for v in decl.body.variants:
                reserved.add(v.name)
        for p in decl.params:
            if isinstance(p, (TypeParam, ConstParam)):
                reserved.add(p.name)
        reserved.update(collect_markers(decl))
        return cls(reserved)


def _collect_idents(node: object, out: set[str]) -> None:
    """Every path segment name inside a type tree."""
    if isinstance(node, PathSegment):
        out.add(node.name)
        for arg in node.args:
            _collect_idents(arg, out)
        return
    if isinstance(node, (list, tuple)):
        for item in node:
            _collect_idents(item, out)
        return
    fields = getattr(node, "__dataclass_fields__", None)
    if fields is None:
        return
    for name in fields:
        _collect_idents(getattr(node, name), out)


def join_path(crate: str, name: str) -> str:
    """`lifetime` + `IntoStatic` -> `lifetime::IntoStatic`; empty crate -> bare name."""
    if crate == "":
        return name
    return crate + "::" + name
