"""scopegen - generates widen (IntoStatic) and reborrow (ToBorrowed) impls
for Rust struct and enum declarations."""

from __future__ import annotations

from .backend import build_impls, emit_rust
from .backend.code import ImplBlock
from .errors import (
    BoundedScopeParameter,
    EmptyShapeUnsupported,
    GenerationError,
    UnsupportedDeclarationKind,
    UnsupportedParameterKind,
)
from .frontend import ParseError, TokenizeError, parse, parse_declaration
from .ir import Declaration, SourceFile
from .options import CONTRACTS, DERIVE_NAMES, REBORROW, WIDEN, Options, resolve_options
from .runtime import ContractError, Cow, Err, Instance, Ok, Runtime


def generate_widen_impl(decl: Declaration, options: Options | None = None) -> str:
    """Rust source for decl's IntoStatic impl."""
    return derive(decl, (WIDEN,), options)


def generate_reborrow_impl(decl: Declaration, options: Options | None = None) -> str:
    """Rust source for decl's ToBorrowed impl."""
    return derive(decl, (REBORROW,), options)


def derive(
    decl: Declaration,
    traits: tuple[str, ...] | None = None,
    options: Options | None = None,
) -> str:
    """Rust source for every requested impl of decl. Validates once."""
    return emit_rust(build_impls(decl, traits, options))


def requested_traits(decl: Declaration, options: Options) -> tuple[str, ...]:
    """Contracts to derive for decl: options.traits, else its derive attribute."""
    if options.traits is not None:
        return options.traits
    found: list[str] = []
    for name in decl.derives():
        contract = DERIVE_NAMES.get(name)
        if contract is not None and contract not in found:
            found.append(contract)
    return tuple(c for c in CONTRACTS if c in found)


def derive_file(source: SourceFile, options: Options) -> list[ImplBlock]:
    """Impls for every declaration in source, in source order."""
    impls: list[ImplBlock] = []
    for decl in source.decls:
        traits = requested_traits(decl, options)
        if len(traits) == 0:
            continue
        impls.extend(build_impls(decl, traits, options))
    return impls


def generate(source: str, options: Options | None = None) -> str:
    """Parse source and emit the impls its declarations ask for.

    Without explicit options, pragmas in source pick the policy and crate.
    Returns an empty string when nothing is derived.
    """
    parsed = parse(source)
    if options is None:
        options = resolve_options(parsed)
    impls = derive_file(parsed, options)
    if len(impls) == 0:
        return ""
    return emit_rust(impls)


__all__ = [
    "BoundedScopeParameter",
    "ContractError",
    "Cow",
    "EmptyShapeUnsupported",
    "Err",
    "GenerationError",
    "Instance",
    "Ok",
    "Options",
    "ParseError",
    "Runtime",
    "TokenizeError",
    "UnsupportedDeclarationKind",
    "UnsupportedParameterKind",
    "derive",
    "derive_file",
    "generate",
    "generate_reborrow_impl",
    "generate_widen_impl",
    "parse",
    "parse_declaration",
    "requested_traits",
    "resolve_options",
]
