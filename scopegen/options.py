"""Generation options.

Resolved from three layers, later ones winning: defaults, source pragmas
(`// pragma legacy`, `// pragma crate NAME`), explicit arguments (CLI flags).
"""

from __future__ import annotations

from dataclasses import dataclass

from .ir import SourceFile
from .middleend.scope import PERMISSIVE, STRICT, ScopePolicy

WIDEN = "widen"
REBORROW = "reborrow"
CONTRACTS: tuple[str, ...] = (WIDEN, REBORROW)

# `#[derive(...)]` names that request each contract.
DERIVE_NAMES: dict[str, str] = {
    "IntoStatic": WIDEN,
    "ToBorrowed": REBORROW,
}


@dataclass(frozen=True)
class Options:
    """strict selects the scope policy; crate prefixes the contract traits."""

    strict: bool = True
    crate: str = "lifetime"
    traits: tuple[str, ...] | None = None

    def policy(self) -> ScopePolicy:
        if self.strict:
            return STRICT
        return PERMISSIVE


def resolve_options(
    source: SourceFile | None = None,
    strict: bool | None = None,
    crate: str | None = None,
    traits: tuple[str, ...] | None = None,
) -> Options:
    """Merge defaults, pragmas from source, and explicit overrides."""
    opts = Options()
    resolved_strict = opts.strict
    resolved_crate = opts.crate
    if source is not None:
        if source.strict is not None:
            resolved_strict = source.strict
        if source.crate is not None:
            resolved_crate = source.crate
    if strict is not None:
        resolved_strict = strict
    if crate is not None:
        resolved_crate = crate
    if traits is not None:
        for t in traits:
            if t not in CONTRACTS:
                raise ValueError("unknown contract '" + t + "'")
    return Options(resolved_strict, resolved_crate, traits)
