"""Code generation: shape traversal, generators, and Rust rendering."""

from ..ir import Declaration
from ..middleend.validate import validate
from ..options import CONTRACTS, REBORROW, WIDEN, Options

from .code import ImplBlock
from .reborrow import reborrow_impl
from .rust import RustBackend, emit_rust
from .shape import FieldStrategy, build
from .widen import widen_impl


def build_impls(
    decl: Declaration,
    traits: tuple[str, ...] | None = None,
    options: Options | None = None,
) -> list[ImplBlock]:
    """Validate decl once and build one impl per requested contract, in order."""
    if options is None:
        options = Options()
    if traits is None:
        traits = CONTRACTS
    for contract in traits:
        if contract not in CONTRACTS:
            raise ValueError("unknown contract '" + contract + "'")
    validate(decl, options.policy())
    impls: list[ImplBlock] = []
    for contract in traits:
        if contract == WIDEN:
            impls.append(widen_impl(decl, options))
        elif contract == REBORROW:
            impls.append(reborrow_impl(decl, options))
    return impls
