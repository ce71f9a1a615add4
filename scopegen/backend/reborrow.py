"""Reborrow generator: emits `ToBorrowed` impls for `&'ref_ T`.

    impl<'ref_, 'a> lifetime::ToBorrowed for &'ref_ Example<'a>
    where
        'a: 'ref_,
    {
        type Borrowed = Example<'ref_>;

        fn to_borrowed(self) -> Example<'ref_> { .. }
    }

The caller's marker is allocated fresh, so it never shadows a lifetime the
declaration already uses. Dependent fields are reborrowed through a
reference; independent fields are copied out.
"""

from __future__ import annotations

from ..ir import Declaration, Field
from ..middleend.scope import depends_on_scope
from ..options import REBORROW, Options
from .code import Binding, Deref, Expr, ImplBlock, MethodCall
from .generics import applied, impl_params, outlives
from .shape import build
from .util import NameAllocator, join_path

TRAIT = "ToBorrowed"
ASSOC = "Borrowed"
METHOD = "to_borrowed"
CALLER_MARKER = "'ref_"


def reborrow_impl(decl: Declaration, options: Options | None = None) -> ImplBlock:
    """Build the ToBorrowed impl for an already validated declaration."""
    if options is None:
        options = Options()
    policy = options.policy()
    names = NameAllocator.for_declaration(decl)
    caller = names.lifetime(CALLER_MARKER)

    def strategy(index: int, field: Field, access: Expr) -> Expr:
        if depends_on_scope(field.typ, policy):
            return MethodCall(access, METHOD)
        # Match arms bind by reference; `self.f` is already a place.
        if isinstance(access, Binding):
            return Deref(access)
        return access

    body = build(decl, strategy, names)
    return ImplBlock(
        decl_name=decl.name,
        contract=REBORROW,
        generics=impl_params(decl, caller),
        trait_path=join_path(options.crate, TRAIT),
        self_type="&" + caller + " " + applied(decl),
        assoc_name=ASSOC,
        assoc_type=applied(decl, caller),
        method=METHOD,
        body=body,
        where=outlives(decl, caller),
    )
