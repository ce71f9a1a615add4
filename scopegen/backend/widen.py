"""Widen generator: emits `IntoStatic` impls.

    impl<'a> lifetime::IntoStatic for Example<'a> {
        type Static = Example<'static>;

        fn into_static(self) -> Example<'static> { .. }
    }

Fields whose type depends on a lifetime are widened recursively; all other
fields are moved through untouched.
"""

from __future__ import annotations

from ..ir import STATIC, Declaration, Field
from ..middleend.scope import depends_on_scope
from ..options import WIDEN, Options
from .code import Expr, ImplBlock, MethodCall
from .generics import applied, impl_params
from .shape import build
from .util import NameAllocator, join_path

TRAIT = "IntoStatic"
ASSOC = "Static"
METHOD = "into_static"


def widen_impl(decl: Declaration, options: Options | None = None) -> ImplBlock:
    """Build the IntoStatic impl for an already validated declaration."""
    if options is None:
        options = Options()
    policy = options.policy()

    def strategy(index: int, field: Field, access: Expr) -> Expr:
        if depends_on_scope(field.typ, policy):
            return MethodCall(access, METHOD)
        return access

    body = build(decl, strategy, NameAllocator.for_declaration(decl))
    return ImplBlock(
        decl_name=decl.name,
        contract=WIDEN,
        generics=impl_params(decl),
        trait_path=join_path(options.crate, TRAIT),
        self_type=applied(decl),
        assoc_name=ASSOC,
        assoc_type=applied(decl, STATIC),
        method=METHOD,
        body=body,
    )
