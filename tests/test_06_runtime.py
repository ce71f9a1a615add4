"""Behavioral tests: generated impls evaluated by the runtime model."""

import pytest

from scopegen import (
    ContractError,
    Cow,
    EmptyShapeUnsupported,
    Err,
    Instance,
    Ok,
    Options,
    Runtime,
    UnsupportedParameterKind,
    parse_declaration,
)

EXAMPLE_STRUCT = """
struct Example<'a> {
    primitive: u8,
    cow: Cow<'a, str>,
}
"""

EXAMPLE_ENUM = """
enum Example<'a> {
    Primitive0 { number: u8 },
    Primitive1(u8),
    Cow0 { cow: Cow<'a, str> },
    Cow1(Cow<'a, str>),
}
"""


@pytest.fixture
def rt() -> Runtime:
    return Runtime()


def derive(rt: Runtime, source: str, options: Options | None = None) -> None:
    rt.derive(parse_declaration(source), None, options)


# ── Cow ──────────────────────────────────────────────────────


def test_cow_modes():
    borrowed = Cow.borrowed("Elm")
    owned = Cow.owned("Elm")
    assert borrowed.is_borrowed() and not borrowed.is_owned()
    assert owned.is_owned()
    assert borrowed == owned
    assert borrowed == "Elm"


def test_cow_is_unhashable():
    with pytest.raises(TypeError):
        hash(Cow.borrowed("Elm"))
    with pytest.raises(TypeError):
        {Cow.owned("Elm")}


def test_into_owned_copies_storage():
    borrowed = Cow.borrowed("Elm")
    owned = borrowed.into_owned()
    assert owned.is_owned()
    assert not owned.shares_storage(borrowed)


def test_push_on_borrowed_clones_first():
    source = Cow.owned("Elm")
    view = source.borrow()
    assert view.shares_storage(source)
    view += " tree"
    assert view.is_owned()
    assert view == "Elm tree"
    assert source == "Elm"


def test_to_mut_on_owned_keeps_storage():
    owned = Cow.owned("Oak")
    same = owned.to_mut()
    assert same is owned
    owned.push_str("s")
    assert owned.content == "Oaks"


# ── Built-in impls ───────────────────────────────────────────


def test_widen_option(rt):
    assert rt.widen(None) is None
    out = rt.widen(Cow.borrowed("Elm"))
    assert out == "Elm" and out.is_owned()


def test_widen_result(rt):
    ok = rt.widen(Ok(Cow.borrowed("Elm")))
    assert isinstance(ok, Ok) and ok.value.is_owned()
    err = rt.widen(Err(Cow.borrowed("Elm")))
    assert isinstance(err, Err) and err.value.is_owned()


def test_widen_list_and_tuples(rt):
    out = rt.widen([Cow.borrowed("a"), Cow.borrowed("b")])
    assert out == ["a", "b"]
    assert all(c.is_owned() for c in out)
    pair = rt.widen((1, Cow.borrowed("x")))
    assert pair[0] == 1 and pair[1].is_owned()
    nine = rt.widen(tuple(range(9)))
    assert nine == tuple(range(9))


def test_widen_tuple_arity_limits(rt):
    with pytest.raises(ContractError):
        rt.widen(tuple(range(10)))
    with pytest.raises(ContractError):
        rt.widen((1,))


def test_reborrow_builtins(rt):
    owned = Cow.owned("Elm")
    view = rt.reborrow(owned)
    assert view.is_borrowed() and view.shares_storage(owned)
    assert rt.reborrow(None) is None
    assert rt.reborrow(7) == 7
    with pytest.raises(ContractError):
        rt.reborrow([owned])


def test_missing_impl(rt):
    with pytest.raises(ContractError):
        rt.widen(Instance("Unknown", None, {}))


# ── Derived records ──────────────────────────────────────────


def test_record_widen_then_reborrow(rt):
    derive(rt, EXAMPLE_STRUCT)
    value = Instance("Example", None, {"primitive": 5, "cow": Cow.borrowed("Elm")})

    wide = rt.widen(value)
    assert wide.fields["primitive"] == 5
    assert wide.fields["cow"] == "Elm"
    assert wide.fields["cow"].is_owned()

    narrow = rt.reborrow(wide)
    assert narrow.fields["primitive"] == 5
    assert narrow.fields["cow"] == "Elm"
    assert narrow.fields["cow"].is_borrowed()

    narrow.fields["cow"] += " tree"
    assert narrow.fields["cow"] == "Elm tree"
    assert wide.fields["cow"] == "Elm"


def test_record_field_order_preserved(rt):
    derive(rt, EXAMPLE_STRUCT)
    value = Instance("Example", None, {"primitive": 1, "cow": Cow.owned("x")})
    assert list(rt.widen(value).fields) == ["primitive", "cow"]
    assert list(rt.reborrow(value).fields) == ["primitive", "cow"]


def test_independent_record_is_identity(rt):
    derive(rt, "struct Plain { count: u32, label: String, flag: bool }")
    value = Instance("Plain", None, {"count": 3, "label": "x", "flag": True})
    assert rt.widen(value) == value
    assert rt.reborrow(value) == value


def test_tuple_struct(rt):
    derive(rt, "struct Example<'a>(u8, Cow<'a, str>);")
    value = Instance("Example", None, {"0": 9, "1": Cow.borrowed("Elm")})
    wide = rt.widen(value)
    assert wide.fields["0"] == 9
    assert wide.fields["1"].is_owned()


def test_widen_is_idempotent_in_content(rt):
    derive(rt, EXAMPLE_STRUCT)
    value = Instance("Example", None, {"primitive": 2, "cow": Cow.borrowed("Elm")})
    once = rt.widen(value)
    twice = rt.widen(once)
    assert once == twice == value
    assert twice.fields["cow"].is_owned()


def test_nested_derived_types(rt):
    derive(rt, "struct Inner<'a> { text: Cow<'a, str> }")
    derive(rt, "struct Outer<'a> { inner: Inner<'a>, items: Vec<Cow<'a, str>> }")
    value = Instance(
        "Outer",
        None,
        {
            "inner": Instance("Inner", None, {"text": Cow.borrowed("a")}),
            "items": [Cow.borrowed("b")],
        },
    )
    wide = rt.widen(value)
    assert wide.fields["inner"].fields["text"].is_owned()
    assert wide.fields["items"][0].is_owned()


def test_two_lifetimes(rt):
    derive(rt, "struct Pair<'a, 'b> { left: Cow<'a, str>, right: Cow<'b, str> }")
    value = Instance("Pair", None, {"left": Cow.borrowed("l"), "right": Cow.borrowed("r")})
    wide = rt.widen(value)
    assert wide.fields["left"].is_owned() and wide.fields["right"].is_owned()
    narrow = rt.reborrow(wide)
    assert narrow.fields["left"].is_borrowed() and narrow.fields["right"].is_borrowed()
    impl = rt.impls[("Pair", "reborrow")]
    assert impl.generics == ["'ref_", "'a", "'b"]
    assert impl.assoc_type == "Pair<'ref_, 'ref_>"
    assert rt.impls[("Pair", "widen")].assoc_type == "Pair<'static, 'static>"


def test_static_reference_field_is_moved(rt):
    derive(rt, "struct Loc<'a> { file: &'static str, name: Cow<'a, str> }")
    value = Instance("Loc", None, {"file": "main.rs", "name": Cow.borrowed("n")})
    assert rt.widen(value).fields["file"] == "main.rs"


def test_record_rejects_variant_value(rt):
    derive(rt, EXAMPLE_STRUCT)
    with pytest.raises(ContractError):
        rt.widen(Instance("Example", "Cow1", {"0": Cow.borrowed("x")}))


# ── Derived enums ────────────────────────────────────────────


def test_enum_widen_preserves_variant(rt):
    derive(rt, EXAMPLE_ENUM)
    wide = rt.widen(Instance("Example", "Cow1", {"0": Cow.borrowed("Elm")}))
    assert wide.variant == "Cow1"
    assert wide.fields["0"] == "Elm"
    assert wide.fields["0"].is_owned()

    same = rt.widen(Instance("Example", "Primitive1", {"0": 5}))
    assert same == Instance("Example", "Primitive1", {"0": 5})


def test_enum_reborrow_every_variant(rt):
    derive(rt, EXAMPLE_ENUM)
    values = [
        Instance("Example", "Primitive0", {"number": 1}),
        Instance("Example", "Primitive1", {"0": 2}),
        Instance("Example", "Cow0", {"cow": Cow.owned("c")}),
        Instance("Example", "Cow1", {"0": Cow.owned("d")}),
    ]
    for value in values:
        out = rt.reborrow(value)
        assert out.variant == value.variant
        assert out == value
    assert rt.reborrow(values[2]).fields["cow"].is_borrowed()


def test_enum_unknown_variant(rt):
    derive(rt, EXAMPLE_ENUM)
    with pytest.raises(ContractError):
        rt.widen(Instance("Example", "Missing", {}))


def test_enum_missing_field(rt):
    derive(rt, EXAMPLE_ENUM)
    with pytest.raises(ContractError):
        rt.widen(Instance("Example", "Cow0", {}))


# ── Rejection ────────────────────────────────────────────────


def test_rejections_register_nothing(rt):
    with pytest.raises(UnsupportedParameterKind):
        derive(rt, "struct G<'a, T> { a: &'a T }")
    with pytest.raises(EmptyShapeUnsupported):
        derive(rt, "struct Empty {}")
    assert rt.impls == {}


def test_only_requested_contracts_registered(rt):
    rt.derive(parse_declaration(EXAMPLE_STRUCT), ("widen",))
    assert list(rt.impls) == [("Example", "widen")]
    with pytest.raises(ContractError):
        rt.reborrow(Instance("Example", None, {"primitive": 1, "cow": Cow.owned("x")}))
