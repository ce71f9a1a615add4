"""Tests for the scope-dependence analyzer."""

import pytest

from scopegen.frontend import parse_declaration
from scopegen.ir import TypeExpr
from scopegen.middleend import PERMISSIVE, STRICT, analyze, analyze_fields, collect_markers, depends_on_scope


def field_type(text: str) -> TypeExpr:
    decl = parse_declaration("struct S<'a, 'b> { f: " + text + " }")
    return decl.body.fields[0].typ


# (type, strict, permissive)
CASES = [
    ("u8", False, False),
    ("String", False, False),
    ("Cow<'a, str>", True, True),
    ("Cow<'static, str>", False, False),
    ("&'a str", True, True),
    ("&str", True, True),
    ("&'static str", False, True),
    ("&'static Location<'static>", False, True),
    ("&'static Location<'a>", False, True),
    ("&'a mut u8", True, True),
    ("Option<Cow<'a, str>>", True, True),
    ("Option<Cow<'static, str>>", False, False),
    ("Vec<&'a str>", True, True),
    ("Vec<&'static str>", False, True),
    ("(u8, String)", False, False),
    ("(u8, &'b str)", True, True),
    ("()", False, False),
    ("[u8; 4]", False, False),
    ("[&'a str; 2]", True, True),
    ("*const u8", False, False),
    ("*const &'a u8", True, True),
    ("fn(&'a str) -> bool", False, False),
    ("for<'c> fn(&'c str) -> &'c str", False, False),
    ("Box<dyn Send>", False, False),
    ("Box<dyn Send + 'a>", True, True),
    ("Box<dyn Send + 'static>", False, False),
    ("Box<dyn Iterator<Item = &'a str>>", True, True),
    ("Box<dyn Iterator<Item = u8>>", False, False),
    ("<Vec<u8> as IntoIterator>::Item", True, True),
    ("my_type!(u8)", True, True),
    ("Buffer<16>", False, False),
    ("(u8)", False, False),
    ("PhantomData<&'a ()>", True, True),
]


@pytest.mark.parametrize("text,strict,permissive", CASES, ids=[c[0] for c in CASES])
def test_depends_on_scope(text: str, strict: bool, permissive: bool):
    typ = field_type(text)
    assert depends_on_scope(typ, STRICT) is strict
    assert depends_on_scope(typ, PERMISSIVE) is permissive


def test_default_policy_is_strict():
    assert depends_on_scope(field_type("&'static str")) is False


def test_analyze_fields_names_owners_in_order():
    decl = parse_declaration(
        "enum E<'a> { A { n: u8, s: &'a str }, B(Cow<'a, str>, u16) }"
    )
    scopes = analyze_fields(decl, STRICT)
    assert [(s.owner, s.field.index, s.dependent) for s in scopes] == [
        ("E::A", 0, False),
        ("E::A", 1, True),
        ("E::B", 0, True),
        ("E::B", 1, False),
    ]


def test_analyze_record_fields():
    decl = parse_declaration("struct R<'a> { n: u8, s: &'a str }")
    scopes = analyze(decl)
    assert [s.owner for s in scopes] == ["R", "R"]
    assert [s.field.name for s in scopes] == ["n", "s"]
    assert [s.dependent for s in scopes] == [False, True]


def test_collect_markers_sees_params_and_fields():
    decl = parse_declaration(
        "struct R<'a, 'b: 'a> { s: &'a str, f: for<'c> fn(&'c str), t: &'static str }"
    )
    assert collect_markers(decl) == {"'a", "'b", "'c", "'static"}
