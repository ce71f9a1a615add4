"""Golden-output tests for the generated Rust impls.

Test cases live in 05_codegen/*.tests files. The input section is Rust
source (pragmas allowed); each declaration's #[derive(...)] picks the impls.
The expected section is either a snippet that must appear in the output,
compared line by line with surrounding whitespace ignored, or
`error: <message>` for a declaration that must be rejected.
"""

from pathlib import Path

import pytest

from scopegen import BoundedScopeParameter, GenerationError, Options, generate

CODEGEN_DIR = Path(__file__).parent / "05_codegen"


def parse_codegen_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            result.append((test_name, "\n".join(input_lines), "\n".join(expected_lines)))
        else:
            i += 1
    return result


def discover_codegen_tests() -> list[tuple[str, str, str]]:
    results = []
    for test_file in sorted(CODEGEN_DIR.glob("*.tests")):
        for name, source, expected in parse_codegen_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, expected))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize test_codegen over all .tests files."""
    if "codegen_input" in metafunc.fixturenames:
        params = [
            pytest.param(source, expected, id=test_id)
            for test_id, source, expected in discover_codegen_tests()
        ]
        metafunc.parametrize("codegen_input,codegen_expected", params)


def test_codegen(codegen_input: str, codegen_expected: str):
    """Verify generated impls contain the expected code."""
    expected = codegen_expected.strip()
    if expected.startswith("error:"):
        want = expected[6:].strip()
        with pytest.raises(GenerationError) as info:
            generate(codegen_input)
        assert want in str(info.value)
        return
    output = generate(codegen_input)
    if not contains_normalized(output, expected):
        pytest.fail(
            f"Expected not found in output:\n--- expected ---\n{expected}\n--- got ---\n{output}"
        )


def contains_normalized(haystack: str, needle: str) -> bool:
    """Check if needle appears in haystack, normalizing line-by-line whitespace."""
    needle_lines = [line.strip() for line in needle.strip().split("\n") if line.strip()]
    haystack_lines = [line.strip() for line in haystack.split("\n") if line.strip()]
    if not needle_lines:
        return True
    for i in range(len(haystack_lines)):
        if haystack_lines[i] == needle_lines[0]:
            match = True
            for j in range(1, len(needle_lines)):
                if (
                    i + j >= len(haystack_lines)
                    or haystack_lines[i + j] != needle_lines[j]
                ):
                    match = False
                    break
            if match:
                return True
    return False


def test_no_derive_attribute_generates_nothing():
    assert generate("struct Plain<'a> {\n    text: &'a str,\n}\n") == ""


def test_output_ends_with_newline():
    out = generate("#[derive(IntoStatic)]\nstruct S<'a> {\n    t: &'a str,\n}\n")
    assert out.endswith("}\n")
    assert not out.endswith("\n\n")


def test_impls_follow_source_order():
    source = (
        "#[derive(ToBorrowed, IntoStatic)]\n"
        "struct First<'a> { a: &'a str }\n"
        "#[derive(IntoStatic)]\n"
        "struct Second<'a> { b: &'a str }\n"
    )
    out = generate(source)
    widen_first = out.index("IntoStatic for First")
    reborrow_first = out.index("ToBorrowed for &'ref_ First")
    widen_second = out.index("IntoStatic for Second")
    assert widen_first < reborrow_first < widen_second
    assert "ToBorrowed for &'ref_ Second" not in out


WHERE_BOUNDED = (
    "#[derive(IntoStatic)]\n"
    "struct S<'a, 'b> where 'b: 'a { x: &'a str, y: &'b str }\n"
)


def test_where_bounds_follow_explicit_policy():
    out = generate(WHERE_BOUNDED, Options(strict=False))
    assert "impl<'a, 'b: 'a> lifetime::IntoStatic for S<'a, 'b> {" in out
    with pytest.raises(BoundedScopeParameter) as info:
        generate(WHERE_BOUNDED, Options(strict=True))
    assert info.value.marker == "'b"
