"""Declaration parser - recursive descent, one method per grammar production.

Accepts the item subset the generators care about: outer attributes,
visibility, and `struct` / `enum` / `union` items with their generics.
Everything else is a parse error.
"""

from __future__ import annotations

from ..ir import (
    ArrayType,
    AssocArg,
    AssocBound,
    Attribute,
    Bound,
    ConstArg,
    ConstParam,
    Declaration,
    Field,
    FnPtrType,
    GenericArg,
    ImplTraitType,
    InferType,
    LifetimeArg,
    LifetimeBound,
    MacroType,
    NeverType,
    Param,
    ParenType,
    PathSegment,
    PathType,
    Pos,
    PtrType,
    Record,
    RefType,
    ScopeParam,
    SliceType,
    SourceFile,
    TaggedUnion,
    TraitBound,
    TraitObjectType,
    TupleType,
    TypeArg,
    TypeExpr,
    TypeParam,
    UnionBody,
    Variant,
)
from .tokens import (
    TK_CHAR,
    TK_EOF,
    TK_IDENT,
    TK_INT,
    TK_LIFETIME,
    TK_OP,
    TK_STRING,
    Token,
    tokenize,
)

ITEM_KEYWORDS: set[str] = {"struct", "enum", "union"}

# Identifiers that may start a path segment even though they are keywords.
PATH_KEYWORDS: set[str] = {"crate", "self", "super", "Self"}

# Keywords that can never be a field name, variant name, or type name.
RESERVED: set[str] = {
    "as",
    "break",
    "const",
    "continue",
    "dyn",
    "else",
    "enum",
    "extern",
    "false",
    "fn",
    "for",
    "if",
    "impl",
    "in",
    "let",
    "loop",
    "match",
    "mod",
    "move",
    "mut",
    "pub",
    "ref",
    "return",
    "static",
    "struct",
    "trait",
    "true",
    "type",
    "unsafe",
    "use",
    "where",
    "while",
}

OPEN_CLOSE: dict[str, str] = {"(": ")", "[": "]", "{": "}"}


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Parser:
    """Recursive descent parser for struct/enum/union items."""

    def __init__(self, tokens: list[Token], source: str):
        self.tokens: list[Token] = tokens
        self.source: str = source
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.value == value and tok.type in (TK_OP, TK_IDENT)

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_ident(self) -> bool:
        return self.current().type == TK_IDENT

    def expect(self, value: str) -> Token:
        tok = self.current()
        if not self.at(value):
            raise self.error("expected '" + value + "', got " + self._describe(tok))
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT or tok.value in RESERVED:
            raise self.error("expected identifier, got " + self._describe(tok))
        return self.advance()

    def expect_lifetime(self) -> Token:
        tok = self.current()
        if tok.type != TK_LIFETIME:
            raise self.error("expected lifetime, got " + self._describe(tok))
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _describe(self, tok: Token) -> str:
        if tok.type == TK_EOF:
            return "end of input"
        return "'" + tok.value + "'"

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    def _text(self, start: Token, end: Token) -> str:
        """Source text from the start of one token to the end of another."""
        return self.source[start.start : end.end]

    def _skip_group(self) -> Token:
        """Consume a balanced (), [] or {} group. Returns its closing token."""
        open_tok = self.current()
        if open_tok.value not in OPEN_CLOSE or open_tok.type != TK_OP:
            raise self.error("expected delimited group, got " + self._describe(open_tok))
        stack: list[str] = []
        while True:
            tok = self.advance()
            if tok.type == TK_EOF:
                raise ParseError("unclosed '" + open_tok.value + "'", open_tok.line, open_tok.col)
            if tok.type != TK_OP:
                continue
            if tok.value in OPEN_CLOSE:
                stack.append(OPEN_CLOSE[tok.value])
            elif tok.value in (")", "]", "}"):
                if tok.value != stack[-1]:
                    raise ParseError("mismatched '" + tok.value + "'", tok.line, tok.col)
                stack.pop()
                if len(stack) == 0:
                    return tok

    # ── Top Level ────────────────────────────────────────────

    def parse_file(self) -> SourceFile:
        decls: list[Declaration] = []
        while not self.at_type(TK_EOF):
            decls.append(self.parse_item())
        return SourceFile(decls)

    def parse_item(self) -> Declaration:
        attrs = self.parse_outer_attrs()
        self.parse_visibility()
        pos = self._pos()
        tok = self.current()
        if tok.type != TK_IDENT or tok.value not in ITEM_KEYWORDS:
            raise self.error("expected declaration (struct, enum, union), got " + self._describe(tok))
        kind = self.advance().value
        name = self.expect_ident().value
        params = self.parse_generic_params()
        self.parse_where_clause(params)
        if kind == "struct":
            body = self.parse_struct_body(params)
        elif kind == "enum":
            body = self.parse_enum_body()
        else:
            body = UnionBody(self.parse_named_fields())
        return Declaration(pos, kind, name, params, body, attrs)

    def parse_outer_attrs(self) -> list[Attribute]:
        attrs: list[Attribute] = []
        while self.at("#"):
            pos = self._pos()
            self.advance()
            if self.at("!"):
                raise self.error("inner attributes are not allowed here")
            self.expect("[")
            path_parts: list[str] = []
            while not self.at("]") and not self.at("(") and not self.at("="):
                if self.at_type(TK_EOF):
                    raise self.error("unterminated attribute")
                path_parts.append(self.advance().value)
            args = ""
            if self.at("("):
                open_tok = self.current()
                close_tok = self._skip_group()
                args = self.source[open_tok.end : close_tok.start].strip()
            elif self.at("="):
                self.advance()
                first = self.current()
                last = first
                while not self.at("]"):
                    if self.at_type(TK_EOF):
                        raise self.error("unterminated attribute")
                    last = self.advance()
                args = self._text(first, last).strip()
            self.expect("]")
            attrs.append(Attribute(pos, "".join(path_parts), args))
        return attrs

    def parse_visibility(self) -> None:
        if self.at("crate") and not self.peek(1).value == "::":
            self.advance()
            return
        if not self.at("pub"):
            return
        self.advance()
        if self.at("("):
            self._skip_group()

    # ── Generics ─────────────────────────────────────────────

    def parse_generic_params(self) -> list[Param]:
        params: list[Param] = []
        if not self.at("<"):
            return params
        self.advance()
        while not self.at(">"):
            self.parse_outer_attrs()
            params.append(self.parse_generic_param())
            if self.at(","):
                self.advance()
            elif not self.at(">"):
                raise self.error("expected ',' or '>' in generic parameters, got " + self._describe(self.current()))
        self.expect(">")
        return params

    def parse_generic_param(self) -> Param:
        pos = self._pos()
        if self.at_type(TK_LIFETIME):
            marker = self.advance().value
            bounds: list[str] = []
            if self.at(":"):
                self.advance()
                while self.at_type(TK_LIFETIME):
                    bounds.append(self.advance().value)
                    if not self.at("+"):
                        break
                    self.advance()
            return ScopeParam(pos, marker, bounds)
        if self.at("const"):
            self.advance()
            name = self.expect_ident().value
            self.expect(":")
            typ = self.parse_type()
            default = None
            if self.at("="):
                self.advance()
                default = self.parse_const_arg_text()
            return ConstParam(pos, name, typ, default)
        name = self.expect_ident().value
        type_bounds: list[Bound] = []
        if self.at(":"):
            self.advance()
            type_bounds = self.parse_bounds()
        default_type = None
        if self.at("="):
            self.advance()
            default_type = self.parse_type()
        return TypeParam(pos, name, type_bounds, default_type)

    # ── Where Clauses ────────────────────────────────────────

    def parse_where_clause(self, params: list[Param]) -> None:
        """Fold `where` predicates into the parameters they constrain.

        `'b: 'a` extends the bounds of `'b`; `T: Bound` extends the bounds
        of type parameter `T`. Predicates on any other type are rejected.
        """
        if not self.at("where"):
            return
        self.advance()
        scopes = {p.marker: p for p in params if isinstance(p, ScopeParam)}
        types = {p.name: p for p in params if isinstance(p, TypeParam)}
        while not self.at("{") and not self.at(";") and not self.at_type(TK_EOF):
            tok = self.current()
            if self.at_type(TK_LIFETIME):
                marker = self.advance().value
                if marker not in scopes:
                    raise ParseError("use of undeclared lifetime '" + marker + "'", tok.line, tok.col)
                self.expect(":")
                while self.at_type(TK_LIFETIME):
                    scopes[marker].bounds.append(self.advance().value)
                    if not self.at("+"):
                        break
                    self.advance()
            else:
                typ = self.parse_type_no_bounds()
                name = None
                if isinstance(typ, PathType) and typ.qself is None and len(typ.segments) == 1:
                    if len(typ.segments[0].args) == 0:
                        name = typ.segments[0].name
                if name not in types:
                    raise ParseError(
                        "where predicates are only supported on declared parameters",
                        tok.line,
                        tok.col,
                    )
                self.expect(":")
                types[name].bounds.extend(self.parse_bounds())
            if self.at(","):
                self.advance()
            elif not self.at("{") and not self.at(";"):
                raise self.error("expected ',' in where clause, got " + self._describe(self.current()))

    # ── Bodies ───────────────────────────────────────────────

    def parse_struct_body(self, params: list[Param]) -> Record:
        if self.at(";"):
            self.advance()
            return Record("unit", [])
        if self.at("{"):
            return Record("named", self.parse_named_fields())
        if self.at("("):
            fields = self.parse_tuple_fields()
            self.parse_where_clause(params)
            self.expect(";")
            return Record("positional", fields)
        raise self.error("expected struct body, got " + self._describe(self.current()))

    def parse_enum_body(self) -> TaggedUnion:
        self.expect("{")
        variants: list[Variant] = []
        while not self.at("}"):
            self.parse_outer_attrs()
            self.parse_visibility()
            pos = self._pos()
            name = self.expect_ident().value
            if self.at("{"):
                variant = Variant(pos, name, "named", self.parse_named_fields())
            elif self.at("("):
                variant = Variant(pos, name, "positional", self.parse_tuple_fields())
            else:
                variant = Variant(pos, name, "unit", [])
            if self.at("="):
                self.advance()
                self.parse_const_arg_text()
            variants.append(variant)
            if self.at(","):
                self.advance()
            elif not self.at("}"):
                raise self.error("expected ',' or '}' after variant, got " + self._describe(self.current()))
        self.expect("}")
        return TaggedUnion(variants)

    def parse_named_fields(self) -> list[Field]:
        self.expect("{")
        fields: list[Field] = []
        seen: set[str] = set()
        while not self.at("}"):
            self.parse_outer_attrs()
            self.parse_visibility()
            pos = self._pos()
            name = self.expect_ident().value
            if name in seen:
                raise ParseError("field '" + name + "' is already declared", pos.line, pos.col)
            seen.add(name)
            self.expect(":")
            typ = self.parse_type()
            fields.append(Field(pos, len(fields), name, typ))
            if self.at(","):
                self.advance()
            elif not self.at("}"):
                raise self.error("expected ',' or '}' after field, got " + self._describe(self.current()))
        self.expect("}")
        return fields

    def parse_tuple_fields(self) -> list[Field]:
        self.expect("(")
        fields: list[Field] = []
        while not self.at(")"):
            self.parse_outer_attrs()
            self.parse_visibility()
            pos = self._pos()
            typ = self.parse_type()
            fields.append(Field(pos, len(fields), None, typ))
            if self.at(","):
                self.advance()
            elif not self.at(")"):
                raise self.error("expected ',' or ')' after field, got " + self._describe(self.current()))
        self.expect(")")
        return fields

    # ── Types ────────────────────────────────────────────────

    def parse_type(self) -> TypeExpr:
        typ = self.parse_type_no_bounds()
        if self.at("+") and isinstance(typ, PathType) and typ.qself is None:
            bounds: list[Bound] = [TraitBound(typ)]
            while self.at("+"):
                self.advance()
                bounds.append(self.parse_bound())
            return TraitObjectType(tuple(bounds), dyn=False)
        return typ

    def parse_type_no_bounds(self) -> TypeExpr:
        tok = self.current()
        if self.at("&"):
            self.advance()
            marker = None
            if self.at_type(TK_LIFETIME):
                marker = self.advance().value
            mutable = False
            if self.at("mut"):
                self.advance()
                mutable = True
            return RefType(marker, mutable, self.parse_type_no_bounds())
        if self.at("*"):
            self.advance()
            if self.at("mut"):
                self.advance()
                return PtrType(True, self.parse_type_no_bounds())
            self.expect("const")
            return PtrType(False, self.parse_type_no_bounds())
        if self.at("("):
            return self.parse_paren_or_tuple()
        if self.at("["):
            self.advance()
            element = self.parse_type()
            if self.at(";"):
                self.advance()
                first = self.current()
                depth = 0
                last = first
                while depth > 0 or not self.at("]"):
                    if self.at_type(TK_EOF):
                        raise self.error("unterminated array type")
                    if self.current().type == TK_OP and self.current().value in OPEN_CLOSE:
                        depth += 1
                    elif self.current().type == TK_OP and self.current().value in (")", "]", "}"):
                        depth -= 1
                    last = self.advance()
                if last is first and self.at("]") and first.value == "]":
                    raise self.error("expected array length")
                self.expect("]")
                return ArrayType(element, self._text(first, last))
            self.expect("]")
            return SliceType(element)
        if self.at("!"):
            self.advance()
            return NeverType()
        if self.at("_"):
            self.advance()
            return InferType()
        if self.at("dyn"):
            self.advance()
            return TraitObjectType(tuple(self.parse_bounds()))
        if self.at("impl"):
            self.advance()
            return ImplTraitType(tuple(self.parse_bounds()))
        if self.at("for"):
            markers = self.parse_for_markers()
            if self.at("fn") or self.at("unsafe") or self.at("extern"):
                return self.parse_fn_ptr(markers)
            path = self.parse_path()
            bounds: list[Bound] = [TraitBound(path, False, markers)]
            while self.at("+"):
                self.advance()
                bounds.append(self.parse_bound())
            return TraitObjectType(tuple(bounds), dyn=False)
        if self.at("fn") or self.at("unsafe") or self.at("extern"):
            return self.parse_fn_ptr(())
        if self.at("<") or self.at("::") or (
            tok.type == TK_IDENT and (tok.value not in RESERVED or tok.value in PATH_KEYWORDS)
        ):
            path = self.parse_path()
            if self.at("!"):
                return self.parse_macro_type(tok)
            return path
        raise self.error("expected type, got " + self._describe(tok))

    def parse_paren_or_tuple(self) -> TypeExpr:
        self.expect("(")
        if self.at(")"):
            self.advance()
            return TupleType(())
        first = self.parse_type()
        if self.at(")"):
            self.advance()
            return ParenType(first)
        elements: list[TypeExpr] = [first]
        while self.at(","):
            self.advance()
            if self.at(")"):
                break
            elements.append(self.parse_type())
        self.expect(")")
        return TupleType(tuple(elements))

    def parse_fn_ptr(self, markers: tuple[str, ...]) -> FnPtrType:
        if self.at("unsafe"):
            self.advance()
        if self.at("extern"):
            self.advance()
            if self.at_type(TK_STRING):
                self.advance()
        self.expect("fn")
        self.expect("(")
        params: list[TypeExpr] = []
        while not self.at(")"):
            if self.at("..."):
                self.advance()
                continue
            # Named parameters: `fn(x: u8)`.
            if (
                (self.at_ident() or self.at("_"))
                and self.peek(1).value == ":"
                and self.peek(1).type == TK_OP
            ):
                self.advance()
                self.advance()
            params.append(self.parse_type())
            if self.at(","):
                self.advance()
            elif not self.at(")"):
                raise self.error("expected ',' or ')' in fn pointer, got " + self._describe(self.current()))
        self.expect(")")
        ret = None
        if self.at("->"):
            self.advance()
            ret = self.parse_type_no_bounds()
        return FnPtrType(tuple(params), ret, markers)

    def parse_macro_type(self, start: Token) -> MacroType:
        self.expect("!")
        close = self._skip_group()
        return MacroType(self._text(start, close))

    def parse_for_markers(self) -> tuple[str, ...]:
        self.expect("for")
        self.expect("<")
        markers: list[str] = []
        while not self.at(">"):
            markers.append(self.expect_lifetime().value)
            if self.at(","):
                self.advance()
            elif not self.at(">"):
                raise self.error("expected ',' or '>' in for<>, got " + self._describe(self.current()))
        self.expect(">")
        return tuple(markers)

    # ── Paths ────────────────────────────────────────────────

    def parse_path(self) -> PathType:
        qself: TypeExpr | None = None
        segments: list[PathSegment] = []
        leading_colon = False
        if self.at("<"):
            self.advance()
            qself = self.parse_type()
            if self.at("as"):
                self.advance()
                trait = self.parse_path()
                segments.extend(trait.segments)
            self.expect(">")
            self.expect("::")
        elif self.at("::"):
            self.advance()
            leading_colon = True
        segments.append(self.parse_path_segment())
        while self.at("::") and (self.peek(1).type == TK_IDENT or self.peek(1).value == "<"):
            if self.peek(1).value == "<":
                # Turbofish on the previous segment: `Vec::<u8>`.
                self.advance()
                last = segments.pop()
                segments.append(PathSegment(last.name, tuple(self.parse_generic_args())))
                continue
            self.advance()
            segments.append(self.parse_path_segment())
        return PathType(tuple(segments), qself, leading_colon)

    def parse_path_segment(self) -> PathSegment:
        tok = self.current()
        if tok.type != TK_IDENT or (tok.value in RESERVED and tok.value not in PATH_KEYWORDS):
            raise self.error("expected path segment, got " + self._describe(tok))
        name = self.advance().value
        if self.at("<"):
            return PathSegment(name, tuple(self.parse_generic_args()))
        if self.at("(") and name in ("Fn", "FnMut", "FnOnce"):
            return PathSegment(name, tuple(self.parse_fn_sugar_args()))
        return PathSegment(name)

    def parse_generic_args(self) -> list[GenericArg]:
        self.expect("<")
        args: list[GenericArg] = []
        while not self.at(">"):
            args.append(self.parse_generic_arg())
            if self.at(","):
                self.advance()
            elif not self.at(">"):
                raise self.error("expected ',' or '>' in generic arguments, got " + self._describe(self.current()))
        self.expect(">")
        return args

    def parse_generic_arg(self) -> GenericArg:
        tok = self.current()
        if tok.type == TK_LIFETIME:
            self.advance()
            return LifetimeArg(tok.value)
        if tok.type in (TK_INT, TK_STRING, TK_CHAR) or self.at("{") or self.at("-"):
            return ConstArg(self.parse_const_arg_text())
        if tok.type == TK_IDENT and tok.value in ("true", "false"):
            self.advance()
            return ConstArg(tok.value)
        if tok.type == TK_IDENT and self.peek(1).type == TK_OP:
            nxt = self.peek(1).value
            if nxt == "=":
                self.advance()
                self.advance()
                return AssocArg(tok.value, self.parse_type())
            if nxt == ":":
                self.advance()
                self.advance()
                return AssocBound(tok.value, tuple(self.parse_bounds()))
        return TypeArg(self.parse_type())

    def parse_fn_sugar_args(self) -> list[GenericArg]:
        """`Fn(A, B) -> R` as `Fn<(A, B), Output = R>`."""
        self.expect("(")
        inputs: list[TypeExpr] = []
        while not self.at(")"):
            inputs.append(self.parse_type())
            if self.at(","):
                self.advance()
            elif not self.at(")"):
                raise self.error("expected ',' or ')', got " + self._describe(self.current()))
        self.expect(")")
        args: list[GenericArg] = [TypeArg(TupleType(tuple(inputs)))]
        if self.at("->"):
            self.advance()
            args.append(AssocArg("Output", self.parse_type_no_bounds()))
        return args

    def parse_const_arg_text(self) -> str:
        first = self.current()
        if self.at("{"):
            last = self._skip_group()
            return self._text(first, last)
        if self.at("-"):
            self.advance()
        tok = self.current()
        if tok.type in (TK_INT, TK_STRING, TK_CHAR, TK_IDENT):
            self.advance()
            return self._text(first, tok)
        raise self.error("expected constant, got " + self._describe(tok))

    # ── Bounds ───────────────────────────────────────────────

    def parse_bounds(self) -> list[Bound]:
        bounds: list[Bound] = [self.parse_bound()]
        while self.at("+"):
            self.advance()
            if self.current().value in (",", ">", "=", ")", "{", ";"):
                break
            bounds.append(self.parse_bound())
        return bounds

    def parse_bound(self) -> Bound:
        if self.at_type(TK_LIFETIME):
            return LifetimeBound(self.advance().value)
        if self.at("("):
            self.advance()
            bound = self.parse_bound()
            self.expect(")")
            return bound
        maybe = False
        if self.at("?"):
            self.advance()
            maybe = True
        markers: tuple[str, ...] = ()
        if self.at("for"):
            markers = self.parse_for_markers()
        return TraitBound(self.parse_path(), maybe, markers)


# ── Pragmas ──────────────────────────────────────────────────


def extract_pragmas(source: str) -> tuple[bool | None, str | None]:
    """Scan leading comment lines for pragmas. Returns (strict, crate)."""
    strict: bool | None = None
    crate: str | None = None
    for line in source.split("\n"):
        stripped = line.strip()
        if stripped == "":
            continue
        if not stripped.startswith("//"):
            break
        body = stripped[2:].strip()
        if body == "pragma legacy":
            strict = False
        elif body == "pragma strict":
            strict = True
        elif body.startswith("pragma crate "):
            crate = body[len("pragma crate ") :].strip()
    return strict, crate


def parse(source: str) -> SourceFile:
    """Parse item source into a SourceFile of declarations."""
    strict, crate = extract_pragmas(source)
    tokens = tokenize(source)
    result = Parser(tokens, source).parse_file()
    result.strict = strict
    result.crate = crate
    return result


def parse_declaration(source: str) -> Declaration:
    """Parse source holding exactly one declaration."""
    result = parse(source)
    if len(result.decls) != 1:
        raise ParseError(
            "expected exactly one declaration, found " + str(len(result.decls)), 1, 1
        )
    return result.decls[0]
