"""Declaration tokenizer - lexes Rust item source into a flat token list."""

from __future__ import annotations


# Token type constants
TK_IDENT = "IDENT"
TK_LIFETIME = "LIFETIME"
TK_INT = "INT"
TK_STRING = "STRING"
TK_CHAR = "CHAR"
TK_OP = "OP"
TK_EOF = "EOF"

# Multi-character punctuation, longest first for greedy matching.
# `>>`, `<<` and `&&` are deliberately absent: they close/open nested
# generics and stack references in type position.
MULTI_OPS: list[str] = [
    "..=",
    "...",
    "::",
    "->",
    "=>",
    "..",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "|",
    "^",
    "~",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ";",
    ":",
    ".",
    "?",
    "@",
    "#",
    "$",
}


class TokenizeError(Exception):
    """Error during tokenization."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Token:
    """A token with type, value, position, and its span in the source."""

    def __init__(self, type_: str, value: str, line: int, col: int, start: int, end: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col
        self.start: int = start
        self.end: int = end

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_" or ord(c) > 127


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class _Lexer:
    def __init__(self, source: str):
        self.src: str = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1
        self.tokens: list[Token] = []

    def bump(self, n: int = 1) -> None:
        for _ in range(n):
            if self.pos >= len(self.src):
                return
            if self.src[self.pos] == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
            self.pos += 1

    def at(self, text: str) -> bool:
        return self.src.startswith(text, self.pos)

    def char(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= len(self.src):
            return ""
        return self.src[idx]

    def emit(self, type_: str, start: int, line: int, col: int) -> None:
        value = self.src[start : self.pos]
        self.tokens.append(Token(type_, value, line, col, start, self.pos))

    def run(self) -> list[Token]:
        while self.pos < len(self.src):
            c = self.char()

            # Whitespace
            if c in " \t\r\n":
                self.bump()
                continue

            # Line comment, including `///` doc comments
            if self.at("//"):
                while self.pos < len(self.src) and self.char() != "\n":
                    self.bump()
                continue

            # Block comment, nestable
            if self.at("/*"):
                self._block_comment()
                continue

            start = self.pos
            line = self.line
            col = self.col

            # Raw identifier r#name, raw string r"..." / r#"..."#
            if c == "r" and self.char(1) == "#" and _is_alpha(self.char(2)):
                self.bump(2)
                while _is_alnum(self.char()):
                    self.bump()
                self.emit(TK_IDENT, start, line, col)
                continue
            if (c == "r" and self.char(1) in ('"', "#")) or (
                c == "b" and self.char(1) == "r" and self.char(2) in ('"', "#")
            ):
                self._raw_string(start, line, col)
                continue
            if c == "b" and self.char(1) in ('"', "'"):
                self.bump()
                if self.char() == '"':
                    self._string(start, line, col)
                else:
                    self._char_literal(start, line, col)
                continue

            if _is_alpha(c):
                while _is_alnum(self.char()):
                    self.bump()
                self.emit(TK_IDENT, start, line, col)
                continue

            if _is_digit(c):
                while _is_alnum(self.char()) or (
                    self.char() == "." and _is_digit(self.char(1))
                ):
                    self.bump()
                self.emit(TK_INT, start, line, col)
                continue

            if c == '"':
                self._string(start, line, col)
                continue

            if c == "'":
                self._quote(start, line, col)
                continue

            matched = False
            for op in MULTI_OPS:
                if self.at(op):
                    self.bump(len(op))
                    self.emit(TK_OP, start, line, col)
                    matched = True
                    break
            if matched:
                continue
            if c in SINGLE_OPS:
                self.bump()
                self.emit(TK_OP, start, line, col)
                continue
            raise TokenizeError("unexpected character '" + c + "'", line, col)

        self.tokens.append(
            Token(TK_EOF, "", self.line, self.col, len(self.src), len(self.src))
        )
        return self.tokens

    def _block_comment(self) -> None:
        line = self.line
        col = self.col
        depth = 0
        while self.pos < len(self.src):
            if self.at("/*"):
                depth += 1
                self.bump(2)
            elif self.at("*/"):
                depth -= 1
                self.bump(2)
                if depth == 0:
                    return
            else:
                self.bump()
        raise TokenizeError("unterminated block comment", line, col)

    def _string(self, start: int, line: int, col: int) -> None:
        self.bump()  # opening "
        while self.pos < len(self.src) and self.char() != '"':
            if self.char() == "\\":
                self.bump()
            self.bump()
        if self.pos >= len(self.src):
            raise TokenizeError("unterminated string literal", line, col)
        self.bump()  # closing "
        self.emit(TK_STRING, start, line, col)

    def _raw_string(self, start: int, line: int, col: int) -> None:
        if self.char() == "b":
            self.bump()
        self.bump()  # r
        hashes = 0
        while self.char() == "#":
            hashes += 1
            self.bump()
        if self.char() != '"':
            raise TokenizeError("invalid raw string literal", line, col)
        self.bump()
        closing = '"' + "#" * hashes
        while self.pos < len(self.src) and not self.at(closing):
            self.bump()
        if self.pos >= len(self.src):
            raise TokenizeError("unterminated raw string literal", line, col)
        self.bump(len(closing))
        self.emit(TK_STRING, start, line, col)

    def _char_literal(self, start: int, line: int, col: int) -> None:
        self.bump()  # opening '
        if self.char() == "\\":
            self.bump()
        while self.pos < len(self.src) and self.char() != "'":
            if self.char() == "\n":
                raise TokenizeError("unterminated character literal", line, col)
            self.bump()
        if self.pos >= len(self.src):
            raise TokenizeError("unterminated character literal", line, col)
        self.bump()
        self.emit(TK_CHAR, start, line, col)

    def _quote(self, start: int, line: int, col: int) -> None:
        """Disambiguate a lifetime `'a` from a character literal `'a'`."""
        if _is_alpha(self.char(1)) and self.char(2) != "'":
            self.bump()
            while _is_alnum(self.char()):
                self.bump()
            if self.char() == "'":
                raise TokenizeError("malformed lifetime or character literal", line, col)
            self.emit(TK_LIFETIME, start, line, col)
            return
        self._char_literal(start, line, col)


def tokenize(source: str) -> list[Token]:
    """Tokenize declaration source into a flat list ending with TK_EOF."""
    return _Lexer(source).run()
