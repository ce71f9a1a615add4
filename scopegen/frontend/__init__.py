"""Parsing of Rust item source into the declaration model."""

from .parse import ParseError, Parser, extract_pragmas, parse, parse_declaration
from .tokens import Token, TokenizeError, tokenize
