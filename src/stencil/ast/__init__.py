"""Stencil AST - compiled template nodes and tag expression parsing."""

from stencil.ast.node import (
    FORMAT_VERSION,
    Echo,
    End,
    FieldPath,
    FilterCall,
    ForEach,
    If,
    Node,
    Program,
    Text,
    decode_program,
    encode_program,
)
from stencil.ast.parser import (
    parse_condition,
    parse_field_path,
    parse_filter,
    parse_literal,
)

__all__ = [
    "FORMAT_VERSION",
    "Echo",
    "End",
    "FieldPath",
    "FilterCall",
    "ForEach",
    "If",
    "Node",
    "Program",
    "Text",
    "decode_program",
    "encode_program",
    "parse_condition",
    "parse_field_path",
    "parse_filter",
    "parse_literal",
]
