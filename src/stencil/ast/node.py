"""Compiled template nodes.

A compiled template is a flat list of nodes. Block nodes carry the index of
their partner so the renderer can jump without rebuilding a tree.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

import msgspec

# Bump whenever the node layout changes so old artifacts get recompiled.
FORMAT_VERSION = 1

Scalar = Union[str, int, float, bool, None]


class FieldPath(msgspec.Struct, frozen=True):
    """A dotted/indexed path into the render context."""

    expr: str
    parts: List[Union[str, int]]


class FilterCall(msgspec.Struct, frozen=True):
    """One stage of a filter pipeline.

    The piped value is inserted into ``args`` at ``slot``.
    """

    name: str
    args: List[Scalar] = msgspec.field(default_factory=list)
    slot: int = 0


class NodeBase(msgspec.Struct, frozen=True, tag_field="kind"):
    pass


class Text(NodeBase, tag="text"):
    text: str


class Echo(NodeBase, tag="echo"):
    path: FieldPath
    filters: List[FilterCall] = msgspec.field(default_factory=list)
    escape: bool = True


class ForEach(NodeBase, tag="foreach"):
    path: FieldPath
    end: int


class If(NodeBase, tag="if"):
    path: FieldPath
    end: int
    op: Optional[Literal["=="]] = None
    operand: Scalar = None


class End(NodeBase, tag="end"):
    start: int


Node = Union[Text, Echo, ForEach, If, End]


class Program(msgspec.Struct, frozen=True):
    """A compiled template, as stored in the cache."""

    nodes: List[Node]
    version: int = FORMAT_VERSION


_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder(Program)


def encode_program(program: Program) -> bytes:
    return _encoder.encode(program)


def decode_program(data: bytes) -> Program:
    """Decode an artifact.

    Raises:
        msgspec.ValidationError: If the payload doesn't match the node layout.
        msgspec.DecodeError: If the payload isn't valid JSON.
    """
    return _decoder.decode(data)
