"""Compiler - lowers template source into a flat Program of nodes."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from msgspec.structs import replace

from stencil.ast.node import Echo, End, ForEach, If, Node, Program, Text
from stencil.ast.parser import parse_condition, parse_field_path, parse_filter
from stencil.compiler.filters import FilterRegistry, default_filters
from stencil.exceptions import (
    CompileError,
    MalformedTagError,
    UnbalancedBlockError,
    UnknownBlockError,
)

logger = logging.getLogger(__name__)

# Tags never span lines; one optional space is allowed inside the delimiters.
VAR_TAG = re.compile(r"\{\{ ?(.*?) ?\}\}")
BLOCK_TAG = re.compile(r"\{% ?(.*?) ?%\}")

BYPASS_FILTER = "none"

# (kind, payload, offset) where kind is "text", "var" or "block"
Segment = Tuple[str, str, int]


class Compiler:
    """Compiles template source into a Program."""

    def __init__(self, filters: Optional[FilterRegistry] = None):
        self.filters = filters if filters is not None else default_filters()

    def compile(self, source: str, name: Optional[str] = None) -> Program:
        """Compile template source.

        Pass 1 splits out ``{{ }}`` interpolation tags, pass 2 splits the
        remaining literal text on ``{% %}`` block tags. The segments are then
        lowered to nodes and block pairs are linked by index.

        Args:
            source: Template text.
            name: Template name, used in error messages only.

        Returns:
            The compiled Program. Identical source always gives an identical
            Program.

        Raises:
            CompileError: On any malformed tag, unknown block or filter, or
                unbalanced blocks.
        """
        segments = self._split_blocks(self._split_vars(source))

        nodes: List[Node] = []
        open_blocks: List[Tuple[int, int]] = []  # (node index, offset)

        for kind, payload, offset in segments:
            try:
                if kind == "text":
                    nodes.append(Text(text=payload))
                elif kind == "var":
                    nodes.append(self._lower_var(payload))
                else:
                    self._lower_block(payload, offset, nodes, open_blocks)
            except CompileError as e:
                raise e.locate(_lineno(source, offset), name) from None

        if open_blocks:
            index, offset = open_blocks[-1]
            raise UnbalancedBlockError(
                "Unclosed block",
                _tag_text(nodes[index]),
                lineno=_lineno(source, offset),
                template=name,
            )

        logger.debug("Compiled %s into %d node(s)", name or "<string>", len(nodes))
        return Program(nodes=nodes)

    # -------------------------------------------------------------------------
    # Pass 1 / pass 2
    # -------------------------------------------------------------------------

    def _split_vars(self, source: str) -> List[Segment]:
        segments: List[Segment] = []
        pos = 0
        for m in VAR_TAG.finditer(source):
            if m.start() > pos:
                segments.append(("text", source[pos : m.start()], pos))
            segments.append(("var", m.group(1), m.start()))
            pos = m.end()
        if pos < len(source):
            segments.append(("text", source[pos:], pos))
        return segments

    def _split_blocks(self, segments: List[Segment]) -> List[Segment]:
        result: List[Segment] = []
        for kind, payload, offset in segments:
            if kind != "text":
                result.append((kind, payload, offset))
                continue
            pos = 0
            for m in BLOCK_TAG.finditer(payload):
                if m.start() > pos:
                    result.append(("text", payload[pos : m.start()], offset + pos))
                result.append(("block", m.group(1), offset + m.start()))
                pos = m.end()
            if pos < len(payload):
                result.append(("text", payload[pos:], offset + pos))
        return result

    # -------------------------------------------------------------------------
    # Lowering
    # -------------------------------------------------------------------------

    def _lower_var(self, expr: str) -> Echo:
        head, *stages = split_pipes(expr)
        path = parse_field_path(head)

        if not stages:
            return Echo(path=path, escape=True)

        # raw read; anything piped after "none" is dropped
        if stages[0] == BYPASS_FILTER:
            return Echo(path=path, escape=False)

        calls = []
        for stage in stages:
            call = parse_filter(stage)
            self.filters.check(call)
            calls.append(call)
        return Echo(path=path, filters=calls, escape=False)

    def _lower_block(
        self,
        body: str,
        offset: int,
        nodes: List[Node],
        open_blocks: List[Tuple[int, int]],
    ) -> None:
        body = body.strip()

        if body == "end":
            if not open_blocks:
                raise UnbalancedBlockError("Unexpected end", body)
            start, _ = open_blocks.pop()
            nodes[start] = replace(nodes[start], end=len(nodes))
            nodes.append(End(start=start))
            return

        keyword, _, argument = body.partition(" ")
        if keyword not in ("foreach", "if"):
            raise UnknownBlockError(body)
        if not argument.strip():
            raise MalformedTagError(body, "Missing block argument")

        # end is linked once the matching {% end %} is seen
        if keyword == "foreach":
            node: Node = ForEach(path=parse_field_path(argument), end=-1)
        else:
            path, op, operand = parse_condition(argument)
            node = If(path=path, end=-1, op=op, operand=operand)

        open_blocks.append((len(nodes), offset))
        nodes.append(node)


def split_pipes(expr: str) -> List[str]:
    """Split an interpolation expression on ``|`` outside quoted strings."""
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    for ch in expr:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "|":
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _lineno(source: str, offset: int) -> int:
    return source.count("\n", 0, offset) + 1


def _tag_text(node: Node) -> str:
    if isinstance(node, ForEach):
        return f"foreach {node.path.expr}"
    if isinstance(node, If):
        return f"if {node.path.expr}"
    return type(node).__name__.lower()
