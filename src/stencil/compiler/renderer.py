"""Renderer - executes a compiled Program against a render context."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, List, Literal, Optional, Tuple

from markupsafe import escape

from stencil.ast.node import Echo, ForEach, If, Node, Program, Text
from stencil.compiler.context import LOOP_INDEX, LOOP_VALUE, Context
from stencil.compiler.filters import FilterRegistry, default_filters
from stencil.exceptions import FilterError, NotIterableError, StencilError

QuotePolicy = Literal["all", "double", "none"]


class Renderer:
    """Interprets a Program.

    Block nodes hold the index of their matching ``end``, so a block body is
    simply the node range between the two.
    """

    def __init__(
        self,
        filters: Optional[FilterRegistry] = None,
        charset: str = "UTF-8",
        quotes: QuotePolicy = "all",
    ):
        self.filters = filters if filters is not None else default_filters()
        self.charset = charset
        self.quotes = quotes

    def execute(self, program: Program, data: Any = None) -> str:
        """Render ``program`` with ``data``.

        Output is only returned once the whole program has run; on error
        nothing accumulated so far escapes.

        Raises:
            RenderError: If a field is undefined, a foreach target is not
                iterable, or a filter fails.
        """
        context = data if isinstance(data, Context) else Context(data)
        out: List[str] = []
        self._run(program.nodes, 0, len(program.nodes), context, out)
        return "".join(out)

    def _run(
        self,
        nodes: List[Node],
        start: int,
        stop: int,
        context: Context,
        out: List[str],
    ) -> None:
        pc = start
        while pc < stop:
            node = nodes[pc]

            if isinstance(node, Text):
                out.append(node.text)
            elif isinstance(node, Echo):
                out.append(self._echo(node, context))
            elif isinstance(node, If):
                if self._test(node, context):
                    self._run(nodes, pc + 1, node.end, context, out)
                pc = node.end
            elif isinstance(node, ForEach):
                items = _iterate(context.resolve(node.path), node.path.expr)
                scope = context.push_scope()
                try:
                    for key, value in items:
                        scope[LOOP_INDEX] = key
                        scope[LOOP_VALUE] = value
                        self._run(nodes, pc + 1, node.end, context, out)
                finally:
                    context.pop_scope()
                pc = node.end

            pc += 1

    def _echo(self, node: Echo, context: Context) -> str:
        value = context.resolve(node.path)

        for call in node.filters:
            func = self.filters.get(call.name)
            args = list(call.args)
            args.insert(call.slot, value)
            try:
                value = func(*args)
            except StencilError:
                raise
            except Exception as e:
                raise FilterError(call.name, str(e)) from e

        text = self.to_text(value)
        if node.escape:
            return self.escape(text)
        return text

    def _test(self, node: If, context: Context) -> bool:
        value = context.resolve(node.path)
        if node.op == "==":
            return value == node.operand
        return bool(value)

    def to_text(self, value: Any) -> str:
        if value is None:
            return ""
        if value is True:
            return "true"
        if value is False:
            return "false"
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode(self.charset)
        return str(value)

    def escape(self, text: str) -> str:
        """HTML-escape ``text`` according to the quote policy."""
        escaped = str(escape(text))
        if self.quotes != "all":
            escaped = escaped.replace("&#39;", "'")
        if self.quotes == "none":
            escaped = escaped.replace("&#34;", '"')
        return escaped


def _iterate(value: Any, expr: str) -> Iterable[Tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (str, bytes)):
        raise NotIterableError(expr, value)
    try:
        return enumerate(iter(value))
    except TypeError:
        raise NotIterableError(expr, value) from None
