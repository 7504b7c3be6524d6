"""Expression parsing for tag contents.

Tags only carry three kinds of expressions: field paths, filter calls and
`if` conditions. None of them nest, so each is parsed on its own.
"""

from __future__ import annotations

import ast
import re
from typing import Any, List, Optional, Tuple, Union

from stencil.ast.node import FieldPath, FilterCall, Scalar
from stencil.exceptions import MalformedTagError

PLACEHOLDER = "%s"

# Stand-in for the placeholder so filter segments parse as Python calls.
_SENTINEL = "__stencil_value__"

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_HEAD = re.compile(_IDENT)
_PART = re.compile(
    rf"\.(?P<attr>{_IDENT})"
    r"|\[(?P<index>-?\d+)\]"
    r"|\[(?P<key>'[^']*'|\"[^\"]*\")\]"
)

_KEYWORD_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}

_SCALAR_TYPES = (str, int, float, bool, type(None))


def parse_field_path(expr: str) -> FieldPath:
    """Parse ``user.name``, ``items[0]`` or ``row['key']`` into a FieldPath."""
    expr = expr.strip()
    head = _HEAD.match(expr)
    if head is None:
        raise MalformedTagError(expr, "Invalid field path")

    parts: List[Union[str, int]] = [head.group(0)]
    pos = head.end()
    while pos < len(expr):
        m = _PART.match(expr, pos)
        if m is None:
            raise MalformedTagError(expr, "Invalid field path")
        if m.group("attr") is not None:
            parts.append(m.group("attr"))
        elif m.group("index") is not None:
            parts.append(int(m.group("index")))
        else:
            parts.append(ast.literal_eval(m.group("key")))
        pos = m.end()

    return FieldPath(expr=expr, parts=parts)


def parse_literal(text: str) -> Scalar:
    """Parse the right-hand side of an equality test."""
    text = text.strip()
    if text in _KEYWORD_LITERALS:
        return _KEYWORD_LITERALS[text]
    try:
        value = ast.literal_eval(text)
    except (ValueError, SyntaxError):
        raise MalformedTagError(text, "Expected a literal") from None
    if not isinstance(value, _SCALAR_TYPES):
        raise MalformedTagError(text, "Expected a literal")
    return value


def parse_condition(argument: str) -> Tuple[FieldPath, Optional[str], Scalar]:
    """Parse an `if` argument: ``path`` or ``path == literal``.

    Only the equality operator exists. Negation has to be written as
    ``path == false``.
    """
    if "==" not in argument:
        return parse_field_path(argument), None, None

    left, right = argument.split("==", 1)
    if "==" in right:
        raise MalformedTagError(argument, "Only one comparison is allowed")
    return parse_field_path(left), "==", parse_literal(right)


def parse_filter(segment: str) -> FilterCall:
    """Parse one pipe segment into a FilterCall.

    Accepted forms::

        upper               -> upper(value)
        truncate(20)        -> truncate(20, value)
        date('%B %d', %s)   -> date('%B %d', value)
    """
    segment = segment.strip()
    placeholders = segment.count(PLACEHOLDER)
    if placeholders > 1:
        raise MalformedTagError(segment, "Only one %s placeholder is allowed")

    try:
        tree = ast.parse(segment.replace(PLACEHOLDER, _SENTINEL), mode="eval").body
    except SyntaxError:
        raise MalformedTagError(segment, "Invalid filter") from None

    if isinstance(tree, ast.Name) and tree.id != _SENTINEL:
        return FilterCall(name=tree.id)

    if (
        not isinstance(tree, ast.Call)
        or not isinstance(tree.func, ast.Name)
        or tree.func.id == _SENTINEL
        or tree.keywords
    ):
        raise MalformedTagError(segment, "Invalid filter")

    args: List[Scalar] = []
    slot: Optional[int] = None
    for node in tree.args:
        if isinstance(node, ast.Name) and node.id == _SENTINEL:
            slot = len(args)
            continue
        args.append(_filter_argument(node, segment))

    if placeholders and slot is None:
        # the placeholder ended up inside a string literal
        raise MalformedTagError(segment, "Placeholder must be a bare argument")

    return FilterCall(
        name=tree.func.id,
        args=args,
        slot=len(args) if slot is None else slot,
    )


def _filter_argument(node: ast.expr, segment: str) -> Any:
    if isinstance(node, ast.Name) and node.id in _KEYWORD_LITERALS:
        return _KEYWORD_LITERALS[node.id]
    try:
        value = ast.literal_eval(node)
    except ValueError:
        raise MalformedTagError(segment, "Filter arguments must be literals") from None
    if not isinstance(value, _SCALAR_TYPES):
        raise MalformedTagError(segment, "Filter arguments must be literals")
    return value
