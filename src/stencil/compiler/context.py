"""Render context.

Wraps caller data so templates address mappings and objects the same way,
and layers loop bindings on top without touching the caller's data.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Union

from stencil.ast.node import FieldPath
from stencil.exceptions import UndefinedFieldError

LOOP_INDEX = "loop_index"
LOOP_VALUE = "loop_value"

_MISSING = object()


def lookup(obj: Any, part: Union[str, int]) -> Any:
    """Resolve a single path part against ``obj``.

    Resolution order:
    - Mappings: subscript only, so dict methods never shadow missing keys.
    - Integer parts on sequences: index.
    - Everything else: getattr, then subscript. Methods are not called, so
      an attribute that resolves to one is treated as missing.

    Returns _MISSING instead of raising so callers can report the whole path.
    """
    if isinstance(obj, Mapping):
        try:
            return obj[part]
        except (KeyError, TypeError):
            return _MISSING

    if isinstance(part, int):
        if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
            try:
                return obj[part]
            except IndexError:
                return _MISSING
        return _MISSING

    value = getattr(obj, part, _MISSING)
    if value is not _MISSING:
        return _MISSING if inspect.isroutine(value) else value
    try:
        return obj[part]
    except (KeyError, IndexError, TypeError):
        return _MISSING


class Context:
    """Attribute-addressable view of the data passed to a render call.

    Example:
        >>> ctx = Context({"user": {"name": "ada"}})
        >>> ctx.user["name"]
        'ada'
    """

    __slots__ = ("_data", "_scopes")

    def __init__(self, data: Any = None):
        if data is None:
            data = {}
        elif isinstance(data, Context):
            data = data._data
        elif isinstance(data, Mapping):
            data = dict(data)
        self._data = data
        self._scopes: List[Dict[str, Any]] = []

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        value = self._get(name)
        if value is _MISSING:
            raise AttributeError(name)
        return value

    def __contains__(self, name: str) -> bool:
        return self._get(name) is not _MISSING

    def _get(self, name: str) -> Any:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return lookup(self._data, name)

    def resolve(self, path: FieldPath) -> Any:
        """Resolve a compiled field path.

        Raises:
            UndefinedFieldError: If any part of the path is missing.
        """
        head, *rest = path.parts
        value = self._get(str(head))
        if value is _MISSING:
            raise UndefinedFieldError(path.expr, head)
        for part in rest:
            value = lookup(value, part)
            if value is _MISSING:
                raise UndefinedFieldError(path.expr, part)
        return value

    def push_scope(self) -> Dict[str, Any]:
        scope: Dict[str, Any] = {}
        self._scopes.append(scope)
        return scope

    def pop_scope(self) -> None:
        self._scopes.pop()

    @property
    def depth(self) -> int:
        return len(self._scopes)
