"""Filter registry and the default filters.

Filters are looked up by name when a template is compiled, so a typo in a
template fails before anything is cached.
"""

from __future__ import annotations

import inspect
import json as _json
import re
from datetime import date as _date
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional
from urllib.parse import quote_plus

from markupsafe import escape as _markup_escape

from stencil.ast.node import FilterCall
from stencil.exceptions import MalformedTagError, UnknownFilterError

FilterFunc = Callable[..., Any]


class FilterRegistry:
    """Mapping of filter name to callable."""

    def __init__(self, filters: Optional[Dict[str, FilterFunc]] = None):
        self._filters: Dict[str, FilterFunc] = dict(filters or {})

    def register(self, name: str, func: Optional[FilterFunc] = None):
        """Register a filter. Works as a plain call or as a decorator.

        Example:
            registry.register("shout", lambda s: s.upper() + "!")

            @registry.register("reverse")
            def reverse(value):
                return value[::-1]
        """
        if name == "none":
            raise ValueError("'none' is reserved for unescaped output")

        def decorator(fn: FilterFunc) -> FilterFunc:
            self._filters[name] = fn
            return fn

        if func is not None:
            return decorator(func)
        return decorator

    def get(self, name: str) -> FilterFunc:
        try:
            return self._filters[name]
        except KeyError:
            raise UnknownFilterError(name) from None

    def check(self, call: FilterCall) -> None:
        """Validate that ``call`` names a known filter with a matching arity."""
        func = self.get(call.name)
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            # builtins without introspectable signatures
            return
        args = list(call.args)
        args.insert(call.slot, None)
        try:
            signature.bind(*args)
        except TypeError as e:
            raise MalformedTagError(call.name, f"Bad arguments for filter ({e})") from None

    def copy(self) -> "FilterRegistry":
        return FilterRegistry(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._filters))

    def __len__(self) -> int:
        return len(self._filters)


# =============================================================================
# Default filters
# =============================================================================

_TAG_RE = re.compile(r"<[^>]*?>")


def upper(value: Any) -> str:
    return str(value).upper()


def lower(value: Any) -> str:
    return str(value).lower()


def title(value: Any) -> str:
    return str(value).title()


def capitalize(value: Any) -> str:
    return str(value).capitalize()


def trim(value: Any) -> str:
    return str(value).strip()


def length(value: Any) -> int:
    return len(value)


def escape(value: Any) -> str:
    return str(_markup_escape(value))


def urlencode(value: Any) -> str:
    return quote_plus(str(value))


def nl2br(value: Any) -> str:
    return re.sub(r"\r\n|\r|\n", lambda m: "<br />" + m.group(0), str(value))


def striptags(value: Any) -> str:
    return _TAG_RE.sub("", str(value))


def to_json(value: Any) -> str:
    return _json.dumps(value, sort_keys=True, default=str)


def join(separator: str, value: Any) -> str:
    return separator.join(str(item) for item in value)


def default(fallback: Any, value: Any) -> Any:
    """Return ``fallback`` when the value is falsy."""
    return value if value else fallback


def truncate(limit: int, value: Any) -> str:
    """Cut the value down to ``limit`` characters, ending in an ellipsis."""
    text = str(value)
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."


def format_date(fmt: str, value: Any) -> str:
    """Format a unix timestamp, date or datetime with strftime.

    Timestamps are interpreted as UTC.
    """
    if isinstance(value, (_date, datetime)):
        return value.strftime(fmt)
    return datetime.fromtimestamp(float(value), tz=timezone.utc).strftime(fmt)


DEFAULT_FILTERS: Dict[str, FilterFunc] = {
    "upper": upper,
    "lower": lower,
    "title": title,
    "capitalize": capitalize,
    "trim": trim,
    "length": length,
    "escape": escape,
    "urlencode": urlencode,
    "nl2br": nl2br,
    "striptags": striptags,
    "json": to_json,
    "join": join,
    "default": default,
    "truncate": truncate,
    "date": format_date,
}


def default_filters() -> FilterRegistry:
    """Create a registry populated with the built-in filters."""
    return FilterRegistry(DEFAULT_FILTERS)
