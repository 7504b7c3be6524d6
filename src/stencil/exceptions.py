"""Stencil Exceptions

Every failure of a render call derives from StencilError.
"""

from __future__ import annotations

from pathlib import Path


class StencilError(Exception):
    """Base exception for all stencil errors."""

    pass


class TemplateNotFoundError(StencilError):
    """Raised when neither the template nor the default template exists."""

    def __init__(self, name: str, searched: list[Path] | None = None):
        self.name = name
        self.searched = searched or []
        message = f"Template not found: {name}"
        if self.searched:
            message += " (searched: " + ", ".join(str(p) for p in self.searched) + ")"
        super().__init__(message)


class TemplateReadError(StencilError):
    """Raised when a template source cannot be read or decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not read template {path}: {reason}")


class CompileError(StencilError):
    """Base class for errors raised while compiling a template."""

    def __init__(
        self,
        message: str,
        token: str,
        lineno: int | None = None,
        template: str | None = None,
    ):
        self.message = message
        self.token = token
        self.lineno = lineno
        self.template = template
        super().__init__(self._format())

    def _format(self) -> str:
        where = self.template or "<string>"
        if self.lineno is not None:
            where = f"{where}:{self.lineno}"
        return f"{where}: {self.message}: {self.token!r}"

    def locate(self, lineno: int, template: str | None) -> "CompileError":
        """Attach position info once the caller knows it."""
        if self.lineno is None:
            self.lineno = lineno
        if self.template is None:
            self.template = template
        self.args = (self._format(),)
        return self


class MalformedTagError(CompileError):
    """Raised when a tag cannot be split into its parts."""

    def __init__(self, token: str, reason: str = "Malformed tag", **kwargs):
        super().__init__(reason, token, **kwargs)


class UnknownBlockError(CompileError):
    """Raised for a block keyword other than foreach, if or end."""

    def __init__(self, token: str, **kwargs):
        super().__init__("Invalid template block", token, **kwargs)


class UnknownFilterError(CompileError):
    """Raised when a filter name is not in the registry."""

    def __init__(self, token: str, **kwargs):
        super().__init__("Unknown filter", token, **kwargs)


class UnbalancedBlockError(CompileError):
    """Raised for a stray end or a block left open at end of input."""

    pass


class CacheWriteError(StencilError):
    """Raised when a compiled artifact cannot be persisted."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not write compiled template {path}: {reason}")


class ArtifactFormatError(StencilError):
    """Raised when a cached artifact cannot be decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Unreadable compiled template {path}: {reason}")


class RenderError(StencilError):
    """Base class for errors raised while executing a compiled template."""

    pass


class UndefinedFieldError(RenderError):
    """Raised when a field path does not resolve against the context."""

    def __init__(self, expr: str, part: str | int):
        self.expr = expr
        self.part = part
        super().__init__(f"Undefined field {part!r} in {expr!r}")


class NotIterableError(RenderError):
    """Raised when foreach targets a value that cannot be iterated."""

    def __init__(self, expr: str, value: object):
        self.expr = expr
        super().__init__(
            f"Cannot iterate over {expr!r} (got {type(value).__name__})"
        )


class FilterError(RenderError):
    """Raised when a filter fails on the piped value."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Filter {name!r} failed: {reason}")
