"""Stencil - a small template compiler with an on-disk compiled cache."""

import logging

from stencil._version import __version__
from stencil.compiler import Compiler, Context, FilterRegistry, Renderer, default_filters
from stencil.config import EngineConfig, find_config
from stencil.engine import Engine
from stencil.exceptions import (
    CacheWriteError,
    CompileError,
    FilterError,
    MalformedTagError,
    NotIterableError,
    RenderError,
    StencilError,
    TemplateNotFoundError,
    TemplateReadError,
    UnbalancedBlockError,
    UndefinedFieldError,
    UnknownBlockError,
    UnknownFilterError,
)
from stencil.loader import TemplateLoader

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # engine
    "Engine",
    "EngineConfig",
    "TemplateLoader",
    "find_config",
    # compiler
    "Compiler",
    "Context",
    "FilterRegistry",
    "Renderer",
    "default_filters",
    # errors
    "CacheWriteError",
    "CompileError",
    "FilterError",
    "MalformedTagError",
    "NotIterableError",
    "RenderError",
    "StencilError",
    "TemplateNotFoundError",
    "TemplateReadError",
    "UnbalancedBlockError",
    "UndefinedFieldError",
    "UnknownBlockError",
    "UnknownFilterError",
]
