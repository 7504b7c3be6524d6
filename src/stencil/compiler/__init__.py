"""Stencil Compiler - lowers templates to a Program and executes it."""

from stencil.compiler.compiler import Compiler
from stencil.compiler.context import LOOP_INDEX, LOOP_VALUE, Context
from stencil.compiler.filters import FilterRegistry, default_filters
from stencil.compiler.renderer import Renderer

__all__ = [
    "Compiler",
    "Context",
    "FilterRegistry",
    "LOOP_INDEX",
    "LOOP_VALUE",
    "Renderer",
    "default_filters",
]
