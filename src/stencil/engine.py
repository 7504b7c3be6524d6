"""Template engine - render(name, data) backed by the compiled-template cache."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from stencil.ast.node import Echo, Program
from stencil.compiler import Compiler, FilterRegistry, Renderer, default_filters
from stencil.config import EngineConfig
from stencil.exceptions import ArtifactFormatError, CompileError
from stencil.loader import TemplateLoader

logger = logging.getLogger(__name__)


class Engine:
    """Compiles templates on demand and renders them.

    Example:
        engine = Engine(EngineConfig(template_dir=Path("views")))
        html = engine.render("user/profile", {"name": "Ada"})
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        filters: FilterRegistry | None = None,
    ):
        self.config = config or EngineConfig()
        self.filters = filters if filters is not None else default_filters()
        self.loader = TemplateLoader(self.config)
        self.compiler = Compiler(self.filters)
        self.renderer = Renderer(
            self.filters, charset=self.config.charset, quotes=self.config.quotes
        )

    def render(self, name: str, data: Any = None) -> str:
        """Render a template with the given data.

        Args:
            name: Template name, e.g. "base" or "admin/settings".
            data: Mapping or object the template reads from.

        Returns:
            The rendered text.

        Raises:
            StencilError: On missing templates, compile errors, cache write
                failures and render errors.
        """
        return self.renderer.execute(self.get_program(name), data)

    def render_string(self, source: str, data: Any = None) -> str:
        """Compile and render ``source`` without touching the cache."""
        return self.renderer.execute(self.compiler.compile(source), data)

    def get_program(self, name: str) -> Program:
        """Get the compiled program for a template, recompiling if stale."""
        source_path, cache_path = self.loader.resolve(name)

        if not self.loader.is_stale(source_path, cache_path):
            try:
                program = self.loader.load(cache_path)
                self._check_filters(program)
            except ArtifactFormatError as e:
                logger.warning("%s, recompiling", e)
            except CompileError as e:
                logger.warning(
                    "Cached %s does not match the filter registry (%s), recompiling",
                    cache_path,
                    e,
                )
            else:
                logger.debug("Using cached %s", cache_path)
                return program

        return self._compile_and_store(source_path, cache_path)

    def compile(self, name: str) -> Path:
        """Compile a template and store it, regardless of staleness.

        Returns:
            Path of the stored artifact.
        """
        source_path, cache_path = self.loader.resolve(name)
        self._compile_and_store(source_path, cache_path)
        return cache_path

    def compile_all(self) -> list[Path]:
        """Compile every template under the template directory."""
        names = list(self.loader.list_templates())
        logger.info("Compiling %d template(s)", len(names))
        return [self.compile(name) for name in names]

    def _compile_and_store(self, source_path: Path, cache_path: Path) -> Program:
        logger.info("Compiling %s", source_path)
        source = self.loader.read_source(source_path)
        program = self.compiler.compile(source, name=str(source_path))
        self.loader.store(cache_path, program)
        return program

    def _check_filters(self, program: Program) -> None:
        """Validate a cached program's filter calls against this engine's registry."""
        for node in program.nodes:
            if isinstance(node, Echo):
                for call in node.filters:
                    self.filters.check(call)
