"""Template Loader

Resolves template names to source files and compiled artifacts on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple

import msgspec

from stencil.ast.node import (
    FORMAT_VERSION,
    End,
    ForEach,
    If,
    Node,
    Program,
    decode_program,
    encode_program,
)
from stencil.config import EngineConfig
from stencil.exceptions import (
    ArtifactFormatError,
    CacheWriteError,
    TemplateNotFoundError,
    TemplateReadError,
)
from stencil.io import atomic_write_bytes

logger = logging.getLogger(__name__)


class TemplateLoader:
    """Filesystem-based template and artifact storage.

    Directory structure:
        <template_dir>/
          base.html             # fallback template
          admin/settings.html   # template "admin/settings"
        <cache_dir>/
          base.json
          admin-settings.json

    Cache names flatten "/" to "-", so "a/b" and "a-b" share one artifact.
    Avoid giving templates names that only differ that way.
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    @property
    def template_dir(self) -> Path:
        return self.config.template_dir

    @property
    def cache_dir(self) -> Path:
        return self.config.cache_dir

    def source_path(self, name: str) -> Path:
        """Get the source path for a template name."""
        return self.template_dir / f"{_check_name(name)}{self.config.extension}"

    def cache_path(self, name: str) -> Path:
        """Get the compiled artifact path for a template name."""
        flat = _check_name(name).replace("/", "-")
        return self.cache_dir / f"{flat}{self.config.cache_extension}"

    def resolve(self, name: str) -> Tuple[Path, Path]:
        """Resolve a template name to (source_path, cache_path).

        Falls back to the default template when ``name`` has no source.

        Raises:
            TemplateNotFoundError: If neither exists.
        """
        source = self.source_path(name)
        if source.is_file():
            return source, self.cache_path(name)

        fallback = self.config.default_template
        fallback_source = self.source_path(fallback)
        if fallback_source.is_file():
            logger.debug("Template %s not found, using %s", name, fallback)
            return fallback_source, self.cache_path(fallback)

        raise TemplateNotFoundError(name, [source, fallback_source])

    def is_stale(self, source_path: Path, cache_path: Path) -> bool:
        """Check if the artifact is missing or older than its source."""
        try:
            cache_mtime = cache_path.stat().st_mtime_ns
        except OSError:
            # missing, or the cache dir itself is broken; store() will tell
            return True
        try:
            source_mtime = source_path.stat().st_mtime_ns
        except OSError as e:
            raise TemplateReadError(source_path, e.strerror or str(e)) from e
        return source_mtime > cache_mtime

    def read_source(self, source_path: Path) -> str:
        try:
            return source_path.read_text(encoding=self.config.charset)
        except UnicodeDecodeError as e:
            raise TemplateReadError(source_path, str(e)) from e
        except OSError as e:
            raise TemplateReadError(source_path, e.strerror or str(e)) from e

    def store(self, cache_path: Path, program: Program) -> None:
        """Persist a compiled program atomically.

        Raises:
            CacheWriteError: If the cache directory is not writable.
        """
        try:
            atomic_write_bytes(cache_path, encode_program(program))
        except OSError as e:
            raise CacheWriteError(cache_path, e.strerror or str(e)) from e
        logger.info("Stored compiled template %s", cache_path)

    def load(self, cache_path: Path) -> Program:
        """Load a compiled program.

        Raises:
            ArtifactFormatError: If the artifact can't be decoded, was
                written by an incompatible version, or has unlinked blocks.
        """
        try:
            program = decode_program(cache_path.read_bytes())
        except msgspec.DecodeError as e:
            raise ArtifactFormatError(cache_path, str(e)) from e
        except OSError as e:
            raise ArtifactFormatError(cache_path, e.strerror or str(e)) from e

        if program.version != FORMAT_VERSION:
            raise ArtifactFormatError(
                cache_path, f"format version {program.version} != {FORMAT_VERSION}"
            )

        problem = _check_links(program.nodes)
        if problem:
            raise ArtifactFormatError(cache_path, problem)
        return program

    def list_templates(self) -> Iterator[str]:
        """List all template names under the template directory.

        Yields:
            Names relative to template_dir, without extension.
        """
        if not self.template_dir.is_dir():
            return

        cache_dir = self.cache_dir.resolve()
        for path in sorted(self.template_dir.rglob(f"*{self.config.extension}")):
            if not path.is_file() or cache_dir in path.resolve().parents:
                continue
            relative = path.relative_to(self.template_dir).as_posix()
            yield relative[: -len(self.config.extension)]


def _check_name(name: str) -> str:
    """Reject names that would escape the template directory."""
    normalized = name.replace("\\", "/")
    parts = PurePosixPath(normalized).parts
    if not normalized or normalized.startswith("/") or ".." in parts:
        raise TemplateNotFoundError(name)
    return normalized


def _check_links(nodes: List[Node]) -> Optional[str]:
    """Describe the first block whose jump indexes don't pair up, if any."""
    for index, node in enumerate(nodes):
        if isinstance(node, (ForEach, If)):
            end = node.end
            if not index < end < len(nodes):
                return f"node {index} jumps to {end}"
            target = nodes[end]
            if not isinstance(target, End) or target.start != index:
                return f"node {index} is not closed by node {end}"
        elif isinstance(node, End):
            start = node.start
            if not 0 <= start < index:
                return f"end node {index} points at {start}"
            opener = nodes[start]
            if not isinstance(opener, (ForEach, If)) or opener.end != index:
                return f"end node {index} is not opened by node {start}"
    return None
