"""Configuration parsing for stencil.yaml"""

from __future__ import annotations

import codecs
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAMES = ("stencil.yaml", "stencil.yml")


class EngineConfig(BaseModel):
    """Engine settings. Passed explicitly to every Engine."""

    model_config = {"extra": "forbid"}

    template_dir: Path = Field(
        default=Path("views"), description="Directory holding template sources"
    )
    cache_dir: Path = Field(
        default=Path("views/cache"),
        description="Directory for compiled templates, must be writable",
    )
    extension: str = Field(default=".html", description="Template file extension")
    cache_extension: str = Field(
        default=".json", description="Compiled template file extension"
    )
    default_template: str = Field(
        default="base", description="Fallback when a template is missing"
    )
    charset: str = Field(
        default="UTF-8", description="Encoding of template sources and byte values"
    )
    quotes: Literal["all", "double", "none"] = Field(
        default="all", description="Which quote characters escaping encodes"
    )

    @field_validator("charset")
    @classmethod
    def _known_charset(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown charset: {value}") from e
        return value

    @field_validator("extension", "cache_extension")
    @classmethod
    def _dotted(cls, value: str) -> str:
        if value and not value.startswith("."):
            value = "." + value
        return value

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load config from a yaml file.

        Relative directories are taken relative to the file. A missing file
        gives the defaults.
        """
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping")

        config = cls.model_validate(data)
        return config.relative_to(path.parent)

    def relative_to(self, root: Path) -> "EngineConfig":
        """Return a copy with relative directories anchored at ``root``."""
        return self.model_copy(
            update={
                "template_dir": _anchor(self.template_dir, root),
                "cache_dir": _anchor(self.cache_dir, root),
            }
        )


def _anchor(path: Path, root: Path) -> Path:
    path = path.expanduser()
    return path if path.is_absolute() else root / path


def find_config(start: Path | None = None) -> Path | None:
    """Find stencil.yaml by walking up from ``start`` (default: cwd).

    Returns None if no config file is found.
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for directory in [current, *current.parents]:
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.exists():
                return candidate
    return None
