import logging
from pathlib import Path

import pytest

from stencil import Engine, EngineConfig


@pytest.fixture(autouse=True)
def _restore_stencil_logger():
    """The CLI reconfigures the 'stencil' logger; undo that between tests."""
    logger = logging.getLogger("stencil")
    handlers, propagate, level = list(logger.handlers), logger.propagate, logger.level
    yield
    logger.handlers = handlers
    logger.propagate = propagate
    logger.setLevel(level)


@pytest.fixture
def config(tmp_path: Path) -> EngineConfig:
    views = tmp_path / "views"
    views.mkdir()
    return EngineConfig(template_dir=views, cache_dir=views / "cache")


@pytest.fixture
def engine(config: EngineConfig) -> Engine:
    return Engine(config)


@pytest.fixture
def write_template(config: EngineConfig):
    """Write a template source, returning its path."""

    def _write(name: str, text: str) -> Path:
        path = config.template_dir / f"{name}{config.extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
