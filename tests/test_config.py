from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from stencil.config import EngineConfig, find_config


def test_defaults():
    config = EngineConfig()
    assert config.template_dir == Path("views")
    assert config.cache_dir == Path("views/cache")
    assert config.default_template == "base"
    assert config.charset == "UTF-8"
    assert config.quotes == "all"


def test_load_missing_file_gives_defaults(tmp_path):
    assert EngineConfig.load(tmp_path / "stencil.yaml") == EngineConfig()


def test_load_anchors_relative_dirs(tmp_path):
    cfg_path = tmp_path / "stencil.yaml"
    cfg_path.write_text(
        yaml.safe_dump(
            {
                "template_dir": "templates",
                "cache_dir": str(tmp_path / "abs-cache"),
                "extension": "tpl",
                "quotes": "double",
            }
        )
    )

    config = EngineConfig.load(cfg_path)

    assert config.template_dir == tmp_path / "templates"
    assert config.cache_dir == tmp_path / "abs-cache"
    assert config.extension == ".tpl"
    assert config.quotes == "double"


def test_unknown_charset_rejected():
    with pytest.raises(ValidationError):
        EngineConfig(charset="klingon-8")


def test_unknown_keys_rejected(tmp_path):
    cfg_path = tmp_path / "stencil.yaml"
    cfg_path.write_text("template_dirs: views\n")
    with pytest.raises(ValidationError):
        EngineConfig.load(cfg_path)


def test_find_config_walks_up(tmp_path):
    cfg_path = tmp_path / "stencil.yaml"
    cfg_path.write_text("{}\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config(nested) == cfg_path.resolve()


def test_find_config_none(tmp_path):
    # tmp_path lives under a system temp dir with no stencil.yaml above it
    assert find_config(tmp_path) is None
