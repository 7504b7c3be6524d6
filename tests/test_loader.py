"""Tests for template resolution and the artifact cache."""

import os

import pytest

from stencil.ast.node import (
    FORMAT_VERSION,
    End,
    FieldPath,
    ForEach,
    Program,
    Text,
    encode_program,
)
from stencil.exceptions import (
    ArtifactFormatError,
    CacheWriteError,
    TemplateNotFoundError,
)
from stencil.loader import TemplateLoader


def set_mtime(path, mtime_ns):
    os.utime(path, ns=(mtime_ns, mtime_ns))


def test_resolve_existing_template(config, write_template):
    source = write_template("admin/settings", "x")
    loader = TemplateLoader(config)

    source_path, cache_path = loader.resolve("admin/settings")

    assert source_path == source
    assert cache_path == config.cache_dir / "admin-settings.json"


def test_resolve_falls_back_to_base(config, write_template):
    base = write_template("base", "fallback")
    loader = TemplateLoader(config)

    source_path, cache_path = loader.resolve("missing/page")

    assert source_path == base
    assert cache_path == config.cache_dir / "base.json"


def test_resolve_without_base_is_a_configuration_error(config):
    loader = TemplateLoader(config)
    with pytest.raises(TemplateNotFoundError) as exc_info:
        loader.resolve("missing")
    assert len(exc_info.value.searched) == 2


@pytest.mark.parametrize("name", ["", "../secret", "/etc/passwd", "a/../../b"])
def test_resolve_rejects_escaping_names(config, write_template, name):
    write_template("base", "fallback")
    with pytest.raises(TemplateNotFoundError):
        TemplateLoader(config).resolve(name)


def test_is_stale(config, write_template):
    source = write_template("page", "x")
    cache = config.cache_dir / "page.json"
    loader = TemplateLoader(config)

    assert loader.is_stale(source, cache) is True

    cache.parent.mkdir(parents=True)
    cache.write_bytes(b"{}")
    set_mtime(source, 1_000_000_000_000_000_000)
    set_mtime(cache, 2_000_000_000_000_000_000)
    assert loader.is_stale(source, cache) is False

    set_mtime(cache, 1_000_000_000_000_000_000)
    assert loader.is_stale(source, cache) is False  # equal is fresh

    set_mtime(source, 3_000_000_000_000_000_000)
    assert loader.is_stale(source, cache) is True


def test_store_and_load(config):
    loader = TemplateLoader(config)
    program = Program(nodes=[Text(text="hi")])
    cache = config.cache_dir / "page.json"

    loader.store(cache, program)

    assert cache.read_bytes() == encode_program(program)
    assert loader.load(cache) == program
    # no temp files left behind
    assert [p.name for p in config.cache_dir.iterdir()] == ["page.json"]


def test_store_to_unwritable_location(config):
    config.cache_dir.write_text("not a directory")
    loader = TemplateLoader(config)

    with pytest.raises(CacheWriteError):
        loader.store(config.cache_dir / "page.json", Program(nodes=[]))


def test_load_rejects_garbage(config):
    cache = config.cache_dir / "page.json"
    cache.parent.mkdir(parents=True)
    cache.write_text("<?php echo 1; ?>")

    with pytest.raises(ArtifactFormatError):
        TemplateLoader(config).load(cache)


def test_load_rejects_other_versions(config):
    cache = config.cache_dir / "page.json"
    loader = TemplateLoader(config)
    loader.store(cache, Program(nodes=[], version=FORMAT_VERSION + 1))

    with pytest.raises(ArtifactFormatError):
        loader.load(cache)


def test_list_templates(config, write_template):
    write_template("base", "")
    write_template("admin/settings", "")
    (config.template_dir / "notes.txt").write_text("ignored")

    assert list(TemplateLoader(config).list_templates()) == ["admin/settings", "base"]


@pytest.mark.parametrize(
    "payload",
    [
        # block without its jump index
        b'{"nodes":[{"kind":"if","path":{"expr":"x","parts":["x"]}},'
        b'{"kind":"text","text":"a"}],"version":1}',
        # jump index pointing at a text node
        b'{"nodes":[{"kind":"if","path":{"expr":"x","parts":["x"]},"end":1},'
        b'{"kind":"text","text":"a"}],"version":1}',
        # end pointing back at the wrong node
        b'{"nodes":[{"kind":"text","text":"a"},'
        b'{"kind":"foreach","path":{"expr":"xs","parts":["xs"]},"end":2},'
        b'{"kind":"end","start":0}],"version":1}',
        # stray end
        b'{"nodes":[{"kind":"end","start":-1}],"version":1}',
    ],
)
def test_load_rejects_unlinked_blocks(config, payload):
    cache = config.cache_dir / "page.json"
    cache.parent.mkdir(parents=True)
    cache.write_bytes(payload)

    with pytest.raises(ArtifactFormatError):
        TemplateLoader(config).load(cache)


def test_load_accepts_linked_blocks(config):
    loader = TemplateLoader(config)
    program = Program(
        nodes=[
            ForEach(path=FieldPath(expr="xs", parts=["xs"]), end=2),
            Text(text="a"),
            End(start=0),
        ]
    )
    cache = config.cache_dir / "page.json"
    loader.store(cache, program)

    assert loader.load(cache) == program


def test_cache_names_flatten_slashes(config):
    loader = TemplateLoader(config)
    expected = config.cache_dir / "a-b.json"
    assert loader.cache_path("a/b") == loader.cache_path("a-b") == expected
