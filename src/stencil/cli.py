"""Stencil CLI

Usage:
    stencil render NAME                  # render views/NAME.html to stdout
    stencil render NAME -d data.yaml     # with context from a yaml/json file
    stencil render NAME --set title=Hi   # with inline values
    stencil compile                      # compile every template
    stencil compile NAME [NAME...]       # compile selected templates
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, NoReturn, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from ._version import __version__
from .config import EngineConfig, find_config
from .engine import Engine
from .exceptions import StencilError

console = Console(stderr=True)

app = typer.Typer(
    name="stencil",
    help="Compile and render stencil templates.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the stencil CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level - shows compiles and stored artifacts
    - Debug (STENCIL_DEBUG=1): DEBUG level - shows cache hits too
    """
    if os.environ.get("STENCIL_DEBUG"):
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=bool(os.environ.get("STENCIL_DEBUG")),
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    stencil_logger = logging.getLogger("stencil")
    stencil_logger.setLevel(level)
    stencil_logger.handlers = [handler]
    stencil_logger.propagate = False


def exit_with_error(message: str, exit_code: int = 1) -> NoReturn:
    """Exit the program with an error message."""
    typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=exit_code)


def load_engine(config_path: Optional[Path]) -> Engine:
    """Build an engine from an explicit config file or the nearest stencil.yaml."""
    if config_path is not None and not config_path.exists():
        exit_with_error(f"Config file not found: {config_path}")

    path = config_path or find_config()
    try:
        config = EngineConfig.load(path) if path else EngineConfig()
    except (ValueError, yaml.YAMLError) as e:
        exit_with_error(f"Invalid config {path}: {e}")
    return Engine(config)


def parse_assignment(value: str) -> tuple[str, Any]:
    """Parse a --set argument in format KEY=VALUE. VALUE is read as yaml."""
    if "=" not in value:
        raise typer.BadParameter(f"Must be KEY=VALUE, got: {value!r}")
    key, raw = value.split("=", 1)
    if not key:
        raise typer.BadParameter(f"Empty key in: {value!r}")
    try:
        return key, yaml.safe_load(raw) if raw else ""
    except yaml.YAMLError:
        return key, raw


def load_data(path: Optional[Path]) -> dict[str, Any]:
    """Load render context from a yaml or json file."""
    if path is None:
        return {}
    if not path.exists():
        exit_with_error(f"Data file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        exit_with_error(f"Invalid data file {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        exit_with_error(f"Data file must contain a mapping: {path}")
    return data


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"stencil {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Compile and render stencil templates."""


@app.command()
def render(
    name: str = typer.Argument(..., help="Template name, e.g. 'admin/settings'."),
    data_file: Optional[Path] = typer.Option(
        None, "-d", "--data", help="YAML or JSON file with the render context."
    ),
    assignments: Optional[List[str]] = typer.Option(
        None, "--set", help="Context value KEY=VALUE. Repeatable.", metavar="KEY=VALUE"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to stencil.yaml."
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write output to file instead of stdout."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Render a template with data."""
    setup_logging(verbose)

    engine = load_engine(config_path)
    data = load_data(data_file)
    for key, value in map(parse_assignment, assignments or []):
        data[key] = value

    try:
        text = engine.render(name, data)
    except StencilError as e:
        exit_with_error(str(e))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Wrote {output}", err=True)
    else:
        typer.echo(text, nl=False)


@app.command("compile")
def compile_templates(
    names: Optional[List[str]] = typer.Argument(
        None, help="Templates to compile. Default: all."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to stencil.yaml."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Compile templates into the cache directory."""
    setup_logging(verbose)

    engine = load_engine(config_path)
    try:
        if names:
            paths = [engine.compile(name) for name in names]
        else:
            paths = engine.compile_all()
    except StencilError as e:
        exit_with_error(str(e))

    for path in paths:
        typer.echo(str(path))


if __name__ == "__main__":
    app()
