"""Command-line interface for rsmap."""

from __future__ import annotations

import importlib.metadata
import json
import logging
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from rsmap.annotations import export_for_annotation, import_annotations, load_annotations, save_annotations
from rsmap.config import ConfigError, RsmapConfig, load_config, serialize_config
from rsmap.errors import RsmapError
from rsmap.pipeline import GenerateResult, generate

app = typer.Typer(help="Build a layered index of a Rust crate for humans and LLMs.")
annotate_app = typer.Typer(help="Exchange module and item notes with annotations.yaml.")
app.add_typer(annotate_app, name="annotate")
console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(importlib.metadata.version("rsmap"))
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", callback=_version_callback, is_eager=True),
) -> None:
    pass


def _print_error(code: str, message: str) -> None:
    typer.echo(f"{code}: {message}", err=True)


def _configure_logging(config: RsmapConfig, verbose: bool) -> None:
    level = logging.INFO if verbose else getattr(logging, config.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(config_path: Path | None, project_path: Path, overrides: dict[str, Any] | None = None) -> RsmapConfig:
    try:
        return load_config(config_path, overrides, project_path=project_path)
    except ConfigError as exc:
        _print_error(exc.code, str(exc))
        raise typer.Exit(code=1) from exc


PATH_OPTION = typer.Option(Path("."), "--path", "-p", file_okay=False, resolve_path=True)
CONFIG_OPTION = typer.Option(None, "--config", "-c", dir_okay=False, resolve_path=True)


@app.command("generate")
def generate_command(
    project_path: Path = PATH_OPTION,
    output_dir: Path | None = typer.Option(None, "--output", "-o", file_okay=False),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore the previous snapshot."),
    config_path: Path | None = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Index the crate at PATH and write every layer."""
    overrides: dict[str, Any] = {}
    if output_dir is not None:
        overrides["output_dir"] = output_dir
    config = _load(config_path, project_path, overrides)
    _configure_logging(config, verbose)

    try:
        result = generate(project_path, config, no_cache=no_cache)
    except RsmapError as exc:
        _print_error(exc.code, str(exc))
        raise typer.Exit(code=1) from exc
    _print_summary(result)


def _print_summary(result: GenerateResult) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Crate")
    table.add_column("Kind")
    table.add_column("Modules", justify="right")
    table.add_column("Items", justify="right")
    for crate in result.crates:
        modules = list(crate.root_module.iter_modules())
        items = sum(len(module.items) for module in modules)
        table.add_row(crate.name, crate.kind.value, str(len(modules)), str(items))
    console.print(table)

    for warning in result.diagnostics:
        console.print(f"[yellow]{warning.code}: {warning}[/yellow]")
    if result.previous is None:
        console.print("No previous snapshot; full index written.")
    else:
        console.print(f"{len(result.changed_modules)} modules changed since the last run.")
    if result.pending_annotations:
        console.print(f"{result.pending_annotations} items need descriptions (rsmap annotate export).")
    console.print(f"[green]Index written to {result.output_dir}[/green]")


def _annotations_path(config: RsmapConfig, project_path: Path) -> Path:
    return config.resolve_output_dir(project_path) / config.annotations_file


@annotate_app.command("export")
def annotate_export(
    project_path: Path = PATH_OPTION,
    config_path: Path | None = CONFIG_OPTION,
    output_file: Path | None = typer.Option(None, "--output", "-o", dir_okay=False),
) -> None:
    """Print the notes that are empty or stale."""
    config = _load(config_path, project_path)
    try:
        document = export_for_annotation(load_annotations(_annotations_path(config, project_path)))
    except RsmapError as exc:
        _print_error(exc.code, str(exc))
        raise typer.Exit(code=1) from exc
    if output_file is None:
        typer.echo(document, nl=False)
        return
    output_file.write_text(document, encoding="utf-8")
    console.print(f"Wrote {output_file}")


@annotate_app.command("import")
def annotate_import(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    project_path: Path = PATH_OPTION,
    config_path: Path | None = CONFIG_OPTION,
) -> None:
    """Merge filled-in notes from SOURCE into annotations.yaml."""
    config = _load(config_path, project_path)
    path = _annotations_path(config, project_path)
    try:
        store = import_annotations(load_annotations(path), source.read_text(encoding="utf-8"))
        save_annotations(store, path)
    except RsmapError as exc:
        _print_error(exc.code, str(exc))
        raise typer.Exit(code=1) from exc
    pending = sum(entry.needs_attention for entry in [*store.modules.values(), *store.items.values()])
    console.print(f"Annotations saved to {path} ({pending} still need descriptions).")


@app.command()
def config(
    project_path: Path = PATH_OPTION,
    config_path: Path | None = CONFIG_OPTION,
    output_format: str = typer.Option("yaml", "--format", "-f"),
) -> None:
    """Show current configuration."""
    payload = serialize_config(_load(config_path, project_path))
    output_format_normalized = output_format.lower()
    if output_format_normalized == "yaml":
        output = yaml.safe_dump(payload, sort_keys=False)
    elif output_format_normalized == "json":
        output = json.dumps(payload, indent=2)
    else:
        raise typer.BadParameter("Format must be 'yaml' or 'json'.")
    typer.echo(output)


__all__ = ["app"]
