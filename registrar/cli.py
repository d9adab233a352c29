"""CLI entry point for registrar."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from registrar.aggregation.models import FinalResult
from registrar.config import RegistrarConfig, load_config
from registrar.config.loader import DEFAULT_CONFIG_TEMPLATE
from registrar.errors import RegistrarError
from registrar.output import ArtifactWriter
from registrar.pipeline import Pipeline

app = typer.Typer(
    name="registrar",
    help="Build one registry artifact from the frontmatter of many documents.",
)

config_app = typer.Typer(help="Manage registrar configuration.")
app.add_typer(config_app, name="config")

# Status goes to stderr so the artifact can be piped from stdout
err_console = Console(stderr=True)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Global state
_config: RegistrarConfig | None = None


def _get_config() -> RegistrarConfig:
    if _config is None:
        return load_config()
    return _config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS.get(level, logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    config: Annotated[
        Optional[str], typer.Option("--config", "-c", help="Path to registrar.yaml")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _setup_logging("debug" if verbose else _config.log_level)


def _display_summary(result: FinalResult) -> None:
    stats = result.statistics
    err_console.print(
        f"[bold]Documents:[/bold] {stats.total}  "
        f"[green]processed:[/green] {stats.processed}  "
        f"[red]failed:[/red] {stats.failed}  "
        f"[dim]({stats.success_rate:.0%} in {stats.duration_seconds:.2f}s)[/dim]"
    )

    if result.failures:
        table = Table(title=f"Failures ({len(result.failures)})")
        table.add_column("Document", style="cyan")
        table.add_column("Directive", style="yellow")
        table.add_column("Message", style="red")
        for f in result.failures:
            table.add_row(f.doc_id, f.kind or "-", f.message)
        err_console.print(table)

    if result.directive_errors:
        table = Table(title=f"Directive errors ({len(result.directive_errors)})")
        table.add_column("Field", style="cyan")
        table.add_column("Directive", style="yellow")
        table.add_column("Message", style="red")
        for d in result.directive_errors:
            table.add_row(d.path or "<root>", d.kind, d.message)
        err_console.print(table)


@app.command()
def build(
    schema: Optional[str] = typer.Argument(None, help="Schema file (defaults to schema.path in config)"),
    pattern: Annotated[
        Optional[list[str]], typer.Option("--pattern", "-p", help="Glob for source documents (repeatable)")
    ] = None,
    root: Annotated[Optional[str], typer.Option("--root", help="Directory the patterns are relative to")] = None,
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Write the artifact here")] = None,
    format: Annotated[
        Optional[str], typer.Option("--format", "-f", help="Output format: json, yaml or markdown")
    ] = None,
    report: bool = typer.Option(False, "--report", help="Also write a YAML run report"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Process everything but write nothing"),
) -> None:
    """Extract, transform and aggregate frontmatter into one artifact."""
    cfg = _get_config()
    overrides: dict = {}
    if pattern:
        overrides["sources"] = cfg.sources.model_copy(update={"patterns": list(pattern)})
    if root:
        overrides["sources"] = overrides.get("sources", cfg.sources).model_copy(update={"root": root})
    if output or format:
        update = {k: v for k, v in (("path", output), ("format", format)) if v}
        overrides["output"] = cfg.output.model_copy(update=update)
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    if cfg.output.format not in (None, "json", "yaml", "markdown"):
        rprint(f"[red]Error:[/red] unsupported format {cfg.output.format!r}")
        raise typer.Exit(1)

    try:
        run = asyncio.run(Pipeline(cfg).run(schema))
    except RegistrarError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _display_summary(run.result)

    if run.output is None:
        rprint(f"[red]Error:[/red] {run.error}")
        raise typer.Exit(1)

    writer = ArtifactWriter(cfg.output)
    dest = writer.write(run.output, dry_run=dry_run)
    if dest is not None:
        verb = "Would write" if dry_run else "Wrote"
        err_console.print(f"[green]{verb}[/green] {dest}")
    if report and not dry_run:
        err_console.print(f"[green]Report:[/green] {writer.write_report(run.result)}")


@app.command()
def directives(
    schema: str = typer.Argument(..., help="Schema file"),
) -> None:
    """List the directives of a schema, grouped by intent."""
    try:
        _, classified = Pipeline(_get_config()).load_schema(schema)
    except RegistrarError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not len(classified):
        rprint("[yellow]No directives found.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Directives ({len(classified)})")
    table.add_column("Intent", style="magenta")
    table.add_column("Path", style="cyan")
    table.add_column("Directive", style="yellow")
    table.add_column("Timing")
    table.add_column("Value", style="green")
    for d in classified.all():
        timing = d.timing.value if d.timing else "-"
        table.add_row(d.intent.value, str(d.path) or "<root>", d.kind.value, timing, repr(d.value))
    rprint(table)
    item_path = classified.item_path
    rprint(f"[dim]Item path:[/dim] {item_path if item_path is not None else '(none)'}")


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(by_alias=True), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default registrar.yaml in current directory."""
    target = Path("registrar.yaml")
    if target.exists() and not force:
        rprint("[yellow]registrar.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
