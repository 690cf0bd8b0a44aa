"""
Command-line interface for metabind.

Provides extract and paths commands for dumping database metadata graphs.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from metabind import __version__
from metabind.config import OUTPUT_FORMATS, ExtractionConfig
from metabind.context import MetadataContext
from metabind.descriptors import registry
from metabind.errors import MetabindError
from metabind.models import ROOT_TYPES, Catalog, Column, Schema
from metabind.models import Table as TableEntity
from metabind.output import dump_graph, write_graph

console = Console()
# Logs go to stderr; stdout carries the echoed document.
log_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, rich_tracebacks=True)],
    )


@click.group()
@click.version_option(version=__version__, prog_name="metabind")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    metabind - Database metadata extraction into typed entity graphs

    Walk catalogs, schemas, tables, keys and routines of a database and write
    the resulting graph as JSON or YAML.
    """
    setup_logging(verbose)


def _open_provider(sqlite: Optional[Path], oracle_conn: Optional[str], snapshot: Optional[Path]) -> Any:
    """Build the provider named by exactly one source option."""
    given = [name for name, value in (("--sqlite", sqlite), ("--oracle_conn", oracle_conn),
                                      ("--snapshot", snapshot)) if value]
    if len(given) != 1:
        console.print("[red]Error: Specify exactly one of --sqlite, --oracle_conn or --snapshot[/red]")
        sys.exit(1)

    if sqlite:
        from metabind.providers import SqliteProvider
        return SqliteProvider(sqlite)
    if oracle_conn:
        from metabind.providers import OracleProvider
        return OracleProvider(oracle_conn)

    from metabind.providers import MemoryProvider
    return MemoryProvider.from_yaml(snapshot)


def _count(context: MetadataContext, roots: List[Any], entity_type: type) -> int:
    total = 0
    for root in roots:
        if isinstance(root, entity_type):
            total += 1
        total += len(context.collect(root, entity_type))
    return total


@cli.command()
@click.option(
    "--sqlite",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="SQLite database file",
)
@click.option(
    "--oracle_conn",
    type=str,
    default=None,
    help="Oracle connection string (user/pwd@host:port/service)",
)
@click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML snapshot of provider rows (offline extraction)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML file with extraction settings",
)
@click.option(
    "--suppress",
    type=str,
    multiple=True,
    help="Path to skip, e.g. table/index_info (repeatable)",
)
@click.option(
    "--nonempty/--allow-empty",
    default=None,
    help="Synthesize virtual catalogs and schemas where the database reports none",
)
@click.option(
    "--catalog",
    type=str,
    default=None,
    help="Start from the schemas of this catalog",
)
@click.option(
    "--schema",
    "schema_pattern",
    type=str,
    default=None,
    help="Start from schemas matching this LIKE pattern",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(list(OUTPUT_FORMATS)),
    default=None,
    help="Output format (default: json)",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (prints the document when omitted)",
)
def extract(
    sqlite: Optional[Path],
    oracle_conn: Optional[str],
    snapshot: Optional[Path],
    config_file: Optional[Path],
    suppress: Tuple[str, ...],
    nonempty: Optional[bool],
    catalog: Optional[str],
    schema_pattern: Optional[str],
    output_format: Optional[str],
    output: Optional[Path],
) -> None:
    """
    Extract the metadata graph of a database.

    Examples:

        # Whole SQLite database, skipping index and privilege lookups
        metabind extract --sqlite bank.db \\
            --suppress table/index_info --suppress table/column_privileges \\
            --output bank_metadata.json

        # One Oracle schema as YAML
        metabind extract --oracle_conn "user/pwd@localhost:1521/ORCL" \\
            --schema CORE --format yaml --output core.yaml
    """
    try:
        config = ExtractionConfig.from_yaml(config_file) if config_file else ExtractionConfig()
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: Invalid config: {e}[/red]")
        sys.exit(1)
    config.suppress.extend(suppress)
    if nonempty is not None:
        config.nonempty = nonempty
    if catalog is not None:
        config.catalog = catalog
    if schema_pattern is not None:
        config.schema_pattern = schema_pattern
    if output_format is not None:
        config.output_format = output_format

    for path in config.unknown_paths(registry.known_paths(ROOT_TYPES)):
        console.print(f"[yellow]Warning: {path} names no field; run 'metabind paths' to list them[/yellow]")

    provider = _open_provider(sqlite, oracle_conn, snapshot)
    try:
        with provider:
            context = MetadataContext.from_config(provider, config)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Extracting metadata...", total=None)
                roots = context.extract(config)
                progress.update(task, completed=True)
    except MetabindError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if output is None:
        click.echo(dump_graph(roots, config.output_format, context.diagnostics))
        return

    write_graph(roots, output, config.output_format, context.diagnostics)
    console.print(f"\n[green]Metadata written to: {output}[/green]")

    table = Table(title="Extraction Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Catalogs", str(_count(context, roots, Catalog)))
    table.add_row("Schemas", str(_count(context, roots, Schema)))
    table.add_row("Tables", str(_count(context, roots, TableEntity)))
    table.add_row("Columns", str(_count(context, roots, Column)))
    table.add_row("Cross References", str(sum(len(r.cross_references) for r in roots)))
    table.add_row("Warnings", str(len(context.diagnostics.warnings)))

    console.print(table)

    if context.diagnostics.warnings:
        warnings_table = Table(title="Warnings")
        warnings_table.add_column("Path", style="cyan")
        warnings_table.add_column("Status", style="yellow")
        warnings_table.add_column("Detail")
        for diagnostic in context.diagnostics.warnings:
            warnings_table.add_row(diagnostic.path, diagnostic.status.value, diagnostic.detail)
        console.print(warnings_table)


@cli.command()
@click.option(
    "--kind",
    type=click.Choice(["column", "collection", "derived"]),
    default=None,
    help="Only list paths of this kind",
)
def paths(kind: Optional[str]) -> None:
    """
    List every path accepted by --suppress.

    Example:

        metabind paths --kind collection
    """
    table = Table(title="Suppressible Paths")
    table.add_column("Path", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Source", style="yellow")

    for descriptor in registry.walk(ROOT_TYPES):
        rows = [(d.path, "column", d.column_label) for d in descriptor.columns]
        rows += [(d.path, "collection", getattr(d.operation, "value", str(d.operation)))
                 for d in descriptor.invocations]
        rows += [(d.path, "derived", "get_cross_reference") for d in descriptor.derived]
        for path, path_kind, operation in rows:
            if kind is None or kind == path_kind:
                table.add_row(path, path_kind, operation)

    console.print(table)


if __name__ == "__main__":
    cli()
