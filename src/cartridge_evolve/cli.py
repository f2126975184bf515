"""Command-line interface for cartridge-evolve."""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.config import EngineConfig
from .core.logging import get_logger, setup_logging
from .schema.compatibility import CompatibilityChecker
from .schema.converter import SchemaConverter
from .schema.errors import SchemaEngineError
from .schema.fingerprint import canonical_json, fingerprint
from .schema.manager import SchemaManager
from .schema.parser import load_schema
from .schema.target import TargetSchema
from .schema.types import CompatibilityPolicy, CompatibilityResult

console = Console()
logger = get_logger(__name__)

POLICY_CHOICES = [policy.value for policy in CompatibilityPolicy]


@click.group()
@click.version_option(version=__version__, prog_name="cartridge-evolve")
@click.option("--verbose", "-v", is_flag=True, help="Show engine log output")
def cli(verbose: bool):
    """Cartridge-Evolve: schema evolution engine

    Converts Avro schemas to columnar table schemas and checks whether a new
    schema version can safely replace an old one.
    """
    setup_logging(cli_mode=not verbose)


@cli.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)
def convert(schema_file: Path, output_format: str):
    """Convert an Avro schema file to a table schema."""

    try:
        target = SchemaConverter().convert(load_schema(schema_file))
    except SchemaEngineError as e:
        console.print(f"[red]✗ Cannot convert {schema_file}: {escape(str(e))}[/red]")
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(target.to_json(), indent=2))
    else:
        _display_target_schema(target)


@cli.command()
@click.argument("old_schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new_schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--policy",
    "-p",
    type=click.Choice(POLICY_CHOICES, case_sensitive=False),
    default=CompatibilityPolicy.BACKWARD.value,
    show_default=True,
    help="Compatibility policy",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def check(old_schema: Path, new_schema: Path, policy: str, as_json: bool):
    """Check whether NEW_SCHEMA may replace OLD_SCHEMA.

    Exits with status 1 when the schemas are incompatible.
    """

    try:
        old = load_schema(old_schema)
        new = load_schema(new_schema)
    except SchemaEngineError as e:
        console.print(f"[red]✗ Cannot load schema: {escape(str(e))}[/red]")
        sys.exit(2)

    result = CompatibilityChecker().check(old, new, policy)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _display_result(result)

    if not result.compatible:
        sys.exit(1)


@cli.command(name="fingerprint")
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--canonical", is_flag=True, help="Also print the canonical form")
def fingerprint_command(schema_file: Path, canonical: bool):
    """Print the structural fingerprint of a schema file."""

    try:
        node = load_schema(schema_file)
    except SchemaEngineError as e:
        console.print(f"[red]✗ Cannot load schema: {escape(str(e))}[/red]")
        sys.exit(1)

    click.echo(fingerprint(node))
    if canonical:
        click.echo(canonical_json(node))


@cli.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to configuration file",
)
def validate(config: Path):
    """Validate a configuration file and the schemas it registers."""

    try:
        console.print(f"[blue]Validating configuration: {config}[/blue]")
        engine_config = EngineConfig.from_file(config)

        manager = SchemaManager.from_config(engine_config)
        for table_name in manager.registry.names():
            manager.get_or_create_schema(manager.registry.require(table_name).schema)

        console.print("[green]✓ Configuration is valid[/green]")
        _display_config_summary(engine_config)

    except Exception as e:
        logger.debug("Configuration validation failed", error=str(e))
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        sys.exit(1)


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("cartridge-evolve.yaml"),
    show_default=True,
    help="Where to write the configuration",
)
def init(output: Path):
    """Initialize a new cartridge-evolve configuration file."""

    config_template = """# Cartridge-Evolve Configuration

# Converted-schema cache
cache:
  enabled: true
  max_size: 1000
  ttl_seconds: 300

# Compatibility policies: backward, forward, full, none
compatibility:
  default_policy: backward
  table_policies:
    audit_log: none

# Tables registered at startup (schema paths are relative to this file)
tables:
  - name: users
    schema_path: schemas/user.avsc
    primary_key: id
    partition_by: [country]
    evolution_policy: full

# Monitoring configuration
monitoring:
  prometheus:
    enabled: false
    port: 8080
  log_level: "INFO"
  structured_logging: false
"""

    if output.exists():
        console.print(f"[yellow]Configuration file already exists: {output}[/yellow]")
        if not click.confirm("Overwrite existing file?"):
            return

    output.write_text(config_template)
    console.print(f"[green]Created configuration file: {output}[/green]")


def _display_target_schema(target: TargetSchema):
    """Display the columns of a converted schema."""

    table = Table(title=f"Table Schema: {target.name}")
    table.add_column("#", style="dim")
    table.add_column("Column", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Nullable", style="yellow")

    for position, column in enumerate(target, start=1):
        table.add_row(
            str(position),
            column.name,
            column.data_type.simple_string(),
            "Yes" if column.nullable else "No",
        )

    console.print(table)


def _display_result(result: CompatibilityResult):
    """Display a compatibility verdict with its issues and warnings."""

    if result.compatible:
        console.print(f"[green]✓ Compatible ({result.policy.value})[/green]")
    else:
        console.print(f"[red]✗ Incompatible ({result.policy.value})[/red]")

    for issue in result.issues:
        console.print(f"  [red]issue:[/red] {escape(issue)}", highlight=False)
    for warning in result.warnings:
        console.print(f"  [yellow]warning:[/yellow] {escape(warning)}", highlight=False)


def _display_config_summary(config: EngineConfig, title: Optional[str] = None):
    """Display a summary of the configuration."""

    table = Table(title=title or "Configuration Summary")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("Cache", "Enabled" if config.cache.enabled else "Disabled")
    table.add_row("Cache Max Size", str(config.cache.max_size))
    table.add_row("Cache TTL (s)", str(config.cache.ttl_seconds))
    table.add_row("Default Policy", config.compatibility.default_policy.value)
    table.add_row("Registered Tables", str(len(config.tables)))
    table.add_row(
        "Prometheus", "Enabled" if config.monitoring.prometheus.enabled else "Disabled"
    )

    console.print(table)

    if config.tables:
        tables = Table(title="Registered Tables")
        tables.add_column("Table", style="cyan")
        tables.add_column("Schema", style="green")
        tables.add_column("Policy", style="yellow")

        for table_config in config.tables:
            tables.add_row(
                table_config.name,
                str(table_config.schema_path),
                config.get_policy(table_config.name).value,
            )

        console.print(tables)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
