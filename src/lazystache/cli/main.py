import json
import logging
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import ContentType, MissingPolicy, RenderConfig, load_render_config
from ..errors import TemplateError
from ..library import describe_filters, standard_library
from ..template import TemplateEngine
from ..validator import TemplateValidator, ValidationLevel

console = Console()
err_console = Console(stderr=True)


def load_data(path: Path) -> Any:
    """Load template data from a JSON or YAML file."""
    with open(path, "r") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def build_config(
    config_path: Optional[Path], template_path: Path, strict: bool, text: bool
) -> RenderConfig:
    """Merge a config file with command line overrides."""
    config = load_render_config(config_path) if config_path else RenderConfig()
    updates = {}
    if config.template_name is None:
        updates["template_name"] = template_path.name
    if strict:
        updates["missing"] = MissingPolicy.FAIL
    if text:
        updates["content_type"] = ContentType.TEXT
    return config.model_copy(update=updates)


def setup_logging(verbose: bool = False) -> None:
    """Route lazystache log records to stderr through rich.

    Log levels:
    - Normal: only warnings and errors
    - Verbose (-v): DEBUG, including compilation and failed tags
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(console=err_console, show_time=verbose, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("lazystache")
    package_logger.setLevel(level)
    package_logger.handlers = [handler]
    package_logger.propagate = False


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def lazystache(verbose):
    """lazystache - Mustache templates with lazy filters."""
    setup_logging(verbose)


@lazystache.command()
@click.argument("template", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--data",
    "-d",
    "data_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML or JSON file with template data",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML rendering configuration",
)
@click.option("--strict", is_flag=True, help="Fail on unresolved identifiers")
@click.option("--text", is_flag=True, help="Render plain text (no HTML escaping)")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output file")
def render(template, data_path, config_path, strict, text, output):
    """Render a template file with data."""
    try:
        config = build_config(config_path, template, strict, text)
        engine = TemplateEngine(config)
        data = load_data(data_path) if data_path else None
        rendered = engine.render(template.read_text(encoding="utf-8"), data)
    except (TemplateError, ValueError, OSError, yaml.YAMLError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise click.Abort()

    if output:
        output.write_text(rendered, encoding="utf-8")
        err_console.print(f"[green]✓ Output saved to {output}[/green]")
    else:
        click.echo(rendered, nl=False)


@lazystache.command()
@click.argument("template", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--level",
    type=click.Choice(["permissive", "standard", "strict"]),
    default="standard",
    help="Validation strictness level",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def validate(template, level, output_format):
    """Validate template syntax and filter references."""
    engine = TemplateEngine(RenderConfig(template_name=template.name))
    validator = TemplateValidator(engine=engine, level=ValidationLevel(level))
    result = validator.validate(template.read_text(encoding="utf-8"))

    if output_format == "json":
        output = {
            "is_valid": result.is_valid,
            "errors": result.errors,
            "warnings": result.warnings,
            "variables": sorted(result.variables),
            "metadata": result.metadata,
        }
        click.echo(json.dumps(output, indent=2))
    else:
        if result.is_valid:
            console.print("✅ [green]Template is valid[/green]")
        else:
            console.print("❌ [red]Template validation failed[/red]")

        if result.errors:
            console.print("\n[red]Errors:[/red]")
            for error in result.errors:
                console.print(f"  • {error}")

        if result.warnings:
            console.print("\n[yellow]Warnings:[/yellow]")
            for warning in result.warnings:
                console.print(f"  • {warning}")

        console.print(
            f"\n[dim]Template variables:[/dim] {', '.join(sorted(result.variables))}"
        )

    if not result.is_valid:
        raise SystemExit(1)


@lazystache.command()
def filters():
    """List the built-in template filters."""
    library = standard_library()
    table = Table(title="Built-in Filters")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="green")

    for name in describe_filters(library):
        head, *rest = name.split(".")
        filter_ = library[head]
        for key in rest:
            filter_ = filter_[key]
        table.add_row(name, type(filter_).__name__)

    console.print(table)


if __name__ == "__main__":
    lazystache()
