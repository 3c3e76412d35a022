"""Configuration management commands."""

import json
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from aie_packager.config import DEFAULT_CONFIG_FILE, DEFAULT_CONFIG_TEMPLATE, load_build_config

console = Console()


@click.group()
def config():
    """Manage build configuration files.

    \b
    Examples:
      # Initialize configuration
      aie-pack config init

      # Show current configuration
      aie-pack config show

      # Check it against the schema
      aie-pack config validate
    """
    pass


@config.command()
@click.option("--path", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_FILE))
@click.option("--force", is_flag=True, help="Overwrite without asking")
@click.pass_context
def init(ctx, config_path, force):
    """Initialize configuration file."""
    json_output = ctx.obj.get("json", False)
    config_file = Path(config_path)

    if config_file.exists() and not force:
        console.print("[yellow]⚠[/yellow] Configuration file already exists")
        if not click.confirm("Overwrite?"):
            ctx.exit(0)

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(DEFAULT_CONFIG_TEMPLATE)

    if json_output:
        click.echo(json.dumps({"status": "success", "config_file": str(config_file)}))
    else:
        console.print(f"\n[green]✓[/green] Configuration initialized: {config_file}")
        console.print("\n[dim]Edit this file to customize your settings[/dim]")


@config.command()
@click.option("--path", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_FILE))
@click.pass_context
def show(ctx, config_path):
    """Show current configuration."""
    json_output = ctx.obj.get("json", False)
    config_file = Path(config_path)

    if not config_file.exists():
        console.print("[yellow]⚠[/yellow] No configuration file found")
        console.print("\n[dim]Run 'aie-pack config init' to create one[/dim]")
        ctx.exit(1)

    config_content = config_file.read_text()

    if json_output:
        click.echo(json.dumps({"config_file": str(config_file), "content": config_content}))
    else:
        console.print(f"\n[bold]Configuration:[/bold] {config_file}\n")
        syntax = Syntax(config_content, "yaml", theme="monokai", line_numbers=True)
        console.print(syntax)


@config.command()
@click.option("--path", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_FILE))
@click.pass_context
def validate(ctx, config_path):
    """Validate configuration against the build schema."""
    json_output = ctx.obj.get("json", False)
    config_file = Path(config_path)

    if not config_file.exists():
        if json_output:
            click.echo(json.dumps({"valid": False, "error": "Config file not found"}))
        else:
            console.print("[bold red]❌ Error:[/bold red] Configuration file not found")
        ctx.exit(1)

    try:
        build_config = load_build_config(config_file)
    except (ValidationError, yaml.YAMLError) as e:
        if json_output:
            click.echo(json.dumps({"valid": False, "error": str(e)}))
        else:
            console.print(f"[bold red]❌ Error:[/bold red] {escape(str(e))}")
        ctx.exit(1)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "valid": True,
                    "config_file": str(config_file),
                    "config": build_config.model_dump(mode="json", exclude_none=True),
                }
            )
        )
    else:
        console.print("[green]✓[/green] Configuration is valid")
        console.print(
            f"  {build_config.backend.value} / {build_config.npu_version.value}"
            f" / {build_config.device_hal.value} -> {build_config.output_path}"
        )
