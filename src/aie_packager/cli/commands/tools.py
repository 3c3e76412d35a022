"""Toolchain discovery command."""

import json
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aie_packager.exceptions import ResolutionError
from aie_packager.models import NpuVersion
from aie_packager.plugins import BOOTGEN_GROUP, TRANSLATOR_GROUP, registered_names
from aie_packager.tools import XCLBINUTIL, describe_search, find_peano, find_tool, find_vitis

console = Console()


def _probe(resolve) -> tuple[Optional[str], Optional[str]]:
    """Return (location, error) for one resolver call."""
    try:
        return str(resolve()), None
    except ResolutionError as e:
        return None, str(e)


@click.command()
@click.option(
    "--npu-version",
    type=click.Choice([v.value for v in NpuVersion]),
    default=NpuVersion.NPU1.value,
    help="Hardware family to validate the chess install for",
)
@click.option("--vitis-dir", type=click.Path(file_okay=False), help="Vitis install directory")
@click.option("--peano-dir", type=click.Path(file_okay=False), help="Peano install directory")
@click.option("--install-dir", type=click.Path(file_okay=False), help="Directory holding packaging tools")
@click.pass_context
def tools(ctx, npu_version, vitis_dir, peano_dir, install_dir):
    """Show which toolchains can be found.

    \b
    Examples:
      aie-pack tools
      aie-pack tools --npu-version npu4 --vitis-dir /opt/Xilinx/Vitis/2024.2
    """
    json_output = ctx.obj.get("json", False)

    tools_info = []
    for name, resolve in (
        ("chess (Vitis)", lambda: find_vitis(vitis_dir, npu_version).root),
        ("peano (llvm-aie)", lambda: find_peano(peano_dir)),
        (XCLBINUTIL, lambda: find_tool(XCLBINUTIL, install_dir)),
    ):
        location, error = _probe(resolve)
        tools_info.append({"name": name, "found": error is None, "location": location, "error": error})

    plugins = {
        "translators": registered_names(TRANSLATOR_GROUP),
        "bootgens": registered_names(BOOTGEN_GROUP),
    }

    if json_output:
        click.echo(json.dumps({"tools": tools_info, "plugins": plugins, "search": describe_search()}, indent=2))
        return

    table = Table(title="Toolchains", show_header=True)
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Location / Reason", style="dim")
    for info in tools_info:
        if info["found"]:
            table.add_row(info["name"], "[green]✓ Found[/green]", info["location"])
        else:
            table.add_row(info["name"], "[red]✗ Missing[/red]", escape(info["error"]))
    console.print(table)
    console.print(f"Translators: {', '.join(plugins['translators'])}")
    console.print(f"Bootgens: {', '.join(plugins['bootgens'])}")

    if not ctx.obj.get("quiet", False):
        console.print("\n[bold]Search locations:[/bold]")
        for line in describe_search():
            console.print(f"  {line}")
