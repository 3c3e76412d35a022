"""AIE Packager CLI.

Command-line front end for packaging device modules into PDIs and XCLBins.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from aie_packager import __version__

# Initialize rich console for beautiful output
console = Console()

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def setup_logging(verbose: int) -> None:
    """Route library logging through rich; -v for info, -vv for debug."""
    logging.basicConfig(
        level=LOG_LEVELS.get(verbose, logging.DEBUG),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="aie-pack")
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option("--quiet", is_flag=True, help="Minimal output")
@click.pass_context
def cli(ctx, verbose, json, quiet):
    """AIE Packager - Package lowered AIE device programs for the NPU.

    \b
    Examples:
      aie-pack build device.yaml -o design.xclbin
      aie-pack build device.yaml -o design.pdi --device-hal xrt-lite
      aie-pack tools
      aie-pack config init
    """
    # Store settings in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["json"] = json
    ctx.obj["quiet"] = quiet

    setup_logging(verbose)

    if not quiet and not json and ctx.invoked_subcommand:
        console.print(
            Panel.fit(
                "[bold cyan]AIE Packager[/bold cyan]\n" f"Version {__version__}",
                border_style="cyan",
            )
        )


def register_commands() -> None:
    from aie_packager.cli.commands import build
    from aie_packager.cli.commands import config
    from aie_packager.cli.commands import tools

    cli.add_command(build.build)
    cli.add_command(tools.tools)
    cli.add_command(config.config)


def main():
    """Entry point for the CLI."""
    register_commands()
    cli(obj={})


if __name__ == "__main__":
    main()
