"""Build command: package a device module."""

import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aie_packager.config import DEFAULT_CONFIG_FILE, merge_overrides
from aie_packager.device import load_device_module
from aie_packager.exceptions import PackagerError
from aie_packager.models import Backend, DeviceHAL, Microkernel, NpuVersion
from aie_packager.pipeline import XclbinPipeline

console = Console()


def _choices(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def _load_config_file(config_file):
    """Return the raw mapping from ``config_file`` (or the default file)."""
    path = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
    if not path.exists():
        if config_file:
            raise click.BadParameter(f"{path} does not exist", param_hint="--config")
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


@click.command()
@click.argument("device_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", "config_file", type=click.Path(), help="Build configuration YAML")
@click.option("--output", "-o", "output_path", type=click.Path(), help="Output PDI or XCLBin path")
@click.option("--backend", "-b", type=click.Choice(_choices(Backend)), help="Core compiler backend")
@click.option("--npu-version", type=click.Choice(_choices(NpuVersion)), help="Hardware family")
@click.option("--device-hal", type=click.Choice(_choices(DeviceHAL)), help="Deployment target")
@click.option("--target-arch", help="Override the family's target architecture")
@click.option("--work-dir", type=click.Path(file_okay=False), help="Keep intermediates here")
@click.option("--vitis-dir", type=click.Path(file_okay=False), help="Vitis install directory")
@click.option("--peano-dir", type=click.Path(file_okay=False), help="Peano install directory")
@click.option(
    "--install-dir", type=click.Path(file_okay=False), help="Directory holding iree-aie-xclbinutil"
)
@click.option(
    "--input-xclbin", type=click.Path(exists=True, dir_okay=False), help="Base XCLBin to merge into"
)
@click.option("--cache-dir", type=click.Path(file_okay=False), help="Memoized object directory")
@click.option("--npu-instructions", "npu_instructions_path", type=click.Path(), help="Dump NPU instructions here")
@click.option("--ukernel", type=click.Choice(_choices(Microkernel)), help="Microkernels to link")
@click.option("--emit-ctrl-pkt", is_flag=True, help="Write control packets")
@click.option("--keep-intermediates", is_flag=True, help="Keep the work directory")
@click.option("--timing", is_flag=True, help="Report per-stage timings")
@click.option("--print-ir-before-all", is_flag=True, help="Print IR before each pass")
@click.option("--print-ir-after-all", is_flag=True, help="Print IR after each pass")
@click.option("--print-ir-module-scope", is_flag=True, help="Print the whole module")
@click.option("--kernel-id", "xclbin_kernel_id", help="XCLBin kernel id (default 0x101)")
@click.option("--kernel-name", "xclbin_kernel_name", help="XCLBin kernel name (default MLIR_AIE)")
@click.option("--instance-name", "xclbin_instance_name", help="XCLBin instance name (default MLIRAIEV1)")
@click.option("--translator", help="Registered device translator ('stub' for the built-in one)")
@click.option("--bootgen", help="Registered boot image generator ('stub' for the built-in one)")
@click.option(
    "--peano-opt-flags",
    "additional_peano_opt_flags",
    help='Extra flags for peano opt, e.g. \'"-O2 -time-passes"\'',
)
@click.pass_context
def build(ctx, device_file, config_file, **options):
    """Package DEVICE_FILE (JSON or YAML device module).

    \b
    Examples:
      # XCLBin with the open-source backend
      aie-pack build device.yaml -o design.xclbin

      # Raw PDI for xrt-lite, compiled with chess
      aie-pack build device.yaml -o design.pdi --device-hal xrt-lite -b chess

      # Append to an existing container
      aie-pack build device.yaml -o merged.xclbin --input-xclbin base.xclbin
    """
    json_output = ctx.obj.get("json", False)
    quiet = ctx.obj.get("quiet", False)
    # Unset flags must not override values from the config file
    options = {k: v for k, v in options.items() if v is not False}
    if ctx.obj.get("verbose", 0):
        options["verbose"] = True

    try:
        config = merge_overrides(_load_config_file(config_file), options)
    except (ValidationError, yaml.YAMLError) as e:
        _fail(ctx, json_output, f"Invalid build configuration: {e}")

    try:
        module = load_device_module(device_file)
    except (ValidationError, yaml.YAMLError, json.JSONDecodeError) as e:
        _fail(ctx, json_output, f"Invalid device module {device_file}: {e}")

    if not quiet and not json_output:
        console.print(f"\n[cyan]Packaging:[/cyan] {device_file}")
        console.print(f"  Backend: {config.backend.value}")
        console.print(f"  NPU: {config.npu_version.value}")
        console.print(f"  Target: {config.device_hal.value}")
        console.print()

    if config.verbose:
        # Tool command lines and output are logged at INFO
        root = logging.getLogger()
        if root.getEffectiveLevel() > logging.INFO:
            root.setLevel(logging.INFO)

    try:
        pipeline = XclbinPipeline(config)
    except PackagerError as e:
        _fail(ctx, json_output, str(e))

    result = pipeline.run(module)

    if json_output:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    elif result.success:
        if not quiet:
            for log in result.logs:
                console.print(f"  {log}")
            if result.stage_timings:
                table = Table(title="Stage Timings", show_header=True)
                table.add_column("Stage", style="cyan")
                table.add_column("Seconds", justify="right")
                for stage, seconds in result.stage_timings.items():
                    table.add_row(stage, f"{seconds:.3f}")
                console.print(table)
        console.print(f"[green]✓[/green] Wrote {result.artifact_path}")
    else:
        console.print(
            f"\n[bold red]Error:[/bold red] stage {result.failed_stage.value} failed: {escape(result.error)}"
        )

    if not result.success:
        ctx.exit(1)


def _fail(ctx, json_output, message):
    if json_output:
        click.echo(json.dumps({"status": "error", "error": message}))
    else:
        console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    ctx.exit(1)
