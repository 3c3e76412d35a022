"""XclbinPipeline - Drives a device module through every packaging stage.

Stages run strictly in sequence and each one reads files written by the
ones before it:

    toolchain -> work_dir -> npu_instructions -> unified_object -> core_elfs
        -> control_packets -> cdo -> pdi -> artifact

The first failure stops the run. Files already written are left in the
work directory for diagnosis, and nothing is written to the output path.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .backends import ChessCompiler, CoreCompiler, get_core_compiler
from .bootgen import BootImageGenerator
from .device import DeviceModule
from .exceptions import PackagerError
from .identifiers import UUIDGenerator, default_uuid_generator
from .models import BuildConfig, DeviceHAL, PipelineResult, PipelineStage
from .plugins import load_bootgen, load_translator
from .stages import (
    PDI_FILE,
    CoreElfBuilder,
    UnifiedObjectBuilder,
    XclbinPackager,
    check_ukernel_toolchain,
    emit_control_packets,
    emit_npu_instructions,
    generate_cdo,
    generate_pdi,
    pass_manager_options,
)
from .translation import DeviceTranslator

logger = logging.getLogger(__name__)


class XclbinPipeline:
    """Package a device module into a PDI (xrt-lite) or XCLBin (xrt).

    Example:
        >>> pipeline = XclbinPipeline(BuildConfig(output_path="design.xclbin"))
        >>> result = pipeline.run(load_device_module("device.yaml"))
        >>> result.success
        True
    """

    def __init__(
        self,
        config: BuildConfig,
        translator: Optional[DeviceTranslator] = None,
        bootgen: Optional[BootImageGenerator] = None,
        uuid_generator: Optional[UUIDGenerator] = None,
        compiler: Optional[CoreCompiler] = None,
    ):
        self.config = config
        self.translator = translator or load_translator(config.translator)
        self.bootgen = bootgen or load_bootgen(config.bootgen)
        self.uuid_generator = uuid_generator or default_uuid_generator()
        self.compiler = compiler or get_core_compiler(config)

        # Microkernels always go through chess; share the instance when the
        # core backend is chess too.
        if isinstance(self.compiler, ChessCompiler):
            self.ukernel_compiler = self.compiler
        else:
            self.ukernel_compiler = ChessCompiler(config)

        self._result: Optional[PipelineResult] = None

    def check_toolchains(self) -> None:
        """Resolve every toolchain the configuration needs.

        Raises:
            ResolutionError: If the backend or (for microkernels) chess
                can't be resolved
        """
        self.compiler.check_toolchain()
        if self.config.wants_matmul_ukernel:
            check_ukernel_toolchain(self.ukernel_compiler)

    @contextmanager
    def _stage(self, stage: PipelineStage) -> Iterator[None]:
        assert self._result is not None
        logger.info("Stage %s", stage.value)
        start = time.perf_counter()
        try:
            yield
        except (PackagerError, OSError):
            self._result.failed_stage = stage
            raise
        elapsed = time.perf_counter() - start
        if self.config.timing:
            self._result.stage_timings[stage.value] = elapsed
            logger.info("Stage %s took %.3fs", stage.value, elapsed)
        self._result.logs.append(f"{stage.value}: ok")

    def _make_work_dir(self) -> tuple[Path, bool]:
        """Return the work directory and whether it is temporary."""
        if self.config.work_dir is not None:
            work_dir = Path(self.config.work_dir)
            work_dir.mkdir(parents=True, exist_ok=True)
            return work_dir.resolve(), False
        return Path(tempfile.mkdtemp(prefix="aie-packager-")).resolve(), True

    def run(self, module: DeviceModule) -> PipelineResult:
        """Run all stages on ``module``.

        The module itself is never modified.

        Returns:
            PipelineResult; on failure ``failed_stage`` and ``error`` are set
        """
        config = self.config
        self._result = result = PipelineResult(success=False)
        result.metadata = {
            "backend": config.backend.value,
            "npu_version": config.npu_version.value,
            "device_hal": config.device_hal.value,
            "device": module.name,
        }

        work_dir: Optional[Path] = None
        temporary = False
        try:
            with self._stage(PipelineStage.TOOLCHAIN):
                self.check_toolchains()

            with self._stage(PipelineStage.WORK_DIR):
                work_dir, temporary = self._make_work_dir()
                result.work_dir = work_dir
                logger.debug("Work directory: %s", work_dir)

            self._run_stages(module, work_dir)
            result.success = True
        except (PackagerError, OSError) as e:
            result.error = str(e)
            stage = result.failed_stage.value if result.failed_stage else "unknown"
            logger.error("Packaging failed at stage %s: %s", stage, e)
        finally:
            if work_dir is not None and temporary and not config.keep_intermediates:
                shutil.rmtree(work_dir, ignore_errors=True)
                result.work_dir = None

        self._result = None
        return result

    def _run_stages(self, module: DeviceModule, work_dir: Path) -> None:
        config = self.config
        result = self._result
        assert result is not None

        if config.npu_instructions_path is not None:
            with self._stage(PipelineStage.NPU_INSTRUCTIONS):
                result.artifacts.append(
                    emit_npu_instructions(module, config.npu_instructions_path)
                )

        with self._stage(PipelineStage.UNIFIED_OBJECT):
            unified_object = UnifiedObjectBuilder(config, self.translator, self.compiler).build(
                module, work_dir
            )
            result.artifacts.append(unified_object)

        with self._stage(PipelineStage.CORE_ELFS):
            elf_files = CoreElfBuilder(
                config, self.translator, self.compiler, self.ukernel_compiler
            ).build(module, unified_object, work_dir)
            result.elf_files = {f"{col},{row}": name for (col, row), name in elf_files.items()}
            result.artifacts.extend(work_dir / name for name in elf_files.values())

        if config.emit_ctrl_pkt:
            with self._stage(PipelineStage.CONTROL_PACKETS):
                result.artifacts.append(
                    emit_control_packets(
                        module, self.translator, work_dir, pass_manager_options(config)
                    )
                )

        with self._stage(PipelineStage.CDO):
            result.artifacts.extend(generate_cdo(module, self.translator, elf_files, work_dir))

        pdi = work_dir / PDI_FILE
        with self._stage(PipelineStage.PDI):
            result.artifacts.append(generate_pdi(pdi, work_dir, self.bootgen))

        output = Path(config.output_path)
        with self._stage(PipelineStage.ARTIFACT):
            if config.device_hal == DeviceHAL.XRT_LITE:
                shutil.copyfile(pdi, output)
            else:
                packager = XclbinPackager(
                    self.bootgen,
                    self.uuid_generator,
                    kernel_id=config.xclbin_kernel_id,
                    kernel_name=config.xclbin_kernel_name,
                    instance_name=config.xclbin_instance_name,
                    install_dir=config.install_dir,
                    verbose=config.verbose,
                )
                packager.package(output, work_dir, config.input_xclbin)
            result.artifact_path = output
