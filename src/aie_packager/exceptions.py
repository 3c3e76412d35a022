"""Exceptions raised by the packaging pipeline.

Every stage raises one of these; the pipeline catches them at its boundary
and turns the first one into a failed ``PipelineResult``.
"""


class PackagerError(Exception):
    """Base exception for packaging errors."""

    pass


# Resolution errors


class ResolutionError(PackagerError):
    """A tool, toolchain or license could not be located."""

    pass


class ToolchainNotFoundError(ResolutionError):
    """The vendor (chess) toolchain directory could not be found."""

    pass


class LicenseMissingError(ResolutionError):
    """No usable license environment variable or license file."""

    pass


class ToolchainIncompleteError(ResolutionError):
    """The toolchain was found but lacks a required component."""

    pass


class ToolNotFoundError(ResolutionError):
    """A named packaging tool is not in the install dir or on PATH."""

    pass


class UnsupportedNpuVersionError(ResolutionError):
    """The hardware family is not one of the supported NPU versions."""

    pass


class PluginNotFoundError(ResolutionError):
    """A translator or bootgen implementation could not be selected or loaded."""

    pass


# Composition errors


class CompositionError(PackagerError):
    """Caller-supplied options could not be composed into a command line."""

    pass


class MalformedFlagStringError(CompositionError):
    """Additional optimizer flags are not wrapped in a pair of quotes."""

    pass


# Translation errors


class TranslationError(PackagerError):
    """The device module could not be lowered or translated."""

    pass


class LoweringFailedError(TranslationError):
    """The lowering pass pipeline failed."""

    pass


class TranslationFailedError(TranslationError):
    """Translation of the lowered module to LLVM IR or a side file failed."""

    pass


class CdoGenerationFailedError(TranslationError):
    """Serializing the device configuration into CDO blobs failed."""

    pass


class MissingInstructionsError(TranslationError):
    """The device has no usable ``npu_instructions`` attribute."""

    pass


# Execution errors


class ExecutionError(PackagerError):
    """An external program could not be run or returned an error."""

    pass


class ProgramNotFoundError(ExecutionError):
    """The program path does not exist; nothing was spawned."""

    def __init__(self, program: str):
        super().__init__(f"Program {program} does not exist")
        self.program = program


class ToolFailedError(ExecutionError):
    """A program exited nonzero or could not be spawned."""

    def __init__(
        self,
        program: str,
        returncode: int | None,
        output: str = "",
        spawn_error: str = "",
    ):
        message = f"Failed to run tool: {program}. Error: '{spawn_error}'"
        if returncode is not None:
            message += f" (exit code {returncode})"
        super().__init__(message)
        self.program = program
        self.returncode = returncode
        self.output = output
        self.spawn_error = spawn_error


class AssembleFailedError(ExecutionError):
    """Assembling a source payload into an object file failed."""

    def __init__(self, output_file: str, message: str = ""):
        super().__init__(f"Failed to assemble {output_file}" + (f": {message}" if message else ""))
        self.output_file = output_file


class BackendCompileFailedError(ExecutionError):
    """The backend could not compile the unified object."""

    pass


class LinkFailedError(ExecutionError):
    """Linking a core ELF failed."""

    def __init__(self, col: int, row: int, message: str = ""):
        text = f"failed to generate elf for core: ({col}, {row})"
        if message:
            text += f": {message}"
        super().__init__(text)
        self.col = col
        self.row = row


class BootImageFailedError(ExecutionError):
    """The boot-image generator returned a nonzero status."""

    pass


# Packaging errors


class PackagingFailedError(PackagerError):
    """Building the XCLBin container failed."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output
