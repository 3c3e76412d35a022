"""AIE Packager - Package lowered AIE device programs into PDIs and XCLBins."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("aie-packager")
except PackageNotFoundError:
    # Package not installed (running from source without pip install -e)
    __version__ = "0.0.0.dev"

from .device import DeviceModule, load_device_module
from .models import BuildConfig, PipelineResult, PipelineStage
from .pipeline import XclbinPipeline

__all__ = [
    "BuildConfig",
    "DeviceModule",
    "PipelineResult",
    "PipelineStage",
    "XclbinPipeline",
    "load_device_module",
    "__version__",
]
