"""Pytest configuration for aie-packager tests.

External tools (peano's opt/llc/clang, chess's xchesscc and
iree-aie-xclbinutil) are replaced by small Python scripts that record
their argv to a JSON-lines log and write whatever output file they are
asked for.
"""

import json
import stat
import sys
from pathlib import Path

import pytest

from aie_packager.device import Core, DeviceModule, Tile
from aie_packager.identifiers import RandomUUIDGenerator
from aie_packager.models import BuildConfig

TOOL_ENV_VARS = (
    "VITIS",
    "XILINXD_LICENSE_FILE",
    "LM_LICENSE_FILE",
    "PEANO_INSTALL_DIR",
    "AIE_PACKAGER_INSTALL_DIR",
)

SCRIPT_HEADER = """#!{python}
import json
import sys

with open({log!r}, "a") as _log:
    _log.write(json.dumps({{"tool": {name!r}, "argv": sys.argv[1:]}}) + "\\n")
args = sys.argv[1:]
"""

# Writes a small payload to the path following -o
WRITE_OUTPUT = """
out = args[args.index("-o") + 1]
with open(out, "wb") as f:
    f.write(b"fake " + {name!r}.encode())
"""

FAIL = """
print("{name}: error: simulated failure", file=sys.stderr)
sys.exit(3)
"""

# Container is a JSON file of sections, so tests can look inside it.
XCLBINUTIL = """
def section_path(spec):
    kind, fmt, path = spec.split(":", 2)
    return kind, path

def read_json(path):
    with open(path) as f:
        return json.load(f)

if "--dump-section" in args:
    kind, path = section_path(args[args.index("--dump-section") + 1])
    container = read_json(args[args.index("--input") + 1])
    with open(path, "w") as f:
        json.dump(container["sections"][kind], f)
    sys.exit(0)

container = {"sections": {}, "kernels": []}
if "--input" in args:
    container = read_json(args[args.index("--input") + 1])
for i, arg in enumerate(args):
    if arg == "--add-replace-section":
        kind, path = section_path(args[i + 1])
        container["sections"][kind] = read_json(path)
    elif arg == "--add-kernel":
        container["kernels"].append(read_json(args[i + 1]))
with open(args[args.index("--output") + 1], "w") as f:
    json.dump(container, f)
"""


def write_script(path: Path, source: str) -> Path:
    """Write an executable script, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class FakeToolchain:
    """Fake peano, chess and xclbinutil installs under one directory."""

    def __init__(self, root: Path):
        self.root = root
        root.mkdir(parents=True, exist_ok=True)
        self.log = root / "calls.jsonl"
        self.peano_dir = root / "peano"
        self.vitis_dir = root / "vitis"
        self.install_dir = root / "iree"
        self.license_file = root / "license.lic"
        self.license_file.write_text("FEATURE fake\n")

        for tool in ("opt", "llc", "clang"):
            self.add_tool(self.peano_dir / "bin" / tool, tool, WRITE_OUTPUT)

        aietools = self.vitis_dir / "aietools"
        for target_dir in ("target_aie_ml", "target_aie2p"):
            bin_dir = aietools / "tps" / "lnx64" / target_dir / "bin" / "LNa64bin"
            bin_dir.mkdir(parents=True)
            for exe in ("chess-clang", "chess-llvm-link"):
                (bin_dir / exe).write_text("")
        self.add_tool(aietools / "bin" / "unwrapped" / "lnx64.o" / "xchesscc", "xchesscc", WRITE_OUTPUT)

        self.add_tool(self.install_dir / "bin" / "iree-aie-xclbinutil", "xclbinutil", XCLBINUTIL)

    def add_tool(self, path: Path, name: str, body: str) -> Path:
        header = SCRIPT_HEADER.format(python=sys.executable, log=str(self.log), name=name)
        return write_script(path, header + body.replace("{name!r}", repr(name)).replace("{name}", name))

    def break_tool(self, path: Path, name: str) -> Path:
        """Replace a tool with one that always exits nonzero."""
        return self.add_tool(path, name, FAIL)

    def calls(self, tool: str | None = None) -> list[list[str]]:
        """argv of every recorded invocation, optionally of one tool."""
        if not self.log.exists():
            return []
        records = [json.loads(line) for line in self.log.read_text().splitlines()]
        return [r["argv"] for r in records if tool is None or r["tool"] == tool]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Hide any real toolchain from the tests."""
    for var in TOOL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    empty_bin = tmp_path / "empty_bin"
    empty_bin.mkdir()
    monkeypatch.setenv("PATH", str(empty_bin))


@pytest.fixture
def toolchain(tmp_path):
    return FakeToolchain(tmp_path / "toolchain")


@pytest.fixture
def chess_env(monkeypatch, toolchain):
    """Make the fake Vitis install discoverable and licensed."""
    monkeypatch.setenv("VITIS", str(toolchain.vitis_dir))
    monkeypatch.setenv("XILINXD_LICENSE_FILE", str(toolchain.license_file))
    return toolchain


@pytest.fixture
def device():
    """Two compute tiles and one shim tile without a core."""
    return DeviceModule(
        name="npu1_4col",
        npu_version="npu1",
        tiles=[
            Tile(col=0, row=0),
            Tile(col=0, row=2, core=Core()),
            Tile(col=1, row=2, core=Core()),
        ],
        attributes={"npu_instructions": [0x06030100, 0x00000105, 0x00000001]},
        body="aie.device(npu1_4col) { }",
    )


@pytest.fixture
def uuid_generator():
    return RandomUUIDGenerator(seed=1234)


@pytest.fixture
def make_config(tmp_path, toolchain):
    """Build a peano/xrt config wired to the fake toolchain."""

    def _make(**overrides):
        values = {
            "output_path": tmp_path / "out" / "design.xclbin",
            "work_dir": tmp_path / "work",
            "cache_dir": tmp_path / "cache",
            "peano_dir": toolchain.peano_dir,
            "install_dir": toolchain.install_dir,
        }
        values.update(overrides)
        if isinstance(values["output_path"], Path):
            values["output_path"].parent.mkdir(parents=True, exist_ok=True)
        return BuildConfig(**values)

    return _make


@pytest.fixture
def repo_cwd(monkeypatch, tmp_path):
    """Run in an empty working directory."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return cwd
