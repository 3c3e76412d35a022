"""In-memory device module consumed by the packaging pipeline.

The device module is produced upstream by the compiler pass pipeline. Here
it is only queried: which tiles exist, which of them host a core, and which
device-wide attributes (``npu_instructions``) are attached. The ``body``
holds the lowered device IR as text and is only ever handed to a
``DeviceTranslator``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator, Union

import yaml
from pydantic import BaseModel, Field

NPU_INSTRUCTIONS_ATTR = "npu_instructions"

# (col, row) -> ELF filename, assigned once per core by the ELF stage
ElfAssignment = dict[tuple[int, int], str]


class Core(BaseModel):
    """Compute core hosted by a tile."""

    elf_file: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class Tile(BaseModel):
    """One element of the 2-D tile grid."""

    col: int
    row: int
    core: Core | None = None

    @property
    def coords(self) -> tuple[int, int]:
        return (self.col, self.row)

    @property
    def has_core(self) -> bool:
        return self.core is not None


class DeviceModule(BaseModel):
    """Lowered accelerator program: tiles, cores and device attributes."""

    name: str = "device"
    npu_version: str | None = None
    tiles: list[Tile] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)
    body: str = ""

    def core_tiles(self) -> Iterator[Tile]:
        """Yield tiles that host a compute core, in module order."""
        for tile in self.tiles:
            if tile.core is not None:
                yield tile

    def get_tile(self, col: int, row: int) -> Tile | None:
        for tile in self.tiles:
            if tile.col == col and tile.row == row:
                return tile
        return None

    def clone(self) -> "DeviceModule":
        """Deep copy, so translations never touch the caller's module."""
        return self.model_copy(deep=True)


def load_device_module(path: Union[str, Path]) -> DeviceModule:
    """Load a device module from a JSON or YAML file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If the document doesn't match the schema
    """
    path = Path(path)
    text = path.read_text()
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    return DeviceModule.model_validate(data)
