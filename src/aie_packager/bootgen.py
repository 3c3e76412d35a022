"""Boot-image generator interface.

The PDI is produced by an embedded bootgen, called like its ``main``: it
receives an argv (whose first element is the program name) and returns an
exit status. It is a subroutine, not a subprocess, so there is no
executable to locate.
"""

from __future__ import annotations

import logging
import re
import struct
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

PDI_MAGIC = b"PDI\x00"


class BootImageGenerator(ABC):
    """Bootgen entry point."""

    @abstractmethod
    def main(self, argv: Sequence[str]) -> int:
        """Run bootgen with ``argv`` and return its exit status."""
        pass


class StubBootgen(BootImageGenerator):
    """Stub bootgen for development and testing.

    Understands ``-arch``, ``-image``, ``-o`` and ``-w``; reads every
    ``file=`` entry of the BIF and writes them back to back behind a small
    header. Replace with the real bootgen for loadable images.
    """

    SUPPORTED_ARCHS = ("versal",)

    def main(self, argv: Sequence[str]) -> int:
        args = list(argv[1:])
        opts: dict[str, str] = {}
        overwrite = False
        i = 0
        while i < len(args):
            flag = args[i]
            if flag == "-w":
                overwrite = True
                i += 1
            elif flag in ("-arch", "-image", "-o") and i + 1 < len(args):
                opts[flag] = args[i + 1]
                i += 2
            else:
                logger.error("bootgen: unrecognized argument %s", flag)
                return 1

        if opts.get("-arch") not in self.SUPPORTED_ARCHS:
            logger.error("bootgen: unsupported arch %s", opts.get("-arch"))
            return 1
        if "-image" not in opts or "-o" not in opts:
            logger.error("bootgen: -image and -o are required")
            return 1

        bif = Path(opts["-image"])
        output = Path(opts["-o"])
        if not bif.exists():
            logger.error("bootgen: BIF %s not found", bif)
            return 1
        if output.exists() and not overwrite:
            logger.error("bootgen: %s exists, pass -w to overwrite", output)
            return 1

        files = [Path(f) for f in re.findall(r"file=(\S+)", bif.read_text())]
        missing = [f for f in files if not f.exists()]
        if missing:
            logger.error("bootgen: missing partition files %s", missing)
            return 1

        payload = bytearray(PDI_MAGIC + struct.pack("<I", len(files)))
        for f in files:
            data = f.read_bytes()
            payload += struct.pack("<I", len(data)) + data
        output.write_bytes(bytes(payload))
        return 0
