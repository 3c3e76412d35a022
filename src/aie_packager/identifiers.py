"""Identifier generation for XCLBin partition metadata."""

from __future__ import annotations

import random
import uuid
from typing import Optional, Protocol


class UUIDGenerator(Protocol):
    """Anything that hands out UUID strings."""

    def __call__(self) -> str: ...


class RandomUUIDGenerator:
    """Version-4 UUIDs from a PRNG seeded once per instance.

    Not for anything security related; the ids only need to be unique
    among the PDIs of one container.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def __call__(self) -> str:
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))


_default_generator: Optional[RandomUUIDGenerator] = None


def default_uuid_generator() -> RandomUUIDGenerator:
    """Process-wide generator, created on first use."""
    global _default_generator
    if _default_generator is None:
        _default_generator = RandomUUIDGenerator()
    return _default_generator
