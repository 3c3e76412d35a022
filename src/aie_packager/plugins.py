"""Discovery of device translator and bootgen implementations.

Packages that provide a real translator or bootgen register a zero-argument
factory (usually the class) as an entry point::

    [project.entry-points."aie_packager.translators"]
    mlir-aie = "my_package.translate:MlirAieTranslator"

    [project.entry-points."aie_packager.bootgens"]
    bootgen = "my_package.bootgen:Bootgen"

With no name given, a single registered implementation is picked
automatically. ``stub`` always selects the built-in stand-ins, which are
also the fallback when nothing is registered.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Optional

from .bootgen import BootImageGenerator, StubBootgen
from .exceptions import PluginNotFoundError
from .translation import DeviceTranslator, StubDeviceTranslator

logger = logging.getLogger(__name__)

TRANSLATOR_GROUP = "aie_packager.translators"
BOOTGEN_GROUP = "aie_packager.bootgens"
STUB = "stub"


def _registered(group: str) -> dict:
    return {ep.name: ep for ep in entry_points(group=group)}


def registered_names(group: str) -> list[str]:
    """Names accepted for ``group``, the built-in stub included."""
    return sorted(_registered(group)) + [STUB]


def _load(group: str, name: Optional[str], base: type, stub: type, kind: str):
    registered = _registered(group)

    if name is None:
        if len(registered) > 1:
            raise PluginNotFoundError(
                f"several {kind} implementations are registered "
                f"({', '.join(sorted(registered))}); choose one by name"
            )
        name = next(iter(registered), STUB)

    if name == STUB:
        logger.warning("Using the stub %s; the output will not load on hardware", kind)
        return stub()

    if name not in registered:
        raise PluginNotFoundError(
            f"no {kind} named '{name}' (available: {', '.join(registered_names(group))})"
        )

    try:
        factory = registered[name].load()
    except (ImportError, AttributeError) as e:
        raise PluginNotFoundError(f"failed to load {kind} '{name}': {e}") from e

    plugin = factory()
    if not isinstance(plugin, base):
        raise PluginNotFoundError(f"{kind} '{name}' is not a {base.__name__}")
    logger.info("Using %s '%s'", kind, name)
    return plugin


def load_translator(name: Optional[str] = None) -> DeviceTranslator:
    """Return the device translator registered as ``name``.

    Raises:
        PluginNotFoundError: If ``name`` is unknown, fails to load, or is
            ambiguous because it is unset and several are registered
    """
    return _load(TRANSLATOR_GROUP, name, DeviceTranslator, StubDeviceTranslator, "device translator")


def load_bootgen(name: Optional[str] = None) -> BootImageGenerator:
    """Return the boot image generator registered as ``name``.

    Raises:
        PluginNotFoundError: As for ``load_translator``
    """
    return _load(BOOTGEN_GROUP, name, BootImageGenerator, StubBootgen, "boot image generator")
