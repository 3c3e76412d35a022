"""Core compiler backends (chess and peano)."""

from ..models import Backend, BuildConfig
from .base import CoreCompiler
from .chess import ChessCompiler, make_chess_args, make_chess_env
from .peano import PeanoCompiler, make_peano_opt_args


def get_core_compiler(config: BuildConfig) -> CoreCompiler:
    """Return the compiler for ``config.backend``."""
    if config.backend == Backend.CHESS:
        return ChessCompiler(config)
    return PeanoCompiler(config)


__all__ = [
    "CoreCompiler",
    "ChessCompiler",
    "PeanoCompiler",
    "get_core_compiler",
    "make_chess_args",
    "make_chess_env",
    "make_peano_opt_args",
]
