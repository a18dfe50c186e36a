"""Texcompute: general-purpose computation on the GPU via textures and fragment shaders."""

# ruff: noqa: F401, F403

from ._version import __version__, version_info
from . import utils

from .errors import (
    TexComputeError,
    UnsupportedFormatError,
    SizeMismatchError,
    CompileError,
    LinkError,
    IncompleteTargetError,
    InvalidStateError,
    UnboundInputError,
)
from .codec import Shape, to_pixel, to_index, from_frag_coord, pack, unpack
from .engine import *
from .scheduler import ComputeTask, run_ticks

from .utils import enums, logger
from .utils.enums import *


__wgpu_version_range__ = "0.19.0", "1.0.0"


def _check_wgpu_version():
    import wgpu

    min_ver, max_ver = (
        tuple(map(int, v.split("."))) for v in __wgpu_version_range__
    )
    detected = f"Detected {wgpu.__version__}, need >={__wgpu_version_range__[0]}, <{__wgpu_version_range__[1]}."
    if wgpu.version_info < min_ver:
        logger.error(
            f"Incompatible version of wgpu:\n    {detected}\n    To update, use e.g. `pip install -U wgpu`."
        )
    elif wgpu.version_info >= max_ver:
        logger.warning(f"Possible incompatible version of wgpu:\n    {detected}")


_check_wgpu_version()
