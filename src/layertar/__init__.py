"""layertar: deterministic, streaming tar archives for container image layers."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("layertar")
except PackageNotFoundError:
    __version__ = "dev"

from layertar.api import load_paths, sum_paths, tar_paths, write_paths
from layertar.codes import ErrorCode
from layertar.errors import (
    AccessError,
    ArchiveIOError,
    ConflictError,
    LayerTarError,
    LinkResolutionError,
    UnsupportedFileType,
)
from layertar.kernel.digest import LayerDigest
from layertar.kernel.paths import PathOptions, PathSpec, Paths, PermRule, RewriteRule

__all__ = [
    "__version__",
    "load_paths",
    "sum_paths",
    "tar_paths",
    "write_paths",
    "ErrorCode",
    "LayerTarError",
    "AccessError",
    "ArchiveIOError",
    "ConflictError",
    "LinkResolutionError",
    "UnsupportedFileType",
    "LayerDigest",
    "PathOptions",
    "PathSpec",
    "Paths",
    "PermRule",
    "RewriteRule",
]
