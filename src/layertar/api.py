"""Public API for layertar.

High-level functions that serialize an ordered path list into a canonical
layer archive and return its digest and size. Callers should use these
functions instead of importing from _internal.
"""

import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Union

from layertar._internal.archive import COPY_BUFSIZE
from layertar._internal.io.paths_file import load_paths_from_path
from layertar._internal.pipe import ArchiveStream
from layertar.errors import ArchiveIOError
from layertar.kernel.digest import CANONICAL_ALGORITHM, Digester, LayerDigest
from layertar.kernel.paths import PathSpec, Paths

logger = logging.getLogger(__name__)

PathsLike = Union[Paths, Sequence[Union[PathSpec, dict, str, os.PathLike]]]


def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def _coerce_paths(paths: PathsLike) -> Paths:
    if isinstance(paths, Paths):
        return paths
    if isinstance(paths, (str, bytes, os.PathLike)):
        raise TypeError(
            "paths must be a sequence of path specs; use load_paths() to read a paths file"
        )
    return Paths.model_validate(list(paths))


def load_paths(source: Union[PathsLike, str, os.PathLike]) -> Paths:
    """Load and validate an ordered path list.

    Args:
        source: a Paths instance, a sequence of PathSpec / dicts / bare
            path strings, or the filesystem path of a JSON paths file

    Returns:
        Validated Paths

    Raises:
        pydantic.ValidationError: on a malformed entry, pattern or mode
    """
    if isinstance(source, (str, os.PathLike)):
        return load_paths_from_path(source)
    return _coerce_paths(source)


def tar_paths(paths: PathsLike) -> ArchiveStream:
    """Start building the archive of *paths* and return its byte stream.

    The stream is single-pass; to rebuild, call again with the same input.
    Use it as a context manager so the producer is stopped if the caller
    stops reading early.
    """
    return ArchiveStream(_coerce_paths(paths))


def _drain(
    stream: ArchiveStream,
    digester: Digester,
    tee: Optional[BinaryIO] = None,
    tee_path: Optional[Path] = None,
) -> None:
    while True:
        chunk = stream.read(COPY_BUFSIZE)
        if not chunk:
            break
        if tee is not None:
            try:
                tee.write(chunk)
            except OSError as e:
                raise ArchiveIOError(f"Could not write to {tee_path}: {e}", str(tee_path)) from e
        digester.update(chunk)


def sum_paths(paths: PathsLike, algorithm: str = CANONICAL_ALGORITHM) -> LayerDigest:
    """Compute the digest and size of the archive of *paths* without keeping it.

    Args:
        paths: ordered path list (see load_paths)
        algorithm: digest algorithm, sha256 by default

    Returns:
        LayerDigest with digest and size in bytes
    """
    digester = Digester(algorithm)
    with tar_paths(paths) as stream:
        _drain(stream, digester)
    result = digester.result()
    logger.info("layer %s (%d bytes)", result.digest, result.size)
    return result


def write_paths(
    paths: PathsLike,
    destination: Union[str, os.PathLike, Path],
    algorithm: str = CANONICAL_ALGORITHM,
) -> LayerDigest:
    """Write the archive of *paths* to *destination* and digest it in one pass.

    On error the destination may hold a truncated archive; it is left in
    place and must be treated as invalid.

    Returns:
        LayerDigest with digest and size in bytes
    """
    paths = _coerce_paths(paths)
    destination = _normalize_path(destination)
    digester = Digester(algorithm)
    try:
        f = open(destination, "wb")
    except OSError as e:
        raise ArchiveIOError(f"Could not create {destination}: {e}", str(destination)) from e
    with f, tar_paths(paths) as stream:
        _drain(stream, digester, tee=f, tee_path=destination)
        try:
            f.flush()
        except OSError as e:
            raise ArchiveIOError(f"Could not write to {destination}: {e}", str(destination)) from e
    result = digester.result()
    logger.info("layer %s (%d bytes) written to %s", result.digest, result.size, destination)
    return result
