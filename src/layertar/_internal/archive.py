"""Entry serializer: writes the canonical entries of a walk into a tar stream."""

from __future__ import annotations

import logging
import os
import stat
import tarfile
from typing import BinaryIO, Optional

from layertar._internal.walk import walk
from layertar.errors import AccessError, ArchiveIOError, LinkResolutionError
from layertar.kernel.header import HeaderRegistry, canonical_header
from layertar.kernel.paths import PathOptions, Paths

logger = logging.getLogger(__name__)

# USTAR headers; PAX records only for fields that do not fit USTAR.
TAR_FORMAT = tarfile.PAX_FORMAT
COPY_BUFSIZE = 64 * 1024


class _PositionWriter:
    """Write-only wrapper that tracks its offset so tarfile can use a pipe."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self._offset = 0

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self._offset += len(data)
        return len(data)

    def tell(self) -> int:
        return self._offset


def _add(tar: tarfile.TarFile, info: tarfile.TarInfo, path: str, fileobj: Optional[BinaryIO] = None) -> None:
    try:
        tar.addfile(info, fileobj)
    except BrokenPipeError:
        raise
    except OSError as e:
        if fileobj is None:
            raise ArchiveIOError(f"Could not write header {info.name!r}: {e}", path) from e
        raise ArchiveIOError(
            f"Could not copy the file {path!r} data to the archive: {e}", path
        ) from e


def append_entry(
    tar: tarfile.TarFile,
    registry: HeaderRegistry,
    path: str,
    st: os.stat_result,
    options: Optional[PathOptions] = None,
) -> bool:
    """Serialize one visited node into *tar*.

    Returns True when an entry was written and False when the node was
    skipped, either because its rewritten name is empty or because an
    identical entry is already in the archive.
    """
    link = None
    if stat.S_ISLNK(st.st_mode):
        try:
            link = os.readlink(path)
        except OSError as e:
            raise LinkResolutionError(path, e) from e

    header = canonical_header(path, st, link, options)
    if header is None:
        logger.debug("skipping %s: rewritten name is empty", path)
        return False
    if not registry.register(header):
        logger.debug("skipping %s: identical entry %s already written", path, header.name)
        return False

    info = header.to_tarinfo()
    if not header.has_payload:
        _add(tar, info, path)
    else:
        try:
            f = open(path, "rb")
        except OSError as e:
            raise AccessError(path, e) from e
        with f:
            _add(tar, info, path, f)
    logger.debug("added %s as %s", path, header.name)
    return True


def write_archive(paths: Paths, sink: BinaryIO) -> int:
    """Write the canonical archive of *paths* into *sink*.

    Roots are walked in list order. On error nothing more is written, so
    *sink* holds a truncated archive without trailer blocks.

    Returns:
        Number of entries written
    """
    registry = HeaderRegistry()
    tar = tarfile.open(
        fileobj=_PositionWriter(sink),
        mode="w",
        format=TAR_FORMAT,
        copybufsize=COPY_BUFSIZE,
    )
    for spec in paths:
        for path, st in walk(spec.path):
            append_entry(tar, registry, path, st, spec.options)
    try:
        tar.close()
    except BrokenPipeError:
        raise
    except OSError as e:
        raise ArchiveIOError(f"Could not write the archive trailer: {e}") from e
    return len(registry)
