"""Exceptions raised while building a layer archive.

Every error is fatal to the build it comes from. Errors that wrap an
``OSError`` keep it as ``__cause__``.
"""

from typing import Optional

from layertar.codes import ErrorCode


class LayerTarError(Exception):
    """Base class for layertar build errors."""

    code: ErrorCode = ErrorCode.IO_ERROR


class AccessError(LayerTarError):
    """A path vanished or became unreadable during the walk."""

    code = ErrorCode.ACCESS_ERROR

    def __init__(self, path: str, reason: object):
        self.path = path
        super().__init__(f"Failed accessing path {path!r}: {reason}")


class LinkResolutionError(LayerTarError):
    """A symlink target could not be read."""

    code = ErrorCode.LINK_RESOLUTION

    def __init__(self, path: str, reason: object):
        self.path = path
        super().__init__(f"Could not read symlink {path!r}: {reason}")


class UnsupportedFileType(LayerTarError):
    """The node is of a type tar cannot carry (sockets, doors, ...)."""

    code = ErrorCode.UNSUPPORTED_TYPE

    def __init__(self, path: str, kind: str):
        self.path = path
        super().__init__(f"Cannot archive {path!r}: {kind} is not supported")


class ConflictError(LayerTarError):
    """Two nodes map to one entry name with different canonical headers."""

    code = ErrorCode.CONFLICT

    def __init__(self, name: str, previous: str, current: str):
        self.name = name
        self.previous = previous
        self.current = current
        super().__init__(
            f"The file {name!r} overrides a file with different attributes "
            f"(previous: {previous} current: {current})"
        )


class ArchiveIOError(LayerTarError):
    """Writing the archive stream or the destination file failed."""

    code = ErrorCode.IO_ERROR

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
