"""Streaming archive: one producer thread writing into an OS pipe.

The producer walks the roots and writes the archive into the write end of
a pipe; the caller reads the other end. The pipe is bounded by the OS
buffer, so a slow reader blocks the producer and the archive is never
held in memory. A producer error is stored and raised by the reader once
the bytes written before the failure have been consumed.
"""

from __future__ import annotations

import io
import logging
import os
import threading
from typing import Optional

from layertar._internal.archive import write_archive
from layertar.kernel.paths import Paths

logger = logging.getLogger(__name__)


class ArchiveStream(io.RawIOBase):
    """Readable, single-pass byte stream of a canonical layer archive.

    Reading to EOF returns the complete archive or raises the error that
    aborted the build. Closing the stream early stops the producer at its
    next write.
    """

    def __init__(self, paths: Paths):
        super().__init__()
        read_fd, write_fd = os.pipe()
        self._reader = os.fdopen(read_fd, "rb", buffering=0)
        self._error: Optional[BaseException] = None
        self.entries = 0
        self._producer = threading.Thread(
            target=self._produce,
            args=(paths, write_fd),
            name="layertar-producer",
            daemon=True,
        )
        self._producer.start()

    def _produce(self, paths: Paths, write_fd: int) -> None:
        sink = os.fdopen(write_fd, "wb")
        try:
            self.entries = write_archive(paths, sink)
            sink.flush()
        except BrokenPipeError:
            logger.debug("archive reader closed before the archive was complete")
        except Exception as e:  # forwarded to the reader
            self._error = e
        finally:
            try:
                sink.close()
            except BrokenPipeError:
                # The reader is gone; there is nobody left to deliver to.
                pass

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed archive stream")
        if len(buffer) == 0:
            return 0
        n = self._reader.readinto(buffer)
        if not n:
            self._producer.join()
            if self._error is not None:
                raise self._error
            return 0
        return n

    @property
    def error(self) -> Optional[BaseException]:
        """The error that aborted the producer, once it has finished."""
        return self._error

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._reader.close()
            self._producer.join()
        finally:
            super().close()
