"""Canonical tar headers and the per-build header registry (pure logic).

A canonical header is the metadata of one archive entry after
normalization: fixed root ownership, epoch timestamps, rewritten name and
overridden mode. Nothing in it depends on who built the archive or when.
"""

import os
import stat
import tarfile
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict

from layertar.errors import ConflictError, UnsupportedFileType
from layertar.kernel.paths import PathOptions

EntryType = Literal["regular", "directory", "symlink", "fifo", "char", "block"]

ROOT_UID = 0
ROOT_GID = 0
ROOT_NAME = "root"
EPOCH = 0

_TAR_TYPES = {
    "regular": tarfile.REGTYPE,
    "directory": tarfile.DIRTYPE,
    "symlink": tarfile.SYMTYPE,
    "fifo": tarfile.FIFOTYPE,
    "char": tarfile.CHRTYPE,
    "block": tarfile.BLKTYPE,
}


class CanonicalHeader(BaseModel):
    """Normalized metadata of one archive entry."""
    name: str
    type: EntryType
    linkname: str = ""
    size: int = 0
    mode: int
    uid: int = ROOT_UID
    gid: int = ROOT_GID
    uname: str = ROOT_NAME
    gname: str = ROOT_NAME
    mtime: int = EPOCH
    atime: int = EPOCH
    ctime: int = EPOCH
    devmajor: int = 0
    devminor: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def has_payload(self) -> bool:
        return self.type == "regular"

    @property
    def archive_name(self) -> str:
        """Name as it appears in the tar stream; directories end in '/'."""
        if self.type == "directory" and not self.name.endswith("/"):
            return self.name + "/"
        return self.name

    def describe(self) -> str:
        """Compact JSON rendering in field order, used in error messages."""
        return self.model_dump_json()

    def to_tarinfo(self) -> tarfile.TarInfo:
        """Build the TarInfo written to the stream.

        Only mtime has a USTAR field; atime and ctime are left out of the
        stream so that entries do not need PAX records.
        """
        info = tarfile.TarInfo(self.name)
        info.type = _TAR_TYPES[self.type]
        info.linkname = self.linkname
        info.size = self.size
        info.mode = self.mode
        info.uid = self.uid
        info.gid = self.gid
        info.uname = self.uname
        info.gname = self.gname
        info.mtime = self.mtime
        info.devmajor = self.devmajor
        info.devminor = self.devminor
        return info


def header_fields_from_stat(path: str, st: os.stat_result, link: Optional[str]) -> Dict:
    """Derive type, size, mode, link target and device numbers from *st*.

    The mode keeps the permission bits plus setuid, setgid and sticky.
    """
    fmt = st.st_mode
    fields: Dict = {"mode": stat.S_IMODE(fmt)}
    if stat.S_ISREG(fmt):
        fields.update(type="regular", size=st.st_size)
    elif stat.S_ISDIR(fmt):
        fields.update(type="directory")
    elif stat.S_ISLNK(fmt):
        fields.update(type="symlink", linkname=link or "")
    elif stat.S_ISFIFO(fmt):
        fields.update(type="fifo")
    elif stat.S_ISCHR(fmt) or stat.S_ISBLK(fmt):
        fields.update(
            type="char" if stat.S_ISCHR(fmt) else "block",
            devmajor=os.major(st.st_rdev),
            devminor=os.minor(st.st_rdev),
        )
    elif stat.S_ISSOCK(fmt):
        raise UnsupportedFileType(path, "socket")
    else:
        raise UnsupportedFileType(path, f"file type {stat.S_IFMT(fmt):o}")
    return fields


def canonical_header(
    path: str,
    st: os.stat_result,
    link: Optional[str] = None,
    options: Optional[PathOptions] = None,
) -> Optional[CanonicalHeader]:
    """Compute the canonical header of the node at *path*.

    The entry name and the mode overrides are computed from the original
    filesystem path. Returns None when the rewritten name is empty, which
    means the node is left out of the archive.
    """
    fields = header_fields_from_stat(path, st, link)
    name = options.entry_name(path) if options is not None else path
    if name == "":
        return None
    if fields["type"] == "directory":
        # "opt" and "opt/" are the same directory entry
        name = name.rstrip("/") or "/"
    if options is not None:
        fields["mode"] = options.override_mode(path, fields["mode"])
    return CanonicalHeader(name=name, **fields)


class HeaderRegistry:
    """Append-only record of the headers emitted by one build.

    Owned by the single producer of a build; not thread-safe.
    """

    def __init__(self) -> None:
        self._headers: Dict[str, CanonicalHeader] = {}

    def __len__(self) -> int:
        return len(self._headers)

    def __contains__(self, name: str) -> bool:
        return name in self._headers

    def get(self, name: str) -> Optional[CanonicalHeader]:
        """Look up a header by its stream name; directories end in '/'."""
        return self._headers.get(name)

    def register(self, header: CanonicalHeader) -> bool:
        """Record *header*; return False if an identical one is already there.

        Headers are keyed on their name in the tar stream, so a directory
        ``opt`` and a file ``opt/`` collide.

        Raises ConflictError when the name is taken by a different header.
        """
        key = header.archive_name
        previous = self._headers.get(key)
        if previous is None:
            self._headers[key] = header
            return True
        if previous != header:
            raise ConflictError(header.name, previous.describe(), header.describe())
        return False
