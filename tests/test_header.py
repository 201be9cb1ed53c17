"""Tests for canonical headers and the header registry."""

import os
import stat
import tarfile

import pytest

from layertar.errors import ConflictError, UnsupportedFileType
from layertar.kernel.header import (
    CanonicalHeader,
    HeaderRegistry,
    canonical_header,
    header_fields_from_stat,
)
from layertar.kernel.paths import PathOptions


def _stat(fmt: int, mode: int, size: int = 0, uid: int = 1000, gid: int = 100) -> os.stat_result:
    # (mode, ino, dev, nlink, uid, gid, size, atime, mtime, ctime)
    return os.stat_result((fmt | mode, 42, 7, 1, uid, gid, size, 1700000000, 1700000001, 1700000002))


class TestCanonicalHeader:
    """Tests for canonical_header()."""

    def test_regular_file_is_normalized(self):
        header = canonical_header("a/x", _stat(stat.S_IFREG, 0o640, size=2))
        assert header.name == "a/x"
        assert header.type == "regular"
        assert header.size == 2
        assert header.mode == 0o640
        assert (header.uid, header.gid) == (0, 0)
        assert (header.uname, header.gname) == ("root", "root")
        assert (header.mtime, header.atime, header.ctime) == (0, 0, 0)
        assert header.has_payload

    def test_directory_has_no_size_or_payload(self):
        header = canonical_header("a", _stat(stat.S_IFDIR, 0o755, size=4096))
        assert header.type == "directory"
        assert header.size == 0
        assert not header.has_payload

    def test_symlink_keeps_target(self):
        header = canonical_header("a/l", _stat(stat.S_IFLNK, 0o777, size=1), link="x")
        assert header.type == "symlink"
        assert header.linkname == "x"
        assert header.size == 0
        assert not header.has_payload

    def test_special_bits_kept(self):
        header = canonical_header("a/s", _stat(stat.S_IFREG, 0o4755))
        assert header.mode == 0o4755

    def test_rewrite_uses_original_path(self):
        options = PathOptions.model_validate({"rewrite": {"regex": "^a/", "repl": "opt/"}})
        header = canonical_header("a/x", _stat(stat.S_IFREG, 0o644), options=options)
        assert header.name == "opt/x"

    def test_empty_name_skips_entry(self):
        options = PathOptions.model_validate({"rewrite": {"regex": "^a/", "repl": ""}})
        assert canonical_header("a/", _stat(stat.S_IFDIR, 0o755), options=options) is None

    def test_directory_name_drops_trailing_slash(self):
        options = PathOptions.model_validate({"rewrite": {"regex": "^a", "repl": "opt/"}})
        header = canonical_header("a", _stat(stat.S_IFDIR, 0o755), options=options)
        assert header.name == "opt"
        assert header.archive_name == "opt/"

    def test_root_directory_keeps_its_slash(self):
        header = canonical_header("/", _stat(stat.S_IFDIR, 0o755))
        assert header.name == "/"
        assert header.archive_name == "/"

    def test_perms_override_mode(self):
        options = PathOptions.model_validate({
            "perms": [{"regex": "x$", "mode": "0600"}, {"regex": "^a/", "mode": "0444"}]
        })
        header = canonical_header("a/x", _stat(stat.S_IFREG, 0o755), options=options)
        assert header.mode == 0o444

    def test_owner_and_times_do_not_leak(self):
        h1 = canonical_header("a/x", _stat(stat.S_IFREG, 0o644, uid=1000, gid=100))
        h2 = canonical_header("a/x", _stat(stat.S_IFREG, 0o644, uid=0, gid=0))
        assert h1 == h2

    def test_socket_rejected(self):
        with pytest.raises(UnsupportedFileType, match="socket") as excinfo:
            header_fields_from_stat("a/sock", _stat(stat.S_IFSOCK, 0o755), None)
        assert excinfo.value.path == "a/sock"

    @pytest.mark.skipif(not os.path.exists("/dev/null"), reason="needs /dev/null")
    def test_char_device(self):
        st = os.lstat("/dev/null")
        if not stat.S_ISCHR(st.st_mode):
            pytest.skip("/dev/null is not a character device here")
        header = canonical_header("/dev/null", st)
        assert header.type == "char"
        assert (header.devmajor, header.devminor) == (os.major(st.st_rdev), os.minor(st.st_rdev))


class TestToTarinfo:
    """Tests for CanonicalHeader.to_tarinfo()."""

    def test_fields_copied(self):
        header = CanonicalHeader(name="a/l", type="symlink", linkname="x", mode=0o777)
        info = header.to_tarinfo()
        assert info.name == "a/l"
        assert info.type == tarfile.SYMTYPE
        assert info.linkname == "x"
        assert info.mode == 0o777
        assert (info.uid, info.gid, info.uname, info.gname) == (0, 0, "root", "root")
        assert info.mtime == 0

    def test_no_pax_records_for_short_names(self):
        info = CanonicalHeader(name="a/x", type="regular", size=2, mode=0o644).to_tarinfo()
        assert info.pax_headers == {}


class TestHeaderRegistry:
    """Tests for HeaderRegistry."""

    def test_register_new(self):
        registry = HeaderRegistry()
        header = CanonicalHeader(name="x", type="regular", size=2, mode=0o644)
        assert registry.register(header) is True
        assert "x" in registry
        assert len(registry) == 1
        assert registry.get("x") == header

    def test_directories_are_keyed_with_trailing_slash(self):
        registry = HeaderRegistry()
        registry.register(CanonicalHeader(name="opt", type="directory", mode=0o755))
        assert "opt/" in registry
        assert "opt" not in registry

    def test_file_with_trailing_slash_conflicts_with_directory(self):
        registry = HeaderRegistry()
        registry.register(CanonicalHeader(name="opt", type="directory", mode=0o755))
        with pytest.raises(ConflictError):
            registry.register(CanonicalHeader(name="opt/", type="regular", mode=0o755))

    def test_identical_header_is_noop(self):
        registry = HeaderRegistry()
        registry.register(CanonicalHeader(name="x", type="regular", size=2, mode=0o644))
        assert registry.register(CanonicalHeader(name="x", type="regular", size=2, mode=0o644)) is False
        assert len(registry) == 1

    def test_conflict_reports_both_headers(self):
        registry = HeaderRegistry()
        registry.register(CanonicalHeader(name="x", type="regular", size=2, mode=0o644))
        with pytest.raises(ConflictError) as excinfo:
            registry.register(CanonicalHeader(name="x", type="regular", size=5, mode=0o644))
        err = excinfo.value
        assert err.name == "x"
        assert '"size":2' in err.previous
        assert '"size":5' in err.current
        assert "'x'" in str(err)
        assert err.previous in str(err) and err.current in str(err)

    def test_describe_is_stable(self):
        a = CanonicalHeader(name="x", type="regular", size=2, mode=0o644)
        b = CanonicalHeader(mode=0o644, size=2, type="regular", name="x")
        assert a.describe() == b.describe()
